from __future__ import annotations

import logging
from typing import Any, Optional

from app.registration.errors import (
    InsufficientFunds,
    NetworkError,
    RegistrationError,
    SubmissionError,
    WalletRejected,
)
from app.registration.ledger import LEDGER_TRANSPORT_ERRORS, LedgerClient
from app.registration.types import LedgerTransactionRequest, TransactionHandle

logger = logging.getLogger(__name__)

# EIP-1193 "user rejected request"
USER_REJECTED_CODE = 4001

_REJECTION_MARKERS = ("user denied", "user rejected", "rejected by user")
_FUNDS_MARKERS = ("insufficient funds",)


def _rpc_code(exc: BaseException) -> Optional[Any]:
    code = getattr(exc, "code", None)
    if code is None and exc.args and isinstance(exc.args[0], dict):
        code = exc.args[0].get("code")
    return code


def classify_submission_error(exc: BaseException) -> RegistrationError:
    if isinstance(exc, RegistrationError):
        return exc
    msg = str(exc).lower()
    if _rpc_code(exc) == USER_REJECTED_CODE or any(m in msg for m in _REJECTION_MARKERS):
        return WalletRejected(f"Wallet rejected the transaction: {exc}", cause=exc)
    if any(m in msg for m in _FUNDS_MARKERS):
        return InsufficientFunds(f"Insufficient funds for the transaction: {exc}", cause=exc)
    if isinstance(exc, LEDGER_TRANSPORT_ERRORS):
        return NetworkError(f"Ledger unreachable: {exc}", cause=exc)
    return SubmissionError(f"Ledger refused the transaction: {exc}", cause=exc)


class LedgerTransactionSubmitter:
    """
    Sends createContractByAccountAddress exactly once.

    There is no retry: a resend after an ambiguous failure can create a
    second contract on chain.
    """

    def __init__(self, ledger: LedgerClient):
        self._ledger = ledger

    async def submit(self, request: LedgerTransactionRequest, *, sender: str) -> TransactionHandle:
        try:
            # recorded before the send so the listener cannot miss the event
            from_block = await self._ledger.block_number()
        except RegistrationError:
            raise
        except Exception as e:
            raise classify_submission_error(e) from e

        logger.info(
            "[submit] createContractByAccountAddress agent=%s seller=%s buyer=%s type=%s from_block=%s",
            *request.as_args(), from_block,
        )
        try:
            tx_hash = await self._ledger.send_create_contract(request, sender=sender)
        except RegistrationError:
            raise
        except Exception as e:
            err = classify_submission_error(e)
            logger.warning("[submit] failed: %s", err.message)
            raise err from e

        logger.info("[submit] accepted tx=%s", tx_hash)
        return TransactionHandle(tx_hash=tx_hash, from_block=from_block, request=request)
