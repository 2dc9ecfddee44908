import aiohttp
import pytest

from app.models.enums import ContractType
from app.registration.errors import InsufficientFunds, NetworkError, SubmissionError, WalletRejected
from app.registration.submitter import LedgerTransactionSubmitter, classify_submission_error
from app.registration.types import LedgerTransactionRequest

from conftest import AGENT_WALLET


def _request():
    return LedgerTransactionRequest("0xA1", "0xB2", "0xC3", ContractType.DEPOSIT_LEASE)


async def test_submit_sends_once_and_records_start_block(ledger):
    handle = await LedgerTransactionSubmitter(ledger).submit(_request(), sender=AGENT_WALLET)

    assert ledger.sent == [_request()]
    assert ledger.senders == [AGENT_WALLET]
    assert handle.from_block == 1000
    assert handle.tx_hash.startswith("0x")
    assert handle.request.as_args() == ("0xA1", "0xB2", "0xC3", 2)


@pytest.mark.parametrize(
    "exc, expected",
    [
        (ValueError({"code": 4001, "message": "MetaMask Tx Signature: User denied transaction signature."}), WalletRejected),
        (ValueError("insufficient funds for gas * price + value"), InsufficientFunds),
        (ConnectionRefusedError("connection refused"), NetworkError),
        (aiohttp.ServerDisconnectedError(), NetworkError),
        (RuntimeError("execution reverted"), SubmissionError),
    ],
)
async def test_failures_are_classified_and_never_retried(ledger, exc, expected):
    ledger.send_error = exc
    with pytest.raises(expected):
        await LedgerTransactionSubmitter(ledger).submit(_request(), sender=AGENT_WALLET)
    assert ledger.send_attempts == 1
    assert ledger.sent == []


def test_rejection_by_rpc_code_attribute():
    class ProviderError(Exception):
        code = 4001

    assert isinstance(classify_submission_error(ProviderError("denied")), WalletRejected)
