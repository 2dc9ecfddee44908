"""
Failure taxonomy of the contract registration pipeline.

``retryable`` marks errors that are safe to retry for read-only or
idempotent-by-key operations (identity lookup, persistence write). It is
never a licence to resend a ledger transaction.
"""
from __future__ import annotations

from typing import Optional


class RegistrationError(Exception):
    retryable: bool = False

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class IdentityNotFound(RegistrationError):
    def __init__(self, identifier: str):
        super().__init__(f"No registered account for {identifier!r}")
        self.identifier = identifier


class NetworkError(RegistrationError):
    retryable = True


class WalletRejected(RegistrationError):
    pass


class InsufficientFunds(RegistrationError):
    pass


class SubmissionError(RegistrationError):
    """Ledger refused the transaction for a reason we do not classify."""


class ConfirmationTimeout(RegistrationError):
    def __init__(self, account_address: str, from_block: int, timeout: Optional[float]):
        super().__init__(
            f"No UpdateContract event on {account_address} since block {from_block} "
            f"within {timeout}s"
        )
        self.account_address = account_address
        self.from_block = from_block
        self.timeout = timeout


class ValidationError(RegistrationError):
    pass


class PersistenceConflict(RegistrationError):
    def __init__(self, contract_index: int):
        super().__init__(f"Contract {contract_index} is already persisted")
        self.contract_index = contract_index


class InvalidTransition(RegistrationError):
    pass
