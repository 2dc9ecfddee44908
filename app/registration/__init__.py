from app.registration.errors import (
    RegistrationError,
    IdentityNotFound,
    NetworkError,
    WalletRejected,
    InsufficientFunds,
    SubmissionError,
    ConfirmationTimeout,
    ValidationError,
    PersistenceConflict,
    InvalidTransition,
)
from app.registration.types import (
    ContractDraft,
    LedgerTransactionRequest,
    TransactionHandle,
    ConfirmationEvent,
    PersistedContract,
)
from app.registration.state_machine import RegistrationState, RegistrationEvent, transition
from app.registration.pipeline import RegistrationPipeline
