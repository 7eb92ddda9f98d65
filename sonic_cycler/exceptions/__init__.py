from .custom_exceptions import (
    AmountPrecisionError,
    ConfigurationError,
    InsufficientFundsError,
    NothingToWithdrawError,
    OperationError,
    PreconditionError,
    ReserveInactiveError,
    TransactionRevertedError,
    TransactionTimeoutError,
    WalletError,
)
