from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sonic_cycler.models.operation_model import OperationResult


class WalletError(Exception):
    """
    Base class for wallet-related errors.

    Used as a parent class for all wallet-related exceptions.
    """


class ConfigurationError(Exception):
    """
    Base class for configuration errors.

    Raised before any remote call is made. Always fatal for the process.
    """


class AmountPrecisionError(ValueError):
    """
    Amount cannot be expressed in the token's declared precision.
    """


class OperationError(Exception):
    """
    Base class for failures of a single on-chain operation.

    Carries the failure record when one is available (hash, gas used).
    """

    def __init__(self, message: str, result: OperationResult | None = None) -> None:
        super().__init__(message)
        self.result = result

    @property
    def tx_hash(self) -> str | None:
        return self.result.tx_hash if self.result else None

    @property
    def gas_used(self) -> int | None:
        return self.result.gas_used if self.result else None


class PreconditionError(OperationError):
    """
    A check made right before submission did not hold.
    """


class InsufficientFundsError(PreconditionError, WalletError):
    """
    Exception for insufficient funds on the wallet.

    Occurs when the wallet balance is insufficient to complete the operation.
    """


class ReserveInactiveError(PreconditionError):
    """
    The lending reserve has no liquidity. Hard stop for the supply step.
    """


class NothingToWithdrawError(PreconditionError):
    """
    The wallet holds none of the receipt token.
    """


class TransactionRevertedError(OperationError):
    """
    Transaction was included in a block with a failed status.
    """


class TransactionTimeoutError(OperationError):
    """
    Transaction was sent but no receipt arrived in time.
    """
