from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum

from sonic_cycler.exceptions import AmountPrecisionError

MAX_UINT256 = 2**256 - 1
MAX_DECIMALS = 77


class OperationKind(str, Enum):
    APPROVE = "approve"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    SWAP = "swap"


class ErrorKind(str, Enum):
    REVERTED = "reverted"
    TIMEOUT = "timeout"


@dataclass(slots=True, frozen=True)
class OperationRequest:
    """One state-changing call, built right before submission."""
    kind: OperationKind
    amount: int
    target: str
    label: str = ""
    params: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise TypeError("amount must be an integer in base units")
        if self.amount <= 0:
            raise ValueError(f"amount must be positive, got {self.amount}")
        if self.amount > MAX_UINT256:
            raise ValueError("amount does not fit into uint256")

    @property
    def gas_limit(self) -> int | None:
        return self.params.get("gas_limit")

    @property
    def value(self) -> int:
        return self.params.get("value", 0)


@dataclass(slots=True, frozen=True)
class OperationResult:
    kind: OperationKind
    success: bool
    tx_hash: str | None = None
    block_number: int | None = None
    gas_used: int | None = None
    error_kind: ErrorKind | None = None
    message: str = ""
    skipped: bool = False

    @classmethod
    def confirmed(
        cls, kind: OperationKind, tx_hash: str, block_number: int, gas_used: int | None = None
    ) -> "OperationResult":
        return cls(
            kind=kind, success=True, tx_hash=tx_hash,
            block_number=block_number, gas_used=gas_used
        )

    @classmethod
    def noop(cls, kind: OperationKind, message: str) -> "OperationResult":
        return cls(kind=kind, success=True, message=message, skipped=True)

    @classmethod
    def failed(
        cls,
        kind: OperationKind,
        error_kind: ErrorKind,
        message: str,
        tx_hash: str | None = None,
        block_number: int | None = None,
        gas_used: int | None = None,
    ) -> "OperationResult":
        return cls(
            kind=kind, success=False, tx_hash=tx_hash, block_number=block_number,
            gas_used=gas_used, error_kind=error_kind, message=message
        )


def scale_amount(amount: Decimal | str | int, decimals: int) -> int:
    """
    Convert a human amount into base units of a token with ``decimals``.

    Raises AmountPrecisionError when the amount needs more fractional digits
    than the token has, or when the result would not be positive.
    """
    if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= MAX_DECIMALS:
        raise AmountPrecisionError(f"Invalid token decimals: {decimals!r}")

    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise AmountPrecisionError(f"Not a number: {amount!r}") from e

    if not value.is_finite():
        raise AmountPrecisionError(f"Not a finite amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(value.as_tuple().digits))
        scaled = value.scaleb(decimals)
        whole = scaled.to_integral_value()

    if scaled != whole:
        raise AmountPrecisionError(
            f"Amount {value} has more than {decimals} decimal places"
        )

    result = int(whole)
    if result <= 0:
        raise AmountPrecisionError(f"Amount must be positive, got {value}")
    return result


def to_human(amount: int, decimals: int) -> Decimal:
    """Base units back to a token amount that prints without an exponent."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, len(str(abs(amount))))
        value = Decimal(amount).scaleb(-decimals).normalize()
        if value.as_tuple().exponent > 0:
            value = value.quantize(Decimal(1))
    return value
