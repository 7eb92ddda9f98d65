from decimal import Decimal

import pytest

from sonic_cycler.exceptions import AmountPrecisionError
from sonic_cycler.models import (
    MAX_UINT256,
    AmountRange,
    ErrorKind,
    OperationKind,
    OperationRequest,
    OperationResult,
    scale_amount,
    to_human,
)
from sonic_cycler.utils import draw_amount


@pytest.mark.parametrize("amount, decimals, expected", [
    ("0.01", 18, 10**16),
    (Decimal("1.5"), 6, 1_500_000),
    (3, 0, 3),
    ("0.000001", 6, 1),
])
def test_scale_amount(amount, decimals, expected):
    assert scale_amount(amount, decimals) == expected


@pytest.mark.parametrize("amount, decimals", [
    ("0.0000001", 6),
    ("0.5", 0),
    ("0", 18),
    ("-1", 18),
    ("NaN", 18),
    ("Infinity", 18),
    ("abc", 18),
    ("1", 78),
    ("1", -1),
    ("1.0000000000000000000000000001", 18),
])
def test_scale_amount_rejects(amount, decimals):
    with pytest.raises(AmountPrecisionError):
        scale_amount(amount, decimals)


def test_precision_error_is_a_value_error():
    assert issubclass(AmountPrecisionError, ValueError)


def test_to_human():
    assert to_human(10**16, 18) == Decimal("0.01")
    assert to_human(1_500_000, 6) == Decimal("1.5")


def test_to_human_never_uses_exponent_notation():
    assert str(to_human(10**19, 18)) == "10"
    assert str(to_human(10**16, 18)) == "0.01"
    assert str(to_human(0, 18)) == "0"
    assert str(to_human(MAX_UINT256, 0)) == str(MAX_UINT256)


def test_scale_amount_keeps_long_amounts_exact():
    assert scale_amount("123456789012345678901234567.890123456789012345", 18) == (
        123456789012345678901234567890123456789012345
    )


@pytest.mark.parametrize("amount, error", [
    (0, ValueError),
    (-5, ValueError),
    (MAX_UINT256 + 1, ValueError),
    (1.5, TypeError),
    (True, TypeError),
])
def test_operation_request_validates_amount(amount, error):
    with pytest.raises(error):
        OperationRequest(kind=OperationKind.DEPOSIT, amount=amount, target="0x0")


def test_operation_request_params():
    request = OperationRequest(
        kind=OperationKind.DEPOSIT,
        amount=MAX_UINT256,
        target="0x0",
        params={"gas_limit": 100_000, "value": 7},
    )
    assert request.gas_limit == 100_000
    assert request.value == 7

    bare = OperationRequest(kind=OperationKind.SWAP, amount=1, target="0x0")
    assert bare.gas_limit is None
    assert bare.value == 0


def test_operation_result_constructors():
    ok = OperationResult.confirmed(OperationKind.APPROVE, "0xabc", 12, 21_000)
    assert ok.success and not ok.skipped and ok.block_number == 12

    noop = OperationResult.noop(OperationKind.APPROVE, "enough allowance")
    assert noop.success and noop.skipped and noop.tx_hash is None

    failed = OperationResult.failed(OperationKind.SWAP, ErrorKind.REVERTED, "reverted", tx_hash="0x1")
    assert not failed.success
    assert failed.error_kind is ErrorKind.REVERTED


def test_draw_amount_stays_in_range():
    amount_range = AmountRange(min=Decimal("0.01"), max=Decimal("0.05"))
    for _ in range(200):
        assert 10**16 <= draw_amount(amount_range, 18) <= 5 * 10**16


def test_draw_amount_fixed_range():
    amount_range = AmountRange(min=Decimal("0.0001"), max=Decimal("0.0001"))
    assert draw_amount(amount_range, 18) == 10**14


def test_error_kinds_match_submission_failures():
    assert {kind.value for kind in ErrorKind} == {"reverted", "timeout"}
