import asyncio
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from conftest import run
from sonic_cycler.models import RetryPolicy
from sonic_cycler.retry import RetryAttempt, with_retry


FIXED = RetryPolicy(max_attempts=3, base_delay=0.5, backoff="fixed")


def test_returns_first_success_without_sleeping():
    operation = AsyncMock(return_value="ok")
    sleep = AsyncMock()

    assert run(with_retry(operation, FIXED, on_retry=AsyncMock(), sleep=sleep)) == "ok"
    assert operation.await_count == 1
    sleep.assert_not_awaited()


def test_retries_until_success():
    operation = AsyncMock(side_effect=[ValueError("a"), ValueError("b"), "ok"])
    sleep = AsyncMock()

    assert run(with_retry(operation, FIXED, on_retry=AsyncMock(), sleep=sleep)) == "ok"
    assert operation.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [0.5, 0.5]


def test_reraises_last_error_after_max_attempts():
    errors = [ValueError("first"), ValueError("second"), ValueError("third")]
    operation = AsyncMock(side_effect=errors)
    sleep = AsyncMock()

    with pytest.raises(ValueError, match="third"):
        run(with_retry(operation, FIXED, on_retry=AsyncMock(), sleep=sleep))

    assert operation.await_count == 3
    assert sleep.await_count == 2


def test_single_attempt_policy_never_sleeps():
    operation = AsyncMock(side_effect=RuntimeError("boom"))
    sleep = AsyncMock()
    policy = RetryPolicy(max_attempts=1, base_delay=5)

    with pytest.raises(RuntimeError):
        run(with_retry(operation, policy, on_retry=AsyncMock(), sleep=sleep))

    assert operation.await_count == 1
    sleep.assert_not_awaited()


def test_fatal_errors_are_not_retried():
    operation = AsyncMock(side_effect=KeyError("stop"))
    sleep = AsyncMock()

    with pytest.raises(KeyError):
        run(with_retry(operation, FIXED, fatal=(KeyError,), on_retry=AsyncMock(), sleep=sleep))

    assert operation.await_count == 1
    sleep.assert_not_awaited()


def test_exponential_backoff_delays():
    policy = RetryPolicy(max_attempts=4, base_delay=1, backoff="exponential")
    operation = AsyncMock(side_effect=[OSError(), OSError(), OSError(), "done"])
    sleep = AsyncMock()

    assert run(with_retry(operation, policy, on_retry=AsyncMock(), sleep=sleep)) == "done"
    assert [c.args[0] for c in sleep.await_args_list] == [2.0, 4.0, 8.0]


def test_on_retry_receives_attempt_details():
    error = ValueError("flaky")
    operation = AsyncMock(side_effect=[error, "ok"])
    on_retry = AsyncMock()

    run(with_retry(operation, FIXED, on_retry=on_retry, sleep=AsyncMock()))

    on_retry.assert_awaited_once_with(RetryAttempt(1, 3, 0.5, error))


def test_cancellation_is_not_retried():
    operation = AsyncMock(side_effect=asyncio.CancelledError())
    sleep = AsyncMock()

    async def scenario():
        try:
            await with_retry(operation, FIXED, on_retry=AsyncMock(), sleep=sleep)
        except asyncio.CancelledError:
            return "cancelled"

    assert run(scenario()) == "cancelled"
    assert operation.await_count == 1
    sleep.assert_not_awaited()


def test_policy_rejects_zero_attempts():
    with pytest.raises(ValidationError):
        RetryPolicy(max_attempts=0)


def test_fixed_policy_delay_is_constant():
    assert FIXED.delay_for(1) == FIXED.delay_for(7) == 0.5


def test_no_retry_once_told_to_stop():
    operation = AsyncMock(side_effect=RuntimeError("rpc error"))
    sleep = AsyncMock()
    on_retry = AsyncMock()

    with pytest.raises(RuntimeError, match="rpc error"):
        run(with_retry(operation, FIXED, on_retry=on_retry, sleep=sleep, should_continue=lambda: False))

    assert operation.await_count == 1
    on_retry.assert_not_awaited()
    sleep.assert_not_awaited()


def test_stop_during_backoff_skips_next_attempt():
    operation = AsyncMock(side_effect=RuntimeError("rpc error"))
    sleep = AsyncMock()
    answers = iter([True, False])

    with pytest.raises(RuntimeError):
        run(with_retry(
            operation, FIXED, on_retry=AsyncMock(), sleep=sleep,
            should_continue=lambda: next(answers)
        ))

    assert operation.await_count == 1
    assert sleep.await_count == 1
