import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from sonic_cycler.logger import AsyncLogger
from sonic_cycler.models import RetryPolicy


logger = AsyncLogger()

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class RetryAttempt:
    attempt: int
    max_attempts: int
    delay: float
    error: Exception


async def _log_retry(event: RetryAttempt) -> None:
    await logger.logger_msg(
        msg=(
            f"Attempt {event.attempt}/{event.max_attempts} failed: {event.error}. "
            f"Retrying in {event.delay:.1f}s"
        ),
        type_msg="warning", method_name="with_retry"
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    fatal: tuple[type[Exception], ...] = (),
    on_retry: Callable[[RetryAttempt], Awaitable[None]] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    should_continue: Callable[[], bool] | None = None,
) -> T:
    """
    Run ``operation`` until it succeeds or ``policy.max_attempts`` is used up.

    The last exception is re-raised as is. Exceptions listed in ``fatal``
    are re-raised on the spot without another attempt. When
    ``should_continue`` returns False after a failure, before or after the
    backoff pause, the last exception is re-raised instead of retrying.
    """
    notify = on_retry or _log_retry
    keep_going = should_continue or (lambda: True)
    attempt = 0

    while True:
        try:
            return await operation()
        except fatal:
            raise
        except Exception as error:
            attempt += 1
            if attempt >= policy.max_attempts or not keep_going():
                raise

            delay = policy.delay_for(attempt)
            await notify(RetryAttempt(attempt, policy.max_attempts, delay, error))
            await sleep(delay)
            if not keep_going():
                raise
