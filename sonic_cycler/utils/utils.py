import asyncio
import random

from eth_account import Account

from sonic_cycler.logger import AsyncLogger
from sonic_cycler.models import AmountRange, DelayRange, scale_amount


def draw_amount(amount_range: AmountRange, decimals: int) -> int:
    """Uniform draw in base units from the closed interval of the range."""
    low = scale_amount(amount_range.min, decimals)
    high = scale_amount(amount_range.max, decimals)
    return random.randint(low, high)


def draw_delay(delay_range: DelayRange) -> float:
    return random.uniform(delay_range.min, delay_range.max)


def format_delay(delay: float) -> str:
    minutes, seconds = divmod(delay, 60)
    if minutes > 0:
        return f"{int(minutes)} minutes {seconds:.1f} seconds"
    return f"{seconds:.1f} seconds"


async def random_sleep(
    address: str | None = None,
    min_sec: float = 30,
    max_sec: float = 60,
    stop_event: asyncio.Event | None = None,
) -> float:
    """
    Sleep a random time in [min_sec, max_sec]. Wakes up early when
    ``stop_event`` is set. Returns the drawn delay.
    """
    logger = AsyncLogger()
    delay = random.uniform(min_sec, max_sec)
    if delay <= 0:
        return 0.0

    await logger.logger_msg(f"Sleep {format_delay(delay)}", type_msg="info", address=address)
    await interruptible_sleep(delay, stop_event)
    return delay


async def interruptible_sleep(delay: float, stop_event: asyncio.Event | None = None) -> None:
    if delay <= 0:
        return
    if stop_event is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass


_ACCOUNT = Account()
Account.enable_unaudited_hdwallet_features()


def get_address(keypair: str) -> str:
    normalized = ' '.join(word for word in keypair.split() if word)

    if len(normalized.split()) in (12, 24):
        return _ACCOUNT.from_mnemonic(normalized).address
    if not normalized.startswith('0x'):
        normalized = '0x' + normalized
    return _ACCOUNT.from_key(normalized).address
