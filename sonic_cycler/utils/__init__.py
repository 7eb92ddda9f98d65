from .utils import (
    draw_amount,
    draw_delay,
    format_delay,
    get_address,
    interruptible_sleep,
    random_sleep,
)
from .logger_trx import describe_failure, explorer_link, show_trx_log
from .load_config import ConfigLoader, split_env_list
