from .cli import Console, build_plan, parse_amount_range, parse_delay_range, parse_int
