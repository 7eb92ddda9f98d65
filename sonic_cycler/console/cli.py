from decimal import Decimal, InvalidOperation

import inquirer
from art import text2art
from colorama import Fore
from inquirer.themes import GreenPassion
from pydantic import ValidationError
from rich import box
from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sonic_cycler.exceptions import ConfigurationError
from sonic_cycler.models import AmountRange, Config, CyclePlan, DelayRange


def _split_range(raw: str) -> tuple[str, str]:
    parts = [part.strip() for part in raw.split('-')]
    if len(parts) == 1:
        return parts[0], parts[0]
    if len(parts) == 2 and all(parts):
        return parts[0], parts[1]
    raise ConfigurationError(f"Expected a value or MIN-MAX, got {raw!r}")


def parse_int(raw: str | None, default: int, name: str, minimum: int = 1, maximum: int | None = None) -> int:
    raw = (raw or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name}: {raw!r} is not a whole number") from e
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f"{minimum}-{maximum}" if maximum is not None else f">= {minimum}"
        raise ConfigurationError(f"{name}: {value} is out of range ({bounds})")
    return value


def parse_delay_range(raw: str | None, default: DelayRange, name: str) -> DelayRange:
    raw = (raw or "").strip()
    if not raw:
        return default
    low, high = _split_range(raw)
    try:
        return DelayRange(min=float(low), max=float(high))
    except (ValueError, ValidationError) as e:
        raise ConfigurationError(f"{name}: invalid delay {raw!r}") from e


def parse_amount_range(raw: str | None, default: AmountRange, name: str) -> AmountRange:
    raw = (raw or "").strip()
    if not raw:
        return default
    low, high = _split_range(raw)
    try:
        return AmountRange(min=Decimal(low), max=Decimal(high))
    except (InvalidOperation, ValidationError) as e:
        raise ConfigurationError(f"{name}: invalid amount {raw!r}") from e


def build_plan(module: str, config: Config, answers: dict[str, str]) -> CyclePlan:
    """Turn raw prompt answers into a plan, blanks falling back to settings."""
    settings = config.lending if module == "stake" else config.swap
    hops = getattr(settings, "hops", 1)

    return CyclePlan(
        iterations=parse_int(answers.get("iterations"), settings.iterations, "Iterations"),
        step_delay=settings.step_delay,
        cycle_delay=parse_delay_range(answers.get("cycle_delay"), settings.cycle_delay, "Interval"),
        amount=parse_amount_range(answers.get("amount"), settings.amount, "Amount"),
        hops=parse_int(answers.get("hops"), hops, "Hops", maximum=3) if module == "swap" else 1,
    )


class Console:
    __slots__ = ("rich_console", "config")

    MODULES_DATA = (
        ("🏦 Stake cycle (supply / withdraw wS)", "stake"),
        ("🔄 Swap cycle (wS batch swap)", "swap"),
        ("🚪 Exit", "exit"),
    )

    def __init__(self, config: Config):
        self.rich_console = RichConsole()
        self.config = config

    def show_dev_info(self):
        print("\033c", end="")

        styled_title = Text(text2art("Sonic Cycler", font="doom"), style="cyan")
        panel = Panel(
            styled_title,
            border_style="yellow",
            expand=False,
            title="[bold green]Welcome[/bold green]",
        )
        self.rich_console.print(panel)
        print()

    @staticmethod
    def prompt(data):
        answers = inquirer.prompt(data, theme=GreenPassion())
        if answers is None:
            raise KeyboardInterrupt
        return answers

    def get_module(self) -> str:
        answers = self.prompt([
            inquirer.List(
                "module",
                message=Fore.LIGHTBLACK_EX + "Select the module",
                choices=[label for label, _ in self.MODULES_DATA],
            ),
        ])
        return dict(self.MODULES_DATA)[answers["module"]]

    def get_plan(self, module: str) -> CyclePlan:
        settings = self.config.lending if module == "stake" else self.config.swap
        questions = [
            inquirer.Text(
                "iterations",
                message=f"Iterations per wallet? [default: {settings.iterations}]"
            ),
            inquirer.Text(
                "cycle_delay",
                message=(
                    "Seconds between cycles, N or MIN-MAX? "
                    f"[default: {settings.cycle_delay}]"
                )
            ),
            inquirer.Text(
                "amount",
                message=f"wS amount per cycle, X or MIN-MAX? [default: {settings.amount}]"
            ),
        ]
        if module == "swap":
            questions.append(
                inquirer.Text("hops", message=f"Number of swaps (1-3)? [default: {self.config.swap.hops}]")
            )
        return build_plan(module, self.config, self.prompt(questions))

    def display_info(self):
        table = Table(title="System Configuration", box=box.ROUNDED)
        table.add_column("Parameter", style="cyan")
        table.add_column("Value", style="magenta")

        table.add_row("Accounts", str(len(self.config.accounts)))
        table.add_row("Threads", str(self.config.threads))
        table.add_row("RPC", self.config.rpc)
        table.add_row(
            "Retry",
            f"{self.config.retry.max_attempts} attempts, {self.config.retry.backoff} "
            f"from {self.config.retry.base_delay:g}s",
        )

        self.rich_console.print(
            Panel(
                table,
                expand=False,
                border_style="green",
                title="[bold yellow]System Information[/bold yellow]",
                subtitle="[italic]Use arrow keys to navigate[/italic]",
            )
        )

    def show_plan(self, module: str, plan: CyclePlan):
        table = Table(title=f"Plan: {module}", box=box.ROUNDED)
        table.add_column("Parameter", style="cyan")
        table.add_column("Value", style="magenta")
        table.add_row("Iterations", str(plan.iterations))
        table.add_row("Amount (wS)", str(plan.amount))
        table.add_row("Between steps", f"{plan.step_delay} sec")
        table.add_row("Between cycles", f"{plan.cycle_delay} sec")
        if module == "swap":
            table.add_row("Hops", str(plan.hops))
            table.add_row("Slippage", f"{self.config.swap.slippage * 100:g}%")
        self.rich_console.print(table)

    def build(self) -> str:
        self.show_dev_info()
        self.display_info()
        return self.get_module()
