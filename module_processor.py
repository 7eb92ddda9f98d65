import asyncio
import signal
from typing import Awaitable, Callable

from sonic_cycler.console import Console
from sonic_cycler.exceptions import ConfigurationError
from sonic_cycler.logger import AsyncLogger
from sonic_cycler.models import Account, Config, CyclePlan
from sonic_cycler.orchestrator import CycleSummary
from sonic_cycler.task_manager import SonicBot
from sonic_cycler.utils import get_address, random_sleep
from sonic_cycler.utils.cycle_reporter import CycleReporter
from sonic_cycler.utils.send_tg_message import SendTgMessage


logger = AsyncLogger()

ProcessFunc = Callable[..., Awaitable[CycleSummary]]


class ModuleProcessor:
    def __init__(
        self,
        config: Config,
        console: Console | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        self.config = config
        self.console = console or Console(config)
        self.stop_event = stop_event or asyncio.Event()
        self.semaphore = asyncio.Semaphore(config.threads)
        self.module_functions = self._load_module_functions()
        self.reporter = CycleReporter(explorer=config.explorer)

    @staticmethod
    def _load_module_functions() -> dict[str, ProcessFunc]:
        return {
            attr_name[8:]: getattr(SonicBot, attr_name)
            for attr_name in dir(SonicBot)
            if attr_name.startswith('process_')
        }

    async def process_account(
        self,
        account: Account,
        process_func: ProcessFunc,
        plan: CyclePlan,
    ) -> CycleSummary | None:
        address = get_address(account.keypair)

        async with self.semaphore:
            if self.stop_event.is_set():
                return None

            try:
                await self._apply_start_delay(address)
                await logger.logger_msg(
                    f"Starting {plan.iterations} cycle(s)", address=address
                )
                return await process_func(
                    account, self.config, plan, self.reporter, self.stop_event
                )

            except ConfigurationError:
                raise

            except Exception as e:
                error_msg = str(e)
                await logger.logger_msg(
                    f"Wallet stopped: {error_msg}",
                    address=address,
                    type_msg="error",
                    method_name="process_account"
                )
                self.reporter.add_wallet_error(address, error_msg)
                return None

    async def _apply_start_delay(self, address: str) -> None:
        delay = self.config.delay_before_start
        if delay.max > 0:
            await random_sleep(address, delay.min, delay.max, stop_event=self.stop_event)

    async def process_module(self, module_name: str, plan: CyclePlan) -> list[CycleSummary | None]:
        process_func = self.module_functions.get(module_name)
        if not process_func:
            raise ConfigurationError(f"Module {module_name} is not implemented!")

        self.reporter.clear()
        self.reporter.module_name = module_name

        results = await asyncio.gather(*[
            self.process_account(account, process_func, plan)
            for account in self.config.accounts
        ])
        await self._show_final_stats()
        return list(results)

    async def _show_final_stats(self) -> None:
        await self._log_final_stats()
        if self.config.send_stats_to_telegram and self.config.tg_token and self.config.tg_id:
            sender = SendTgMessage(self.config.tg_token, self.config.tg_id)
            await sender.send_tg_message(self.reporter.build_report())

    async def _log_final_stats(self) -> None:
        for line in self.reporter.build_report():
            await logger.logger_msg(line, type_msg="info")

        finished = "stopped on request" if self.stop_event.is_set() else "completed"
        await logger.logger_msg(f"🏁 All wallets {finished}", type_msg="success")

    async def execute(self) -> None:
        module_name = self.console.build()
        if module_name == "exit":
            await logger.logger_msg("🔴 Exit program...", type_msg="info")
            return

        plan = self.console.get_plan(module_name)
        self.console.show_plan(module_name, plan)
        await self.process_module(module_name, plan)


def install_stop_handler(stop_event: asyncio.Event) -> bool:
    """
    First Ctrl+C asks the wallets to stop after the current step,
    the second one cancels everything.
    """
    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()

    def handle_interrupt() -> None:
        if stop_event.is_set():
            if main_task is not None:
                main_task.cancel()
            return
        stop_event.set()
        print("\n🛑 Stop requested. Finishing the current step, press Ctrl+C again to abort.")

    try:
        loop.add_signal_handler(signal.SIGINT, handle_interrupt)
    except (NotImplementedError, RuntimeError):
        return False
    return True


async def main_loop(config: Config) -> None:
    await logger.logger_msg("✅ The program has been started", type_msg="info")

    stop_event = asyncio.Event()
    install_stop_handler(stop_event)

    try:
        await ModuleProcessor(config, stop_event=stop_event).execute()
    except asyncio.CancelledError:
        await logger.logger_msg(
            "🚨 Manual interruption!", type_msg="warning", method_name="main_loop"
        )

    await logger.logger_msg(
        "👋 Goodbye! The terminal is ready for commands.", type_msg="info"
    )
