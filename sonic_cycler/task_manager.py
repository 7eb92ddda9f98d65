import asyncio

from sonic_cycler.models import Account, Config, CyclePlan
from sonic_cycler.orchestrator import CycleOrchestrator, CycleSummary, EventSink
from sonic_cycler.tasks import BaseCycleModule, LendingCycleModule, SwapCycleModule


async def run_cycles(
    module_cls: type[BaseCycleModule],
    account: Account,
    config: Config,
    plan: CyclePlan,
    reporter: EventSink | None = None,
    stop_event: asyncio.Event | None = None,
) -> CycleSummary:
    async with module_cls(account, config) as module:
        await module.prepare(plan)
        orchestrator = CycleOrchestrator(module, plan, config.retry, reporter, stop_event)
        return await orchestrator.run()


class SonicBot:
    @staticmethod
    async def process_stake(
        account: Account,
        config: Config,
        plan: CyclePlan,
        reporter: EventSink | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> CycleSummary:
        return await run_cycles(LendingCycleModule, account, config, plan, reporter, stop_event)

    @staticmethod
    async def process_swap(
        account: Account,
        config: Config,
        plan: CyclePlan,
        reporter: EventSink | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> CycleSummary:
        return await run_cycles(SwapCycleModule, account, config, plan, reporter, stop_event)
