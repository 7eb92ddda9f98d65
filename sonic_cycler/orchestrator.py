import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Protocol

from sonic_cycler.models import CyclePlan, OperationResult, RetryPolicy
from sonic_cycler.retry import RetryAttempt, with_retry
from sonic_cycler.tasks.base import CycleStep
from sonic_cycler.utils.utils import draw_delay, interruptible_sleep


class CycleInterrupted(Exception):
    """A stop was requested before the cycle's remaining steps ran."""


class CycleState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    WAITING_STEP = "waiting_step"
    WAITING_CYCLE = "waiting_cycle"
    DONE = "done"
    STOPPED = "stopped"


class EventType(str, Enum):
    CYCLE_STARTED = "cycle_started"
    STEP_RETRY = "step_retry"
    STEP_SUCCEEDED = "step_succeeded"
    STEP_FAILED = "step_failed"
    WAITING = "waiting"
    CYCLE_FINISHED = "cycle_finished"
    STOPPED = "stopped"
    RUN_FINISHED = "run_finished"


@dataclass(slots=True, frozen=True)
class CycleEvent:
    type: EventType
    address: str
    cycle: int
    total: int
    step: str | None = None
    result: OperationResult | None = None
    error: Exception | None = None
    delay: float | None = None
    attempt: int | None = None
    summary: "CycleSummary | None" = None


@dataclass(slots=True)
class CycleOutcome:
    cycle: int
    results: list[OperationResult] = field(default_factory=list)
    failed_step: str | None = None
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def interrupted(self) -> bool:
        return isinstance(self.error, CycleInterrupted)


@dataclass(slots=True)
class CycleSummary:
    address: str
    total: int
    outcomes: list[CycleOutcome] = field(default_factory=list)
    stopped: bool = False

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def interrupted(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.interrupted)

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded - self.interrupted


class CycleModule(Protocol):
    @property
    def wallet_address(self) -> str: ...

    def build_steps(self, plan: CyclePlan, cycle: int) -> list[CycleStep]: ...


class EventSink(Protocol):
    async def handle(self, event: CycleEvent) -> None: ...


class CycleOrchestrator:
    """
    Runs ``plan.iterations`` cycles of a module's steps for one wallet.

    A failed cycle is recorded and the next one still runs. A stop request
    is honoured between steps and between retry attempts; the attempt in
    flight always finishes. A cycle cut short by a stop is counted as
    interrupted, not failed.
    """

    def __init__(
        self,
        module: CycleModule,
        plan: CyclePlan,
        retry_policy: RetryPolicy,
        reporter: EventSink | None = None,
        stop_event: asyncio.Event | None = None,
        sleep: Callable[[float, asyncio.Event | None], Awaitable[None]] = interruptible_sleep,
    ) -> None:
        self.module = module
        self.plan = plan
        self.retry_policy = retry_policy
        self.reporter = reporter
        self.stop_event = stop_event
        self._sleep = sleep
        self.state = CycleState.IDLE
        self.history: list[CycleState] = [CycleState.IDLE]

    @property
    def address(self) -> str:
        return self.module.wallet_address

    @property
    def stop_requested(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    def _set_state(self, state: CycleState) -> None:
        self.state = state
        self.history.append(state)

    async def _emit(self, event_type: EventType, cycle: int, **kwargs) -> None:
        if self.reporter is None:
            return
        await self.reporter.handle(
            CycleEvent(event_type, self.address, cycle, self.plan.iterations, **kwargs)
        )

    async def _pause(self, state: CycleState, cycle: int, delay: float) -> None:
        self._set_state(state)
        if delay <= 0:
            return
        await self._emit(EventType.WAITING, cycle, delay=delay)
        await self._sleep(delay, self.stop_event)

    async def run(self) -> CycleSummary:
        summary = CycleSummary(address=self.address, total=self.plan.iterations)

        for cycle in range(1, self.plan.iterations + 1):
            if self.stop_requested:
                break

            outcome = await self.run_cycle(cycle)
            summary.outcomes.append(outcome)

            if cycle < self.plan.iterations and not self.stop_requested:
                await self._pause(CycleState.WAITING_CYCLE, cycle, draw_delay(self.plan.cycle_delay))

        if self.stop_requested and (summary.interrupted or summary.attempted < summary.total):
            summary.stopped = True
            self._set_state(CycleState.STOPPED)
            await self._emit(EventType.STOPPED, summary.attempted, summary=summary)
        else:
            self._set_state(CycleState.DONE)

        await self._emit(EventType.RUN_FINISHED, summary.attempted, summary=summary)
        return summary

    async def run_cycle(self, cycle: int) -> CycleOutcome:
        self._set_state(CycleState.RUNNING)
        await self._emit(EventType.CYCLE_STARTED, cycle)

        outcome = CycleOutcome(cycle=cycle)
        steps = self.module.build_steps(self.plan, cycle)

        for index, step in enumerate(steps):
            if self.stop_requested:
                outcome.failed_step = step.name
                outcome.error = CycleInterrupted(f"Stopped before '{step.name}'")
                break

            try:
                result = await self._run_step(step, cycle)
            except Exception as error:
                outcome.failed_step = step.name
                outcome.error = error
                await self._emit(EventType.STEP_FAILED, cycle, step=step.name, error=error)
                break

            outcome.results.append(result)
            await self._emit(EventType.STEP_SUCCEEDED, cycle, step=step.name, result=result)

            is_last = index == len(steps) - 1
            if step.pause_after and not is_last and not self.stop_requested:
                await self._pause(CycleState.WAITING_STEP, cycle, draw_delay(self.plan.step_delay))
                self._set_state(CycleState.RUNNING)

        await self._emit(EventType.CYCLE_FINISHED, cycle, error=outcome.error, step=outcome.failed_step)
        return outcome

    async def _run_step(self, step: CycleStep, cycle: int) -> OperationResult:
        retries_stopped = False

        async def on_retry(event: RetryAttempt) -> None:
            await self._emit(
                EventType.STEP_RETRY, cycle, step=step.name,
                error=event.error, delay=event.delay, attempt=event.attempt
            )

        async def backoff(delay: float) -> None:
            await self._sleep(delay, self.stop_event)

        def should_continue() -> bool:
            nonlocal retries_stopped
            retries_stopped = self.stop_requested
            return not retries_stopped

        try:
            return await with_retry(
                step.operation,
                self.retry_policy,
                fatal=step.fatal,
                on_retry=on_retry if self.reporter is not None else None,
                sleep=backoff,
                should_continue=should_continue,
            )
        except Exception as error:
            if retries_stopped:
                raise CycleInterrupted(f"Stopped while retrying '{step.name}': {error}") from error
            raise
