from collections import defaultdict
from dataclasses import dataclass, field

from sonic_cycler.logger import AsyncLogger
from sonic_cycler.orchestrator import CycleEvent, CycleInterrupted, CycleSummary, EventType
from sonic_cycler.utils.logger_trx import describe_failure, show_trx_log
from sonic_cycler.utils.utils import format_delay


@dataclass
class WalletReport:
    address: str
    summary: CycleSummary | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.summary is not None and self.error is None


@dataclass
class CycleReporter:
    """Renders orchestrator events to the log and collects wallet summaries."""
    explorer: str = ""
    module_name: str = ""
    logger: AsyncLogger = field(default_factory=AsyncLogger)
    wallets: dict[str, WalletReport] = field(default_factory=dict)

    async def handle(self, event: CycleEvent) -> None:
        address = event.address
        prefix = f"[Cycle {event.cycle}/{event.total}]"

        match event.type:
            case EventType.CYCLE_STARTED:
                await self.logger.logger_msg(
                    f"=== Starting cycle {event.cycle}/{event.total} ===", address=address
                )
            case EventType.STEP_RETRY:
                await self.logger.logger_msg(
                    f"{prefix} {event.step}: attempt {event.attempt} failed "
                    f"({describe_failure(event.error, self.explorer)}). "
                    f"Retrying in {event.delay:.1f}s",
                    type_msg="warning", address=address
                )
            case EventType.STEP_SUCCEEDED:
                await show_trx_log(address, f"{prefix} {event.step}", self.explorer, event.result)
            case EventType.STEP_FAILED:
                await show_trx_log(address, f"{prefix} {event.step}", self.explorer, event.error)
            case EventType.WAITING:
                await self.logger.logger_msg(
                    f"{prefix} Waiting {format_delay(event.delay)}", address=address
                )
            case EventType.CYCLE_FINISHED:
                if event.error is None:
                    await self.logger.logger_msg(
                        f"=== Cycle {event.cycle}/{event.total} completed ===",
                        type_msg="success", address=address
                    )
                elif isinstance(event.error, CycleInterrupted):
                    await self.logger.logger_msg(
                        f"=== Cycle {event.cycle}/{event.total} interrupted at '{event.step}' ===",
                        type_msg="warning", address=address
                    )
                else:
                    await self.logger.logger_msg(
                        f"=== Cycle {event.cycle}/{event.total} FAILED at '{event.step}' ===",
                        type_msg="error", address=address
                    )
            case EventType.STOPPED:
                await self.logger.logger_msg(
                    f"Stop requested, {event.summary.attempted}/{event.total} cycles attempted",
                    type_msg="warning", address=address
                )
            case EventType.RUN_FINISHED:
                summary = event.summary
                self.add_summary(summary)
                interrupted = f", {summary.interrupted} interrupted" if summary.interrupted else ""
                await self.logger.logger_msg(
                    f"All cycles finished: {summary.succeeded} succeeded, "
                    f"{summary.failed} failed{interrupted} out of {summary.total}",
                    type_msg="success" if summary.failed == 0 else "warning",
                    address=address
                )

    def add_summary(self, summary: CycleSummary) -> None:
        self.wallets[summary.address] = WalletReport(address=summary.address, summary=summary)

    def add_wallet_error(self, address: str, error: str) -> None:
        self.wallets[address] = WalletReport(address=address, error=error)

    def clear(self) -> None:
        self.wallets.clear()

    @property
    def cycles_total(self) -> int:
        return sum(r.summary.total for r in self.wallets.values() if r.summary)

    @property
    def cycles_succeeded(self) -> int:
        return sum(r.summary.succeeded for r in self.wallets.values() if r.summary)

    @property
    def cycles_failed(self) -> int:
        return sum(r.summary.failed for r in self.wallets.values() if r.summary)

    @property
    def cycles_interrupted(self) -> int:
        return sum(r.summary.interrupted for r in self.wallets.values() if r.summary)

    def build_report(self) -> list[str]:
        total = self.cycles_total
        succeeded = self.cycles_succeeded
        success_percent = round(succeeded / total * 100, 2) if total else 0
        wallets_ok = sum(1 for r in self.wallets.values() if r.success)

        messages = [
            f"{'=' * 40}",
            f"📊 REPORT: {self.module_name.upper()} 📊",
            f"{'=' * 40}",
            f"👛 Wallets: {wallets_ok}/{len(self.wallets)} finished",
            f"✅ Cycles succeeded: {succeeded}/{total} ({success_percent}%)",
            f"❌ Cycles failed: {self.cycles_failed}/{total}",
        ]
        if self.cycles_interrupted:
            messages.append(f"⏹ Cycles interrupted: {self.cycles_interrupted}/{total}")

        errors: dict[str, int] = defaultdict(int)
        for report in self.wallets.values():
            if report.error:
                errors[report.error] += 1
            if report.summary:
                for outcome in report.summary.outcomes:
                    if outcome.error is not None and not outcome.interrupted:
                        errors[f"{outcome.failed_step}: {outcome.error}"] += 1

        if errors:
            messages.append(f"✖️ Errors ({len(errors)} types):")
            for error_msg, count in sorted(errors.items(), key=lambda x: x[1], reverse=True):
                messages.append(f"   • {error_msg} ({count}x)")

        messages.append(f"{'=' * 40}")
        return messages
