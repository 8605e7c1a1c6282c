"""Async loop driver reading telemetry, deciding and applying power state."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, field
from enum import Enum

from yablo.config_loader.models import YabloConfig
from yablo.cpufreq.actuator import CpufreqActuator
from yablo.cpufreq.sysfs import CpufreqSysfs, TurboControl
from yablo.engine.decision import evaluate
from yablo.engine.hysteresis import HysteresisCounter
from yablo.engine.models import Decision, Snapshot
from yablo.logging_pipeline import configure_structured_logging, shutdown_listeners
from yablo.presentation import TerminalPresenter
from yablo.telemetry.reader import TelemetryReader

LOGGER = logging.getLogger("yablo.runtime")


class RunMode(Enum):
    """Operating mode of the optimizer loop."""

    DAEMON = "daemon"
    LIVE = "live"
    MONITOR = "monitor"
    DEBUG = "debug"

    @property
    def applies(self) -> bool:
        """Whether decisions are written to the hardware."""

        return self in (RunMode.DAEMON, RunMode.LIVE)

    @property
    def decides(self) -> bool:
        """Whether the decision engine runs at all."""

        return self is not RunMode.DEBUG

    @property
    def interactive(self) -> bool:
        """Whether output targets an interactive terminal."""

        return self is not RunMode.DAEMON


@dataclass(slots=True, frozen=True)
class CycleResult:
    """Outcome of one optimizer cycle."""

    timestamp: float
    snapshot: Snapshot
    decision: Decision | None
    counter: HysteresisCounter


@dataclass(slots=True)
class OptimizerRuntime:
    """Drive the read, evaluate, apply and render cycle at a fixed cadence.

    The runtime owns the hysteresis counter for the session. It starts at
    zero and is replaced by the counter :func:`evaluate` returns each cycle.
    Collaborator failures propagate out of :meth:`run` and end the session.
    """

    mode: RunMode
    telemetry: TelemetryReader
    cpufreq: CpufreqSysfs
    config: YabloConfig | None = None
    actuator: CpufreqActuator | None = None
    turbo: TurboControl | None = None
    presenter: TerminalPresenter | None = None
    poll_interval: float = 3.0
    logger: logging.Logger = field(default=LOGGER)
    _counter: HysteresisCounter = field(init=False, default_factory=HysteresisCounter)
    _stop_requested: asyncio.Event | None = field(init=False, default=None)
    _task: asyncio.Task[None] | None = field(init=False, default=None)
    _latest: CycleResult | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        if self.mode.decides and self.config is None:
            raise ValueError(f"{self.mode.value} mode requires a configuration")
        if self.mode.applies and self.actuator is None:
            raise ValueError(f"{self.mode.value} mode requires an actuator")

    @property
    def counter(self) -> HysteresisCounter:
        """Return the hysteresis counter carried into the next cycle."""

        return self._counter

    def latest(self) -> CycleResult | None:
        """Return the most recent cycle result, or ``None`` before the first."""

        return self._latest

    def run_cycle(self) -> CycleResult:
        """Perform one synchronous cycle.

        Returns:
            The snapshot, decision and counter produced by the cycle.

        Raises:
            TelemetryError: If telemetry cannot be read.
            CpufreqError: If applying or querying cpufreq state fails.
        """

        snapshot = self.telemetry.read()
        if self.presenter is not None:
            self.presenter.render_system(snapshot, turbo_available=self.turbo is not None)

        decision: Decision | None = None
        if self.config is not None and self.mode.decides:
            decision, self._counter = evaluate(self.config, snapshot, self._counter)
            self.logger.debug(
                "Cycle evaluated",
                extra={
                    "mode": self.mode.value,
                    "governor": decision.governor,
                    "turbo": decision.turbo,
                    "load_state": decision.load_state.value,
                    "low_battery": decision.low_battery,
                    "counter_ticks": decision.counter_ticks,
                    "load_average": snapshot.load_average,
                    "cpu_user_percent": snapshot.cpu_user_percent,
                },
            )
            if self.mode.applies:
                self._apply(decision)
            else:
                self._suggest(decision)

        result = CycleResult(
            timestamp=time.time(),
            snapshot=snapshot,
            decision=decision,
            counter=self._counter,
        )
        self._latest = result
        return result

    def _apply(self, decision: Decision) -> None:
        if self.actuator is not None:
            self.actuator.apply(decision)
        if self.presenter is not None:
            self.presenter.render_applied(decision)

    def _suggest(self, decision: Decision) -> None:
        if self.presenter is None:
            return
        current_turbo = None
        if self.turbo is not None:
            current_turbo = self.cpufreq.read_turbo(self.turbo)
        self.presenter.render_suggestion(
            decision,
            current_governor=self.cpufreq.current_governor(),
            current_turbo=current_turbo,
        )

    async def run(self) -> None:
        """Run cycles until a stop is requested or a cycle fails.

        The stop request is checked between cycles. A cycle in progress
        always completes, even when the task running this loop is cancelled.
        """

        stop_requested = self._stop_requested or asyncio.Event()
        self._stop_requested = stop_requested
        loop = asyncio.get_running_loop()
        try:
            while not stop_requested.is_set():
                start = loop.time()
                await self._complete_cycle()
                remaining = max(self.poll_interval - (loop.time() - start), 0.0)
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(stop_requested.wait(), timeout=remaining)
        finally:
            self._stop_requested = None

    async def _complete_cycle(self) -> None:
        cycle = asyncio.ensure_future(asyncio.to_thread(self.run_cycle))
        try:
            await asyncio.shield(cycle)
        except asyncio.CancelledError:
            # The worker thread cannot be interrupted; let it finish writing.
            await asyncio.wait({cycle})
            if cycle.exception() is not None:
                self.logger.warning(
                    "Cycle failed during shutdown", exc_info=cycle.exception()
                )
            raise

    def request_stop(self) -> None:
        """Ask the loop to exit once the current cycle has completed."""

        if self._stop_requested is not None:
            self._stop_requested.set()

    async def start(self) -> None:
        """Start the cycle loop in a background task if not already running."""

        if self._task is not None and not self._task.done():
            return
        self._stop_requested = asyncio.Event()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self.run(), name="yablo-optimizer")

    async def stop(self) -> None:
        """Request shutdown and wait for the loop task to finish.

        Returns only after the in-flight cycle, including its sysfs writes,
        has completed.

        Raises:
            Exception: Whatever error ended the loop task, if it failed.
        """

        self.request_stop()
        if self._task is None:
            return
        task, self._task = self._task, None
        await task


async def run_optimizer(
    runtime: OptimizerRuntime,
    *,
    log_level: int = logging.INFO,
) -> None:
    """Wire structured logging around ``runtime`` and run it until cancelled.

    Interactive modes log at ``WARNING`` or above so JSON records do not
    interleave with the rendered screen.

    Raises:
        TelemetryError: Propagated when telemetry cannot be read.
        CpufreqError: Propagated when cpufreq state cannot be applied.
    """

    level = max(log_level, logging.WARNING) if runtime.mode.interactive else log_level
    package_logger = logging.getLogger("yablo")
    existing = list(package_logger.handlers)
    listener = configure_structured_logging(package_logger, level=level)
    added = [handler for handler in package_logger.handlers if handler not in existing]
    runtime.logger.info(
        "Optimizer started",
        extra={"mode": runtime.mode.value, "poll_interval": runtime.poll_interval},
    )
    try:
        await runtime.run()
    finally:
        runtime.logger.info("Optimizer stopped", extra={"mode": runtime.mode.value})
        shutdown_listeners([listener])
        for handler in added:
            package_logger.removeHandler(handler)


__all__ = [
    "CycleResult",
    "OptimizerRuntime",
    "RunMode",
    "run_optimizer",
]
