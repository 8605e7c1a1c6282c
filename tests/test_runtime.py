"""Tests for the optimizer runtime loop."""

from __future__ import annotations

import asyncio
import io
import logging
import time
from collections import deque
from pathlib import Path

import pytest
from conftest import make_config
from rich.console import Console

from yablo.cpufreq import CpufreqActuator, CpufreqSysfs
from yablo.engine import HysteresisCounter, Snapshot
from yablo.presentation import TerminalPresenter
from yablo.runtime import CycleResult, OptimizerRuntime, RunMode, run_optimizer
from yablo.telemetry import TelemetryError, TelemetryReader


class StubTelemetry(TelemetryReader):
    """Telemetry reader replaying a fixed sequence of snapshots."""

    def __init__(self, snapshots: deque[Snapshot]) -> None:
        self._snapshots = snapshots
        self.reads = 0

    def core_count(self) -> int:
        return 2

    def read(self) -> Snapshot:
        self.reads += 1
        try:
            return self._snapshots[0]
        finally:
            if len(self._snapshots) > 1:
                self._snapshots.popleft()


class FailingTelemetry(StubTelemetry):
    def __init__(self) -> None:
        super().__init__(deque())

    def read(self) -> Snapshot:
        raise TelemetryError("power_supply unreadable")


class SlowTelemetry(StubTelemetry):
    """Telemetry reader whose read blocks, like a real CPU sampling interval."""

    def __init__(self, snapshot: Snapshot, delay: float) -> None:
        super().__init__(deque([snapshot]))
        self._delay = delay

    def read(self) -> Snapshot:
        time.sleep(self._delay)
        return super().read()


def _snapshot(load: float, cpu: float, *, ac_power: bool = False) -> Snapshot:
    return Snapshot(
        load_average=load,
        cpu_user_percent=cpu,
        battery_capacity=80,
        ac_power=ac_power,
        core_count=2,
    )


def _presenter() -> tuple[TerminalPresenter, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, width=80, color_system=None, force_terminal=False)
    return TerminalPresenter(console=console), buffer


def _governor(base: Path) -> str:
    return (base / "cpu0" / "cpufreq" / "scaling_governor").read_text(encoding="utf-8")


def test_live_cycles_thread_counter_and_apply(cpu_sysfs: Path) -> None:
    sysfs = CpufreqSysfs(base_path=cpu_sysfs)
    turbo = sysfs.turbo_control()
    presenter, buffer = _presenter()
    telemetry = StubTelemetry(
        deque(
            [
                _snapshot(3.5, 10.0),
                _snapshot(3.5, 10.0),
                _snapshot(3.5, 10.0),
                _snapshot(0.5, 5.0),
            ]
        )
    )
    runtime = OptimizerRuntime(
        mode=RunMode.LIVE,
        telemetry=telemetry,
        cpufreq=sysfs,
        config=make_config(),
        actuator=CpufreqActuator(sysfs=sysfs, core_count=2, turbo=turbo),
        turbo=turbo,
        presenter=presenter,
    )

    first = runtime.run_cycle()
    assert first.decision is not None
    assert first.decision.turbo is False
    assert first.decision.turbo_delayed is True
    assert runtime.counter == HysteresisCounter(4)

    second = runtime.run_cycle()
    assert second.decision is not None
    assert second.decision.turbo is True
    assert runtime.counter == HysteresisCounter(8)
    assert (cpu_sysfs / "intel_pstate" / "no_turbo").read_text(encoding="utf-8") == "0"

    runtime.run_cycle()
    assert runtime.counter == HysteresisCounter(12)

    relaxed = runtime.run_cycle()
    assert relaxed.decision is not None
    assert relaxed.decision.turbo is False
    assert runtime.counter == HysteresisCounter(0)
    assert _governor(cpu_sysfs) == "powersave"
    assert "Apply optimizations" in buffer.getvalue()


def test_monitor_suggests_without_writing(cpu_sysfs: Path) -> None:
    sysfs = CpufreqSysfs(base_path=cpu_sysfs)
    presenter, buffer = _presenter()
    runtime = OptimizerRuntime(
        mode=RunMode.MONITOR,
        telemetry=StubTelemetry(deque([_snapshot(0.5, 50.0, ac_power=True)])),
        cpufreq=sysfs,
        config=make_config(),
        turbo=sysfs.turbo_control(),
        presenter=presenter,
    )

    result = runtime.run_cycle()

    assert result.decision is not None
    assert result.decision.governor == "performance"
    assert _governor(cpu_sysfs) == "powersave\n"
    output = buffer.getvalue()
    assert "Suggesting use of 'performance' governor" in output
    assert "Currently using 'powersave' governor" in output
    assert "Turbo is currently off" in output


def test_debug_mode_only_renders_system_state(cpu_sysfs: Path) -> None:
    presenter, buffer = _presenter()
    runtime = OptimizerRuntime(
        mode=RunMode.DEBUG,
        telemetry=StubTelemetry(deque([_snapshot(0.5, 5.0)])),
        cpufreq=CpufreqSysfs(base_path=cpu_sysfs),
        presenter=presenter,
    )

    result = runtime.run_cycle()

    assert result.decision is None
    assert runtime.latest() is result
    assert "System state" in buffer.getvalue()
    assert "optimizations" not in buffer.getvalue()


def test_modes_validate_collaborators(cpu_sysfs: Path) -> None:
    sysfs = CpufreqSysfs(base_path=cpu_sysfs)
    telemetry = StubTelemetry(deque([_snapshot(0.5, 5.0)]))

    with pytest.raises(ValueError, match="configuration"):
        OptimizerRuntime(mode=RunMode.MONITOR, telemetry=telemetry, cpufreq=sysfs)
    with pytest.raises(ValueError, match="actuator"):
        OptimizerRuntime(
            mode=RunMode.DAEMON,
            telemetry=telemetry,
            cpufreq=sysfs,
            config=make_config(),
        )


def test_run_mode_flags() -> None:
    assert RunMode.DAEMON.applies and not RunMode.DAEMON.interactive
    assert RunMode.LIVE.applies and RunMode.LIVE.interactive
    assert not RunMode.MONITOR.applies and RunMode.MONITOR.decides
    assert not RunMode.DEBUG.decides


@pytest.mark.asyncio
async def test_runtime_loop_start_stop(cpu_sysfs: Path) -> None:
    telemetry = StubTelemetry(deque([_snapshot(0.5, 5.0)]))
    runtime = OptimizerRuntime(
        mode=RunMode.MONITOR,
        telemetry=telemetry,
        cpufreq=CpufreqSysfs(base_path=cpu_sysfs),
        config=make_config(),
        poll_interval=0.01,
    )

    assert runtime.latest() is None

    await runtime.start()
    try:
        await asyncio.sleep(0.05)
    finally:
        await runtime.stop()

    assert isinstance(runtime.latest(), CycleResult)
    assert telemetry.reads >= 1


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(cpu_sysfs: Path) -> None:
    runtime = OptimizerRuntime(
        mode=RunMode.DEBUG,
        telemetry=StubTelemetry(deque([_snapshot(0.5, 5.0)])),
        cpufreq=CpufreqSysfs(base_path=cpu_sysfs),
    )
    await runtime.stop()
    assert runtime.latest() is None


@pytest.mark.asyncio
async def test_telemetry_failure_ends_run(cpu_sysfs: Path) -> None:
    runtime = OptimizerRuntime(
        mode=RunMode.DEBUG,
        telemetry=FailingTelemetry(),
        cpufreq=CpufreqSysfs(base_path=cpu_sysfs),
        poll_interval=0.01,
    )
    with pytest.raises(TelemetryError, match="power_supply"):
        await runtime.run()


@pytest.mark.asyncio
async def test_run_optimizer_propagates_failure_after_logging(
    cpu_sysfs: Path,
) -> None:
    runtime = OptimizerRuntime(
        mode=RunMode.DEBUG,
        telemetry=FailingTelemetry(),
        cpufreq=CpufreqSysfs(base_path=cpu_sysfs),
        poll_interval=0.01,
    )
    with pytest.raises(TelemetryError):
        await run_optimizer(runtime)


def _live_runtime(cpu_sysfs: Path, telemetry: TelemetryReader) -> OptimizerRuntime:
    sysfs = CpufreqSysfs(base_path=cpu_sysfs)
    turbo = sysfs.turbo_control()
    return OptimizerRuntime(
        mode=RunMode.LIVE,
        telemetry=telemetry,
        cpufreq=sysfs,
        config=make_config(),
        actuator=CpufreqActuator(sysfs=sysfs, core_count=2, turbo=turbo),
        turbo=turbo,
        poll_interval=0.01,
    )


@pytest.mark.asyncio
async def test_stop_waits_for_in_flight_cycle(cpu_sysfs: Path) -> None:
    telemetry = SlowTelemetry(_snapshot(0.5, 50.0, ac_power=True), delay=0.2)
    runtime = _live_runtime(cpu_sysfs, telemetry)

    await runtime.start()
    await asyncio.sleep(0.05)
    await runtime.stop()

    assert _governor(cpu_sysfs) == "performance"
    assert telemetry.reads == 1

    governor_file = cpu_sysfs / "cpu0" / "cpufreq" / "scaling_governor"
    governor_file.write_text("untouched", encoding="utf-8")
    await asyncio.sleep(0.3)
    assert _governor(cpu_sysfs) == "untouched"


@pytest.mark.asyncio
async def test_cancelled_run_completes_current_cycle(cpu_sysfs: Path) -> None:
    telemetry = SlowTelemetry(_snapshot(0.5, 50.0, ac_power=True), delay=0.2)
    runtime = _live_runtime(cpu_sysfs, telemetry)

    task = asyncio.create_task(runtime.run())
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert _governor(cpu_sysfs) == "performance"
    assert (cpu_sysfs / "intel_pstate" / "no_turbo").read_text(encoding="utf-8") == "0"

    governor_file = cpu_sysfs / "cpu0" / "cpufreq" / "scaling_governor"
    governor_file.write_text("untouched", encoding="utf-8")
    await asyncio.sleep(0.3)
    assert _governor(cpu_sysfs) == "untouched"


@pytest.mark.asyncio
async def test_run_optimizer_detaches_its_log_handler(cpu_sysfs: Path) -> None:
    package_logger = logging.getLogger("yablo")
    before = list(package_logger.handlers)

    for _ in range(2):
        runtime = OptimizerRuntime(
            mode=RunMode.DEBUG,
            telemetry=FailingTelemetry(),
            cpufreq=CpufreqSysfs(base_path=cpu_sysfs),
        )
        with pytest.raises(TelemetryError):
            await run_optimizer(runtime)

    assert package_logger.handlers == before
