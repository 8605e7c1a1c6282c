"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import inspect
import os
import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure src/ is on sys.path for tests so the src layout is used during test runs
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from yablo.config_loader.models import AcProfile, BatteryProfile, YabloConfig  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring an event loop")


def pytest_pyfunc_call(pyfuncitem: Any) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    if inspect.iscoroutinefunction(pyfuncitem.obj):
        call_kwargs = {
            name: pyfuncitem.funcargs[name]
            for name in pyfuncitem._fixtureinfo.argnames  # type: ignore[attr-defined]
        }

        event_loop = asyncio.new_event_loop()
        try:
            event_loop.run_until_complete(pyfuncitem.obj(**call_kwargs))
        finally:
            event_loop.close()
        return True
    return None


def make_config(
    *,
    ac_governor: str = "performance",
    ac_second_stage: str = "performance",
    ac_turbo: bool = True,
    ac_turbo_delay: int = 0,
    ac_loadavg: float = 2.0,
    ac_loadperc: float = 20.0,
    bat_governor: str = "powersave",
    bat_second_stage: str = "powersave",
    bat_turbo: bool = True,
    bat_turbo_delay: int = 8,
    bat_loadavg: float = 3.0,
    bat_loadperc: float = 30.0,
    battery_threshold: int = 20,
    low_battery_governor: str = "conservative",
) -> YabloConfig:
    """Build a configuration with readable defaults for engine tests."""

    return YabloConfig(
        plugged_in=AcProfile(
            governor=ac_governor,
            turbo=ac_turbo,
            second_stage_governor=ac_second_stage,
            turbo_delay=ac_turbo_delay,
            loadperc_threshold=ac_loadperc,
            loadavg_threshold=ac_loadavg,
        ),
        on_battery=BatteryProfile(
            governor=bat_governor,
            turbo=bat_turbo,
            second_stage_governor=bat_second_stage,
            turbo_delay=bat_turbo_delay,
            loadperc_threshold=bat_loadperc,
            loadavg_threshold=bat_loadavg,
            battery_threshold=battery_threshold,
            low_battery_governor=low_battery_governor,
        ),
    )


@pytest.fixture
def cpu_sysfs(tmp_path: Path) -> Path:
    """Create a two-core cpufreq tree with ``intel_pstate`` turbo control."""

    base = tmp_path / "sys" / "devices" / "system" / "cpu"
    for cpu, khz in enumerate((1_800_000, 2_400_000)):
        policy = base / f"cpu{cpu}" / "cpufreq"
        policy.mkdir(parents=True)
        (policy / "scaling_governor").write_text("powersave\n", encoding="utf-8")
        (policy / "scaling_cur_freq").write_text(f"{khz}\n", encoding="utf-8")
        (policy / "scaling_available_governors").write_text(
            "performance powersave conservative\n", encoding="utf-8"
        )
    pstate = base / "intel_pstate"
    pstate.mkdir()
    (pstate / "no_turbo").write_text("1\n", encoding="utf-8")
    return base


@pytest.fixture
def battery_sysfs(tmp_path: Path) -> Path:
    """Create a ``power_supply`` tree with a single discharging battery."""

    base = tmp_path / "sys" / "class" / "power_supply"
    battery = base / "BAT0"
    battery.mkdir(parents=True)
    (battery / "capacity").write_text("57\n", encoding="utf-8")
    (battery / "status").write_text("Discharging\n", encoding="utf-8")
    return base
