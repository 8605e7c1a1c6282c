"""Value types consumed and produced by the decision engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from yablo.config_loader.models import PowerSource


class LoadState(Enum):
    """Classification of the system load for a single cycle."""

    OPTIMAL = "optimal"
    HIGH_SYSTEM_LOAD = "high_system_load"
    HIGH_CPU_USAGE = "high_cpu_usage"

    @property
    def is_high(self) -> bool:
        return self is not LoadState.OPTIMAL


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Point-in-time read of the system state, produced once per cycle.

    Attributes:
        load_average: One-minute load average.
        cpu_user_percent: Share of CPU time spent in user space (0-100).
        battery_capacity: Mean capacity of present batteries in percent, or
            ``None`` when the machine has no battery.
        ac_power: Whether the machine runs on AC power.
        core_count: Number of logical CPUs.
        temperature_c: CPU temperature for display, when a sensor exists.
        memory_total_bytes: Installed memory for display.
        memory_used_bytes: Memory in use for display.
        core_frequencies_mhz: Current frequency per core for display.
    """

    load_average: float
    cpu_user_percent: float
    battery_capacity: int | None
    ac_power: bool
    core_count: int
    temperature_c: float | None = None
    memory_total_bytes: int = 0
    memory_used_bytes: int = 0
    core_frequencies_mhz: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if self.core_count <= 0:
            raise ValueError(f"core_count must be positive, got {self.core_count}")
        if not self.load_average >= 0.0:
            raise ValueError(f"load_average must be non-negative, got {self.load_average}")
        if not 0.0 <= self.cpu_user_percent <= 100.0:
            msg = f"cpu_user_percent must be within [0, 100], got {self.cpu_user_percent}"
            raise ValueError(msg)
        if self.battery_capacity is not None and not 0 <= self.battery_capacity <= 100:
            msg = f"battery_capacity must be within [0, 100], got {self.battery_capacity}"
            raise ValueError(msg)

    @property
    def power_source(self) -> PowerSource:
        return PowerSource.AC if self.ac_power else PowerSource.BATTERY


@dataclass(slots=True, frozen=True)
class Decision:
    """Governor and turbo targets for one cycle, tagged for display.

    Attributes:
        power_source: Power source whose profile produced the decision.
        load_state: Load classification that drove the decision.
        governor: Governor to activate on every core.
        turbo: Whether turbo boost should be enabled.
        low_battery: ``True`` when the low-battery governor overrode the
            second stage governor.
        turbo_delayed: ``True`` when turbo is enabled in the profile and load
            is high, but the hysteresis delay has not elapsed yet.
        counter_ticks: Hysteresis counter value after the decision.
    """

    power_source: PowerSource
    load_state: LoadState
    governor: str
    turbo: bool
    low_battery: bool = False
    turbo_delayed: bool = False
    counter_ticks: int = 0
