"""Typed configuration dataclasses for :mod:`yablo.config_loader`."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ConfigError(RuntimeError):
    """Raised when the configuration cannot be loaded or is unusable."""


class PowerSource(Enum):
    """Power source the machine is currently drawing from."""

    AC = "ac"
    BATTERY = "battery"


@dataclass(slots=True, frozen=True)
class AcProfile:
    """Settings applied while running on AC power.

    Attributes:
        governor: Base governor used while load is optimal.
        turbo: Whether turbo boost may be enabled under sustained load.
        second_stage_governor: Governor selected under high load.
        turbo_delay: Hysteresis ticks that must accumulate before turbo is
            enabled.
        loadperc_threshold: CPU user percentage at or above which load is high.
        loadavg_threshold: One-minute load average above which load is high.
    """

    governor: str
    turbo: bool
    second_stage_governor: str
    turbo_delay: int
    loadperc_threshold: float
    loadavg_threshold: float

    def governors(self) -> tuple[str, ...]:
        """Return every governor name the profile may select."""

        return (self.governor, self.second_stage_governor)


@dataclass(slots=True, frozen=True)
class BatteryProfile(AcProfile):
    """Settings applied while running on battery power.

    Attributes:
        battery_threshold: Capacity percentage at or below which the
            low-battery governor overrides the second stage.
        low_battery_governor: Governor used under high load on low battery.
    """

    battery_threshold: int = 0
    low_battery_governor: str = "powersave"

    def governors(self) -> tuple[str, ...]:
        return (self.governor, self.second_stage_governor, self.low_battery_governor)


@dataclass(slots=True, frozen=True)
class YabloConfig:
    """Per-session profiles for both power sources."""

    plugged_in: AcProfile
    on_battery: BatteryProfile

    def profile_for(self, source: PowerSource) -> AcProfile:
        """Return the profile matching ``source``."""

        if source is PowerSource.AC:
            return self.plugged_in
        return self.on_battery

    def governors(self) -> frozenset[str]:
        """Return the set of governors named anywhere in the configuration."""

        return frozenset(self.plugged_in.governors() + self.on_battery.governors())
