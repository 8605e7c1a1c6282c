"""Telemetry subsystem producing per-cycle system snapshots."""

from __future__ import annotations

from importlib import import_module
from typing import Any, TYPE_CHECKING

__all__ = ["PowerSupply", "TelemetryError", "TelemetryReader"]

if TYPE_CHECKING:
    from yablo.telemetry.power_supply import PowerSupply, TelemetryError
    from yablo.telemetry.reader import TelemetryReader


def __getattr__(name: str) -> Any:
    """Lazily resolve telemetry helpers so psutil loads only when needed."""

    module_map = {
        "PowerSupply": "power_supply",
        "TelemetryError": "power_supply",
        "TelemetryReader": "reader",
    }

    if name not in module_map:
        raise AttributeError(name)

    module = import_module(f"yablo.telemetry.{module_map[name]}")
    return getattr(module, name)
