"""Pure decision core turning telemetry into governor and turbo targets."""

from __future__ import annotations

from yablo.engine.decision import classify_load, evaluate, is_low_battery
from yablo.engine.hysteresis import TICKS_PER_CYCLE, HysteresisCounter
from yablo.engine.models import Decision, LoadState, Snapshot

__all__ = [
    "Decision",
    "HysteresisCounter",
    "LoadState",
    "Snapshot",
    "TICKS_PER_CYCLE",
    "classify_load",
    "evaluate",
    "is_low_battery",
]
