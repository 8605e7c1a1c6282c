"""Debounce counter guarding turbo activation against transient load."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

TICKS_PER_CYCLE: Final[int] = 4


@dataclass(slots=True, frozen=True)
class HysteresisCounter:
    """Session-lifetime count of sustained high-load ticks.

    The counter is an immutable value: the loop driver owns the current
    instance and replaces it with the one returned by
    :func:`yablo.engine.decision.evaluate` each cycle. One cycle is assumed
    to take one fixed poll interval, so ticks approximate elapsed time.
    """

    ticks: int = 0

    def __post_init__(self) -> None:
        if self.ticks < 0:
            raise ValueError(f"ticks must be non-negative, got {self.ticks}")

    def reset(self) -> HysteresisCounter:
        """Return a counter at zero."""

        return HysteresisCounter(0)

    def advance(self) -> HysteresisCounter:
        """Return a counter one cycle further along."""

        return HysteresisCounter(self.ticks + TICKS_PER_CYCLE)

    def reached(self, delay: int) -> bool:
        """Return whether at least ``delay`` ticks have accumulated."""

        return self.ticks >= delay
