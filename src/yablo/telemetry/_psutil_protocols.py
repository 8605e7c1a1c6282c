"""Protocols describing the subset of psutil used by telemetry."""

from __future__ import annotations

from typing import Protocol


class CpuTimesPercentProtocol(Protocol):
    """Minimal interface for psutil CPU time percentage responses."""

    user: float


class VirtualMemoryProtocol(Protocol):
    """Minimal interface for psutil virtual memory responses."""

    total: int
    available: int


class TemperatureProtocol(Protocol):
    """Minimal interface for psutil temperature sensor entries."""

    label: str
    current: float


class PsutilProtocol(Protocol):
    """Subset of psutil APIs used by telemetry modules."""

    def getloadavg(self) -> tuple[float, float, float]:
        """Return the 1, 5 and 15 minute load averages."""

    def cpu_times_percent(
        self, interval: float | None = None
    ) -> CpuTimesPercentProtocol:
        """Return CPU time shares sampled over ``interval`` seconds."""

    def cpu_count(self, logical: bool = True) -> int | None:
        """Return the number of CPUs."""

    def virtual_memory(self) -> VirtualMemoryProtocol:
        """Return virtual memory statistics."""

    def sensors_temperatures(self) -> dict[str, list[TemperatureProtocol]]:
        """Return temperature readings keyed by sensor driver."""
