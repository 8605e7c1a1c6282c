"""System telemetry collection producing one :class:`Snapshot` per cycle."""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from types import ModuleType
from typing import cast

from yablo.cpufreq.sysfs import CpufreqReadError, CpufreqSysfs
from yablo.engine.models import Snapshot
from yablo.telemetry._psutil_protocols import PsutilProtocol
from yablo.telemetry.power_supply import PowerSupply, TelemetryError

LOGGER = logging.getLogger(__name__)

_PSUTIL_MODULE: ModuleType = importlib.import_module("psutil")

_PREFERRED_SENSORS: tuple[str, ...] = ("coretemp", "k10temp", "zenpower", "cpu_thermal")


def _default_psutil() -> PsutilProtocol:
    """Return the psutil module cast to the internal protocol."""

    return cast(PsutilProtocol, _PSUTIL_MODULE)


@dataclass(slots=True)
class TelemetryReader:
    """Collect the load, CPU, battery and display metrics of the host.

    Attributes:
        power_supply: Battery reader.
        cpufreq: cpufreq accessor used for per-core frequencies.
        sample_interval: Seconds over which CPU user time is sampled. The
            read blocks for this long.
        psutil_module: Injected psutil-compatible module.
    """

    power_supply: PowerSupply = field(default_factory=PowerSupply)
    cpufreq: CpufreqSysfs = field(default_factory=CpufreqSysfs)
    sample_interval: float = 1.0
    psutil_module: PsutilProtocol = field(default_factory=_default_psutil, repr=False)

    def core_count(self) -> int:
        """Return the number of logical CPUs.

        Raises:
            TelemetryError: If psutil cannot determine the CPU count.
        """

        count = self.psutil_module.cpu_count(logical=True)
        if not count:
            raise TelemetryError("Unable to determine the number of CPUs")
        return int(count)

    def read(self) -> Snapshot:
        """Capture a complete telemetry snapshot.

        Returns:
            Snapshot of load, CPU usage, battery and display metrics.

        Raises:
            TelemetryError: If a mandatory metric cannot be read.
        """

        core_count = self.core_count()
        try:
            load_average = float(self.psutil_module.getloadavg()[0])
            cpu_user = float(
                self.psutil_module.cpu_times_percent(interval=self.sample_interval).user
            )
            memory = self.psutil_module.virtual_memory()
        except OSError as exc:
            raise TelemetryError(f"Failed to read CPU statistics: {exc}") from exc

        return Snapshot(
            load_average=max(load_average, 0.0),
            cpu_user_percent=min(max(cpu_user, 0.0), 100.0),
            battery_capacity=self.power_supply.capacity(),
            ac_power=self.power_supply.on_ac_power(),
            core_count=core_count,
            temperature_c=self._temperature(),
            memory_total_bytes=int(memory.total),
            memory_used_bytes=int(memory.total - memory.available),
            core_frequencies_mhz=self._frequencies(core_count),
        )

    def _temperature(self) -> float | None:
        try:
            sensors = self.psutil_module.sensors_temperatures()
        except (AttributeError, OSError):
            return None
        if not sensors:
            return None
        for name in _PREFERRED_SENSORS:
            entries = sensors.get(name)
            if entries:
                return float(entries[0].current)
        for entries in sensors.values():
            if entries:
                return float(entries[0].current)
        return None

    def _frequencies(self, core_count: int) -> tuple[int, ...]:
        try:
            return self.cpufreq.core_frequencies_mhz(core_count)
        except CpufreqReadError:
            LOGGER.debug("Core frequencies unavailable", exc_info=True)
            return ()
