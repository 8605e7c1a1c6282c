"""Apply engine decisions to the cpufreq sysfs interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from yablo.cpufreq.sysfs import CpufreqSysfs, TurboControl
from yablo.engine.models import Decision

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CpufreqActuator:
    """Write the decided governor to every core and set the turbo switch.

    Attributes:
        sysfs: cpufreq accessor performing the writes.
        core_count: Number of cores receiving the governor.
        turbo: Turbo switch, or ``None`` when the platform has none. Turbo
            targets are skipped in that case.
    """

    sysfs: CpufreqSysfs
    core_count: int
    turbo: TurboControl | None = None
    logger: logging.Logger = field(default=LOGGER)
    _last: Decision | None = field(init=False, default=None)

    def apply(self, decision: Decision) -> None:
        """Apply ``decision`` to the hardware.

        Raises:
            CpufreqWriteError: If a governor or turbo write fails.
        """

        self.sysfs.set_governor(decision.governor, self.core_count)
        if self.turbo is not None:
            self.sysfs.write_turbo(self.turbo, decision.turbo)

        previous = self._last
        if previous is None or previous.governor != decision.governor:
            self.logger.info(
                "Governor applied",
                extra={
                    "governor": decision.governor,
                    "load_state": decision.load_state.value,
                    "power_source": decision.power_source.value,
                },
            )
        if self.turbo is not None and (previous is None or previous.turbo != decision.turbo):
            self.logger.info(
                "Turbo %s",
                "activated" if decision.turbo else "deactivated",
                extra={"turbo": decision.turbo, "counter_ticks": decision.counter_ticks},
            )
        self._last = decision
