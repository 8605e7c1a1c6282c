"""cpufreq sysfs access and the actuator applying engine decisions."""

from __future__ import annotations

from yablo.cpufreq.actuator import CpufreqActuator
from yablo.cpufreq.sysfs import (
    CpufreqError,
    CpufreqReadError,
    CpufreqSysfs,
    CpufreqWriteError,
    TurboControl,
)

__all__ = [
    "CpufreqActuator",
    "CpufreqError",
    "CpufreqReadError",
    "CpufreqSysfs",
    "CpufreqWriteError",
    "TurboControl",
]
