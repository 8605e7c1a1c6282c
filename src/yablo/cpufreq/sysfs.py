"""cpufreq sysfs access for governors, frequencies and turbo boost.

All reads and writes go through a configurable base path so unit tests can
point the helpers at a temporary directory tree instead of ``/sys``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

LOGGER = logging.getLogger(__name__)


class CpufreqError(RuntimeError):
    """Base class for cpufreq sysfs errors."""


class CpufreqReadError(CpufreqError):
    """Raised when a cpufreq sysfs file cannot be read or parsed."""


class CpufreqWriteError(CpufreqError):
    """Raised when a cpufreq sysfs file cannot be written."""


INTEL_PSTATE_NO_TURBO = "intel_pstate/no_turbo"
CPUFREQ_BOOST = "cpufreq/boost"


@dataclass(slots=True, frozen=True)
class TurboControl:
    """Location and polarity of the turbo boost switch.

    Attributes:
        path: Sysfs file holding the switch.
        inverted: ``True`` for ``intel_pstate/no_turbo`` where ``1`` means
            turbo is disabled.
    """

    path: Path
    inverted: bool

    def encode(self, enabled: bool) -> str:
        """Return the file content that selects ``enabled``."""

        return "0" if enabled == self.inverted else "1"

    def decode(self, raw: str) -> bool:
        """Interpret the file content ``raw`` as a turbo state.

        Raises:
            CpufreqReadError: If ``raw`` is not ``0`` or ``1``.
        """

        value = raw.strip()
        if value not in {"0", "1"}:
            raise CpufreqReadError(f"Unexpected turbo value in {self.path}: {raw!r}")
        active = value == "1"
        return not active if self.inverted else active


@dataclass(slots=True)
class CpufreqSysfs:
    """Read and write cpufreq state below ``base_path``."""

    base_path: Path = Path("/sys/devices/system/cpu")

    def _policy_file(self, cpu: int, name: str) -> Path:
        return self.base_path / f"cpu{cpu}" / "cpufreq" / name

    def available_governors(self) -> list[str]:
        """Return the governors offered by the platform for ``cpu0``."""

        text = _read_text(self._policy_file(0, "scaling_available_governors"))
        return text.split()

    def current_governor(self) -> str:
        """Return the governor currently active on ``cpu0``."""

        return _read_text(self._policy_file(0, "scaling_governor")).strip()

    def set_governor(self, governor: str, core_count: int) -> None:
        """Write ``governor`` to every core from ``cpu0`` to ``core_count - 1``.

        Raises:
            CpufreqWriteError: If any core rejects the write.
        """

        for cpu in range(core_count):
            _write_text(self._policy_file(cpu, "scaling_governor"), governor)

    def core_frequencies_mhz(self, core_count: int) -> tuple[int, ...]:
        """Return the current frequency of each core in megahertz."""

        frequencies: list[int] = []
        for cpu in range(core_count):
            path = self._policy_file(cpu, "scaling_cur_freq")
            text = _read_text(path).strip()
            try:
                khz = int(text, 10)
            except ValueError as exc:
                raise CpufreqReadError(
                    f"Invalid integer in cpufreq file {path}: {text!r}"
                ) from exc
            frequencies.append(khz // 1000)
        return tuple(frequencies)

    def turbo_control(self) -> TurboControl | None:
        """Locate the turbo switch, preferring ``intel_pstate`` over ``boost``.

        Returns:
            The discovered control, or ``None`` when the platform exposes no
            turbo switch.
        """

        pstate = self.base_path / INTEL_PSTATE_NO_TURBO
        if pstate.is_file():
            return TurboControl(path=pstate, inverted=True)
        boost = self.base_path / CPUFREQ_BOOST
        if boost.is_file():
            return TurboControl(path=boost, inverted=False)
        LOGGER.warning("No turbo control found", extra={"path": str(self.base_path)})
        return None

    def read_turbo(self, control: TurboControl) -> bool:
        """Return whether turbo boost is currently enabled."""

        return control.decode(_read_text(control.path))

    def write_turbo(self, control: TurboControl, enabled: bool) -> None:
        """Enable or disable turbo boost.

        Raises:
            CpufreqWriteError: If the switch cannot be written.
        """

        _write_text(control.path, control.encode(enabled))


def _read_text(path: Path) -> str:
    """Return the contents of ``path``.

    Raises:
        CpufreqReadError: If the file is missing or unreadable.
    """

    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise CpufreqReadError(f"Missing cpufreq file: {path}") from exc
    except OSError as exc:
        raise CpufreqReadError(f"Failed to read cpufreq file: {path}") from exc


def _write_text(path: Path, value: str) -> None:
    """Write ``value`` to ``path``.

    Raises:
        CpufreqWriteError: If the write fails.
    """

    try:
        path.write_text(value, encoding="utf-8")
    except OSError as exc:
        raise CpufreqWriteError(f"Couldn't write {value!r} to {path}: {exc}") from exc


__all__ = [
    "CpufreqError",
    "CpufreqReadError",
    "CpufreqSysfs",
    "CpufreqWriteError",
    "TurboControl",
]
