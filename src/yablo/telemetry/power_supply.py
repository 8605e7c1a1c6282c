"""Battery capacity and AC state read from the power_supply sysfs class."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class TelemetryError(RuntimeError):
    """Raised when system telemetry cannot be collected."""


@dataclass(slots=True)
class PowerSupply:
    """Read battery information below ``base_path``.

    Attributes:
        base_path: Root of the ``power_supply`` class directory.
        batteries: Battery directory names that are inspected.
    """

    base_path: Path = Path("/sys/class/power_supply")
    batteries: tuple[str, ...] = ("BAT0", "BAT1")

    def _present(self, filename: str) -> list[Path]:
        return [
            self.base_path / name / filename
            for name in self.batteries
            if (self.base_path / name / filename).exists()
        ]

    def capacity(self) -> int | None:
        """Return the mean capacity of present batteries in percent.

        Returns:
            Floor of the mean capacity, or ``None`` when no battery exists.

        Raises:
            TelemetryError: If a present capacity file is unreadable.
        """

        paths = self._present("capacity")
        if not paths:
            return None
        values = [_read_capacity(path) for path in paths]
        return sum(values) // len(values)

    def on_ac_power(self) -> bool:
        """Return ``False`` when any present battery is discharging."""

        for path in self._present("status"):
            if _read_status(path) == "discharging":
                return False
        return True


def _read_capacity(path: Path) -> int:
    text = _read_text(path).strip()
    try:
        value = int(text, 10)
    except ValueError as exc:
        raise TelemetryError(f"Invalid battery capacity in {path}: {text!r}") from exc
    # Some firmware briefly reports slightly above 100 while charging.
    return min(max(value, 0), 100)


def _read_status(path: Path) -> str:
    return _read_text(path).strip().lower()


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TelemetryError(f"Failed to read battery file {path}: {exc}") from exc
