"""systemd control of the optimizer daemon and privilege checks."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

LOGGER = logging.getLogger(__name__)

CommandRunner = Callable[[Sequence[str]], subprocess.CompletedProcess[str]]


class ServiceError(RuntimeError):
    """Raised when the daemon service cannot be queried or controlled."""


class RootRequiredError(PermissionError):
    """Raised when an operation that writes sysfs runs without root."""


def _run(command: Sequence[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        list(command), capture_output=True, text=True, check=False
    )


def require_root(geteuid: Callable[[], int] | None = None) -> None:
    """Ensure the process runs with an effective UID of 0.

    Raises:
        RootRequiredError: If the effective user is not root.
    """

    euid_getter = geteuid or getattr(os, "geteuid", lambda: 0)
    if euid_getter() != 0:
        raise RootRequiredError("You have to run this program as root!")


@dataclass(slots=True)
class ServiceController:
    """Query and restart the daemon's systemd unit.

    Attributes:
        name: Unit name, for example ``yablo.service``.
        runner: Callable executing a command and returning its result.
    """

    name: str = "yablo.service"
    runner: CommandRunner = field(default=_run, repr=False)

    def _systemctl(self, *args: str) -> subprocess.CompletedProcess[str]:
        try:
            return self.runner(["systemctl", *args, self.name])
        except OSError as exc:
            raise ServiceError(f"Failed to execute systemctl: {exc}") from exc

    def is_active(self) -> bool:
        """Return whether the unit is currently active."""

        result = self._systemctl("is-active")
        return result.stdout.strip() == "active"

    def restart(self) -> None:
        """Restart the unit.

        Raises:
            ServiceError: If ``systemctl restart`` fails.
        """

        result = self._systemctl("restart")
        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise ServiceError(f"Failed to restart {self.name}: {detail}")
        LOGGER.info("Restarted daemon", extra={"unit": self.name})

    def reload_config(self) -> None:
        """Restart the daemon so it picks up a new configuration.

        Raises:
            ServiceError: If the daemon is not running or cannot restart.
        """

        if not self.is_active():
            raise ServiceError(
                "Daemon not running. No need to restart daemon to load new config."
            )
        self.restart()

    def ensure_inactive(self) -> None:
        """Refuse to continue while the daemon is already applying settings.

        Raises:
            ServiceError: If the unit is active.
        """

        if self.is_active():
            raise ServiceError("Daemon already installed. Nothing to do.")


def ensure_log_file(path: Path) -> None:
    """Create the daemon log file when it does not exist.

    Raises:
        ServiceError: If the file cannot be created.
    """

    if path.exists():
        return
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
    except OSError as exc:
        raise ServiceError(f"Failed to create log file {path}: {exc}") from exc
