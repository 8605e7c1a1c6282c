"""Environment-backed settings primitives for :mod:`yablo`."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["YabloSettings", "get_settings"]

DEFAULT_POLL_INTERVAL = 3.0


class YabloSettings(BaseSettings):
    """Expose environment-derived configuration knobs for yablo.

    All environment lookups go through this class. Attributes correspond to
    documented environment variables and fall back to inline defaults when
    the variable is absent or malformed.

    Attributes:
        config_path: Explicit path to the profile configuration file.
        sysfs_root: Root of the sysfs mount used for cpufreq and battery files.
        poll_interval: Seconds between optimisation cycles.
        log_path: File the daemon's output is appended to.
        log_level: Logging level name for the structured logger.
        service_name: systemd unit controlling the daemon.
    """

    config_path: str | None = Field(default=None, alias="YABLO_CONFIG_PATH")
    sysfs_root: str = Field(default="/sys", alias="YABLO_SYSFS_ROOT")
    poll_interval: float = Field(
        default=DEFAULT_POLL_INTERVAL, alias="YABLO_POLL_INTERVAL"
    )
    log_path: str = Field(default="/var/log/yablo.log", alias="YABLO_LOG_PATH")
    log_level: str = Field(default="INFO", alias="YABLO_LOG_LEVEL")
    service_name: str = Field(default="yablo.service", alias="YABLO_SERVICE_NAME")

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @field_validator("poll_interval", mode="before")
    @classmethod
    def _parse_poll_interval(cls, value: object) -> float:
        """Parse the poll interval while tolerating malformed input.

        Args:
            value: Raw environment value.

        Returns:
            Parsed positive float, or the default interval when the value
            cannot be used.
        """

        parsed: float | None = None
        if isinstance(value, (int, float)):
            parsed = float(value)
        elif isinstance(value, str):
            try:
                parsed = float(value.strip())
            except ValueError:
                parsed = None
        if parsed is None or parsed <= 0:
            return DEFAULT_POLL_INTERVAL
        return parsed

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip().upper()
        return "INFO"


def get_settings() -> YabloSettings:
    """Return a :class:`YabloSettings` instance.

    Returns:
        Settings parsed from environment variables.
    """

    return YabloSettings()
