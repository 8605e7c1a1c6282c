"""Public entry points for the :mod:`yablo` configuration loader."""

from __future__ import annotations

from pathlib import Path

from yablo.config_loader.models import (
    AcProfile,
    BatteryProfile,
    ConfigError,
    PowerSource,
    YabloConfig,
)
from yablo.config_loader.parsing import build_config, validate_governors
from yablo.config_loader.sources import (
    DEFAULT_CONFIG_PATH,
    ensure_default_config,
    load_structured_config,
    resolve_config_path,
)
from yablo.settings import YabloSettings, get_settings

__all__ = [
    "AcProfile",
    "BatteryProfile",
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "PowerSource",
    "YabloConfig",
    "ensure_default_config",
    "load_config",
    "validate_governors",
]


def load_config(
    path: str | Path | None = None,
    *,
    core_count: int,
    settings: YabloSettings | None = None,
) -> YabloConfig:
    """Load the power-source profiles from the configuration file.

    Args:
        path: Optional explicit path to a configuration file. When omitted the
            ``YABLO_CONFIG_PATH`` environment variable and then
            ``/etc/yablo/config.toml`` are used.
        core_count: Number of logical CPUs, used for load-average defaults.
        settings: Optional pre-instantiated environment settings. When omitted
            :func:`yablo.settings.get_settings` is used.

    Returns:
        Fully populated, frozen :class:`YabloConfig` instance.

    Raises:
        ConfigError: If the file is missing, malformed, or incomplete.
    """

    env_settings = settings or get_settings()
    config_path = resolve_config_path(path, env_settings)
    data = load_structured_config(config_path)
    return build_config(data, core_count=core_count)
