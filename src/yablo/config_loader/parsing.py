"""Parsing and validation helpers for :mod:`yablo.config_loader`."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from yablo.config_loader.models import (
    AcProfile,
    BatteryProfile,
    ConfigError,
    YabloConfig,
)

AC_SECTION = "plugged_in"
BATTERY_SECTION = "on_battery"

AC_SECOND_STAGE_GOVERNOR = "performance"
AC_LOADPERC_THRESHOLD = 20.0
AC_LOADAVG_RATIO = 0.5

BATTERY_SECOND_STAGE_GOVERNOR = "powersave"
BATTERY_LOADPERC_THRESHOLD = 30.0
BATTERY_LOADAVG_RATIO = 0.75
BATTERY_THRESHOLD = 0
LOW_BATTERY_GOVERNOR = "powersave"


def build_config(data: Mapping[str, object], *, core_count: int) -> YabloConfig:
    """Build a :class:`YabloConfig` from parsed configuration data.

    Args:
        data: Mapping parsed from the configuration file.
        core_count: Number of logical CPUs, used to derive the default
            load-average thresholds.

    Returns:
        Frozen configuration holding both power-source profiles.

    Raises:
        ConfigError: If a section or required key is missing, or a value
            has the wrong type or range.
    """

    if core_count <= 0:
        raise ConfigError(f"core_count must be positive, got {core_count}")

    ac_section = _expect_section(data, AC_SECTION)
    battery_section = _expect_section(data, BATTERY_SECTION)

    plugged_in = AcProfile(
        governor=_require_str(ac_section, AC_SECTION, "governor"),
        turbo=_require_bool(ac_section, AC_SECTION, "turbo"),
        second_stage_governor=_optional_str(
            ac_section, AC_SECTION, "second_stage_governor", AC_SECOND_STAGE_GOVERNOR
        ),
        turbo_delay=_optional_delay(ac_section, AC_SECTION),
        loadperc_threshold=_optional_percent(
            ac_section, AC_SECTION, "loadperc_threshold", AC_LOADPERC_THRESHOLD
        ),
        loadavg_threshold=_optional_loadavg(
            ac_section, AC_SECTION, AC_LOADAVG_RATIO * core_count
        ),
    )

    on_battery = BatteryProfile(
        governor=_require_str(battery_section, BATTERY_SECTION, "governor"),
        turbo=_require_bool(battery_section, BATTERY_SECTION, "turbo"),
        second_stage_governor=_optional_str(
            battery_section,
            BATTERY_SECTION,
            "second_stage_governor",
            BATTERY_SECOND_STAGE_GOVERNOR,
        ),
        turbo_delay=_optional_delay(battery_section, BATTERY_SECTION),
        loadperc_threshold=_optional_percent(
            battery_section,
            BATTERY_SECTION,
            "loadperc_threshold",
            BATTERY_LOADPERC_THRESHOLD,
        ),
        loadavg_threshold=_optional_loadavg(
            battery_section, BATTERY_SECTION, BATTERY_LOADAVG_RATIO * core_count
        ),
        battery_threshold=_optional_battery_threshold(battery_section),
        low_battery_governor=_optional_str(
            battery_section,
            BATTERY_SECTION,
            "low_battery_governor",
            LOW_BATTERY_GOVERNOR,
        ),
    )

    return YabloConfig(plugged_in=plugged_in, on_battery=on_battery)


def validate_governors(config: YabloConfig, available: Iterable[str]) -> None:
    """Ensure every configured governor is offered by the platform.

    Args:
        config: Parsed configuration.
        available: Governors listed in ``scaling_available_governors``.

    Raises:
        ConfigError: If no governors are available or a configured governor
            is not among them.
    """

    available_set = frozenset(available)
    if not available_set:
        raise ConfigError("No governors found")

    unknown = sorted(config.governors() - available_set)
    if unknown:
        raise ConfigError(
            "Governor(s) specified in config file aren't available: "
            f"{', '.join(unknown)}. Available: {', '.join(sorted(available_set))}"
        )


def _expect_section(data: Mapping[str, object], name: str) -> Mapping[str, object]:
    section = data.get(name)
    if not isinstance(section, Mapping):
        raise ConfigError(f"Missing [{name}] section in config file")
    if not all(isinstance(key, str) for key in section.keys()):
        raise ConfigError(f"[{name}] section contains non-string keys")
    return section


def _require_str(section: Mapping[str, object], name: str, key: str) -> str:
    if key not in section:
        raise ConfigError(f"Missing '{key}' in [{name}] section")
    value = _coerce_str(section[key])
    if value is None:
        raise ConfigError(f"'{key}' in [{name}] must be a non-empty string")
    return value


def _require_bool(section: Mapping[str, object], name: str, key: str) -> bool:
    if key not in section:
        raise ConfigError(f"Missing '{key}' in [{name}] section")
    value = section[key]
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' in [{name}] must be a boolean")
    return value


def _optional_str(
    section: Mapping[str, object], name: str, key: str, default: str
) -> str:
    if key not in section:
        return default
    value = _coerce_str(section[key])
    if value is None:
        raise ConfigError(f"'{key}' in [{name}] must be a non-empty string")
    return value


def _optional_delay(section: Mapping[str, object], name: str) -> int:
    if "turbo_delay" not in section:
        return 0
    value = _coerce_int(section["turbo_delay"])
    if value is None or value < 0:
        raise ConfigError(f"'turbo_delay' in [{name}] must be a non-negative integer")
    return value


def _optional_percent(
    section: Mapping[str, object], name: str, key: str, default: float
) -> float:
    if key not in section:
        return default
    value = _coerce_float(section[key])
    if value is None or not 0.0 <= value <= 100.0:
        raise ConfigError(f"'{key}' in [{name}] must be a number between 0 and 100")
    return value


def _optional_loadavg(
    section: Mapping[str, object], name: str, default: float
) -> float:
    if "loadavg_threshold" not in section:
        return default
    value = _coerce_float(section["loadavg_threshold"])
    if value is None or value < 0.0:
        raise ConfigError(
            f"'loadavg_threshold' in [{name}] must be a non-negative number"
        )
    return value


def _optional_battery_threshold(section: Mapping[str, object]) -> int:
    if "battery_threshold" not in section:
        return BATTERY_THRESHOLD
    value = _coerce_int(section["battery_threshold"])
    if value is None or not 0 <= value <= 100:
        raise ConfigError(
            f"'battery_threshold' in [{BATTERY_SECTION}] must be an integer "
            "between 0 and 100"
        )
    return value


def _coerce_float(value: object) -> float | None:
    """Parse a float from a numeric configuration value.

    Args:
        value: Raw value.

    Returns:
        Parsed float when the value is numeric (booleans excluded),
        otherwise ``None``.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _coerce_int(value: object) -> int | None:
    """Parse an integer from a numeric configuration value.

    Args:
        value: Raw value.

    Returns:
        Parsed integer when the value is integral (booleans excluded),
        otherwise ``None``.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _coerce_str(value: object) -> str | None:
    """Parse a string from arbitrary input.

    Args:
        value: Raw value.

    Returns:
        Normalised string when the input is textual, otherwise ``None``.
    """

    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None
