"""Configuration source utilities for :mod:`yablo.config_loader`."""

from __future__ import annotations

import json
import logging
import tomllib
from importlib import resources
from pathlib import Path
from typing import Protocol, TextIO, cast

from yablo.config_loader.models import ConfigError
from yablo.settings import YabloSettings

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/yablo/config.toml")


class YamlModule(Protocol):
    """Protocol describing the subset of PyYAML used by the loader."""

    def safe_load(self, stream: TextIO | str) -> object:
        """Parse YAML content from a text stream or string."""


def resolve_config_path(path: str | Path | None, settings: YabloSettings) -> Path:
    """Return the configuration path to use.

    Resolution order: the explicit ``path`` argument, the
    ``YABLO_CONFIG_PATH`` environment variable, then
    ``/etc/yablo/config.toml``.
    """

    if path is not None:
        return Path(path)
    if settings.config_path:
        return Path(settings.config_path)
    return DEFAULT_CONFIG_PATH


def default_config_text() -> str:
    """Return the packaged default configuration document."""

    resource = resources.files("yablo.data").joinpath("config.toml")
    return resource.read_text(encoding="utf-8")


def ensure_default_config(path: Path) -> bool:
    """Write the packaged default configuration when ``path`` is missing.

    Args:
        path: Location of the configuration file.

    Returns:
        ``True`` when a new file was written, ``False`` when one existed.

    Raises:
        ConfigError: If the directory or file cannot be created.
    """

    if path.exists():
        return False
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(default_config_text(), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write default config {path}: {exc}") from exc
    LOGGER.info("Wrote default configuration", extra={"path": str(path)})
    return True


def load_structured_config(path: Path) -> dict[str, object]:
    """Load configuration data from disk based on the file suffix.

    Args:
        path: Configuration file path. ``.toml`` (and suffix-less files),
            ``.json``, ``.yml`` and ``.yaml`` are understood.

    Returns:
        Mapping with string keys parsed from the file.

    Raises:
        ConfigError: If the file is missing, unreadable, or malformed.
    """

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc

    suffix = path.suffix.lower()
    if suffix == ".json":
        data = _parse_json(text, path)
    elif suffix in {".yml", ".yaml"}:
        data = _parse_yaml(text, path)
    else:
        data = _parse_toml(text, path)

    normalized = _normalize_mapping(data)
    if normalized is None:
        raise ConfigError(f"Config file {path} must contain a table at the top level")
    return normalized


def _parse_toml(text: str, path: Path) -> object:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc


def _parse_json(text: str, path: Path) -> object:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc


def _parse_yaml(text: str, path: Path) -> object:
    module = _import_yaml_module()
    try:
        return module.safe_load(text)
    except Exception as exc:  # yaml.YAMLError and subclasses
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc


def _import_yaml_module() -> YamlModule:
    """Import PyYAML lazily so TOML-only setups never load it."""

    import yaml

    return cast(YamlModule, yaml)


def _normalize_mapping(value: object) -> dict[str, object] | None:
    """Normalize potential mapping values to ``dict[str, object]``.

    Args:
        value: Arbitrary Python object produced by TOML/JSON/YAML parsing.

    Returns:
        Mapping restricted to string keys when possible, otherwise ``None``.
    """

    if not isinstance(value, dict):
        return None
    value_dict = cast(dict[object, object], value)
    normalized: dict[str, object] = {}
    for key_obj, item in value_dict.items():
        if not isinstance(key_obj, str):
            continue
        normalized[key_obj] = item
    return normalized
