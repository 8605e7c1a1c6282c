"""yablo - Yet Another Battery Life Optimizer for Linux."""

from __future__ import annotations

from importlib import import_module
from typing import Any, TYPE_CHECKING

__version__ = "0.2.0"

__all__ = [
    "Decision",
    "HysteresisCounter",
    "Snapshot",
    "YabloConfig",
    "evaluate",
    "load_config",
]

if TYPE_CHECKING:
    from .config_loader import YabloConfig, load_config
    from .engine import Decision, HysteresisCounter, Snapshot, evaluate


def __getattr__(name: str) -> Any:
    """Lazily import submodules to avoid eager dependency loading."""

    module_map = {
        "Decision": "engine",
        "HysteresisCounter": "engine",
        "Snapshot": "engine",
        "evaluate": "engine",
        "YabloConfig": "config_loader",
        "load_config": "config_loader",
    }

    if name not in module_map:
        raise AttributeError(name)

    module = import_module(f".{module_map[name]}", __name__)
    return getattr(module, name)
