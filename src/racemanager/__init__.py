"""Application runtime core for RaceManager: event bus, reactive store and router."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import ensure_config_dir, load_config
    from .context import AppContext, create_app_context
    from .events import EventBus
    from .exceptions import (
        ComponentLoadError,
        ConfigValidationError,
        RaceManagerError,
        RouterError,
        RouteNotFoundError,
        ServiceNotFoundError,
    )
    from .routing import NavigationOutcome, Router, RouterState
    from .services import MemoryBackend, ServiceLocator
    from .state import ReactiveStore

__all__ = [
    "AppContext",
    "ComponentLoadError",
    "ConfigValidationError",
    "EventBus",
    "MemoryBackend",
    "NavigationOutcome",
    "RaceManagerError",
    "ReactiveStore",
    "RouteNotFoundError",
    "Router",
    "RouterError",
    "RouterState",
    "ServiceLocator",
    "ServiceNotFoundError",
    "create_app_context",
    "ensure_config_dir",
    "load_config",
]

_LAZY = {
    "AppContext": ".context",
    "create_app_context": ".context",
    "EventBus": ".events",
    "ReactiveStore": ".state",
    "NavigationOutcome": ".routing",
    "Router": ".routing",
    "RouterState": ".routing",
    "MemoryBackend": ".services",
    "ServiceLocator": ".services",
    "ensure_config_dir": ".config",
    "load_config": ".config",
    "ComponentLoadError": ".exceptions",
    "ConfigValidationError": ".exceptions",
    "RaceManagerError": ".exceptions",
    "RouteNotFoundError": ".exceptions",
    "RouterError": ".exceptions",
    "ServiceNotFoundError": ".exceptions",
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols so ``import racemanager`` stays cheap."""
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(module_name, __name__), name)
