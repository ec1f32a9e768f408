"""Domain exception hierarchy for the RaceManager runtime core."""

from __future__ import annotations


class RaceManagerError(RuntimeError):
    """Base class for all runtime-core errors."""


class ConfigValidationError(RaceManagerError):
    """Raised when configuration cannot be validated safely."""


class StateError(RaceManagerError):
    """Base class for state store failures."""


class StateCommitRejected(StateError):
    """Raised internally when a store middleware vetoes a commit.

    Never escapes ``set_state`` or ``batch_update``; callers observe a
    ``False`` return value instead.
    """

    def __init__(self, paths: tuple[str, ...], reason: str) -> None:
        super().__init__(f"Commit rejected for {', '.join(paths) or '<root>'}: {reason}")
        self.paths = paths
        self.reason = reason


class RouterError(RaceManagerError):
    """Raised for invalid router usage such as late route registration."""


class RouteNotFoundError(RouterError):
    """Raised when no registered pattern matches a path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"No route matches {path!r}")
        self.path = path


class NavigationCancelled(RouterError):
    """Raised internally when a before hook or middleware returns ``False``."""


class ComponentLoadError(RouterError):
    """Raised when a view cannot be resolved or instantiated."""


class RenderError(RouterError):
    """Raised when a component fails to render."""


class ServiceNotFoundError(RaceManagerError):
    """Raised when a service name is not registered."""


class ServiceResolutionError(RaceManagerError):
    """Raised when a service's dependencies cannot be resolved."""
