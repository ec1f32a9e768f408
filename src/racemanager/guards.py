"""Reusable router hooks that connect navigation to the state store."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

from .routing.route import NavigationContext
from .state import ReactiveStore

LOGGER = logging.getLogger(__name__)

RouteHook = Callable[[NavigationContext, NavigationContext | None], Any]


def require_auth(
    store: ReactiveStore,
    *,
    flag_path: str = "auth.is_authenticated",
    redirect_key: str = "auth.redirect_after_login",
) -> RouteHook:
    """Cancel navigation to protected routes while the user is signed out.

    The attempted path is remembered under ``redirect_key`` so the login
    flow can resume it.
    """

    def guard(context: NavigationContext, previous: NavigationContext | None) -> bool:
        if not context.requires_auth or store.get_state(flag_path):
            return True
        LOGGER.info(
            "guards.auth_required",
            extra={"event": "guards.auth_required", "path": context.full_path},
        )
        store.set_state(redirect_key, context.full_path, source="guards.require_auth")
        return False

    return guard


def track_loading(
    store: ReactiveStore, path: str = "ui.loading"
) -> tuple[RouteHook, RouteHook]:
    """Return ``(before, after)`` hooks that raise and clear a loading flag.

    Register ``before`` after any cancelling guard; a navigation cancelled
    later in the pipeline leaves the flag raised until the next success.
    """

    def start(context: NavigationContext, previous: NavigationContext | None) -> None:
        store.set_state(path, True, source="guards.track_loading")

    def finish(context: NavigationContext, previous: NavigationContext | None) -> None:
        store.set_state(path, False, source="guards.track_loading")

    return start, finish


def sync_route_state(store: ReactiveStore, path: str = "router.current") -> RouteHook:
    """After hook mirroring the current route into the store."""

    def sync(context: NavigationContext, previous: NavigationContext | None) -> None:
        store.set_state(
            path,
            {
                "name": context.name,
                "path": context.pathname,
                "params": dict(context.params),
                "query": dict(context.query),
            },
            source="guards.sync_route_state",
        )

    return sync
