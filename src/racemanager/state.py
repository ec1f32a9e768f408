"""Reactive state store with middleware-gated commits."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping
from copy import deepcopy
from dataclasses import dataclass, field
import logging
import time
from typing import Any
import uuid

from .events.bus import EventBus
from .events.domain import (
    STATE_BATCH_CHANGED,
    STATE_CHANGED,
    state_batch_changed_payload,
    state_changed_payload,
)
from .exceptions import StateCommitRejected
from .paths import Keys, get_in, parse_path, set_in

LOGGER = logging.getLogger(__name__)

WILDCARD = "*"

Middleware = Callable[[dict[str, Any], dict[str, Any], "Change"], bool]
Callback = Callable[[Any, Any, "Change"], Any]


def default_state() -> dict[str, Any]:
    """Return a fresh copy of the application's initial state tree."""
    return {
        "auth": {
            "user": None,
            "is_authenticated": False,
            "is_loading": False,
            "auth_initialized": False,
        },
        "championships": {
            "list": [],
            "current": None,
            "loading": False,
            "error": None,
        },
        "social": {
            "posts": [],
            "following": [],
            "followers": [],
            "loading": False,
        },
        "ui": {
            "active_modal": None,
            "sidebar_open": False,
            "theme": "dark",
            "loading": False,
            "notifications": [],
        },
        "results": {},
        "app": {
            "initialized": False,
            "version": "2.0.0",
            "environment": "development",
        },
    }


def validate_auth_flag(
    new_state: dict[str, Any], old_state: dict[str, Any], change: Change
) -> bool:
    """Reject trees whose ``auth.is_authenticated`` is present but not a bool."""
    auth = new_state.get("auth")
    if isinstance(auth, Mapping) and "is_authenticated" in auth:
        if not isinstance(auth["is_authenticated"], bool):
            LOGGER.error(
                "state.invalid_auth_flag",
                extra={
                    "event": "state.invalid_auth_flag",
                    "value_type": type(auth["is_authenticated"]).__name__,
                },
            )
            return False
    return True


@dataclass(frozen=True)
class Change:
    """Description of a pending or committed write."""

    paths: tuple[str, ...]
    values: dict[str, Any]
    batch: bool = False
    source: str = "ReactiveStore"

    @property
    def path(self) -> str:
        """First written path; the only one for single writes."""
        return self.paths[0] if self.paths else ""


@dataclass(frozen=True)
class HistoryEntry:
    """Committed write, kept for introspection only."""

    timestamp: float
    path: str
    new_value: Any
    old_value: Any
    source: str = "ReactiveStore"


@dataclass
class Subscription:
    """A registered state observer; ``keys`` is ``None`` for wildcard subscriptions."""

    id: str
    path: str
    callback: Callback
    keys: Keys | None = None
    active: bool = field(default=True, compare=False)

    @property
    def is_wildcard(self) -> bool:
        return self.keys is None


class ReactiveStore:
    """Own a single nested state tree and notify observers of accepted commits.

    Reads return deep copies. Writes copy only the mappings along the written
    path. Middleware runs in registration order and any ``False`` result or
    exception rejects the whole commit.
    """

    def __init__(
        self,
        bus: EventBus,
        initial_state: Mapping[str, Any] | None = None,
        *,
        max_history: int = 50,
        max_notify_depth: int = 16,
    ) -> None:
        self._bus = bus
        self._initial: dict[str, Any] = (
            deepcopy(dict(initial_state)) if initial_state is not None else default_state()
        )
        self._state: dict[str, Any] = deepcopy(self._initial)
        self._subscribers: dict[Keys | str, list[Subscription]] = {}
        self._by_id: dict[str, Subscription] = {}
        self._middleware: list[Middleware] = []
        self._history: deque[HistoryEntry] = deque(maxlen=max_history)
        self._max_notify_depth = max_notify_depth
        self._depth = 0

    @property
    def max_history(self) -> int:
        return self._history.maxlen or 0

    def get_state(self, path: str | None = None) -> Any:
        """Return a copy of the whole tree, or of the value at ``path``."""
        if not path:
            return deepcopy(self._state)
        return deepcopy(get_in(self._state, parse_path(path)))

    def set_state(
        self,
        path: str,
        value: Any,
        *,
        silent: bool = False,
        source: str | None = None,
    ) -> bool:
        """Commit a single-path write.

        Returns ``False`` when middleware rejects it or ``path`` is malformed.
        """
        return self._commit({path: value}, batch=False, silent=silent, source=source)

    def batch_update(
        self,
        updates: Mapping[str, Any],
        *,
        silent: bool = False,
        source: str | None = None,
    ) -> bool:
        """Commit several writes atomically. Returns ``False`` when rejected."""
        if not updates:
            return True
        return self._commit(dict(updates), batch=True, silent=silent, source=source)

    def subscribe(
        self,
        path_or_callback: str | Callback,
        callback: Callback | None = None,
    ) -> str:
        """Register a callback for a path, or for every commit when given only a callback.

        Path subscribers are called as ``callback(value, old_value, change)``;
        wildcard subscribers as ``callback(state, old_state, change)``.
        A malformed path such as ``"a..b"`` raises ``ValueError``.
        """
        if callback is None:
            if not callable(path_or_callback):
                raise TypeError("subscribe() needs a callback")
            path, callback = WILDCARD, path_or_callback
        elif isinstance(path_or_callback, str):
            path = path_or_callback
        else:
            raise TypeError("subscribe() path must be a string")

        keys = None if path == WILDCARD else parse_path(path)
        subscription = Subscription(
            id=uuid.uuid4().hex[:12], path=path, callback=callback, keys=keys
        )
        bucket = WILDCARD if keys is None else keys
        self._subscribers.setdefault(bucket, []).append(subscription)
        self._by_id[subscription.id] = subscription
        return subscription.id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription. Safe to call from inside a callback."""
        subscription = self._by_id.pop(subscription_id, None)
        if subscription is None:
            return False
        subscription.active = False
        bucket = WILDCARD if subscription.is_wildcard else subscription.keys
        remaining = [
            item for item in self._subscribers.get(bucket, []) if item.id != subscription_id
        ]
        if remaining:
            self._subscribers[bucket] = remaining
        else:
            self._subscribers.pop(bucket, None)
        return True

    def use(self, middleware: Middleware) -> None:
        """Append a commit validator."""
        self._middleware.append(middleware)

    def get_history(self) -> list[HistoryEntry]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def reset(self, *, source: str = "ReactiveStore.reset") -> bool:
        """Restore the initial tree as a regular root commit."""
        return self.set_state("", deepcopy(self._initial), source=source)

    def _commit(
        self,
        updates: dict[str, Any],
        *,
        batch: bool,
        silent: bool,
        source: str | None,
    ) -> bool:
        if self._depth >= self._max_notify_depth:
            LOGGER.error(
                "state.reentrancy_limit",
                extra={
                    "event": "state.reentrancy_limit",
                    "paths": list(updates),
                    "depth": self._depth,
                },
            )
            return False

        origin = source or "ReactiveStore"
        try:
            parsed = [(path, parse_path(path)) for path in updates]
            candidate = self._state
            for path, keys in parsed:
                candidate = set_in(candidate, keys, deepcopy(updates[path]))
        except (ValueError, TypeError) as exc:
            LOGGER.error(
                "state.invalid_write",
                extra={
                    "event": "state.invalid_write",
                    "paths": list(updates),
                    "source": origin,
                    "error": str(exc),
                },
            )
            return False

        change = Change(
            paths=tuple(path for path, _ in parsed),
            values=deepcopy(updates),
            batch=batch,
            source=origin,
        )
        try:
            self._run_middleware(candidate, change)
        except StateCommitRejected as exc:
            LOGGER.warning(
                "state.commit_rejected",
                extra={
                    "event": "state.commit_rejected",
                    "paths": list(exc.paths),
                    "reason": exc.reason,
                    "source": origin,
                },
            )
            return False

        old_state = self._state
        self._state = candidate
        now = time.time()
        for path, keys in parsed:
            self._history.append(
                HistoryEntry(
                    timestamp=now,
                    path=path,
                    new_value=deepcopy(get_in(candidate, keys)),
                    old_value=deepcopy(get_in(old_state, keys)),
                    source=origin,
                )
            )

        self._depth += 1
        try:
            if not silent:
                self._notify(parsed, candidate, old_state, change)
            if batch:
                self._bus.emit(
                    STATE_BATCH_CHANGED,
                    state_batch_changed_payload(
                        deepcopy(updates), deepcopy(candidate), deepcopy(old_state)
                    ),
                    {"source": origin},
                )
            else:
                path, keys = parsed[0]
                self._bus.emit(
                    STATE_CHANGED,
                    state_changed_payload(
                        path,
                        deepcopy(get_in(candidate, keys)),
                        deepcopy(get_in(old_state, keys)),
                        deepcopy(candidate),
                    ),
                    {"source": origin},
                )
        finally:
            self._depth -= 1
        return True

    def _run_middleware(self, candidate: dict[str, Any], change: Change) -> None:
        if not self._middleware:
            return
        new_view = deepcopy(candidate)
        old_view = deepcopy(self._state)
        for middleware in list(self._middleware):
            name = getattr(middleware, "__name__", type(middleware).__name__)
            try:
                result = middleware(new_view, old_view, change)
            except Exception as exc:
                raise StateCommitRejected(
                    change.paths, f"{name} raised {type(exc).__name__}: {exc}"
                ) from exc
            if result is False:
                raise StateCommitRejected(change.paths, f"{name} returned False")

    def _notify(
        self,
        parsed: list[tuple[str, Keys]],
        new_state: dict[str, Any],
        old_state: dict[str, Any],
        change: Change,
    ) -> None:
        # Snapshot every list before the first callback runs.
        exact = [(keys, list(self._subscribers.get(keys, []))) for _, keys in parsed]
        wildcard = list(self._subscribers.get(WILDCARD, []))

        for keys, subscriptions in exact:
            for subscription in subscriptions:
                if not subscription.active:
                    continue
                self._invoke(
                    subscription,
                    deepcopy(get_in(new_state, keys)),
                    deepcopy(get_in(old_state, keys)),
                    change,
                )

        for subscription in wildcard:
            if not subscription.active:
                continue
            self._invoke(subscription, deepcopy(new_state), deepcopy(old_state), change)

    def _invoke(
        self, subscription: Subscription, new: Any, old: Any, change: Change
    ) -> None:
        try:
            subscription.callback(new, old, change)
        except Exception as exc:
            LOGGER.error(
                "state.subscriber_failed",
                exc_info=True,
                extra={
                    "event": "state.subscriber_failed",
                    "subscription_path": subscription.path,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
