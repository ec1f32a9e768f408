"""Synchronous event bus for decoupled component communication.

Usage:
    bus = EventBus()

    def on_route_change(payload, metadata):
        print(f"Now at: {payload['route'].full_path}")

    subscription_id = bus.on("routeChange", on_route_change)
    bus.emit("routeChange", {"route": route, "previous_route": None})
    bus.off(subscription_id)
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import logging
import time
from typing import Any
import uuid

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Any, "EventMetadata"], Any]
BusMiddleware = Callable[["Event"], "Event | None"]


def _generate_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class EventMetadata:
    """Metadata attached to every emitted event."""

    timestamp: float
    source: str = "unknown"
    correlation_id: str = field(default_factory=_generate_id)
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Event:
    """Event data container."""

    channel: str
    payload: Any
    metadata: EventMetadata


@dataclass
class _Listener:
    id: str
    channel: str
    handler: Handler
    priority: int = 0
    once: bool = False
    active: bool = True


class EventBus:
    """Process-wide publish/subscribe dispatcher.

    Handlers on one channel run synchronously, highest priority first and in
    registration order within a priority. A failing handler is logged and
    does not stop its siblings.
    """

    def __init__(self, max_history: int = 100) -> None:
        self._listeners: dict[str, list[_Listener]] = {}
        self._by_id: dict[str, _Listener] = {}
        self._middleware: list[BusMiddleware] = []
        self._history: deque[Event] = deque(maxlen=max_history)

    def on(
        self,
        channel: str,
        handler: Handler,
        *,
        priority: int = 0,
        once: bool = False,
    ) -> str:
        """Register ``handler`` for ``channel`` and return its subscription id."""
        listener = _Listener(
            id=_generate_id(),
            channel=channel,
            handler=handler,
            priority=priority,
            once=once,
        )
        listeners = self._listeners.setdefault(channel, [])
        listeners.append(listener)
        # list.sort is stable, so registration order survives within a priority.
        listeners.sort(key=lambda item: -item.priority)
        self._by_id[listener.id] = listener
        LOGGER.debug(
            "event_bus.subscribed",
            extra={"event": "event_bus.subscribed", "channel": channel},
        )
        return listener.id

    def once(self, channel: str, handler: Handler, *, priority: int = 0) -> str:
        """Register a handler that is removed after its first invocation."""
        return self.on(channel, handler, priority=priority, once=True)

    def off(self, subscription_id: str) -> bool:
        """Remove a subscription by id. Returns ``False`` for unknown ids."""
        listener = self._by_id.pop(subscription_id, None)
        if listener is None:
            return False
        listener.active = False
        listeners = self._listeners.get(listener.channel, [])
        self._listeners[listener.channel] = [
            item for item in listeners if item.id != subscription_id
        ]
        LOGGER.debug(
            "event_bus.unsubscribed",
            extra={"event": "event_bus.unsubscribed", "channel": listener.channel},
        )
        return True

    def off_handler(self, channel: str, handler: Handler) -> bool:
        """Remove the first subscription of ``handler`` on ``channel``."""
        for listener in self._listeners.get(channel, []):
            if listener.handler is handler:
                return self.off(listener.id)
        return False

    def use(self, middleware: BusMiddleware) -> None:
        """Append a middleware that may transform or drop (return ``None``) events."""
        self._middleware.append(middleware)

    def emit(
        self,
        channel: str,
        payload: Any = None,
        meta: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Publish ``payload`` on ``channel`` and return the handlers' results.

        Args:
            channel: Channel name (e.g. ``"state.changed"``)
            payload: Event payload passed to every handler
            meta: Optional metadata; ``source`` and ``correlation_id`` are
                lifted into :class:`EventMetadata`, other keys land in ``extra``
        """
        meta = dict(meta or {})
        metadata = EventMetadata(
            timestamp=time.time(),
            source=str(meta.pop("source", "unknown")),
            correlation_id=str(meta.pop("correlation_id", None) or _generate_id()),
            extra=meta,
        )
        event: Event | None = Event(channel=channel, payload=payload, metadata=metadata)
        self._history.append(event)

        for middleware in list(self._middleware):
            try:
                event = middleware(event)
            except Exception as exc:
                LOGGER.error(
                    "event_bus.middleware_failed",
                    extra={
                        "event": "event_bus.middleware_failed",
                        "channel": channel,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
                continue
            if event is None:
                LOGGER.debug(
                    "event_bus.dropped",
                    extra={"event": "event_bus.dropped", "channel": channel},
                )
                return []

        listeners = list(self._listeners.get(channel, []))
        if not listeners:
            return []

        results: list[Any] = []
        for listener in listeners:
            if not listener.active:
                continue
            if listener.once:
                self.off(listener.id)
            try:
                results.append(listener.handler(event.payload, event.metadata))
            except Exception as exc:
                LOGGER.error(
                    "event_bus.handler_failed",
                    exc_info=True,
                    extra={
                        "event": "event_bus.handler_failed",
                        "channel": channel,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
        return results

    def channels(self) -> list[str]:
        """Return channels with at least one listener."""
        return [name for name, listeners in self._listeners.items() if listeners]

    def listener_count(self, channel: str) -> int:
        return len(self._listeners.get(channel, []))

    def history(self, channel: str | None = None) -> list[Event]:
        """Return recorded events, optionally filtered by channel."""
        if channel is None:
            return list(self._history)
        return [event for event in self._history if event.channel == channel]

    def clear_history(self) -> None:
        self._history.clear()

    def remove_all(self, channel: str | None = None) -> None:
        """Clear listeners.

        Args:
            channel: Specific channel to clear, or None for all
        """
        if channel is None:
            targets = list(self._by_id.values())
        else:
            targets = list(self._listeners.get(channel, []))
        for listener in targets:
            self.off(listener.id)
