"""Synchronous publish/subscribe primitives."""

from .bus import Event, EventBus, EventMetadata
from .domain import ROUTE_CHANGE, STATE_BATCH_CHANGED, STATE_CHANGED

__all__ = [
    "Event",
    "EventBus",
    "EventMetadata",
    "ROUTE_CHANGE",
    "STATE_BATCH_CHANGED",
    "STATE_CHANGED",
]
