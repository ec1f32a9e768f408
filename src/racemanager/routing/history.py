"""History provider boundary and an in-memory implementation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import Any, Protocol

LOGGER = logging.getLogger(__name__)

PopStateListener = Callable[[Any, str], Any]


class HistoryProvider(Protocol):
    """Subset of the browser History API the router relies on."""

    def push_state(self, state: Any, title: str, url: str) -> None: ...

    def replace_state(self, state: Any, title: str, url: str) -> None: ...

    def go(self, delta: int) -> None: ...

    def add_popstate_listener(self, listener: PopStateListener) -> None: ...

    def remove_popstate_listener(self, listener: PopStateListener) -> None: ...


@dataclass(frozen=True)
class HistoryRecord:
    state: Any
    title: str
    url: str


class MemoryHistory:
    """History stack for hosts without a browser, and for tests.

    ``push_state`` truncates forward entries like the browser does.
    Traversal (``back``/``forward``/``go``) fires popstate listeners with the
    entry's state and url.
    """

    def __init__(self, initial_url: str = "/") -> None:
        self._entries: list[HistoryRecord] = [HistoryRecord(None, "", initial_url)]
        self._index = 0
        self._listeners: list[PopStateListener] = []

    @property
    def entries(self) -> list[HistoryRecord]:
        return list(self._entries)

    @property
    def current(self) -> HistoryRecord:
        return self._entries[self._index]

    @property
    def length(self) -> int:
        return len(self._entries)

    def push_state(self, state: Any, title: str, url: str) -> None:
        del self._entries[self._index + 1 :]
        self._entries.append(HistoryRecord(state, title, url))
        self._index += 1

    def replace_state(self, state: Any, title: str, url: str) -> None:
        self._entries[self._index] = HistoryRecord(state, title, url)

    def back(self) -> None:
        self.go(-1)

    def forward(self) -> None:
        self.go(1)

    def go(self, delta: int) -> None:
        target = self._index + delta
        if delta == 0 or not 0 <= target < len(self._entries):
            return
        self._index = target
        record = self._entries[target]
        for listener in list(self._listeners):
            try:
                listener(record.state, record.url)
            except Exception:
                LOGGER.exception(
                    "history.popstate_listener_failed",
                    extra={"event": "history.popstate_listener_failed"},
                )

    def add_popstate_listener(self, listener: PopStateListener) -> None:
        self._listeners.append(listener)

    def remove_popstate_listener(self, listener: PopStateListener) -> None:
        self._listeners = [item for item in self._listeners if item != listener]
