"""Service locator and the backend boundary consumed by application code."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from copy import deepcopy
from dataclasses import dataclass, field
import logging
from typing import Any, Literal, Protocol
import uuid

from .exceptions import ServiceNotFoundError, ServiceResolutionError

LOGGER = logging.getLogger(__name__)

Document = dict[str, Any]
SnapshotCallback = Callable[[list[Document]], Any]
Unsubscribe = Callable[[], None]


@dataclass
class _Registration:
    kind: Literal["singleton", "transient"]
    factory: Callable[..., Any]
    dependencies: tuple[str, ...] = ()
    instance: Any = None
    built: bool = False


class ServiceLocator:
    """Dependency container for services shared by pages and components.

    Singletons are built on first ``get`` with their dependencies resolved
    by name and passed positionally; transients are rebuilt on every ``get``.
    """

    def __init__(self) -> None:
        self._registrations: dict[str, _Registration] = {}
        self._instances: dict[str, Any] = {}
        self._factories: dict[str, Callable[[ServiceLocator], Any]] = {}
        self._resolving: list[str] = []

    def register_singleton(
        self, name: str, factory: Callable[..., Any], dependencies: Iterable[str] = ()
    ) -> None:
        self._registrations[name] = _Registration("singleton", factory, tuple(dependencies))

    def register_transient(
        self, name: str, factory: Callable[..., Any], dependencies: Iterable[str] = ()
    ) -> None:
        self._registrations[name] = _Registration("transient", factory, tuple(dependencies))

    def register_factory(self, name: str, factory: Callable[[ServiceLocator], Any]) -> None:
        """Register a callable that receives the locator and builds the service."""
        self._factories[name] = factory

    def register_instance(self, name: str, instance: Any) -> None:
        self._instances[name] = instance

    def has(self, name: str) -> bool:
        return name in self._instances or name in self._factories or name in self._registrations

    def get(self, name: str) -> Any:
        if name in self._instances:
            return self._instances[name]
        if name in self._factories:
            return self._factories[name](self)
        registration = self._registrations.get(name)
        if registration is None:
            raise ServiceNotFoundError(f"Service {name!r} not registered")
        if registration.kind == "singleton" and registration.built:
            return registration.instance

        if name in self._resolving:
            chain = " -> ".join([*self._resolving, name])
            raise ServiceResolutionError(f"Circular service dependency: {chain}")
        self._resolving.append(name)
        try:
            dependencies = [self.get(dep) for dep in registration.dependencies]
            instance = registration.factory(*dependencies)
        except ServiceNotFoundError as exc:
            raise ServiceResolutionError(f"Cannot build {name!r}: {exc}") from exc
        finally:
            self._resolving.pop()

        if registration.kind == "singleton":
            registration.instance = instance
            registration.built = True
        return instance

    def remove(self, name: str) -> None:
        self._registrations.pop(name, None)
        self._instances.pop(name, None)
        self._factories.pop(name, None)

    def clear(self) -> None:
        self._registrations.clear()
        self._instances.clear()
        self._factories.clear()

    @property
    def names(self) -> list[str]:
        return sorted({*self._registrations, *self._instances, *self._factories})


class BackendService(Protocol):
    """Document store keyed by collection and string id."""

    def create(self, collection: str, data: Mapping[str, Any], doc_id: str | None = None) -> str: ...

    def get(self, collection: str, doc_id: str) -> Document | None: ...

    def update(self, collection: str, doc_id: str, changes: Mapping[str, Any]) -> bool: ...

    def delete(self, collection: str, doc_id: str) -> bool: ...

    def query(
        self, collection: str, where: Mapping[str, Any] | None = None
    ) -> list[Document]: ...

    def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        where: Mapping[str, Any] | None = None,
    ) -> Unsubscribe: ...


@dataclass
class _Listener:
    callback: SnapshotCallback
    where: dict[str, Any] = field(default_factory=dict)
    active: bool = True


class MemoryBackend:
    """In-process ``BackendService`` used by tests and offline demos.

    Documents are returned as copies with their id under ``"id"``.
    Snapshot listeners get the matching documents immediately and again after
    every change to their collection.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._listeners: dict[str, list[_Listener]] = {}

    def create(self, collection: str, data: Mapping[str, Any], doc_id: str | None = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex[:20]
        self._collections.setdefault(collection, {})[doc_id] = deepcopy(dict(data))
        self._publish(collection)
        return doc_id

    def get(self, collection: str, doc_id: str) -> Document | None:
        data = self._collections.get(collection, {}).get(doc_id)
        if data is None:
            return None
        return {**deepcopy(data), "id": doc_id}

    def update(self, collection: str, doc_id: str, changes: Mapping[str, Any]) -> bool:
        documents = self._collections.get(collection, {})
        if doc_id not in documents:
            return False
        documents[doc_id] = {**documents[doc_id], **deepcopy(dict(changes))}
        self._publish(collection)
        return True

    def delete(self, collection: str, doc_id: str) -> bool:
        documents = self._collections.get(collection, {})
        if documents.pop(doc_id, None) is None:
            return False
        self._publish(collection)
        return True

    def query(self, collection: str, where: Mapping[str, Any] | None = None) -> list[Document]:
        criteria = dict(where or {})
        return [
            {**deepcopy(data), "id": doc_id}
            for doc_id, data in self._collections.get(collection, {}).items()
            if all(data.get(key) == value for key, value in criteria.items())
        ]

    def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        where: Mapping[str, Any] | None = None,
    ) -> Unsubscribe:
        listener = _Listener(callback=callback, where=dict(where or {}))
        self._listeners.setdefault(collection, []).append(listener)
        self._deliver(collection, listener)

        def unsubscribe() -> None:
            listener.active = False
            remaining = [item for item in self._listeners.get(collection, []) if item is not listener]
            self._listeners[collection] = remaining

        return unsubscribe

    def _publish(self, collection: str) -> None:
        for listener in list(self._listeners.get(collection, [])):
            if listener.active:
                self._deliver(collection, listener)

    def _deliver(self, collection: str, listener: _Listener) -> None:
        try:
            listener.callback(self.query(collection, listener.where))
        except Exception as exc:
            LOGGER.error(
                "backend.listener_failed",
                exc_info=True,
                extra={
                    "event": "backend.listener_failed",
                    "collection": collection,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
