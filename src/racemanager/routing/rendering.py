"""Component loading and render-target boundaries for the router."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
import inspect
import logging
from typing import Any, Protocol, runtime_checkable

from racemanager.exceptions import ComponentLoadError
from racemanager.routing.route import RouteDescriptor

LOGGER = logging.getLogger(__name__)

ERROR_TITLE = "Error Loading Page"
NOT_FOUND_TITLE = "Page Not Found"


@runtime_checkable
class Component(Protocol):
    """A view. ``init(params, query)`` is optional and runs after splicing."""

    def render(self, params: Mapping[str, str], query: Mapping[str, str]) -> Any: ...


class ComponentLoader(Protocol):
    def load(self, view_id: str) -> Component | Awaitable[Component]: ...


class RenderTarget(Protocol):
    """Container the router replaces on every successful navigation."""

    def replace(self, content: Any) -> None: ...

    def set_loading(self, loading: bool) -> None: ...

    def set_title(self, title: str) -> None: ...

    def update_navigation(self, route: RouteDescriptor, breadcrumbs: list[str]) -> None: ...

    def show_error(self, title: str, message: str) -> None: ...


ComponentFactory = Callable[[], Any]


class ComponentRegistry:
    """Resolve view ids to component instances through factories registered at startup.

    A factory may be a class, a plain callable, or an async callable.
    Every ``load`` creates a fresh instance.
    """

    def __init__(self) -> None:
        self._factories: dict[str, ComponentFactory] = {}

    def register(self, view_id: str, factory: ComponentFactory) -> None:
        if view_id in self._factories:
            LOGGER.warning(
                "components.replaced",
                extra={"event": "components.replaced", "view_id": view_id},
            )
        self._factories[view_id] = factory

    def has(self, view_id: str) -> bool:
        return view_id in self._factories

    @property
    def view_ids(self) -> list[str]:
        return sorted(self._factories)

    async def load(self, view_id: str) -> Component:
        factory = self._factories.get(view_id)
        if factory is None:
            raise ComponentLoadError(f"No component registered for view {view_id!r}")
        try:
            instance = factory()
            if inspect.isawaitable(instance):
                instance = await instance
        except Exception as exc:
            raise ComponentLoadError(
                f"Component factory for {view_id!r} failed: {exc}"
            ) from exc
        if not callable(getattr(instance, "render", None)):
            raise ComponentLoadError(f"Component for {view_id!r} has no render()")
        return instance


def build_breadcrumbs(route: RouteDescriptor) -> list[str]:
    """Return ``Home`` plus capitalized static segments, the last one named after the route."""
    crumbs = ["Home"]
    for segment in route.segments:
        if not segment.is_param:
            crumbs.append(segment.value[:1].upper() + segment.value[1:])
    if route.name and route.name != crumbs[-1] and len(crumbs) > 1:
        crumbs[-1] = route.name
    return crumbs


@dataclass
class MemoryRenderTarget:
    """Render target that records what the router did to it."""

    content: Any = None
    title: str = ""
    loading: bool = False
    breadcrumbs: list[str] = field(default_factory=list)
    active_route: str | None = None
    error: tuple[str, str] | None = None
    renders: int = 0
    loading_transitions: list[bool] = field(default_factory=list)

    def replace(self, content: Any) -> None:
        self.content = content
        self.error = None
        self.renders += 1

    def set_loading(self, loading: bool) -> None:
        self.loading = loading
        self.loading_transitions.append(loading)

    def set_title(self, title: str) -> None:
        self.title = title

    def update_navigation(self, route: RouteDescriptor, breadcrumbs: list[str]) -> None:
        self.active_route = route.name
        self.breadcrumbs = list(breadcrumbs)

    def show_error(self, title: str, message: str) -> None:
        self.content = None
        self.error = (title, message)
