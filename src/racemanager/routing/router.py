"""Client-side router with an asynchronous navigation pipeline.

A navigation runs parse, match, before hooks, middlewares, commit, render,
after hooks and broadcast in that order. Hooks and middlewares are called
as ``hook(new_context, previous_context)``; returning exactly ``False``
cancels the navigation before anything is committed.

Overlapping navigations are resolved by token: every ``navigate`` call
takes a new token, and an older navigation that resumes after a newer one
started stops without touching history, the current route or the view.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
import inspect
import logging
from typing import Any
from urllib.parse import urljoin

from racemanager.events.bus import EventBus
from racemanager.events.domain import ROUTE_CHANGE, route_change_payload
from racemanager.exceptions import NavigationCancelled, RenderError, RouteNotFoundError
from racemanager.routing.history import HistoryProvider
from racemanager.routing.matching import (
    RouteTable,
    build_path,
    encode_query,
    parse_query,
    split_path,
)
from racemanager.routing.rendering import (
    ERROR_TITLE,
    NOT_FOUND_TITLE,
    ComponentLoader,
    RenderTarget,
    build_breadcrumbs,
)
from racemanager.routing.route import NavigationContext, RouteDescriptor
from racemanager.task_manager import TaskManager

LOGGER = logging.getLogger(__name__)

Hook = Callable[[NavigationContext, NavigationContext | None], Any]

_EXTERNAL_PREFIXES = ("http://", "https://", "//", "mailto:", "tel:", "javascript:")


class RouterState(str, Enum):
    """Durable router states between and during navigations."""

    IDLE = "IDLE"
    NAVIGATING = "NAVIGATING"
    SETTLED = "SETTLED"


class NavigationOutcome(str, Enum):
    """What a single ``navigate`` call ended up doing."""

    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REDIRECTED = "REDIRECTED"
    NOT_FOUND = "NOT_FOUND"
    SUPERSEDED = "SUPERSEDED"
    FAILED = "FAILED"


class _Mode(Enum):
    NORMAL = "normal"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class LinkClick:
    """The parts of an anchor click the router needs to decide on interception."""

    href: str | None
    target: str | None = None
    external: bool = False
    button: int = 0
    modifier_keys: bool = False
    default_prevented: bool = False


@dataclass
class _Attempt:
    token: int
    path: str
    replace: bool
    mode: _Mode
    committed: bool = False


class _Superseded(Exception):
    """A newer navigation started while this one was suspended."""


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Router:
    """Match URL paths to views and drive the navigation pipeline.

    Usage::

        router = Router(bus=bus, history=MemoryHistory(), render_target=target,
                        loader=registry)
        router.add_route("/drivers/:driverId", "drivers", name="Driver Profile")
        router.before_each(require_auth(store))
        await router.start("/drivers/42")
    """

    def __init__(
        self,
        *,
        bus: EventBus,
        history: HistoryProvider,
        render_target: RenderTarget,
        loader: ComponentLoader,
        not_found_path: str = "/404",
        error_path: str = "/error",
        default_title: str = "RaceManager Pro",
        origin: str | None = None,
        tasks: TaskManager | None = None,
    ) -> None:
        self._bus = bus
        self._history = history
        self._render_target = render_target
        self._loader = loader
        self._not_found_path = not_found_path
        self._error_path = error_path
        self._default_title = default_title
        self._origin = origin.rstrip("/") if origin else None
        self._tasks = tasks or TaskManager()
        self._table = RouteTable()
        self._before: list[Hook] = []
        self._middleware: list[Hook] = []
        self._after: list[Hook] = []
        self._current: NavigationContext | None = None
        self._state = RouterState.IDLE
        self._generation = 0
        self._listening = False
        self._loading = False

    # Registration ---------------------------------------------------------

    def add_route(
        self,
        pattern: str,
        view_id: str,
        *,
        name: str | None = None,
        title: str | None = None,
        requires_auth: bool = True,
        layout: str = "default",
        meta: Mapping[str, Any] | None = None,
    ) -> Router:
        self.add(
            RouteDescriptor(
                pattern=pattern,
                view_id=view_id,
                name=name,
                title=title,
                requires_auth=requires_auth,
                layout=layout,
                meta=dict(meta or {}),
            )
        )
        return self

    def add(self, route: RouteDescriptor) -> Router:
        self._table.add(route)
        LOGGER.debug(
            "router.route_registered",
            extra={"event": "router.route_registered", "pattern": route.pattern},
        )
        return self

    @property
    def routes(self) -> list[RouteDescriptor]:
        return self._table.routes

    def find_route(self, path: str) -> tuple[RouteDescriptor, dict[str, str]] | None:
        """Return the route and params ``path`` would resolve to, or ``None``."""
        try:
            return self._table.match(split_path(path)[0])
        except RouteNotFoundError:
            return None

    def before_each(self, hook: Hook) -> Router:
        self._before.append(hook)
        return self

    def use(self, middleware: Hook) -> Router:
        self._middleware.append(middleware)
        return self

    def after_each(self, hook: Hook) -> Router:
        self._after.append(hook)
        return self

    # Introspection --------------------------------------------------------

    @property
    def current_route(self) -> NavigationContext | None:
        return self._current

    @property
    def state(self) -> RouterState:
        return self._state

    def is_active(self, path: str) -> bool:
        return self._current is not None and self._current.pathname == split_path(path)[0]

    # Navigation -----------------------------------------------------------

    async def navigate(self, path: str, *, replace: bool = False) -> NavigationOutcome:
        """Run the navigation pipeline for ``path``.

        Never raises for failures inside hooks, loaders or components; the
        returned outcome tells the caller what happened.
        """
        return await self._navigate(path, replace=replace, mode=_Mode.NORMAL)

    async def _navigate(self, path: str, *, replace: bool, mode: _Mode) -> NavigationOutcome:
        self._table.freeze()
        self._generation += 1
        attempt = _Attempt(token=self._generation, path=path, replace=replace, mode=mode)
        self._state = RouterState.NAVIGATING
        outcome = NavigationOutcome.FAILED
        try:
            outcome = await self._run_pipeline(attempt)
        except NavigationCancelled:
            outcome = NavigationOutcome.CANCELLED
        except _Superseded:
            outcome = NavigationOutcome.SUPERSEDED
            LOGGER.debug(
                "router.navigation_superseded",
                extra={"event": "router.navigation_superseded", "path": path},
            )
        except Exception as exc:
            outcome = await self._handle_failure(attempt, exc)
        finally:
            if attempt.token == self._generation:
                self._set_loading(False)
                self._state = (
                    RouterState.SETTLED
                    if outcome is NavigationOutcome.COMPLETED
                    else RouterState.IDLE
                )
        return outcome

    async def _handle_failure(self, attempt: _Attempt, exc: Exception) -> NavigationOutcome:
        if attempt.token != self._generation:
            return NavigationOutcome.SUPERSEDED
        LOGGER.error(
            "router.navigation_failed",
            exc_info=exc,
            extra={
                "event": "router.navigation_failed",
                "path": attempt.path,
                "mode": attempt.mode.value,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        if attempt.mode is _Mode.ERROR:
            # The error route itself failed; show the inline view and stop here.
            self._render_target.show_error(ERROR_TITLE, str(exc))
            return NavigationOutcome.FAILED
        fallback = await self._navigate(
            self._error_path,
            replace=attempt.replace or attempt.committed,
            mode=_Mode.ERROR,
        )
        if fallback is NavigationOutcome.SUPERSEDED:
            return fallback
        return NavigationOutcome.FAILED

    async def _run_pipeline(self, attempt: _Attempt) -> NavigationOutcome:
        pathname, search = split_path(attempt.path)
        query = parse_query(search)

        try:
            route, params = self._table.match(pathname)
        except RouteNotFoundError:
            if attempt.mode is not _Mode.NORMAL:
                raise
            LOGGER.warning(
                "router.route_not_found",
                extra={"event": "router.route_not_found", "path": attempt.path},
            )
            return await self._redirect_not_found(attempt, pathname)

        context = NavigationContext(
            pathname=pathname,
            search=search,
            route=route,
            params=params,
            query=query,
            full_path=attempt.path,
        )
        previous = self._current

        for stage, hooks in (("before_each", self._before), ("middleware", self._middleware)):
            for hook in list(hooks):
                result = await _resolve(hook(context, previous))
                self._check_current(attempt)
                if result is False:
                    LOGGER.info(
                        "router.navigation_cancelled",
                        extra={
                            "event": "router.navigation_cancelled",
                            "path": attempt.path,
                            "stage": stage,
                        },
                    )
                    raise NavigationCancelled(f"{stage} cancelled navigation to {attempt.path!r}")

        title = route.title or self._default_title
        history_state = {"path": attempt.path}
        if attempt.replace:
            self._history.replace_state(history_state, title, attempt.path)
        else:
            self._history.push_state(history_state, title, attempt.path)
        attempt.committed = True
        self._render_target.set_title(title)
        self._current = context

        await self._render(context, attempt)
        self._check_current(attempt)

        for hook in list(self._after):
            await _resolve(hook(context, previous))
            self._check_current(attempt)

        self._bus.emit(
            ROUTE_CHANGE,
            route_change_payload(context, previous),
            {"source": "Router"},
        )
        LOGGER.info(
            "router.navigated",
            extra={
                "event": "router.navigated",
                "path": attempt.path,
                "route": route.name,
            },
        )
        return NavigationOutcome.COMPLETED

    async def _redirect_not_found(self, attempt: _Attempt, pathname: str) -> NavigationOutcome:
        try:
            self._table.match(split_path(self._not_found_path)[0])
        except RouteNotFoundError:
            self._render_target.show_error(NOT_FOUND_TITLE, f"No page at {pathname}")
            return NavigationOutcome.NOT_FOUND
        outcome = await self._navigate(
            self._not_found_path, replace=attempt.replace, mode=_Mode.NOT_FOUND
        )
        if outcome is NavigationOutcome.COMPLETED:
            return NavigationOutcome.REDIRECTED
        return outcome

    async def _render(self, context: NavigationContext, attempt: _Attempt) -> None:
        target = self._render_target
        self._set_loading(True)
        try:
            component = await _resolve(self._loader.load(context.route.view_id))
            self._check_current(attempt)
            try:
                content = await _resolve(
                    component.render(dict(context.params), dict(context.query))
                )
            except Exception as exc:
                raise RenderError(
                    f"View {context.route.view_id!r} failed to render: {exc}"
                ) from exc
            self._check_current(attempt)
            target.replace(content)
            init = getattr(component, "init", None)
            if callable(init):
                await _resolve(init(dict(context.params), dict(context.query)))
                self._check_current(attempt)
            target.update_navigation(context.route, build_breadcrumbs(context.route))
        except _Superseded:
            raise
        except Exception as exc:
            if attempt.token != self._generation:
                # A newer navigation owns the view now.
                raise _Superseded() from exc
            LOGGER.error(
                "router.render_failed",
                exc_info=exc,
                extra={
                    "event": "router.render_failed",
                    "view_id": context.route.view_id,
                    "path": context.full_path,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            target.show_error(ERROR_TITLE, str(exc))
        finally:
            if attempt.token == self._generation:
                self._set_loading(False)

    def _set_loading(self, loading: bool) -> None:
        if loading != self._loading:
            self._loading = loading
            self._render_target.set_loading(loading)

    def _check_current(self, attempt: _Attempt) -> None:
        if attempt.token != self._generation:
            raise _Superseded()

    # Host bridges ---------------------------------------------------------

    def handle_link_click(self, click: LinkClick) -> bool:
        """Turn a same-origin link click into a navigation task.

        Returns ``True`` when the click was intercepted and the host should
        prevent the default page load. Must be called from the event loop.
        """
        href = (click.href or "").strip()
        if self._origin and (href == self._origin or href.startswith(self._origin + "/")):
            href = href[len(self._origin) :] or "/"
        if (
            not href
            or click.default_prevented
            or click.button != 0
            or click.modifier_keys
            or click.target
            or click.external
            or href.startswith("#")
            or href.lower().startswith(_EXTERNAL_PREFIXES)
        ):
            return False
        if not href.startswith("/"):
            base = self._current.pathname if self._current else "/"
            href = urljoin(base, href)
        self._tasks.spawn(self.navigate(href))
        return True

    def handle_popstate(self, state: Any, location: str) -> asyncio.Task[Any]:
        """Re-enter the pipeline in replace mode for a history traversal."""
        path = location
        if isinstance(state, Mapping) and state.get("path"):
            path = str(state["path"])
        return self._tasks.spawn(self.navigate(path, replace=True))

    async def start(self, initial_path: str = "/") -> NavigationOutcome:
        """Listen for history traversal and navigate to the initial path."""
        if not self._listening:
            self._history.add_popstate_listener(self.handle_popstate)
            self._listening = True
        return await self.navigate(initial_path, replace=True)

    def back(self) -> None:
        self._history.go(-1)

    def forward(self) -> None:
        self._history.go(1)

    def go(self, delta: int) -> None:
        self._history.go(delta)

    async def wait_idle(self) -> None:
        """Await navigations scheduled by link clicks and popstate events."""
        await self._tasks.await_all()

    async def destroy(self) -> None:
        if self._listening:
            self._history.remove_popstate_listener(self.handle_popstate)
            self._listening = False
        await self._tasks.cancel_all()
        self._before.clear()
        self._middleware.clear()
        self._after.clear()
        self._generation += 1
        self._state = RouterState.IDLE
        LOGGER.info("router.destroyed", extra={"event": "router.destroyed"})

    # URL building ---------------------------------------------------------

    def build_url(
        self,
        name: str,
        params: Mapping[str, Any] | None = None,
        query: Mapping[str, Any] | None = None,
    ) -> str | None:
        """Build a path for the route called ``name``; ``None`` if no such route."""
        route = self._table.by_name(name)
        if route is None:
            LOGGER.warning(
                "router.build_url.unknown_route",
                extra={"event": "router.build_url.unknown_route", "route": name},
            )
            return None
        path, missing = build_path(route, params or {})
        if missing:
            LOGGER.warning(
                "router.build_url.missing_params",
                extra={
                    "event": "router.build_url.missing_params",
                    "route": name,
                    "params": missing,
                },
            )
        query_string = encode_query(query or {})
        return f"{path}?{query_string}" if query_string else path
