"""Application context: the single place where the runtime core is wired together."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from .config import Config
from .events.bus import EventBus
from .routing.history import HistoryProvider, MemoryHistory
from .routing.rendering import ComponentRegistry, MemoryRenderTarget, RenderTarget
from .routing.router import Router
from .services import ServiceLocator
from .state import ReactiveStore, validate_auth_flag
from .task_manager import TaskManager

LOGGER = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a page or component needs, created once by the application root."""

    config: dict[str, dict[str, Any]]
    bus: EventBus
    store: ReactiveStore
    router: Router
    registry: ComponentRegistry
    services: ServiceLocator
    tasks: TaskManager

    async def close(self) -> None:
        await self.router.destroy()
        await self.tasks.cancel_all()
        self.bus.remove_all()


def create_app_context(
    config: dict[str, dict[str, Any]] | None = None,
    *,
    history: HistoryProvider | None = None,
    render_target: RenderTarget | None = None,
    registry: ComponentRegistry | None = None,
) -> AppContext:
    """Build the bus, store and router from ``config`` and register them as services.

    Without a history provider or render target the in-memory implementations
    are used, which suits tests and headless hosts.
    """
    settings = Config.model_validate(config or {}).model_dump()
    bus = EventBus(max_history=settings["event_bus"]["max_history_size"])
    store = ReactiveStore(
        bus,
        max_history=settings["store"]["max_history_size"],
        max_notify_depth=settings["store"]["max_notify_depth"],
    )
    store.use(validate_auth_flag)
    store.set_state(
        "app.environment", settings["app"]["environment"], silent=True, source="AppContext"
    )

    tasks = TaskManager()
    registry = registry or ComponentRegistry()
    router_settings = settings["router"]
    router = Router(
        bus=bus,
        history=history or MemoryHistory(),
        render_target=render_target or MemoryRenderTarget(),
        loader=registry,
        not_found_path=router_settings["not_found_path"],
        error_path=router_settings["error_path"],
        default_title=router_settings["default_title"],
        origin=router_settings["origin"] or None,
        tasks=tasks,
    )

    services = ServiceLocator()
    services.register_instance("config", settings)
    services.register_instance("bus", bus)
    services.register_instance("store", store)
    services.register_instance("router", router)
    services.register_instance("components", registry)

    LOGGER.info(
        "context.created",
        extra={
            "event": "context.created",
            "environment": settings["app"]["environment"],
        },
    )
    return AppContext(
        config=settings,
        bus=bus,
        store=store,
        router=router,
        registry=registry,
        services=services,
        tasks=tasks,
    )
