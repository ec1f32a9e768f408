"""URL matching and the navigation pipeline."""

from .history import HistoryProvider, HistoryRecord, MemoryHistory
from .matching import RouteTable, parse_query, split_path
from .rendering import (
    Component,
    ComponentLoader,
    ComponentRegistry,
    MemoryRenderTarget,
    RenderTarget,
    build_breadcrumbs,
)
from .route import NavigationContext, PathSegment, RouteDescriptor
from .router import LinkClick, NavigationOutcome, Router, RouterState

__all__ = [
    "Component",
    "ComponentLoader",
    "ComponentRegistry",
    "HistoryProvider",
    "HistoryRecord",
    "LinkClick",
    "MemoryHistory",
    "MemoryRenderTarget",
    "NavigationContext",
    "NavigationOutcome",
    "PathSegment",
    "RenderTarget",
    "RouteDescriptor",
    "RouteTable",
    "Router",
    "RouterState",
    "build_breadcrumbs",
    "parse_query",
    "split_path",
]
