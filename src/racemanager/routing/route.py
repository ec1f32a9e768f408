"""Route descriptor and navigation context frozen dataclasses."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Static:  ``drivers``    (is_param=False)
    Param:   ``:driverId``  (is_param=True, param_name="driverId")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None


def parse_pattern(pattern: str) -> tuple[PathSegment, ...]:
    """Parse a route pattern into segments.

    Examples::

        "/"                 -> ()
        "/races"            -> (PathSegment("races"),)
        "/races/:raceId"    -> (PathSegment("races"), PathSegment(":raceId", True, "raceId"))
    """
    segments: list[PathSegment] = []
    for part in pattern.strip("/").split("/"):
        if not part:
            continue
        if part.startswith(":"):
            name = part[1:]
            if not name:
                raise ValueError(f"Unnamed parameter in route pattern {pattern!r}")
            segments.append(PathSegment(value=part, is_param=True, param_name=name))
        else:
            segments.append(PathSegment(value=part))
    return tuple(segments)


@dataclass(frozen=True, slots=True)
class RouteDescriptor:
    """A frozen route definition, registered once at startup."""

    pattern: str
    view_id: str
    name: str | None = None
    title: str | None = None
    requires_auth: bool = True
    layout: str = "default"
    meta: Mapping[str, Any] = field(default_factory=dict)
    segments: tuple[PathSegment, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        if not self.segments:
            object.__setattr__(self, "segments", parse_pattern(self.pattern))
        if self.name is None:
            object.__setattr__(self, "name", self.pattern.strip("/") or "home")

    @property
    def is_dynamic(self) -> bool:
        return any(segment.is_param for segment in self.segments)

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(s.param_name for s in self.segments if s.param_name)


@dataclass(frozen=True, slots=True)
class NavigationContext:
    """Working record for one navigation attempt."""

    pathname: str
    search: str
    route: RouteDescriptor
    params: Mapping[str, str]
    query: Mapping[str, str]
    full_path: str

    @property
    def name(self) -> str | None:
        return self.route.name

    @property
    def requires_auth(self) -> bool:
        return self.route.requires_auth
