"""Path splitting, query handling and the ordered route table."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import parse_qsl, quote, unquote, urlencode

from racemanager.exceptions import RouteNotFoundError, RouterError
from racemanager.routing.route import RouteDescriptor


def split_path(path: str) -> tuple[str, str]:
    """Split a navigation target into ``(pathname, search)``.

    The fragment is dropped and the leading ``?`` is removed from ``search``.
    """
    without_fragment = path.split("#", 1)[0]
    pathname, _, search = without_fragment.partition("?")
    return pathname or "/", search


def path_parts(pathname: str) -> list[str]:
    """Return the non-empty slash-delimited parts of ``pathname``."""
    return [part for part in pathname.strip("/").split("/") if part]


def parse_query(search: str) -> dict[str, str]:
    """Parse a query string; the last value wins on duplicate keys."""
    return dict(parse_qsl(search.lstrip("?"), keep_blank_values=True))


def encode_query(query: Mapping[str, Any]) -> str:
    """Encode a query mapping, dropping ``None`` values."""
    return urlencode([(str(k), str(v)) for k, v in query.items() if v is not None])


def match_route(route: RouteDescriptor, parts: list[str]) -> dict[str, str] | None:
    """Return bound params if ``route`` matches ``parts``, else ``None``."""
    if len(route.segments) != len(parts):
        return None
    params: dict[str, str] = {}
    for segment, part in zip(route.segments, parts):
        if segment.is_param:
            params[segment.param_name or ""] = unquote(part)
        elif segment.value != part:
            return None
    return params


class RouteTable:
    """Ordered route registry.

    Usage::

        table = RouteTable()
        table.add(RouteDescriptor("/drivers", "drivers"))
        table.add(RouteDescriptor("/drivers/:driverId", "drivers"))
        table.freeze()
        route, params = table.match("/drivers/42")
    """

    __slots__ = ("_frozen", "_routes")

    def __init__(self, routes: Iterable[RouteDescriptor] = ()) -> None:
        self._routes: list[RouteDescriptor] = []
        self._frozen = False
        for route in routes:
            self.add(route)

    def add(self, route: RouteDescriptor) -> None:
        """Register a route. Must be called before freeze()."""
        if self._frozen:
            msg = "Cannot add routes after the router has started."
            raise RouterError(msg)
        self._routes.append(route)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def routes(self) -> list[RouteDescriptor]:
        return list(self._routes)

    def by_name(self, name: str) -> RouteDescriptor | None:
        for route in self._routes:
            if route.name == name:
                return route
        return None

    def match(self, pathname: str) -> tuple[RouteDescriptor, dict[str, str]]:
        """Match ``pathname`` against registered routes.

        Static routes win over dynamic ones; otherwise registration order
        decides. Raises ``RouteNotFoundError`` when nothing matches.
        """
        parts = path_parts(pathname)
        for route in self._routes:
            if not route.is_dynamic and match_route(route, parts) is not None:
                return route, {}
        for route in self._routes:
            if route.is_dynamic:
                params = match_route(route, parts)
                if params is not None:
                    return route, params
        raise RouteNotFoundError(pathname)


def build_path(route: RouteDescriptor, params: Mapping[str, Any]) -> tuple[str, list[str]]:
    """Substitute params into ``route``'s pattern.

    Returns the built path and the names of params that were not supplied;
    unsupplied segments are kept verbatim.
    """
    missing: list[str] = []
    parts: list[str] = []
    for segment in route.segments:
        if not segment.is_param:
            parts.append(segment.value)
            continue
        name = segment.param_name or ""
        if name in params and params[name] is not None:
            parts.append(quote(str(params[name]), safe=""))
        else:
            missing.append(name)
            parts.append(segment.value)
    return "/" + "/".join(parts), missing
