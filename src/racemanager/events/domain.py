"""Channel names shared between the runtime core and its collaborators."""

from __future__ import annotations

from typing import Any

STATE_CHANGED = "state.changed"
STATE_BATCH_CHANGED = "state.batch_changed"
ROUTE_CHANGE = "routeChange"


def state_changed_payload(
    path: str, value: Any, old_value: Any, state: dict[str, Any]
) -> dict[str, Any]:
    return {"path": path, "value": value, "old_value": old_value, "state": state}


def state_batch_changed_payload(
    updates: dict[str, Any], state: dict[str, Any], old_state: dict[str, Any]
) -> dict[str, Any]:
    return {"updates": updates, "state": state, "old_state": old_state}


def route_change_payload(route: Any, previous_route: Any) -> dict[str, Any]:
    return {"route": route, "previous_route": previous_route}
