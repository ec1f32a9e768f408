"""Dot-path addressing into nested state mappings.

``"auth.user.name"`` is parsed once into ``("auth", "user", "name")`` and the
key tuple is used for every lookup and comparison afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from typing import Any

Keys = tuple[str, ...]

_MISSING = object()


@lru_cache(maxsize=1024)
def parse_path(path: str) -> Keys:
    """Split a dot path into its keys. The empty path addresses the root."""
    if not path:
        return ()
    keys = tuple(path.split("."))
    if any(not key for key in keys):
        raise ValueError(f"Invalid state path {path!r}: empty segment")
    return keys


def get_in(tree: Mapping[str, Any], keys: Keys, default: Any = None) -> Any:
    """Return the value stored at ``keys`` or ``default`` when any hop is missing."""
    current: Any = tree
    for key in keys:
        if not isinstance(current, Mapping):
            return default
        current = current.get(key, _MISSING)
        if current is _MISSING:
            return default
    return current


def set_in(tree: Mapping[str, Any], keys: Keys, value: Any) -> dict[str, Any]:
    """Return a new tree with ``value`` stored at ``keys``.

    Only the mappings along ``keys`` are copied; sibling subtrees are shared
    with ``tree``. Missing or non-mapping intermediates become empty dicts.
    """
    if not keys:
        if not isinstance(value, Mapping):
            raise TypeError("Root state must be a mapping")
        return dict(value)

    root = dict(tree)
    parent = root
    for key in keys[:-1]:
        child = parent.get(key)
        child = dict(child) if isinstance(child, Mapping) else {}
        parent[key] = child
        parent = child
    parent[keys[-1]] = value
    return root
