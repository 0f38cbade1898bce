"""
Merge Primitives.

- deep_merge(): "smart" merge of config objects
- merge_server_entries(): combine server entry points across apps
- merge_server_hooks(): combine server lifecycle hook modules across apps

All functions return fresh structures and never mutate their arguments.
"""

import copy
from pathlib import Path
from typing import Any


def _dedupe_list(items: list[Any]) -> list[Any]:
    # Values may be unhashable (tables inside arrays), so compare by equality
    result: list[Any] = []
    for item in items:
        if item not in result:
            result.append(item)
    return result


def _merge_two(base: Any, other: Any) -> Any:
    if isinstance(base, dict) and isinstance(other, dict):
        merged = dict(base)
        for key, value in other.items():
            merged[key] = _merge_two(merged[key], value) if key in merged else copy.deepcopy(value)
        return merged

    if isinstance(base, list) and isinstance(other, list):
        return _dedupe_list(base + copy.deepcopy(other))

    return copy.deepcopy(other)


def deep_merge(*objects: dict[str, Any]) -> dict[str, Any]:
    """
    Merge config objects left to right.

    Objects merge recursively key by key, lists are concatenated then
    deduplicated, and any other value is replaced by the later argument.

    Args:
        *objects: Mappings to merge; None entries are skipped

    Returns:
        New merged dictionary
    """
    result: dict[str, Any] = {}
    for obj in objects:
        if obj:
            result = _merge_two(result, copy.deepcopy(dict(obj)))
    return result


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _resolve_path(root: str | None, entry: str) -> str:
    path = Path(entry)
    if root and not path.is_absolute():
        path = Path(root) / path
    return str(path)


def merge_server_entries(*configs: dict[str, Any]) -> dict[str, list[str]]:
    """
    Combine server entry points.

    Each config contributes its ``entry`` (a path or list of paths,
    relative to its ``root``) under its ``key``.

    Returns:
        Mapping of app key -> absolute entry paths, in contribution order
    """
    entries: dict[str, list[str]] = {}
    for config in configs:
        if not config:
            continue
        key = config.get("key", "")
        paths = [_resolve_path(config.get("root"), e) for e in _as_list(config.get("entry"))]
        if not paths:
            continue
        entries[key] = _dedupe_list(entries.get(key, []) + paths)
    return entries


def merge_server_hooks(*configs: dict[str, Any]) -> list[dict[str, str]]:
    """
    Combine server lifecycle hook modules.

    Each config contributes its ``hooks`` (a path or list of paths,
    relative to its ``root``).

    Returns:
        Ordered list of ``{"key", "path"}`` records, unique by path
    """
    hooks: list[dict[str, str]] = []
    seen: set[str] = set()
    for config in configs:
        if not config:
            continue
        for hook in _as_list(config.get("hooks")):
            path = _resolve_path(config.get("root"), hook)
            if path in seen:
                continue
            seen.add(path)
            hooks.append({"key": config.get("key", ""), "path": path})
    return hooks
