"""
Utils Module - Helpers shared by the pipeline and the service.

- freeze(): read-only deep snapshot of plain data
- thaw(): mutable deep copy of a frozen snapshot
"""

import copy
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any


def freeze(value: Any) -> Any:
    """
    Build a read-only deep snapshot.

    Mappings become ``MappingProxyType``, lists and tuples become tuples,
    sets become frozensets; other values are deep-copied.

    Example:
        args = freeze({"name": "build", "args": ["--prod"]})
        args["args"]  # ('--prod',)
    """
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze(v) for v in value)
    return copy.deepcopy(value)


def thaw(value: Any) -> Any:
    """Inverse of freeze(): mutable deep copy with dicts and lists."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    if isinstance(value, frozenset):
        return {thaw(v) for v in value}
    return copy.deepcopy(value)
