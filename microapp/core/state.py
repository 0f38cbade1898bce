"""
Shared State Store.

One store is created per service and passed by reference to every plugin
API. There is a single writer at any time because the service never runs
plugins concurrently; the last write wins.
"""

from types import MappingProxyType
from typing import Any


class StateStore:
    """Process-wide key-value store shared across the plugin pipeline."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def __repr__(self) -> str:
        return f"StateStore({self._data!r})"

    def as_mapping(self):
        """Live read-only view of the store."""
        return MappingProxyType(self._data)
