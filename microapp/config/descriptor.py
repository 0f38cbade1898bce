"""
Micro-app Descriptor.

A descriptor is the resolved, cached view of one micro-app's config (or of
the root application's own config). Descriptors are immutable: every
accessor returning a container hands out a deep copy, so composition steps
can freely modify what they receive without touching the cache.
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

# Keys describing the app itself rather than its build contribution
META_KEYS = frozenset(
    {"name", "version", "description", "type", "micros", "micros_extra", "server", "plugins"}
)


def dedupe(items) -> list:
    """Deduplicate items, keeping first-seen order."""
    return list(dict.fromkeys(items))


@dataclass(frozen=True)
class MicroDescriptor:
    """
    Resolved configuration of a micro-app.

    Attributes:
        key: Micro id the descriptor was resolved from
        root: Directory the config was loaded from
        raw: Raw config mapping (read-only)
        package: package.json data next to the config (read-only)
    """

    key: str
    root: Path
    raw: Mapping[str, Any] = field(default_factory=dict)
    package: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "root", Path(self.root))
        object.__setattr__(self, "raw", MappingProxyType(copy.deepcopy(dict(self.raw))))
        object.__setattr__(
            self, "package", MappingProxyType(copy.deepcopy(dict(self.package)))
        )

    def _get(self, key: str, default: Any = None) -> Any:
        return copy.deepcopy(self.raw.get(key, default))

    @property
    def name(self) -> str:
        return self.raw.get("name") or self.package.get("name") or ""

    @property
    def version(self) -> str:
        return self.raw.get("version") or self.package.get("version") or ""

    @property
    def description(self) -> str:
        return self.raw.get("description") or self.package.get("description") or ""

    @property
    def type(self) -> str:
        return self.raw.get("type") or ""

    @property
    def micros(self) -> tuple[str, ...]:
        """Declared micro ids, deduplicated in first-seen order."""
        micros = self.raw.get("micros")
        if isinstance(micros, (list, tuple)):
            return tuple(dedupe(micros))
        return ()

    @property
    def micros_extra(self) -> dict[str, dict[str, Any]]:
        """Per-micro development options (``link``, ``disabled``)."""
        extra = self._get("micros_extra", {}) or {}
        return {
            micro: {"link": None, "disabled": False, **extra.get(micro, {})}
            for micro in self.micros
        }

    @property
    def shared(self) -> dict[str, Any]:
        return self._get("shared") or self._get("share") or {}

    @property
    def alias(self) -> dict[str, Any]:
        return self._get("alias", {}) or {}

    @property
    def server(self) -> dict[str, Any]:
        return self._get("server", {}) or {}

    @property
    def plugins(self) -> list[Any]:
        return self._get("plugins", []) or []

    def to_config(self) -> dict[str, Any]:
        """
        Build contribution of this micro-app.

        Returns:
            Fresh dictionary without the app's meta keys
        """
        config = {k: copy.deepcopy(v) for k, v in self.raw.items() if k not in META_KEYS}
        if "share" in config:
            config.setdefault("shared", config.pop("share"))
        return config

    def to_server_config(self) -> dict[str, Any]:
        """
        Server contribution of this micro-app.

        Returns:
            Fresh dictionary with the server section plus ``key`` and ``root``
        """
        return {**self.server, "key": self.key, "root": str(self.root)}

    def to_dict(self, simple: bool = False) -> dict[str, Any]:
        data = {
            "name": self.name,
            "version": self.version,
            "type": self.type,
            "description": self.description,
            "root": str(self.root),
        }
        if not simple:
            data["micros"] = list(self.micros)
        return data
