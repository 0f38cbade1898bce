"""
Micro-app Resolver.

Maps a micro id to its descriptor. Lookup order:

1. Dev link: ``micros_extra.<id>.link`` in the root config, when that path
   exists on disk, replaces the installed package.
2. Scoped package: ``<root>/<modules_dir>/<scope>/<id>``.
3. Bare package: ``<root>/<modules_dir>/<id>``.

Descriptors are cached under ``<scope>/<id>`` for the resolver's lifetime,
so repeated lookups never touch the disk again. The root application's own
descriptor is resolved once through ``resolve_self()``.
"""

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from loguru import logger

from microapp.config.descriptor import MicroDescriptor, dedupe
from microapp.config.loader import load_config
from microapp.config.package import read_package_info
from microapp.config.settings import SELF_KEY, Settings
from microapp.errors import NotFoundError

ConfigLoader = Callable[[Path, str], dict[str, Any] | None]


class Resolver:
    """
    Cached micro-app resolution.

    Example:
        resolver = Resolver(Settings(root="/app"))
        root_app = resolver.resolve_self()
        micro = resolver.resolve("header")  # None when not installed
    """

    def __init__(self, settings: Settings, loader: ConfigLoader = load_config):
        """
        Initialize Resolver.

        Args:
            settings: Root directory and naming conventions
            loader: Config loader, ``load_config`` unless testing
        """
        self.settings = settings
        self._loader = loader
        self._cache: dict[str, MicroDescriptor] = {}
        self._self: MicroDescriptor | None = None

    def _load(self, key: str, root: Path) -> MicroDescriptor | None:
        config = self._loader(root, self.settings.config_name)
        if config is None:
            return None
        return MicroDescriptor(
            key=key, root=root, raw=config, package=read_package_info(root)
        )

    def resolve_self(self) -> MicroDescriptor:
        """
        Resolve the root application's descriptor.

        Returns:
            The root descriptor, cached after the first call

        Raises:
            NotFoundError: If the root has no config file
        """
        if self._self is None:
            descriptor = self._load(SELF_KEY, self.settings.root)
            if descriptor is None:
                raise NotFoundError(
                    f'Not found "{self.settings.config_name}" in {self.settings.root}'
                )
            self._self = descriptor
        return self._self

    def dev_link(self, micro_id: str) -> Path | None:
        """Development link for a micro id, if configured and present on disk."""
        extra = self.resolve_self().micros_extra.get(micro_id) or {}
        link = extra.get("link")
        if not link:
            return None
        link_path = (self.settings.root / Path(link).expanduser()).resolve()
        return link_path if link_path.exists() else None

    def candidates(self, micro_id: str) -> list[Path]:
        link = self.dev_link(micro_id)
        if link is not None:
            return [link]
        modules = self.settings.modules_path
        return [modules / self.settings.scope / micro_id, modules / micro_id]

    def cache_key(self, micro_id: str) -> str:
        return f"{self.settings.scope}/{micro_id}"

    def resolve(self, micro_id: str) -> MicroDescriptor | None:
        """
        Resolve a micro id.

        Args:
            micro_id: Micro-app identifier as declared by the root config

        Returns:
            The descriptor, or None when no candidate location has a config
        """
        cache_key = self.cache_key(micro_id)
        if cache_key in self._cache:
            return self._cache[cache_key]

        for path in self.candidates(micro_id):
            descriptor = self._load(micro_id, path)
            if descriptor is not None:
                logger.debug("[Micros] resolved '{}' at {}", micro_id, path)
                self._cache[cache_key] = descriptor
                return descriptor

        return None

    def resolve_all(self, micro_ids: Iterable[str]) -> dict[str, MicroDescriptor]:
        """
        Resolve a set of micro ids, pruning what cannot be used.

        Ids are deduplicated in first-seen order. Disabled ids are skipped
        and ids that fail to resolve are dropped with a warning.

        Returns:
            Active micro id -> descriptor, in declaration order
        """
        extra = self.resolve_self().micros_extra
        active: dict[str, MicroDescriptor] = {}

        for micro_id in dedupe(micro_ids):
            if (extra.get(micro_id) or {}).get("disabled"):
                logger.info("[Micros] skip disabled micros: \"{}\"", micro_id)
                continue
            descriptor = self.resolve(micro_id)
            if descriptor is None:
                logger.warning("[Micros] Not Found micros: \"{}\"", micro_id)
                continue
            active[micro_id] = descriptor

        return active

    def clear_cache(self) -> None:
        """Forget every cached descriptor, including the root's."""
        self._cache.clear()
        self._self = None
