"""
Module Aliases.

Micro-apps publish modules through their ``shared`` map. Each entry becomes
an alias ``@<name>/<key>`` pointing at the module's absolute path, which
plugin links may then reference (``link = "@header/plugin"``).
"""

from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from microapp.config.descriptor import MicroDescriptor


def alias_prefix(name: str) -> str:
    return name if name.startswith("@") else f"@{name}"


def build_aliases(descriptor: MicroDescriptor) -> dict[str, str]:
    """
    Alias table for one descriptor.

    Returns:
        Alias -> absolute path; empty when the app has no name
    """
    if not descriptor.name:
        return {}

    prefix = alias_prefix(descriptor.name)
    aliases: dict[str, str] = {}
    for key, target in descriptor.shared.items():
        if isinstance(target, str) and target:
            aliases.setdefault(f"{prefix}/{key}", str((descriptor.root / target).resolve()))
    return aliases


def inject_module_aliases(
    descriptors: Iterable[MicroDescriptor],
    registry: dict[str, str],
    injected: set[str],
) -> dict[str, str]:
    """
    Register shared-module aliases of each descriptor once.

    Args:
        descriptors: Descriptors to register (micro-apps first, root last)
        registry: Alias table to extend in place
        injected: Keys of descriptors already registered

    Returns:
        The updated alias table
    """
    for descriptor in descriptors:
        if descriptor.key in injected:
            continue
        aliases = build_aliases(descriptor)
        for alias, path in aliases.items():
            registry.setdefault(alias, path)
        injected.add(descriptor.key)
        if aliases:
            logger.debug("[Alias] {} -> {}", descriptor.key, sorted(aliases))
    return registry


def resolve_alias(link: str, registry: dict[str, str]) -> Path | None:
    """
    Expand a link through the alias table.

    ``@name/key`` matches exactly; ``@name/key/rest`` resolves ``rest``
    beneath the aliased path.
    """
    if link in registry:
        return Path(registry[link])
    for alias, target in registry.items():
        if link.startswith(f"{alias}/"):
            return Path(target) / link[len(alias) + 1:]
    return None
