"""
Dynamic Plugin Loader.

This module turns a plugin link into its ``apply`` callable.

Supported links:
- Dotted module path: ``package.module`` or ``package.module:attr``
- Python file path: ``./plugins/mine.py`` (relative to the owning app root)
- Module alias: ``@name/key`` as registered from a micro-app's shared map

A module exposes its implementation as ``apply`` (or ``default``).
"""

import importlib
import importlib.util
import re
import sys
from collections.abc import Callable
from pathlib import Path
from types import ModuleType

from microapp.core.aliases import resolve_alias


class LoaderError(Exception):
    """Base exception for loader-related errors."""

    pass


# Module cache: resolved file path -> module
_module_cache: dict[str, ModuleType] = {}

EXPORT_NAMES = ("apply", "default")


def _module_name_for(path: Path) -> str:
    slug = re.sub(r"\W", "_", str(path.with_suffix("")))
    return f"microapp_plugin_{slug.strip('_')}"


def load_module_from_path(path: Path) -> ModuleType:
    """
    Load a Python file as a module.

    Args:
        path: File to load; a package directory loads its ``__init__.py``

    Returns:
        Loaded module (cached by path)

    Raises:
        LoaderError: If the file does not exist or fails to execute
    """
    if path.is_dir():
        path = path / "__init__.py"
    elif not path.exists() and path.with_suffix(".py").exists():
        path = path.with_suffix(".py")

    if not path.is_file():
        raise LoaderError(f"Plugin file not found: {path}")

    cache_key = str(path.resolve())
    if cache_key in _module_cache:
        return _module_cache[cache_key]

    module_name = _module_name_for(path.resolve())
    try:
        spec = importlib.util.spec_from_file_location(module_name, path)

        if spec is None or spec.loader is None:
            raise LoaderError(f"Failed to create module spec for {path}")

        module = importlib.util.module_from_spec(spec)

        # Add to sys.modules before execution
        sys.modules[module_name] = module

        spec.loader.exec_module(module)

        _module_cache[cache_key] = module
        return module

    except LoaderError:
        sys.modules.pop(module_name, None)
        raise
    except Exception as e:
        # Clean up sys.modules on failure
        sys.modules.pop(module_name, None)
        raise LoaderError(f"Failed to load plugin module {path}: {e}") from e


def _export_of(target: object, link: str) -> Callable:
    if isinstance(target, ModuleType):
        for name in EXPORT_NAMES:
            export = getattr(target, name, None)
            if callable(export):
                return export
        raise LoaderError(f"Plugin module '{link}' exports no 'apply' function")
    if not callable(target):
        raise LoaderError(f"Plugin '{link}' is not callable")
    return target


def _is_path_link(link: str) -> bool:
    return link.endswith(".py") or link.startswith((".", "/", "~")) or "\\" in link


def load_plugin(
    link: str,
    base: Path | None = None,
    aliases: dict[str, str] | None = None,
) -> Callable:
    """
    Resolve a plugin link to its implementation.

    Args:
        link: Plugin link (dotted path, file path or module alias)
        base: Directory relative file paths are resolved against
        aliases: Module alias table

    Returns:
        The plugin's apply callable

    Raises:
        LoaderError: If the link cannot be resolved
    """
    if link.startswith("@"):
        path = resolve_alias(link, aliases or {})
        if path is None:
            raise LoaderError(f"Unknown module alias: {link}")
        return _export_of(load_module_from_path(path), link)

    if _is_path_link(link):
        path = Path(link).expanduser()
        if not path.is_absolute() and base is not None:
            path = base / path
        return _export_of(load_module_from_path(path), link)

    module_name, _, attr = link.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise LoaderError(f"Failed to import plugin '{link}': {e}") from e

    if not attr:
        return _export_of(module, link)

    try:
        target = getattr(module, attr)
    except AttributeError as e:
        raise LoaderError(f"Plugin '{link}' not found in {module_name}") from e
    return _export_of(target, link)


def clear_cache() -> None:
    """Clear all cached plugin modules."""
    for cache_key, module in list(_module_cache.items()):
        sys.modules.pop(module.__name__, None)
        del _module_cache[cache_key]
