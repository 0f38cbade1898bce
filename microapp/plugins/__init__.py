"""Plugins preloaded by every service."""

from microapp.plugins.builtin import BUILTIN_PLUGINS

__all__ = ["BUILTIN_PLUGINS"]
