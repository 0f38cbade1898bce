"""
microapp Plugin System - Registration, initialization and hook phases.

This module handles:
- Plugin registration and link resolution
- Capability-scoped plugin APIs
- Synchronous and asynchronous hook phases
- Lockdown of registration methods after initialization
"""

from microapp.plugin.api import HOOK_PHASES, PluginAPI
from microapp.plugin.pipeline import RESERVED_PREFIX, Plugin, PluginPipeline

__all__ = ["HOOK_PHASES", "RESERVED_PREFIX", "Plugin", "PluginAPI", "PluginPipeline"]
