"""
microapp Configuration - Loading and describing micro-app configs.

This module provides:
- Settings: filesystem layout and naming conventions
- load_config(): TOML/JSON config loading
- load_environment(): dotenv-based environment overrides
- MicroDescriptor: immutable view of one micro-app's config
- Package: package.json manifests for the package graph
"""

from microapp.config.descriptor import MicroDescriptor
from microapp.config.env import load_environment
from microapp.config.loader import load_config
from microapp.config.package import Package, parse_package
from microapp.config.settings import SELF_KEY, Settings

__all__ = [
    "SELF_KEY",
    "MicroDescriptor",
    "Package",
    "Settings",
    "load_config",
    "load_environment",
    "parse_package",
]
