"""
microapp - Composition core of a micro-frontend meta-framework.

Resolves a root application's micro-apps, runs its plugins through a
two-phase pipeline and composes one build config and one server config
for external build tooling.
"""

__version__ = "0.1.0"

from microapp.core.composer import ComposedConfig, compose_build, compose_server
from microapp.core.graph import PackageGraph
from microapp.core.resolver import Resolver
from microapp.errors import (
    ConfigError,
    CyclicDependencyError,
    EnvParseError,
    MicroAppError,
    NotFoundError,
    UseAfterInitError,
    ValidationError,
)
from microapp.plugin.pipeline import PluginPipeline
from microapp.service import Service

__all__ = [
    "__version__",
    "ComposedConfig",
    "ConfigError",
    "CyclicDependencyError",
    "EnvParseError",
    "MicroAppError",
    "NotFoundError",
    "PackageGraph",
    "PluginPipeline",
    "Resolver",
    "Service",
    "UseAfterInitError",
    "ValidationError",
    "compose_build",
    "compose_server",
]
