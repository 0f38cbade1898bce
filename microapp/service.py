"""
Service - Orchestrates resolution, plugins and composition.

``init()`` runs the fixed sequence:

1. load environment overrides
2. register shared-module aliases
3. collect plugins (built-in, registered, micro-apps, root app)
4. initialize plugins and lock their APIs
5. on_plugin_init_done
6. before_merge_config -> compose build -> after_merge_config
7. before_merge_server_config -> compose server -> after_merge_server_config
8. on_init_will_done -> on_init_done

``run(name, args)`` initializes and then dispatches a command.
"""

import copy
import sys
from collections.abc import Mapping
from functools import cached_property
from pathlib import Path
from typing import Any

from loguru import logger

from microapp.config.descriptor import MicroDescriptor
from microapp.config.env import load_environment
from microapp.config.loader import load_config
from microapp.config.package import PACKAGE_JSON, Package, parse_package
from microapp.config.settings import SELF_KEY, Settings
from microapp.core.aliases import inject_module_aliases
from microapp.core.composer import ComposedConfig, compose_build, compose_server
from microapp.core.graph import PackageGraph
from microapp.core.resolver import Resolver
from microapp.core.state import StateStore
from microapp.errors import ValidationError
from microapp.plugin.pipeline import PluginPipeline
from microapp.plugins.builtin import BUILTIN_PLUGINS


class Service:
    """
    Root application service.

    Example:
        service = Service(root="/path/to/app")
        service.register_plugin({"id": "my-plugin", "apply": apply})
        composed = service.init()
        service.run_command("build", {"mode": "production"})
    """

    def __init__(
        self,
        root: Path | str | None = None,
        *,
        settings: Settings | None = None,
        resolver: Resolver | None = None,
        state: StateStore | None = None,
        builtins: bool = True,
    ):
        """
        Initialize Service.

        Args:
            root: Root application directory (ignored when settings given)
            settings: Explicit settings, ``Settings.from_env(root)`` otherwise
            resolver: Resolver to use, mainly for tests
            state: Shared state store, a fresh one otherwise
            builtins: Preload the built-in plugins
        """
        self.settings = settings or Settings.from_env(root)
        self.resolver = resolver or Resolver(self.settings)
        self.state = state if state is not None else StateStore()
        self.pipeline = PluginPipeline(self.state)

        self.config: dict[str, Any] = {}
        self.server_config: dict[str, Any] = {}
        self.initialized = False
        self._injected_aliases: set[str] = set()

        if builtins:
            for plugin_id, apply in BUILTIN_PLUGINS:
                self.pipeline.add_builtin(plugin_id, apply)

        self._share_properties()

    def _share_properties(self) -> None:
        share = self.pipeline.share
        share("root", lambda: self.root)
        share("self", lambda: self.self_descriptor.to_dict())
        share("micros", lambda: self.micros)
        share("self_config", lambda: self.self_config)
        share("micros_config", lambda: {k: d.to_config() for k, d in self.micros_config.items()})
        share("config", lambda: self.config)
        share("server_config", lambda: self.server_config)
        share("workspace_packages", self.workspace_order)
        self.pipeline.share_function("parse_config", self.parse_config)

    # ------------------------------------------------------------------
    # Descriptors
    # ------------------------------------------------------------------

    @property
    def root(self) -> Path:
        return self.settings.root

    @property
    def self_descriptor(self) -> MicroDescriptor:
        """Root application descriptor; NotFoundError without a root config."""
        return self.resolver.resolve_self()

    @property
    def self_config(self) -> dict[str, Any]:
        return self.self_descriptor.to_config()

    @property
    def self_server_config(self) -> dict[str, Any]:
        return self.self_descriptor.to_server_config()

    @cached_property
    def micros_config(self) -> dict[str, MicroDescriptor]:
        """Active micro-apps, resolved and pruned before any use."""
        return self.resolver.resolve_all(self.self_descriptor.micros)

    @property
    def micros(self) -> list[str]:
        """Active micro ids, deduplicated in declaration order."""
        return list(self.micros_config)

    @cached_property
    def micros_package_graph(self) -> PackageGraph:
        """Graph of active micro-apps linked by the micros they declare."""
        packages = [
            Package(name=key, version=d.version, location=d.root, manifest={"micros": list(d.micros)})
            for key, d in self.micros_config.items()
        ]
        return PackageGraph(packages, "micros")

    def micros_order(self) -> list[str]:
        """Merge order of micro-apps: declared dependencies first."""
        return self.micros_package_graph.topological_order()

    @cached_property
    def workspace_package_graph(self) -> PackageGraph:
        """Graph of packages installed in the temp dir's node_modules."""
        modules = self.settings.temp_path / self.settings.modules_dir
        paths = sorted(modules.glob(f"*/{PACKAGE_JSON}")) + sorted(modules.glob(f"*/*/{PACKAGE_JSON}"))
        packages = [parse_package(path) for path in paths]
        logger.debug("[Workspace] packages length: '{}'", len(packages))
        return PackageGraph(packages, "dependencies")

    def workspace_order(self) -> list[str]:
        return self.workspace_package_graph.topological_order()

    # ------------------------------------------------------------------
    # Side configs
    # ------------------------------------------------------------------

    @cached_property
    def extra_config(self) -> dict[str, Any]:
        """Root's ``micro-app.extra.config`` file, empty when absent."""
        return load_config(self.root, self.settings.extra_config_name) or {}

    def parse_config(self, name: str, key: str = SELF_KEY) -> dict[str, Any] | None:
        """
        Load the side config ``name`` of an app.

        Sources, first non-empty wins:

        1. ``<app root>/micro-app.<name>.config``
        2. ``<app root>/.micro-app/<name>.config``
        3. the ``[name]`` table of the root's extra config

        Args:
            name: Side config name, e.g. ``"vue"``
            key: Micro id, or the root app's key by default

        Returns:
            Config dictionary, or None when the key is not an active app or
            no source defines the config
        """
        if not isinstance(name, str) or not name:
            raise ValidationError("name must be a non-empty string")
        if not isinstance(key, str):
            raise ValidationError("key must be a string")

        descriptor = self.self_descriptor if key == SELF_KEY else self.micros_config.get(key)
        if descriptor is None:
            return None

        config = load_config(descriptor.root, self.settings.side_config_name(name))
        if config:
            return config

        config = load_config(descriptor.root / self.settings.temp_dir, f"{name}.config")
        if config:
            return config

        extra = self.extra_config.get(name)
        if extra:
            return copy.deepcopy(extra)
        return None

    # ------------------------------------------------------------------
    # State and paths
    # ------------------------------------------------------------------

    def get_state(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)

    def set_state(self, key: str, value: Any) -> None:
        self.state.set(key, value)

    def resolve(self, path: str) -> Path:
        return self.root / path

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    def register_plugin(self, record: Mapping[str, Any]) -> None:
        self.pipeline.register_plugin(record)

    def change_plugin_option(self, plugin_id: str, new_opts: Mapping[str, Any] | None = None) -> None:
        self.pipeline.change_plugin_option(plugin_id, new_opts)

    def collect_plugins(self) -> None:
        """Resolve plugin references of micro-apps, then of the root app."""
        descriptors = [self.micros_config[key] for key in self.micros] + [self.self_descriptor]
        for descriptor in descriptors:
            for ref in descriptor.plugins:
                self.pipeline.use(ref, base=descriptor.root)

    def inject_module_aliases(self) -> dict[str, str]:
        registry = self.state.get("module_aliases")
        if registry is None:
            registry = {}
            self.state.set("module_aliases", registry)
        descriptors = [self.micros_config[key] for key in self.micros] + [self.self_descriptor]
        return inject_module_aliases(descriptors, registry, self._injected_aliases)

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def merge_config(self) -> dict[str, Any]:
        micro_configs = {key: d.to_config() for key, d in self.micros_config.items()}
        return compose_build(self.self_config, micro_configs, self.micros_order())

    def merge_server_config(self) -> dict[str, Any]:
        micro_servers = [self.micros_config[key].to_server_config() for key in self.micros_order()]
        return compose_server(self.self_server_config, micro_servers)

    def init(self) -> ComposedConfig:
        """
        Initialize plugins and compose the configs.

        Returns:
            The composed build and server configs

        Raises:
            EnvParseError: If the env file is malformed
            NotFoundError: If the root app has no config
            UseAfterInitError: If called twice
        """
        apply_hooks = self.pipeline.apply_hooks

        load_environment(self.root, self.settings.env_file)
        self.resolver.resolve_self()
        self.inject_module_aliases()

        self.collect_plugins()
        self.pipeline.init_plugins()
        apply_hooks("on_plugin_init_done")

        self.config = apply_hooks("before_merge_config", {}) or {}
        self.config.update(self.merge_config())
        self.config = apply_hooks("after_merge_config", self.config)

        self.server_config = apply_hooks("before_merge_server_config", {}) or {}
        self.server_config.update(self.merge_server_config())
        self.server_config = apply_hooks("after_merge_server_config", self.server_config)

        apply_hooks("on_init_will_done")
        apply_hooks("on_init_done")

        self.initialized = True
        logger.info(
            "[Service] initialized {} with micros {}", self.self_descriptor.name or self.root, self.micros
        )
        return ComposedConfig(build=self.config, server=self.server_config)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def run(self, name: str = "help", args: Any = None) -> Any:
        self.init()
        return self.run_command(name, args)

    def run_command(self, raw_name: str, raw_args: Any = None) -> Any:
        """
        Dispatch a command.

        ``modify_command`` may rewrite the name and arguments first. An
        unknown command logs an error and exits with status 1.
        """
        logger.debug("[Command] raw command name: {}, args: {}", raw_name, raw_args)
        modified = self.pipeline.apply_hooks("modify_command", {"name": raw_name, "args": raw_args})
        name = modified.get("name") or raw_name
        args = modified.get("args")
        logger.debug("[Command] run {} with args: {}", name, args)

        command = self.pipeline.commands.get(name)
        if command is None:
            logger.error('[Command] Command "{}" does not exists', name)
            sys.exit(1)

        self.pipeline.apply_hooks("on_run_command", {"name": name, "args": args, "opts": command.opts})
        return command.fn(args)
