"""
Plugin Pipeline.

Two-phase plugin execution:

1. Configuration time: plugins are registered or resolved from links, then
   ``init_plugins()`` calls each plugin's ``apply(api, opts)`` in order.
   Plugins register hooks, commands, extension methods and config extensions
   through their API.
2. Run time: after every ``apply`` returned, all APIs are locked. Hooks are
   applied by the service; plugins may read shared state but can no longer
   register anything.

Hook phases are left folds over the callbacks registered for a key, in
registration order. ``apply_hooks_async`` awaits each callback before
starting the next one, so a phase never interleaves.
"""

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from microapp.core.state import StateStore
from microapp.core.utils import freeze
from microapp.errors import NotFoundError, UseAfterInitError, ValidationError
from microapp.plugin.api import PluginAPI, lock_api
from microapp.plugin.loader import LoaderError, load_plugin

RESERVED_PREFIX = "built-in:"

PLUGIN_FIELDS = frozenset({"id", "apply", "opts"})


@dataclass
class Plugin:
    """
    A registered plugin.

    Attributes:
        id: Plugin identifier
        apply: Implementation, called as ``apply(api, opts)``
        opts: Plugin options
        link: Link the implementation was loaded from, if any
        resolved: Whether the implementation was resolved from a link
        observer: Option-change callback registered during apply
        api: API instance built at initialization
    """

    id: str
    apply: Callable
    opts: dict[str, Any] = field(default_factory=dict)
    link: str | None = None
    resolved: bool = False
    observer: Callable | None = None
    api: PluginAPI | None = None


@dataclass(frozen=True)
class HookRegistration:
    """A callback registered for a hook phase."""

    phase: str
    ordinal: int
    callback: Callable
    plugin_id: str


@dataclass
class Command:
    """A command registered by a plugin."""

    name: str
    fn: Callable
    opts: dict[str, Any] = field(default_factory=dict)
    plugin_id: str | None = None


@dataclass
class ConfigExtension:
    """A named config extension registered by a plugin."""

    name: str
    fn: Callable
    opts: dict[str, Any] = field(default_factory=dict)
    plugin_id: str | None = None


class PluginPipeline:
    """
    Registers, initializes and runs plugins.

    Shared properties shown to plugins are supplied by the owner through
    ``share(name, provider)``; each access returns a frozen snapshot of the
    provider's current value.
    """

    def __init__(self, state: StateStore | None = None):
        self.state = state if state is not None else StateStore()
        self.plugins: list[Plugin] = []
        self.hooks: dict[str, list[HookRegistration]] = {}
        self.methods: dict[str, Callable] = {}
        self.commands: dict[str, Command] = {}
        self.config_extensions: dict[str, ConfigExtension] = {}
        self.initialized = False
        self._providers: dict[str, Callable[[], Any]] = {}
        self._functions: dict[str, Callable] = {}
        self._ordinal = 0

    # ------------------------------------------------------------------
    # Shared properties
    # ------------------------------------------------------------------

    def share(self, name: str, provider: Callable[[], Any]) -> None:
        self._providers[name] = provider

    def snapshot(self, name: str, default: Any = None) -> Any:
        provider = self._providers.get(name)
        if provider is None:
            return default
        return freeze(provider())

    def share_function(self, name: str, fn: Callable) -> None:
        self._functions[name] = fn

    def call_shared(self, name: str, *args, **kwargs) -> Any:
        """Call a function shared by the owner; the result is frozen."""
        fn = self._functions.get(name)
        if fn is None:
            raise NotFoundError(f"api.{name}() is not available")
        return freeze(fn(*args, **kwargs))

    # ------------------------------------------------------------------
    # Plugin registration
    # ------------------------------------------------------------------

    def _check_open(self, method: str) -> None:
        if self.initialized:
            raise UseAfterInitError(method)

    def register_plugin(self, record: Mapping[str, Any]) -> Plugin:
        """
        Register a plugin given as ``{"id", "apply", "opts"}``.

        Returns:
            The registered plugin

        Raises:
            ValidationError: If the record is malformed or uses a reserved id
            UseAfterInitError: If plugins are already initialized
        """
        self._check_open("register_plugin")

        if not isinstance(record, Mapping):
            raise ValidationError(f"opts should be a mapping, but got {record!r}")

        unknown = set(record) - PLUGIN_FIELDS
        if unknown:
            raise ValidationError(
                f"Only id, apply and opts are valid plugin properties, got {sorted(unknown)}"
            )

        plugin_id = record.get("id")
        apply = record.get("apply")
        opts = record.get("opts") or {}

        if not isinstance(plugin_id, str) or not plugin_id:
            raise ValidationError("id must be a non-empty string")
        if plugin_id.startswith(RESERVED_PREFIX):
            raise ValidationError(
                f'register_plugin() should not register plugin prefixed with "{RESERVED_PREFIX}"'
            )
        if not callable(apply):
            raise ValidationError(f"apply of plugin '{plugin_id}' must be callable")
        if not isinstance(opts, Mapping):
            raise ValidationError(f"opts of plugin '{plugin_id}' must be a mapping")

        plugin = Plugin(id=plugin_id, apply=apply, opts=dict(opts))
        self.plugins.append(plugin)
        logger.debug("[Plugin] register_plugin( {} ); Success!", plugin_id)
        return plugin

    def add_builtin(self, plugin_id: str, apply: Callable, opts: Mapping[str, Any] | None = None) -> Plugin:
        """Add a preloaded plugin; its id must carry the reserved prefix."""
        self._check_open("add_builtin")
        if not plugin_id.startswith(RESERVED_PREFIX):
            raise ValidationError(f"built-in plugin id must start with '{RESERVED_PREFIX}'")
        plugin = Plugin(id=plugin_id, apply=apply, opts=dict(opts or {}))
        self.plugins.append(plugin)
        return plugin

    def resolve_plugin(self, ref: Any, base: Path | None = None) -> Plugin | None:
        """
        Resolve a plugin reference to an implementation.

        Args:
            ref: ``{"id", "link", "opts"}`` mapping or a bare link string
            base: Directory relative file links are resolved against

        Returns:
            Unregistered Plugin, or None if the link cannot be loaded
        """
        if isinstance(ref, str):
            ref = {"link": ref}
        if not isinstance(ref, Mapping):
            raise ValidationError(f"Invalid plugin reference: {ref!r}")

        link = ref.get("link") or ref.get("id")
        if not isinstance(link, str) or not link:
            raise ValidationError(f"Plugin reference needs an id or a link: {dict(ref)!r}")

        plugin_id = ref.get("id") or link
        if plugin_id.startswith(RESERVED_PREFIX):
            raise ValidationError(f"Plugin id '{plugin_id}' uses the reserved prefix")

        opts = ref.get("opts") or {}
        if not isinstance(opts, Mapping):
            raise ValidationError(f"opts of plugin '{plugin_id}' must be a mapping")

        try:
            apply = load_plugin(link, base, self.state.get("module_aliases", {}))
        except LoaderError as e:
            logger.warning('[Plugin] not found plugin: "{}" ({})', plugin_id, e)
            return None

        return Plugin(id=plugin_id, apply=apply, opts=dict(opts), link=link, resolved=True)

    def use(self, ref: Any, base: Path | None = None) -> Plugin | None:
        """Resolve a plugin reference and register it when it loads."""
        self._check_open("use")
        plugin = self.resolve_plugin(ref, base)
        if plugin is not None:
            self.plugins.append(plugin)
        return plugin

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def init_plugins(self) -> None:
        """
        Apply every plugin, then lock all APIs.

        Plugins registered while applying are applied in the same pass.
        An exception from ``apply`` aborts initialization immediately.
        """
        self._check_open("init_plugins")

        index = 0
        while index < len(self.plugins):
            self._init_plugin(self.plugins[index])
            index += 1

        for plugin in self.plugins:
            lock_api(plugin.api)
        self.initialized = True
        logger.debug("[Plugin] {} plugin(s) initialized", len(self.plugins))

    def _init_plugin(self, plugin: Plugin) -> None:
        if not callable(plugin.apply):
            raise ValidationError(
                f"plugin '{plugin.id}' must export a function, e.g. def apply(api, opts): ..."
            )
        api = PluginAPI(plugin, self)
        plugin.api = api
        plugin.apply(api, plugin.opts)

    # ------------------------------------------------------------------
    # Registration targets
    # ------------------------------------------------------------------

    def add_hook(self, phase: str, fn: Callable, plugin_id: str) -> HookRegistration:
        self._check_open("register_hook")
        if not isinstance(phase, str) or not phase:
            raise ValidationError("hook phase must be a non-empty string")
        if not callable(fn):
            raise ValidationError(f"hook callback for '{phase}' must be callable")

        hook = HookRegistration(phase, self._ordinal, fn, plugin_id)
        self._ordinal += 1
        self.hooks.setdefault(phase, []).append(hook)
        return hook

    def add_command(self, name: str, opts: Any, fn: Callable | None, plugin_id: str | None = None) -> Command:
        self._check_open("register_command")
        if callable(opts) and fn is None:
            fn, opts = opts, None
        opts = opts or {}

        if not isinstance(name, str) or not name:
            raise ValidationError("command name must be a non-empty string")
        if name in self.commands:
            raise ValidationError(f"Command {name} exists, please select another one.")
        if not callable(fn):
            raise ValidationError(f"fn of command '{name}' must be callable")
        if not isinstance(opts, Mapping):
            raise ValidationError(f"opts of command '{name}' must be a mapping")

        command = Command(name=name, fn=fn, opts=dict(opts), plugin_id=plugin_id)
        self.commands[name] = command
        logger.debug("[Plugin] register_command( {} ); Success!", name)
        return command

    def _check_extension_name(self, name: str) -> None:
        if not isinstance(name, str) or not name:
            raise ValidationError("extension name must be a non-empty string")
        if name.startswith("_"):
            raise ValidationError(f"{name} cannot begin with '_'.")
        if hasattr(PluginAPI, name) or name in self.methods or name in self.config_extensions:
            raise ValidationError(f"api.{name} exists.")

    def add_method(self, name: str, fn: Callable, plugin_id: str) -> None:
        self._check_open("register_method")
        self._check_extension_name(name)
        if not callable(fn):
            raise ValidationError(f"fn of method '{name}' must be callable")

        self.methods[name] = fn
        logger.debug("[Plugin] register_method( {} ) by {}; Success!", name, plugin_id)

    def add_config_extension(
        self, name: str, opts: Any, fn: Callable | None, plugin_id: str | None = None
    ) -> ConfigExtension:
        self._check_open("extend_config")
        if callable(opts) and fn is None:
            fn, opts = opts, None
        opts = opts or {}

        self._check_extension_name(name)
        if not callable(fn):
            raise ValidationError(f"fn of config extension '{name}' must be callable")
        if not isinstance(opts, Mapping):
            raise ValidationError(f"opts of config extension '{name}' must be a mapping")

        extension = ConfigExtension(name=name, fn=fn, opts=dict(opts), plugin_id=plugin_id)
        self.config_extensions[name] = extension
        logger.debug("[Plugin] extend_config( {} ); Success!", name)
        return extension

    def build_extended_config(self, name: str, *args, **kwargs) -> Any:
        """
        Call the config extension registered under ``name``.

        Raises:
            NotFoundError: If no extension has the name
        """
        extension = self.config_extensions.get(name)
        if extension is None:
            raise NotFoundError(f"config extension {name} not found")
        return extension.fn(*args, **kwargs)

    def set_option_observer(self, plugin: Plugin, fn: Callable) -> None:
        self._check_open("on_option_change")
        if not callable(fn):
            raise ValidationError(
                f"The first argument for api.on_option_change should be callable in {plugin.id}."
            )
        plugin.observer = fn

    def command_opts(self, name: str):
        command = self.commands.get(name)
        return freeze(command.opts) if command else None

    # ------------------------------------------------------------------
    # Run time
    # ------------------------------------------------------------------

    def change_plugin_option(self, plugin_id: str, new_opts: Mapping[str, Any] | None = None) -> None:
        """
        Replace the options of every plugin with the given id.

        Raises:
            NotFoundError: If no plugin has the id
        """
        if not plugin_id:
            raise ValidationError("id must supplied")

        plugins = [p for p in self.plugins if p.id == plugin_id]
        if not plugins:
            raise NotFoundError(f"plugin {plugin_id} not found")

        for plugin in plugins:
            old_opts = plugin.opts
            plugin.opts = dict(new_opts or {})
            if plugin.observer is not None:
                plugin.observer(plugin.opts, old_opts)
            else:
                logger.warning(
                    "[Plugin] plugin {}'s option changed without observer, new: {}, old: {}",
                    plugin_id,
                    plugin.opts,
                    old_opts,
                )

    def apply_hooks(self, phase: str, initial: Any = None) -> Any:
        """
        Fold the callbacks of a phase over an initial value.

        Each callback is called as ``callback(last, args)``. Its return value
        becomes the new ``last``, except that a callback returning ``None``
        leaves ``last`` unchanged. A phase of observers therefore returns
        ``initial``.

        Args:
            phase: Hook phase key
            initial: Starting value, also frozen and passed as ``args``

        Returns:
            Accumulated value
        """
        args = freeze(initial)
        last = initial
        for hook in list(self.hooks.get(phase, [])):
            try:
                result = hook.callback(last, args)
            except Exception as e:
                logger.error("[Plugin] {} hook of '{}' failed: {}", phase, hook.plugin_id, e)
                raise
            if result is not None:
                last = result
        return last

    async def apply_hooks_async(self, phase: str, initial: Any = None) -> Any:
        """Like apply_hooks(), awaiting each callback before the next; None keeps ``last``."""
        args = freeze(initial)
        last = initial
        for hook in list(self.hooks.get(phase, [])):
            try:
                result = hook.callback(last, args)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.error("[Plugin] {} hook of '{}' failed: {}", phase, hook.plugin_id, e)
                raise
            if result is not None:
                last = result
        return last
