"""
Plugin API.

Every plugin receives its own ``PluginAPI`` instance in ``apply(api, opts)``.
The API is the only door into the service: it exposes

- read-only snapshots of shared properties (``root``, ``micros``, ``config`` ...)
- shared functions (state access, hook application, option changes)
- registration methods (``register_*``, ``on_option_change``, one method per
  hook phase such as ``on_init_done``)
- extension methods registered by any plugin through ``register_method``
- named config extensions registered through ``extend_config``

Private members (names starting with ``_``) are not reachable from plugin
code, neither on the API nor on its ``service`` view.

Once every plugin is applied the pipeline locks each API: registration
methods are replaced by guards raising ``UseAfterInitError``.
"""

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from microapp.errors import UseAfterInitError

if TYPE_CHECKING:
    from microapp.plugin.pipeline import Plugin, PluginPipeline

HOOK_PHASES = (
    "on_plugin_init_done",
    "before_merge_config",
    "after_merge_config",
    "before_merge_server_config",
    "after_merge_server_config",
    "on_init_will_done",
    "on_init_done",
    "modify_command",
    "on_run_command",
)

# Name prefixes of registration methods disabled by lockdown
LOCKED_PREFIXES = ("register_", "extend_")


def _hook_method(phase: str) -> Callable:
    def method(self: "PluginAPI", fn: Callable) -> None:
        self.register_hook(phase, fn)

    method.__name__ = phase
    method.__doc__ = f"Register a callback for the ``{phase}`` phase."
    return method


def _guard(name: str) -> Callable:
    def guard(*args, **kwargs):
        raise UseAfterInitError(name)

    guard.__name__ = name
    return guard


# Dunders that would hand out the instance namespace
_HIDDEN_DUNDERS = frozenset({"__dict__", "__getstate__", "__reduce__", "__reduce_ex__"})


def _is_private(name: str) -> bool:
    if name.startswith("__") and name.endswith("__"):
        return name in _HIDDEN_DUNDERS
    return name.startswith("_")


def _public_getattribute(self, name: str) -> Any:
    if _is_private(name):
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")
    return object.__getattribute__(self, name)


def _public_setattr(self, name: str, value: Any) -> None:
    if _is_private(name):
        raise AttributeError(f"cannot set private attribute '{name}'")
    object.__setattr__(self, name, value)


def _pipeline_of(obj) -> "PluginPipeline":
    return object.__getattribute__(obj, "_pipeline")


def _plugin_of(api: "PluginAPI") -> "Plugin":
    return object.__getattribute__(api, "_plugin")


class ServiceView:
    """Live read-only view of the service owning a plugin."""

    def __init__(self, pipeline: "PluginPipeline"):
        object.__setattr__(self, "_pipeline", pipeline)

    __getattribute__ = _public_getattribute
    __setattr__ = _public_setattr

    @property
    def root(self) -> Path | None:
        return _pipeline_of(self).snapshot("root")

    @property
    def name(self) -> str:
        return (_pipeline_of(self).snapshot("self") or {}).get("name", "")

    @property
    def version(self) -> str:
        return (_pipeline_of(self).snapshot("self") or {}).get("version", "")

    @property
    def description(self) -> str:
        return (_pipeline_of(self).snapshot("self") or {}).get("description", "")

    @property
    def state(self):
        return _pipeline_of(self).state.as_mapping()

    @property
    def initialized(self) -> bool:
        return _pipeline_of(self).initialized

    def __repr__(self) -> str:
        return f"ServiceView(root={self.root!s})"


class PluginAPI:
    """
    Capability-scoped interface handed to one plugin.

    Example:
        def apply(api, opts):
            api.register_command("build", lambda args: build(api.config, args))
            api.after_merge_config(lambda config, args: {**config, "mode": opts["mode"]})
    """

    def __init__(self, plugin: "Plugin", pipeline: "PluginPipeline"):
        object.__setattr__(self, "_plugin", plugin)
        object.__setattr__(self, "_pipeline", pipeline)
        self.logger = logger.bind(plugin=plugin.id)

    __getattribute__ = _public_getattribute
    __setattr__ = _public_setattr

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return _plugin_of(self).id

    @property
    def service(self) -> ServiceView:
        return ServiceView(_pipeline_of(self))

    # ------------------------------------------------------------------
    # Shared properties (read-only snapshots)
    # ------------------------------------------------------------------

    @property
    def root(self) -> Path | None:
        return _pipeline_of(self).snapshot("root")

    @property
    def micros(self) -> tuple[str, ...]:
        return _pipeline_of(self).snapshot("micros", ())

    @property
    def self_config(self):
        return _pipeline_of(self).snapshot("self_config", {})

    @property
    def micros_config(self):
        return _pipeline_of(self).snapshot("micros_config", {})

    @property
    def config(self):
        return _pipeline_of(self).snapshot("config", {})

    @property
    def server_config(self):
        return _pipeline_of(self).snapshot("server_config", {})

    @property
    def workspace_packages(self) -> tuple[str, ...]:
        return _pipeline_of(self).snapshot("workspace_packages", ())

    @property
    def commands(self) -> tuple[str, ...]:
        return tuple(_pipeline_of(self).commands)

    # ------------------------------------------------------------------
    # Shared functions
    # ------------------------------------------------------------------

    def get_state(self, key: str, default: Any = None) -> Any:
        return _pipeline_of(self).state.get(key, default)

    def set_state(self, key: str, value: Any) -> None:
        _pipeline_of(self).state.set(key, value)

    def resolve(self, path: str) -> Path:
        """Resolve a path against the root application directory."""
        root = self.root
        return Path(root, path) if root is not None else Path(path).resolve()

    def command_opts(self, name: str):
        return _pipeline_of(self).command_opts(name)

    def apply_hooks(self, phase: str, initial: Any = None) -> Any:
        return _pipeline_of(self).apply_hooks(phase, initial)

    async def apply_hooks_async(self, phase: str, initial: Any = None) -> Any:
        return await _pipeline_of(self).apply_hooks_async(phase, initial)

    def change_plugin_option(self, plugin_id: str, new_opts: dict | None = None) -> None:
        _pipeline_of(self).change_plugin_option(plugin_id, new_opts)

    def parse_config(self, name: str, key: str | None = None):
        """
        Load the side config ``name`` of a micro-app (the root app by default).

        Returns:
            Read-only config, or None when no source defines it
        """
        if key is None:
            return _pipeline_of(self).call_shared("parse_config", name)
        return _pipeline_of(self).call_shared("parse_config", name, key)

    @property
    def config_extensions(self) -> tuple[str, ...]:
        return tuple(_pipeline_of(self).config_extensions)

    def extended_config(self, name: str, *args, **kwargs) -> Any:
        """Build the config registered under ``name`` through ``extend_config``."""
        return _pipeline_of(self).build_extended_config(name, *args, **kwargs)

    # ------------------------------------------------------------------
    # Registration (disabled after lockdown)
    # ------------------------------------------------------------------

    def register_hook(self, phase: str, fn: Callable) -> None:
        """
        Register a hook callback.

        Callbacks receive ``(last, args)``: the value accumulated so far and
        a frozen snapshot of the value the phase started with. Returning
        None keeps ``last``.
        """
        _pipeline_of(self).add_hook(phase, fn, self.id)

    def register_command(self, name: str, opts: Any = None, fn: Callable | None = None) -> None:
        """Register a command; ``opts`` may be omitted."""
        _pipeline_of(self).add_command(name, opts, fn, self.id)

    def register_method(self, name: str, fn: Callable) -> None:
        """Register an extension method visible on every plugin's API."""
        _pipeline_of(self).add_method(name, fn, self.id)

    def extend_config(self, name: str, opts: Any = None, fn: Callable | None = None) -> None:
        """
        Register a named config extension.

        ``fn`` builds the config on demand; ``opts`` may be omitted. Names
        share one namespace with extension methods.
        """
        _pipeline_of(self).add_config_extension(name, opts, fn, self.id)

    def register_plugin(self, record: dict[str, Any]) -> None:
        _pipeline_of(self).register_plugin(record)

    def on_option_change(self, fn: Callable) -> None:
        """Observe ``change_plugin_option`` calls for this plugin."""
        _pipeline_of(self).set_option_observer(_plugin_of(self), fn)

    on_plugin_init_done = _hook_method("on_plugin_init_done")
    before_merge_config = _hook_method("before_merge_config")
    after_merge_config = _hook_method("after_merge_config")
    before_merge_server_config = _hook_method("before_merge_server_config")
    after_merge_server_config = _hook_method("after_merge_server_config")
    on_init_will_done = _hook_method("on_init_will_done")
    on_init_done = _hook_method("on_init_done")
    modify_command = _hook_method("modify_command")
    on_run_command = _hook_method("on_run_command")

    # ------------------------------------------------------------------
    # Extension methods and lockdown
    # ------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        methods = _pipeline_of(self).methods
        if name in methods:
            return methods[name]
        raise AttributeError(f"api.{name} does not exist in plugin '{self.id}'")

    def registration_methods(self) -> list[str]:
        """Names of the methods disabled by lockdown."""
        extension_names = list(_pipeline_of(self).methods)
        names = [name for name in dir(type(self)) if name.startswith(LOCKED_PREFIXES)]
        names.append("on_option_change")
        names.extend(HOOK_PHASES)
        names.extend(name for name in extension_names if name.startswith(LOCKED_PREFIXES))
        return list(dict.fromkeys(names))

    def __repr__(self) -> str:
        return f"PluginAPI({self.id!r})"


def lock_api(api: PluginAPI) -> None:
    """Replace every registration method of an API with a guard."""
    for name in api.registration_methods():
        setattr(api, name, _guard(name))
