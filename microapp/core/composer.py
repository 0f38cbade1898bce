"""
Config Composer.

Folds micro-app contributions and the root application's own config into a
single build config and a single server config.

Precedence, lowest to highest: micro-apps in the supplied order, then the
root application. The root always wins scalar conflicts; network binding
(host, port, content base) comes from the root alone.
"""

import copy
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from microapp.core.merge import deep_merge, merge_server_entries, merge_server_hooks

BUILD_FIELDS = (
    "entry",
    "htmls",
    "dlls",
    "alias",
    "resolve_alias",
    "shared",
    "resolve_shared",
    "static_paths",
)


@dataclass
class ComposedConfig:
    """
    Terminal artifact handed to build tooling.

    Attributes:
        build: Merged build config
        server: Merged server config
    """

    build: dict[str, Any] = field(default_factory=dict)
    server: dict[str, Any] = field(default_factory=dict)


def pick_build_fields(config: Mapping[str, Any]) -> dict[str, Any]:
    """Copy the whitelisted build fields a micro-app may contribute."""
    return {key: copy.deepcopy(config[key]) for key in BUILD_FIELDS if key in config}


def compose_build(
    self_config: Mapping[str, Any],
    micro_configs: Mapping[str, Mapping[str, Any]],
    order: Sequence[str],
) -> dict[str, Any]:
    """
    Compose the build config.

    Args:
        self_config: Root application's build config
        micro_configs: Micro id -> build config
        order: Micro ids in merge order; ids without a config are skipped

    Returns:
        Fresh merged config
    """
    contributions = [pick_build_fields(micro_configs[key]) for key in order if key in micro_configs]
    return deep_merge(*contributions, dict(self_config))


def compose_server(
    self_server: Mapping[str, Any],
    micro_servers: Iterable[Mapping[str, Any]],
) -> dict[str, Any]:
    """
    Compose the server config.

    Args:
        self_server: Root application's server config
        micro_servers: Micro-app server configs in merge order

    Returns:
        Fresh server config with host, port, content_base, entries and hooks
    """
    sources = [dict(config) for config in micro_servers] + [dict(self_server)]

    return {
        "host": self_server.get("host"),
        "port": self_server.get("port"),
        "content_base": self_server.get("content_base") or self_server.get("static_base"),
        "entries": merge_server_entries(*sources),
        "hooks": merge_server_hooks(*sources),
    }
