"""
Built-in Plugins.

- ``built-in:help``: lists registered commands
- ``built-in:show``: renders the composed config as TOML or JSON
"""

import json
from pathlib import Path
from typing import Any

from microapp.config.toml_handler import dumps_toml, write_toml
from microapp.core.utils import thaw

SECTIONS = ("build", "server")


def help_plugin(api, opts: dict[str, Any]) -> None:
    def show_help(args: dict[str, Any] | None = None) -> str:
        lines = ["Usage: microapp <command> [options]", "", "Commands:"]
        for name in sorted(api.commands):
            description = (api.command_opts(name) or {}).get("description", "")
            lines.append(f"    {name:<16} {description}".rstrip())
        text = "\n".join(lines)
        print(text)
        return text

    api.register_command("help", {"description": "show this help"}, show_help)


def composed_sections(api, section: str = "all") -> dict[str, Any]:
    data = {"build": thaw(api.config), "server": thaw(api.server_config)}
    if section in SECTIONS:
        return {section: data[section]}
    return data


def show_plugin(api, opts: dict[str, Any]) -> None:
    def show(args: dict[str, Any] | None = None) -> str:
        args = args or {}
        fmt = args.get("format", opts.get("format", "toml"))
        data = composed_sections(api, args.get("section", "all"))

        if fmt == "json":
            text = json.dumps(data, indent=4, default=str)
        else:
            text = dumps_toml(data, header=f"composed config of {api.service.name or 'root'}")

        output = args.get("output")
        if output:
            target = api.resolve(output)
            if fmt == "json":
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(text, encoding="utf-8")
            else:
                write_toml(Path(target), data, header="composed config")
            api.logger.info("[Command] composed config written to {}", target)
        else:
            print(text)
        return text

    api.register_command(
        "show",
        {"description": "print the composed config (--format toml|json, --section, --output)"},
        show,
    )


BUILTIN_PLUGINS = (
    ("built-in:help", help_plugin),
    ("built-in:show", show_plugin),
)
