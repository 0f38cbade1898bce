"""
microapp CLI.

Usage:
    microapp [--root DIR] [-v] <command> [positional...] [--key=value...]

Examples:
    microapp help                  List commands
    microapp show --format=json    Print the composed config as JSON
    microapp show --output=out.toml
"""

import argparse
import sys
from typing import Any

from loguru import logger

from microapp.errors import MicroAppError
from microapp.service import Service


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the service options."""
    parser = argparse.ArgumentParser(
        prog="microapp",
        description="Compose micro-app configs and run plugin commands",
    )
    parser.add_argument("--root", default=None, help="Root application directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("command", nargs="?", default="help", help="Command to run")
    parser.add_argument("rest", nargs=argparse.REMAINDER, help="Command arguments")
    return parser


def parse_command_args(rest: list[str]) -> dict[str, Any]:
    """
    Turn raw command arguments into a mapping.

    Positional values are collected under ``"_"``; ``--key=value`` and
    ``--key value`` set ``key``; a bare ``--flag`` sets ``flag`` to True.
    Dashes in keys become underscores.
    """
    args: dict[str, Any] = {"_": []}
    index = 0
    while index < len(rest):
        token = rest[index]
        if token == "--":
            args["_"].extend(rest[index + 1:])
            break
        if token.startswith("--") and len(token) > 2:
            key, sep, value = token[2:].partition("=")
            key = key.replace("-", "_")
            if sep:
                args[key] = value
            elif index + 1 < len(rest) and not rest[index + 1].startswith("--"):
                index += 1
                args[key] = rest[index]
            else:
                args[key] = True
        else:
            args["_"].append(token)
        index += 1
    return args


def configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    options = parser.parse_args(argv)
    configure_logging(options.verbose)

    try:
        service = Service(root=options.root)
        service.run(options.command, parse_command_args(options.rest))
    except MicroAppError as e:
        logger.error("{}", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
