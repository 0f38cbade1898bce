"""
Environment File Loading.

Parses the root application's ``.env`` file with python-dotenv and exports
its values into ``os.environ``. Runs first during service initialization:
a malformed file aborts startup before any plugin or config work happens.
"""

import os
from pathlib import Path

from dotenv import dotenv_values
from dotenv.parser import parse_stream
from loguru import logger

from microapp.errors import EnvParseError

# Always taken from the file, even when already set by the shell
FORCED_KEYS = ("HOSTNAME",)


def _check_syntax(env_path: Path) -> None:
    with open(env_path, encoding="utf-8") as f:
        for binding in parse_stream(f):
            if binding.error:
                raise EnvParseError(
                    env_path, binding.original.line, binding.original.string
                )


def load_environment(
    root: Path | str,
    filename: str = ".env",
    override: bool = False,
) -> dict[str, str]:
    """
    Load environment overrides from a dotenv file.

    Args:
        root: Directory containing the env file
        filename: Env file name
        override: Overwrite variables already present in the environment

    Returns:
        Parsed key/value pairs (empty if the file does not exist)

    Raises:
        EnvParseError: If a line of the file cannot be parsed
    """
    env_path = Path(root) / filename
    if not env_path.is_file():
        logger.debug("[Env] no env file at {}", env_path)
        return {}

    _check_syntax(env_path)

    parsed = {
        key: value
        for key, value in dotenv_values(env_path).items()
        if value is not None
    }

    for key, value in parsed.items():
        if override or key in FORCED_KEYS or key not in os.environ:
            os.environ[key] = value

    logger.info("[Env] parsed {} variable(s) from {}", len(parsed), env_path)
    logger.debug("[Env] parsed envs: {}", parsed)
    return parsed
