"""
Config File Loader.

Loads a micro-app config object from a directory. ``<name>.toml`` is tried
first, then ``<name>.json``. A missing file is not an error: callers decide
whether absence matters.
"""

import json
from pathlib import Path
from typing import Any

from microapp.config.toml_handler import read_toml
from microapp.errors import ConfigError

CONFIG_SUFFIXES = (".toml", ".json")


def find_config_file(root: Path | str, filename: str) -> Path | None:
    """
    Locate a config file under root.

    Args:
        root: Directory to search
        filename: File name, with or without extension

    Returns:
        Path to the first existing candidate, or None
    """
    root = Path(root)
    if Path(filename).suffix in CONFIG_SUFFIXES:
        candidates = [root / filename]
    else:
        candidates = [root / f"{filename}{suffix}" for suffix in CONFIG_SUFFIXES]

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def load_json(file_path: Path) -> Any:
    """
    Read and parse a JSON file.

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse JSON file {file_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read JSON file {file_path}: {e}") from e


def load_config(root: Path | str, filename: str) -> dict[str, Any] | None:
    """
    Load a config object from a directory.

    Args:
        root: Directory containing the config file
        filename: Config file name, with or without extension

    Returns:
        Parsed config dictionary, or None if no config file exists

    Raises:
        ConfigError: If the file exists but is malformed
    """
    config_path = find_config_file(root, filename)
    if config_path is None:
        return None

    data = read_toml(config_path) if config_path.suffix == ".toml" else load_json(config_path)

    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {config_path} must contain a table, got {type(data).__name__}"
        )
    return data
