"""
TOML File I/O Handler.

This module provides TOML parsing and rendering for micro-app configs.

Key features:
- Parse TOML files using tomllib (Python 3.11+)
- Render and write TOML using tomlkit (keeps tables readable and ordered)
- Drop values TOML cannot represent (None) before rendering
"""

import tomllib
from pathlib import Path
from typing import Any

import tomlkit

from microapp.errors import ConfigError


def read_toml(file_path: Path) -> dict[str, Any]:
    """
    Read and parse a TOML file.

    Args:
        file_path: Path to the TOML file

    Returns:
        Parsed TOML data as dictionary

    Raises:
        ConfigError: If file cannot be read or parsed
    """
    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"TOML file not found: {file_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse TOML file {file_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read TOML file {file_path}: {e}") from e


def _strip_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            str(k): _strip_none(v) for k, v in value.items() if v is not None
        }
    if isinstance(value, (list, tuple)):
        return [_strip_none(v) for v in value if v is not None]
    if isinstance(value, Path):
        return str(value)
    return value


def dumps_toml(data: dict[str, Any], header: str | None = None) -> str:
    """
    Render data as a TOML document.

    Args:
        data: Data to render
        header: Optional comment placed at the top of the document

    Returns:
        TOML string
    """
    doc = tomlkit.document()
    if header:
        doc.add(tomlkit.comment(header))
        doc.add(tomlkit.nl())

    for key, value in _strip_none(data).items():
        doc.add(key, value)

    return tomlkit.dumps(doc)


def write_toml(file_path: Path, data: dict[str, Any], header: str | None = None) -> None:
    """
    Write data to a TOML file using tomlkit.

    Args:
        file_path: Path to the TOML file
        data: Data to write
        header: Optional comment placed at the top of the file

    Raises:
        ConfigError: If file cannot be written
    """
    try:
        # Ensure parent directory exists
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w", encoding="utf-8") as f:
            f.write(dumps_toml(data, header))
    except OSError as e:
        raise ConfigError(f"Failed to write TOML file {file_path}: {e}") from e
