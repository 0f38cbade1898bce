"""
Package Manifest Parsing.

This module reads ``package.json`` manifests of installed micro-apps and
workspace packages.

Key features:
- Structural validation of the fields the package graph relies on
- Dependency fields given either as a mapping (name -> range) or a list
- Lenient loading for micro-app roots, where a manifest is optional
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from microapp.config.loader import load_json
from microapp.errors import ConfigError, ValidationError

PACKAGE_JSON = "package.json"

_NAME_RE = re.compile(r"^(@[a-z0-9][\w.-]*/)?[a-z0-9][\w.-]*$", re.IGNORECASE)


@dataclass
class Package:
    """
    Represents an installed package.

    Attributes:
        name: Package name (unique identifier in a graph)
        version: Package version, empty if undeclared
        location: Package directory path
        manifest: Raw manifest data
    """

    name: str
    version: str = ""
    location: Path | None = None
    manifest: dict[str, Any] = field(default_factory=dict)

    def dependency_names(self, dependency_field: str) -> list[str]:
        """
        Read dependency names off a manifest field.

        Args:
            dependency_field: Manifest key holding the dependencies

        Returns:
            Dependency names in declaration order
        """
        value = self.manifest.get(dependency_field) or []
        if isinstance(value, dict):
            return list(value.keys())
        return list(value)


def validate_package_structure(data: Any, source: Path | str = "<memory>") -> None:
    """
    Validate manifest structure and required fields.

    Args:
        data: Parsed manifest data
        source: Where the data came from, for error messages

    Raises:
        ValidationError: If manifest structure is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Manifest {source} must be an object")

    name = data.get("name")
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise ValidationError(f"Invalid package name in {source}: {name!r}")

    if "version" in data and not isinstance(data["version"], str):
        raise ValidationError(f"'version' in {source} must be a string")

    for key in ("dependencies", "devDependencies", "peerDependencies"):
        if key in data and not isinstance(data[key], dict):
            raise ValidationError(f"'{key}' in {source} must be an object")


def parse_package(package_path: Path) -> Package:
    """
    Parse a package.json file.

    Args:
        package_path: Path to package.json

    Returns:
        Package object

    Raises:
        ConfigError: If file cannot be read or parsed
        ValidationError: If manifest is invalid
    """
    data = load_json(package_path)
    validate_package_structure(data, package_path)

    return Package(
        name=data["name"],
        version=data.get("version", ""),
        location=package_path.parent,
        manifest=data,
    )


def read_package_info(root: Path) -> dict[str, Any]:
    """
    Read a package.json next to a micro-app config, if there is one.

    A broken or missing manifest yields an empty mapping: descriptors only
    use it to fill in name, version and description.
    """
    package_path = root / PACKAGE_JSON
    if not package_path.is_file():
        return {}
    try:
        data = load_json(package_path)
    except ConfigError:
        return {}
    return data if isinstance(data, dict) else {}
