"""
Service Settings.

Filesystem layout and naming conventions used to locate the root
application, its micro-apps and their config files.

Every field can be overridden through a ``MICRO_APP_*`` environment
variable, e.g. ``MICRO_APP_SCOPE=@acme``.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path

SELF_KEY = "__self__"

ENV_PREFIX = "MICRO_APP_"


@dataclass(frozen=True)
class Settings:
    """
    Locations and names the resolver and service rely on.

    Attributes:
        root: Root application directory
        scope: Package scope micro-apps are published under
        config_name: Config file name without extension
        modules_dir: Dependency store directory inside a root
        temp_dir: Working directory for locally installed packages
        env_file: Environment file loaded at startup
    """

    root: Path
    scope: str = "@micro-app"
    config_name: str = "micro-app.config"
    modules_dir: str = "node_modules"
    temp_dir: str = ".micro-app"
    env_file: str = ".env"

    def __post_init__(self):
        object.__setattr__(self, "root", Path(self.root).resolve())

    @property
    def modules_path(self) -> Path:
        return self.root / self.modules_dir

    @property
    def temp_path(self) -> Path:
        return self.root / self.temp_dir

    def side_config_name(self, name: str) -> str:
        """Config file name of a named side config: ``micro-app.<name>.config``."""
        base, sep, suffix = self.config_name.rpartition(".")
        if not sep:
            return f"{self.config_name}.{name}"
        return f"{base}.{name}.{suffix}"

    @property
    def extra_config_name(self) -> str:
        return self.side_config_name("extra")

    @classmethod
    def from_env(cls, root: Path | str | None = None) -> "Settings":
        """
        Build settings from ``MICRO_APP_*`` environment variables.

        Args:
            root: Explicit root directory; wins over ``MICRO_APP_ROOT``

        Returns:
            Settings instance
        """
        values = {}
        for f in fields(cls):
            env_value = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if env_value:
                values[f.name] = env_value

        if root is not None:
            values["root"] = root
        values.setdefault("root", Path.cwd())

        return cls(**values)
