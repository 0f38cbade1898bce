"""
Error types shared across microapp.

Structural errors (bad registrations, cycles, use after lockdown) are raised
at the call site and never caught internally. Missing optional inputs
(an unresolvable micro or plugin link) are not errors: they are logged as
warnings by the component that hits them.
"""


class MicroAppError(Exception):
    """Base exception for microapp errors."""

    pass


class ValidationError(MicroAppError):
    """Raised when a plugin, command or extension registration is malformed."""

    pass


class NotFoundError(MicroAppError):
    """Raised when a required command, plugin or root config cannot be found."""

    pass


class ConfigError(MicroAppError):
    """Raised when a config file exists but cannot be parsed."""

    pass


class CyclicDependencyError(MicroAppError):
    """
    Raised when a package graph contains a cycle.

    Attributes:
        cycle: Package names forming the cycle, in dependency order
    """

    def __init__(self, cycle: list[str]):
        self.cycle = list(cycle)
        path = " -> ".join(self.cycle + self.cycle[:1])
        super().__init__(f"Circular dependency detected: {path}")


class UseAfterInitError(MicroAppError):
    """Raised when a registration API is called after plugins are initialized."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(
            f"api.{method}() should not be called after plugin is initialized."
        )


class EnvParseError(MicroAppError):
    """Raised when an environment file contains a line that cannot be parsed."""

    def __init__(self, path, line: int, statement: str):
        self.path = path
        self.line = line
        self.statement = statement
        super().__init__(
            f"Failed to parse {path} at line {line}: {statement.strip()!r}"
        )
