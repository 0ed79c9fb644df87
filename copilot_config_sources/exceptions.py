# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Exceptions for config source resolution."""


class ConfigSourceError(Exception):
    """Base exception for config source errors."""
    pass


class ParseError(ConfigSourceError):
    """Raised when a config source reference has invalid syntax."""
    pass


class MissingSelectorError(ParseError):
    """Raised when an invocation has no ':' between source name and selector."""
    pass


class UnknownConfigSourceError(ConfigSourceError):
    """Raised when an invocation names a config source that was not built."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f'config source "{name}" not found; if this was intended to be an '
            f'environment variable use "${{{name}}}" instead'
        )


class RetrieveError(ConfigSourceError):
    """Raised when a config source fails to retrieve a value."""
    pass


class ConfigSourceNotFoundError(RetrieveError):
    """Raised when a selector does not exist in its config source."""
    pass


class UnknownTypeError(ConfigSourceError):
    """Raised when config_sources declares a type with no registered factory."""

    def __init__(self, name: str, source_type: str):
        self.name = name
        self.source_type = source_type
        super().__init__(f'unknown config_sources type "{source_type}" (declared as "{name}")')


class BuildError(ConfigSourceError):
    """Raised when a factory fails to create a config source."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"failed to create config source {name}: {message}")


class CloseError(ConfigSourceError):
    """Raised after closing every config source when at least one close failed."""

    def __init__(self, errors: list[Exception]):
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"failed to close {len(self.errors)} config source(s): {details}")


class ResolutionCancelledError(ConfigSourceError):
    """Raised when a resolution pass is cancelled before it completes."""
    pass
