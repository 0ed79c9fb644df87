# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Abstract logger interface and helpers shared by the implementations."""

import logging
from abc import ABC, abstractmethod
from typing import Any

DEFAULT_LOGGER_NAME = "copilot_config_sources"

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

# Structured fields whose values are never written to any log output.
SENSITIVE_FIELDS = frozenset({"value", "password", "secret", "token", "credential"})
REDACTED = "<REDACTED>"


def sanitize_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of fields with sensitive values replaced by REDACTED."""
    return {
        key: REDACTED if key.lower() in SENSITIVE_FIELDS and value is not None else value
        for key, value in fields.items()
    }


class Logger(ABC):
    """Abstract base class for loggers.

    Messages carry structured data as keyword arguments. Config source
    code logs source names, selectors and parameter names, never retrieved
    values; implementations additionally redact SENSITIVE_FIELDS.
    """

    @abstractmethod
    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info-level message."""
        pass

    @abstractmethod
    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning-level message."""
        pass

    @abstractmethod
    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error-level message."""
        pass

    @abstractmethod
    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug-level message."""
        pass

    @abstractmethod
    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an error-level message from inside an exception handler."""
        pass
