# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Factory function for creating logger instances."""

import os
import sys

from .logger import DEFAULT_LOGGER_NAME, Logger
from .silent_logger import SilentLogger
from .stdout_logger import StdoutLogger

LOGGER_TYPES = ("stdout", "stderr", "silent")


def _default(value: str | None, env_var: str, fallback: str) -> str:
    return value or os.getenv(env_var) or fallback


def create_logger(
    logger_type: str | None = None,
    level: str | None = None,
    name: str | None = None,
) -> Logger:
    """Create a logger.

    Every argument falls back to an environment variable, then a default:
    LOG_TYPE ("stdout"), LOG_LEVEL ("INFO"), LOG_NAME ("copilot_config_sources").

    Args:
        logger_type: "stdout" or "stderr" for JSON lines on that stream,
            "silent" for an in-memory logger
        level: Minimum level (DEBUG, INFO, WARNING, ERROR)
        name: Logger name

    Returns:
        Logger instance

    Raises:
        ValueError: If logger_type or level is not recognized

    Example:
        >>> logger = create_logger(logger_type="stderr", level="DEBUG", name="config-check")
        >>> logger.debug("Retrieving config source value", source="vault", selector="db/password")
    """
    logger_type = _default(logger_type, "LOG_TYPE", "stdout").lower()
    level = _default(level, "LOG_LEVEL", "INFO").upper()
    name = _default(name, "LOG_NAME", DEFAULT_LOGGER_NAME)

    if logger_type == "stdout":
        return StdoutLogger(level=level, name=name)
    if logger_type == "stderr":
        return StdoutLogger(level=level, name=name, stream=sys.stderr)
    if logger_type == "silent":
        return SilentLogger(level=level, name=name)

    raise ValueError(f"Unknown logger_type: {logger_type}. Must be one of: {', '.join(LOGGER_TYPES)}")
