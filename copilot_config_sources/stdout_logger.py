# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Structured JSON logger writing one entry per line."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

from .logger import DEFAULT_LOGGER_NAME, LEVELS, Logger, sanitize_fields


class StdoutLogger(Logger):
    """Logger writing JSON lines to stdout (or another text stream).

    Each entry carries ``timestamp``, ``level``, ``logger``, ``message`` and,
    when structured fields were given, ``extra``. Entries are mirrored into
    the stdlib logger of the same name so handlers and caplog see them too.
    """

    def __init__(self, level: str = "INFO", name: str | None = None, stream: Optional[TextIO] = None):
        """Initialize the logger.

        Args:
            level: Minimum level written (DEBUG, INFO, WARNING, ERROR)
            name: Logger name, also the name of the mirrored stdlib logger
            stream: Destination stream, sys.stdout at write time if None

        Raises:
            ValueError: If level is not a known logging level
        """
        self.level = level.upper()
        if self.level not in LEVELS:
            raise ValueError(f"Invalid log level: {level}. Must be one of {list(LEVELS)}")

        self.name = name or DEFAULT_LOGGER_NAME
        self._stream = stream
        self._stdlib_logger = logging.getLogger(self.name)
        # Filtering happens here, the stdlib logger inherits its effective level.
        self._stdlib_logger.setLevel(logging.NOTSET)

    def is_enabled_for(self, level: str) -> bool:
        return LEVELS[level] >= LEVELS[self.level]

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        if not self.is_enabled_for(level):
            return

        exc_info = kwargs.pop("exc_info", None)
        fields = sanitize_fields(kwargs)

        self._write(level, message, self._format(level, message, fields))
        self._stdlib_logger.log(
            LEVELS[level], message, exc_info=exc_info, extra={"extra": fields} if fields else None
        )

    def _format(self, level: str, message: str, fields: dict[str, Any]) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "logger": self.name,
            "message": message,
        }
        if fields:
            entry["extra"] = fields
        try:
            return json.dumps(entry, default=str)
        except ValueError as e:
            return json.dumps({**entry, "extra": {"serialization_error": str(e)}})

    def _write(self, level: str, message: str, line: str) -> None:
        stream = self._stream or sys.stdout
        try:
            print(line, file=stream, flush=True)
        except (OSError, ValueError) as e:
            print(f"{level}: {message} (log write failed: {e})", file=sys.stderr, flush=True)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log("ERROR", message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at error level with the active exception attached."""
        kwargs.setdefault("exc_info", True)
        self._log("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log("DEBUG", message, **kwargs)
