# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""In-memory logger for tests."""

import threading
from typing import Any

from .logger import DEFAULT_LOGGER_NAME, Logger, sanitize_fields


class SilentLogger(Logger):
    """Logger that keeps entries in memory instead of writing them.

    Every level is kept regardless of ``level``. Watch threads log
    concurrently with the resolving thread, so entries are guarded by a
    lock. Structured fields are redacted exactly as StdoutLogger does.
    """

    def __init__(self, level: str = "INFO", name: str | None = None):
        self.level = level.upper()
        self.name = name or DEFAULT_LOGGER_NAME
        self.logs: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def _log(self, level: str, message: str, **kwargs: Any) -> None:
        kwargs.pop("exc_info", None)
        entry: dict[str, Any] = {"level": level, "message": message}
        if kwargs:
            entry["extra"] = sanitize_fields(kwargs)

        with self._lock:
            self.logs.append(entry)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log("ERROR", message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        self._log("ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log("DEBUG", message, **kwargs)

    def clear_logs(self) -> None:
        with self._lock:
            self.logs.clear()

    def get_logs(self, level: str | None = None) -> list[dict[str, Any]]:
        """Return a snapshot of the kept entries, optionally of one level only."""
        with self._lock:
            return [entry for entry in self.logs if level is None or entry["level"] == level]

    def has_log(self, message: str, level: str | None = None) -> bool:
        """Check whether any kept entry's message contains the given text."""
        return any(message in entry["message"] for entry in self.get_logs(level))
