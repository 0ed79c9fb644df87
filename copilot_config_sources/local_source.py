# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Local filesystem config source."""

import os
import threading
from pathlib import Path
from typing import Any, Optional

from .exceptions import ConfigSourceNotFoundError, RetrieveError
from .logger import Logger
from .logger_factory import create_logger
from .source import ConfigSource, Retrieved, WatchFunc

_logger = create_logger(name="copilot_config_sources.local")


class LocalFileConfigSource(ConfigSource):
    """Config source that reads values from files in a base directory.

    Each file holds one value and the selector is its file name, which makes
    this source suitable for Docker and Kubernetes mounted secrets::

        config_sources:
          local:
            base_path: /run/secrets
            watch_files: true
        auth:
          jwt_private_key: $local:jwt_private_key
          signing_cert: ${local:cert.der?binary=true}

    Attributes:
        base_path: Directory containing value files
        watch_files: Whether retrieved values are watched for modification
        poll_interval: Seconds between modification checks while watching
    """

    def __init__(
        self,
        base_path: str,
        watch_files: bool = False,
        poll_interval: float = 1.0,
        logger: Optional[Logger] = None,
    ):
        """Initialize the local file config source.

        Args:
            base_path: Base directory containing value files
            watch_files: Watch retrieved files for modification
            poll_interval: Seconds between modification checks
            logger: Logger instance

        Raises:
            RetrieveError: If base_path does not exist or is not a directory
        """
        self.base_path = Path(base_path)
        self.watch_files = watch_files
        self.poll_interval = poll_interval
        self._logger = logger or _logger

        if not self.base_path.exists():
            raise RetrieveError(f"Config source base path does not exist: {base_path}")

        if not self.base_path.is_dir():
            raise RetrieveError(f"Config source base path is not a directory: {base_path}")

        self._logger.info("Initialized local file config source", base_path=str(self.base_path))

    def _get_value_path(self, selector: str) -> Path:
        """Get the filesystem path for a selector.

        Raises:
            RetrieveError: If selector escapes base_path
        """
        potential_path = (self.base_path / selector).resolve()
        base_resolved = self.base_path.resolve()

        try:
            potential_path.relative_to(base_resolved)
        except ValueError as e:
            raise RetrieveError(f"Invalid selector (path traversal detected): {selector}") from e

        return potential_path

    def retrieve(self, selector: str, params: Optional[dict[str, Any]] = None) -> Retrieved:
        """Read the file named by selector.

        Args:
            selector: File name relative to base_path
            params: ``binary: true`` returns raw bytes instead of stripped text

        Returns:
            Retrieved file content, watched when watch_files is enabled

        Raises:
            ConfigSourceNotFoundError: If the file does not exist
            RetrieveError: If the path is not a file or reading fails
        """
        path = self._get_value_path(selector)

        if not path.exists():
            raise ConfigSourceNotFoundError(f"Value not found: {selector}")

        if not path.is_file():
            raise RetrieveError(f"Value path is not a file: {selector}")

        binary = bool(params and params.get("binary"))
        try:
            mtime = os.stat(path).st_mtime_ns
            if binary:
                value: Any = path.read_bytes()
            else:
                value = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise RetrieveError(f"Failed to read value {selector}: {e}") from e

        watch = self._watch_file(path, mtime) if self.watch_files else None
        return Retrieved(value=value, watch=watch)

    def _watch_file(self, path: Path, mtime: int) -> WatchFunc:
        def watch(stop: threading.Event) -> Optional[Exception]:
            while not stop.wait(self.poll_interval):
                try:
                    if os.stat(path).st_mtime_ns != mtime:
                        return None
                except FileNotFoundError:
                    return ConfigSourceNotFoundError(f"Value file removed: {path.name}")
                except OSError as e:
                    return RetrieveError(f"Failed to watch value {path.name}: {e}")
            return None

        return watch
