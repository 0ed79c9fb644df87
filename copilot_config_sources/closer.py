# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Single close operation for every config source touched by a pass."""

import threading
from typing import Callable, Iterable, Mapping, Optional

from .exceptions import CloseError
from .logger import Logger
from .logger_factory import create_logger
from .source import ConfigSource

_logger = create_logger(name="copilot_config_sources.closer")


class Closer:
    """Idempotent close operation over retrieved values and config sources.

    The first call runs every retrieved value's close handle, then closes
    every distinct config source once. A failure does not stop the
    remaining closes; all failures are raised together as a CloseError
    after the last one ran. Later calls do nothing.
    """

    def __init__(
        self,
        sources: Mapping[str, ConfigSource],
        retrieved_closes: Iterable[Callable[[], None]] = (),
        logger: Optional[Logger] = None,
    ):
        """Initialize the closer.

        Args:
            sources: Config sources to close, by name key
            retrieved_closes: Close handles returned alongside retrieved values
            logger: Logger instance
        """
        self._sources = dict(sources)
        self._retrieved_closes = list(retrieved_closes)
        self._logger = logger or _logger
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __call__(self) -> None:
        """Close everything once.

        Raises:
            CloseError: If at least one close failed
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        errors: list[Exception] = []

        for close in self._retrieved_closes:
            try:
                close()
            except Exception as e:
                self._logger.error("Failed to close retrieved value", error=str(e))
                errors.append(e)

        seen: set[int] = set()
        for name, source in self._sources.items():
            # The same instance may be registered under several names.
            if id(source) in seen:
                continue
            seen.add(id(source))
            try:
                source.close()
            except Exception as e:
                self._logger.error("Failed to close config source", source=name, error=str(e))
                errors.append(e)

        if errors:
            raise CloseError(errors)
        if self._sources:
            self._logger.debug("Closed config sources", sources=list(self._sources))


def build_closer(
    sources: Mapping[str, ConfigSource],
    retrieved_closes: Iterable[Callable[[], None]] = (),
    logger: Optional[Logger] = None,
) -> Closer:
    """Build the close operation for the given touched config sources.

    Example:
        >>> close = build_closer(resolver.touched.instances, resolver.touched.retrieved_closes)
        >>> close()
        >>> close()  # no-op
    """
    return Closer(sources, retrieved_closes, logger=logger)
