# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Base config source interface."""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

# Blocks until the value changes (returns None), the watch fails (returns or
# raises the error), or the given stop event is set.
WatchFunc = Callable[[threading.Event], Optional[Exception]]


@dataclass
class Retrieved:
    """Result of a config source retrieval.

    Attributes:
        value: Retrieved value; any config tree compatible type
        watch: Optional watch primitive for this value
        close: Optional operation releasing resources held for this value
    """

    value: Any
    watch: Optional[WatchFunc] = None
    close: Optional[Callable[[], None]] = None


class ConfigSource(ABC):
    """Abstract base class for config sources.

    Implementations resolve a selector, optionally parameterized, to a value
    from their backend (environment, local files, cloud key vaults, etc.).
    A single instance is shared by every reference to its name within a
    resolution pass.
    """

    @abstractmethod
    def retrieve(self, selector: str, params: Optional[dict[str, Any]] = None) -> Retrieved:
        """Retrieve the value identified by selector.

        Args:
            selector: Source-specific key of the value
            params: Optional invocation parameters

        Returns:
            Retrieved value and its optional watch/close handles

        Raises:
            ConfigSourceNotFoundError: If the selector does not exist
            RetrieveError: If retrieval fails
        """
        pass

    def close(self) -> None:
        """Release any resources held by this config source."""
        pass
