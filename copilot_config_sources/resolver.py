# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Resolution of a whole configuration tree."""

import threading
from typing import Any, Mapping, Optional

from .exceptions import ConfigSourceError
from .expander import Expander, TouchedSources
from .logger import Logger
from .logger_factory import create_logger
from .source import ConfigSource

# Top-level section declaring config sources; never part of the resolved output.
CONFIG_SOURCES_KEY = "config_sources"

_logger = create_logger(name="copilot_config_sources.resolver")


class ConfigResolver:
    """Walks a configuration tree and expands every string value.

    Maps and sequences are rebuilt, strings are expanded and any other
    scalar passes through unchanged. Keys are visited in document order so
    config sources are invoked in a reproducible order.

    The first error aborts the walk and no tree is returned. ``touched``
    still lists every config source invoked up to that point so the caller
    can close them.

    Example:
        >>> resolver = ConfigResolver({"vault": vault_source})
        >>> resolved = resolver.resolve({"db": {"password": "$vault:db/password"}})
        >>> list(resolver.touched.instances)
        ['vault']
    """

    def __init__(
        self,
        config_sources: Mapping[str, ConfigSource],
        environ: Optional[Mapping[str, str]] = None,
        cancel: Optional[threading.Event] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize the resolver.

        Args:
            config_sources: Built config sources by name key
            environ: Environment lookup, defaults to os.environ
            cancel: Event that aborts the pass when set
            logger: Logger instance
        """
        self._logger = logger or _logger
        self.touched = TouchedSources()
        self._expander = Expander(
            config_sources,
            environ=environ,
            touched=self.touched,
            cancel=cancel,
            logger=self._logger,
        )

    def resolve(self, tree: Mapping[str, Any]) -> dict[str, Any]:
        """Resolve every reference in tree.

        Args:
            tree: Configuration tree as produced by a YAML/JSON loader

        Returns:
            New resolved tree without the top-level config_sources section

        Raises:
            ConfigSourceError: On the first expansion failure anywhere in the tree
        """
        resolved: dict[str, Any] = {}
        for key, value in tree.items():
            if key == CONFIG_SOURCES_KEY:
                continue
            resolved[key] = self._resolve(value, str(key))

        self._logger.debug(
            "Resolved configuration tree",
            keys=len(resolved),
            touched_sources=list(self.touched.instances),
        )
        return resolved

    def resolve_value(self, value: Any) -> Any:
        """Resolve a single value (string, map, sequence or scalar)."""
        return self._resolve(value, "")

    def _resolve(self, value: Any, path: str) -> Any:
        if isinstance(value, str):
            try:
                return self._expander.expand(value)
            except ConfigSourceError as e:
                self._logger.error(
                    "Failed to resolve configuration value",
                    path=path,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise
        if isinstance(value, Mapping):
            return {
                key: self._resolve(item, f"{path}.{key}" if path else str(key))
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [self._resolve(item, f"{path}[{index}]") for index, item in enumerate(value)]
        return value
