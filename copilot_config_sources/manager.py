# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Resolution pass entry points.

A pass resolves a configuration tree against a set of config sources and
derives two things from the sources it touched: a change watcher that
reports the first update as a single ChangeEvent, and one idempotent close
operation.

Example:
    >>> import yaml
    >>> from copilot_config_sources import resolve_config
    >>>
    >>> with open("service.yaml", encoding="utf-8") as f:
    ...     document = yaml.safe_load(f)
    >>> config, close = resolve_config(document, on_change=lambda event: reload())
    >>> ...
    >>> close()
"""

import threading
from typing import Any, Callable, Mapping, Optional

from .closer import Closer, build_closer
from .exceptions import CloseError, ConfigSourceError
from .expander import TouchedSources
from .factory import ConfigSourceFactory, build_config_sources
from .logger import Logger
from .logger_factory import create_logger
from .resolver import CONFIG_SOURCES_KEY, ConfigResolver
from .source import ConfigSource
from .watcher import ChangeEvent, ChangeWatcher

_logger = create_logger(name="copilot_config_sources.manager")

ChangeCallback = Callable[[ChangeEvent], None]
CloseFunc = Callable[[], None]


class ConfigSourceManager:
    """Owns one resolution pass and everything derived from it.

    The manager keeps the touched config sources even when resolve() fails,
    so close() always releases whatever was invoked. A manager resolves at
    most once; create a new one for every pass.

    Example:
        >>> with ConfigSourceManager({"vault": vault_source}) as manager:
        ...     config = manager.resolve(document, on_change=handle_change)
    """

    def __init__(
        self,
        config_sources: Mapping[str, ConfigSource],
        environ: Optional[Mapping[str, str]] = None,
        cancel: Optional[threading.Event] = None,
        logger: Optional[Logger] = None,
        owned_sources: Optional[Mapping[str, ConfigSource]] = None,
    ):
        """Initialize the manager.

        Args:
            config_sources: Built config sources by name key
            environ: Environment lookup, defaults to os.environ
            cancel: Shared event cancelling the pass and its watches
            logger: Logger instance
            owned_sources: Sources closed by close() even if never touched
        """
        self._logger = logger or _logger
        self._cancel = cancel
        self._owned_sources = dict(owned_sources or {})
        self._resolver = ConfigResolver(
            config_sources, environ=environ, cancel=cancel, logger=self._logger
        )
        self._watcher: Optional[ChangeWatcher] = None
        self._closer: Optional[Closer] = None
        self._lock = threading.Lock()
        self._started = False

    @property
    def touched(self) -> TouchedSources:
        return self._resolver.touched

    @property
    def watcher(self) -> Optional[ChangeWatcher]:
        return self._watcher

    def resolve(
        self,
        tree: Mapping[str, Any],
        on_change: Optional[ChangeCallback] = None,
    ) -> dict[str, Any]:
        """Resolve tree and start watching the touched config sources.

        Args:
            tree: Configuration tree
            on_change: Callback receiving one ChangeEvent when any watched
                value changes or its watch fails; nothing is watched if None

        Returns:
            Resolved tree without the config_sources section

        Raises:
            ConfigSourceError: If resolution fails or the manager was used before
        """
        with self._lock:
            if self._started:
                raise ConfigSourceError("config source manager already resolved or closed")
            self._started = True

        resolved = self._resolver.resolve(tree)

        if on_change is not None:
            self._watcher = ChangeWatcher(
                self.touched.watches, on_change, cancel=self._cancel, logger=self._logger
            )
            self._watcher.start()

        self._logger.info(
            "Resolved configuration",
            touched_sources=list(self.touched.instances),
            watched_sources=list(self.touched.watches) if on_change is not None else [],
        )
        return resolved

    def close(self) -> None:
        """Stop watching and close every touched (and owned) config source.

        Idempotent: only the first call closes anything.

        Raises:
            CloseError: If at least one close failed on the first call
        """
        with self._lock:
            self._started = True
            if self._closer is None:
                sources = dict(self._owned_sources)
                sources.update(self.touched.instances)
                self._closer = build_closer(
                    sources, self.touched.retrieved_closes, logger=self._logger
                )

        if self._watcher is not None:
            self._watcher.stop()
        self._closer()

    def __enter__(self) -> "ConfigSourceManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def resolve(
    tree: Mapping[str, Any],
    config_sources: Mapping[str, ConfigSource],
    on_change: Optional[ChangeCallback] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    cancel: Optional[threading.Event] = None,
    logger: Optional[Logger] = None,
) -> tuple[dict[str, Any], CloseFunc]:
    """Resolve tree against already built config sources.

    Args:
        tree: Configuration tree
        config_sources: Built config sources by name key
        on_change: Callback receiving the single coalesced ChangeEvent
        environ: Environment lookup, defaults to os.environ
        cancel: Shared event cancelling the pass and its watches
        logger: Logger instance

    Returns:
        Tuple of (resolved tree, idempotent close operation)

    Raises:
        ConfigSourceError: If resolution fails; touched sources are closed first
    """
    manager = ConfigSourceManager(config_sources, environ=environ, cancel=cancel, logger=logger)
    return _run(manager, tree, on_change, logger or _logger)


def resolve_config(
    tree: Mapping[str, Any],
    factories: Optional[Mapping[str, ConfigSourceFactory]] = None,
    on_change: Optional[ChangeCallback] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    cancel: Optional[threading.Event] = None,
    logger: Optional[Logger] = None,
) -> tuple[dict[str, Any], CloseFunc]:
    """Build the config sources declared in tree, then resolve tree.

    The returned close operation also closes declared sources that no
    value referenced.

    Args:
        tree: Configuration tree, optionally with a config_sources section
        factories: Registry of factories by type, defaults to DEFAULT_FACTORIES
        on_change: Callback receiving the single coalesced ChangeEvent
        environ: Environment lookup, defaults to os.environ
        cancel: Shared event cancelling the pass and its watches
        logger: Logger instance

    Returns:
        Tuple of (resolved tree, idempotent close operation)

    Raises:
        UnknownTypeError: If a declared type has no factory
        BuildError: If a declared source cannot be created
        ConfigSourceError: If resolution fails
    """
    sources = build_config_sources(
        tree.get(CONFIG_SOURCES_KEY), factories, environ=environ, logger=logger
    )
    manager = ConfigSourceManager(
        sources, environ=environ, cancel=cancel, logger=logger, owned_sources=sources
    )
    return _run(manager, tree, on_change, logger or _logger)


def _run(
    manager: ConfigSourceManager,
    tree: Mapping[str, Any],
    on_change: Optional[ChangeCallback],
    logger: Logger,
) -> tuple[dict[str, Any], CloseFunc]:
    try:
        resolved = manager.resolve(tree, on_change)
    except Exception:
        try:
            manager.close()
        except CloseError as close_error:
            logger.error("Failed to close config sources after resolution error", error=str(close_error))
        raise
    return resolved, manager.close
