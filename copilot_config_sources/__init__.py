# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Config source resolution for Copilot-for-Consensus configuration documents.

Resolves ``$VAR`` environment references and ``$name:selector?params``
config source invocations inside a configuration tree, reports the first
change of any watched value, and closes every config source it used.

Example:
    >>> from copilot_config_sources import resolve_config
    >>> document = {
    ...     "config_sources": {"local": {"base_path": "/run/secrets"}},
    ...     "auth": {"jwt_private_key": "$local:jwt_private_key", "issuer": "${ISSUER}"},
    ... }
    >>> config, close = resolve_config(document)
    >>> close()
"""

__version__ = "0.1.0"

from .azurekeyvault_source import AzureKeyVaultConfigSource
from .closer import Closer, build_closer
from .env_source import EnvConfigSource
from .exceptions import (
    BuildError,
    CloseError,
    ConfigSourceError,
    ConfigSourceNotFoundError,
    MissingSelectorError,
    ParseError,
    ResolutionCancelledError,
    RetrieveError,
    UnknownConfigSourceError,
    UnknownTypeError,
)
from .expander import Expander, TouchedSources
from .factory import DEFAULT_FACTORIES, build_config_sources, create_config_source
from .invocation import Invocation, parse_invocation
from .local_source import LocalFileConfigSource
from .logger import Logger
from .logger_factory import create_logger
from .manager import ConfigSourceManager, resolve, resolve_config
from .resolver import CONFIG_SOURCES_KEY, ConfigResolver
from .silent_logger import SilentLogger
from .source import ConfigSource, Retrieved, WatchFunc
from .stdout_logger import StdoutLogger
from .watcher import ChangeEvent, ChangeWatcher, WatcherState

__all__ = [
    # Version
    "__version__",
    # Entry points
    "resolve",
    "resolve_config",
    "ConfigSourceManager",
    # Core
    "Invocation",
    "parse_invocation",
    "Expander",
    "TouchedSources",
    "ConfigResolver",
    "CONFIG_SOURCES_KEY",
    "ChangeEvent",
    "ChangeWatcher",
    "WatcherState",
    "Closer",
    "build_closer",
    # Config sources
    "ConfigSource",
    "Retrieved",
    "WatchFunc",
    "EnvConfigSource",
    "LocalFileConfigSource",
    "AzureKeyVaultConfigSource",
    "DEFAULT_FACTORIES",
    "build_config_sources",
    "create_config_source",
    # Logging
    "Logger",
    "StdoutLogger",
    "SilentLogger",
    "create_logger",
    # Errors
    "ConfigSourceError",
    "ParseError",
    "MissingSelectorError",
    "UnknownConfigSourceError",
    "RetrieveError",
    "ConfigSourceNotFoundError",
    "UnknownTypeError",
    "BuildError",
    "CloseError",
    "ResolutionCancelledError",
]
