# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Factories for building config sources from a config_sources section."""

import inspect
from typing import Any, Callable, Mapping, Optional, cast

from .azurekeyvault_source import AzureKeyVaultConfigSource
from .env_source import EnvConfigSource
from .exceptions import BuildError, ConfigSourceError, UnknownTypeError
from .expander import Expander
from .local_source import LocalFileConfigSource
from .logger import Logger
from .logger_factory import create_logger
from .source import ConfigSource

TYPE_AND_NAME_SEPARATOR = "/"

ConfigSourceFactory = Callable[..., ConfigSource]

DEFAULT_FACTORIES: dict[str, ConfigSourceFactory] = {
    "env": EnvConfigSource,
    "local": LocalFileConfigSource,
    "azurekeyvault": AzureKeyVaultConfigSource,
}

_logger = create_logger(name="copilot_config_sources.factory")


def create_config_source(
    source_type: str,
    factories: Optional[Mapping[str, ConfigSourceFactory]] = None,
    **settings: Any,
) -> ConfigSource:
    """Factory function to create a config source.

    Args:
        source_type: Type of config source ("env", "local", "azurekeyvault", ...)
        factories: Registry of factories by type, defaults to DEFAULT_FACTORIES
        **settings: Source-specific configuration

    Returns:
        ConfigSource instance

    Raises:
        UnknownTypeError: If source_type has no registered factory
        BuildError: If the factory fails

    Example:
        >>> source = create_config_source("local", base_path="/run/secrets")
    """
    return _create(source_type, source_type, settings, factories or DEFAULT_FACTORIES)


def build_config_sources(
    section: Optional[Mapping[str, Any]],
    factories: Optional[Mapping[str, ConfigSourceFactory]] = None,
    environ: Optional[Mapping[str, str]] = None,
    logger: Optional[Logger] = None,
) -> dict[str, ConfigSource]:
    """Build every config source declared in a config_sources section.

    Keys are name keys; the part before the first "/" selects the factory,
    so ``vault`` and ``vault/backup`` are two instances of type ``vault``.
    Environment references in the settings are expanded before the factory
    is called, and factories that take a ``logger`` argument receive logger.
    If any entry fails, the sources already built are closed.

    Args:
        section: The config_sources mapping (None or empty builds nothing)
        factories: Registry of factories by type, defaults to DEFAULT_FACTORIES
        environ: Environment lookup, defaults to os.environ
        logger: Logger instance

    Returns:
        Config sources by name key

    Raises:
        UnknownTypeError: If an entry's type has no registered factory
        BuildError: If a factory fails or the settings are not a mapping
    """
    logger = logger or _logger
    factories = factories or DEFAULT_FACTORIES
    if section is not None and not isinstance(section, Mapping):
        raise BuildError("config_sources", f"section must be a mapping, got {type(section).__name__}")
    env_only = Expander({}, environ=environ, logger=logger)

    built: dict[str, ConfigSource] = {}
    try:
        for name, raw_settings in (section or {}).items():
            name = str(name)
            source_type = name.split(TYPE_AND_NAME_SEPARATOR, 1)[0]
            if raw_settings is None:
                raw_settings = {}
            if not isinstance(raw_settings, Mapping):
                raise BuildError(name, f"settings must be a mapping, got {type(raw_settings).__name__}")

            try:
                settings = env_only.expand_value(raw_settings)
            except ConfigSourceError as e:
                raise BuildError(name, str(e)) from e

            built[name] = _create(name, source_type, settings, factories, logger)
            logger.info("Built config source", source=name, source_type=source_type)
    except ConfigSourceError:
        for source in built.values():
            try:
                source.close()
            except Exception as e:
                logger.error("Failed to close config source after build error", error=str(e))
        raise

    return built


def _create(
    name: str,
    source_type: str,
    settings: Mapping[str, Any],
    factories: Mapping[str, ConfigSourceFactory],
    logger: Optional[Logger] = None,
) -> ConfigSource:
    factory = factories.get(source_type)
    if factory is None:
        raise UnknownTypeError(name, source_type)

    if logger is not None and "logger" not in settings and _accepts_logger(factory):
        settings = {**settings, "logger": logger}

    try:
        source = factory(**settings)
    except Exception as e:
        raise BuildError(name, str(e)) from e
    return cast(ConfigSource, source)


def _accepts_logger(factory: ConfigSourceFactory) -> bool:
    try:
        return "logger" in inspect.signature(factory).parameters
    except (TypeError, ValueError):
        return False
