# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Expansion of environment variable and config source references in strings.

Reference syntax inside any string value::

    $$                      literal "$"
    $NAME                   environment variable (missing => "")
    ${NAME}                 environment variable, delimited
    $name:selector?params   config source invocation, runs to the end of the string
    ${name:selector}        config source invocation, delimited

A bare ``$name`` followed by ``:`` is always a config source invocation; it
never falls back to an environment variable of the same name.
"""

import json
import os
import string
import threading
from typing import Any, Callable, Mapping, Optional

from .exceptions import (
    ConfigSourceError,
    ParseError,
    ResolutionCancelledError,
    RetrieveError,
    UnknownConfigSourceError,
)
from .invocation import SOURCE_DELIMITER, parse_invocation
from .logger import Logger
from .logger_factory import create_logger
from .source import ConfigSource, Retrieved, WatchFunc

EXPAND_PREFIX = "$"
NAME_SEPARATOR = "/"

_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_")

_logger = create_logger(name="copilot_config_sources.expander")


class TouchedSources:
    """Config source instances invoked during one resolution pass.

    Instances are keyed by name, so any number of selectors against the same
    name contribute one instance. The first watch handle an instance returns
    is kept as that instance's watch.
    """

    def __init__(self):
        self._instances: dict[str, ConfigSource] = {}
        self._watches: dict[str, WatchFunc] = {}
        self._closes: list[Callable[[], None]] = []

    def touch(self, name: str, source: ConfigSource) -> None:
        """Record that source was invoked under name."""
        self._instances.setdefault(name, source)

    def add_retrieved(self, name: str, retrieved: Retrieved) -> None:
        """Keep the watch and close handles of a retrieval."""
        if retrieved.watch is not None:
            self._watches.setdefault(name, retrieved.watch)
        if retrieved.close is not None:
            self._closes.append(retrieved.close)

    @property
    def instances(self) -> dict[str, ConfigSource]:
        return dict(self._instances)

    @property
    def watches(self) -> dict[str, WatchFunc]:
        return dict(self._watches)

    @property
    def retrieved_closes(self) -> list[Callable[[], None]]:
        return list(self._closes)

    def __len__(self) -> int:
        return len(self._instances)

    def __contains__(self, name: object) -> bool:
        return name in self._instances


def to_text(value: Any) -> str:
    """Render a retrieved value for concatenation into a string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8")
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


class Expander:
    """Expands references in string values against config sources and the environment.

    Every config source invoked is recorded in ``touched``; the expander
    never closes or watches anything itself.
    """

    def __init__(
        self,
        config_sources: Mapping[str, ConfigSource],
        environ: Optional[Mapping[str, str]] = None,
        touched: Optional[TouchedSources] = None,
        cancel: Optional[threading.Event] = None,
        logger: Optional[Logger] = None,
    ):
        """Initialize the expander.

        Args:
            config_sources: Built config sources by name key
            environ: Environment lookup, defaults to os.environ
            touched: Bookkeeping shared with the caller, created if omitted
            cancel: Event that aborts the pass when set
            logger: Logger instance
        """
        self._config_sources = config_sources
        self._environ = environ if environ is not None else os.environ
        self.touched = touched if touched is not None else TouchedSources()
        self._cancel = cancel
        self._logger = logger or _logger

    def expand(self, raw: str) -> Any:
        """Expand every reference in raw.

        A string that is exactly one config source reference yields the
        retrieved value with its own type. Otherwise the result is a string
        with each reference rendered as text.

        Raises:
            ParseError: On malformed references
            UnknownConfigSourceError: If an invocation names an unknown source
            RetrieveError: If a config source fails to retrieve a value
        """
        parts: list[str] = []
        literal_start = 0
        pos = 0
        length = len(raw)

        while pos < length:
            if raw[pos] != EXPAND_PREFIX:
                pos += 1
                continue
            if pos + 1 >= length:
                raise ParseError(
                    f'dangling "{EXPAND_PREFIX}" at the end of "{raw}", '
                    f'use "{EXPAND_PREFIX}{EXPAND_PREFIX}" for a literal "{EXPAND_PREFIX}"'
                )

            value, width, native = self._expand_token(raw, pos)
            end = pos + 1 + width
            if native and pos == 0 and end == length:
                return value

            parts.append(raw[literal_start:pos])
            parts.append(to_text(value))
            pos = literal_start = end

        if not parts:
            return raw
        parts.append(raw[literal_start:])
        return "".join(parts)

    def expand_value(self, value: Any) -> Any:
        """Expand every string inside value, recursing into maps and sequences."""
        if isinstance(value, str):
            return self.expand(value)
        if isinstance(value, Mapping):
            return {key: self.expand_value(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.expand_value(item) for item in value]
        return value

    def _expand_token(self, raw: str, pos: int) -> tuple[Any, int, bool]:
        """Expand the reference starting at raw[pos] == "$".

        Returns:
            Tuple of (value, characters consumed after the "$", whether the
            value is a config source result that may keep its own type)
        """
        following = raw[pos + 1]

        if following == EXPAND_PREFIX:
            return EXPAND_PREFIX, 1, False

        if following == "{":
            content, width = _scan_to_closing_brace(raw, pos + 1)
            return self._expand_delimited(content), width, True

        name = _scan_name(raw, pos + 1)
        if not name:
            # Not a reference, keep the "$" as text.
            return EXPAND_PREFIX, 0, False

        after = pos + 1 + len(name)
        if after < len(raw) and raw[after] == SOURCE_DELIMITER:
            invocation_text = raw[pos + 1:]
            value = self._retrieve(invocation_text, expand_arguments=True)
            return value, len(invocation_text), True

        env_name = name.split(NAME_SEPARATOR, 1)[0]
        return self._getenv(env_name), len(env_name), False

    def _expand_delimited(self, content: str) -> Any:
        text = to_text(self.expand(content)).strip(" ")
        if not text:
            raise ParseError(f'empty reference "${{{content}}}"')

        if SOURCE_DELIMITER in text:
            return self._retrieve(text, expand_arguments=False)
        return self._getenv(text)

    def _retrieve(self, invocation_text: str, expand_arguments: bool) -> Any:
        invocation = parse_invocation(invocation_text)
        name = invocation.source_name
        source = self._config_sources.get(name)
        if source is None:
            raise UnknownConfigSourceError(name)

        selector: Any = invocation.selector
        params = invocation.params
        if expand_arguments:
            selector = self.expand(selector)
            if not isinstance(selector, str):
                raise ParseError(
                    f'processed selector for config source "{name}" must be a string, '
                    f"got {type(selector).__name__}"
                )
            if params is not None:
                params = self.expand_value(params)

        if self._cancel is not None and self._cancel.is_set():
            raise ResolutionCancelledError("config resolution was cancelled")

        self.touched.touch(name, source)
        self._logger.debug(
            "Retrieving config source value",
            source=name,
            selector=selector,
            param_names=sorted(params) if params else [],
        )
        try:
            retrieved = source.retrieve(selector, params)
        except ConfigSourceError:
            raise
        except Exception as e:
            raise RetrieveError(
                f'config source "{name}" failed to retrieve value for selector "{selector}": {e}'
            ) from e

        if not isinstance(retrieved, Retrieved):
            retrieved = Retrieved(value=retrieved)
        self.touched.add_retrieved(name, retrieved)
        return retrieved.value

    def _getenv(self, name: str) -> str:
        return self._environ.get(name, "")


def _scan_name(raw: str, start: int) -> str:
    """Return the run of identifier characters and "/" starting at raw[start]."""
    end = start
    if start < len(raw) and raw[start] in _NAME_CHARS:
        while end < len(raw) and (raw[end] in _NAME_CHARS or raw[end] == NAME_SEPARATOR):
            end += 1
    return raw[start:end]


def _scan_to_closing_brace(raw: str, open_pos: int) -> tuple[str, int]:
    """Find the brace matching raw[open_pos] == "{".

    Returns:
        Tuple of (content between the braces, characters consumed after "$")
    """
    depth = 0
    for i in range(open_pos, len(raw)):
        if raw[i] == "{":
            depth += 1
        elif raw[i] == "}":
            depth -= 1
            if depth == 0:
                return raw[open_pos + 1:i], i - open_pos + 1
    raise ParseError(f'unterminated "${{" in "{raw}"')
