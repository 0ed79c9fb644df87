# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Parsing of config source invocations.

An invocation is the text following ``$`` (or inside ``${...}``) that
references a config source::

    name:selector
    name:selector?p0=1&p1=a+string&p1=another&flag
    name:selector
    p0: 1
    p1: [a, b]

Single-line invocations carry parameters as a URL query string. Values are
percent/plus decoded and typed as int, then bool, then string; a key with
no value (or an empty one) maps to None and a repeated key collects its
values into a list. When the text after ``name:`` spans several lines, the
first line is the selector and the remaining lines are a YAML mapping of
parameters.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import unquote_plus

import yaml

from .exceptions import MissingSelectorError, ParseError

SOURCE_DELIMITER = ":"
PARAMS_DELIMITER = "?"

_INT_RE = re.compile(r"[-+]?[0-9]+")
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class Invocation:
    """A parsed config source invocation.

    Attributes:
        source_name: Name key of the config source (e.g. "vault/prod")
        selector: Source-specific key of the value to retrieve
        params: Invocation parameters, or None when none were given
    """

    source_name: str
    selector: str
    params: Optional[dict[str, Any]] = None


def parse_invocation(raw: str) -> Invocation:
    """Split an invocation into source name, selector and parameters.

    Args:
        raw: Invocation text, without the leading ``$``

    Returns:
        Parsed Invocation

    Raises:
        MissingSelectorError: If raw has no ':' separator
        ParseError: If the parameters are malformed
    """
    source_name, sep, rest = raw.partition(SOURCE_DELIMITER)
    if not sep:
        raise MissingSelectorError(
            f'invalid config source syntax at "{raw}", it must have at least '
            f"the config source name and a selector"
        )
    source_name = source_name.strip(" ")

    if "\n" in rest:
        selector, _, params_text = rest.partition("\n")
        params = _parse_params_as_yaml(raw, params_text) if params_text.strip() else None
        return Invocation(source_name, selector.strip(" "), params)

    selector, sep, query = rest.partition(PARAMS_DELIMITER)
    params = None
    if sep:
        try:
            params = parse_params_as_query(query)
        except ParseError as e:
            raise ParseError(f'invalid parameters syntax at "{raw}": {e}') from e
    return Invocation(source_name, selector.strip(" "), params)


def parse_params_as_query(query: str) -> dict[str, Any]:
    """Parse a URL query string into typed invocation parameters.

    Args:
        query: Text after the '?' of an invocation

    Returns:
        Mapping of parameter name to typed value, list of typed values for
        repeated keys, or None for keys without a value

    Raises:
        ParseError: If the query contains an invalid percent escape
    """
    collected: dict[str, list[str]] = {}
    for pair in query.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        key = _unescape(key)
        if not key:
            continue
        collected.setdefault(key, []).append(_unescape(value))

    params: dict[str, Any] = {}
    for key, values in collected.items():
        if len(values) == 1:
            params[key] = infer_value(values[0])
        else:
            params[key] = [infer_value(v) for v in values]
    return params


def infer_value(text: str) -> Any:
    """Type a decoded parameter value as int, bool, string, or None if empty."""
    if text == "":
        return None
    if _INT_RE.fullmatch(text):
        return int(text)
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return text


def _unescape(text: str) -> str:
    bad = _BAD_ESCAPE_RE.search(text)
    if bad:
        raise ParseError(f'invalid URL escape "{text[bad.start():bad.start() + 3]}"')
    try:
        return unquote_plus(text, errors="strict")
    except UnicodeDecodeError as e:
        raise ParseError(f'invalid URL escape in "{text}": {e}') from e


def _parse_params_as_yaml(raw: str, params_text: str) -> dict[str, Any]:
    try:
        params = yaml.safe_load(params_text)
    except yaml.YAMLError as e:
        raise ParseError(f'invalid parameters syntax at "{raw}": {e}') from e
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise ParseError(
            f'invalid parameters syntax at "{raw}": expected a mapping, '
            f"got {type(params).__name__}"
        )
    return {str(k): v for k, v in params.items()}
