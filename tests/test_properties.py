# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Property-based tests for parsing and resolution.

Hypothesis generates strings and configuration trees to check invariants
that must hold for any input, not just the documented examples.
"""

from urllib.parse import urlencode

from hypothesis import given, settings, strategies as st
from stub_sources import StubConfigSource

from copilot_config_sources import CONFIG_SOURCES_KEY, ConfigResolver, Expander, SilentLogger
from copilot_config_sources.invocation import infer_value, parse_params_as_query

token_free_text = st.text().filter(lambda s: "$" not in s)

scalars = st.none() | st.booleans() | st.integers() | st.floats(allow_nan=False) | token_free_text

token_free_trees = st.recursive(
    scalars,
    lambda children: st.lists(children, max_size=4) | st.dictionaries(token_free_text, children, max_size=4),
    max_leaves=20,
)

selectors = st.from_regex(r"[a-z][a-z0-9_]{0,10}", fullmatch=True)


def make_resolver(config_sources=None):
    return ConfigResolver(config_sources or {}, environ={}, logger=SilentLogger())


@given(token_free_text)
@settings(max_examples=200)
def test_text_without_references_is_unchanged(text: str) -> None:
    """Strings without '$' expand to themselves."""
    assert Expander({}, environ={}, logger=SilentLogger()).expand(text) == text


@given(st.text())
@settings(max_examples=200)
def test_escaped_text_expands_to_original(text: str) -> None:
    """Doubling every '$' makes any text literal."""
    escaped = text.replace("$", "$$")
    assert Expander({}, environ={}, logger=SilentLogger()).expand(escaped) == text


@given(st.dictionaries(token_free_text.filter(lambda k: k != CONFIG_SOURCES_KEY), token_free_trees, max_size=5))
@settings(max_examples=100)
def test_resolution_of_token_free_tree_is_idempotent(tree: dict) -> None:
    """A tree without references resolves to itself, and again to itself."""
    once = make_resolver().resolve(tree)
    twice = make_resolver().resolve(once)

    assert once == tree
    assert twice == once


@given(token_free_trees)
@settings(max_examples=50)
def test_config_sources_section_is_always_removed(section) -> None:
    """The top-level config_sources key never survives resolution."""
    resolved = make_resolver().resolve({CONFIG_SOURCES_KEY: section, "kept": 1})
    assert resolved == {"kept": 1}


@given(st.dictionaries(st.text(min_size=1), st.text(), max_size=5))
@settings(max_examples=100)
def test_query_params_decode_to_typed_values(params: dict) -> None:
    """URL encoded parameters decode to their inferred values."""
    assert parse_params_as_query(urlencode(params)) == {k: infer_value(v) for k, v in params.items()}


@given(st.lists(selectors, min_size=1, max_size=8))
@settings(max_examples=50)
def test_selectors_share_one_touched_instance(keys: list) -> None:
    """Any number of selectors against one name touch one instance."""
    source = StubConfigSource(values={key: key.upper() for key in keys})
    resolver = make_resolver({"src": source})

    resolved = resolver.resolve({f"k{i}": f"$src:{key}" for i, key in enumerate(keys)})

    assert list(resolved.values()) == [key.upper() for key in keys]
    assert list(resolver.touched.instances) == ["src"]
    assert len(source.retrieve_calls) == len(keys)
