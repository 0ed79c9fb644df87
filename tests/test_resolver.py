# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for whole-tree resolution."""

import pytest
from stub_sources import StubConfigSource

from copilot_config_sources import ConfigResolver, ConfigSourceNotFoundError, UnknownConfigSourceError


class TestConfigResolver:
    """Test suite for ConfigResolver."""

    def test_arrays_and_maps(self, load_testdata, silent_logger):
        """Test resolution inside nested sequences and maps."""
        source = StubConfigSource(
            values={
                "elem0": "elem0_value",
                "elem1": "elem1_value",
                "k0": "k0_value",
                "k1": "k1_value",
            }
        )
        resolver = ConfigResolver({"tstcfgsrc": source}, environ={}, logger=silent_logger)

        resolved = resolver.resolve(load_testdata("arrays_and_maps"))

        assert resolved == load_testdata("arrays_and_maps_expected")
        assert list(resolver.touched.instances) == ["tstcfgsrc"]

    def test_params_handling(self, load_testdata, silent_logger):
        """Test single-line, delimited and multi-line parameters reach the source."""
        values = {
            "elem0": None,
            "elem1": {"p0": True, "p1": "a string with spaces", "p3": 42},
            "k0": None,
            "k1": {
                "p0": True,
                "p1": "a string with spaces",
                "p2": {"p2_0": "a nested map0", "p2_1": True},
            },
        }

        # Each stored value is the parameter map its selector must receive.
        def check_params(selector, params):
            assert params == values[selector]

        source = StubConfigSource(values=values, on_retrieve=check_params)
        resolver = ConfigResolver({"tstcfgsrc": source}, environ={}, logger=silent_logger)

        resolved = resolver.resolve(load_testdata("params_handling"))

        assert resolved == load_testdata("params_handling_expected")

    def test_envvar_cfgsrc_mix(self, load_testdata, silent_logger):
        """Test environment and config source references mixed in one document."""
        source = StubConfigSource(values={"int_key": 42})

        def echo_params(selector, params):
            if selector == "params_key":
                source.values["params_key"] = params

        source.on_retrieve = echo_params
        resolver = ConfigResolver(
            {"tstcfgsrc": source}, environ={"envvar": "envvar_value"}, logger=silent_logger
        )

        resolved = resolver.resolve(load_testdata("envvar_cfgsrc_mix"))

        assert resolved == load_testdata("envvar_cfgsrc_mix_expected")
        assert "config_sources" not in resolved

    def test_preserves_document_order(self, silent_logger):
        """Test that sources are invoked and keys emitted in document order."""
        source = StubConfigSource(values={"a": 1, "b": 2, "c": 3})
        resolver = ConfigResolver({"src": source}, environ={}, logger=silent_logger)

        resolved = resolver.resolve({"z": "$src:c", "y": ["$src:a"], "x": {"w": "$src:b"}})

        assert list(resolved) == ["z", "y", "x"]
        assert [call[0] for call in source.retrieve_calls] == ["c", "a", "b"]

    def test_input_tree_is_not_modified(self, silent_logger):
        """Test that resolution builds a new tree."""
        tree = {"a": {"b": "$src:k"}, "config_sources": {"src": None}}
        resolver = ConfigResolver({"src": StubConfigSource(values={"k": 1})}, environ={}, logger=silent_logger)

        resolved = resolver.resolve(tree)

        assert resolved == {"a": {"b": 1}}
        assert tree == {"a": {"b": "$src:k"}, "config_sources": {"src": None}}

    def test_non_string_scalars_pass_through(self, silent_logger):
        """Test that ints, floats, bools and None are untouched."""
        tree = {"i": 1, "f": 1.5, "b": False, "n": None, "l": [1, None]}
        assert ConfigResolver({}, environ={}, logger=silent_logger).resolve(tree) == tree

    def test_nested_config_sources_key_is_kept(self, silent_logger):
        """Test that only the top-level config_sources section is dropped."""
        tree = {"service": {"config_sources": "kept"}}
        assert ConfigResolver({}, environ={}, logger=silent_logger).resolve(tree) == tree

    def test_fails_fast_and_keeps_touched(self, silent_logger):
        """Test that the first error aborts and touched lists sources invoked so far."""
        first = StubConfigSource(values={"k": "v"})
        second = StubConfigSource(values={})
        third = StubConfigSource(values={"k": "v"})
        resolver = ConfigResolver(
            {"first": first, "second": second, "third": third}, environ={}, logger=silent_logger
        )

        with pytest.raises(ConfigSourceNotFoundError):
            resolver.resolve({"a": "$first:k", "b": "$second:missing", "c": "$third:k"})

        assert set(resolver.touched.instances) == {"first", "second"}
        assert third.retrieve_calls == []

    def test_error_is_logged_with_path(self, silent_logger):
        """Test that a failure is logged with the path of the failing value."""
        resolver = ConfigResolver({}, environ={}, logger=silent_logger)

        with pytest.raises(UnknownConfigSourceError):
            resolver.resolve({"outer": {"items": ["ok", "$nope:key"]}})

        errors = silent_logger.get_logs("ERROR")
        assert len(errors) == 1
        assert errors[0]["extra"]["path"] == "outer.items[1]"
        assert errors[0]["extra"]["error_type"] == "UnknownConfigSourceError"

    def test_resolve_value(self, silent_logger):
        """Test resolving a single value outside a document."""
        resolver = ConfigResolver(
            {"src": StubConfigSource(values={"k": 7})}, environ={"E": "e"}, logger=silent_logger
        )
        assert resolver.resolve_value(["$E", "$src:k"]) == ["e", 7]
        assert resolver.resolve_value("config_sources") == "config_sources"
