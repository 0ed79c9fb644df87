# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Tests for the close operation."""

import pytest
from stub_sources import StubConfigSource

from copilot_config_sources import CloseError, build_closer


class TestCloser:
    """Test suite for Closer."""

    def test_closes_every_source_once(self, silent_logger):
        """Test that each source is closed exactly once across calls."""
        a = StubConfigSource()
        b = StubConfigSource()
        close = build_closer({"a": a, "b": b}, logger=silent_logger)

        close()
        close()

        assert a.close_calls == 1
        assert b.close_calls == 1
        assert close.closed is True

    def test_shared_instance_closed_once(self, silent_logger):
        """Test that one instance registered under two names is closed once."""
        shared = StubConfigSource()
        build_closer({"a": shared, "b": shared}, logger=silent_logger)()
        assert shared.close_calls == 1

    def test_retrieved_closes_run_first(self, silent_logger):
        """Test that retrieved value handles run before the sources close."""
        order = []
        source = StubConfigSource()
        source.close = lambda: order.append("source")
        close = build_closer(
            {"a": source},
            [lambda: order.append("value0"), lambda: order.append("value1")],
            logger=silent_logger,
        )

        close()

        assert order == ["value0", "value1", "source"]

    def test_failures_are_aggregated(self, silent_logger):
        """Test that every close runs and all failures are raised together."""
        first_error = RuntimeError("first")
        second_error = RuntimeError("second")
        failing = StubConfigSource(error_on_close=first_error)
        healthy = StubConfigSource()
        also_failing = StubConfigSource(error_on_close=second_error)
        close = build_closer(
            {"failing": failing, "healthy": healthy, "also_failing": also_failing},
            logger=silent_logger,
        )

        with pytest.raises(CloseError, match="failed to close 2 config source") as exc_info:
            close()

        assert exc_info.value.errors == [first_error, second_error]
        assert healthy.close_calls == 1
        assert len(silent_logger.get_logs("ERROR")) == 2

    def test_failure_raised_only_once(self, silent_logger):
        """Test that a failed close is not retried or re-raised later."""
        failing = StubConfigSource(error_on_close=RuntimeError("boom"))
        close = build_closer({"failing": failing}, logger=silent_logger)

        with pytest.raises(CloseError):
            close()
        close()

        assert failing.close_calls == 1

    def test_retrieved_close_failure(self, silent_logger):
        """Test that a failing value handle does not prevent closing sources."""

        def failing_close():
            raise RuntimeError("value close failed")

        source = StubConfigSource()
        close = build_closer({"a": source}, [failing_close], logger=silent_logger)

        with pytest.raises(CloseError, match="value close failed"):
            close()
        assert source.close_calls == 1

    def test_nothing_to_close(self, silent_logger):
        """Test that closing an empty set succeeds."""
        close = build_closer({}, logger=silent_logger)
        close()
        assert close.closed is True
