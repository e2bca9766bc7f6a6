"""Tests for debug_trace.py — opt-in call tracing through logging."""
from __future__ import annotations

import logging

import pytest

import debug_trace


@pytest.fixture()
def tracing(monkeypatch):
    monkeypatch.setattr(debug_trace, "DEBUG_TRACE", True)
    monkeypatch.setattr(debug_trace, "TRACE_EVENTS", False)


class TestTrace:

    def test_disabled_by_default_is_silent(self, monkeypatch, caplog):
        monkeypatch.setattr(debug_trace, "DEBUG_TRACE", False)
        with caplog.at_level(logging.DEBUG, logger="seqlayout.trace"):
            debug_trace.trace("hidden")
        assert caplog.records == []

    def test_enabled_logs_category(self, tracing, caplog):
        with caplog.at_level(logging.DEBUG, logger="seqlayout.trace"):
            debug_trace.trace("visible", "PARSE")
        assert "[PARSE] visible" in caplog.text

    def test_event_category_needs_event_flag(self, tracing, caplog):
        with caplog.at_level(logging.DEBUG, logger="seqlayout.trace"):
            debug_trace.trace("step", "EVENT")
        assert caplog.records == []


class TestTraceCall:

    def test_decorator_is_identity_when_disabled(self, monkeypatch):
        monkeypatch.setattr(debug_trace, "DEBUG_TRACE", False)

        def f():
            return 1

        assert debug_trace.trace_call("X")(f) is f

    def test_wraps_and_logs_entry_and_exit(self, tracing, caplog):
        @debug_trace.trace_call("LAYOUT")
        def compute(x):
            return x * 2

        with caplog.at_level(logging.DEBUG, logger="seqlayout.trace"):
            assert compute(21) == 42
        assert ">>> " in caplog.text and "<<< " in caplog.text
        assert compute.__name__ == "compute"

    def test_exception_is_logged_and_reraised(self, tracing, caplog):
        @debug_trace.trace_call()
        def boom():
            raise ValueError("bad input")

        with caplog.at_level(logging.DEBUG, logger="seqlayout.trace"):
            with pytest.raises(ValueError):
                boom()
        assert "raised ValueError: bad input" in caplog.text
