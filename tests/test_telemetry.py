"""Telemetry 测试"""

import logging

from wirepreview.telemetry import Metrics, format_session_log, get_logger, setup_logging


class TestFormatSessionLog:

    def test_truncates_session_id(self):
        assert format_session_log("Coordinator", "0123456789abcdef", "ok") == "[Coordinator:01234567] ok"

    def test_missing_session_id(self):
        assert format_session_log("Coordinator", "", "ok") == "[Coordinator:unknown] ok"


class TestMetrics:

    def test_counters_with_labels(self):
        m = Metrics()
        m.inc("export.failures", {"error": "RenderError"})
        m.inc("export.failures", {"error": "RenderError"}, value=2)
        m.inc("export.failures", {"error": "WriteError"})

        assert m.get_counter("export.failures", {"error": "RenderError"}) == 3
        assert m.get_counter("export.failures") == 0
        assert m.snapshot()["counters"] == {
            "export.failures{error=RenderError}": 3,
            "export.failures{error=WriteError}": 1,
        }

    def test_label_order_irrelevant(self):
        m = Metrics()
        m.inc("x", {"b": "2", "a": "1"})
        assert m.get_counter("x", {"a": "1", "b": "2"}) == 1

    def test_gauge_and_reset(self):
        m = Metrics()
        m.gauge("preview.sessions", 3)
        assert m.get_gauge("preview.sessions") == 3
        m.reset()
        assert m.get_gauge("preview.sessions") == 0.0
        assert m.snapshot() == {"counters": {}, "gauges": {}}


def test_logger_and_setup(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    setup_logging("debug")

    assert calls[0]["level"] == "DEBUG"
    assert get_logger("wirepreview.x").name == "wirepreview.x"
