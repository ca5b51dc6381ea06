"""Tests for JSON logging and in-process counters."""

import json
import logging
import sys

from risksurface import observability


class TestJsonFormatter:
    def test_includes_extra_fields(self):
        record = logging.LogRecord("risksurface.sections", logging.INFO, __file__, 1,
                                   "Loaded %s", ("topology",), None)
        record.project = "acme/api"
        record.version = 3
        out = json.loads(observability.JsonFormatter().format(record))

        assert out["message"] == "Loaded topology"
        assert out["level"] == "INFO"
        assert out["logger"] == "risksurface.sections"
        assert out["project"] == "acme/api"
        assert out["version"] == 3
        assert "section" not in out

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        out = json.loads(observability.JsonFormatter().format(record))
        assert "RuntimeError: boom" in out["exception"]


class TestCounters:
    def test_snapshot(self):
        observability.record_fetch("/api/topology", "success")
        observability.record_fetch("/api/topology", "success")
        observability.record_fetch("/api/impact", "error")
        observability.record_retry("/api/impact")
        observability.record_stale_discard("impact")
        observability.record_context_mismatch("dependencies")

        snap = observability.snapshot()
        assert snap["fetches"] == {"/api/impact error": 1, "/api/topology success": 2}
        assert snap["retries"] == {"/api/impact": 1}
        assert snap["stale_discards"] == {"impact": 1}
        assert snap["context_mismatches"] == {"dependencies": 1}

    def test_reset(self):
        observability.record_retry("/api/impact")
        observability.reset_metrics()
        assert observability.snapshot()["retries"] == {}

    def test_prometheus_text(self):
        observability.record_fetch("/api/topology", "timeout")
        observability.record_stale_discard("topology")
        text = observability.generate_metrics()

        assert "# TYPE risksurface_fetches_total counter" in text
        assert 'risksurface_fetches_total{endpoint="/api/topology",outcome="timeout"} 1' in text
        assert 'risksurface_stale_discards_total{section="topology"} 1' in text
        assert text.endswith("\n")
