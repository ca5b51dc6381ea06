"""Tests for CLI dispatch, output handling, and argument parsing."""

import json
import logging
from unittest.mock import patch

import httpx
import pytest

from conftest import selected_payload
from risksurface.cli import _out, build_parser, main
from risksurface.client import open_client

PROJECT = "acme/api"


@pytest.fixture(autouse=True)
def _restore_root_logger(monkeypatch):
    """main() installs a JSON handler on the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    for key, value in (("RISKSURFACE_RETRY_LIMIT", "0"), ("RISKSURFACE_POLL_INTERVAL", "0"),
                       ("RISKSURFACE_CONTEXT_RETRY_DELAY", "0")):
        monkeypatch.setenv(key, value)
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _patched_client(routes):
    """Replace open_client so commands talk to a MockTransport backend."""

    def handler(request: httpx.Request) -> httpx.Response:
        key = f"{request.method} {request.url.path}"
        if key not in routes:
            return httpx.Response(404)
        status, body = routes[key]
        return httpx.Response(status, json=body)

    def factory(config):
        return open_client(config, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    return patch("risksurface.cli.commands.open_client", factory)


class TestOutErrorHandling:
    def test_out_success(self, capsys):
        assert _out({"ok": True}) == 0
        assert json.loads(capsys.readouterr().out) == {"ok": True}

    def test_out_error_dict(self, capsys):
        assert _out({"error": "boom"}) == 1
        assert json.loads(capsys.readouterr().out)["error"] == "boom"

    def test_out_nested_error_is_not_failure(self, capsys):
        assert _out({"sections": {"error": "nested"}}) == 0


class TestParserStructure:
    def test_report_defaults(self):
        args = build_parser().parse_args(["report", PROJECT])
        assert args.command == "report"
        assert args.section is None
        assert args.no_analyze is False
        assert args.with_metrics is False
        assert args.metrics_format == "json"

    def test_report_sections_repeatable(self):
        args = build_parser().parse_args(["report", PROJECT, "--section", "topology", "--section", "impact"])
        assert args.section == ["topology", "impact"]

    def test_unknown_section_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["report", PROJECT, "--section", "weather"])

    def test_analyze_requires_project(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["analyze"])


class TestMainDispatch:
    def test_no_command_prints_help(self):
        assert main([]) == 1

    def test_projects(self, capsys):
        routes = {"GET /api/projects": (200, [
            {"fullName": PROJECT, "analysisState": "ready", "language": "Python"},
            {"fullName": "broken"},
        ])}
        with _patched_client(routes):
            code = main(["--log-level", "ERROR", "projects"])

        assert code == 0
        out = json.loads(capsys.readouterr().out)
        assert [p["fullName"] for p in out["projects"]] == [PROJECT]
        assert out["projects"][0]["analysisState"] == "ready"

    def test_projects_backend_down(self, capsys):
        with _patched_client({"GET /api/projects": (500, {})}):
            code = main(["--log-level", "ERROR", "projects"])

        assert code == 1
        assert json.loads(capsys.readouterr().out)["error"] == "HTTP 500: Internal Server Error"

    def test_analyze_rejected(self, capsys):
        routes = {f"POST /api/projects/{PROJECT}/analyze": (200, {"success": False, "error": "private repo"})}
        with _patched_client(routes):
            code = main(["--log-level", "ERROR", "analyze", PROJECT])

        assert code == 1
        assert json.loads(capsys.readouterr().out)["error"] == "rejected: private repo"

    def test_analyze_waits_until_ready(self, capsys):
        routes = {
            f"POST /api/projects/{PROJECT}/analyze": (200, {"success": True}),
            "GET /api/projects": (200, [{"fullName": PROJECT, "analysisState": "ready"}]),
        }
        with _patched_client(routes):
            code = main(["--log-level", "ERROR", "analyze", PROJECT])

        assert code == 0
        out = json.loads(capsys.readouterr().out)
        assert out["analysis"]["state"] == "ready"
        assert out["analysis"]["value"]["fullName"] == PROJECT

    def test_report(self, capsys):
        routes = {
            "GET /api/projects": (200, [{"fullName": PROJECT, "analysisState": "ready"}]),
            "POST /api/projects/selected": (200, {"ok": True}),
            "GET /api/projects/selected": (200, selected_payload(PROJECT)),
            "GET /api/topology": (200, {"project": {"fullName": PROJECT}, "layers": 2}),
            "GET /api/impact": (500, {}),
        }
        with _patched_client(routes):
            code = main(["--log-level", "ERROR", "report", PROJECT,
                         "--section", "topology", "--section", "impact", "--with-metrics"])

        assert code == 0
        out = json.loads(capsys.readouterr().out)
        assert out["selection"]["acknowledged"] is True
        assert out["sections"]["topology"]["status"] == "success"
        assert out["sections"]["impact"]["status"] == "error"
        assert out["partial"] == ["impact"]
        assert "fetches" in out["metrics"]

    def test_report_prometheus_metrics(self, capsys):
        routes = {
            "GET /api/projects": (200, [{"fullName": PROJECT, "analysisState": "ready"}]),
            "POST /api/projects/selected": (200, {"ok": True}),
            "GET /api/topology": (200, {"project": {"fullName": PROJECT}, "layers": 2}),
        }
        with _patched_client(routes):
            code = main(["--log-level", "ERROR", "report", PROJECT, "--section", "topology",
                         "--with-metrics", "--metrics-format", "prometheus"])

        assert code == 0
        metrics = json.loads(capsys.readouterr().out)["metrics"]
        assert "# TYPE risksurface_fetches_total counter" in metrics
        assert 'risksurface_fetches_total{endpoint="/api/topology",outcome="success"} 1' in metrics

    def test_report_invalid_project(self, capsys):
        with _patched_client({"GET /api/projects": (200, [])}):
            code = main(["--log-level", "ERROR", "report", "no-slash"])

        assert code == 1
        assert "owner/name" in json.loads(capsys.readouterr().out)["error"]
