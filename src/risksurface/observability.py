"""Observability: structured logging and in-process client metrics."""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from typing import Any

_EXTRA_FIELDS = ("project", "version", "section", "endpoint", "attempt", "status_code", "duration_ms")


# ---------------------------------------------------------------------------
# Structured JSON logging
# ---------------------------------------------------------------------------

class JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_dict["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_dict[key] = val
        return json.dumps(log_dict, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Configure root logger with JSON output."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Prometheus-compatible counters (no external dependency)
# ---------------------------------------------------------------------------

_fetch_count: dict[tuple[str, str], int] = defaultdict(int)
_retry_count: dict[str, int] = defaultdict(int)
_stale_discards: dict[str, int] = defaultdict(int)
_context_mismatches: dict[str, int] = defaultdict(int)


def record_fetch(endpoint: str, outcome: str) -> None:
    _fetch_count[(endpoint, outcome)] += 1


def record_retry(endpoint: str) -> None:
    _retry_count[endpoint] += 1


def record_stale_discard(section: str) -> None:
    _stale_discards[section] += 1


def record_context_mismatch(section: str) -> None:
    _context_mismatches[section] += 1


def snapshot() -> dict[str, Any]:
    """Current counter values as plain dicts (for tests and the CLI)."""
    return {
        "fetches": {f"{e} {o}": c for (e, o), c in sorted(_fetch_count.items())},
        "retries": dict(_retry_count),
        "stale_discards": dict(_stale_discards),
        "context_mismatches": dict(_context_mismatches),
    }


def reset_metrics() -> None:
    """Clear all counters (for tests)."""
    _fetch_count.clear()
    _retry_count.clear()
    _stale_discards.clear()
    _context_mismatches.clear()


def generate_metrics() -> str:
    """Render metrics in Prometheus text exposition format."""
    lines: list[str] = []

    lines.append("# HELP risksurface_fetches_total Completed fetches by endpoint and outcome.")
    lines.append("# TYPE risksurface_fetches_total counter")
    for (endpoint, outcome), count in sorted(_fetch_count.items()):
        lines.append(f'risksurface_fetches_total{{endpoint="{endpoint}",outcome="{outcome}"}} {count}')

    lines.append("# HELP risksurface_fetch_retries_total Retried fetch attempts by endpoint.")
    lines.append("# TYPE risksurface_fetch_retries_total counter")
    for endpoint, count in sorted(_retry_count.items()):
        lines.append(f'risksurface_fetch_retries_total{{endpoint="{endpoint}"}} {count}')

    lines.append("# HELP risksurface_stale_discards_total Responses discarded for a superseded selection.")
    lines.append("# TYPE risksurface_stale_discards_total counter")
    for section, count in sorted(_stale_discards.items()):
        lines.append(f'risksurface_stale_discards_total{{section="{section}"}} {count}')

    lines.append("# HELP risksurface_context_mismatches_total Payloads embedding a foreign project.")
    lines.append("# TYPE risksurface_context_mismatches_total counter")
    for section, count in sorted(_context_mismatches.items()):
        lines.append(f'risksurface_context_mismatches_total{{section="{section}"}} {count}')

    return "\n".join(lines) + "\n"
