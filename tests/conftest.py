"""Shared fixtures for risksurface tests."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from risksurface import observability
from risksurface.client import AnalysisClient
from risksurface.config import ClientConfig
from risksurface.fetcher import ResilientDataFetcher

API = "http://backend.test"


# ---------------------------------------------------------------------------
# Auto-use fixtures: cleanup global state between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_metrics():
    """Reset in-process counters after every test."""
    yield
    observability.reset_metrics()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("RISKSURFACE_API_BASE", "RISKSURFACE_TIMEOUT_SECONDS", "RISKSURFACE_RETRY_LIMIT",
                "RISKSURFACE_BACKOFF_SECONDS", "RISKSURFACE_CONTEXT_RETRY_DELAY",
                "RISKSURFACE_CONTEXT_MAX_RETRIES", "RISKSURFACE_POLL_INTERVAL",
                "RISKSURFACE_POLL_MAX_ITERATIONS", "RISKSURFACE_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_config(**overrides: Any) -> ClientConfig:
    overrides.setdefault("api_base", API)
    return ClientConfig(**overrides)


def make_fetcher(
    handler: Callable[[httpx.Request], httpx.Response],
    sleep: SleepRecorder | None = None,
    **config: Any,
) -> ResilientDataFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ResilientDataFetcher(client, make_config(**config), sleep=sleep or SleepRecorder())


def make_client(handler: Callable[[httpx.Request], httpx.Response], **config: Any) -> AnalysisClient:
    return AnalysisClient(make_fetcher(handler, **config))


def selected_payload(project: str, **analysis: Any) -> dict[str, Any]:
    return {"selected": True, "project": {"fullName": project}, "analysis": analysis}


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()
