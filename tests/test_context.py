"""Tests for project context validation and the bounded re-fetch loop."""

import pytest

from conftest import SleepRecorder, make_config
from risksurface import observability
from risksurface.context import (
    CONTEXT_UNAVAILABLE,
    SUPERSEDED,
    ProjectContextValidator,
    check,
    embedded_project,
    ensure_context,
)
from risksurface.errors import ContextMismatchError
from risksurface.models import FetchResult, FetchState


def _payload(project: str | None, **extra) -> dict:
    body = dict(extra)
    if project is not None:
        body["project"] = {"fullName": project}
    return body


class ScriptedFetch:
    """Returns the scripted results in order, repeating the last one."""

    def __init__(self, *results: FetchResult) -> None:
        self.results = list(results)
        self.calls = 0

    async def __call__(self) -> FetchResult:
        self.calls += 1
        return self.results[min(self.calls, len(self.results)) - 1]


def _validator(sleep: SleepRecorder, **config) -> ProjectContextValidator:
    return ProjectContextValidator(make_config(**config), sleep=sleep)


class TestCheck:
    def test_embedded_project(self):
        assert embedded_project(_payload("acme/api")) == "acme/api"
        assert embedded_project({"project": {"fullName": ""}}) is None
        assert embedded_project({"project": "acme/api"}) is None
        assert embedded_project([1, 2]) is None

    def test_match(self):
        result = check(_payload("acme/api", nodes=[]), "acme/api")
        assert result.matches
        assert result.received == "acme/api"

    def test_mismatch(self):
        result = check(_payload("acme/web"), "acme/api")
        assert not result.matches
        assert result.expected == "acme/api"
        assert result.received == "acme/web"

    def test_missing_identity_is_a_mismatch(self):
        assert not check({"nodes": [{"id": "x"}]}, "acme/api").matches

    def test_nothing_selected_passes(self):
        assert check({"selected": False}, "acme/api").matches

    def test_ensure_context_raises(self):
        with pytest.raises(ContextMismatchError) as exc_info:
            ensure_context(_payload("acme/web"), "acme/api")
        assert exc_info.value.expected == "acme/api"
        assert exc_info.value.received == "acme/web"

    def test_ensure_context_returns_payload(self):
        payload = _payload("acme/api")
        assert ensure_context(payload, "acme/api") is payload


class TestFetchForProject:
    @pytest.mark.asyncio
    async def test_matching_payload_first_time(self, sleep):
        fetch = ScriptedFetch(FetchResult.success(_payload("acme/api")))
        result = await _validator(sleep).fetch_for_project(fetch, "acme/api")

        assert result.ok
        assert fetch.calls == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_refetches_until_backend_catches_up(self, sleep):
        fetch = ScriptedFetch(
            FetchResult.success(_payload("acme/web")),
            FetchResult.success(_payload("acme/api")),
        )
        result = await _validator(sleep).fetch_for_project(fetch, "acme/api", section="dependencies")

        assert result.ok
        assert result.data["project"]["fullName"] == "acme/api"
        assert fetch.calls == 2
        assert sleep.calls == [0.3]
        assert observability.snapshot()["context_mismatches"] == {"dependencies": 1}

    @pytest.mark.asyncio
    async def test_persistent_mismatch_is_bounded(self, sleep):
        fetch = ScriptedFetch(FetchResult.success(_payload("acme/web")))
        result = await _validator(sleep).fetch_for_project(fetch, "acme/api")

        assert result.state == FetchState.ERROR
        assert result.error.startswith(CONTEXT_UNAVAILABLE)
        assert "after 3 re-fetches" in result.error
        assert fetch.calls == 4
        assert sleep.calls == [0.3, 0.3, 0.3]

    @pytest.mark.asyncio
    async def test_bound_is_configurable(self, sleep):
        fetch = ScriptedFetch(FetchResult.success({"nodes": []}))
        result = await _validator(sleep, context_max_retries=0).fetch_for_project(fetch, "acme/api")

        assert fetch.calls == 1
        assert result.error.startswith(CONTEXT_UNAVAILABLE)

    @pytest.mark.asyncio
    async def test_transport_error_returned_unchanged(self, sleep):
        failure = FetchResult.failure("HTTP 500: Internal Server Error")
        fetch = ScriptedFetch(failure)
        result = await _validator(sleep).fetch_for_project(fetch, "acme/api")

        assert result is failure
        assert fetch.calls == 1

    @pytest.mark.asyncio
    async def test_superseded_selection_stops_refetching(self, sleep):
        current = {"value": True}

        async def fetch():
            current["value"] = False  # user switched while this request was in flight
            return FetchResult.success(_payload("acme/web"))

        result = await _validator(sleep).fetch_for_project(
            fetch, "acme/api", is_current=lambda: current["value"],
        )

        assert result.error == SUPERSEDED
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_superseded_during_delay(self):
        current = {"value": True}
        calls = []

        async def switching_sleep(seconds):
            calls.append(seconds)
            current["value"] = False

        validator = ProjectContextValidator(make_config(), sleep=switching_sleep)
        fetch = ScriptedFetch(FetchResult.success(_payload("acme/web")))
        result = await validator.fetch_for_project(fetch, "acme/api", is_current=lambda: current["value"])

        assert result.error == SUPERSEDED
        assert fetch.calls == 1
        assert calls == [0.3]
