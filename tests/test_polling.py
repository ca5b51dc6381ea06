"""Tests for bounded polling and the analysis wait."""

import httpx
import pytest

from conftest import make_client
from risksurface.models import AnalysisState, FetchResult
from risksurface.polling import PollState, poll, wait_for_analysis


def _check(*results):
    calls = []

    async def check():
        calls.append(1)
        return results[min(len(calls), len(results)) - 1]

    check.calls = calls
    return check


class TestPoll:
    @pytest.mark.asyncio
    async def test_ready_on_third_iteration(self, sleep):
        check = _check(FetchResult.success(1), FetchResult.success(2), FetchResult.success(3))
        outcome = await poll(check, lambda n: n >= 3, interval=0.5, max_iterations=10, sleep=sleep)

        assert outcome.state == PollState.READY
        assert outcome.iterations == 3
        assert outcome.value == 3
        assert sleep.calls == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_gives_up_at_ceiling(self, sleep):
        check = _check(FetchResult.success("analyzing"))
        outcome = await poll(check, lambda s: s == "ready", interval=1.0, max_iterations=4, sleep=sleep)

        assert outcome.state == PollState.GAVE_UP
        assert outcome.iterations == 4
        assert len(check.calls) == 4
        assert len(sleep.calls) == 3

    @pytest.mark.asyncio
    async def test_ends_in_error_when_last_check_failed(self, sleep):
        check = _check(FetchResult.success("analyzing"), FetchResult.failure("HTTP 502: Bad Gateway"))
        outcome = await poll(check, lambda s: s == "ready", interval=1.0, max_iterations=3, sleep=sleep)

        assert outcome.state == PollState.ERROR
        assert outcome.error == "HTTP 502: Bad Gateway"

    @pytest.mark.asyncio
    async def test_transient_error_then_ready(self, sleep):
        check = _check(FetchResult.failure("HTTP 502: Bad Gateway"), FetchResult.success("ready"))
        outcome = await poll(check, lambda s: s == "ready", interval=1.0, max_iterations=3, sleep=sleep)

        assert outcome.state == PollState.READY
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_superseded_stops_without_probing(self, sleep):
        check = _check(FetchResult.success("analyzing"))
        outcome = await poll(check, lambda s: False, interval=1.0, max_iterations=5, sleep=sleep,
                             is_current=lambda: False)

        assert outcome.state == PollState.SUPERSEDED
        assert outcome.iterations == 0
        assert check.calls == []


class TestWaitForAnalysis:
    @pytest.mark.asyncio
    async def test_returns_ready_project(self, sleep):
        states = iter(["analyzing", "analyzing", "ready"])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[
                {"fullName": "acme/web", "analysisState": "ready"},
                {"fullName": "acme/api", "analysisState": next(states)},
            ])

        client = make_client(handler, poll_interval=2.0)
        outcome = await wait_for_analysis(client, "acme/api", sleep=sleep)

        assert outcome.state == PollState.READY
        assert outcome.iterations == 3
        assert outcome.value.full_name == "acme/api"
        assert outcome.value.analysis_state == AnalysisState.READY
        assert sleep.calls == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_unknown_project_gives_up(self, sleep):
        client = make_client(lambda r: httpx.Response(200, json=[]), poll_max_iterations=2)
        outcome = await wait_for_analysis(client, "acme/api", sleep=sleep)

        assert outcome.state == PollState.GAVE_UP
        assert outcome.to_dict() == {"state": "gave_up", "iterations": 2, "value": None, "error": None}
