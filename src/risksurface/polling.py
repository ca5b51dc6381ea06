"""Bounded polling: a repeating task with an iteration ceiling and a terminal state.

Used to wait for backend analysis to finish.  The loop always ends in one of
``ready``, ``gave_up``, ``error`` or ``superseded``; it never polls forever.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from risksurface.client import AnalysisClient
from risksurface.models import AnalysisState, FetchResult, Project
from risksurface.resilience import Sleep

log = logging.getLogger("risksurface.polling")


class PollState(str, Enum):
    READY = "ready"
    GAVE_UP = "gave_up"
    ERROR = "error"
    SUPERSEDED = "superseded"


@dataclass(frozen=True)
class PollOutcome:
    state: PollState
    iterations: int
    value: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        value = self.value.to_dict() if hasattr(self.value, "to_dict") else self.value
        return {"state": self.state.value, "iterations": self.iterations,
                "value": value, "error": self.error}


async def poll(
    check: Callable[[], Awaitable[FetchResult[Any]]],
    done: Callable[[Any], bool],
    *,
    interval: float,
    max_iterations: int,
    sleep: Sleep = asyncio.sleep,
    is_current: Callable[[], bool] = lambda: True,
) -> PollOutcome:
    """Call *check* until *done* accepts its data or *max_iterations* is hit.

    Ends ``gave_up`` when the last check succeeded without being done, and
    ``error`` when the last check itself failed.
    """
    last_error: str | None = None
    for iteration in range(1, max_iterations + 1):
        if not is_current():
            return PollOutcome(PollState.SUPERSEDED, iteration - 1)
        result = await check()
        if result.ok:
            last_error = None
            if done(result.data):
                return PollOutcome(PollState.READY, iteration, value=result.data)
        else:
            last_error = result.error
        if iteration < max_iterations:
            await sleep(interval)

    state = PollState.ERROR if last_error else PollState.GAVE_UP
    log.warning("Polling stopped after %d iterations (%s)", max_iterations, state.value)
    return PollOutcome(state, max_iterations, error=last_error)


async def wait_for_analysis(
    client: AnalysisClient,
    full_name: str,
    *,
    sleep: Sleep = asyncio.sleep,
    is_current: Callable[[], bool] = lambda: True,
) -> PollOutcome:
    """Poll the project catalogue until *full_name* reports ``ready``."""

    def _find(projects: list[Project]) -> Project | None:
        return next((p for p in projects if p.full_name == full_name), None)

    def _ready(projects: list[Project]) -> bool:
        project = _find(projects)
        return project is not None and project.analysis_state == AnalysisState.READY

    outcome = await poll(
        client.list_projects,
        _ready,
        interval=client.config.poll_interval,
        max_iterations=client.config.poll_max_iterations,
        sleep=sleep,
        is_current=is_current,
    )
    if outcome.state == PollState.READY:
        return PollOutcome(PollState.READY, outcome.iterations, value=_find(outcome.value))
    return outcome
