"""Project context validation: refuse payloads computed for another project.

The backend keeps its own notion of the "selected project", which can lag
behind the client's after a switch.  Every payload embeds the identity it
was computed for (``project.fullName``); this module compares it with the
caller's expectation when the response arrives and re-fetches a bounded
number of times on mismatch.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from risksurface import observability
from risksurface.config import ClientConfig
from risksurface.errors import ContextMismatchError
from risksurface.models import FetchResult
from risksurface.resilience import Sleep

log = logging.getLogger("risksurface.context")

CONTEXT_UNAVAILABLE = "context unavailable"
SUPERSEDED = "superseded by a newer project selection"


@dataclass(frozen=True)
class ContextCheck:
    matches: bool
    expected: str
    received: str | None


def embedded_project(payload: Any) -> str | None:
    """Project identity a payload claims to belong to, if any."""
    if not isinstance(payload, Mapping):
        return None
    project = payload.get("project")
    if not isinstance(project, Mapping):
        return None
    name = project.get("fullName")
    return name if isinstance(name, str) and name else None


def check(payload: Any, expected: str) -> ContextCheck:
    """Compare the payload's embedded identity with *expected*.

    A payload without an identity only passes when it explicitly reports that
    nothing is selected; it then carries no analysis to misattribute.
    """
    received = embedded_project(payload)
    if received is None:
        matches = isinstance(payload, Mapping) and payload.get("selected") is False
    else:
        matches = received == expected
    return ContextCheck(matches=matches, expected=expected, received=received)


def ensure_context(payload: Any, expected: str) -> Any:
    """Return *payload* unchanged, or raise ``ContextMismatchError``."""
    result = check(payload, expected)
    if not result.matches:
        raise ContextMismatchError(expected, result.received)
    return payload


class ProjectContextValidator:
    """Bounded re-fetch loop around a project-scoped fetch."""

    def __init__(self, config: ClientConfig | None = None, *, sleep: Sleep = asyncio.sleep) -> None:
        self.config = config or ClientConfig()
        self._sleep = sleep

    async def fetch_for_project(
        self,
        fetch: Callable[[], Awaitable[FetchResult[Any]]],
        expected: str,
        *,
        is_current: Callable[[], bool] = lambda: True,
        section: str = "",
    ) -> FetchResult[Any]:
        """Fetch until the payload belongs to *expected* or the bound is hit.

        Transport failures are returned as-is (the fetcher already retried
        them).  After ``context_max_retries`` re-fetches a terminal
        ``context unavailable`` error is returned.  If *is_current* turns
        false the loop stops without re-fetching for the abandoned project.
        """
        max_retries = self.config.context_max_retries
        retries = 0
        while True:
            result = await fetch()
            if not result.ok:
                return result
            try:
                ensure_context(result.data, expected)
                return result
            except ContextMismatchError as e:
                observability.record_context_mismatch(section)
                mismatch = e

            if retries >= max_retries:
                log.warning(
                    "Project context for %s still mismatched after %d re-fetches: %s",
                    section or "fetch", retries, mismatch,
                    extra={"section": section, "project": expected},
                )
                return FetchResult.failure(
                    f"{CONTEXT_UNAVAILABLE}: {mismatch} after {retries} re-fetches"
                )
            if not is_current():
                return FetchResult.failure(SUPERSEDED)

            retries += 1
            log.info(
                "Project mismatch for %s: %s, re-fetching in %.1fs (%d/%d)",
                section or "fetch", mismatch, self.config.context_retry_delay, retries, max_retries,
                extra={"section": section, "project": expected},
            )
            await self._sleep(self.config.context_retry_delay)
            if not is_current():
                return FetchResult.failure(SUPERSEDED)
