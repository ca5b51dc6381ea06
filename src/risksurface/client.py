"""Backend client: project catalogue, selection and analysis actions.

Read operations return ``FetchResult`` like every other fetch.  Actions
(acknowledging a selection, triggering analysis) raise on failure so the
initiating caller decides how to surface it.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
from pydantic import ValidationError

from risksurface.config import ClientConfig
from risksurface.defaults import PROJECTS_ENDPOINT, SELECTED_PROJECT_ENDPOINT
from risksurface.errors import ServerRejection, TransportError
from risksurface.fetcher import ResilientDataFetcher
from risksurface.models import AnalysisState, FetchResult, Project, split_full_name
from risksurface.schemas import AnalyzeResponse, ProjectEntry, SelectProjectBody

log = logging.getLogger("risksurface.client")


class AnalysisClient:
    """Thin typed layer over ``ResilientDataFetcher`` for the project endpoints."""

    def __init__(self, fetcher: ResilientDataFetcher) -> None:
        self.fetcher = fetcher

    @property
    def config(self) -> ClientConfig:
        return self.fetcher.config

    async def list_projects(self) -> FetchResult[list[Project]]:
        result = await self.fetcher.fetch(PROJECTS_ENDPOINT)
        if not result.ok:
            return result
        if not isinstance(result.data, list):
            return FetchResult.failure("Malformed project list: expected an array")
        projects: list[Project] = []
        for raw in result.data:
            try:
                entry = ProjectEntry.model_validate(raw)
                split_full_name(entry.full_name)
                state = AnalysisState(entry.analysis_state)
            except (ValidationError, ValueError) as e:
                log.warning("Skipping malformed project entry %r: %s", raw, e)
                continue
            projects.append(Project(
                full_name=entry.full_name,
                analysis_state=state,
                description=entry.description or "",
                language=entry.language or "",
                default_branch=entry.default_branch or "",
            ))
        return FetchResult.success(projects)

    async def get_selected(self) -> FetchResult[dict[str, Any]]:
        return await self.fetcher.fetch(SELECTED_PROJECT_ENDPOINT)

    async def acknowledge_selection(self, full_name: str) -> None:
        """Tell the backend which project is selected.  Raises ``TransportError``."""
        body = SelectProjectBody(fullName=full_name).model_dump(by_alias=True)
        result = await self.fetcher.fetch(SELECTED_PROJECT_ENDPOINT, method="POST", json=body)
        if not result.ok:
            raise TransportError(result.error or "selection not acknowledged")

    async def trigger_analysis(self, full_name: str) -> AnalyzeResponse:
        """Start backend analysis of *full_name*.

        Raises ``TransportError`` when the request fails and
        ``ServerRejection`` when the backend answers ``success: false``.
        """
        owner, repo = split_full_name(full_name)
        result = await self.fetcher.fetch(f"{PROJECTS_ENDPOINT}/{owner}/{repo}/analyze", method="POST")
        if not result.ok:
            raise TransportError(result.error or "analysis request failed")
        try:
            response = AnalyzeResponse.model_validate(result.data)
        except ValidationError as e:
            raise TransportError(f"Malformed analyze response: {e.error_count()} errors") from e
        if not response.success:
            raise ServerRejection(response.error or response.message or f"analysis of {full_name} rejected")
        return response


@asynccontextmanager
async def open_client(
    config: ClientConfig | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> AsyncIterator[AnalysisClient]:
    """Yield an ``AnalysisClient``, creating a temporary ``AsyncClient`` if needed."""
    config = config or ClientConfig()
    if client is not None:
        yield AnalysisClient(ResilientDataFetcher(client, config))
    else:
        async with httpx.AsyncClient(timeout=config.timeout) as c:
            yield AnalysisClient(ResilientDataFetcher(c, config))
