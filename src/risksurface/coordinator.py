"""Project selection coordinator: the single owner of the selection token.

Every asynchronous task is handed an immutable ``SelectionToken`` snapshot
when it starts (``begin``) and must present it again when it completes
(``accept``).  A result whose token is no longer current is discarded,
never merged: there is no mid-flight cancellation of requests, so this
comparison at completion time is what keeps one project's data out of
another project's views.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from risksurface import observability
from risksurface.client import AnalysisClient
from risksurface.defaults import SECTION_ENDPOINTS
from risksurface.errors import ServerRejection, TransportError
from risksurface.models import (
    AnalysisState,
    FetchResult,
    FetchState,
    Project,
    SelectionToken,
    Unavailable,
    now_ts,
    split_full_name,
)
from risksurface.polling import PollOutcome, PollState, wait_for_analysis
from risksurface.resilience import Sleep

log = logging.getLogger("risksurface.coordinator")


@dataclass
class ViewState:
    """Per-section view state: ``idle -> loading -> {success, error}``."""

    section: str
    state: FetchState = FetchState.IDLE
    generation: int = 0
    data: Any = None
    error: str | None = None
    updated_at: float = field(default_factory=now_ts)

    @property
    def unavailable(self) -> bool:
        return self.state == FetchState.SUCCESS and isinstance(self.data, Unavailable)

    @property
    def status(self) -> str:
        return "unavailable" if self.unavailable else self.state.value

    def to_dict(self) -> dict[str, Any]:
        data = self.data.to_dict() if hasattr(self.data, "to_dict") else self.data
        return {
            "section": self.section,
            "status": self.status,
            "generation": self.generation,
            "data": data,
            "error": self.error,
            "updatedAt": self.updated_at,
        }


@dataclass
class SelectionOutcome:
    token: SelectionToken
    noop: bool = False
    acknowledged: bool = False
    warning: str | None = None
    rejection: str | None = None
    analysis: PollOutcome | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "token": self.token.to_dict(),
            "noop": self.noop,
            "acknowledged": self.acknowledged,
            "warning": self.warning,
            "rejection": self.rejection,
            "analysis": self.analysis.to_dict() if self.analysis else None,
        }


class ProjectSelectionCoordinator:
    """Owns the selected project, its version token and every view's state.

    Parameters
    ----------
    client:
        Backend client used to acknowledge selections and trigger analysis.
        ``None`` skips all backend notification.
    sections:
        Names of the views to manage.
    sleep:
        Awaitable sleep passed to the analysis poller.
    """

    def __init__(
        self,
        client: AnalysisClient | None = None,
        sections: Iterable[str] = SECTION_ENDPOINTS,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self._sleep = sleep
        self._token = SelectionToken()
        self._views: dict[str, ViewState] = {s: ViewState(s) for s in sections}
        self._projects: dict[str, Project] = {}
        self.analysis_ready = True

    # -- read-only accessors -------------------------------------------------

    @property
    def token(self) -> SelectionToken:
        return self._token

    @property
    def selected(self) -> str | None:
        return self._token.project

    def is_current(self, token: SelectionToken) -> bool:
        return token == self._token

    def view(self, section: str) -> ViewState:
        return self._views[section]

    def views(self) -> dict[str, ViewState]:
        return dict(self._views)

    def register(self, section: str) -> None:
        self._views.setdefault(section, ViewState(section, generation=self._token.version))

    def update_catalogue(self, projects: Iterable[Project]) -> None:
        for project in projects:
            self._projects[project.full_name] = project

    def project(self, full_name: str) -> Project | None:
        return self._projects.get(full_name)

    # -- selection -----------------------------------------------------------

    def switch(self, project_id: str) -> SelectionToken:
        """Make *project_id* current and return its token, synchronously.

        Bumps the version, forces every view to loading and records the
        project before returning, so a result issued for the previous
        selection is refused by ``accept`` from this call on.  Views stay
        disabled (``analysis_ready`` false) until ``notify`` completes.
        Re-switching to the current project returns the current token.
        """
        if project_id == self._token.project:
            log.debug("Project %s already selected, keeping token %d", project_id, self._token.version)
            return self._token
        split_full_name(project_id)
        return self._invalidate(project_id)

    async def select(self, project_id: str, *, analyze: bool = True) -> SelectionOutcome:
        """``switch`` to *project_id*, then ``notify`` the backend."""
        if project_id == self._token.project:
            return SelectionOutcome(self.switch(project_id), noop=True, acknowledged=True)
        return await self.notify(self.switch(project_id), analyze=analyze)

    async def notify(self, token: SelectionToken, *, analyze: bool = True) -> SelectionOutcome:
        """Acknowledge *token*'s selection and run analysis if it is not ready.

        Views are re-enabled whether or not the backend cooperates, but only
        while *token* is still current.
        """
        outcome = SelectionOutcome(token)
        project_id = token.project
        if project_id is None:
            raise ValueError("cannot notify the backend of an empty selection")
        if self.client is None:
            if self.is_current(token):
                self.analysis_ready = True
            return outcome

        try:
            await self.client.acknowledge_selection(project_id)
            outcome.acknowledged = True
            known = self._projects.get(project_id)
            if analyze and (known is None or known.analysis_state != AnalysisState.READY):
                await self._analyze(project_id, token, outcome)
        except ServerRejection as e:
            outcome.rejection = str(e)
            log.warning("Analysis of %s rejected: %s", project_id, e,
                        extra={"project": project_id, "version": token.version})
        except TransportError as e:
            outcome.warning = f"Backend did not acknowledge selection of {project_id}: {e}"
            log.warning(outcome.warning, extra={"project": project_id, "version": token.version})
        finally:
            # A newer selection owns the ready flag from here on.
            if self.is_current(token):
                self.analysis_ready = True
        return outcome

    def _invalidate(self, project_id: str) -> SelectionToken:
        self._token = SelectionToken(self._token.version + 1, project_id)
        self.analysis_ready = False
        for view in self._views.values():
            self._transition(view, FetchState.LOADING, self._token.version)
        log.info("Selected %s (version %d), %d views invalidated",
                 project_id, self._token.version, len(self._views),
                 extra={"project": project_id, "version": self._token.version})
        return self._token

    async def _analyze(self, project_id: str, token: SelectionToken, outcome: SelectionOutcome) -> None:
        assert self.client is not None
        self._set_state(project_id, AnalysisState.ANALYZING)
        await self.client.trigger_analysis(project_id)
        poll = await wait_for_analysis(
            self.client, project_id, sleep=self._sleep, is_current=lambda: self.is_current(token),
        )
        outcome.analysis = poll
        if poll.state == PollState.READY and poll.value is not None:
            self._projects[project_id] = poll.value
        elif poll.state in (PollState.GAVE_UP, PollState.ERROR):
            outcome.warning = f"Analysis of {project_id} not ready ({poll.state.value})"
            log.warning(outcome.warning, extra={"project": project_id, "version": token.version})

    def _set_state(self, project_id: str, state: AnalysisState) -> None:
        project = self._projects.get(project_id)
        if project is None:
            self._projects[project_id] = Project(project_id, state)
        else:
            project.analysis_state = state

    # -- view lifecycle ------------------------------------------------------

    @staticmethod
    def _transition(view: ViewState, state: FetchState, generation: int) -> None:
        view.state = state
        view.generation = generation
        view.data = None
        view.error = None
        view.updated_at = now_ts()

    def begin(self, section: str) -> SelectionToken:
        """Move *section* to loading and hand out the token its task must carry."""
        self.register(section)
        self._transition(self._views[section], FetchState.LOADING, self._token.version)
        return self._token

    def accept(self, section: str, token: SelectionToken, result: FetchResult[Any]) -> bool:
        """Commit *result* to *section* if *token* is still current.

        Returns False, leaving the view untouched, for a superseded token or
        a non-terminal result.
        """
        if not self.is_current(token):
            observability.record_stale_discard(section)
            log.info(
                "Discarding %s result for %s (version %d, current %d)",
                section, token.project, token.version, self._token.version,
                extra={"section": section, "project": token.project, "version": token.version},
            )
            return False
        if not result.is_terminal:
            return False
        view = self._views[section]
        self._transition(view, result.state, token.version)
        view.data = result.data
        view.error = result.error
        return True
