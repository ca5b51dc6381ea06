"""Resilient fetch: one logical request with timeout, bounded retry and backoff.

``ResilientDataFetcher.fetch`` never raises.  Every failure resolves to a
``FetchResult`` in the ``error`` state, so one section's failure cannot
propagate into another section's task.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping

import httpx

from risksurface import observability
from risksurface.config import ClientConfig
from risksurface.defaults import JSON_HEADERS
from risksurface.errors import TransportError
from risksurface.models import FetchResult
from risksurface.resilience import OperationTimeout, Sleep, retry_async, with_timeout

log = logging.getLogger("risksurface.fetcher")

SectionFetch = Callable[[Mapping[str, str] | None], Awaitable[FetchResult[Any]]]


class ResilientDataFetcher:
    """Issue JSON requests against the analysis backend.

    Parameters
    ----------
    client:
        Shared ``httpx.AsyncClient``.  The fetcher never closes it.
    config:
        Timeout, retry and backoff settings.
    sleep:
        Awaitable sleep used between retries, injectable for tests.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ClientConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.client = client
        self.config = config or ClientConfig()
        self._sleep = sleep

    async def fetch(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        params: Mapping[str, str] | None = None,
        json: Any = None,
    ) -> FetchResult[Any]:
        url = f"{self.config.api_base}{endpoint}"
        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            if attempts > 1:
                observability.record_retry(endpoint)
            return await self._request_once(method, url, params, json)

        try:
            data = await retry_async(
                attempt,
                max_attempts=self.config.max_attempts,
                base_delay=self.config.backoff,
                exceptions=(TransportError,),
                sleep=self._sleep,
                label=f"{method} {endpoint}",
            )
        except OperationTimeout as e:
            log.warning("%s %s timed out", method, endpoint,
                        extra={"endpoint": endpoint, "attempt": attempts})
            observability.record_fetch(endpoint, "timeout")
            return FetchResult.failure(str(e))
        except TransportError as e:
            log.warning("%s %s failed after %d attempts: %s", method, endpoint, attempts, e,
                        extra={"endpoint": endpoint, "attempt": attempts})
            observability.record_fetch(endpoint, "error")
            return FetchResult.failure(str(e))
        except Exception as e:
            log.exception("Unexpected error fetching %s %s", method, endpoint)
            observability.record_fetch(endpoint, "error")
            return FetchResult.failure(f"Unexpected error: {e}")

        observability.record_fetch(endpoint, "success")
        return FetchResult.success(data)

    async def _request_once(
        self,
        method: str,
        url: str,
        params: Mapping[str, str] | None,
        json: Any,
    ) -> Any:
        try:
            resp = await with_timeout(
                self.client.request(method, url, params=params, json=json, headers=JSON_HEADERS,
                                    timeout=self.config.timeout),
                self.config.timeout,
            )
        except httpx.TimeoutException as e:
            raise OperationTimeout(self.config.timeout) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {type(e).__name__}: {e}") from e

        if not resp.is_success:
            raise TransportError(f"HTTP {resp.status_code}: {resp.reason_phrase}",
                                 status_code=resp.status_code)
        try:
            payload = resp.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON response: {e}", status_code=resp.status_code) from e
        if payload is None:
            raise TransportError("Empty response body", status_code=resp.status_code)
        return payload

    def section_fetcher(self, endpoint: str) -> SectionFetch:
        """Return a fetch function bound to one section endpoint."""

        async def fetch_section(params: Mapping[str, str] | None = None) -> FetchResult[Any]:
            return await self.fetch(endpoint, params=params)

        return fetch_section
