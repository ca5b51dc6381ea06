"""Client runtime configuration.

Configuration (env vars):
    RISKSURFACE_API_BASE              backend base URL (default http://localhost:8080)
    RISKSURFACE_TIMEOUT_SECONDS       per-request timeout (default 30)
    RISKSURFACE_RETRY_LIMIT           retries after the first attempt (default 2)
    RISKSURFACE_BACKOFF_SECONDS       linear backoff unit (default 1.0)
    RISKSURFACE_CONTEXT_RETRY_DELAY   delay before a project re-fetch (default 0.3)
    RISKSURFACE_CONTEXT_MAX_RETRIES   project re-fetch bound (default 3)
    RISKSURFACE_POLL_INTERVAL         analysis poll interval (default 1.0)
    RISKSURFACE_POLL_MAX_ITERATIONS   analysis poll bound (default 60)
    RISKSURFACE_LOG_LEVEL             log level (default INFO)
"""

from __future__ import annotations

import logging
import os
from typing import Callable, TypeVar

from risksurface import defaults

log = logging.getLogger("risksurface.config")

N = TypeVar("N", int, float)


def _env_number(name: str, default: N, cast: Callable[[str], N], minimum: N) -> N:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        log.warning("Invalid %s=%r: using default %s", name, raw, default)
        return default
    if value < minimum:
        log.warning("%s=%r below minimum %s: using default %s", name, raw, minimum, default)
        return default
    return value


class ClientConfig:
    """Client runtime configuration from environment, overridable per field."""

    def __init__(self, **overrides: object) -> None:
        self.api_base = os.environ.get("RISKSURFACE_API_BASE", defaults.DEFAULT_API_BASE).rstrip("/")
        self.timeout = _env_number(
            "RISKSURFACE_TIMEOUT_SECONDS", defaults.FETCH_TIMEOUT_SECONDS, float, 0.001)
        self.retry_limit = _env_number(
            "RISKSURFACE_RETRY_LIMIT", defaults.FETCH_RETRY_LIMIT, int, 0)
        self.backoff = _env_number(
            "RISKSURFACE_BACKOFF_SECONDS", defaults.FETCH_BACKOFF_SECONDS, float, 0.0)
        self.context_retry_delay = _env_number(
            "RISKSURFACE_CONTEXT_RETRY_DELAY", defaults.CONTEXT_RETRY_DELAY_SECONDS, float, 0.0)
        self.context_max_retries = _env_number(
            "RISKSURFACE_CONTEXT_MAX_RETRIES", defaults.CONTEXT_MAX_RETRIES, int, 0)
        self.poll_interval = _env_number(
            "RISKSURFACE_POLL_INTERVAL", defaults.POLL_INTERVAL_SECONDS, float, 0.0)
        self.poll_max_iterations = _env_number(
            "RISKSURFACE_POLL_MAX_ITERATIONS", defaults.POLL_MAX_ITERATIONS, int, 1)
        self.log_level = os.environ.get("RISKSURFACE_LOG_LEVEL", "INFO")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown config field: {key}")
            setattr(self, key, value)

    @property
    def max_attempts(self) -> int:
        return self.retry_limit + 1
