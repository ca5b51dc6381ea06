"""Single source of truth for shared constants and configuration defaults.

Every timeout, retry bound, or scoring weight used in more than one module is
defined here.  Weights that belong to exactly one formula stay next to that
formula in the metrics package.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------

DEFAULT_API_BASE = "http://localhost:8080"
JSON_HEADERS: dict[str, str] = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

FETCH_TIMEOUT_SECONDS = 30.0
FETCH_RETRY_LIMIT = 2            # additional attempts after the first
FETCH_BACKOFF_SECONDS = 1.0      # multiplied by the attempt number
MS_PER_SECOND = 1000

# ---------------------------------------------------------------------------
# Project context
# ---------------------------------------------------------------------------

CONTEXT_RETRY_DELAY_SECONDS = 0.3
CONTEXT_MAX_RETRIES = 3

# ---------------------------------------------------------------------------
# Analysis polling
# ---------------------------------------------------------------------------

POLL_INTERVAL_SECONDS = 1.0
POLL_MAX_ITERATIONS = 60

# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------

SCORE_MAX = 100.0

UNAVAILABLE = "unavailable"

# ---------------------------------------------------------------------------
# Sections (name -> section-scoped endpoint)
# ---------------------------------------------------------------------------

SECTION_ENDPOINTS: dict[str, str] = {
    "topology": "/api/topology",
    "trajectory": "/api/trajectory",
    "impact": "/api/impact",
    "dependencies": "/api/dependencies",
    "concentration": "/api/concentration",
    "temporal": "/api/temporal",
    "predictions": "/api/predictions",
}

SELECTED_PROJECT_ENDPOINT = "/api/projects/selected"
PROJECTS_ENDPOINT = "/api/projects"
