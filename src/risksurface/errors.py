"""Error taxonomy.

Each error is scoped to the smallest unit that observed it: one fetch, one
section, or one metric.  None of them are allowed to escape a public
operation; they are converted into terminal result states at the seam where
they are caught.
"""

from __future__ import annotations


class RiskSurfaceError(Exception):
    """Base class for all risksurface errors."""


class TransportError(RiskSurfaceError):
    """Network failure, non-2xx status, or undecodable body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ContextMismatchError(RiskSurfaceError):
    """A payload was computed for a different project than the one expected."""

    def __init__(self, expected: str, received: str | None) -> None:
        super().__init__(f"expected project {expected!r}, got {received!r}")
        self.expected = expected
        self.received = received


class InsufficientDataError(RiskSurfaceError):
    """A metric cannot be computed from the data at hand.  Never retried."""


class ServerRejection(RiskSurfaceError):
    """The backend answered an action with ``success: false``."""
