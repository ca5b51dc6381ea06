"""Shared constants for metric derivation."""

from risksurface.defaults import SCORE_MAX

_MALFORMED = (KeyError, TypeError, ValueError)
_SCORE_MAX = SCORE_MAX
