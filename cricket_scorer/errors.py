"""
Error taxonomy for the scoring engine.

Every rule violation is a rejected event, never a crash. Persistence
problems are surfaced separately so callers can retry without touching
the already-applied match state.
"""

from __future__ import annotations

from typing import Any, Optional


class ScoringError(Exception):
    """Base class for all scorer errors."""


class InvalidEvent(ScoringError, ValueError):
    """A scoring event violated a precondition and was rejected."""


class PersistenceFailure(ScoringError):
    """A match snapshot could not be saved or loaded."""

    def __init__(
        self,
        message: str,
        match_id: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.match_id = match_id
        # Set when the rule transition succeeded but the push failed
        self.payload = payload
