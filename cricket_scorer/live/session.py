"""
Live match sessions.

Serializes scoring actions per match, pushes a snapshot to the store after
every successful transition and hands the presentation payload to the
caller. A failed push never rolls back the applied transition: the
snapshot is kept as deferred and retried on the next save or ``flush()``.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from cricket_scorer.config import ScorerConfig
from cricket_scorer.data.ball_event import DerivedEvent, MatchInfo
from cricket_scorer.data.roster import RosterService, StaticRosterService
from cricket_scorer.engine.scorer import ScoringEngine
from cricket_scorer.errors import PersistenceFailure
from cricket_scorer.state.match_state import MatchState
from cricket_scorer.store.match_store import MatchStore

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[dict[str, Any]], None]


class LiveMatchSession:
    """One live match: engine + store + presentation callback."""

    def __init__(
        self,
        engine: ScoringEngine,
        store: MatchStore,
        config: Optional[ScorerConfig] = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        self.engine = engine
        self.store = store
        self.config = config or ScorerConfig()
        self.on_update = on_update
        self._lock = threading.Lock()
        self._deferred: Optional[dict[str, Any]] = None

    @property
    def match_id(self) -> str:
        return self.engine.match_id

    @property
    def state(self) -> MatchState:
        return self.engine.state

    @property
    def has_deferred_save(self) -> bool:
        return self._deferred is not None

    # ── Scorer actions ──────────────────────────────────────────────

    def start_match(self, *args, **kwargs) -> dict[str, Any]:
        return self._run(self.engine.start_match, *args, **kwargs)

    def record_runs(self, runs: int) -> dict[str, Any]:
        return self._run(self.engine.record_runs, runs)

    def record_wicket(self, *args, **kwargs) -> dict[str, Any]:
        return self._run(self.engine.record_wicket, *args, **kwargs)

    def record_extra(self, kind, runs: int = 1) -> dict[str, Any]:
        return self._run(self.engine.record_extra, kind, runs)

    def select_next_bowler(self, name: str) -> dict[str, Any]:
        return self._run(self.engine.select_next_bowler, name)

    def select_next_batter(self, name: str) -> dict[str, Any]:
        return self._run(self.engine.select_next_batter, name)

    def setup_second_innings(
        self, striker: str, non_striker: str, bowler: str
    ) -> dict[str, Any]:
        return self._run(self.engine.setup_second_innings, striker, non_striker, bowler)

    def flush(self) -> bool:
        """Retry a deferred save. Returns True when nothing is left pending."""
        with self._lock:
            if self._deferred is None:
                return True
            try:
                self._save(self._deferred)
            except PersistenceFailure:
                return False
            self._deferred = None
            return True

    # ── Internals ───────────────────────────────────────────────────

    def _run(self, action: Callable[..., list[DerivedEvent]], *args, **kwargs) -> dict[str, Any]:
        with self._lock:
            emitted = action(*args, **kwargs)  # InvalidEvent propagates untouched
            for event in emitted:
                logger.info("Match %s: %s", self.match_id, event.describe())

            payload = self.engine.payload()
            snapshot = self.engine.state.to_dict()
            try:
                self._save(snapshot)
                self._deferred = None
            except PersistenceFailure as e:
                self._deferred = snapshot
                logger.error("Match %s: snapshot deferred after failed save: %s", self.match_id, e)
                self._notify(payload)
                raise PersistenceFailure(str(e), match_id=self.match_id, payload=payload) from e

            self._notify(payload)
            return payload

    def _save(self, snapshot: dict[str, Any]) -> None:
        # Called with the match lock held, backoff included: snapshots must
        # reach the store in event order, so other callers wait out the retries.
        attempts = max(1, self.config.session.save_retries)
        delay = self.config.session.retry_delay_seconds
        for attempt in range(1, attempts + 1):
            try:
                self.store.save_match(self.match_id, snapshot)
                return
            except PersistenceFailure as e:
                logger.warning(
                    "Save attempt %d/%d for match %s failed: %s",
                    attempt, attempts, self.match_id, e,
                )
                if attempt == attempts:
                    raise
                if delay > 0:
                    time.sleep(delay * attempt)

    def _notify(self, payload: dict[str, Any]) -> None:
        if self.on_update is not None:
            self.on_update(payload)


class SessionManager:
    """Keeps one live session per match id."""

    def __init__(
        self,
        store: MatchStore,
        roster: Optional[RosterService] = None,
        config: Optional[ScorerConfig] = None,
    ):
        self.store = store
        self.roster = roster or StaticRosterService()
        self.config = config or ScorerConfig()
        self._sessions: dict[str, LiveMatchSession] = {}
        self._lock = threading.Lock()

    def open_match(
        self, match_info: MatchInfo, on_update: Optional[UpdateCallback] = None
    ) -> LiveMatchSession:
        """Create a session for a new match (or return the existing one)."""
        with self._lock:
            session = self._sessions.get(match_info.match_id)
            if session is None:
                engine = ScoringEngine(
                    match_info, self.roster, self.config.commentary_window
                )
                session = LiveMatchSession(engine, self.store, self.config, on_update)
                self._sessions[match_info.match_id] = session
                logger.info("Opened match %s", match_info.match_id)
            return session

    def resume_match(
        self, match_id: str, on_update: Optional[UpdateCallback] = None
    ) -> LiveMatchSession:
        """Load a stored snapshot into a session."""
        with self._lock:
            session = self._sessions.get(match_id)
            if session is not None:
                return session
            state = MatchState.from_dict(self.store.load_match(match_id))
            engine = ScoringEngine.from_state(
                state, self.roster, self.config.commentary_window
            )
            session = LiveMatchSession(engine, self.store, self.config, on_update)
            self._sessions[match_id] = session
            logger.info("Resumed match %s: %s", match_id, state)
            return session

    def get(self, match_id: str) -> Optional[LiveMatchSession]:
        with self._lock:
            return self._sessions.get(match_id)

    def close(self, match_id: str) -> None:
        with self._lock:
            self._sessions.pop(match_id, None)
