"""
Scoring Engine - the entry point the live match page drives.

Holds the current match state and turns scorer actions (runs, wickets,
extras, player selections) into events applied through the rules. Every
action returns the derived events it triggered; projections expose the
scorecard and presentation payload.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Union

from cricket_scorer.data.ball_event import (
    BatterSelected,
    BowlerSelected,
    DerivedEvent,
    DismissedSide,
    ExtraConceded,
    ExtrasType,
    InputEvent,
    MatchInfo,
    MatchStarted,
    RunsScored,
    SecondInningsStarted,
    TossDecision,
    WicketFell,
    WicketKind,
)
from cricket_scorer.data.roster import RosterService, StaticRosterService
from cricket_scorer.engine import rules, stats
from cricket_scorer.errors import InvalidEvent
from cricket_scorer.state.match_state import MatchState

logger = logging.getLogger(__name__)


def _enum(enum_cls, value, what: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidEvent(f"Unknown {what}: {value!r}") from None


class ScoringEngine:
    """Processes scoring actions and maintains match state.

    The engine is single-writer: callers serialize actions per match (see
    :class:`cricket_scorer.live.session.LiveMatchSession`).
    """

    def __init__(
        self,
        match_info: MatchInfo,
        roster: Optional[RosterService] = None,
        commentary_window: int = stats.COMMENTARY_WINDOW,
    ):
        self._state = MatchState(match_info=match_info)
        self._roster = roster or StaticRosterService()
        self._commentary_window = commentary_window

    @classmethod
    def from_state(
        cls,
        state: MatchState,
        roster: Optional[RosterService] = None,
        commentary_window: int = stats.COMMENTARY_WINDOW,
    ) -> "ScoringEngine":
        """Resume scoring from a stored snapshot."""
        engine = cls(state.match_info, roster, commentary_window)
        engine._state = state
        return engine

    @property
    def state(self) -> MatchState:
        return self._state

    @property
    def roster(self) -> RosterService:
        return self._roster

    @property
    def match_id(self) -> str:
        return self._state.match_info.match_id

    def apply(self, event: InputEvent) -> list[DerivedEvent]:
        """Apply one event; the state only changes if the event is valid."""
        transition = rules.apply_event(self._state, event, self._roster)
        self._state = transition.state
        return transition.emitted

    # ── Scorer actions ──────────────────────────────────────────────

    def start_match(
        self,
        toss_winner: str,
        toss_decision: Union[TossDecision, str],
        striker: str,
        non_striker: str,
        bowler: str,
    ) -> list[DerivedEvent]:
        return self.apply(
            MatchStarted(
                toss_winner=toss_winner,
                toss_decision=_enum(TossDecision, toss_decision, "toss decision"),
                striker=striker,
                non_striker=non_striker,
                bowler=bowler,
            )
        )

    def record_runs(self, runs: int) -> list[DerivedEvent]:
        return self.apply(RunsScored(runs=runs))

    def record_wicket(
        self,
        kind: Union[WicketKind, str],
        next_batter: Optional[str] = None,
        fielder: Optional[str] = None,
        dismissed_side: Union[DismissedSide, str] = DismissedSide.STRIKER,
        extra_runs: int = 0,
    ) -> list[DerivedEvent]:
        return self.apply(
            WicketFell(
                kind=_enum(WicketKind, kind, "wicket kind"),
                next_batter=next_batter,
                fielder=fielder,
                dismissed_side=_enum(DismissedSide, dismissed_side, "batting side"),
                extra_runs=extra_runs,
            )
        )

    def record_extra(
        self, kind: Union[ExtrasType, str], runs: int = 1
    ) -> list[DerivedEvent]:
        return self.apply(
            ExtraConceded(kind=_enum(ExtrasType, kind, "extra type"), runs=runs)
        )

    def select_next_bowler(self, name: str) -> list[DerivedEvent]:
        return self.apply(BowlerSelected(name=name))

    def select_next_batter(self, name: str) -> list[DerivedEvent]:
        return self.apply(BatterSelected(name=name))

    def setup_second_innings(
        self, striker: str, non_striker: str, bowler: str
    ) -> list[DerivedEvent]:
        return self.apply(
            SecondInningsStarted(striker=striker, non_striker=non_striker, bowler=bowler)
        )

    # ── Projections ─────────────────────────────────────────────────

    def available_batters(self) -> list[str]:
        return rules.available_batters(self._state, self._roster)

    def eligible_bowlers(self) -> list[str]:
        return rules.eligible_bowlers(self._state, self._roster)

    def scorecard(self) -> dict[str, Any]:
        return stats.build_scorecard(self._state)

    def payload(self) -> dict[str, Any]:
        return stats.score_update_payload(self._state, self._commentary_window)

    def commentary(self) -> list[str]:
        return stats.commentary_window(self._state, self._commentary_window)

    def awards(self) -> dict[str, Optional[str]]:
        return stats.match_awards(self._state)


def replay(
    match_info: MatchInfo,
    events: Iterable[InputEvent],
    roster: Optional[RosterService] = None,
) -> MatchState:
    """Rebuild a match state from an ordered input event log."""
    engine = ScoringEngine(match_info, roster)
    count = 0
    for event in events:
        engine.apply(event)
        count += 1
    logger.debug("Replayed %d events for match %s", count, match_info.match_id)
    return engine.state
