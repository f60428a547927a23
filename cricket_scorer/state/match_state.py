"""
Match State - the root aggregate of a live cricket match.

Holds everything the scoring rules need between deliveries: scores per
team, the current over, who is batting and bowling, per-innings batting
and bowling figures, the bowler eligibility ledger and the pending
selection gate. Serializes to a plain dict snapshot for persistence.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

from cricket_scorer.config import BALLS_PER_OVER
from cricket_scorer.data.ball_event import (
    InputEvent,
    MatchInfo,
    event_from_dict,
    event_to_dict,
)

logger = logging.getLogger(__name__)


class MatchStatus(Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"


class PendingSelection(Enum):
    NONE = "none"
    NEXT_BOWLER = "nextBowler"
    NEXT_BATTER = "nextBatter"
    SECOND_INNINGS_SETUP = "secondInningsSetup"


def overs_string(legal_balls: int) -> str:
    """Overs as ``"{completed}.{balls}"``, e.g. 112 legal balls -> ``"18.4"``."""
    return f"{legal_balls // BALLS_PER_OVER}.{legal_balls % BALLS_PER_OVER}"


@dataclass
class Extras:
    wides: int = 0
    no_balls: int = 0
    byes: int = 0
    leg_byes: int = 0

    @property
    def total(self) -> int:
        return self.wides + self.no_balls + self.byes + self.leg_byes


@dataclass
class TeamScore:
    """Runs, wickets and legal balls faced by one team."""
    runs: int = 0
    wickets: int = 0
    legal_balls: int = 0
    extras: Extras = field(default_factory=Extras)

    @property
    def overs(self) -> str:
        return overs_string(self.legal_balls)

    @property
    def run_rate(self) -> float:
        overs = self.legal_balls / BALLS_PER_OVER
        return self.runs / overs if overs > 0 else 0.0


@dataclass
class BattingStats:
    """One batter's figures for the current innings."""
    name: str
    runs: int = 0
    balls: int = 0
    dots: int = 0
    fours: int = 0
    sixes: int = 0
    is_dismissed: bool = False
    dismissal_type: str = "not out"

    @property
    def strike_rate(self) -> float:
        return (self.runs / self.balls * 100) if self.balls > 0 else 0.0


@dataclass
class BowlingStats:
    """One bowler's figures for the current innings."""
    name: str
    wickets: int = 0
    runs_conceded: int = 0
    legal_balls: int = 0
    total_balls: int = 0
    maidens: int = 0

    @property
    def overs(self) -> float:
        return round(
            self.legal_balls // BALLS_PER_OVER + 0.1 * (self.legal_balls % BALLS_PER_OVER),
            1,
        )

    @property
    def economy_rate(self) -> float:
        overs = self.legal_balls / BALLS_PER_OVER
        return self.runs_conceded / overs if overs > 0 else 0.0

    @property
    def bowling_average(self) -> Optional[float]:
        return self.runs_conceded / self.wickets if self.wickets > 0 else None


@dataclass
class BowlerLedgerEntry:
    """Ball counts used only for bowler eligibility checks."""
    legal_balls: int = 0
    total_balls: int = 0


@dataclass
class InningsRecord:
    """Archived scorecard of a finished innings."""
    inning: int
    batting_team: str
    bowling_team: str
    runs: int
    wickets: int
    legal_balls: int
    extras: Extras
    batting: list[BattingStats] = field(default_factory=list)
    bowling: list[BowlingStats] = field(default_factory=list)
    ball_by_ball: list[str] = field(default_factory=list)

    @property
    def overs(self) -> str:
        return overs_string(self.legal_balls)


@dataclass
class MatchResult:
    result_type: str  # "win" or "tie"
    winner: Optional[str]
    margin: int
    margin_type: Optional[str]  # "runs" or "wickets"
    text: str


@dataclass
class MatchState:
    """Complete state of a live match.

    Mutated only by the rules in :mod:`cricket_scorer.engine.rules`, which
    work on a copy so a rejected event never leaves a half-applied state.
    """

    match_info: MatchInfo
    status: MatchStatus = MatchStatus.UPCOMING
    toss_winner: Optional[str] = None
    toss_decision: Optional[str] = None
    batting_first: str = "team1"  # "team1" or "team2"

    inning: int = 1
    over: int = 0
    ball_in_over: int = 0  # Legal balls bowled in the current over (0-5)

    team1: TeamScore = field(default_factory=TeamScore)
    team2: TeamScore = field(default_factory=TeamScore)
    target: Optional[int] = None  # Only for 2nd innings

    striker_name: Optional[str] = None
    non_striker_name: Optional[str] = None
    current_bowler_name: Optional[str] = None
    dismissed_players: set[str] = field(default_factory=set)

    ball_by_ball: list[str] = field(default_factory=list)
    batting_stats: dict[str, BattingStats] = field(default_factory=dict)
    bowling_stats: dict[str, BowlingStats] = field(default_factory=dict)

    # Eligibility ledger, keyed by inning
    bowler_ledger: dict[int, dict[str, BowlerLedgerEntry]] = field(default_factory=dict)
    last_over_bowler: dict[int, str] = field(default_factory=dict)

    last_ball_runs: int = 0
    over_runs_conceded: int = 0  # Charged to the bowler in the current over
    pending_selection: PendingSelection = PendingSelection.NONE

    completed_innings: list[InningsRecord] = field(default_factory=list)
    is_match_completed: bool = False
    match_result: Optional[str] = None
    result: Optional[MatchResult] = None
    result_processed: bool = False

    event_log: list[InputEvent] = field(default_factory=list)

    # ── Team lookups ────────────────────────────────────────────────

    @property
    def batting_key(self) -> str:
        if self.inning == 1:
            return self.batting_first
        return "team2" if self.batting_first == "team1" else "team1"

    @property
    def bowling_key(self) -> str:
        return "team2" if self.batting_key == "team1" else "team1"

    def team_name(self, key: str) -> str:
        info = self.match_info
        return info.team1_name if key == "team1" else info.team2_name

    def team_score(self, key: str) -> TeamScore:
        return self.team1 if key == "team1" else self.team2

    def key_for_team(self, team_name: str) -> str:
        if team_name == self.match_info.team1_name:
            return "team1"
        if team_name == self.match_info.team2_name:
            return "team2"
        raise KeyError(team_name)

    @property
    def batting_team(self) -> str:
        return self.team_name(self.batting_key)

    @property
    def bowling_team(self) -> str:
        return self.team_name(self.bowling_key)

    @property
    def batting_score(self) -> TeamScore:
        return self.team_score(self.batting_key)

    @property
    def overs(self) -> str:
        return self.batting_score.overs

    @property
    def max_legal_balls(self) -> int:
        return self.match_info.total_overs * BALLS_PER_OVER

    @property
    def current_players(self) -> tuple[Optional[str], Optional[str]]:
        return self.striker_name, self.non_striker_name

    def ledger_for(self, inning: int) -> dict[str, BowlerLedgerEntry]:
        return self.bowler_ledger.setdefault(inning, {})

    # ── Snapshot serialization ──────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable snapshot pushed to the persistence service."""
        return {
            "match_info": self.match_info.to_dict(),
            "status": self.status.value,
            "toss_winner": self.toss_winner,
            "toss_decision": self.toss_decision,
            "batting_first": self.batting_first,
            "inning": self.inning,
            "over": self.over,
            "ball_in_over": self.ball_in_over,
            "team1": asdict(self.team1),
            "team2": asdict(self.team2),
            "target": self.target,
            "striker_name": self.striker_name,
            "non_striker_name": self.non_striker_name,
            "current_bowler_name": self.current_bowler_name,
            "dismissed_players": sorted(self.dismissed_players),
            "ball_by_ball": list(self.ball_by_ball),
            "batting_stats": [asdict(s) for s in self.batting_stats.values()],
            "bowling_stats": [asdict(s) for s in self.bowling_stats.values()],
            "bowler_ledger": {
                str(inning): {name: asdict(entry) for name, entry in ledger.items()}
                for inning, ledger in self.bowler_ledger.items()
            },
            "last_over_bowler": {
                str(inning): name for inning, name in self.last_over_bowler.items()
            },
            "last_ball_runs": self.last_ball_runs,
            "over_runs_conceded": self.over_runs_conceded,
            "pending_selection": self.pending_selection.value,
            "completed_innings": [asdict(r) for r in self.completed_innings],
            "is_match_completed": self.is_match_completed,
            "match_result": self.match_result,
            "result": asdict(self.result) if self.result else None,
            "result_processed": self.result_processed,
            "event_log": [event_to_dict(e) for e in self.event_log],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MatchState":
        """Rebuild a state from :meth:`to_dict` output."""
        return cls(
            match_info=MatchInfo.from_dict(data["match_info"]),
            status=MatchStatus(data["status"]),
            toss_winner=data.get("toss_winner"),
            toss_decision=data.get("toss_decision"),
            batting_first=data.get("batting_first", "team1"),
            inning=data["inning"],
            over=data["over"],
            ball_in_over=data["ball_in_over"],
            team1=_team_score_from_dict(data["team1"]),
            team2=_team_score_from_dict(data["team2"]),
            target=data.get("target"),
            striker_name=data.get("striker_name"),
            non_striker_name=data.get("non_striker_name"),
            current_bowler_name=data.get("current_bowler_name"),
            dismissed_players=set(data.get("dismissed_players", [])),
            ball_by_ball=list(data.get("ball_by_ball", [])),
            batting_stats={
                s["name"]: BattingStats(**s) for s in data.get("batting_stats", [])
            },
            bowling_stats={
                s["name"]: BowlingStats(**s) for s in data.get("bowling_stats", [])
            },
            bowler_ledger={
                int(inning): {
                    name: BowlerLedgerEntry(**entry) for name, entry in ledger.items()
                }
                for inning, ledger in data.get("bowler_ledger", {}).items()
            },
            last_over_bowler={
                int(inning): name
                for inning, name in data.get("last_over_bowler", {}).items()
            },
            last_ball_runs=data.get("last_ball_runs", 0),
            over_runs_conceded=data.get("over_runs_conceded", 0),
            pending_selection=PendingSelection(data.get("pending_selection", "none")),
            completed_innings=[
                _innings_record_from_dict(r) for r in data.get("completed_innings", [])
            ],
            is_match_completed=data.get("is_match_completed", False),
            match_result=data.get("match_result"),
            result=MatchResult(**data["result"]) if data.get("result") else None,
            result_processed=data.get("result_processed", False),
            event_log=[event_from_dict(e) for e in data.get("event_log", [])],
        )

    def __str__(self) -> str:
        score = self.batting_score
        return (
            f"MatchState(inning={self.inning}, {self.batting_team} "
            f"{score.runs}/{score.wickets} in {score.overs} overs, "
            f"pending={self.pending_selection.value})"
        )


def _team_score_from_dict(data: dict[str, Any]) -> TeamScore:
    fields = dict(data)
    fields["extras"] = Extras(**fields.get("extras", {}))
    return TeamScore(**fields)


def _innings_record_from_dict(data: dict[str, Any]) -> InningsRecord:
    fields = dict(data)
    fields["extras"] = Extras(**fields["extras"])
    fields["batting"] = [BattingStats(**s) for s in fields.get("batting", [])]
    fields["bowling"] = [BowlingStats(**s) for s in fields.get("bowling", [])]
    return InningsRecord(**fields)
