"""
Derived-stats aggregation.

Incremental batting/bowling figure updates applied by the rules after each
delivery, and read-only projections over a match state: scorecard tables,
the live commentary window, the presentation payload and match awards.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Optional

from cricket_scorer.state.match_state import (
    BattingStats,
    BowlerLedgerEntry,
    BowlingStats,
    Extras,
    InningsRecord,
    MatchState,
    MatchStatus,
    PendingSelection,
    overs_string,
)

logger = logging.getLogger(__name__)

COMMENTARY_WINDOW = 12
WICKET_AWARD_WEIGHT = 20  # Runs-equivalent of one wicket for man of the match


# ----------------------------------------------------------------------
# Incremental updates
# ----------------------------------------------------------------------


def batter(state: MatchState, name: str) -> BattingStats:
    """Batting figures for ``name``, created on first appearance."""
    stats = state.batting_stats.get(name)
    if stats is None:
        stats = BattingStats(name=name)
        state.batting_stats[name] = stats
    return stats


def bowler(state: MatchState, name: str) -> BowlingStats:
    stats = state.bowling_stats.get(name)
    if stats is None:
        stats = BowlingStats(name=name)
        state.bowling_stats[name] = stats
    return stats


def credit_batter(state: MatchState, name: str, runs: int, faced: bool) -> None:
    """Book runs off the bat. ``faced`` charges a ball (not for no-balls)."""
    stats = batter(state, name)
    stats.runs += runs
    if faced:
        stats.balls += 1
        if runs == 0:
            stats.dots += 1
    if runs == 4:
        stats.fours += 1
    elif runs == 6:
        stats.sixes += 1


def charge_batter_ball(state: MatchState, name: str, dot: bool) -> None:
    """A ball faced with no personal runs (byes, leg-byes, dismissals)."""
    stats = batter(state, name)
    stats.balls += 1
    if dot:
        stats.dots += 1


def record_bowler_ball(
    state: MatchState,
    name: str,
    runs_conceded: int,
    legal: bool,
    wicket: bool = False,
) -> None:
    """Book one delivery to the bowler's figures and eligibility ledger."""
    stats = bowler(state, name)
    stats.runs_conceded += runs_conceded
    stats.total_balls += 1
    if legal:
        stats.legal_balls += 1
    if wicket:
        stats.wickets += 1

    entry = state.ledger_for(state.inning).setdefault(name, BowlerLedgerEntry())
    entry.total_balls += 1
    if legal:
        entry.legal_balls += 1

    state.over_runs_conceded += runs_conceded


def archive_innings(state: MatchState) -> InningsRecord:
    """Snapshot the active innings' figures into a scorecard record."""
    score = state.batting_score
    return InningsRecord(
        inning=state.inning,
        batting_team=state.batting_team,
        bowling_team=state.bowling_team,
        runs=score.runs,
        wickets=score.wickets,
        legal_balls=score.legal_balls,
        extras=Extras(**asdict(score.extras)),
        batting=[BattingStats(**asdict(s)) for s in state.batting_stats.values()],
        bowling=[BowlingStats(**asdict(s)) for s in state.bowling_stats.values()],
        ball_by_ball=list(state.ball_by_ball),
    )


# ----------------------------------------------------------------------
# Projections
# ----------------------------------------------------------------------


def commentary_window(state: MatchState, size: int = COMMENTARY_WINDOW) -> list[str]:
    """The most recent ``size`` ball-by-ball lines, oldest first."""
    if size <= 0:
        return []
    return list(state.ball_by_ball[-size:])


def batting_row(stats: BattingStats) -> dict[str, Any]:
    return {
        "name": stats.name,
        "runs": stats.runs,
        "balls": stats.balls,
        "dots": stats.dots,
        "fours": stats.fours,
        "sixes": stats.sixes,
        "strikeRate": round(stats.strike_rate, 2),
        "isDismissed": stats.is_dismissed,
        "dismissalType": stats.dismissal_type,
    }


def bowling_row(stats: BowlingStats) -> dict[str, Any]:
    return {
        "name": stats.name,
        "overs": stats.overs,
        "maidens": stats.maidens,
        "runsConceded": stats.runs_conceded,
        "wickets": stats.wickets,
        "legalBalls": stats.legal_balls,
        "totalBalls": stats.total_balls,
        "economyRate": round(stats.economy_rate, 2),
        "bowlingAverage": (
            round(stats.bowling_average, 2) if stats.bowling_average is not None else None
        ),
    }


def _innings_card(
    inning: int,
    batting_team: str,
    bowling_team: str,
    runs: int,
    wickets: int,
    legal_balls: int,
    extras: Extras,
    batting: list[BattingStats],
    bowling: list[BowlingStats],
) -> dict[str, Any]:
    overs = legal_balls / 6
    return {
        "inningsNumber": inning,
        "battingTeam": batting_team,
        "bowlingTeam": bowling_team,
        "totalRuns": runs,
        "totalWickets": wickets,
        "totalOvers": overs_string(legal_balls),
        "runRate": round(runs / overs, 2) if overs > 0 else 0.0,
        "extras": {
            "wides": extras.wides,
            "noBalls": extras.no_balls,
            "byes": extras.byes,
            "legByes": extras.leg_byes,
        },
        "batsmen": [batting_row(s) for s in batting],
        "bowlers": [bowling_row(s) for s in bowling],
    }


def build_scorecard(state: MatchState) -> dict[str, Any]:
    """Batting and bowling tables for every innings played so far."""
    innings = [
        _innings_card(
            r.inning, r.batting_team, r.bowling_team, r.runs, r.wickets,
            r.legal_balls, r.extras, r.batting, r.bowling,
        )
        for r in state.completed_innings
    ]

    archived = {r.inning for r in state.completed_innings}
    in_progress = (
        state.status != MatchStatus.UPCOMING
        and state.pending_selection != PendingSelection.SECOND_INNINGS_SETUP
    )
    if state.inning not in archived and in_progress:
        score = state.batting_score
        innings.append(
            _innings_card(
                state.inning, state.batting_team, state.bowling_team,
                score.runs, score.wickets, score.legal_balls, score.extras,
                list(state.batting_stats.values()),
                list(state.bowling_stats.values()),
            )
        )

    return {
        "matchId": state.match_info.match_id,
        "status": state.status.value,
        "currentInning": state.inning,
        "target": state.target,
        "innings": innings,
        "result": state.match_result,
    }


def score_update_payload(
    state: MatchState, window: int = COMMENTARY_WINDOW
) -> dict[str, Any]:
    """The payload pushed to the presentation layer after each event."""
    ball_by_ball = commentary_window(state, window)
    return {
        "team1Score": {
            "runs": state.team1.runs,
            "wickets": state.team1.wickets,
            "overs": state.team1.overs,
        },
        "team2Score": {
            "runs": state.team2.runs,
            "wickets": state.team2.wickets,
            "overs": state.team2.overs,
        },
        "matchData": {
            "currentInning": state.inning,
            "ballByBall": ball_by_ball,
            "lastBall": ball_by_ball[-1] if ball_by_ball else None,
            "pendingSelection": state.pending_selection.value,
            "isMatchCompleted": state.is_match_completed,
            "matchResult": state.match_result,
        },
    }


def _all_innings(state: MatchState) -> list[tuple[list[BattingStats], list[BowlingStats]]]:
    cards = [(r.batting, r.bowling) for r in state.completed_innings]
    archived = {r.inning for r in state.completed_innings}
    if state.inning not in archived:
        cards.append(
            (list(state.batting_stats.values()), list(state.bowling_stats.values()))
        )
    return cards


def match_awards(state: MatchState) -> dict[str, Optional[str]]:
    """Best batsman, best bowler and man of the match across both innings."""
    runs: dict[str, tuple[int, int]] = {}
    wickets: dict[str, tuple[int, int]] = {}
    for batting, bowling in _all_innings(state):
        for s in batting:
            r, b = runs.get(s.name, (0, 0))
            runs[s.name] = (r + s.runs, b + s.balls)
        for s in bowling:
            w, c = wickets.get(s.name, (0, 0))
            wickets[s.name] = (w + s.wickets, c + s.runs_conceded)

    best_batsman = None
    if runs:
        best_batsman = min(runs, key=lambda n: (-runs[n][0], runs[n][1], n))

    best_bowler = None
    if wickets:
        best_bowler = min(wickets, key=lambda n: (-wickets[n][0], wickets[n][1], n))

    impact: dict[str, int] = {}
    for name, (r, _) in runs.items():
        impact[name] = impact.get(name, 0) + r
    for name, (w, _) in wickets.items():
        impact[name] = impact.get(name, 0) + w * WICKET_AWARD_WEIGHT
    man_of_the_match = min(impact, key=lambda n: (-impact[n], n)) if impact else None

    return {
        "manOfTheMatch": man_of_the_match,
        "bestBatsman": best_batsman,
        "bestBowler": best_bowler,
    }
