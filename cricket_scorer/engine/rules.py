"""
Event application - the cricket scoring rules.

Each recorded event is applied to a copy of the match state, so a rejected
event (``InvalidEvent``) leaves the caller's state exactly as it was. A
successful application returns the next state plus the derived events
(over, innings and match completion) it triggered.

Rules enforced here:
- six legal balls make an over; wides and no-balls are never legal balls
- strike rotates on odd runs, and again at the end of an over whose last
  ball produced an even number of runs
- a bowler may not bowl two consecutive overs (no other quota applies)
- dismissed players can never come back in the same innings
- an innings ends on the 10th wicket, when the overs run out, or when the
  chasing side passes the target
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from cricket_scorer.config import BALLS_PER_OVER, MAX_WICKETS
from cricket_scorer.data.ball_event import (
    VALID_RUNS,
    BatterSelected,
    BowlerSelected,
    DerivedEvent,
    DismissedSide,
    ExtraConceded,
    ExtrasType,
    InningsCompleted,
    InputEvent,
    MatchCompleted,
    MatchStarted,
    OverCompleted,
    RunsScored,
    SecondInningsStarted,
    TossDecision,
    WicketFell,
    WicketKind,
)
from cricket_scorer.data.roster import RosterService
from cricket_scorer.engine import stats
from cricket_scorer.errors import InvalidEvent
from cricket_scorer.state.match_state import (
    MatchResult,
    MatchState,
    MatchStatus,
    PendingSelection,
)

logger = logging.getLogger(__name__)

MAX_RUNS_PER_DELIVERY = 7  # Six off a no-ball

_PENDING_TEXT = {
    PendingSelection.NEXT_BOWLER: "the next bowler is selected",
    PendingSelection.NEXT_BATTER: "the next batter is selected",
    PendingSelection.SECOND_INNINGS_SETUP: "the second innings openers are selected",
}


@dataclass
class Transition:
    """Result of applying one event."""
    state: MatchState
    emitted: list[DerivedEvent] = field(default_factory=list)


def apply_event(
    state: MatchState, event: InputEvent, roster: RosterService
) -> Transition:
    """Apply ``event`` to a copy of ``state``.

    Raises:
        InvalidEvent: if the event breaks a rule. ``state`` is untouched.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise InvalidEvent(f"Unsupported event: {event!r}")

    next_state = copy.deepcopy(state)
    emitted: list[DerivedEvent] = []
    try:
        handler(next_state, event, roster, emitted)
    except InvalidEvent as e:
        logger.debug("Rejected %s for match %s: %s", event.tag, state.match_info.match_id, e)
        raise

    next_state.event_log.append(event)
    return Transition(state=next_state, emitted=emitted)


# ----------------------------------------------------------------------
# Roster projections
# ----------------------------------------------------------------------


def available_batters(state: MatchState, roster: RosterService) -> list[str]:
    """Batting-side players who may still come in this innings."""
    batting = roster.batting_roster(state.batting_team, state.inning)
    in_play = set(state.current_players)
    return [
        p for p in batting if p not in state.dismissed_players and p not in in_play
    ]


def eligible_bowlers(state: MatchState, roster: RosterService) -> list[str]:
    """Fielding-side players allowed to bowl the next over."""
    previous = state.last_over_bowler.get(state.inning)
    return [
        p for p in roster.fielding_roster(state.bowling_team, state.inning)
        if p != previous
    ]


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------


def _check_can_bowl(state: MatchState) -> None:
    if state.is_match_completed:
        raise InvalidEvent("Match is already completed")
    if state.status != MatchStatus.LIVE:
        raise InvalidEvent("Match is not live: record the toss and openers first")
    if state.pending_selection != PendingSelection.NONE:
        raise InvalidEvent(
            f"Scoring is paused until {_PENDING_TEXT[state.pending_selection]}"
        )
    if not state.striker_name or not state.non_striker_name:
        raise InvalidEvent("Both striker and non-striker must be selected")
    if state.striker_name == state.non_striker_name:
        raise InvalidEvent("Striker and non-striker must be different players")
    if not state.current_bowler_name:
        raise InvalidEvent("No bowler selected")
    if state.ball_in_over >= BALLS_PER_OVER:
        raise InvalidEvent("Over already complete: a 7th ball cannot be bowled")

    score = state.batting_score
    if score.wickets >= MAX_WICKETS:
        raise InvalidEvent("All ten wickets have fallen in this innings")
    if score.legal_balls >= state.max_legal_balls:
        raise InvalidEvent("All overs in this innings have been bowled")


def _validate_new_batter(state: MatchState, roster: RosterService, name: str) -> None:
    if not name:
        raise InvalidEvent("A batter name is required")
    if name in state.dismissed_players:
        raise InvalidEvent(f"{name} has already been dismissed this innings")
    if name in state.current_players:
        raise InvalidEvent(f"{name} is already batting")
    if name not in roster.batting_roster(state.batting_team, state.inning):
        raise InvalidEvent(f"{name} is not in the {state.batting_team} batting roster")


def _validate_bowler(state: MatchState, roster: RosterService, name: str) -> None:
    if not name:
        raise InvalidEvent("A bowler name is required")
    if name not in roster.fielding_roster(state.bowling_team, state.inning):
        raise InvalidEvent(f"{name} is not in the {state.bowling_team} fielding roster")
    if name == state.last_over_bowler.get(state.inning):
        raise InvalidEvent(
            f"{name} bowled the previous over and cannot bowl consecutive overs"
        )


def _place_openers(
    state: MatchState,
    roster: RosterService,
    striker: str,
    non_striker: str,
    bowler: str,
) -> None:
    if striker == non_striker:
        raise InvalidEvent("Striker and non-striker must be different players")
    _validate_new_batter(state, roster, striker)
    _validate_new_batter(state, roster, non_striker)
    _validate_bowler(state, roster, bowler)

    state.striker_name = striker
    state.non_striker_name = non_striker
    state.current_bowler_name = bowler
    stats.batter(state, striker)
    stats.batter(state, non_striker)
    state.pending_selection = PendingSelection.NONE


# ----------------------------------------------------------------------
# Shared delivery mechanics
# ----------------------------------------------------------------------


def _rotate_strike(state: MatchState) -> None:
    state.striker_name, state.non_striker_name = (
        state.non_striker_name,
        state.striker_name,
    )


def _ball_prefix(state: MatchState) -> str:
    return (
        f"{state.over}.{state.ball_in_over + 1} "
        f"{state.current_bowler_name} to {state.striker_name}"
    )


def _advance_legal_ball(state: MatchState, runs: int) -> None:
    state.batting_score.legal_balls += 1
    state.ball_in_over += 1
    state.last_ball_runs = runs


def _refresh_pending(state: MatchState) -> None:
    if state.is_match_completed:
        state.pending_selection = PendingSelection.NONE
    elif state.pending_selection == PendingSelection.SECOND_INNINGS_SETUP:
        return
    elif not state.striker_name or not state.non_striker_name:
        state.pending_selection = PendingSelection.NEXT_BATTER
    elif not state.current_bowler_name:
        state.pending_selection = PendingSelection.NEXT_BOWLER
    else:
        state.pending_selection = PendingSelection.NONE


def _after_delivery(
    state: MatchState, emitted: list[DerivedEvent], legal: bool
) -> None:
    """Over, innings and match completion checks after any delivery."""
    score = state.batting_score

    if state.inning == 2 and state.target is not None and score.runs >= state.target:
        # Chase complete: the match ends on this ball, whatever remains of the over
        if state.ball_in_over >= BALLS_PER_OVER:
            state.last_over_bowler[state.inning] = state.current_bowler_name
            state.over += 1
            state.ball_in_over = 0
        _complete_innings(state, emitted)
        return

    innings_over = (
        score.wickets >= MAX_WICKETS or score.legal_balls >= state.max_legal_balls
    )
    if legal and state.ball_in_over >= BALLS_PER_OVER:
        _complete_over(state, emitted, request_bowler=not innings_over)

    if innings_over:
        _complete_innings(state, emitted)
    else:
        _refresh_pending(state)


def _complete_over(
    state: MatchState, emitted: list[DerivedEvent], request_bowler: bool
) -> None:
    """Close the over on its 6th legal ball."""
    bowler_name = state.current_bowler_name
    figures = stats.bowler(state, bowler_name)
    if state.over_runs_conceded == 0:
        figures.maidens += 1

    event = OverCompleted(
        inning=state.inning,
        over=state.over + 1,
        bowler=bowler_name,
        runs=state.over_runs_conceded,
    )
    emitted.append(event)
    state.ball_by_ball.append(event.describe())

    state.last_over_bowler[state.inning] = bowler_name
    state.over += 1
    state.ball_in_over = 0
    state.over_runs_conceded = 0

    if state.last_ball_runs % 2 == 0:
        _rotate_strike(state)

    if request_bowler:
        state.current_bowler_name = None

    logger.debug(
        "Over %d complete (inning %d): %s", state.over, state.inning, bowler_name
    )


def _complete_innings(state: MatchState, emitted: list[DerivedEvent]) -> None:
    score = state.batting_score
    event = InningsCompleted(
        inning=state.inning,
        runs=score.runs,
        wickets=score.wickets,
        overs=score.overs,
    )
    emitted.append(event)
    state.ball_by_ball.append(event.describe())
    state.completed_innings.append(stats.archive_innings(state))

    logger.info(
        "Match %s: %s %d/%d in %s overs, innings %d complete",
        state.match_info.match_id, state.batting_team,
        score.runs, score.wickets, score.overs, state.inning,
    )

    if state.inning == 1:
        state.target = score.runs + 1
        state.inning = 2
        state.over = 0
        state.ball_in_over = 0
        state.striker_name = None
        state.non_striker_name = None
        state.current_bowler_name = None
        state.dismissed_players = set()
        state.ball_by_ball = []
        state.batting_stats = {}
        state.bowling_stats = {}
        state.last_ball_runs = 0
        state.over_runs_conceded = 0
        state.pending_selection = PendingSelection.SECOND_INNINGS_SETUP
    else:
        _finalize_match(state, emitted)


def _finalize_match(state: MatchState, emitted: list[DerivedEvent]) -> None:
    if state.result_processed:
        return

    score = state.batting_score
    chasing = state.batting_team
    defending = state.bowling_team
    defended = state.target - 1

    if score.runs >= state.target:
        margin = MAX_WICKETS - score.wickets
        text = f"{chasing} won by {margin} wicket{'s' if margin != 1 else ''}"
        result = MatchResult("win", chasing, margin, "wickets", text)
    elif score.runs == defended:
        result = MatchResult("tie", None, 0, None, "Match tied")
    else:
        margin = defended - score.runs
        text = f"{defending} won by {margin} run{'s' if margin != 1 else ''}"
        result = MatchResult("win", defending, margin, "runs", text)

    state.result = result
    state.match_result = result.text
    state.is_match_completed = True
    state.status = MatchStatus.COMPLETED
    state.pending_selection = PendingSelection.NONE
    state.result_processed = True

    event = MatchCompleted(result=result.text)
    emitted.append(event)
    state.ball_by_ball.append(event.describe())
    logger.info("Match %s completed: %s", state.match_info.match_id, result.text)


# ----------------------------------------------------------------------
# Handlers
# ----------------------------------------------------------------------


def _start_match(
    state: MatchState, event: MatchStarted, roster: RosterService,
    emitted: list[DerivedEvent],
) -> None:
    if state.status != MatchStatus.UPCOMING:
        raise InvalidEvent("Match has already started")
    if state.match_info.total_overs < 1:
        raise InvalidEvent(
            f"A match needs at least one over per side, got {state.match_info.total_overs}"
        )
    try:
        winner_key = state.key_for_team(event.toss_winner)
    except KeyError:
        raise InvalidEvent(f"{event.toss_winner} is not playing in this match") from None

    other_key = "team2" if winner_key == "team1" else "team1"
    state.batting_first = winner_key if event.toss_decision == TossDecision.BAT else other_key
    state.toss_winner = event.toss_winner
    state.toss_decision = event.toss_decision.value

    _place_openers(state, roster, event.striker, event.non_striker, event.bowler)
    state.status = MatchStatus.LIVE
    logger.info("Match %s live: %s", state.match_info.match_id, event.describe())


def _record_runs(
    state: MatchState, event: RunsScored, roster: RosterService,
    emitted: list[DerivedEvent],
) -> None:
    runs = event.runs
    if runs not in VALID_RUNS:
        raise InvalidEvent(f"Runs off the bat must be one of {VALID_RUNS}, got {runs}")
    _check_can_bowl(state)

    prefix = _ball_prefix(state)
    state.batting_score.runs += runs
    stats.credit_batter(state, state.striker_name, runs, faced=True)
    stats.record_bowler_ball(state, state.current_bowler_name, runs, legal=True)
    state.ball_by_ball.append(f"{prefix}, {event.describe()}")

    _advance_legal_ball(state, runs)
    if runs % 2 == 1:
        _rotate_strike(state)
    _after_delivery(state, emitted, legal=True)


def _record_extra(
    state: MatchState, event: ExtraConceded, roster: RosterService,
    emitted: list[DerivedEvent],
) -> None:
    kind, runs = event.kind, event.runs
    if runs < 0 or runs > MAX_RUNS_PER_DELIVERY:
        raise InvalidEvent(f"Invalid run count for a {kind.value}: {runs}")
    if not kind.is_legal_delivery and runs < 1:
        raise InvalidEvent(f"A {kind.value} always carries at least 1 run")
    _check_can_bowl(state)

    prefix = _ball_prefix(state)
    score = state.batting_score
    score.runs += runs
    striker = state.striker_name

    if kind == ExtrasType.WIDE:
        score.extras.wides += runs
        ran = runs - 1
    elif kind == ExtrasType.NO_BALL:
        # One-run penalty is an extra; anything more came off the bat
        score.extras.no_balls += 1
        ran = runs - 1
        stats.credit_batter(state, striker, ran, faced=False)
    else:
        if kind == ExtrasType.BYE:
            score.extras.byes += runs
        else:
            score.extras.leg_byes += runs
        ran = runs
        stats.charge_batter_ball(state, striker, dot=runs == 0)

    legal = kind.is_legal_delivery
    conceded = runs if kind.charged_to_bowler else 0
    stats.record_bowler_ball(state, state.current_bowler_name, conceded, legal=legal)
    state.ball_by_ball.append(f"{prefix}, {event.describe()}")

    if legal:
        _advance_legal_ball(state, runs)
    if ran % 2 == 1:
        _rotate_strike(state)
    _after_delivery(state, emitted, legal=legal)


def _dismissal_text(kind: WicketKind, bowler: str, fielder: Optional[str]) -> str:
    if kind == WicketKind.BOWLED:
        return f"b {bowler}"
    if kind == WicketKind.CAUGHT:
        if fielder in (None, bowler):
            return f"c & b {bowler}"
        return f"c {fielder} b {bowler}"
    if kind == WicketKind.HIT_WICKET:
        return f"hit wicket b {bowler}"
    if kind == WicketKind.STUMP_OUT:
        return f"st {fielder} b {bowler}" if fielder else f"st b {bowler}"

    run_out = f"run out ({fielder})" if fielder else "run out"
    if kind == WicketKind.RUN_OUT:
        return run_out
    extra = kind.extras_type
    if kind.credits_bowler:
        return f"{extra.value} wicket b {bowler}"
    return f"{run_out} off a {extra.value}"


def _record_wicket(
    state: MatchState, event: WicketFell, roster: RosterService,
    emitted: list[DerivedEvent],
) -> None:
    _check_can_bowl(state)

    kind = event.kind
    extra = kind.extras_type
    if event.dismissed_side == DismissedSide.NON_STRIKER and not kind.allows_non_striker:
        raise InvalidEvent(f"A {kind.value} dismissal can only remove the striker")
    if event.extra_runs < 0 or event.extra_runs > MAX_RUNS_PER_DELIVERY:
        raise InvalidEvent(f"Invalid extra runs: {event.extra_runs}")
    if extra is None and event.extra_runs:
        raise InvalidEvent(f"A {kind.value} dismissal carries no extra runs")

    if extra is not None and not extra.is_legal_delivery:
        runs = max(1, event.extra_runs)
    else:
        runs = event.extra_runs

    score = state.batting_score
    all_out = score.wickets + 1 >= MAX_WICKETS
    if not all_out and event.next_batter is not None:
        _validate_new_batter(state, roster, event.next_batter)

    prefix = _ball_prefix(state)
    bowler_name = state.current_bowler_name
    striker = state.striker_name
    if event.dismissed_side == DismissedSide.STRIKER:
        dismissed = striker
    else:
        dismissed = state.non_striker_name

    score.wickets += 1
    score.runs += runs
    if extra == ExtrasType.WIDE:
        score.extras.wides += runs
    elif extra == ExtrasType.NO_BALL:
        score.extras.no_balls += runs
    elif extra == ExtrasType.BYE:
        score.extras.byes += runs
    elif extra == ExtrasType.LEG_BYE:
        score.extras.leg_byes += runs

    legal = kind.is_legal_delivery
    if legal:
        stats.charge_batter_ball(state, striker, dot=runs == 0)
    conceded = runs if extra is not None and extra.charged_to_bowler else 0
    stats.record_bowler_ball(
        state, bowler_name, conceded, legal=legal, wicket=kind.credits_bowler
    )

    how_out = _dismissal_text(kind, bowler_name, event.fielder)
    out = stats.batter(state, dismissed)
    out.is_dismissed = True
    out.dismissal_type = how_out
    state.dismissed_players.add(dismissed)
    state.ball_by_ball.append(f"{prefix}, {event.describe()} - {dismissed} {how_out}")

    if event.dismissed_side == DismissedSide.STRIKER:
        state.striker_name = None
    else:
        state.non_striker_name = None
    if not all_out and event.next_batter is not None:
        _fill_batting_slot(state, event.next_batter)

    if legal:
        _advance_legal_ball(state, runs)
    ran = runs - 1 if extra is not None and not extra.is_legal_delivery else runs
    if ran % 2 == 1:
        _rotate_strike(state)

    logger.debug("Wicket in match %s: %s %s", state.match_info.match_id, dismissed, how_out)
    _after_delivery(state, emitted, legal=legal)


def _fill_batting_slot(state: MatchState, name: str) -> None:
    if not state.striker_name:
        state.striker_name = name
    else:
        state.non_striker_name = name
    stats.batter(state, name)


def _select_next_bowler(
    state: MatchState, event: BowlerSelected, roster: RosterService,
    emitted: list[DerivedEvent],
) -> None:
    if state.pending_selection != PendingSelection.NEXT_BOWLER:
        raise InvalidEvent("No bowler selection is pending")
    _validate_bowler(state, roster, event.name)

    state.current_bowler_name = event.name
    _refresh_pending(state)
    logger.debug("Match %s: %s", state.match_info.match_id, event.describe())


def _select_next_batter(
    state: MatchState, event: BatterSelected, roster: RosterService,
    emitted: list[DerivedEvent],
) -> None:
    if state.pending_selection != PendingSelection.NEXT_BATTER:
        raise InvalidEvent("No batter selection is pending")
    _validate_new_batter(state, roster, event.name)

    _fill_batting_slot(state, event.name)
    _refresh_pending(state)


def _start_second_innings(
    state: MatchState, event: SecondInningsStarted, roster: RosterService,
    emitted: list[DerivedEvent],
) -> None:
    if state.pending_selection != PendingSelection.SECOND_INNINGS_SETUP:
        raise InvalidEvent("The second innings is not waiting to start")
    _place_openers(state, roster, event.striker, event.non_striker, event.bowler)
    logger.info("Match %s: %s", state.match_info.match_id, event.describe())


_HANDLERS: dict[type, Callable[..., None]] = {
    MatchStarted: _start_match,
    RunsScored: _record_runs,
    ExtraConceded: _record_extra,
    WicketFell: _record_wicket,
    BowlerSelected: _select_next_bowler,
    BatterSelected: _select_next_batter,
    SecondInningsStarted: _start_second_innings,
}
