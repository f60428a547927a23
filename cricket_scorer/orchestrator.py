"""
Cricket Scorer command line.

Drives the scoring engine outside the web app:
1. Demo: simulate a full match with random outcomes
2. Replay: rebuild a match from an event-log JSON file
3. Show: print a stored match snapshot

Usage:
    python -m cricket_scorer.orchestrator --demo --overs 5 --seed 7
    python -m cricket_scorer.orchestrator --replay data/match_001_events.json
    python -m cricket_scorer.orchestrator --show demo_001
"""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import Any, Optional

from cricket_scorer.config import ScorerConfig
from cricket_scorer.data.ball_event import MatchInfo, event_from_dict
from cricket_scorer.data.roster import StaticRosterService
from cricket_scorer.engine.scorer import ScoringEngine, replay
from cricket_scorer.engine.stats import build_scorecard, match_awards
from cricket_scorer.errors import ScoringError
from cricket_scorer.state.match_state import MatchState, PendingSelection
from cricket_scorer.store.match_store import create_store

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cricket_scorer.orchestrator")

# (cumulative probability, outcome)
DEMO_OUTCOMES = [
    (0.33, ("runs", 0)),
    (0.60, ("runs", 1)),
    (0.69, ("runs", 2)),
    (0.71, ("runs", 3)),
    (0.81, ("runs", 4)),
    (0.86, ("runs", 6)),
    (0.89, ("extra", "wide")),
    (0.91, ("extra", "no-ball")),
    (0.93, ("extra", "leg-bye")),
    (1.00, ("wicket", None)),
]
DEMO_WICKETS = ["bowled", "caught", "caught", "caught", "run-out", "stump-out"]


def print_scorecard(scorecard: dict[str, Any]) -> None:
    for inn in scorecard["innings"]:
        print()
        print(
            f"{inn['battingTeam']} - Innings {inn['inningsNumber']}: "
            f"{inn['totalRuns']}/{inn['totalWickets']} ({inn['totalOvers']} overs, "
            f"RR {inn['runRate']:.2f})"
        )
        print(f"  {'Batsman':<24}{'R':>5}{'B':>5}{'4s':>4}{'6s':>4}{'SR':>8}  Dismissal")
        for b in inn["batsmen"]:
            print(
                f"  {b['name']:<24}{b['runs']:>5}{b['balls']:>5}{b['fours']:>4}"
                f"{b['sixes']:>4}{b['strikeRate']:>8.1f}  {b['dismissalType']}"
            )
        extras = inn["extras"]
        print(
            f"  Extras: {sum(extras.values())} (w {extras['wides']}, nb {extras['noBalls']}, "
            f"b {extras['byes']}, lb {extras['legByes']})"
        )
        print(f"  {'Bowler':<24}{'O':>6}{'M':>4}{'R':>5}{'W':>4}{'Econ':>7}")
        for b in inn["bowlers"]:
            print(
                f"  {b['name']:<24}{b['overs']:>6}{b['maidens']:>4}"
                f"{b['runsConceded']:>5}{b['wickets']:>4}{b['economyRate']:>7.2f}"
            )
    print()
    if scorecard["result"]:
        print(f"Result: {scorecard['result']}")


def _demo_step(engine: ScoringEngine, rng: random.Random) -> None:
    state = engine.state
    pending = state.pending_selection

    if pending == PendingSelection.NEXT_BOWLER:
        engine.select_next_bowler(rng.choice(engine.eligible_bowlers()[:5]))
        return
    if pending == PendingSelection.NEXT_BATTER:
        engine.select_next_batter(engine.available_batters()[0])
        return
    if pending == PendingSelection.SECOND_INNINGS_SETUP:
        batters = engine.available_batters()
        engine.setup_second_innings(batters[0], batters[1], engine.eligible_bowlers()[0])
        return

    r = rng.random()
    kind, value = next(outcome for p, outcome in DEMO_OUTCOMES if r < p)
    if kind == "runs":
        engine.record_runs(value)
    elif kind == "extra":
        engine.record_extra(value, 1)
    else:
        wicket = rng.choice(DEMO_WICKETS)
        fielder = rng.choice(engine.eligible_bowlers())
        remaining = engine.available_batters()
        engine.record_wicket(
            wicket,
            next_batter=remaining[0] if remaining else None,
            fielder=fielder,
        )


def run_demo(config: ScorerConfig, overs: int, seed: Optional[int], save: bool) -> None:
    """Simulate a full match with synthetic rosters."""
    rng = random.Random(seed)
    match_info = MatchInfo(
        match_id="demo_001",
        team1_name="Thunder",
        team2_name="Strikers",
        total_overs=overs,
        venue="Demo Stadium",
    )
    engine = ScoringEngine(match_info, StaticRosterService(), config.commentary_window)

    logger.info("=" * 60)
    logger.info("CRICKET SCORER - DEMO MODE (%d overs, seed %s)", overs, seed)
    logger.info("=" * 60)

    toss_winner = rng.choice([match_info.team1_name, match_info.team2_name])
    decision = rng.choice(["bat", "bowl"])
    batting = toss_winner if decision == "bat" else (
        match_info.team2_name if toss_winner == match_info.team1_name else match_info.team1_name
    )
    roster = engine.roster
    bowling = match_info.team1_name if batting == match_info.team2_name else match_info.team2_name
    openers = roster.batting_roster(batting, 1)
    engine.start_match(
        toss_winner, decision, openers[0], openers[1], roster.fielding_roster(bowling, 1)[0]
    )

    while not engine.state.is_match_completed:
        _demo_step(engine, rng)

    for line in engine.commentary():
        logger.info("  %s", line)
    print_scorecard(engine.scorecard())
    awards = match_awards(engine.state)
    print(f"Man of the match: {awards['manOfTheMatch']}")

    if save:
        store = create_store(config.store)
        store.save_match(match_info.match_id, engine.state.to_dict())
        logger.info("Saved snapshot for %s", match_info.match_id)


def run_replay(path: Path, players: Optional[dict[str, list[str]]] = None) -> MatchState:
    """Replay an event log file: ``{"match": {...}, "events": [...]}``."""
    document = json.loads(path.read_text(encoding="utf-8"))
    match_info = MatchInfo.from_dict(document["match"])
    events = [event_from_dict(e) for e in document["events"]]
    roster = StaticRosterService(players or document.get("rosters"))

    state = replay(match_info, events, roster)
    logger.info("Replayed %d events: %s", len(events), state)
    print_scorecard(build_scorecard(state))
    return state


def run_show(config: ScorerConfig, match_id: str) -> None:
    store = create_store(config.store)
    state = MatchState.from_dict(store.load_match(match_id))
    logger.info("Loaded %s", state)
    print_scorecard(build_scorecard(state))


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Cricket live scoring engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m cricket_scorer.orchestrator --demo --overs 5
  python -m cricket_scorer.orchestrator --replay events.json
  python -m cricket_scorer.orchestrator --show demo_001
        """,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--demo", action="store_true", help="Simulate a match with random outcomes")
    mode.add_argument("--replay", type=Path, metavar="FILE", help="Replay an event-log JSON file")
    mode.add_argument("--show", type=str, metavar="MATCH_ID", help="Print a stored match")

    parser.add_argument("--overs", type=int, help="Overs per side for the demo")
    parser.add_argument("--seed", type=int, help="Random seed for the demo")
    parser.add_argument("--save", action="store_true", help="Save the demo snapshot to the store")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    config = ScorerConfig.from_env()
    logging.getLogger().setLevel(logging.DEBUG if args.verbose else config.log_level)

    try:
        if args.demo:
            run_demo(config, args.overs or config.default_overs, args.seed, args.save)
        elif args.replay:
            run_replay(args.replay)
        elif args.show:
            run_show(config, args.show)
    except (ScoringError, OSError, ValueError, KeyError) as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
