"""Shared test fixtures for cricket scorer tests."""

from __future__ import annotations

from typing import Callable, Union

import pytest

from cricket_scorer.config import ScorerConfig, SessionConfig, StoreBackend, StoreConfig
from cricket_scorer.data.ball_event import MatchInfo
from cricket_scorer.data.roster import StaticRosterService
from cricket_scorer.engine.scorer import ScoringEngine
from cricket_scorer.state.match_state import PendingSelection

Outcome = Union[int, str]


@pytest.fixture
def scorer_config(tmp_path) -> ScorerConfig:
    """Standard test configuration: no retry delays, files under tmp_path."""
    return ScorerConfig(
        store=StoreConfig(backend=StoreBackend.MEMORY, data_dir=tmp_path / "matches"),
        session=SessionConfig(save_retries=3, retry_delay_seconds=0.0),
    )


@pytest.fixture
def match_info() -> MatchInfo:
    """Standard 20-over match for testing."""
    return MatchInfo(
        match_id="test_t20_001",
        team1_name="Team1",
        team2_name="Team2",
        total_overs=20,
        venue="Test Ground",
    )


@pytest.fixture
def roster() -> StaticRosterService:
    """No roster data: every team gets placeholder names."""
    return StaticRosterService()


@pytest.fixture
def engine(match_info: MatchInfo, roster: StaticRosterService) -> ScoringEngine:
    """A live match: Team1 won the toss and bats first."""
    eng = ScoringEngine(match_info, roster)
    eng.start_match(
        toss_winner="Team1",
        toss_decision="bat",
        striker="Team1 Batsman 1",
        non_striker="Team1 Batsman 2",
        bowler="Team2 Bowler 1",
    )
    return eng


def resolve_selections(engine: ScoringEngine) -> None:
    """Answer bowler/batter prompts with the first eligible player."""
    while True:
        pending = engine.state.pending_selection
        if pending == PendingSelection.NEXT_BOWLER:
            engine.select_next_bowler(engine.eligible_bowlers()[0])
        elif pending == PendingSelection.NEXT_BATTER:
            engine.select_next_batter(engine.available_batters()[0])
        else:
            return


def bowl(engine: ScoringEngine, outcome: Outcome) -> None:
    """Bowl one delivery: an int is runs off the bat, "W" is a bowled wicket."""
    resolve_selections(engine)
    if outcome == "W":
        last_wicket = engine.state.batting_score.wickets == 9
        engine.record_wicket(
            "bowled",
            next_batter=None if last_wicket else engine.available_batters()[0],
        )
    else:
        engine.record_runs(outcome)


@pytest.fixture
def play() -> Callable[[ScoringEngine, list[Outcome]], None]:
    """Bowl a sequence of outcomes, handling bowler changes and new batters."""

    def _play(engine: ScoringEngine, outcomes: list[Outcome]) -> None:
        for outcome in outcomes:
            bowl(engine, outcome)

    return _play
