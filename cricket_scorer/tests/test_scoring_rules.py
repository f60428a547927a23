"""Tests for ball-by-ball event application."""

from __future__ import annotations

import pytest

from cricket_scorer.data.ball_event import MatchInfo, OverCompleted
from cricket_scorer.data.roster import StaticRosterService
from cricket_scorer.engine.scorer import ScoringEngine
from cricket_scorer.errors import InvalidEvent
from cricket_scorer.state.match_state import MatchState, MatchStatus, PendingSelection


class TestMatchStart:
    def test_toss_winner_batting_first(self, engine: ScoringEngine):
        state = engine.state
        assert state.status == MatchStatus.LIVE
        assert state.batting_team == "Team1"
        assert state.bowling_team == "Team2"
        assert state.striker_name == "Team1 Batsman 1"
        assert state.current_bowler_name == "Team2 Bowler 1"
        assert state.pending_selection == PendingSelection.NONE

    def test_toss_winner_bowling_first(self, match_info, roster):
        eng = ScoringEngine(match_info, roster)
        eng.start_match("Team1", "bowl", "Team2 Batsman 1", "Team2 Batsman 2", "Team1 Bowler 1")
        assert eng.state.batting_team == "Team2"
        assert eng.state.batting_first == "team2"

    def test_rejects_identical_openers(self, match_info, roster):
        eng = ScoringEngine(match_info, roster)
        with pytest.raises(InvalidEvent, match="different players"):
            eng.start_match("Team1", "bat", "Team1 Batsman 1", "Team1 Batsman 1", "Team2 Bowler 1")
        assert eng.state.status == MatchStatus.UPCOMING

    def test_rejects_unknown_toss_winner(self, match_info, roster):
        eng = ScoringEngine(match_info, roster)
        with pytest.raises(InvalidEvent, match="not playing"):
            eng.start_match("Team9", "bat", "Team1 Batsman 1", "Team1 Batsman 2", "Team2 Bowler 1")

    def test_rejects_bowler_from_batting_side(self, match_info, roster):
        eng = ScoringEngine(match_info, roster)
        with pytest.raises(InvalidEvent, match="fielding roster"):
            eng.start_match("Team1", "bat", "Team1 Batsman 1", "Team1 Batsman 2", "Team1 Bowler 1")

    def test_cannot_start_twice(self, engine: ScoringEngine):
        with pytest.raises(InvalidEvent, match="already started"):
            engine.start_match("Team1", "bat", "Team1 Batsman 3", "Team1 Batsman 4", "Team2 Bowler 2")

    @pytest.mark.parametrize("overs", [0, -5])
    def test_rejects_match_without_overs(self, roster, overs: int):
        info = MatchInfo(match_id="no_overs", team1_name="Team1", team2_name="Team2", total_overs=overs)
        eng = ScoringEngine(info, roster)
        with pytest.raises(InvalidEvent, match="at least one over"):
            eng.start_match("Team1", "bat", "Team1 Batsman 1", "Team1 Batsman 2", "Team2 Bowler 1")
        assert eng.state.status == MatchStatus.UPCOMING

    def test_scoring_before_start_rejected(self, match_info, roster):
        eng = ScoringEngine(match_info, roster)
        with pytest.raises(InvalidEvent, match="not live"):
            eng.record_runs(1)


class TestRecordRuns:
    def test_runs_credited_to_team_batter_and_bowler(self, engine: ScoringEngine):
        engine.record_runs(4)
        state = engine.state
        assert state.team1.runs == 4
        assert state.team1.legal_balls == 1
        assert state.ball_in_over == 1

        batter = state.batting_stats["Team1 Batsman 1"]
        assert batter.runs == 4
        assert batter.balls == 1
        assert batter.fours == 1

        bowler = state.bowling_stats["Team2 Bowler 1"]
        assert bowler.runs_conceded == 4
        assert bowler.legal_balls == 1

    def test_dot_ball(self, engine: ScoringEngine):
        engine.record_runs(0)
        batter = engine.state.batting_stats["Team1 Batsman 1"]
        assert batter.dots == 1
        assert batter.balls == 1

    def test_odd_runs_rotate_strike(self, engine: ScoringEngine):
        engine.record_runs(1)
        assert engine.state.striker_name == "Team1 Batsman 2"
        engine.record_runs(3)
        assert engine.state.striker_name == "Team1 Batsman 1"

    def test_even_runs_keep_strike(self, engine: ScoringEngine):
        engine.record_runs(2)
        engine.record_runs(6)
        assert engine.state.striker_name == "Team1 Batsman 1"

    def test_invalid_run_value_rejected(self, engine: ScoringEngine):
        with pytest.raises(InvalidEvent):
            engine.record_runs(5)
        with pytest.raises(InvalidEvent):
            engine.record_runs(-1)
        assert engine.state.team1.runs == 0

    def test_seventh_ball_rejected(self, engine: ScoringEngine, roster):
        snapshot = engine.state.to_dict()
        snapshot["ball_in_over"] = 6
        eng = ScoringEngine.from_state(MatchState.from_dict(snapshot), roster)

        with pytest.raises(InvalidEvent, match="7th ball"):
            eng.record_runs(1)
        with pytest.raises(InvalidEvent, match="7th ball"):
            eng.record_extra("wide", 1)
        assert eng.state.team1.runs == 0

    def test_commentary_line(self, engine: ScoringEngine):
        engine.record_runs(6)
        assert engine.state.ball_by_ball[-1] == "0.1 Team2 Bowler 1 to Team1 Batsman 1, SIX"


class TestOverCompletion:
    def test_sixth_legal_ball_completes_over(self, engine: ScoringEngine):
        emitted = []
        for _ in range(6):
            emitted += engine.record_runs(0)

        state = engine.state
        assert state.over == 1
        assert state.ball_in_over == 0
        assert state.team1.overs == "1.0"
        assert state.pending_selection == PendingSelection.NEXT_BOWLER
        assert state.current_bowler_name is None
        assert state.last_over_bowler[1] == "Team2 Bowler 1"
        assert [type(e) for e in emitted] == [OverCompleted]

    def test_wides_and_no_balls_do_not_complete_over(self, engine: ScoringEngine):
        engine.record_extra("wide", 1)
        engine.record_extra("no-ball", 1)
        for _ in range(5):
            engine.record_runs(0)
        assert engine.state.ball_in_over == 5
        assert engine.state.pending_selection == PendingSelection.NONE

        engine.record_runs(0)
        assert engine.state.over == 1
        assert engine.state.bowling_stats["Team2 Bowler 1"].total_balls == 8

    def test_scoring_rejected_until_bowler_selected(self, engine: ScoringEngine):
        for _ in range(6):
            engine.record_runs(0)
        with pytest.raises(InvalidEvent, match="next bowler"):
            engine.record_runs(1)
        assert engine.state.team1.legal_balls == 6

    def test_same_bowler_cannot_bowl_consecutive_overs(self, engine: ScoringEngine):
        for _ in range(6):
            engine.record_runs(0)
        with pytest.raises(InvalidEvent, match="consecutive overs"):
            engine.select_next_bowler("Team2 Bowler 1")
        assert "Team2 Bowler 1" not in engine.eligible_bowlers()

        engine.select_next_bowler("Team2 Bowler 2")
        assert engine.state.pending_selection == PendingSelection.NONE
        assert engine.state.current_bowler_name == "Team2 Bowler 2"

    def test_bowler_may_return_after_one_over(self, engine: ScoringEngine, play):
        play(engine, [0] * 12)  # Bowler 1 then Bowler 2
        engine.select_next_bowler("Team2 Bowler 1")
        assert engine.state.current_bowler_name == "Team2 Bowler 1"

    def test_bowler_selection_when_not_pending(self, engine: ScoringEngine):
        with pytest.raises(InvalidEvent, match="No bowler selection"):
            engine.select_next_bowler("Team2 Bowler 2")

    def test_bowler_not_in_fielding_roster(self, engine: ScoringEngine):
        for _ in range(6):
            engine.record_runs(0)
        with pytest.raises(InvalidEvent, match="fielding roster"):
            engine.select_next_bowler("Team1 Bowler 3")

    def test_even_last_ball_rotates_strike(self, engine: ScoringEngine):
        for _ in range(6):
            engine.record_runs(0)
        assert engine.state.striker_name == "Team1 Batsman 2"
        assert engine.state.non_striker_name == "Team1 Batsman 1"

    def test_odd_last_ball_rotates_once(self, engine: ScoringEngine):
        for _ in range(5):
            engine.record_runs(0)
        engine.record_runs(1)
        assert engine.state.striker_name == "Team1 Batsman 2"

    def test_maiden_over(self, engine: ScoringEngine):
        for _ in range(6):
            engine.record_runs(0)
        assert engine.state.bowling_stats["Team2 Bowler 1"].maidens == 1

    def test_byes_keep_maiden(self, engine: ScoringEngine):
        engine.record_extra("bye", 4)
        for _ in range(5):
            engine.record_runs(0)
        assert engine.state.bowling_stats["Team2 Bowler 1"].maidens == 1

    def test_wide_spoils_maiden(self, engine: ScoringEngine):
        engine.record_extra("wide", 1)
        for _ in range(6):
            engine.record_runs(0)
        assert engine.state.bowling_stats["Team2 Bowler 1"].maidens == 0


class TestExtras:
    def test_no_ball_with_runs_off_bat(self, engine: ScoringEngine):
        engine.record_extra("no-ball", 5)
        state = engine.state
        batter = state.batting_stats["Team1 Batsman 1"]
        assert batter.runs == 4
        assert batter.balls == 0
        assert batter.fours == 1
        assert state.team1.runs == 5
        assert state.team1.extras.no_balls == 1
        assert state.team1.legal_balls == 0
        assert state.ball_in_over == 0
        assert state.bowling_stats["Team2 Bowler 1"].runs_conceded == 5
        assert state.striker_name == "Team1 Batsman 1"

    def test_no_ball_single_rotates(self, engine: ScoringEngine):
        engine.record_extra("no-ball", 2)
        assert engine.state.striker_name == "Team1 Batsman 2"
        assert engine.state.batting_stats["Team1 Batsman 1"].runs == 1

    def test_wide_runs_not_credited_to_batter(self, engine: ScoringEngine):
        engine.record_extra("wide", 2)
        state = engine.state
        assert state.team1.extras.wides == 2
        assert state.batting_stats["Team1 Batsman 1"].runs == 0
        assert state.batting_stats["Team1 Batsman 1"].balls == 0
        assert state.striker_name == "Team1 Batsman 2"
        assert state.bowling_stats["Team2 Bowler 1"].runs_conceded == 2

    def test_wide_requires_a_run(self, engine: ScoringEngine):
        with pytest.raises(InvalidEvent, match="at least 1 run"):
            engine.record_extra("wide", 0)

    def test_bye_charges_ball_to_striker(self, engine: ScoringEngine):
        engine.record_extra("bye", 1)
        state = engine.state
        assert state.team1.legal_balls == 1
        assert state.team1.extras.byes == 1
        assert state.batting_stats["Team1 Batsman 1"].balls == 1
        assert state.batting_stats["Team1 Batsman 1"].runs == 0
        assert state.bowling_stats["Team2 Bowler 1"].runs_conceded == 0
        assert state.striker_name == "Team1 Batsman 2"

    def test_leg_bye_zero_is_a_dot(self, engine: ScoringEngine):
        engine.record_extra("leg-bye", 0)
        assert engine.state.batting_stats["Team1 Batsman 1"].dots == 1

    def test_unknown_extra_rejected(self, engine: ScoringEngine):
        with pytest.raises(InvalidEvent, match="Unknown extra type"):
            engine.record_extra("penalty", 5)


class TestWickets:
    def test_bowled_replaces_striker(self, engine: ScoringEngine):
        engine.record_wicket("bowled", next_batter="Team1 Batsman 3")
        state = engine.state
        assert state.team1.wickets == 1
        assert state.striker_name == "Team1 Batsman 3"
        assert "Team1 Batsman 1" in state.dismissed_players
        out = state.batting_stats["Team1 Batsman 1"]
        assert out.is_dismissed
        assert out.dismissal_type == "b Team2 Bowler 1"
        assert out.balls == 1
        assert state.bowling_stats["Team2 Bowler 1"].wickets == 1
        assert state.team1.legal_balls == 1

    def test_caught_dismissal_text(self, engine: ScoringEngine):
        engine.record_wicket("caught", next_batter="Team1 Batsman 3", fielder="Team2 Bowler 7")
        out = engine.state.batting_stats["Team1 Batsman 1"]
        assert out.dismissal_type == "c Team2 Bowler 7 b Team2 Bowler 1"

    def test_run_out_non_striker(self, match_info):
        roster = StaticRosterService({"Team1": ["A", "B", "Smith", "D", "E"]})
        eng = ScoringEngine(match_info, roster)
        eng.start_match("Team1", "bat", "A", "B", "Team2 Bowler 1")

        eng.record_wicket("run-out", next_batter="Smith", fielder="Jones", dismissed_side="non-striker")

        state = eng.state
        assert "B" in state.dismissed_players
        assert state.batting_stats["B"].is_dismissed
        assert state.batting_stats["B"].dismissal_type == "run out (Jones)"
        assert state.striker_name == "A"
        assert state.batting_stats["A"].balls == 1
        assert state.non_striker_name == "Smith"
        assert state.bowling_stats["Team2 Bowler 1"].wickets == 0

    def test_only_run_outs_remove_non_striker(self, engine: ScoringEngine):
        with pytest.raises(InvalidEvent, match="only remove the striker"):
            engine.record_wicket("bowled", next_batter="Team1 Batsman 3", dismissed_side="non-striker")

    def test_dismissed_player_cannot_return(self, engine: ScoringEngine):
        engine.record_wicket("bowled", next_batter="Team1 Batsman 3")
        with pytest.raises(InvalidEvent, match="already been dismissed"):
            engine.record_wicket("bowled", next_batter="Team1 Batsman 1")
        assert "Team1 Batsman 1" not in engine.available_batters()

    def test_new_batter_already_batting(self, engine: ScoringEngine):
        with pytest.raises(InvalidEvent, match="already batting"):
            engine.record_wicket("bowled", next_batter="Team1 Batsman 2")

    def test_new_batter_not_on_roster_leaves_state_unchanged(self, engine: ScoringEngine):
        before = engine.state.to_dict()
        with pytest.raises(InvalidEvent, match="batting roster"):
            engine.record_wicket("bowled", next_batter="Nobody")
        assert engine.state.to_dict() == before

    def test_wicket_without_next_batter_waits_for_selection(self, engine: ScoringEngine):
        engine.record_wicket("caught", fielder="Team2 Bowler 4")
        assert engine.state.pending_selection == PendingSelection.NEXT_BATTER
        assert engine.state.striker_name is None
        with pytest.raises(InvalidEvent, match="next batter"):
            engine.record_runs(1)

        engine.select_next_batter("Team1 Batsman 5")
        assert engine.state.striker_name == "Team1 Batsman 5"
        assert engine.state.pending_selection == PendingSelection.NONE

    def test_wicket_on_last_ball_needs_batter_then_bowler(self, engine: ScoringEngine):
        for _ in range(5):
            engine.record_runs(0)
        engine.record_wicket("bowled")
        assert engine.state.pending_selection == PendingSelection.NEXT_BATTER
        engine.select_next_batter("Team1 Batsman 3")
        assert engine.state.pending_selection == PendingSelection.NEXT_BOWLER

    def test_wide_wicket_clamps_to_one_run(self, engine: ScoringEngine):
        engine.record_wicket("wide-wicket", next_batter="Team1 Batsman 3", fielder="Keeper", extra_runs=0)
        state = engine.state
        assert state.team1.runs == 1
        assert state.team1.extras.wides == 1
        assert state.team1.legal_balls == 0
        assert state.batting_stats["Team1 Batsman 1"].balls == 0
        bowler = state.bowling_stats["Team2 Bowler 1"]
        assert bowler.wickets == 1
        assert bowler.runs_conceded == 1
        assert bowler.legal_balls == 0

    def test_no_ball_wicket_not_a_legal_ball(self, engine: ScoringEngine):
        engine.record_wicket("no-ball-wicket", next_batter="Team1 Batsman 3", extra_runs=2)
        state = engine.state
        assert state.team1.runs == 2
        assert state.team1.extras.no_balls == 2
        assert state.ball_in_over == 0

    def test_bye_wicket_is_legal_and_not_credited(self, engine: ScoringEngine):
        engine.record_wicket(
            "bye-wicket", next_batter="Team1 Batsman 3",
            dismissed_side="non-striker", extra_runs=1,
        )
        state = engine.state
        assert state.team1.runs == 1
        assert state.team1.extras.byes == 1
        assert state.team1.legal_balls == 1
        assert state.bowling_stats["Team2 Bowler 1"].wickets == 0
        assert state.bowling_stats["Team2 Bowler 1"].runs_conceded == 0
        # One bye run: the batters crossed
        assert state.striker_name == "Team1 Batsman 3"
        assert state.non_striker_name == "Team1 Batsman 1"

    def test_plain_wicket_rejects_extra_runs(self, engine: ScoringEngine):
        with pytest.raises(InvalidEvent, match="no extra runs"):
            engine.record_wicket("bowled", next_batter="Team1 Batsman 3", extra_runs=2)

    def test_unknown_wicket_kind(self, engine: ScoringEngine):
        with pytest.raises(InvalidEvent, match="Unknown wicket kind"):
            engine.record_wicket("lbw", next_batter="Team1 Batsman 3")

    def test_all_out_ends_innings(self, engine: ScoringEngine, play):
        play(engine, ["W"] * 10)
        state = engine.state
        assert state.team1.wickets == 10
        assert state.inning == 2
        assert state.target == 1
        assert state.pending_selection == PendingSelection.SECOND_INNINGS_SETUP

    def test_eleventh_wicket_rejected(self, engine: ScoringEngine, play):
        play(engine, ["W"] * 10)
        with pytest.raises(InvalidEvent):
            engine.record_wicket("bowled")
        assert engine.state.team1.wickets == 10
