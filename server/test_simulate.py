"""
Tests for the CPU-vs-CPU simulator.

Run with: pytest test_simulate.py -v
"""

import random
from dataclasses import replace

import pytest
from game import GameStatus, start_game
from simulate import MAX_TURNS, ConservationError, SimulationStats, check_conservation, run_game


class TestSimulation:

    def test_games_finish_or_hit_the_cap(self):
        stats = SimulationStats()
        for seed in range(25):
            state, turns = run_game(stats, rng=random.Random(seed))
            if state.status == GameStatus.GAME_OVER:
                assert state.winner is not None
                assert state.hand_for(state.winner) == ()
            else:
                assert turns == MAX_TURNS
        assert stats.games_played == 25
        assert sum(stats.wins.values()) + stats.stalled_games == 25

    def test_report_lists_both_seats(self):
        stats = SimulationStats()
        run_game(stats, rng=random.Random(1))
        report = stats.report()
        assert "player:" in report
        assert "ai:" in report

    def test_conservation_check_catches_lost_card(self):
        state = start_game(random.Random(2))
        broken = replace(state, deck=state.deck[:-1])
        check_conservation(state)
        with pytest.raises(ConservationError):
            check_conservation(broken)

    def test_conservation_check_catches_duplicate(self):
        state = start_game(random.Random(2))
        broken = replace(state, player_hand=state.player_hand + (state.ai_hand[0],))
        with pytest.raises(ConservationError):
            check_conservation(broken)
