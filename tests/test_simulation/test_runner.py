"""Tests for headless game running."""

import json

import pytest

from simulation.runner import GameRunner, heuristic_lineup, run_batch, save_game_log


class TestGameRunner:
    def test_game_finishes_or_reports_why(self):
        runner = GameRunner(heuristic_lineup([2, 2, 2, 2], seed=1))
        result, log = runner.run_game(seed=1)

        assert log is None
        assert result.end_reason in ("went_out", "exhausted", "turn_limit")
        assert len(result.final_scores) == 4
        assert result.step_count > 0
        if result.end_reason == "went_out":
            assert result.winner is not None
            assert result.final_scores[result.winner] == 0
        else:
            assert result.winner is None

    def test_same_seed_same_game(self):
        first, _ = GameRunner(heuristic_lineup([1, 3], seed=8)).run_game(seed=8)
        second, _ = GameRunner(heuristic_lineup([1, 3], seed=8)).run_game(seed=8)

        assert (first.winner, first.turns, first.final_scores) == (
            second.winner,
            second.turns,
            second.final_scores,
        )

    def test_turn_limit(self):
        runner = GameRunner(heuristic_lineup([1, 1, 1], seed=2), max_turns=1)
        result, _ = runner.run_game(seed=2)
        assert result.turns <= 2
        assert result.end_reason in ("went_out", "turn_limit")

    def test_needs_two_to_six_seats(self):
        with pytest.raises(ValueError):
            GameRunner(heuristic_lineup([1]))
        with pytest.raises(ValueError):
            GameRunner(heuristic_lineup([1] * 7))

    def test_step_log(self, tmp_path):
        runner = GameRunner(heuristic_lineup([3, 3], seed=4), log_steps=True)
        result, log = runner.run_game(seed=4)

        assert log.result is result
        assert len(log.steps) == result.step_count
        assert log.steps[0].seat == 0
        assert log.steps[0].action.startswith("Draw")

        path = save_game_log(log, base_dir=str(tmp_path))
        data = json.loads(path.read_text())
        assert data["game_id"] == result.game_id
        assert data["result"]["step_count"] == result.step_count


class TestRunBatch:
    def test_batch_size_and_seeds(self):
        results = run_batch(heuristic_lineup([1, 2, 3], seed=0), 5, start_seed=10)
        assert len(results) == 5
        assert [r.seed for r in results] == [10, 11, 12, 13, 14]
        assert all(r.player_strategies == ("Heuristic(tier 1)", "Heuristic(tier 2)", "Heuristic(tier 3)") for r in results)
