"""Headless simulation of all-AI games."""

from simulation.runner import (
    GameLog,
    GameResult,
    GameRunner,
    StepRecord,
    heuristic_lineup,
    run_batch,
    save_game_log,
)

__all__ = [
    "GameLog",
    "GameResult",
    "GameRunner",
    "StepRecord",
    "heuristic_lineup",
    "run_batch",
    "save_game_log",
]
