"""Game runner for headless Seven Bridge simulations."""

from __future__ import annotations

import json
import logging
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from bridge_engine.config import GameConfig
from bridge_engine.engine import GameEngine
from bridge_engine.errors import ExhaustionError
from bridge_engine.player import Player
from strategies.heuristic import HeuristicStrategy

if TYPE_CHECKING:
    from bridge_engine.actions import TurnAction
    from strategies.base import Strategy

logger = logging.getLogger(__name__)


@dataclass
class GameResult:
    """Result of a completed game."""

    game_id: str
    winner: int | None  # Seat that went out, or None if the game was cut short
    end_reason: str  # "went_out", "exhausted" or "turn_limit"
    turns: int
    final_scores: tuple[int, ...]
    player_strategies: tuple[str, ...]
    seed: int | None
    duration_ms: float
    step_count: int


@dataclass
class StepRecord:
    """Record of a single automated step."""

    turn: int
    seat: int
    action: str
    hand_size_after: int


@dataclass
class GameLog:
    """Complete log of a game."""

    game_id: str
    timestamp: str
    seed: int | None
    player_strategies: tuple[str, ...]
    first_discard: str
    steps: list[StepRecord] = field(default_factory=list)
    result: GameResult | None = None


def heuristic_lineup(difficulties: Sequence[int], seed: int | None = None) -> list[HeuristicStrategy]:
    """One heuristic strategy per difficulty, each with its own seeded rng."""
    rng = random.Random(seed)
    return [HeuristicStrategy(d, rng=random.Random(rng.getrandbits(32))) for d in difficulties]


class GameRunner:
    """Runs Seven Bridge games where every seat is automated."""

    def __init__(
        self,
        strategies: Sequence[Strategy],
        max_turns: int = 500,
        log_steps: bool = False,
    ):
        """Initialize the game runner.

        Args:
            strategies: One strategy per seat, in seat order (2 to 6 seats).
            max_turns: Turns before the game is abandoned.
            log_steps: Whether to record every step.
        """
        if not 2 <= len(strategies) <= 6:
            raise ValueError(f"Need 2 to 6 strategies, got {len(strategies)}")
        self.strategies = tuple(strategies)
        self.max_turns = max_turns
        self.log_steps = log_steps

    def create_engine(self, seed: int | None = None) -> GameEngine:
        players = [
            Player(f"AI {i + 1} ({strategy.name})", is_automated=True)
            for i, strategy in enumerate(self.strategies)
        ]
        config = GameConfig(player_count=len(players), auto_play=False)
        return GameEngine(players, self.strategies, config=config, rng=random.Random(seed))

    def run_game(self, seed: int | None = None) -> tuple[GameResult, GameLog | None]:
        """Run a single game.

        Args:
            seed: Seed for the shuffle.

        Returns:
            Tuple of (result, log). Log is None if log_steps is False.
        """
        import time

        start_time = time.perf_counter()
        game_id = str(uuid.uuid4())
        names = tuple(s.name for s in self.strategies)

        engine = self.create_engine(seed)
        engine.start_game()

        game_log = None
        if self.log_steps:
            game_log = GameLog(
                game_id=game_id,
                timestamp=datetime.now().isoformat(),
                seed=seed,
                player_strategies=names,
                first_discard=str(engine.top_discard),
            )

        step_count = 0
        end_reason = "turn_limit"
        while not engine.is_game_over and engine.turn_number <= self.max_turns:
            seat = engine.current_seat
            turn = engine.turn_number
            try:
                action: TurnAction | None = engine.step_automated()
            except ExhaustionError:
                logger.info(f"Game {game_id} abandoned: no cards left to draw")
                end_reason = "exhausted"
                break
            if action is None:
                break
            step_count += 1
            if game_log:
                game_log.steps.append(
                    StepRecord(
                        turn=turn,
                        seat=seat,
                        action=str(action),
                        hand_size_after=engine.players[seat].hand_size,
                    )
                )

        if engine.is_game_over:
            end_reason = "went_out"
            scores = tuple(s.points for s in engine.final_scores)
        else:
            scores = tuple(p.calculate_hand_points() for p in engine.players)

        duration_ms = (time.perf_counter() - start_time) * 1000
        result = GameResult(
            game_id=game_id,
            winner=engine.winner,
            end_reason=end_reason,
            turns=engine.turn_number,
            final_scores=scores,
            player_strategies=names,
            seed=seed,
            duration_ms=duration_ms,
            step_count=step_count,
        )
        logger.debug(
            f"Game {game_id}: winner={result.winner} ({end_reason}) after {result.turns} turns"
        )

        if game_log:
            game_log.result = result
        return result, game_log


def save_game_log(log: GameLog, base_dir: str = "logs/games") -> Path:
    """Save a game log as JSON under ``base_dir/YYYY-MM-DD/``.

    Returns:
        Path to the saved file.
    """
    date_str = log.timestamp[:10]
    dir_path = Path(base_dir) / date_str
    dir_path.mkdir(parents=True, exist_ok=True)
    file_path = dir_path / f"game_{log.game_id}.json"

    data = {
        "game_id": log.game_id,
        "timestamp": log.timestamp,
        "seed": log.seed,
        "player_strategies": log.player_strategies,
        "first_discard": log.first_discard,
        "steps": [
            {
                "turn": s.turn,
                "seat": s.seat,
                "action": s.action,
                "hand_size_after": s.hand_size_after,
            }
            for s in log.steps
        ],
        "result": {
            "winner": log.result.winner,
            "end_reason": log.result.end_reason,
            "turns": log.result.turns,
            "final_scores": log.result.final_scores,
            "duration_ms": log.result.duration_ms,
            "step_count": log.result.step_count,
        }
        if log.result
        else None,
    }

    with open(file_path, "w") as f:
        json.dump(data, f, indent=2)

    return file_path


def run_batch(
    strategies: Sequence[Strategy],
    num_games: int,
    start_seed: int = 0,
    max_turns: int = 500,
) -> list[GameResult]:
    """Run multiple games, incrementing the seed for each one."""
    runner = GameRunner(strategies, max_turns=max_turns)
    results = []

    for i in range(num_games):
        result, _ = runner.run_game(seed=start_seed + i)
        results.append(result)

    return results
