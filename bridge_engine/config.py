"""Match configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace

MIN_PLAYERS = 2
MAX_PLAYERS = 6

ENV_PREFIX = "SEVEN_BRIDGE_"


@dataclass(frozen=True)
class StepDelays:
    """Pause before each automated step, in seconds (presentation only)."""

    draw: float = 1.0
    meld: float = 0.5
    discard: float = 0.5

    def scaled(self, factor: float) -> StepDelays:
        return StepDelays(self.draw * factor, self.meld * factor, self.discard * factor)


@dataclass(frozen=True)
class GameConfig:
    """Settings for one match.

    Attributes:
        player_name: Name of the local (manual) seat.
        player_count: Number of seats, clamped to 2..6.
        ai_difficulty: Tier for every automated seat, clamped to 1..3.
        hand_size: Cards dealt to each seat.
        claim_window_seconds: How long a manual seat may take to claim a discard.
        local_seat: Seat whose hand is included in snapshots.
        auto_play: Run automated seats to completion after every command.
        step_delays: Pacing for automated steps when a driver honours it.
    """

    player_name: str = "You"
    player_count: int = 4
    ai_difficulty: int = 1
    hand_size: int = 7
    claim_window_seconds: float = 3.0
    local_seat: int = 0
    auto_play: bool = True
    step_delays: StepDelays = field(default_factory=StepDelays)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "player_count", min(max(self.player_count, MIN_PLAYERS), MAX_PLAYERS)
        )
        object.__setattr__(self, "ai_difficulty", min(max(self.ai_difficulty, 1), 3))
        if not 0 <= self.local_seat < self.player_count:
            raise ValueError(f"local_seat {self.local_seat} is not a seat")
        if self.claim_window_seconds < 0:
            raise ValueError("claim_window_seconds must not be negative")

    def with_overrides(self, **changes) -> GameConfig:
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> GameConfig:
        """Build a config from ``SEVEN_BRIDGE_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str, cast, default):
            raw = env.get(ENV_PREFIX + name)
            if raw is None or raw == "":
                return default
            try:
                return cast(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {ENV_PREFIX}{name}: {raw!r}") from None

        delay_scale = get("AI_DELAY_SCALE", float, 1.0)
        return cls(
            player_name=get("PLAYER_NAME", str, defaults.player_name),
            player_count=get("PLAYER_COUNT", int, defaults.player_count),
            ai_difficulty=get("AI_DIFFICULTY", int, defaults.ai_difficulty),
            claim_window_seconds=get(
                "CLAIM_WINDOW_SECONDS", float, defaults.claim_window_seconds
            ),
            step_delays=defaults.step_delays.scaled(delay_scale),
        )
