"""Engine status values and immutable snapshot models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bridge_engine.cards import Card


class GameStatus(str, Enum):
    """Top-level state of the match."""

    WAITING = "waiting"
    DEALING = "dealing"
    PLAYER_TURN = "player_turn"  # A manual seat is acting
    AI_TURN = "ai_turn"  # An automated seat is acting
    CLAIM_WINDOW = "claim_window"  # Waiting on pon/chi decisions
    GAME_OVER = "game_over"


class TurnPhase(str, Enum):
    """Step within the acting seat's turn."""

    DRAW = "draw"
    MELD = "meld"
    DISCARD = "discard"


class DrawSource(str, Enum):
    STOCK = "stock"
    DISCARD = "discard"


class ClaimKind(str, Enum):
    PON = "pon"  # Discard + two of its rank
    CHI = "chi"  # Discard completes a run (next seat only)


@dataclass(frozen=True, slots=True)
class LastDiscard:
    card: Card
    discarder_seat: int


@dataclass(frozen=True, slots=True)
class ClaimWindow:
    """An open claim window.

    Attributes:
        card: The discard that may be claimed.
        discarder_seat: Who discarded it.
        pon_seats: Manual seats allowed to pon.
        chi_seat: Manual seat allowed to chi (only ever the discarder's next seat).
        decided_pon_seats: Automated seats that already chose to pon.
        decided_chi_seat: Automated seat that already chose to chi.
    """

    card: Card
    discarder_seat: int
    pon_seats: tuple[int, ...] = ()
    chi_seat: int | None = None
    decided_pon_seats: tuple[int, ...] = ()
    decided_chi_seat: int | None = None

    @property
    def awaits_manual_choice(self) -> bool:
        return bool(self.pon_seats) or self.chi_seat is not None


@dataclass(frozen=True, slots=True)
class SeatSummary:
    """What every seat can see about a seat."""

    seat: int
    name: str
    hand_size: int
    melds: tuple[tuple[Card, ...], ...]
    is_automated: bool


@dataclass(frozen=True, slots=True)
class SeatScore:
    seat: int
    name: str
    points: int
    is_winner: bool


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """Everything a presentation layer needs after a command.

    Only the local seat's hand is included in full.
    """

    status: GameStatus
    phase: TurnPhase | None
    current_seat: int
    turn_number: int
    stock_count: int
    discard_pile: tuple[Card, ...]
    seats: tuple[SeatSummary, ...]
    local_seat: int
    local_hand: tuple[Card, ...]
    last_discard: LastDiscard | None = None
    claim_window: ClaimWindow | None = None
    winner: int | None = None
    scores: tuple[SeatScore, ...] = ()

    @property
    def top_discard(self) -> Card | None:
        return self.discard_pile[-1] if self.discard_pile else None

    @property
    def is_game_over(self) -> bool:
        return self.status == GameStatus.GAME_OVER
