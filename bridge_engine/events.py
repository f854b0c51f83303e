"""Notifications emitted by the engine.

Listeners receive instances of the classes below and nothing else; match on
the class (or ``event_type``) to react.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum, auto
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from bridge_engine.cards import Card
    from bridge_engine.state import ClaimKind, DrawSource, GameSnapshot, SeatScore


class EventType(IntEnum):
    STATE_CHANGED = auto()
    CARD_DRAWN = auto()
    MELD_PLAYED = auto()
    MELD_EXTENDED = auto()
    CARD_DISCARDED = auto()
    CLAIM_WINDOW_OPENED = auto()
    CLAIM_RESOLVED = auto()
    GAME_ENDED = auto()
    AUTOMATION_STOPPED = auto()


@dataclass(frozen=True, slots=True)
class GameEvent(ABC):
    """Base class for all notifications."""

    @property
    @abstractmethod
    def event_type(self) -> EventType:
        ...


@dataclass(frozen=True, slots=True)
class StateChanged(GameEvent):
    """Sent after every command that changed state."""

    snapshot: GameSnapshot

    @property
    def event_type(self) -> EventType:
        return EventType.STATE_CHANGED


@dataclass(frozen=True, slots=True)
class CardDrawn(GameEvent):
    seat: int
    source: DrawSource
    card: Card

    @property
    def event_type(self) -> EventType:
        return EventType.CARD_DRAWN


@dataclass(frozen=True, slots=True)
class MeldPlayed(GameEvent):
    seat: int
    cards: tuple[Card, ...]
    claim: ClaimKind | None = None  # Set when the meld came from a pon/chi

    @property
    def event_type(self) -> EventType:
        return EventType.MELD_PLAYED


@dataclass(frozen=True, slots=True)
class MeldExtended(GameEvent):
    seat: int
    owner_seat: int
    meld_index: int
    card: Card

    @property
    def event_type(self) -> EventType:
        return EventType.MELD_EXTENDED


@dataclass(frozen=True, slots=True)
class CardDiscarded(GameEvent):
    seat: int
    card: Card

    @property
    def event_type(self) -> EventType:
        return EventType.CARD_DISCARDED


@dataclass(frozen=True, slots=True)
class ClaimWindowOpened(GameEvent):
    card: Card
    discarder_seat: int
    pon_seats: tuple[int, ...]
    chi_seat: int | None
    seconds: float

    @property
    def event_type(self) -> EventType:
        return EventType.CLAIM_WINDOW_OPENED


@dataclass(frozen=True, slots=True)
class ClaimResolved(GameEvent):
    """Outcome of a claim window; ``claim`` is None when nobody claimed."""

    card: Card
    claim: ClaimKind | None
    seat: int | None
    timed_out: bool = False

    @property
    def event_type(self) -> EventType:
        return EventType.CLAIM_RESOLVED


@dataclass(frozen=True, slots=True)
class GameEnded(GameEvent):
    winner: int
    scores: tuple[SeatScore, ...]

    @property
    def event_type(self) -> EventType:
        return EventType.GAME_ENDED


@dataclass(frozen=True, slots=True)
class AutomationStopped(GameEvent):
    """An automated seat could not continue its turn; ``seat`` is left to act."""

    seat: int
    reason: str

    @property
    def event_type(self) -> EventType:
        return EventType.AUTOMATION_STOPPED


Listener = Callable[[GameEvent], None]
