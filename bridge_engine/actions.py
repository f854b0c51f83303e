"""Turn actions chosen by automated seats."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum, auto
from typing import TYPE_CHECKING

from bridge_engine.state import DrawSource

if TYPE_CHECKING:
    from bridge_engine.cards import Card


class ActionType(IntEnum):
    DRAW = auto()
    MELD = auto()
    DISCARD = auto()


@dataclass(frozen=True, slots=True)
class TurnAction(ABC):
    """Base class for a single step of an automated turn."""

    @property
    @abstractmethod
    def action_type(self) -> ActionType:
        ...

    @abstractmethod
    def __str__(self) -> str:
        ...


@dataclass(frozen=True, slots=True)
class DrawAction(TurnAction):
    source: DrawSource

    @property
    def action_type(self) -> ActionType:
        return ActionType.DRAW

    def __str__(self) -> str:
        return f"Draw from {self.source.value}"


@dataclass(frozen=True, slots=True)
class MeldAction(TurnAction):
    cards: tuple[Card, ...]

    @property
    def action_type(self) -> ActionType:
        return ActionType.MELD

    def __str__(self) -> str:
        return f"Meld {' '.join(str(c) for c in self.cards)}"


@dataclass(frozen=True, slots=True)
class DiscardAction(TurnAction):
    card: Card

    @property
    def action_type(self) -> ActionType:
        return ActionType.DISCARD

    def __str__(self) -> str:
        return f"Discard {self.card}"
