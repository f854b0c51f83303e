"""Base strategy interface for automated seats."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterator, Sequence

from bridge_engine.actions import DiscardAction, DrawAction, MeldAction, TurnAction
from bridge_engine.state import DrawSource, TurnPhase

if TYPE_CHECKING:
    from bridge_engine.cards import Card
    from bridge_engine.player import Player


class Strategy(ABC):
    """Decision policy for an automated seat.

    A strategy never mutates the player it advises; it only reads the hand
    and returns decisions the engine then executes.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this strategy."""
        ...

    @abstractmethod
    def decide_draw_source(self, hand: Sequence[Card], top_discard: Card | None) -> bool:
        """Return True to draw the top discard, False to draw from the stock."""
        ...

    @abstractmethod
    def choose_meld(self, hand: Sequence[Card]) -> list[Card] | None:
        """Pick a meld to lay down this turn, or None to hold."""
        ...

    @abstractmethod
    def select_card_to_discard(self, hand: Sequence[Card]) -> Card:
        """Pick the card that ends the turn."""
        ...

    @abstractmethod
    def decide_pon(self, hand: Sequence[Card], discard: Card) -> bool:
        """Whether to claim ``discard`` for a set."""
        ...

    @abstractmethod
    def decide_chi(self, hand: Sequence[Card], discard: Card) -> bool:
        """Whether to claim ``discard`` for a run."""
        ...

    def play_turn(
        self, player: Player, top_discard: Card | None, phase: TurnPhase
    ) -> Iterator[TurnAction]:
        """Yield the actions of one turn, starting from ``phase``.

        Each action is applied by the engine before the generator resumes,
        so later decisions see the hand as it is after earlier ones. A turn
        that starts in the discard phase (after a claim) only discards.
        """
        if phase == TurnPhase.DRAW:
            take_discard = top_discard is not None and self.decide_draw_source(
                player.hand, top_discard
            )
            yield DrawAction(DrawSource.DISCARD if take_discard else DrawSource.STOCK)

        if phase in (TurnPhase.DRAW, TurnPhase.MELD):
            meld = self.choose_meld(player.hand)
            if meld:
                yield MeldAction(tuple(meld))

        if player.hand:
            yield DiscardAction(self.select_card_to_discard(player.hand))
