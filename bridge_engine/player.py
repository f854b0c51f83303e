"""Seat state: a hand and the melds laid down from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from bridge_engine.cards import Card
from bridge_engine.errors import CardNotFoundError


@dataclass(eq=False)
class Player:
    """A seat at the table.

    Attributes:
        name: Display name.
        is_automated: Whether the engine plays this seat through a strategy.
        hand: Cards held, no card twice.
        melds: Groups laid face-up, in the order they were played.
    """

    name: str
    is_automated: bool = False
    hand: list[Card] = field(default_factory=list)
    melds: list[list[Card]] = field(default_factory=list)

    @property
    def hand_size(self) -> int:
        return len(self.hand)

    @property
    def melded_cards(self) -> list[Card]:
        return [card for meld in self.melds for card in meld]

    def holds(self, card: Card) -> bool:
        return card in self.hand

    def add_to_hand(self, card: Card) -> None:
        if card in self.hand:
            raise ValueError(f"{card} is already in {self.name}'s hand")
        self.hand.append(card)

    def add_cards_to_hand(self, cards: Iterable[Card]) -> None:
        for card in cards:
            self.add_to_hand(card)

    def remove_from_hand(self, card: Card) -> Card:
        """Remove and return ``card``.

        Raises:
            CardNotFoundError: If the card is not in hand.
        """
        try:
            index = self.hand.index(card)
        except ValueError:
            raise CardNotFoundError(f"{card} is not in {self.name}'s hand") from None
        return self.hand.pop(index)

    def remove_cards_from_hand(self, cards: Iterable[Card]) -> list[Card]:
        """Remove several cards; nothing is removed unless all are held."""
        cards = list(cards)
        missing = [c for c in cards if c not in self.hand]
        if missing or len(set(cards)) != len(cards):
            raise CardNotFoundError(
                f"Cannot remove {', '.join(map(str, cards))} from {self.name}'s hand"
            )
        return [self.remove_from_hand(c) for c in cards]

    def add_meld(self, cards: Iterable[Card]) -> None:
        self.melds.append(list(cards))

    def add_card_to_meld(self, meld_index: int, card: Card) -> None:
        if not 0 <= meld_index < len(self.melds):
            raise CardNotFoundError(f"{self.name} has no meld {meld_index}")
        self.melds[meld_index].append(card)

    def sort_hand(self) -> None:
        """Order the hand by suit, then rank."""
        self.hand.sort(key=lambda c: c.sort_key)

    def has_empty_hand(self) -> bool:
        return not self.hand

    def calculate_hand_points(self) -> int:
        """Penalty points for cards still in hand; sevens count double."""
        return sum(c.point_value * (2 if c.is_special else 1) for c in self.hand)

    def clear(self) -> None:
        self.hand.clear()
        self.melds.clear()

    def __str__(self) -> str:
        return f"{self.name} (hand: {len(self.hand)}, melds: {len(self.melds)})"
