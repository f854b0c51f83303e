"""The stock pile."""

from __future__ import annotations

import random
from typing import Iterable

from bridge_engine.cards import Card, create_deck
from bridge_engine.errors import EmptyDeckError


class Deck:
    """Mutable stack of cards; the end of the list is the top.

    Args:
        cards: Initial cards, bottom first. Defaults to a full 52-card deck.
        rng: Random source used by :meth:`shuffle`.
    """

    def __init__(self, cards: Iterable[Card] | None = None, rng: random.Random | None = None):
        self._cards: list[Card] = list(cards) if cards is not None else create_deck()
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self):
        return iter(self._cards)

    @property
    def cards(self) -> tuple[Card, ...]:
        return tuple(self._cards)

    def shuffle(self) -> None:
        """Shuffle in place (Fisher-Yates through ``random.shuffle``)."""
        self._rng.shuffle(self._cards)

    def draw(self) -> Card:
        """Pop the top card.

        Raises:
            EmptyDeckError: If no cards remain.
        """
        if not self._cards:
            raise EmptyDeckError("Deck is empty")
        return self._cards.pop()

    def draw_many(self, count: int) -> list[Card]:
        """Draw up to ``count`` cards, stopping early when the deck runs out."""
        drawn = []
        for _ in range(count):
            if not self._cards:
                break
            drawn.append(self._cards.pop())
        return drawn

    def add_cards(self, cards: Iterable[Card]) -> None:
        self._cards.extend(cards)

    def count(self) -> int:
        return len(self._cards)

    def is_empty(self) -> bool:
        return not self._cards

    def clear(self) -> list[Card]:
        """Remove and return every card, bottom first."""
        cards, self._cards = self._cards, []
        return cards
