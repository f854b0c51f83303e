"""Card, Suit, and Rank models for Seven Bridge."""

from __future__ import annotations

from enum import IntEnum
from typing import ClassVar

SPECIAL_RANK = 7


class Suit(IntEnum):
    """Card suits in hand display order."""

    HEARTS = 0
    DIAMONDS = 1
    CLUBS = 2
    SPADES = 3

    def __str__(self) -> str:
        return self.symbol

    @property
    def symbol(self) -> str:
        return {
            Suit.HEARTS: "♥",
            Suit.DIAMONDS: "♦",
            Suit.CLUBS: "♣",
            Suit.SPADES: "♠",
        }[self]

    @property
    def letter(self) -> str:
        return self.name[0]

    @classmethod
    def from_letter(cls, letter: str) -> Suit:
        for suit in cls:
            if suit.letter == letter.upper():
                return suit
        raise ValueError(f"Unknown suit letter: {letter!r}")


class Rank(IntEnum):
    """Card ranks (Ace=1 through King=13)."""

    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    def __str__(self) -> str:
        return self.symbol

    @property
    def symbol(self) -> str:
        if self.value == 1:
            return "A"
        elif self.value <= 10:
            return str(self.value)
        else:
            return self.name[0]

    @classmethod
    def from_symbol(cls, symbol: str) -> Rank:
        for rank in cls:
            if rank.symbol == symbol.upper():
                return rank
        raise ValueError(f"Unknown rank symbol: {symbol!r}")


class Card:
    """A playing card.

    Cards are immutable and interned: there is exactly one instance per
    (rank, suit), so identity comparison and set membership agree.
    """

    __slots__ = ("_rank", "_suit")

    _instances: ClassVar[dict[tuple[Rank, Suit], Card]] = {}

    def __new__(cls, rank: Rank | int, suit: Suit) -> Card:
        key = (Rank(rank), Suit(suit))
        if key not in cls._instances:
            instance = object.__new__(cls)
            instance._rank = key[0]
            instance._suit = key[1]
            cls._instances[key] = instance
        return cls._instances[key]

    @property
    def rank(self) -> Rank:
        return self._rank

    @property
    def suit(self) -> Suit:
        return self._suit

    @property
    def id(self) -> str:
        """Stable identifier such as ``7_H`` or ``10_S``."""
        return f"{self._rank.symbol}_{self._suit.letter}"

    @property
    def point_value(self) -> int:
        """Penalty points when left in hand (10 and face cards count 10)."""
        return min(self._rank.value, 10)

    @property
    def is_special(self) -> bool:
        """Whether this is a seven, which may be melded alone."""
        return self._rank == SPECIAL_RANK

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self._suit.value, self._rank.value)

    @classmethod
    def from_id(cls, card_id: str) -> Card:
        """Parse an id produced by :attr:`id`."""
        rank_symbol, sep, suit_letter = card_id.partition("_")
        if not sep:
            raise ValueError(f"Malformed card id: {card_id!r}")
        return cls(Rank.from_symbol(rank_symbol), Suit.from_letter(suit_letter))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Card):
            return NotImplemented
        return self._rank == other._rank and self._suit == other._suit

    def __hash__(self) -> int:
        return hash((self._rank, self._suit))

    def __reduce__(self) -> tuple:
        return (Card, (self._rank, self._suit))

    def __repr__(self) -> str:
        return f"Card({self._rank.name}, {self._suit.name})"

    def __str__(self) -> str:
        return f"{self._rank.symbol}{self._suit.symbol}"


def create_deck() -> list[Card]:
    """Create a standard 52-card deck (no jokers)."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]
