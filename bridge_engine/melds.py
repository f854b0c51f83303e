"""Meld rules for Seven Bridge.

All functions here are pure: they inspect card groups and never mutate them.

A meld is one of:

- a single seven,
- a same-suit pair of adjacent ranks where one card is a seven,
- a set: three or more cards of one rank,
- a run: three or more cards of one suit with consecutive ranks (Ace is low
  only; K-A-2 does not wrap).
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Sequence

from bridge_engine.cards import SPECIAL_RANK, Card

MIN_GROUP_SIZE = 3
LOWEST_RANK = 1
HIGHEST_RANK = 13


class MeldKind(str, Enum):
    SEVEN = "seven"
    SEVEN_PAIR = "seven_pair"
    SET = "set"
    RUN = "run"


def _is_set(cards: Sequence[Card]) -> bool:
    return len(cards) >= MIN_GROUP_SIZE and len({c.rank for c in cards}) == 1


def _is_run(cards: Sequence[Card]) -> bool:
    if len(cards) < MIN_GROUP_SIZE or len({c.suit for c in cards}) != 1:
        return False
    ranks = sorted(c.rank for c in cards)
    return ranks == list(range(ranks[0], ranks[0] + len(ranks)))


def _is_seven_pair(cards: Sequence[Card]) -> bool:
    if len(cards) != 2:
        return False
    first, second = cards
    return (
        first.suit == second.suit
        and (first.is_special or second.is_special)
        and abs(first.rank - second.rank) == 1
    )


def classify_meld(cards: Sequence[Card]) -> MeldKind | None:
    """Return the kind of meld ``cards`` forms, or None if it is not a meld."""
    if not cards or len(set(cards)) != len(cards):
        return None
    if len(cards) == 1:
        return MeldKind.SEVEN if cards[0].is_special else None
    if len(cards) == 2:
        return MeldKind.SEVEN_PAIR if _is_seven_pair(cards) else None
    if _is_set(cards):
        return MeldKind.SET
    if _is_run(cards):
        return MeldKind.RUN
    return None


def is_valid_meld(cards: Sequence[Card]) -> bool:
    """Whether ``cards`` may be laid down as a new meld."""
    return classify_meld(cards) is not None


def can_extend_meld(meld: Sequence[Card], card: Card) -> bool:
    """Whether ``card`` may be added to an existing meld.

    Sets accept any card of their rank. Runs accept the next card of their
    suit at either end. Single sevens and seven pairs cannot be extended.
    """
    if card in meld:
        return False
    kind = classify_meld(meld)
    if kind is MeldKind.SET:
        return card.rank == meld[0].rank
    if kind is MeldKind.RUN:
        if card.suit != meld[0].suit:
            return False
        low = min(c.rank for c in meld)
        high = max(c.rank for c in meld)
        return card.rank == low - 1 or card.rank == high + 1
    return False


def find_claim_set(hand: Iterable[Card], discard: Card) -> list[Card] | None:
    """Two hand cards that make a set with ``discard`` (pon), or None."""
    matching = [c for c in hand if c.rank == discard.rank and c != discard]
    if len(matching) < 2:
        return None
    return matching[:2]


def find_claim_run(hand: Iterable[Card], discard: Card) -> list[Card] | None:
    """Hand cards that make a run with ``discard`` (chi), or None.

    A seven pair is preferred when the discard can form one; otherwise the
    three-card windows ending, centred on and starting at the discard are
    tried in that order.
    """
    same_suit = {c.rank: c for c in hand if c.suit == discard.suit and c != discard}

    if discard.is_special:
        for rank in (SPECIAL_RANK - 1, SPECIAL_RANK + 1):
            if rank in same_suit:
                return [same_suit[rank]]
    elif abs(discard.rank - SPECIAL_RANK) == 1 and SPECIAL_RANK in same_suit:
        return [same_suit[SPECIAL_RANK]]

    for offset in (-2, -1, 0):
        window = [discard.rank + offset + i for i in range(MIN_GROUP_SIZE)]
        if window[0] < LOWEST_RANK or window[-1] > HIGHEST_RANK:
            continue
        needed = [rank for rank in window if rank != discard.rank]
        if all(rank in same_suit for rank in needed):
            return [same_suit[rank] for rank in needed]
    return None


def can_claim_set(hand: Iterable[Card], discard: Card) -> bool:
    """Whether the hand holds two cards matching the discard's rank."""
    return find_claim_set(hand, discard) is not None


def can_claim_run(hand: Iterable[Card], discard: Card) -> bool:
    """Whether the seat holding ``hand`` may chi ``discard``.

    Besides a run through the discard, a seven next to a 6 or 8 among the
    discard's suit makes any card of that suit claimable, even when the
    discard itself could not join them. Such a claim has no meld to form and
    resolves as no claim.
    """
    hand = list(hand)
    ranks = {discard.rank} | {c.rank for c in hand if c.suit == discard.suit}
    if SPECIAL_RANK in ranks and not ranks.isdisjoint((SPECIAL_RANK - 1, SPECIAL_RANK + 1)):
        return True
    return find_claim_run(hand, discard) is not None
