"""Tiered heuristic strategy.

Single-ply scoring with difficulty-dependent noise:

1. Take the top discard only when it completes a set or run
   (tier 1 overlooks the chance half the time)
2. Lay down the longest meld available (tier 1 holds back 30% of the time)
3. Discard high-point cards that are not close to forming a meld;
   tier 2 and up also hang on to sevens
4. Accept pon/chi offers with a probability that rises with the tier
"""

from __future__ import annotations

import math
import random
from collections import defaultdict
from typing import TYPE_CHECKING, Sequence

from bridge_engine.cards import SPECIAL_RANK
from bridge_engine.melds import MIN_GROUP_SIZE, can_claim_run, can_claim_set
from strategies.base import Strategy

if TYPE_CHECKING:
    from bridge_engine.cards import Card

EASY, NORMAL, HARD = 1, 2, 3

DRAW_DISCARD_CHANCE = 0.5  # Tier 1 only
PLAY_MELD_CHANCE = 0.7  # Tier 1 only
RANDOM_DISCARD_CHANCE = 0.3  # Tier 1 only
PON_ACCEPT = {EASY: 0.5, NORMAL: 0.8, HARD: 1.0}
CHI_ACCEPT = {EASY: 0.4, NORMAL: 0.7, HARD: 1.0}

NEAR_MELD_PENALTY = 5
SEVEN_PENALTY = 10
NORMAL_DISCARD_POOL = 3


def _group_by_rank(hand: Sequence[Card]) -> dict[int, list[Card]]:
    groups: dict[int, list[Card]] = defaultdict(list)
    for card in hand:
        groups[card.rank].append(card)
    return groups


def _group_by_suit(hand: Sequence[Card]) -> dict[int, list[Card]]:
    groups: dict[int, list[Card]] = defaultdict(list)
    for card in hand:
        groups[card.suit].append(card)
    for cards in groups.values():
        cards.sort(key=lambda c: c.rank)
    return groups


def find_melds(hand: Sequence[Card]) -> list[list[Card]]:
    """Every meld that could be laid down from ``hand`` right now.

    Groups can overlap; the caller plays at most one of them.
    """
    melds: list[list[Card]] = [[card] for card in hand if card.is_special]

    for cards in _group_by_rank(hand).values():
        if len(cards) >= MIN_GROUP_SIZE:
            melds.append(list(cards))

    for cards in _group_by_suit(hand).values():
        run = cards[:1]
        for card in cards[1:]:
            if card.rank == run[-1].rank + 1:
                run.append(card)
                continue
            if len(run) >= MIN_GROUP_SIZE:
                melds.append(run)
            run = [card]
        if len(run) >= MIN_GROUP_SIZE:
            melds.append(run)

        by_rank = {c.rank: c for c in cards}
        seven = by_rank.get(SPECIAL_RANK)
        if seven is not None:
            if SPECIAL_RANK - 1 in by_rank:
                melds.append([by_rank[SPECIAL_RANK - 1], seven])
            if SPECIAL_RANK + 1 in by_rank:
                melds.append([seven, by_rank[SPECIAL_RANK + 1]])

    return melds


def find_potential_melds(hand: Sequence[Card]) -> list[list[Card]]:
    """Pairs that are one card away from a set or run."""
    potential = [list(cards) for cards in _group_by_rank(hand).values() if len(cards) == 2]

    for cards in _group_by_suit(hand).values():
        for low, high in zip(cards, cards[1:]):
            if high.rank - low.rank in (1, 2):
                potential.append([low, high])

    return potential


class HeuristicStrategy(Strategy):
    """Rule-of-thumb opponent with three difficulty tiers.

    Args:
        difficulty: 1 (easy, noisy), 2 (normal) or 3 (hard, deterministic
            apart from ties).
        seed: Seed for a private random source.
        rng: Random source to use instead of a seeded one.
    """

    def __init__(
        self,
        difficulty: int = EASY,
        seed: int | None = None,
        rng: random.Random | None = None,
    ):
        if difficulty not in (EASY, NORMAL, HARD):
            raise ValueError(f"difficulty must be 1, 2 or 3, got {difficulty}")
        self.difficulty = difficulty
        self._rng = rng or random.Random(seed)

    @property
    def name(self) -> str:
        return f"Heuristic(tier {self.difficulty})"

    def decide_draw_source(self, hand: Sequence[Card], top_discard: Card | None) -> bool:
        if top_discard is None:
            return False
        useful = can_claim_set(hand, top_discard) or can_claim_run(hand, top_discard)
        if not useful:
            return False
        if self.difficulty >= NORMAL:
            return True
        return self._rng.random() > DRAW_DISCARD_CHANCE

    def find_melds(self, hand: Sequence[Card]) -> list[list[Card]]:
        return find_melds(hand)

    def find_potential_melds(self, hand: Sequence[Card]) -> list[list[Card]]:
        return find_potential_melds(hand)

    def choose_meld(self, hand: Sequence[Card]) -> list[Card] | None:
        melds = self.find_melds(hand)
        if not melds:
            return None
        if self.difficulty == EASY and self._rng.random() >= PLAY_MELD_CHANCE:
            return None
        return max(melds, key=len)

    def score_discards(self, hand: Sequence[Card]) -> list[tuple[int, Card]]:
        """Score each card; higher means more willing to throw it away."""
        potential = self.find_potential_melds(hand)
        scored = []
        for card in hand:
            score = card.point_value
            score -= NEAR_MELD_PENALTY * sum(1 for group in potential if card in group)
            if self.difficulty >= NORMAL and card.is_special:
                score -= SEVEN_PENALTY
            scored.append((score, card))
        scored.sort(key=lambda item: item[0], reverse=True)
        return scored

    def select_card_to_discard(self, hand: Sequence[Card]) -> Card:
        if not hand:
            raise ValueError("Cannot discard from an empty hand")

        ranked = [card for _, card in self.score_discards(hand)]

        if self.difficulty == HARD:
            return ranked[0]
        if self.difficulty == NORMAL:
            return self._rng.choice(ranked[:NORMAL_DISCARD_POOL])
        if self._rng.random() < RANDOM_DISCARD_CHANCE:
            return self._rng.choice(list(hand))
        return self._rng.choice(ranked[: math.ceil(len(ranked) / 2)])

    def decide_pon(self, hand: Sequence[Card], discard: Card) -> bool:
        if not can_claim_set(hand, discard):
            return False
        return self._accept(PON_ACCEPT[self.difficulty])

    def decide_chi(self, hand: Sequence[Card], discard: Card) -> bool:
        if not can_claim_run(hand, discard):
            return False
        return self._accept(CHI_ACCEPT[self.difficulty])

    def _accept(self, probability: float) -> bool:
        if probability >= 1.0:
            return True
        return self._rng.random() < probability
