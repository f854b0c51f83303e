"""Tests for the heuristic strategy."""

import random

import pytest

from bridge_engine.actions import DiscardAction, DrawAction, MeldAction
from bridge_engine.cards import Card
from bridge_engine.player import Player
from bridge_engine.state import DrawSource, TurnPhase
from strategies.heuristic import (
    EASY,
    HARD,
    NORMAL,
    HeuristicStrategy,
    find_melds,
    find_potential_melds,
)


def cards(*ids: str) -> list[Card]:
    return [Card.from_id(i) for i in ids]


class PinnedRandom(random.Random):
    """Random source whose ``random()`` always returns the same value.

    ``choice()`` still varies, driven by the seeded bit generator.
    """

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value

    def getrandbits(self, k: int) -> int:
        # Defining this keeps choice() on getrandbits instead of the pinned random()
        return super().getrandbits(k)


# Distinct scores, no near-melds: ranked K, 9, 6, 4, 2
LOOSE_HAND = cards("K_S", "9_H", "6_D", "4_C", "2_S")


class TestFindMelds:
    def test_finds_every_kind(self):
        hand = cards("7_H", "6_H", "9_S", "9_D", "9_C", "2_C", "3_C", "4_C", "5_C")
        melds = find_melds(hand)

        assert cards("7_H") in melds
        assert cards("6_H", "7_H") in melds
        assert cards("9_S", "9_D", "9_C") in melds
        assert cards("2_C", "3_C", "4_C", "5_C") in melds

    def test_runs_are_maximal(self):
        melds = find_melds(cards("2_C", "3_C", "4_C", "5_C"))
        assert melds == [cards("2_C", "3_C", "4_C", "5_C")]

    def test_nothing_to_meld(self):
        assert find_melds(cards("2_C", "5_D", "9_S", "K_H")) == []

    def test_potential_melds(self):
        potential = find_potential_melds(cards("4_H", "6_H", "Q_S", "Q_D", "2_C"))
        assert cards("4_H", "6_H") in potential
        assert cards("Q_S", "Q_D") in potential
        assert len(potential) == 2


class TestDecisions:
    def test_invalid_difficulty(self):
        with pytest.raises(ValueError):
            HeuristicStrategy(difficulty=4)

    def test_name_includes_tier(self):
        assert HeuristicStrategy(difficulty=NORMAL).name == "Heuristic(tier 2)"

    def test_draw_source(self):
        hard = HeuristicStrategy(difficulty=HARD)
        hand = cards("5_D", "5_S", "K_C")
        assert hard.decide_draw_source(hand, Card.from_id("5_H"))
        assert not hard.decide_draw_source(hand, Card.from_id("9_H"))
        assert not hard.decide_draw_source(hand, None)

    def test_seven_pair_in_hand_makes_any_card_of_its_suit_worth_taking(self):
        hard = HeuristicStrategy(difficulty=HARD)
        assert hard.decide_draw_source(cards("6_C", "7_C", "2_D"), Card.from_id("K_C"))
        assert not hard.decide_draw_source(cards("6_C", "7_C", "2_D"), Card.from_id("K_H"))

    def test_easy_sometimes_ignores_a_useful_discard(self):
        hand = cards("5_D", "5_S", "K_C")
        discard = Card.from_id("5_H")
        assert not HeuristicStrategy(EASY, rng=PinnedRandom(0.4)).decide_draw_source(hand, discard)
        assert HeuristicStrategy(EASY, rng=PinnedRandom(0.6)).decide_draw_source(hand, discard)

    def test_choose_longest_meld(self):
        hand = cards("7_H", "2_C", "3_C", "4_C")
        assert HeuristicStrategy(HARD).choose_meld(hand) == cards("2_C", "3_C", "4_C")

    def test_easy_sometimes_holds_melds(self):
        hand = cards("7_H", "2_C")
        assert HeuristicStrategy(EASY, rng=PinnedRandom(0.9)).choose_meld(hand) is None
        assert HeuristicStrategy(EASY, rng=PinnedRandom(0.1)).choose_meld(hand) == cards("7_H")

    def test_hard_discards_highest_loose_card(self):
        hand = cards("K_S", "5_H", "6_H", "7_C")
        assert HeuristicStrategy(HARD).select_card_to_discard(hand) is Card.from_id("K_S")

    def test_normal_keeps_sevens(self):
        strategy = HeuristicStrategy(NORMAL)
        scored = dict((card, score) for score, card in strategy.score_discards(cards("7_C", "3_D")))
        assert scored[Card.from_id("7_C")] < scored[Card.from_id("3_D")]

    def test_normal_picks_among_the_top_three(self):
        strategy = HeuristicStrategy(NORMAL, seed=11)
        picks = {strategy.select_card_to_discard(LOOSE_HAND) for _ in range(200)}
        assert picks == set(cards("K_S", "9_H", "6_D"))

    def test_easy_usually_picks_from_the_top_half(self):
        strategy = HeuristicStrategy(EASY, rng=PinnedRandom(0.5))
        picks = {strategy.select_card_to_discard(LOOSE_HAND) for _ in range(200)}
        # ceil(5 / 2) cards are in the pool
        assert picks == set(cards("K_S", "9_H", "6_D"))

        even_hand = LOOSE_HAND[:4]
        picks = {strategy.select_card_to_discard(even_hand) for _ in range(200)}
        assert picks == set(cards("K_S", "9_H"))

    def test_easy_sometimes_discards_anything(self):
        strategy = HeuristicStrategy(EASY, rng=PinnedRandom(0.1))
        picks = {strategy.select_card_to_discard(LOOSE_HAND) for _ in range(200)}
        assert picks == set(LOOSE_HAND)

    def test_discard_always_from_hand(self):
        strategy = HeuristicStrategy(EASY, seed=3)
        hand = cards("2_C", "5_D", "9_S", "K_H", "7_S")
        for _ in range(50):
            assert strategy.select_card_to_discard(hand) in hand

    def test_empty_hand_cannot_discard(self):
        with pytest.raises(ValueError):
            HeuristicStrategy(HARD).select_card_to_discard([])

    def test_hard_always_claims(self):
        strategy = HeuristicStrategy(HARD)
        assert strategy.decide_pon(cards("5_D", "5_S"), Card.from_id("5_H"))
        assert strategy.decide_chi(cards("6_H", "7_H"), Card.from_id("5_H"))

    def test_never_claims_when_ineligible(self):
        strategy = HeuristicStrategy(HARD)
        assert not strategy.decide_pon(cards("5_D", "6_S"), Card.from_id("5_H"))
        assert not strategy.decide_chi(cards("6_D", "7_D"), Card.from_id("5_H"))

    @pytest.mark.parametrize(
        "value, pon, chi",
        [(0.3, True, True), (0.45, True, False), (0.6, False, False)],
    )
    def test_easy_claim_probabilities(self, value, pon, chi):
        strategy = HeuristicStrategy(EASY, rng=PinnedRandom(value))
        assert strategy.decide_pon(cards("5_D", "5_S"), Card.from_id("5_H")) is pon
        assert strategy.decide_chi(cards("6_H", "7_H"), Card.from_id("5_H")) is chi


class TestPlayTurn:
    def test_full_turn(self):
        player = Player("AI", is_automated=True, hand=cards("7_H", "2_C", "K_S"))
        actions = list(HeuristicStrategy(HARD).play_turn(player, None, TurnPhase.DRAW))

        assert actions == [
            DrawAction(DrawSource.STOCK),
            MeldAction(tuple(cards("7_H"))),
            DiscardAction(Card.from_id("K_S")),
        ]

    def test_turn_after_claim_only_discards(self):
        player = Player("AI", is_automated=True, hand=cards("7_H", "K_S"))
        actions = list(HeuristicStrategy(HARD).play_turn(player, None, TurnPhase.DISCARD))
        assert actions == [DiscardAction(Card.from_id("K_S"))]
