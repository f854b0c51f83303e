"""Tests for pon/chi claims on a discard."""

import random

import pytest

from bridge_engine.cards import Card
from bridge_engine.config import GameConfig
from bridge_engine.deck import Deck
from bridge_engine.engine import GameEngine
from bridge_engine.errors import PhaseViolationError
from bridge_engine.events import ClaimResolved, ClaimWindowOpened, MeldPlayed
from bridge_engine.player import Player
from bridge_engine.state import ClaimKind, GameStatus, TurnPhase
from bridge_engine.timers import ManualClaimTimer
from strategies.base import Strategy


def c(card_id: str) -> Card:
    return Card.from_id(card_id)


def cards(*ids: str) -> list[Card]:
    return [c(i) for i in ids]


class ScriptedStrategy(Strategy):
    """Claims whatever it is allowed to claim when told to; discards its first card."""

    def __init__(self, pon: bool = False, chi: bool = False):
        self.pon = pon
        self.chi = chi

    @property
    def name(self) -> str:
        return "Scripted"

    def decide_draw_source(self, hand, top_discard):
        return False

    def choose_meld(self, hand):
        return None

    def select_card_to_discard(self, hand):
        return hand[0]

    def decide_pon(self, hand, discard):
        return self.pon

    def decide_chi(self, hand, discard):
        return self.chi


def make_engine(hands, strategies=None, stock=("K_S",), discard=("2_D",)) -> GameEngine:
    """Start a game, then lay out the given hands with seat 0 to draw."""
    strategies = strategies or [None] * len(hands)
    players = [Player(f"P{i}", is_automated=s is not None) for i, s in enumerate(strategies)]
    config = GameConfig(player_count=len(hands), auto_play=False, claim_window_seconds=3.0)
    engine = GameEngine(players, strategies, config=config, rng=random.Random(1), timer=ManualClaimTimer())
    engine.start_game()
    for player, hand in zip(engine.players, hands):
        player.hand = cards(*hand)
    engine.stock = Deck(cards(*stock))
    engine.discard_pile = cards(*discard)
    return engine


def discard_from_seat_zero(engine: GameEngine, card_id: str) -> None:
    engine.draw_card("stock")
    assert engine.discard_card(c(card_id))


HANDS = [
    ["5_H", "8_C", "9_S"],  # discarder
    ["6_H", "7_H", "2_C"],  # next seat: chi with 5-6-7
    ["5_D", "5_S", "9_C"],  # pon
    ["3_H", "4_H", "10_C"],  # would make 3-4-5 but is not the next seat
]


class TestClaimWindow:
    def test_window_lists_eligible_seats(self):
        engine = make_engine(HANDS)
        events = []
        engine.add_listener(events.append)

        discard_from_seat_zero(engine, "5_H")

        assert engine.status == GameStatus.CLAIM_WINDOW
        assert engine.phase is None
        window = engine.claim_window
        assert window.card is c("5_H")
        assert window.pon_seats == (2,)
        assert window.chi_seat == 1
        assert engine.timer.active
        assert engine.timer.seconds == 3.0
        assert ClaimWindowOpened(
            card=c("5_H"), discarder_seat=0, pon_seats=(2,), chi_seat=1, seconds=3.0
        ) in events

    def test_chi_only_for_next_seat(self):
        engine = make_engine(HANDS)
        discard_from_seat_zero(engine, "5_H")

        assert engine.can_chi(1)
        assert not engine.can_chi(3)
        assert not engine.can_chi(2)
        assert engine.can_pon(2)
        assert not engine.can_pon(0)

    def test_no_window_without_eligible_seats(self):
        engine = make_engine(HANDS)
        discard_from_seat_zero(engine, "9_S")

        assert engine.claim_window is None
        assert engine.status == GameStatus.PLAYER_TURN
        assert engine.current_seat == 1
        assert engine.phase == TurnPhase.DRAW

    def test_seven_pair_in_hand_is_offered_chi_on_any_card_of_its_suit(self):
        engine = make_engine([["K_H", "2_C", "3_D"], ["6_H", "7_H", "9_S"]])
        discard_from_seat_zero(engine, "K_H")

        assert engine.status == GameStatus.CLAIM_WINDOW
        assert engine.claim_window.chi_seat == 1
        assert engine.claim_window.pon_seats == ()

        # The king cannot join 6-7, so taking the chi leaves it on the pile
        assert engine.resolve_claim(None, 1)

        assert engine.players[1].melds == []
        assert engine.players[1].hand == cards("6_H", "7_H", "9_S")
        assert engine.discard_pile[-1] is c("K_H")
        assert engine.current_seat == 1
        assert engine.phase == TurnPhase.DRAW


class TestResolveClaim:
    def test_pon_beats_chi(self):
        engine = make_engine(HANDS)
        discard_from_seat_zero(engine, "5_H")

        assert engine.resolve_claim(pon_seat=2, chi_seat=1)

        assert engine.players[2].melds == [cards("5_D", "5_S", "5_H")]
        assert engine.players[2].hand == cards("9_C")
        assert engine.players[1].hand == cards("6_H", "7_H", "2_C")
        assert c("5_H") not in engine.discard_pile
        assert engine.current_seat == 2
        assert engine.phase == TurnPhase.DISCARD
        assert engine.status == GameStatus.PLAYER_TURN
        assert not engine.timer.active

    def test_chi_claim(self):
        engine = make_engine(HANDS)
        events = []
        engine.add_listener(events.append)
        discard_from_seat_zero(engine, "5_H")

        assert engine.resolve_claim(pon_seat=None, chi_seat=1)

        assert engine.players[1].melds == [cards("5_H", "6_H", "7_H")]
        assert engine.current_seat == 1
        assert engine.phase == TurnPhase.DISCARD
        assert ClaimResolved(card=c("5_H"), claim=ClaimKind.CHI, seat=1) in events
        assert MeldPlayed(seat=1, cards=tuple(cards("5_H", "6_H", "7_H")), claim=ClaimKind.CHI) in events

    def test_claimant_must_discard_not_draw(self):
        engine = make_engine(HANDS)
        discard_from_seat_zero(engine, "5_H")
        engine.resolve_claim(pon_seat=2, chi_seat=None)

        with pytest.raises(PhaseViolationError):
            engine.draw_card("stock")
        assert engine.discard_card(c("9_C")) or engine.is_game_over

    def test_skip_passes_to_next_seat(self):
        engine = make_engine(HANDS)
        discard_from_seat_zero(engine, "5_H")

        assert engine.resolve_claim(None, None)

        assert engine.discard_pile[-1] is c("5_H")
        assert engine.current_seat == 1
        assert engine.phase == TurnPhase.DRAW

    def test_ineligible_claim_keeps_window_open(self):
        engine = make_engine(HANDS)
        discard_from_seat_zero(engine, "5_H")

        assert not engine.resolve_claim(pon_seat=3, chi_seat=None)
        assert not engine.resolve_claim(pon_seat=None, chi_seat=3)
        assert engine.status == GameStatus.CLAIM_WINDOW
        assert engine.timer.active

    def test_resolve_without_window(self):
        engine = make_engine(HANDS)
        with pytest.raises(PhaseViolationError):
            engine.resolve_claim(None, None)

    def test_seven_pair_chi(self):
        engine = make_engine([["7_D", "K_C", "Q_C"], ["8_D", "2_S", "3_S"]])
        discard_from_seat_zero(engine, "7_D")

        engine.resolve_claim(None, 1)

        assert engine.players[1].melds == [cards("7_D", "8_D")]

    def test_claim_that_empties_hand_wins(self):
        engine = make_engine([["5_H", "K_C", "Q_C"], ["6_H", "7_H"]])
        discard_from_seat_zero(engine, "5_H")

        engine.resolve_claim(None, 1)

        assert engine.status == GameStatus.GAME_OVER
        assert engine.winner == 1
        assert [s.points for s in engine.final_scores] == [0 + 10 + 10 + 10, 0]


class TestTimer:
    def test_expiry_is_no_claim(self):
        engine = make_engine(HANDS)
        events = []
        engine.add_listener(events.append)
        discard_from_seat_zero(engine, "5_H")

        assert engine.timer.expire()

        assert ClaimResolved(card=c("5_H"), claim=None, seat=None, timed_out=True) in events
        assert engine.current_seat == 1
        assert engine.phase == TurnPhase.DRAW
        assert engine.turn_number == 2

    def test_expiry_after_resolution_does_nothing(self):
        engine = make_engine(HANDS)
        discard_from_seat_zero(engine, "5_H")
        engine.resolve_claim(None, None)

        assert not engine.timer.expire()
        assert not engine.expire_claim_window()
        assert engine.current_seat == 1


class TestAutomatedClaims:
    def test_only_automated_claimants_resolve_immediately(self):
        engine = make_engine(
            HANDS[:3], strategies=[None, ScriptedStrategy(), ScriptedStrategy(pon=True)]
        )
        discard_from_seat_zero(engine, "5_H")

        assert engine.claim_window is None
        assert engine.current_seat == 2
        assert engine.status == GameStatus.AI_TURN
        assert engine.phase == TurnPhase.DISCARD
        assert engine.players[2].melds == [cards("5_D", "5_S", "5_H")]

        action = engine.step_automated()
        assert action is not None
        assert engine.discard_pile[-1] is c("9_C")

    def test_declined_automated_claims_pass_the_turn(self):
        engine = make_engine(HANDS[:3], strategies=[None, ScriptedStrategy(), ScriptedStrategy()])
        discard_from_seat_zero(engine, "5_H")

        assert engine.current_seat == 1
        assert engine.status == GameStatus.AI_TURN
        assert engine.phase == TurnPhase.DRAW

    def test_automated_pon_beats_manual_chi_on_timeout(self):
        engine = make_engine(HANDS[:3], strategies=[None, None, ScriptedStrategy(pon=True)])
        discard_from_seat_zero(engine, "5_H")

        assert engine.status == GameStatus.CLAIM_WINDOW
        assert engine.claim_window.chi_seat == 1
        assert engine.claim_window.decided_pon_seats == (2,)

        engine.timer.expire()

        assert engine.current_seat == 2
        assert engine.players[2].melds == [cards("5_D", "5_S", "5_H")]
        assert engine.players[1].melds == []

    def test_automated_pon_beats_manual_chi_choice(self):
        engine = make_engine(HANDS[:3], strategies=[None, None, ScriptedStrategy(pon=True)])
        discard_from_seat_zero(engine, "5_H")

        engine.resolve_claim(None, 1)

        assert engine.current_seat == 2
        assert engine.players[1].melds == []
