"""The Seven Bridge game engine.

The engine is the only mutator of match state. Every command runs to
completion before the next is accepted, validates fully before changing
anything, and emits a :class:`StateChanged` snapshot when it is done.

Turn cycle for the current seat::

    DRAW --draw_card--> MELD --play_meld/add_to_meld*--> discard_card
                                                            |
                              claim window (pon/chi) <------+
                                   |              |
                   claimant, DISCARD phase   next seat, DRAW phase

A discard that empties the hand ends the game before any claim window.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Iterable, Iterator, Sequence

from bridge_engine.actions import DiscardAction, DrawAction, MeldAction, TurnAction
from bridge_engine.cards import Card
from bridge_engine.config import GameConfig
from bridge_engine.deck import Deck
from bridge_engine.errors import (
    CardNotFoundError,
    EmptyDeckError,
    ExhaustionError,
    IllegalMoveError,
    InvalidSourceError,
    PhaseViolationError,
)
from bridge_engine.events import (
    AutomationStopped,
    CardDiscarded,
    CardDrawn,
    ClaimResolved,
    ClaimWindowOpened,
    GameEnded,
    GameEvent,
    Listener,
    MeldExtended,
    MeldPlayed,
    StateChanged,
)
from bridge_engine.melds import (
    can_claim_run,
    can_claim_set,
    can_extend_meld,
    find_claim_run,
    find_claim_set,
    is_valid_meld,
)
from bridge_engine.player import Player
from bridge_engine.state import (
    ClaimKind,
    ClaimWindow,
    DrawSource,
    GameSnapshot,
    GameStatus,
    LastDiscard,
    SeatScore,
    SeatSummary,
    TurnPhase,
)
from bridge_engine.timers import ClaimTimer, ManualClaimTimer

if TYPE_CHECKING:
    from strategies.base import Strategy

logger = logging.getLogger(__name__)

DECK_SIZE = 52
ACTING_STATUSES = (GameStatus.PLAYER_TURN, GameStatus.AI_TURN)
MELD_PHASES = (TurnPhase.MELD, TurnPhase.DISCARD)


class GameEngine:
    """Authoritative state machine for one match.

    Args:
        players: Seats in clockwise order.
        strategies: One entry per seat; a strategy for every automated seat
            and None for every manual one.
        config: Match settings. Only the turn and timing fields are read here;
            seat construction from a config is done by :meth:`from_config`.
        rng: Random source for shuffling.
        timer: Claim window timer. Defaults to a :class:`ManualClaimTimer`.
    """

    def __init__(
        self,
        players: Sequence[Player],
        strategies: Sequence[Strategy | None] | None = None,
        config: GameConfig | None = None,
        rng: random.Random | None = None,
        timer: ClaimTimer | None = None,
    ):
        if len(players) < 2:
            raise ValueError("At least two players are required")
        strategies = list(strategies) if strategies is not None else [None] * len(players)
        if len(strategies) != len(players):
            raise ValueError("Need exactly one strategy entry per player")
        for seat, (player, strategy) in enumerate(zip(players, strategies)):
            if player.is_automated != (strategy is not None):
                raise ValueError(
                    f"Seat {seat} ({player.name}): automated seats need a strategy "
                    "and manual seats must not have one"
                )

        self.config = config or GameConfig(player_count=len(players))
        if not 0 <= self.config.local_seat < len(players):
            raise ValueError(f"local_seat {self.config.local_seat} is not a seat")

        self.players: list[Player] = list(players)
        self._strategies: list[Strategy | None] = strategies
        self._rng = rng or random.Random()
        self._timer = timer or ManualClaimTimer()
        self._listeners: list[Listener] = []

        self._turn_plan: Iterator[TurnAction] | None = None
        self._driving = False
        self._clear_state()

    @classmethod
    def from_config(
        cls,
        config: GameConfig | None = None,
        seed: int | None = None,
        timer: ClaimTimer | None = None,
    ) -> GameEngine:
        """Seat one manual player at ``local_seat`` and AI opponents elsewhere."""
        from strategies.heuristic import HeuristicStrategy

        config = config or GameConfig()
        rng = random.Random(seed)
        players: list[Player] = []
        strategies: list[Strategy | None] = []
        ai_count = 0
        for seat in range(config.player_count):
            if seat == config.local_seat:
                players.append(Player(config.player_name))
                strategies.append(None)
            else:
                ai_count += 1
                players.append(Player(f"AI {ai_count}", is_automated=True))
                strategies.append(
                    HeuristicStrategy(config.ai_difficulty, rng=random.Random(rng.getrandbits(32)))
                )
        return cls(players, strategies, config=config, rng=rng, timer=timer)

    # ------------------------------------------------------------------
    # Read access

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def current_player(self) -> Player:
        return self.players[self.current_seat]

    @property
    def top_discard(self) -> Card | None:
        return self.discard_pile[-1] if self.discard_pile else None

    @property
    def stock_count(self) -> int:
        return self.stock.count()

    @property
    def is_game_over(self) -> bool:
        return self.status == GameStatus.GAME_OVER

    @property
    def timer(self) -> ClaimTimer:
        return self._timer

    def strategy_for(self, seat: int) -> Strategy | None:
        return self._strategies[seat]

    def next_seat(self, seat: int) -> int:
        return (seat + 1) % self.num_players

    def all_cards(self) -> list[Card]:
        """Every card in every container (stock, discard, hands, melds)."""
        cards = list(self.stock.cards) + list(self.discard_pile)
        for player in self.players:
            cards.extend(player.hand)
            cards.extend(player.melded_cards)
        return cards

    def can_pon(self, seat: int, discard: Card | None = None, discarder_seat: int | None = None) -> bool:
        """Whether ``seat`` may claim the discard for a set.

        Defaults to the most recent discard. The discarder can never claim.
        """
        discard, discarder_seat = self._claim_target(discard, discarder_seat)
        if discard is None or seat == discarder_seat:
            return False
        return can_claim_set(self.players[seat].hand, discard)

    def can_chi(self, seat: int, discard: Card | None = None, discarder_seat: int | None = None) -> bool:
        """Whether ``seat`` may claim the discard for a run.

        Only the seat immediately after the discarder may chi.
        """
        discard, discarder_seat = self._claim_target(discard, discarder_seat)
        if discard is None or discarder_seat is None:
            return False
        if seat != self.next_seat(discarder_seat):
            return False
        return can_claim_run(self.players[seat].hand, discard)

    def _claim_target(
        self, discard: Card | None, discarder_seat: int | None
    ) -> tuple[Card | None, int | None]:
        if discard is None and self.last_discard is not None:
            return self.last_discard.card, self.last_discard.discarder_seat
        return discard, discarder_seat

    def snapshot(self) -> GameSnapshot:
        local_seat = self.config.local_seat
        return GameSnapshot(
            status=self.status,
            phase=self.phase,
            current_seat=self.current_seat,
            turn_number=self.turn_number,
            stock_count=self.stock.count(),
            discard_pile=tuple(self.discard_pile),
            seats=tuple(
                SeatSummary(
                    seat=i,
                    name=p.name,
                    hand_size=len(p.hand),
                    melds=tuple(tuple(m) for m in p.melds),
                    is_automated=p.is_automated,
                )
                for i, p in enumerate(self.players)
            ),
            local_seat=local_seat,
            local_hand=tuple(self.players[local_seat].hand),
            last_discard=self.last_discard,
            claim_window=self.claim_window,
            winner=self.winner,
            scores=self.final_scores,
        )

    # ------------------------------------------------------------------
    # Notifications

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: GameEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener failed on {event.event_type.name}")

    def _after_command(self) -> None:
        """Notify, then let automated seats catch up when ``auto_play`` is on.

        The command that triggered this has already been applied, so a seat
        that fails while catching up is reported rather than raised.
        """
        self._emit(StateChanged(self.snapshot()))
        if not self.config.auto_play or self._driving:
            return
        try:
            self.run_automated()
        except IllegalMoveError as e:
            seat = self.current_seat
            logger.error(f"Automated play stopped at seat {seat} ({self.players[seat].name}): {e}")
            self._emit(AutomationStopped(seat=seat, reason=str(e)))

    # ------------------------------------------------------------------
    # Match lifecycle

    def _clear_state(self) -> None:
        self.stock = Deck(rng=self._rng)
        self.discard_pile: list[Card] = []
        self.status = GameStatus.WAITING
        self.phase: TurnPhase | None = None
        self.current_seat = 0
        self.turn_number = 0
        self.last_discard: LastDiscard | None = None
        self.claim_window: ClaimWindow | None = None
        self.winner: int | None = None
        self.final_scores: tuple[SeatScore, ...] = ()
        self._turn_plan = None

    def start_game(self) -> None:
        """Shuffle, deal and begin the first turn at seat 0."""
        if self.status != GameStatus.WAITING:
            raise PhaseViolationError(f"Cannot start a game in status {self.status.value}")

        self.status = GameStatus.DEALING
        self._emit(StateChanged(self.snapshot()))

        self.stock.shuffle()
        for _ in range(self.config.hand_size):
            for player in self.players:
                player.add_to_hand(self.stock.draw())
        for player in self.players:
            player.sort_hand()
        self.discard_pile.append(self.stock.draw())

        logger.info(
            f"Game started: {self.num_players} seats, {self.config.hand_size} cards each, "
            f"first discard {self.discard_pile[-1]}"
        )
        self.turn_number = 1
        self._begin_turn(0, TurnPhase.DRAW)
        self._after_command()

    def reset(self) -> None:
        """Return every card to a fresh stock and go back to WAITING.

        Player objects (names, automation flags) are kept.
        """
        self._timer.cancel()
        for player in self.players:
            player.clear()
        self._clear_state()
        logger.info("Game reset")
        self._after_command()

    def _begin_turn(self, seat: int, phase: TurnPhase) -> None:
        self.current_seat = seat
        self.phase = phase
        player = self.players[seat]
        strategy = self._strategies[seat]
        if strategy is not None:
            self.status = GameStatus.AI_TURN
            self._turn_plan = strategy.play_turn(player, self.top_discard, phase)
        else:
            self.status = GameStatus.PLAYER_TURN
            self._turn_plan = None
        logger.debug(f"Turn {self.turn_number}: seat {seat} ({player.name}) in {phase.value} phase")

    def _advance_turn(self, from_seat: int) -> None:
        self.turn_number += 1
        self._begin_turn(self.next_seat(from_seat), TurnPhase.DRAW)

    def _end_game(self, winner: int) -> None:
        self._timer.cancel()
        self._turn_plan = None
        self.claim_window = None
        self.status = GameStatus.GAME_OVER
        self.phase = None
        self.winner = winner
        self.final_scores = tuple(
            SeatScore(seat=i, name=p.name, points=p.calculate_hand_points(), is_winner=i == winner)
            for i, p in enumerate(self.players)
        )
        logger.info(
            f"Game over: seat {winner} ({self.players[winner].name}) went out; "
            + ", ".join(f"{s.name}={s.points}" for s in self.final_scores)
        )
        self._emit(GameEnded(winner=winner, scores=self.final_scores))

    # ------------------------------------------------------------------
    # Turn commands

    def _require_turn(self, phases: Iterable[TurnPhase], command: str) -> None:
        phases = tuple(phases)
        if self.status not in ACTING_STATUSES or self.phase not in phases:
            phase = self.phase.value if self.phase else None
            raise PhaseViolationError(
                f"{command} not allowed in status {self.status.value}, phase {phase}"
            )

    def draw_card(self, source: DrawSource | str) -> Card:
        """Draw for the current seat from the stock or the discard pile.

        Raises:
            PhaseViolationError: Outside the draw phase, or drawing from an
                empty discard pile.
            InvalidSourceError: If ``source`` is not a known draw source.
            ExhaustionError: If the stock is empty and cannot be refilled.
        """
        self._require_turn((TurnPhase.DRAW,), "draw_card")
        try:
            source = DrawSource(source)
        except ValueError:
            raise InvalidSourceError(f"Unknown draw source: {source!r}") from None

        if source == DrawSource.DISCARD:
            if not self.discard_pile:
                raise PhaseViolationError("The discard pile is empty")
            card = self.discard_pile.pop()
        else:
            card = self._draw_from_stock()

        player = self.current_player
        player.add_to_hand(card)
        player.sort_hand()
        self.phase = TurnPhase.MELD
        logger.debug(f"Seat {self.current_seat} drew {card} from {source.value}")

        self._emit(CardDrawn(seat=self.current_seat, source=source, card=card))
        self._after_command()
        return card

    def _draw_from_stock(self) -> Card:
        try:
            return self.stock.draw()
        except EmptyDeckError:
            pass

        if len(self.discard_pile) <= 1:
            raise ExhaustionError("Stock and discard pile are both exhausted")

        top = self.discard_pile.pop()
        self.stock.add_cards(self.discard_pile)
        self.discard_pile = [top]
        self.stock.shuffle()
        logger.info(f"Stock recycled from discard pile: {self.stock.count()} cards")
        return self.stock.draw()

    def play_meld(self, cards: Iterable[Card]) -> bool:
        """Lay down a new meld from the current seat's hand.

        Returns:
            False (with no change) if the group is not a meld or any card is
            not in hand.
        """
        self._require_turn(MELD_PHASES, "play_meld")
        cards = list(cards)
        player = self.current_player

        if not is_valid_meld(cards):
            logger.debug(f"Rejected meld {' '.join(map(str, cards))}: not a valid group")
            return False
        try:
            removed = player.remove_cards_from_hand(cards)
        except CardNotFoundError as e:
            logger.debug(f"Rejected meld: {e}")
            return False

        player.add_meld(removed)
        logger.debug(f"Seat {self.current_seat} melded {' '.join(map(str, removed))}")
        self._emit(MeldPlayed(seat=self.current_seat, cards=tuple(removed)))
        self._check_win()
        self._after_command()
        return True

    def add_to_meld(self, meld_index: int, owner_seat: int, card: Card) -> bool:
        """Extend any seat's meld with a card from the current seat's hand.

        Returns:
            False (with no change) if the meld does not exist, the card is
            not in hand, or the card does not extend the meld.
        """
        self._require_turn(MELD_PHASES, "add_to_meld")
        player = self.current_player

        if not 0 <= owner_seat < self.num_players:
            return False
        owner = self.players[owner_seat]
        if not 0 <= meld_index < len(owner.melds):
            return False
        if not player.holds(card):
            return False
        if not can_extend_meld(owner.melds[meld_index], card):
            return False

        player.remove_from_hand(card)
        owner.add_card_to_meld(meld_index, card)
        logger.debug(f"Seat {self.current_seat} added {card} to seat {owner_seat} meld {meld_index}")
        self._emit(
            MeldExtended(
                seat=self.current_seat, owner_seat=owner_seat, meld_index=meld_index, card=card
            )
        )
        self._check_win()
        self._after_command()
        return True

    def discard_card(self, card: Card) -> bool:
        """Discard to end the current seat's turn.

        Returns:
            False (with no change) if the card is not in hand.
        """
        self._require_turn(MELD_PHASES, "discard_card")
        player = self.current_player
        if not player.holds(card):
            return False

        seat = self.current_seat
        player.remove_from_hand(card)
        self.discard_pile.append(card)
        self.last_discard = LastDiscard(card=card, discarder_seat=seat)
        self._turn_plan = None
        logger.debug(f"Seat {seat} discarded {card}")
        self._emit(CardDiscarded(seat=seat, card=card))

        if player.has_empty_hand():
            self._end_game(seat)
        else:
            self._open_claim_window(card, seat)
        self._after_command()
        return True

    def _check_win(self) -> None:
        if self.current_player.has_empty_hand():
            self._end_game(self.current_seat)

    # ------------------------------------------------------------------
    # Claim window

    def _open_claim_window(self, card: Card, discarder: int) -> None:
        pon_seats: list[int] = []
        decided_pon: list[int] = []
        chi_seat: int | None = None
        decided_chi: int | None = None

        for offset in range(1, self.num_players):
            seat = (discarder + offset) % self.num_players
            strategy = self._strategies[seat]
            hand = self.players[seat].hand

            if self.can_pon(seat, card, discarder):
                if strategy is None:
                    pon_seats.append(seat)
                elif strategy.decide_pon(hand, card):
                    decided_pon.append(seat)

            if self.can_chi(seat, card, discarder):
                if strategy is None:
                    chi_seat = seat
                elif strategy.decide_chi(hand, card):
                    decided_chi = seat

        window = ClaimWindow(
            card=card,
            discarder_seat=discarder,
            pon_seats=tuple(pon_seats),
            chi_seat=chi_seat,
            decided_pon_seats=tuple(decided_pon),
            decided_chi_seat=decided_chi,
        )

        if window.awaits_manual_choice:
            self.claim_window = window
            self.status = GameStatus.CLAIM_WINDOW
            self.phase = None
            self._turn_plan = None
            seconds = self.config.claim_window_seconds
            logger.info(
                f"Claim window open for {card}: pon={list(window.pon_seats)}, "
                f"chi={window.chi_seat}, {seconds}s"
            )
            self._emit(
                ClaimWindowOpened(
                    card=card,
                    discarder_seat=discarder,
                    pon_seats=window.pon_seats,
                    chi_seat=window.chi_seat,
                    seconds=seconds,
                )
            )
            self._timer.start(seconds, self.expire_claim_window)
        elif decided_pon or decided_chi is not None:
            self._resolve_window(window, None, None, timed_out=False)
        else:
            self._advance_turn(discarder)

    def resolve_claim(self, pon_seat: int | None, chi_seat: int | None) -> bool:
        """Submit the manual decision for the open claim window.

        ``(None, None)`` is an explicit skip. Claims already decided by
        automated seats still count; pon wins over chi.

        Returns:
            False (window stays open) if a named seat is not offered that claim.

        Raises:
            PhaseViolationError: If no claim window is open.
        """
        window = self.claim_window
        if self.status != GameStatus.CLAIM_WINDOW or window is None:
            raise PhaseViolationError("No claim window is open")
        if pon_seat is not None and pon_seat not in window.pon_seats:
            logger.warning(f"Seat {pon_seat} may not pon {window.card}")
            return False
        if chi_seat is not None and chi_seat != window.chi_seat:
            logger.warning(f"Seat {chi_seat} may not chi {window.card}")
            return False

        self._timer.cancel()
        self._resolve_window(window, pon_seat, chi_seat, timed_out=False)
        self._after_command()
        return True

    def expire_claim_window(self) -> bool:
        """Timer callback: close the window with no manual claim.

        Returns False if the window was already resolved.
        """
        window = self.claim_window
        if self.status != GameStatus.CLAIM_WINDOW or window is None:
            return False
        self._timer.cancel()
        logger.info(f"Claim window for {window.card} timed out")
        self._resolve_window(window, None, None, timed_out=True)
        self._after_command()
        return True

    def _resolve_window(
        self,
        window: ClaimWindow,
        pon_seat: int | None,
        chi_seat: int | None,
        timed_out: bool,
    ) -> None:
        self.claim_window = None
        discarder = window.discarder_seat

        pon_candidates = list(window.decided_pon_seats)
        if pon_seat is not None:
            pon_candidates.append(pon_seat)
        if chi_seat is None:
            chi_seat = window.decided_chi_seat

        if pon_candidates:
            # Nearest seat after the discarder wins when several pon
            claimant = min(pon_candidates, key=lambda s: (s - discarder) % self.num_players)
            if self._execute_claim(ClaimKind.PON, claimant, window, timed_out):
                return
        elif chi_seat is not None:
            if self._execute_claim(ClaimKind.CHI, chi_seat, window, timed_out):
                return

        self._emit(ClaimResolved(card=window.card, claim=None, seat=None, timed_out=timed_out))
        logger.debug(f"No claim on {window.card}")
        self._advance_turn(discarder)

    def _execute_claim(
        self, kind: ClaimKind, seat: int, window: ClaimWindow, timed_out: bool
    ) -> bool:
        player = self.players[seat]
        card = window.card
        if self.top_discard is not card:
            logger.error(f"Claim on {card} but top discard is {self.top_discard}")
            return False

        if kind == ClaimKind.PON:
            used = find_claim_set(player.hand, card)
        else:
            used = find_claim_run(player.hand, card)
        if used is None:
            logger.info(f"Seat {seat} has no meld to {kind.value} {card} with")
            return False

        self.discard_pile.pop()
        removed = player.remove_cards_from_hand(used)
        if kind == ClaimKind.PON:
            meld = [*removed, card]
        else:
            meld = sorted([*removed, card], key=lambda c: c.rank)
        player.add_meld(meld)
        self.last_discard = None

        logger.info(f"Seat {seat} ({player.name}) claimed {card} by {kind.value}")
        self._emit(ClaimResolved(card=card, claim=kind, seat=seat, timed_out=timed_out))
        self._emit(MeldPlayed(seat=seat, cards=tuple(meld), claim=kind))

        if player.has_empty_hand():
            self.current_seat = seat
            self._end_game(seat)
            return True

        self.turn_number += 1
        self._begin_turn(seat, TurnPhase.DISCARD)
        return True

    # ------------------------------------------------------------------
    # Automated seats

    def step_automated(self) -> TurnAction | None:
        """Perform the next step of the current automated seat's turn.

        Returns the action taken, or None when no automated seat is acting.
        """
        plan = self._turn_plan
        if self.status != GameStatus.AI_TURN or plan is None:
            return None
        try:
            action = next(plan)
        except StopIteration:
            raise RuntimeError(
                f"{self._strategies[self.current_seat].name} ended its turn without discarding"
            ) from None

        driving, self._driving = self._driving, True
        try:
            self._apply(action)
        finally:
            self._driving = driving
        return action

    def run_automated(self) -> int:
        """Run automated steps until a manual seat, a claim window or game over.

        Returns the number of steps taken.
        """
        if self._driving:
            return 0
        steps = 0
        self._driving = True
        try:
            while self.step_automated() is not None:
                steps += 1
        finally:
            self._driving = False
        return steps

    def _apply(self, action: TurnAction) -> None:
        seat = self.current_seat
        logger.debug(f"Seat {seat} ({self.players[seat].name}): {action}")
        match action:
            case DrawAction(source=source):
                self.draw_card(source)
            case MeldAction(cards=cards):
                if not self.play_meld(cards):
                    logger.warning(f"Seat {seat} proposed an invalid meld: {action}")
            case DiscardAction(card=card):
                if not self.discard_card(card):
                    raise RuntimeError(f"Seat {seat} tried to discard {card}, which it does not hold")
            case _:
                raise TypeError(f"Unknown action: {action!r}")
