"""Table session management for the web API."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable

from bridge_engine.cards import Card
from bridge_engine.config import GameConfig
from bridge_engine.engine import GameEngine
from bridge_engine.errors import ExhaustionError
from bridge_engine.events import (
    AutomationStopped,
    CardDiscarded,
    CardDrawn,
    ClaimResolved,
    ClaimWindowOpened,
    GameEnded,
    GameEvent,
    MeldExtended,
    MeldPlayed,
    StateChanged,
)
from bridge_engine.state import GameSnapshot, GameStatus, TurnPhase
from bridge_engine.timers import AsyncioClaimTimer

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 500  # Most recent events kept per table

if TYPE_CHECKING:
    from bridge_engine.actions import TurnAction


@dataclass
class TableSession:
    """One engine, its claim timer, and the clients watching it."""

    id: str
    engine: GameEngine
    config: GameConfig
    seed: int | None
    created_at: datetime
    history: deque[dict] = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    _listeners: list[Callable[[dict], None]] = field(default_factory=list)
    _driving: bool = False
    _ai_task: asyncio.Task | None = None

    def __post_init__(self):
        self.engine.add_listener(self._on_engine_event)

    @property
    def snapshot(self) -> GameSnapshot:
        return self.engine.snapshot()

    @property
    def is_human_turn(self) -> bool:
        engine = self.engine
        return engine.status == GameStatus.PLAYER_TURN and engine.current_seat == self.config.local_seat

    def add_listener(self, callback: Callable[[dict], None]) -> None:
        """Add a listener for client messages."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[dict], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify_listeners(self, message: dict) -> None:
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception(f"Session {self.id}: listener failed on {message.get('type')}")

    def _on_engine_event(self, event: GameEvent) -> None:
        message = event_to_dict(event)
        if not isinstance(event, StateChanged):
            self.history.append(message)
        self._notify_listeners(message)

        # Claim timeouts arrive from the event loop, outside any request
        if (
            isinstance(event, StateChanged)
            and event.snapshot.status == GameStatus.AI_TURN
            and not self._driving
        ):
            self._schedule_ai_turns()

    def _schedule_ai_turns(self) -> None:
        if self._ai_task is not None and not self._ai_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._ai_task = loop.create_task(run_ai_turns(self))

    def to_client_state(self) -> dict:
        return {
            "game_id": self.id,
            "is_human_turn": self.is_human_turn,
            **snapshot_to_dict(self.engine.snapshot()),
        }


def card_to_dict(card: Card) -> dict:
    """Convert a Card to a dictionary."""
    return {
        "id": card.id,
        "rank": int(card.rank),
        "rank_symbol": card.rank.symbol,
        "suit": int(card.suit),
        "suit_symbol": card.suit.symbol,
        "suit_name": card.suit.name,
        "display": str(card),
        "point_value": card.point_value,
        "is_special": card.is_special,
    }


def _cards(cards) -> list[dict]:
    return [card_to_dict(c) for c in cards]


def snapshot_to_dict(snapshot: GameSnapshot) -> dict:
    """Convert a snapshot to client-friendly format (local hand only)."""
    window = snapshot.claim_window
    return {
        "status": snapshot.status.value,
        "phase": snapshot.phase.value if snapshot.phase else None,
        "current_seat": snapshot.current_seat,
        "turn_number": snapshot.turn_number,
        "stock_count": snapshot.stock_count,
        "discard_pile": _cards(snapshot.discard_pile),
        "top_discard": card_to_dict(snapshot.top_discard) if snapshot.top_discard else None,
        "local_seat": snapshot.local_seat,
        "hand": _cards(snapshot.local_hand),
        "seats": [
            {
                "seat": s.seat,
                "name": s.name,
                "hand_count": s.hand_size,
                "melds": [_cards(m) for m in s.melds],
                "is_ai": s.is_automated,
            }
            for s in snapshot.seats
        ],
        "last_discard": (
            {
                "card": card_to_dict(snapshot.last_discard.card),
                "discarder_seat": snapshot.last_discard.discarder_seat,
            }
            if snapshot.last_discard
            else None
        ),
        "claim_window": (
            {
                "card": card_to_dict(window.card),
                "discarder_seat": window.discarder_seat,
                "pon_seats": list(window.pon_seats),
                "chi_seat": window.chi_seat,
            }
            if window
            else None
        ),
        "winner": snapshot.winner,
        "scores": [
            {"seat": s.seat, "name": s.name, "points": s.points, "is_winner": s.is_winner}
            for s in snapshot.scores
        ],
    }


def event_to_dict(event: GameEvent) -> dict:
    """Convert an engine event to a WebSocket message."""
    match event:
        case StateChanged(snapshot=snapshot):
            return {"type": "state_changed", "state": snapshot_to_dict(snapshot)}
        case CardDrawn(seat=seat, source=source):
            # Only the source is public; the card itself goes out in the local hand
            return {"type": "card_drawn", "seat": seat, "source": source.value}
        case MeldPlayed(seat=seat, cards=cards, claim=claim):
            return {
                "type": "meld_played",
                "seat": seat,
                "cards": _cards(cards),
                "claim": claim.value if claim else None,
            }
        case MeldExtended(seat=seat, owner_seat=owner, meld_index=index, card=card):
            return {
                "type": "meld_extended",
                "seat": seat,
                "owner_seat": owner,
                "meld_index": index,
                "card": card_to_dict(card),
            }
        case CardDiscarded(seat=seat, card=card):
            return {"type": "card_discarded", "seat": seat, "card": card_to_dict(card)}
        case ClaimWindowOpened(card=card, discarder_seat=discarder, pon_seats=pon, chi_seat=chi, seconds=seconds):
            return {
                "type": "claim_window",
                "card": card_to_dict(card),
                "discarder_seat": discarder,
                "pon_seats": list(pon),
                "chi_seat": chi,
                "seconds": seconds,
            }
        case ClaimResolved(card=card, claim=claim, seat=seat, timed_out=timed_out):
            return {
                "type": "claim_resolved",
                "card": card_to_dict(card),
                "claim": claim.value if claim else None,
                "seat": seat,
                "timed_out": timed_out,
            }
        case GameEnded(winner=winner, scores=scores):
            return {
                "type": "game_over",
                "winner": winner,
                "scores": [
                    {"seat": s.seat, "name": s.name, "points": s.points, "is_winner": s.is_winner}
                    for s in scores
                ],
            }
        case AutomationStopped(seat=seat, reason=reason):
            return {"type": "automation_stopped", "seat": seat, "message": reason}
    raise TypeError(f"Unknown event: {event!r}")


def _step_delay(session: TableSession) -> float:
    delays = session.config.step_delays
    match session.engine.phase:
        case TurnPhase.DRAW:
            return delays.draw
        case TurnPhase.MELD:
            return delays.meld
        case _:
            return delays.discard


async def run_ai_turns(session: TableSession) -> list[TurnAction]:
    """Step automated seats, pausing before each step, until a human must act.

    Returns the actions taken. Does nothing if another driver is running.
    """
    if session._driving:
        return []
    session._driving = True
    actions = []
    try:
        while session.engine.status == GameStatus.AI_TURN:
            delay = _step_delay(session)
            if delay > 0:
                await asyncio.sleep(delay)
            async with session.lock:
                try:
                    action = session.engine.step_automated()
                except ExhaustionError as e:
                    logger.warning(f"Session {session.id}: {e}")
                    session._notify_listeners({"type": "error", "message": str(e)})
                    break
            if action is None:
                break
            logger.debug(f"Session {session.id}: {action}")
            actions.append(action)
    finally:
        session._driving = False
    return actions


class TableSessionManager:
    """Manages all active table sessions."""

    def __init__(self):
        self._sessions: dict[str, TableSession] = {}

    def create_session(self, config: GameConfig, seed: int | None = None) -> TableSession:
        """Create a session and deal. Must be called from the event loop."""
        session_id = str(uuid.uuid4())
        engine = GameEngine.from_config(
            config.with_overrides(auto_play=False),
            seed=seed,
            timer=AsyncioClaimTimer(),
        )
        session = TableSession(
            id=session_id,
            engine=engine,
            config=config,
            seed=seed,
            created_at=datetime.now(),
        )
        self._sessions[session_id] = session
        session._driving = True
        try:
            engine.start_game()
        finally:
            session._driving = False
        logger.info(
            f"Created session {session_id}: {config.player_count} seats, "
            f"difficulty {config.ai_difficulty}, seed={seed}"
        )
        return session

    def get_session(self, session_id: str) -> TableSession | None:
        return self._sessions.get(session_id)

    def delete_session(self, session_id: str) -> bool:
        """Delete a session, stopping its timer and AI task."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.engine.timer.cancel()
        if session._ai_task is not None:
            session._ai_task.cancel()
        return True

    def list_sessions(self) -> list[dict[str, Any]]:
        return [
            {
                "id": s.id,
                "created_at": s.created_at.isoformat(),
                "status": s.engine.status.value,
                "turn_number": s.engine.turn_number,
                "winner": s.engine.winner,
                "players": [p.name for p in s.engine.players],
            }
            for s in self._sessions.values()
        ]

    async def run_ai_turns(self, session: TableSession) -> list[TurnAction]:
        return await run_ai_turns(session)


# Global session manager instance
session_manager = TableSessionManager()
