"""Game API routes."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from bridge_engine.cards import Card
from bridge_engine.config import MAX_PLAYERS, MIN_PLAYERS, GameConfig
from bridge_engine.errors import IllegalMoveError
from web.api.session_manager import TableSession, session_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["games"])


# Request models
class CreateGameRequest(BaseModel):
    """Request to create a new table. Unset fields fall back to the environment."""

    player_name: str | None = Field(None, description="Name of the human seat")
    player_count: int | None = Field(None, ge=MIN_PLAYERS, le=MAX_PLAYERS)
    ai_difficulty: int | None = Field(None, ge=1, le=3)
    claim_window_seconds: float | None = Field(None, ge=0)
    ai_delay_scale: float | None = Field(None, ge=0, description="Multiplier for AI pacing")
    seed: int | None = Field(None, description="Random seed for reproducibility")


class DrawRequest(BaseModel):
    source: str = Field(..., description="'stock' or 'discard'")


class MeldRequest(BaseModel):
    cards: list[str] = Field(..., min_length=1, description="Card ids, e.g. ['7_H']")


class ExtendMeldRequest(BaseModel):
    owner_seat: int
    meld_index: int
    card: str


class DiscardRequest(BaseModel):
    card: str


class ClaimRequest(BaseModel):
    """Claim decision; both null means skip."""

    pon_seat: int | None = None
    chi_seat: int | None = None


def build_config(request: CreateGameRequest) -> GameConfig:
    config = GameConfig.from_env()
    overrides = {
        key: value
        for key, value in {
            "player_name": request.player_name,
            "player_count": request.player_count,
            "ai_difficulty": request.ai_difficulty,
            "claim_window_seconds": request.claim_window_seconds,
        }.items()
        if value is not None
    }
    if request.ai_delay_scale is not None:
        overrides["step_delays"] = config.step_delays.scaled(request.ai_delay_scale)
    return config.with_overrides(**overrides)


def _get_session(game_id: str) -> TableSession:
    session = session_manager.get_session(game_id)
    if not session:
        raise HTTPException(status_code=404, detail="Game not found")
    return session


def _parse_card(card_id: str) -> Card:
    try:
        return Card.from_id(card_id)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid card id: {card_id}") from None


def _not_allowed(
    session: TableSession, kind: str, pon_seat: int | None = None, chi_seat: int | None = None
) -> str | None:
    """Why the human may not issue ``kind`` right now, or None if they may."""
    if kind == "claim":
        local = session.config.local_seat
        if any(seat not in (None, local) for seat in (pon_seat, chi_seat)):
            return "You can only claim for your own seat"
        return None
    if kind != "reset" and not session.is_human_turn:
        return "Not your turn"
    return None


async def _run_command(
    session: TableSession,
    command: Callable[[], object],
    rejected: str,
    kind: str = "turn",
    **seats: int | None,
) -> dict:
    """Apply a human command, then let the AI seats catch up."""
    async with session.lock:
        reason = _not_allowed(session, kind, **seats)
        if reason:
            raise HTTPException(status_code=400, detail=reason)
        try:
            result = command()
        except IllegalMoveError as e:
            raise HTTPException(status_code=400, detail=str(e)) from None
    if result is False:
        raise HTTPException(status_code=400, detail=rejected)

    await session_manager.run_ai_turns(session)
    return {"state": session.to_client_state()}


# REST Endpoints


@router.get("/config")
async def get_default_config():
    """Defaults used for new tables."""
    config = GameConfig.from_env()
    return {
        "player_name": config.player_name,
        "player_count": config.player_count,
        "ai_difficulty": config.ai_difficulty,
        "claim_window_seconds": config.claim_window_seconds,
        "min_players": MIN_PLAYERS,
        "max_players": MAX_PLAYERS,
    }


@router.post("/games")
async def create_game(request: CreateGameRequest):
    """Create a table, deal, and run AI seats up to the human's first decision."""
    try:
        config = build_config(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session = session_manager.create_session(config, seed=request.seed)
    await session_manager.run_ai_turns(session)

    return {"game_id": session.id, "state": session.to_client_state()}


@router.get("/games")
async def list_games():
    """List all active tables."""
    return session_manager.list_sessions()


@router.get("/games/{game_id}")
async def get_game(game_id: str):
    """Get current state of a table."""
    session = _get_session(game_id)
    return {"state": session.to_client_state(), "history": list(session.history)}


@router.post("/games/{game_id}/draw")
async def draw_card(game_id: str, request: DrawRequest):
    session = _get_session(game_id)
    return await _run_command(
        session, lambda: session.engine.draw_card(request.source), "Draw rejected"
    )


@router.post("/games/{game_id}/meld")
async def play_meld(game_id: str, request: MeldRequest):
    session = _get_session(game_id)
    cards = [_parse_card(c) for c in request.cards]
    return await _run_command(session, lambda: session.engine.play_meld(cards), "Not a valid meld")


@router.post("/games/{game_id}/extend")
async def add_to_meld(game_id: str, request: ExtendMeldRequest):
    session = _get_session(game_id)
    card = _parse_card(request.card)
    return await _run_command(
        session,
        lambda: session.engine.add_to_meld(request.meld_index, request.owner_seat, card),
        "Card does not extend that meld",
    )


@router.post("/games/{game_id}/discard")
async def discard_card(game_id: str, request: DiscardRequest):
    session = _get_session(game_id)
    card = _parse_card(request.card)
    return await _run_command(session, lambda: session.engine.discard_card(card), "Card not in hand")


@router.post("/games/{game_id}/claim")
async def resolve_claim(game_id: str, request: ClaimRequest):
    """Submit the human's pon/chi decision for the open claim window."""
    session = _get_session(game_id)
    return await _run_command(
        session,
        lambda: session.engine.resolve_claim(request.pon_seat, request.chi_seat),
        "That claim is not available",
        kind="claim",
        pon_seat=request.pon_seat,
        chi_seat=request.chi_seat,
    )


@router.post("/games/{game_id}/reset")
async def reset_game(game_id: str):
    """Collect all cards and deal a new game at the same table."""
    session = _get_session(game_id)

    def restart():
        session.engine.reset()
        session.history.clear()
        session.engine.start_game()

    return await _run_command(session, restart, "Reset failed", kind="reset")


@router.delete("/games/{game_id}")
async def delete_game(game_id: str):
    """Delete a table."""
    if session_manager.delete_session(game_id):
        return {"deleted": True}
    raise HTTPException(status_code=404, detail="Game not found")


# WebSocket endpoint for real-time play


class ConnectionManager:
    """Manages WebSocket connections for tables."""

    def __init__(self):
        self.connections: dict[str, list[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, game_id: str):
        await websocket.accept()
        self.connections.setdefault(game_id, []).append(websocket)

    def disconnect(self, websocket: WebSocket, game_id: str):
        if game_id in self.connections:
            if websocket in self.connections[game_id]:
                self.connections[game_id].remove(websocket)
            if not self.connections[game_id]:
                del self.connections[game_id]


ws_manager = ConnectionManager()


def _ws_command(session: TableSession, data: dict) -> Callable[[], object] | None:
    """Map a client message to an engine command, or None if unknown."""
    engine = session.engine
    match data.get("type", ""):
        case "draw":
            return lambda: engine.draw_card(data.get("source", ""))
        case "meld":
            cards = [Card.from_id(c) for c in data.get("cards", [])]
            return lambda: engine.play_meld(cards)
        case "extend":
            card = Card.from_id(data.get("card", ""))
            try:
                meld_index = int(data.get("meld_index", -1))
                owner_seat = int(data.get("owner_seat", -1))
            except TypeError:
                raise ValueError("meld_index and owner_seat must be integers") from None
            return lambda: engine.add_to_meld(meld_index, owner_seat, card)
        case "discard":
            card = Card.from_id(data.get("card", ""))
            return lambda: engine.discard_card(card)
        case "claim":
            return lambda: engine.resolve_claim(data.get("pon_seat"), data.get("chi_seat"))
    return None


@router.websocket("/ws/game/{game_id}")
async def game_websocket(websocket: WebSocket, game_id: str):
    """WebSocket endpoint for real-time table updates.

    Protocol:
    Server -> Client messages:
        - game_state: Full state (sent on connect and on get_state)
        - state_changed, card_drawn, meld_played, meld_extended,
          card_discarded, claim_window, claim_resolved, game_over: engine events
        - error: Error message

    Client -> Server messages:
        - draw: {source}
        - meld: {cards: [card ids]}
        - extend: {owner_seat, meld_index, card}
        - discard: {card}
        - claim: {pon_seat, chi_seat}
        - get_state
    """
    session = session_manager.get_session(game_id)
    if not session:
        logger.warning(f"WebSocket: game not found: {game_id}")
        await websocket.close(code=4004, reason="Game not found")
        return

    await ws_manager.connect(websocket, game_id)
    logger.info(f"WebSocket connected: game_id={game_id}")

    event_queue: asyncio.Queue = asyncio.Queue()
    session.add_listener(event_queue.put_nowait)

    try:
        await websocket.send_json({"type": "game_state", "state": session.to_client_state()})

        async def forward_events():
            while True:
                event = await event_queue.get()
                await websocket.send_json(event)

        event_task = asyncio.create_task(forward_events())

        try:
            while True:
                data = await websocket.receive_json()
                msg_type = data.get("type", "")

                if msg_type == "get_state":
                    await websocket.send_json(
                        {"type": "game_state", "state": session.to_client_state()}
                    )
                    continue

                try:
                    command = _ws_command(session, data)
                except ValueError as e:
                    await websocket.send_json({"type": "error", "message": str(e)})
                    continue
                if command is None:
                    await websocket.send_json(
                        {"type": "error", "message": f"Unknown message type: {msg_type}"}
                    )
                    continue

                result = None
                async with session.lock:
                    reason = _not_allowed(
                        session,
                        "claim" if msg_type == "claim" else "turn",
                        data.get("pon_seat"),
                        data.get("chi_seat"),
                    )
                    if reason is None:
                        try:
                            result = command()
                        except IllegalMoveError as e:
                            reason = str(e)
                if reason is not None:
                    await websocket.send_json({"type": "error", "message": reason})
                    continue
                if result is False:
                    await websocket.send_json(
                        {"type": "error", "message": f"{msg_type} rejected"}
                    )
                    continue

                await session_manager.run_ai_turns(session)

        finally:
            event_task.cancel()
            try:
                await event_task
            except asyncio.CancelledError:
                pass

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: game_id={game_id}")
    finally:
        session.remove_listener(event_queue.put_nowait)
        ws_manager.disconnect(websocket, game_id)
