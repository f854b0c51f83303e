"""Seven Bridge card game engine."""

from bridge_engine.cards import Card, Rank, Suit, SPECIAL_RANK, create_deck
from bridge_engine.config import GameConfig, StepDelays
from bridge_engine.deck import Deck
from bridge_engine.engine import GameEngine
from bridge_engine.errors import (
    CardNotFoundError,
    EmptyDeckError,
    ExhaustionError,
    IllegalMoveError,
    InvalidSourceError,
    PhaseViolationError,
)
from bridge_engine.melds import MeldKind, can_extend_meld, classify_meld, is_valid_meld
from bridge_engine.player import Player
from bridge_engine.state import ClaimKind, DrawSource, GameSnapshot, GameStatus, TurnPhase

__all__ = [
    "Card",
    "Rank",
    "Suit",
    "SPECIAL_RANK",
    "create_deck",
    "GameConfig",
    "StepDelays",
    "Deck",
    "GameEngine",
    "CardNotFoundError",
    "EmptyDeckError",
    "ExhaustionError",
    "IllegalMoveError",
    "InvalidSourceError",
    "PhaseViolationError",
    "MeldKind",
    "can_extend_meld",
    "classify_meld",
    "is_valid_meld",
    "Player",
    "ClaimKind",
    "DrawSource",
    "GameSnapshot",
    "GameStatus",
    "TurnPhase",
]
