"""Exceptions raised by the Seven Bridge engine."""

from __future__ import annotations


class IllegalMoveError(Exception):
    """Raised when a command cannot be executed at all.

    The command is aborted before any state is changed.
    """

    pass


class PhaseViolationError(IllegalMoveError):
    """Raised when a command is issued outside its valid status or phase."""

    pass


class InvalidSourceError(IllegalMoveError):
    """Raised when a draw names an unknown source."""

    pass


class ExhaustionError(IllegalMoveError):
    """Raised when the stock is empty and the discard pile cannot refill it."""

    pass


class EmptyDeckError(Exception):
    """Raised when drawing from an empty deck."""

    pass


class CardNotFoundError(LookupError):
    """Raised when a card is not where a command expects it."""

    pass
