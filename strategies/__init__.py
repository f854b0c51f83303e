"""Decision policies for automated seats."""

from strategies.base import Strategy
from strategies.heuristic import HeuristicStrategy, find_melds, find_potential_melds

__all__ = [
    "Strategy",
    "HeuristicStrategy",
    "find_melds",
    "find_potential_melds",
]
