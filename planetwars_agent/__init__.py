"""Decision-making core for an autonomous Planet Wars player."""

from .agent import PlanetWarsAgent
from .decision import AgentConfig, DecisionResult, StrategyMode
from .domain import GameParams, GameState, Player
from .game import DO_NOTHING, Action

__all__ = [
    "Action",
    "AgentConfig",
    "DO_NOTHING",
    "DecisionResult",
    "GameParams",
    "GameState",
    "PlanetWarsAgent",
    "Player",
    "StrategyMode",
]
