"""Game-state snapshot models."""

from .snapshot import load_snapshot, params_from_dict, state_from_dict, state_to_dict
from .state import (
    GameParams,
    GameState,
    Player,
    Position,
    Territory,
    Transporter,
    mean_radius,
    ship_differential,
    territory_differential,
)

__all__ = [
    "GameParams",
    "GameState",
    "Player",
    "Position",
    "Territory",
    "Transporter",
    "load_snapshot",
    "mean_radius",
    "params_from_dict",
    "ship_differential",
    "state_from_dict",
    "state_to_dict",
    "territory_differential",
]
