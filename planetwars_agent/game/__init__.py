"""Actions, collaborator protocols and the reference forward model."""

from .actions import DO_NOTHING, Action, send_fleet
from .forward_model import ForwardModel, ForwardModelFactory, OpponentModel, PlanetWarsForwardModel
from .policies import DoNothingAgent

__all__ = [
    "Action",
    "DO_NOTHING",
    "DoNothingAgent",
    "ForwardModel",
    "ForwardModelFactory",
    "OpponentModel",
    "PlanetWarsForwardModel",
    "send_fleet",
]
