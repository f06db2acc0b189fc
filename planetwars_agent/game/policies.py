from __future__ import annotations

from planetwars_agent.domain.state import GameState

from .actions import DO_NOTHING, Action


class DoNothingAgent:
    """Opponent stand-in used for rollout counterfactuals."""

    def get_action(self, state: GameState) -> Action:
        return DO_NOTHING
