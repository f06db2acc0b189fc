from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from planetwars_agent.domain.state import GameState, Player

from .types import PhaseCoefficients

CRITIC_FEATURES = ("ship_differential", "territory_differential", "bias")


class CriticWeights:
    """Linear value function weights, shared by every decision of one agent."""

    def __init__(self, values: Sequence[float] | None = None) -> None:
        initial = list(values) if values is not None else [0.0] * len(CRITIC_FEATURES)
        if len(initial) != len(CRITIC_FEATURES):
            raise ValueError(f"CriticWeights expects {len(CRITIC_FEATURES)} values.")
        self._values = [float(value) for value in initial]
        self.lock = threading.Lock()

    @property
    def values(self) -> tuple[float, ...]:
        return tuple(self._values)

    def value(self, features: Sequence[float]) -> float:
        return sum(weight * feature for weight, feature in zip(self._values, features))

    def apply_td_error(self, features: Sequence[float], td_error: float, learning_rate: float) -> bool:
        """Move every weight along its feature; callers hold `lock`.

        Returns False (and leaves the weights untouched) when the step would
        produce a non-finite weight.
        """
        if td_error == 0.0:
            return True
        updated = [
            weight + learning_rate * td_error * feature
            for weight, feature in zip(self._values, features)
        ]
        if not all(math.isfinite(weight) for weight in updated):
            return False
        self._values = updated
        return True


@dataclass
class DecisionContext:
    player: Player
    critic: CriticWeights = field(default_factory=CriticWeights)
    last_owners: Optional[Dict[int, Player]] = None
    ticks_since_neutral_attack: int = 0
    coefficients: Optional[PhaseCoefficients] = None
    plan_buffer: Optional[list[float]] = None
    decisions: int = 0

    def observe_ownership(self, state: GameState) -> list[int]:
        """Record current owners and return ids the opponent took since the last tick."""
        opponent = self.player.opponent()
        if self.last_owners is None:
            self.last_owners = {territory.id: territory.owner for territory in state.territories}
        captured = [
            territory.id
            for territory in state.territories
            if territory.owner is opponent and self.last_owners.get(territory.id) is not opponent
        ]
        for territory in state.territories:
            self.last_owners[territory.id] = territory.owner
        return captured
