from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from planetwars_agent.domain.state import GameState, Player, ship_differential, territory_differential
from planetwars_agent.game.actions import Action

from .context import CriticWeights
from .rollout import RolloutEvaluator

logger = logging.getLogger(__name__)


def critic_features(state: GameState, player: Player) -> list[float]:
    return [
        ship_differential(state, player),
        float(territory_differential(state, player)),
        1.0,
    ]


@dataclass(frozen=True)
class CriticEvaluation:
    value_before: float
    value_after: float
    reward: float
    td_target: float

    @property
    def td_error(self) -> float:
        return self.td_target - self.value_before


class ActorCriticEstimator:
    """
    One-step linear actor-critic scoring.

    Each evaluation runs a single rollout sample, then under the critic lock
    reads both value estimates, forms the TD target and updates the weights
    towards it. Weights persist across decisions and are never reset.
    """

    def __init__(
        self,
        weights: CriticWeights,
        evaluator: RolloutEvaluator,
        *,
        learning_rate: float,
        discount: float,
    ) -> None:
        self.weights = weights
        self.evaluator = evaluator
        self.learning_rate = float(learning_rate)
        self.discount = float(discount)

    def evaluate(self, state: GameState, action: Action, seed: int) -> float:
        return self.evaluate_detailed(state, action, seed).td_target

    def evaluate_detailed(self, state: GameState, action: Action, seed: int) -> CriticEvaluation:
        player = self.evaluator.player
        features_before = critic_features(state, player)
        model = self.evaluator.run_rollout(state, action, random.Random(seed))
        features_after = critic_features(model.state, player)
        # the forward model counts fleets in flight, the features count garrisons only
        reward = self.evaluator.ship_difference(model) - features_before[0]
        return self.update(features_before, features_after, reward)

    def update(self, features_before: list[float], features_after: list[float], reward: float) -> CriticEvaluation:
        with self.weights.lock:
            value_before = self.weights.value(features_before)
            value_after = self.weights.value(features_after)
            td_target = reward + self.discount * value_after
            td_error = td_target - value_before
            if not self.weights.apply_td_error(features_before, td_error, self.learning_rate):
                logger.warning("Discarded critic update with non-finite result (td_error=%s)", td_error)
        return CriticEvaluation(
            value_before=value_before,
            value_after=value_after,
            reward=reward,
            td_target=td_target,
        )
