from __future__ import annotations

import os
import random
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from planetwars_agent.domain.state import GameParams, GameState, Player
from planetwars_agent.game.actions import DO_NOTHING, Action, send_fleet
from planetwars_agent.game.forward_model import ForwardModel, ForwardModelFactory, OpponentModel

from .candidates import available_sources
from .runtime import DecisionRuntime
from .seeding import derive_seed

UNCLAIMED_OVERSEND = 1.1
OPPONENT_OVERSEND = 1.3
OPPONENT_FLEET_CAP = 0.8


def greedy_rollout_action(
    state: GameState,
    player: Player,
    params: GameParams,
    rng: random.Random,
    *,
    min_garrison: float = 5.0,
    epsilon: float = 0.0,
) -> Action:
    """Fast self policy for rollouts: strongest idle source, nearest-best target."""
    sources = available_sources(state, player, min_garrison)
    if not sources:
        return DO_NOTHING
    source = max(sources, key=lambda territory: (territory.n_ships, -territory.id))

    unclaimed = [
        territory
        for territory in state.owned_by(Player.NEUTRAL)
        if territory.position.distance(source.position) > 0.0
    ]
    opponent = [
        territory
        for territory in state.owned_by(player.opponent())
        if territory.position.distance(source.position) > 0.0
    ]
    if not unclaimed and not opponent:
        return DO_NOTHING

    speed = params.transporter_speed
    if epsilon > 0.0 and rng.random() < epsilon:
        target = rng.choice(unclaimed + opponent)
    elif unclaimed:
        target = max(
            unclaimed,
            key=lambda territory: territory.growth_rate / source.position.distance(territory.position),
        )
    else:
        target = min(
            opponent,
            key=lambda territory: territory.n_ships
            + territory.growth_rate * (source.position.distance(territory.position) / speed),
        )

    if target.owner is Player.NEUTRAL:
        num_ships = max(1.0, target.n_ships * UNCLAIMED_OVERSEND)
    else:
        travel_time = source.position.distance(target.position) / speed
        defense = target.n_ships + target.growth_rate * travel_time
        num_ships = max(1.0, min(defense * OPPONENT_OVERSEND, source.n_ships * OPPONENT_FLEET_CAP))
    return send_fleet(player, source.id, target.id, min(num_ships, source.n_ships))


class RolloutEvaluator:
    """Monte-Carlo estimate of an action's ship-differential consequences."""

    def __init__(
        self,
        player: Player,
        params: GameParams,
        forward_model_factory: ForwardModelFactory,
        opponent_model: OpponentModel,
        *,
        rollout_count: int,
        rollout_depth: int,
        min_garrison: float = 5.0,
        epsilon: float = 0.0,
        parallel_workers: int = 1,
        runtime: DecisionRuntime | None = None,
    ) -> None:
        self.player = player
        self.params = params
        self.forward_model_factory = forward_model_factory
        self.opponent_model = opponent_model
        self.rollout_count = max(1, int(rollout_count))
        self.rollout_depth = max(0, int(rollout_depth))
        self.min_garrison = float(min_garrison)
        self.epsilon = float(epsilon)
        self.parallel_workers = _resolve_worker_count(parallel_workers, self.rollout_count)
        self.runtime = runtime

    def evaluate(self, state: GameState, action: Action, seed: int) -> float:
        seeds = [derive_seed(seed, "rollout", sample_index) for sample_index in range(self.rollout_count)]
        if self.parallel_workers <= 1:
            outcomes = [self.sample(state, action, sample_seed) for sample_seed in seeds]
        else:
            outcomes = self._parallel_samples(state, action, seeds)
        return sum(outcomes) / len(outcomes)

    def sample(self, state: GameState, action: Action, seed: int) -> float:
        model = self.run_rollout(state, action, random.Random(seed))
        return self.ship_difference(model)

    def run_rollout(
        self,
        state: GameState,
        action: Action,
        rng: random.Random,
        *,
        depth: int | None = None,
    ) -> ForwardModel:
        """Play `action` then the greedy policy on a clone; return the advanced model."""
        model = self.forward_model_factory(state.clone(), self.params)
        opponent = self.player.opponent()
        model.step({self.player: action, opponent: self.opponent_model.get_action(model.state)})
        self.continue_rollout(model, rng, depth=depth)
        return model

    def continue_rollout(self, model: ForwardModel, rng: random.Random, *, depth: int | None = None) -> None:
        opponent = self.player.opponent()
        max_steps = self.rollout_depth if depth is None else max(0, int(depth))
        steps = 0
        while steps < max_steps and not model.is_terminal():
            if self.runtime is not None:
                self.runtime.raise_if_expired()
            own_action = greedy_rollout_action(
                model.state,
                self.player,
                self.params,
                rng,
                min_garrison=self.min_garrison,
                epsilon=self.epsilon,
            )
            model.step({self.player: own_action, opponent: self.opponent_model.get_action(model.state)})
            steps += 1

    def ship_difference(self, model: ForwardModel) -> float:
        return model.get_ships(self.player) - model.get_ships(self.player.opponent())

    def _parallel_samples(self, state: GameState, action: Action, seeds: Sequence[int]) -> list[float]:
        with ThreadPoolExecutor(max_workers=self.parallel_workers) as executor:
            futures = [executor.submit(self.sample, state, action, sample_seed) for sample_seed in seeds]
            try:
                return [future.result() for future in futures]
            except BaseException:
                for future in futures:
                    future.cancel()
                raise


def _resolve_worker_count(configured: int, rollout_count: int) -> int:
    configured = max(0, int(configured))
    if configured == 0:
        configured = max(1, os.cpu_count() or 1)
    return max(1, min(configured, rollout_count))
