from __future__ import annotations

import random
from typing import Sequence

from planetwars_agent.domain.state import GameParams, GameState, Player
from planetwars_agent.game.actions import DO_NOTHING, Action, send_fleet
from planetwars_agent.game.forward_model import ForwardModelFactory, OpponentModel

from .rollout import RolloutEvaluator
from .runtime import DecisionRuntime, DecisionTimeout
from .seeding import derive_seed
from .types import ScoredSolution

SHIFT_BY = 2


def decode_action(state: GameState, player: Player, source_fraction: float, target_fraction: float) -> Action:
    """Map one (source, target) selector pair onto the live state."""
    sources = [
        territory
        for territory in state.territories
        if territory.owner is player and not territory.in_transit and territory.n_ships > 0.0
    ]
    if not sources:
        return DO_NOTHING
    source = sources[min(len(sources) - 1, int(source_fraction * len(sources)))]

    unclaimed = [
        territory
        for territory in state.owned_by(Player.NEUTRAL)
        if territory.position.distance(source.position) > 0.0
    ]
    if unclaimed:
        target = min(unclaimed, key=lambda territory: (territory.position.distance(source.position), territory.id))
    else:
        opponent = sorted(
            (
                territory
                for territory in state.owned_by(player.opponent())
                if territory.position.distance(source.position) > 0.0
            ),
            key=lambda territory: (territory.position.distance(source.position), territory.id),
        )
        if not opponent:
            return DO_NOTHING
        target = opponent[min(len(opponent) - 1, int(target_fraction * len(opponent)))]

    num_ships = source.n_ships / 2.0
    if num_ships <= 0.0:
        return DO_NOTHING
    return send_fleet(player, source.id, target.id, num_ships)


class EvolutionaryOptimizer:
    """Rolling-horizon evolution over encoded action sequences."""

    def __init__(
        self,
        player: Player,
        params: GameParams,
        forward_model_factory: ForwardModelFactory,
        opponent_model: OpponentModel,
        *,
        sequence_length: int = 40,
        n_evals: int = 20,
        mutation_probability: float = 0.4,
        flip_at_least_one: bool = True,
        use_shift_buffer: bool = True,
        tail_evaluator: RolloutEvaluator | None = None,
        tail_rollouts: int = 0,
        tail_weight: float = 0.5,
        runtime: DecisionRuntime | None = None,
    ) -> None:
        if sequence_length < SHIFT_BY or sequence_length % SHIFT_BY:
            raise ValueError(f"sequence_length must be a positive multiple of {SHIFT_BY}.")
        self.player = player
        self.params = params
        self.forward_model_factory = forward_model_factory
        self.opponent_model = opponent_model
        self.sequence_length = int(sequence_length)
        self.n_evals = max(1, int(n_evals))
        self.mutation_probability = float(mutation_probability)
        self.flip_at_least_one = bool(flip_at_least_one)
        self.use_shift_buffer = bool(use_shift_buffer)
        self.tail_evaluator = tail_evaluator
        self.tail_rollouts = max(0, int(tail_rollouts))
        self.tail_weight = float(tail_weight)
        self.runtime = runtime

    def random_point(self, rng: random.Random) -> list[float]:
        return [rng.random() for _ in range(self.sequence_length)]

    def mutate(self, vector: Sequence[float], rng: random.Random) -> list[float]:
        forced_index = rng.randrange(len(vector)) if self.flip_at_least_one else -1
        return [
            rng.random() if index == forced_index or rng.random() < self.mutation_probability else value
            for index, value in enumerate(vector)
        ]

    def shift_buffer(self, vector: Sequence[float], rng: random.Random) -> list[float]:
        """Drop the committed first pair and append fresh selectors at the end."""
        shifted = list(vector[SHIFT_BY:])
        shifted.extend(rng.random() for _ in range(SHIFT_BY))
        return shifted

    def fitness(self, state: GameState, solution: Sequence[float], rng: random.Random) -> float:
        model = self.forward_model_factory(state.clone(), self.params)
        opponent = self.player.opponent()
        index = 0
        while index + 1 < len(solution) and not model.is_terminal():
            if self.runtime is not None:
                self.runtime.raise_if_expired()
            own_action = decode_action(model.state, self.player, solution[index], solution[index + 1])
            model.step({self.player: own_action, opponent: self.opponent_model.get_action(model.state)})
            index += SHIFT_BY
        score = model.get_ships(self.player) - model.get_ships(opponent)

        if self.tail_evaluator is None or self.tail_rollouts == 0:
            return score
        tail_total = 0.0
        for _ in range(self.tail_rollouts):
            tail_model = self.forward_model_factory(model.state.clone(), self.params)
            self.tail_evaluator.continue_rollout(tail_model, rng)
            tail_total += self.tail_evaluator.ship_difference(tail_model)
        return score + self.tail_weight * (tail_total / self.tail_rollouts)

    def search(
        self,
        state: GameState,
        rng: random.Random,
        *,
        previous: Sequence[float] | None = None,
    ) -> ScoredSolution:
        """Return the best sequence found within `n_evals` or the deadline.

        Only the first evaluation is mandatory; later rounds stop quietly when
        the runtime expires and the incumbent is returned.
        """
        if self.use_shift_buffer and previous is not None and len(previous) == self.sequence_length:
            seed_solution = self.mutate(self.shift_buffer(previous, rng), rng)
        else:
            seed_solution = self.random_point(rng)
        incumbent = ScoredSolution(score=self._score(state, seed_solution, rng, 0), solution=seed_solution)

        for round_index in range(1, self.n_evals):
            challenger = self.mutate(incumbent.solution, rng)
            try:
                score = self._score(state, challenger, rng, round_index)
            except DecisionTimeout:
                break
            if score > incumbent.score:
                incumbent = ScoredSolution(score=score, solution=challenger)
        return incumbent

    def _score(self, state: GameState, solution: Sequence[float], rng: random.Random, round_index: int) -> float:
        return self.fitness(state, solution, random.Random(derive_seed(rng.getrandbits(32), "fitness", round_index)))
