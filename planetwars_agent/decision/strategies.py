from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable

from planetwars_agent.domain.state import GameParams, GameState, Player, Territory
from planetwars_agent.game.actions import DO_NOTHING, Action
from planetwars_agent.game.forward_model import ForwardModelFactory, OpponentModel, PlanetWarsForwardModel
from planetwars_agent.game.policies import DoNothingAgent

from .candidates import available_sources, generate_candidates, reinforce_weak_territory, validate_action
from .context import DecisionContext
from .critic import ActorCriticEstimator
from .evolution import EvolutionaryOptimizer, decode_action
from .phase import phase_coefficients, situation_complexity
from .rollout import RolloutEvaluator
from .runtime import DecisionRuntime, DecisionTimeout
from .scoring import rank_candidates
from .seeding import decision_seed, derive_seed
from .types import AgentConfig, Candidate, DecisionResult, GamePhase, PhaseCoefficients, StrategyMode

logger = logging.getLogger(__name__)

FALLBACK_NO_SOURCE = "no_source"
FALLBACK_REINFORCE = "reinforce"
FALLBACK_NO_CANDIDATE = "no_candidate"


@dataclass(frozen=True)
class Simulator:
    """External collaborators a decision may consult."""

    params: GameParams = field(default_factory=GameParams)
    forward_model_factory: ForwardModelFactory = PlanetWarsForwardModel
    opponent_model: OpponentModel = field(default_factory=DoNothingAgent)


@dataclass
class _Prepared:
    state: GameState
    player: Player
    coefficients: PhaseCoefficients
    sources: list[Territory]
    ranked: list[Candidate]
    base_seed: int


class DecisionStrategy(ABC):
    mode: StrategyMode

    def decide(
        self,
        state: GameState,
        context: DecisionContext,
        config: AgentConfig,
        simulator: Simulator,
        runtime: DecisionRuntime | None = None,
    ) -> DecisionResult:
        runtime = runtime if runtime is not None else DecisionRuntime(time_budget_ms=config.time_budget_ms)
        prepared = self._prepare(state, context, config, simulator)
        if isinstance(prepared, DecisionResult):
            return self._finish(state, context, prepared, runtime)

        result = DecisionResult(
            action=prepared.ranked[0].action,
            mode=self.mode,
            phase=prepared.coefficients.phase,
            candidates=prepared.ranked,
        )
        self._select(prepared, result, context, config, simulator, runtime)
        if result.action.is_noop and result.fallback is None:
            result.action = reinforce_weak_territory(state, prepared.player, prepared.sources, config)
            result.fallback = FALLBACK_REINFORCE if not result.action.is_noop else FALLBACK_NO_CANDIDATE
        return self._finish(state, context, result, runtime)

    @abstractmethod
    def _select(
        self,
        prepared: _Prepared,
        result: DecisionResult,
        context: DecisionContext,
        config: AgentConfig,
        simulator: Simulator,
        runtime: DecisionRuntime,
    ) -> None:
        """Fill `result.action` (and scores) from the ranked candidate pool."""
        raise NotImplementedError

    def _prepare(
        self,
        state: GameState,
        context: DecisionContext,
        config: AgentConfig,
        simulator: Simulator,
    ) -> _Prepared | DecisionResult:
        player = context.player
        captured_ids = context.observe_ownership(state)
        coefficients = phase_coefficients(state, player, config)
        context.coefficients = coefficients

        sources = available_sources(state, player, config.min_source_garrison)
        if not sources:
            return DecisionResult(
                action=DO_NOTHING,
                mode=self.mode,
                phase=coefficients.phase,
                fallback=FALLBACK_NO_SOURCE,
            )

        include_unclaimed = False
        if state.count_owned(Player.NEUTRAL) > 0:
            context.ticks_since_neutral_attack += 1
            include_unclaimed = (
                context.ticks_since_neutral_attack >= config.neutral_attack_interval
                or coefficients.phase is GamePhase.EXPANSION
            )

        candidates = generate_candidates(
            state,
            player,
            coefficients,
            simulator.params,
            sources=sources,
            include_unclaimed=include_unclaimed,
        )
        if not candidates:
            action = reinforce_weak_territory(state, player, sources, config)
            return DecisionResult(
                action=action,
                mode=self.mode,
                phase=coefficients.phase,
                fallback=FALLBACK_REINFORCE if not action.is_noop else FALLBACK_NO_CANDIDATE,
            )

        base_seed = decision_seed(state, player, config.seed, salt=self.mode.value)
        ranked = rank_candidates(
            candidates,
            state,
            player,
            coefficients,
            config,
            random.Random(derive_seed(base_seed, "heuristic")),
            captured_ids=captured_ids,
        )
        return _Prepared(
            state=state,
            player=player,
            coefficients=coefficients,
            sources=sources,
            ranked=ranked,
            base_seed=base_seed,
        )

    def _finish(
        self,
        state: GameState,
        context: DecisionContext,
        result: DecisionResult,
        runtime: DecisionRuntime,
    ) -> DecisionResult:
        result.action = validate_action(state, context.player, result.action)
        target = state.get(result.action.destination_id)
        if target is not None and target.owner is Player.NEUTRAL:
            context.ticks_since_neutral_attack = 0
        context.decisions += 1
        result.runtime_ms = runtime.elapsed_ms()
        logger.debug(
            "%s decision at tick %s (%s): %s [candidates=%d fallback=%s timed_out=%s]",
            self.mode.value,
            state.game_tick,
            result.phase.value if result.phase is not None else "-",
            result.action.describe(),
            len(result.candidates),
            result.fallback,
            result.timed_out,
        )
        return result


class HeuristicStrategy(DecisionStrategy):
    mode = StrategyMode.HEURISTIC

    def _select(self, prepared, result, context, config, simulator, runtime) -> None:
        result.action = prepared.ranked[0].action
        result.scores = {0: prepared.ranked[0].weight}


class _ScoredCandidateStrategy(DecisionStrategy):
    """Score every pooled candidate with an evaluator; keep the best so far on timeout."""

    def _select(self, prepared, result, context, config, simulator, runtime) -> None:
        evaluate = self._make_evaluator(prepared, context, config, simulator, runtime)
        best_index: int | None = None
        best_score = float("-inf")
        for index, candidate in enumerate(prepared.ranked):
            try:
                runtime.raise_if_expired()
                score = evaluate(prepared.state, candidate.action, derive_seed(prepared.base_seed, "candidate", index))
            except DecisionTimeout:
                result.timed_out = True
                logger.info(
                    "%s evaluation stopped after %d of %d candidates",
                    self.mode.value,
                    index,
                    len(prepared.ranked),
                )
                break
            result.scores[index] = score
            if best_index is None or score > best_score:
                best_index = index
                best_score = score
        result.action = prepared.ranked[best_index if best_index is not None else 0].action

    @abstractmethod
    def _make_evaluator(
        self,
        prepared: _Prepared,
        context: DecisionContext,
        config: AgentConfig,
        simulator: Simulator,
        runtime: DecisionRuntime,
    ) -> Callable[[GameState, Action, int], float]:
        raise NotImplementedError


class RolloutStrategy(_ScoredCandidateStrategy):
    mode = StrategyMode.ROLLOUT

    def _make_evaluator(self, prepared, context, config, simulator, runtime):
        return _rollout_evaluator(prepared, config, simulator, runtime).evaluate


class ActorCriticStrategy(_ScoredCandidateStrategy):
    mode = StrategyMode.ACTOR_CRITIC

    def _make_evaluator(self, prepared, context, config, simulator, runtime):
        estimator = ActorCriticEstimator(
            context.critic,
            _rollout_evaluator(prepared, config, simulator, runtime),
            learning_rate=config.critic_learning_rate,
            discount=config.critic_discount,
        )
        return estimator.evaluate


class EvolutionaryStrategy(DecisionStrategy):
    mode = StrategyMode.EVOLUTIONARY

    def _select(self, prepared, result, context, config, simulator, runtime) -> None:
        tail_evaluator = None
        if config.evolution_tail_rollouts > 0:
            tail_evaluator = _rollout_evaluator(prepared, config, simulator, runtime)
        optimizer = EvolutionaryOptimizer(
            prepared.player,
            simulator.params,
            simulator.forward_model_factory,
            simulator.opponent_model,
            sequence_length=config.sequence_length,
            n_evals=config.evolution_evals,
            mutation_probability=config.mutation_probability,
            flip_at_least_one=config.flip_at_least_one,
            use_shift_buffer=config.use_shift_buffer,
            tail_evaluator=tail_evaluator,
            tail_rollouts=config.evolution_tail_rollouts,
            tail_weight=config.evolution_tail_weight,
            runtime=runtime,
        )
        rng = random.Random(derive_seed(prepared.base_seed, "evolution"))
        try:
            best = optimizer.search(prepared.state, rng, previous=context.plan_buffer)
        except DecisionTimeout:
            result.timed_out = True
            logger.info("evolutionary search timed out before its first evaluation")
            result.action = prepared.ranked[0].action
            return
        context.plan_buffer = best.solution
        result.scores = {0: best.score}
        action = decode_action(prepared.state, prepared.player, best.solution[0], best.solution[1])
        if action.is_noop:
            # the plan may start on a territory that cannot launch; the pool still holds feasible attacks
            logger.debug("evolutionary plan decoded to no-op, using top ranked candidate")
            action = prepared.ranked[0].action
        result.action = action


class HybridStrategy(DecisionStrategy):
    """Cheap greedy pick in quiet positions, rollouts once the map is contested."""

    mode = StrategyMode.HYBRID

    def __init__(self) -> None:
        self._quiet = HeuristicStrategy()
        self._contested = RolloutStrategy()

    def _select(self, prepared, result, context, config, simulator, runtime) -> None:
        if situation_complexity(prepared.state) > config.complexity_threshold:
            self._contested._select(prepared, result, context, config, simulator, runtime)
        else:
            self._quiet._select(prepared, result, context, config, simulator, runtime)


def _rollout_evaluator(
    prepared: _Prepared,
    config: AgentConfig,
    simulator: Simulator,
    runtime: DecisionRuntime,
) -> RolloutEvaluator:
    return RolloutEvaluator(
        prepared.player,
        simulator.params,
        simulator.forward_model_factory,
        simulator.opponent_model,
        rollout_count=prepared.coefficients.rollout_count,
        rollout_depth=prepared.coefficients.rollout_depth,
        min_garrison=config.rollout_min_garrison,
        epsilon=config.rollout_epsilon,
        parallel_workers=config.parallel_workers,
        runtime=runtime,
    )


def create_strategy(mode: StrategyMode | str) -> DecisionStrategy:
    normalized = StrategyMode(mode)
    if normalized is StrategyMode.HEURISTIC:
        return HeuristicStrategy()
    if normalized is StrategyMode.ROLLOUT:
        return RolloutStrategy()
    if normalized is StrategyMode.EVOLUTIONARY:
        return EvolutionaryStrategy()
    if normalized is StrategyMode.HYBRID:
        return HybridStrategy()
    return ActorCriticStrategy()


def validate_config(config: AgentConfig) -> None:
    if config.time_budget_ms is not None and config.time_budget_ms <= 0.0:
        raise ValueError("time_budget_ms must be > 0 or None.")
    if config.parallel_workers < 0:
        raise ValueError("parallel_workers must be >= 0.")
    if not (0.0 <= config.expansion_unclaimed_ratio <= 1.0):
        raise ValueError("expansion_unclaimed_ratio must be between 0.0 and 1.0.")
    if not (0.0 <= config.domination_share <= 1.0):
        raise ValueError("domination_share must be between 0.0 and 1.0.")
    if config.domination_ship_differential < config.contest_ship_differential:
        raise ValueError("domination_ship_differential must be >= contest_ship_differential.")
    for name in ("expansion", "contest", "domination"):
        preset = getattr(config, name)
        if preset.safety_margin <= 0.0:
            raise ValueError(f"{name}.safety_margin must be > 0.0.")
        if preset.pool_size < 1:
            raise ValueError(f"{name}.pool_size must be >= 1.")
        if preset.distance_exponent < 0.0:
            raise ValueError(f"{name}.distance_exponent must be >= 0.0.")
        for fraction_name in ("unclaimed_fleet_fraction", "opponent_fleet_fraction"):
            if not (0.0 < getattr(preset, fraction_name) <= 1.0):
                raise ValueError(f"{name}.{fraction_name} must be in (0.0, 1.0].")
    if config.min_source_garrison < 0.0:
        raise ValueError("min_source_garrison must be >= 0.0.")
    if config.neutral_attack_interval < 0:
        raise ValueError("neutral_attack_interval must be >= 0.")
    if not (0.0 < config.reinforce_fraction <= 1.0):
        raise ValueError("reinforce_fraction must be in (0.0, 1.0].")
    if config.reinforce_cap <= 0.0:
        raise ValueError("reinforce_cap must be > 0.0.")
    if config.jitter < 0.0:
        raise ValueError("jitter must be >= 0.0.")
    if config.rollout_count < 1:
        raise ValueError("rollout_count must be >= 1.")
    if config.rollout_depth < 1:
        raise ValueError("rollout_depth must be >= 1.")
    if config.rollout_step_budget < 1:
        raise ValueError("rollout_step_budget must be >= 1.")
    if not (0.0 <= config.rollout_epsilon <= 1.0):
        raise ValueError("rollout_epsilon must be between 0.0 and 1.0.")
    if config.critic_learning_rate < 0.0:
        raise ValueError("critic_learning_rate must be >= 0.0.")
    if not (0.0 <= config.critic_discount <= 1.0):
        raise ValueError("critic_discount must be between 0.0 and 1.0.")
    if config.sequence_length < 2 or config.sequence_length % 2:
        raise ValueError("sequence_length must be an even number >= 2.")
    if config.evolution_evals < 1:
        raise ValueError("evolution_evals must be >= 1.")
    if not (0.0 <= config.mutation_probability <= 1.0):
        raise ValueError("mutation_probability must be between 0.0 and 1.0.")
    if config.evolution_tail_rollouts < 0:
        raise ValueError("evolution_tail_rollouts must be >= 0.")
