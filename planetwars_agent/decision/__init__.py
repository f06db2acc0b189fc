"""Action-selection engine: phase adapter, candidates, scoring and evaluators."""

from .candidates import (
    available_sources,
    generate_candidates,
    predicted_defense,
    reinforce_weak_territory,
    validate_action,
)
from .context import CriticWeights, DecisionContext
from .critic import ActorCriticEstimator, critic_features
from .evolution import EvolutionaryOptimizer, decode_action
from .phase import classify_phase, phase_coefficients, situation_complexity
from .rollout import RolloutEvaluator, greedy_rollout_action
from .runtime import DecisionRuntime, DecisionTimeout
from .scoring import rank_candidates, score_candidate
from .strategies import (
    ActorCriticStrategy,
    DecisionStrategy,
    EvolutionaryStrategy,
    HeuristicStrategy,
    HybridStrategy,
    RolloutStrategy,
    Simulator,
    create_strategy,
    validate_config,
)
from .types import (
    AgentConfig,
    Candidate,
    DecisionResult,
    GamePhase,
    PhaseCoefficients,
    PhaseMetric,
    PhasePreset,
    ScoredSolution,
    StrategyMode,
)

__all__ = [
    "ActorCriticEstimator",
    "ActorCriticStrategy",
    "AgentConfig",
    "Candidate",
    "CriticWeights",
    "DecisionContext",
    "DecisionResult",
    "DecisionRuntime",
    "DecisionStrategy",
    "DecisionTimeout",
    "EvolutionaryOptimizer",
    "EvolutionaryStrategy",
    "GamePhase",
    "HeuristicStrategy",
    "HybridStrategy",
    "PhaseCoefficients",
    "PhaseMetric",
    "PhasePreset",
    "RolloutEvaluator",
    "RolloutStrategy",
    "ScoredSolution",
    "Simulator",
    "StrategyMode",
    "available_sources",
    "classify_phase",
    "create_strategy",
    "critic_features",
    "decode_action",
    "generate_candidates",
    "greedy_rollout_action",
    "phase_coefficients",
    "predicted_defense",
    "rank_candidates",
    "reinforce_weak_territory",
    "score_candidate",
    "situation_complexity",
    "validate_action",
    "validate_config",
]
