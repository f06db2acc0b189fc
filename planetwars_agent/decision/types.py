from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from planetwars_agent.domain.state import Player
from planetwars_agent.game.actions import Action


class StrategyMode(str, Enum):
    HEURISTIC = "heuristic"
    ROLLOUT = "rollout"
    ACTOR_CRITIC = "actor_critic"
    EVOLUTIONARY = "evolutionary"
    HYBRID = "hybrid"


class PhaseMetric(str, Enum):
    TERRITORY_SHARE = "territory_share"
    SHIP_DIFFERENTIAL = "ship_differential"


class GamePhase(str, Enum):
    EXPANSION = "expansion"
    CONTEST = "contest"
    DOMINATION = "domination"


@dataclass(frozen=True)
class PhasePreset:
    expansion_weight: float
    attack_weight: float
    defense_weight: float
    distance_exponent: float
    safety_margin: float
    pool_size: int
    unclaimed_fleet_fraction: float = 0.8
    opponent_fleet_fraction: float = 0.7


EXPANSION_PRESET = PhasePreset(
    expansion_weight=2.5,
    attack_weight=1.0,
    defense_weight=1.0,
    distance_exponent=1.1,
    safety_margin=1.1,
    pool_size=30,
    opponent_fleet_fraction=0.6,
)
CONTEST_PRESET = PhasePreset(
    expansion_weight=1.5,
    attack_weight=2.0,
    defense_weight=1.8,
    distance_exponent=1.3,
    safety_margin=1.4,
    pool_size=40,
)
DOMINATION_PRESET = PhasePreset(
    expansion_weight=1.0,
    attack_weight=2.5,
    defense_weight=1.5,
    distance_exponent=1.5,
    safety_margin=1.2,
    pool_size=50,
    opponent_fleet_fraction=0.8,
)


@dataclass(frozen=True)
class AgentConfig:
    mode: StrategyMode = StrategyMode.ACTOR_CRITIC
    seed: Optional[int] = None
    time_budget_ms: Optional[float] = 200.0
    parallel_workers: int = 1  # 0 = auto

    # phase adapter
    phase_metric: PhaseMetric = PhaseMetric.TERRITORY_SHARE
    expansion_unclaimed_ratio: float = 0.4
    domination_share: float = 0.6
    contest_ship_differential: float = 200.0
    domination_ship_differential: float = 600.0
    expansion: PhasePreset = EXPANSION_PRESET
    contest: PhasePreset = CONTEST_PRESET
    domination: PhasePreset = DOMINATION_PRESET

    # candidate generation
    min_source_garrison: float = 10.0
    neutral_attack_interval: int = 1
    reinforce_threshold: float = 20.0
    reinforce_min_donor: float = 15.0
    reinforce_fraction: float = 0.4
    reinforce_cap: float = 30.0

    # heuristic scorer
    growth_bonus: float = 1.8
    radius_weight: float = 2.0
    transit_bonus: float = 1.3
    captured_radius_boost: float = 1.5
    captured_radius_tolerance: float = 0.1
    threat_radius: float = 15.0
    threat_weight: float = 0.3
    jitter: float = 0.1

    # rollouts
    rollout_count: int = 6
    rollout_depth: int = 30
    rollout_step_budget: int = 8_000
    rollout_min_garrison: float = 5.0
    rollout_epsilon: float = 0.1

    # critic
    critic_learning_rate: float = 1e-6
    critic_discount: float = 0.9

    # evolutionary optimizer
    sequence_length: int = 40
    evolution_evals: int = 20
    mutation_probability: float = 0.4
    flip_at_least_one: bool = True
    use_shift_buffer: bool = True
    evolution_tail_rollouts: int = 0
    evolution_tail_weight: float = 0.5

    # hybrid switch
    complexity_threshold: float = 0.7

    def preset_for(self, phase: GamePhase) -> PhasePreset:
        if phase is GamePhase.EXPANSION:
            return self.expansion
        if phase is GamePhase.DOMINATION:
            return self.domination
        return self.contest


@dataclass(frozen=True)
class PhaseCoefficients:
    phase: GamePhase
    expansion_weight: float
    attack_weight: float
    defense_weight: float
    distance_exponent: float
    safety_margin: float
    pool_size: int
    unclaimed_fleet_fraction: float
    opponent_fleet_fraction: float
    rollout_count: int
    rollout_depth: int


@dataclass(frozen=True)
class Candidate:
    action: Action
    weight: float
    distance: float
    travel_time: float
    predicted_defense: float
    target_owner: Player


@dataclass
class ScoredSolution:
    score: float
    solution: list[float]


@dataclass
class DecisionResult:
    action: Action
    mode: StrategyMode
    phase: Optional[GamePhase] = None
    candidates: list[Candidate] = field(default_factory=list)
    scores: dict[int, float] = field(default_factory=dict)
    fallback: Optional[str] = None
    timed_out: bool = False
    runtime_ms: float = 0.0
