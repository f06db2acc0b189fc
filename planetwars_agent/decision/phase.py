from __future__ import annotations

from planetwars_agent.domain.state import GameState, Player, ship_differential

from .types import AgentConfig, GamePhase, PhaseCoefficients, PhaseMetric

TRANSIT_COMPLEXITY_WEIGHT = 0.4
COMPETITION_COMPLEXITY_WEIGHT = 0.6


def ownership_ratios(state: GameState, player: Player) -> tuple[float, float, float]:
    """Return (unclaimed, own, opponent) territory shares."""
    total = len(state.territories)
    if total == 0:
        return 0.0, 0.0, 0.0
    unclaimed = state.count_owned(Player.NEUTRAL) / total
    own = state.count_owned(player) / total
    opponent = state.count_owned(player.opponent()) / total
    return unclaimed, own, opponent


def classify_phase(state: GameState, player: Player, config: AgentConfig) -> GamePhase:
    if config.phase_metric is PhaseMetric.SHIP_DIFFERENTIAL:
        net_ships = ship_differential(state, player)
        if net_ships < config.contest_ship_differential:
            return GamePhase.EXPANSION
        if net_ships < config.domination_ship_differential:
            return GamePhase.CONTEST
        return GamePhase.DOMINATION

    unclaimed, own, opponent = ownership_ratios(state, player)
    if unclaimed > config.expansion_unclaimed_ratio:
        return GamePhase.EXPANSION
    if own > config.domination_share or opponent > config.domination_share:
        return GamePhase.DOMINATION
    return GamePhase.CONTEST


def phase_coefficients(state: GameState, player: Player, config: AgentConfig) -> PhaseCoefficients:
    phase = classify_phase(state, player, config)
    preset = config.preset_for(phase)
    pool_size = max(1, int(preset.pool_size))
    rollout_depth = max(1, int(config.rollout_depth))
    # pool x count x depth stays inside the step budget
    affordable = int(config.rollout_step_budget) // (pool_size * rollout_depth)
    rollout_count = max(1, min(int(config.rollout_count), affordable))
    return PhaseCoefficients(
        phase=phase,
        expansion_weight=preset.expansion_weight,
        attack_weight=preset.attack_weight,
        defense_weight=preset.defense_weight,
        distance_exponent=preset.distance_exponent,
        safety_margin=preset.safety_margin,
        pool_size=pool_size,
        unclaimed_fleet_fraction=preset.unclaimed_fleet_fraction,
        opponent_fleet_fraction=preset.opponent_fleet_fraction,
        rollout_count=rollout_count,
        rollout_depth=rollout_depth,
    )


def situation_complexity(state: GameState) -> float:
    total = len(state.territories)
    if total == 0:
        return 0.0
    in_transit = sum(1 for territory in state.territories if territory.in_transit)
    unclaimed = state.count_owned(Player.NEUTRAL) / total
    return (in_transit / total) * TRANSIT_COMPLEXITY_WEIGHT + (1.0 - unclaimed) * COMPETITION_COMPLEXITY_WEIGHT
