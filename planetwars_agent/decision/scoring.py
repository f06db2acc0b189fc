from __future__ import annotations

import random
from dataclasses import replace
from typing import Collection, Sequence

from planetwars_agent.domain.state import GameState, Player, Territory, mean_radius

from .types import AgentConfig, Candidate, PhaseCoefficients


def opponent_threat(target: Territory, state: GameState, player: Player, config: AgentConfig) -> float:
    """Pressure the opponent can put on `target` from nearby territories."""
    threat = 0.0
    for territory in state.owned_by(player.opponent()):
        distance = target.position.distance(territory.position)
        if distance < config.threat_radius:
            threat += (territory.n_ships / (distance + 1.0)) * config.threat_weight
    return threat


def score_candidate(
    candidate: Candidate,
    state: GameState,
    player: Player,
    coefficients: PhaseCoefficients,
    config: AgentConfig,
    rng: random.Random,
    *,
    captured_ids: Collection[int] = (),
    captured_mean_radius: float = 0.0,
) -> float:
    target = state.get(candidate.action.destination_id)
    assert target is not None  # candidates only reference territories of `state`

    unclaimed = target.owner is Player.NEUTRAL
    type_weight = coefficients.expansion_weight if unclaimed else coefficients.attack_weight
    value = target.growth_rate * config.growth_bonus * type_weight + target.radius * config.radius_weight

    if target.transporter is not None:
        value *= config.transit_bonus
    if target.id in captured_ids:
        value *= coefficients.defense_weight
        if captured_mean_radius > 0.0 and (
            abs(target.radius - captured_mean_radius) / captured_mean_radius < config.captured_radius_tolerance
        ):
            value *= config.captured_radius_boost
    if unclaimed:
        value -= opponent_threat(target, state, player, config)

    weight = value / (candidate.distance ** coefficients.distance_exponent)
    if config.jitter > 0.0:
        weight += rng.uniform(0.0, config.jitter)
    return weight


def rank_candidates(
    candidates: Sequence[Candidate],
    state: GameState,
    player: Player,
    coefficients: PhaseCoefficients,
    config: AgentConfig,
    rng: random.Random,
    *,
    captured_ids: Collection[int] = (),
    pool_size: int | None = None,
) -> list[Candidate]:
    captured = set(captured_ids)
    captured_radius = mean_radius(territory for territory in state.territories if territory.id in captured)
    scored = [
        replace(
            candidate,
            weight=score_candidate(
                candidate,
                state,
                player,
                coefficients,
                config,
                rng,
                captured_ids=captured,
                captured_mean_radius=captured_radius,
            ),
        )
        for candidate in candidates
    ]
    scored.sort(key=lambda item: (-item.weight, item.action.source_id, item.action.destination_id))
    limit = coefficients.pool_size if pool_size is None else pool_size
    return scored[: max(0, int(limit))]
