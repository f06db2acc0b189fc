from __future__ import annotations

import logging
from typing import Iterable, Sequence

from planetwars_agent.domain.state import GameParams, GameState, Player, Territory
from planetwars_agent.game.actions import DO_NOTHING, Action, send_fleet

from .types import AgentConfig, Candidate, PhaseCoefficients

logger = logging.getLogger(__name__)


def available_sources(state: GameState, player: Player, min_garrison: float) -> list[Territory]:
    return [
        territory
        for territory in state.territories
        if territory.owner is player and not territory.in_transit and territory.n_ships > min_garrison
    ]


def predicted_defense(target: Territory, travel_time: float) -> float:
    # opponent garrisons are taken at face value, unclaimed ones keep growing
    if target.owner is Player.NEUTRAL:
        return target.n_ships + target.growth_rate * travel_time
    return target.n_ships


def generate_candidates(
    state: GameState,
    player: Player,
    coefficients: PhaseCoefficients,
    params: GameParams,
    *,
    sources: Sequence[Territory] | None = None,
    min_garrison: float = 0.0,
    include_unclaimed: bool = True,
    include_opponent: bool = True,
) -> list[Candidate]:
    if sources is None:
        sources = available_sources(state, player, min_garrison)
    targets: list[Territory] = []
    if include_unclaimed:
        targets.extend(state.owned_by(Player.NEUTRAL))
    if include_opponent:
        targets.extend(state.owned_by(player.opponent()))
    if not sources or not targets:
        return []

    speed = params.transporter_speed
    candidates: list[Candidate] = []
    for source in sources:
        for target in targets:
            distance = source.position.distance(target.position)
            if distance <= 0.0:
                continue
            travel_time = distance / speed
            defense = predicted_defense(target, travel_time)
            required = defense * coefficients.safety_margin
            if source.n_ships <= required:
                continue
            fraction = (
                coefficients.unclaimed_fleet_fraction
                if target.owner is Player.NEUTRAL
                else coefficients.opponent_fleet_fraction
            )
            num_ships = max(1.0, min(required, source.n_ships * fraction))
            candidates.append(
                Candidate(
                    action=send_fleet(player, source.id, target.id, num_ships),
                    weight=0.0,
                    distance=distance,
                    travel_time=travel_time,
                    predicted_defense=defense,
                    target_owner=target.owner,
                )
            )
    return candidates


def reinforce_weak_territory(
    state: GameState,
    player: Player,
    sources: Iterable[Territory],
    config: AgentConfig,
) -> Action:
    vulnerable = [
        territory
        for territory in state.territories
        if territory.owner is player and territory.n_ships < config.reinforce_threshold
    ]
    donors = list(sources)
    if not vulnerable or not donors:
        return DO_NOTHING

    weakest = min(vulnerable, key=lambda territory: (territory.n_ships, territory.id))
    strongest = max(donors, key=lambda territory: (territory.n_ships, -territory.id))
    if strongest.id == weakest.id or strongest.n_ships <= config.reinforce_min_donor:
        return DO_NOTHING

    num_ships = min(strongest.n_ships * config.reinforce_fraction, config.reinforce_cap)
    return send_fleet(player, strongest.id, weakest.id, num_ships)


def validate_action(state: GameState, player: Player, action: Action) -> Action:
    """Return `action` if it can be issued on `state`, else DO_NOTHING.

    Fleet sizes above the source garrison are clamped to the garrison.
    """
    if action.is_noop:
        return DO_NOTHING
    source = state.get(action.source_id)
    destination = state.get(action.destination_id)
    if source is None or destination is None or source.id == destination.id:
        logger.warning("Discarding action with unknown or identical territories: %s", action.describe())
        return DO_NOTHING
    if source.owner is not player or source.transporter is not None:
        logger.warning("Discarding action from territory %s not idle and owned by %s", source.id, player.value)
        return DO_NOTHING
    if action.num_ships <= 0.0 or source.n_ships <= 0.0:
        return DO_NOTHING
    if action.num_ships > source.n_ships:
        return send_fleet(player, source.id, destination.id, source.n_ships)
    if action.player is not player:
        return send_fleet(player, source.id, destination.id, action.num_ships)
    return action
