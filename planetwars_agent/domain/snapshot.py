from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from .state import GameParams, GameState, Player, Position, Territory, Transporter


def state_from_dict(payload: Mapping[str, Any]) -> GameState:
    """Build a state snapshot from the JSON shape written by `state_to_dict`."""
    territories = []
    for raw in payload.get("territories", []):
        transporter = None
        raw_transporter = raw.get("transporter")
        if raw_transporter:
            transporter = Transporter(
                owner=Player(raw_transporter["owner"]),
                source_id=int(raw_transporter["source_id"]),
                destination_id=int(raw_transporter["destination_id"]),
                n_ships=float(raw_transporter["n_ships"]),
                position=_position(raw_transporter["position"]),
                velocity=_position(raw_transporter.get("velocity", (0.0, 0.0))),
            )
        territories.append(
            Territory(
                id=int(raw["id"]),
                owner=Player(raw.get("owner", Player.NEUTRAL.value)),
                n_ships=float(raw["n_ships"]),
                growth_rate=float(raw.get("growth_rate", 0.0)),
                position=_position(raw["position"]),
                radius=float(raw.get("radius", 1.0)),
                transporter=transporter,
            )
        )
    ids = [territory.id for territory in territories]
    if len(ids) != len(set(ids)):
        raise ValueError("Territory ids must be unique.")
    return GameState(territories=territories, game_tick=int(payload.get("game_tick", 0)))


def params_from_dict(payload: Mapping[str, Any]) -> GameParams:
    defaults = GameParams()
    return GameParams(
        width=int(payload.get("width", defaults.width)),
        height=int(payload.get("height", defaults.height)),
        transporter_speed=float(payload.get("transporter_speed", defaults.transporter_speed)),
        max_ticks=int(payload.get("max_ticks", defaults.max_ticks)),
        num_territories=int(payload.get("num_territories", defaults.num_territories)),
    )


def state_to_dict(state: GameState) -> dict[str, Any]:
    territories = []
    for territory in state.territories:
        entry: dict[str, Any] = {
            "id": territory.id,
            "owner": territory.owner.value,
            "n_ships": territory.n_ships,
            "growth_rate": territory.growth_rate,
            "position": [territory.position.x, territory.position.y],
            "radius": territory.radius,
        }
        if territory.transporter is not None:
            transporter = territory.transporter
            entry["transporter"] = {
                "owner": transporter.owner.value,
                "source_id": transporter.source_id,
                "destination_id": transporter.destination_id,
                "n_ships": transporter.n_ships,
                "position": [transporter.position.x, transporter.position.y],
                "velocity": [transporter.velocity.x, transporter.velocity.y],
            }
        territories.append(entry)
    return {"game_tick": state.game_tick, "territories": territories}


def load_snapshot(path: str | Path) -> tuple[GameState, GameParams]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return state_from_dict(payload), params_from_dict(payload.get("params", {}))


def _position(raw: Any) -> Position:
    if isinstance(raw, Mapping):
        return Position(float(raw["x"]), float(raw["y"]))
    x, y = raw
    return Position(float(x), float(y))
