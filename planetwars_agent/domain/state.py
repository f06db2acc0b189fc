from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional


class Player(str, Enum):
    PLAYER1 = "player1"
    PLAYER2 = "player2"
    NEUTRAL = "neutral"

    def opponent(self) -> "Player":
        if self is Player.PLAYER1:
            return Player.PLAYER2
        if self is Player.PLAYER2:
            return Player.PLAYER1
        return Player.NEUTRAL


@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def distance(self, other: "Position") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def add(self, other: "Position") -> "Position":
        return Position(self.x + other.x, self.y + other.y)


@dataclass
class Transporter:
    """Fleet in flight, attached to the territory it was launched from."""

    owner: Player
    source_id: int
    destination_id: int
    n_ships: float
    position: Position
    velocity: Position

    def clone(self) -> "Transporter":
        return Transporter(
            owner=self.owner,
            source_id=self.source_id,
            destination_id=self.destination_id,
            n_ships=float(self.n_ships),
            position=self.position,
            velocity=self.velocity,
        )


@dataclass
class Territory:
    id: int
    owner: Player
    n_ships: float
    growth_rate: float
    position: Position
    radius: float
    transporter: Optional[Transporter] = None

    def clone(self) -> "Territory":
        return Territory(
            id=self.id,
            owner=self.owner,
            n_ships=float(self.n_ships),
            growth_rate=float(self.growth_rate),
            position=self.position,
            radius=float(self.radius),
            transporter=self.transporter.clone() if self.transporter is not None else None,
        )

    @property
    def in_transit(self) -> bool:
        return self.transporter is not None


@dataclass(frozen=True)
class GameParams:
    width: int = 640
    height: int = 480
    transporter_speed: float = 3.0
    max_ticks: int = 2_000
    num_territories: int = 20


@dataclass
class GameState:
    territories: List[Territory]
    game_tick: int = 0
    _lookup: Dict[int, Territory] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._lookup = {territory.id: territory for territory in self.territories}

    def clone(self) -> "GameState":
        return GameState(
            territories=[territory.clone() for territory in self.territories],
            game_tick=self.game_tick,
        )

    def get(self, territory_id: int | None) -> Territory | None:
        if territory_id is None:
            return None
        return self._lookup.get(territory_id)

    def owned_by(self, player: Player) -> list[Territory]:
        return [territory for territory in self.territories if territory.owner is player]

    def count_owned(self, player: Player) -> int:
        return sum(1 for territory in self.territories if territory.owner is player)

    def garrison_total(self, player: Player) -> float:
        """Ships stationed on territories, fleets in flight excluded."""
        return float(sum(territory.n_ships for territory in self.territories if territory.owner is player))

    def fleet_total(self, player: Player) -> float:
        return float(
            sum(
                territory.transporter.n_ships
                for territory in self.territories
                if territory.transporter is not None and territory.transporter.owner is player
            )
        )


def ship_differential(state: GameState, player: Player) -> float:
    return state.garrison_total(player) - state.garrison_total(player.opponent())


def territory_differential(state: GameState, player: Player) -> int:
    return state.count_owned(player) - state.count_owned(player.opponent())


def mean_radius(territories: Iterable[Territory]) -> float:
    radii = [territory.radius for territory in territories]
    if not radii:
        return 0.0
    return sum(radii) / len(radii)
