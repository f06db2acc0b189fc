from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from planetwars_agent.domain.state import Player


@dataclass(frozen=True)
class Action:
    player: Optional[Player]
    source_id: Optional[int]
    destination_id: Optional[int]
    num_ships: float = 0.0

    @property
    def is_noop(self) -> bool:
        return self.source_id is None or self.destination_id is None

    def describe(self) -> str:
        if self.is_noop:
            return "do nothing"
        return f"{self.num_ships:.1f} ships {self.source_id} -> {self.destination_id}"


DO_NOTHING = Action(player=None, source_id=None, destination_id=None, num_ships=0.0)


def send_fleet(player: Player, source_id: int, destination_id: int, num_ships: float) -> Action:
    return Action(
        player=player,
        source_id=int(source_id),
        destination_id=int(destination_id),
        num_ships=float(num_ships),
    )
