from __future__ import annotations

from typing import Callable, Mapping, Protocol

from planetwars_agent.domain.state import GameParams, GameState, Player, Position, Transporter

from .actions import Action


class ForwardModel(Protocol):
    state: GameState

    def step(self, actions: Mapping[Player, Action]) -> None:
        ...

    def is_terminal(self) -> bool:
        ...

    def get_ships(self, player: Player) -> float:
        ...


ForwardModelFactory = Callable[[GameState, GameParams], ForwardModel]


class OpponentModel(Protocol):
    def get_action(self, state: GameState) -> Action:
        ...


class PlanetWarsForwardModel:
    """
    Reference tick simulation for the decision engine.

    Advances the state it was given in place:
    - launch one fleet per player (invalid launches are ignored)
    - move fleets, resolve arrivals against the destination garrison
    - grow every owned territory by its growth rate
    """

    def __init__(self, state: GameState, params: GameParams) -> None:
        self.state = state
        self.params = params

    def step(self, actions: Mapping[Player, Action]) -> None:
        for player, action in actions.items():
            self._launch(player, action)
        self._move_transporters()
        self._grow()
        self.state.game_tick += 1

    def is_terminal(self) -> bool:
        if self.state.game_tick >= self.params.max_ticks:
            return True
        return not (self._has_presence(Player.PLAYER1) and self._has_presence(Player.PLAYER2))

    def get_ships(self, player: Player) -> float:
        return self.state.garrison_total(player) + self.state.fleet_total(player)

    def _has_presence(self, player: Player) -> bool:
        for territory in self.state.territories:
            if territory.owner is player:
                return True
            if territory.transporter is not None and territory.transporter.owner is player:
                return True
        return False

    def _launch(self, player: Player, action: Action | None) -> None:
        if action is None or action.is_noop:
            return
        if action.player is not None and action.player is not player:
            return
        source = self.state.get(action.source_id)
        destination = self.state.get(action.destination_id)
        if source is None or destination is None or source is destination:
            return
        if source.owner is not player or source.transporter is not None:
            return
        ships = float(action.num_ships)
        if ships <= 0.0 or ships > source.n_ships:
            return
        distance = source.position.distance(destination.position)
        if distance <= 0.0:
            return

        speed = self.params.transporter_speed
        velocity = Position(
            (destination.position.x - source.position.x) / distance * speed,
            (destination.position.y - source.position.y) / distance * speed,
        )
        source.n_ships -= ships
        source.transporter = Transporter(
            owner=player,
            source_id=source.id,
            destination_id=destination.id,
            n_ships=ships,
            position=source.position,
            velocity=velocity,
        )

    def _move_transporters(self) -> None:
        speed = self.params.transporter_speed
        arrivals = []
        for territory in self.state.territories:
            transporter = territory.transporter
            if transporter is None:
                continue
            destination = self.state.get(transporter.destination_id)
            if destination is None:
                territory.transporter = None
                continue
            remaining = transporter.position.distance(destination.position)
            if remaining <= speed or remaining <= destination.radius:
                arrivals.append((territory, transporter, destination))
            else:
                transporter.position = transporter.position.add(transporter.velocity)

        for source, transporter, destination in arrivals:
            source.transporter = None
            if destination.owner is transporter.owner:
                destination.n_ships += transporter.n_ships
                continue
            destination.n_ships -= transporter.n_ships
            if destination.n_ships < 0.0:
                destination.owner = transporter.owner
                destination.n_ships = -destination.n_ships

    def _grow(self) -> None:
        for territory in self.state.territories:
            if territory.owner is not Player.NEUTRAL:
                territory.n_ships += territory.growth_rate
