from __future__ import annotations

import threading

from planetwars_agent.decision.context import DecisionContext
from planetwars_agent.decision.runtime import DecisionRuntime
from planetwars_agent.decision.strategies import Simulator, create_strategy, validate_config
from planetwars_agent.decision.types import AgentConfig, DecisionResult
from planetwars_agent.domain.state import GameParams, GameState, Player
from planetwars_agent.game.actions import Action
from planetwars_agent.game.forward_model import ForwardModelFactory, OpponentModel, PlanetWarsForwardModel
from planetwars_agent.game.policies import DoNothingAgent


class PlanetWarsAgent:
    """
    Player wrapper around one decision strategy.

    Owns the DecisionContext (ownership snapshot, counters, carried plan)
    and threads it through every decision. The critic weights inside it are
    kept across matches.
    """

    def __init__(
        self,
        config: AgentConfig | None = None,
        *,
        forward_model_factory: ForwardModelFactory = PlanetWarsForwardModel,
        opponent_model: OpponentModel | None = None,
    ) -> None:
        self.config = config if config is not None else AgentConfig()
        validate_config(self.config)
        self.strategy = create_strategy(self.config.mode)
        self.forward_model_factory = forward_model_factory
        self.opponent_model = opponent_model if opponent_model is not None else DoNothingAgent()
        self.player = Player.PLAYER1
        self.params = GameParams()
        self.context = DecisionContext(player=self.player)
        self._decision_lock = threading.Lock()

    @property
    def agent_type(self) -> str:
        return f"Planet Wars Agent ({self.config.mode.value})"

    def prepare_to_play_as(self, player: Player, params: GameParams, opponent: str | None = None) -> str:
        if player is Player.NEUTRAL:
            raise ValueError("The agent must play as PLAYER1 or PLAYER2.")
        self.player = player
        self.params = params
        # critic weights outlive the match; everything else starts over
        self.context = DecisionContext(player=player, critic=self.context.critic)
        return self.agent_type

    def get_action(self, state: GameState) -> Action:
        return self.decide(state).action

    def decide(self, state: GameState, runtime: DecisionRuntime | None = None) -> DecisionResult:
        if not self._decision_lock.acquire(blocking=False):
            raise RuntimeError("PlanetWarsAgent does not support concurrent decisions.")
        try:
            simulator = Simulator(
                params=self.params,
                forward_model_factory=self.forward_model_factory,
                opponent_model=self.opponent_model,
            )
            if runtime is None:
                runtime = DecisionRuntime(time_budget_ms=self.config.time_budget_ms)
            return self.strategy.decide(state, self.context, self.config, simulator, runtime)
        finally:
            self._decision_lock.release()
