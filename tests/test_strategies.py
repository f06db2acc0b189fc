import unittest
from dataclasses import replace
from unittest import mock

from planetwars_agent.agent import PlanetWarsAgent
from planetwars_agent.decision.candidates import validate_action
from planetwars_agent.decision.context import DecisionContext
from planetwars_agent.decision.runtime import DecisionRuntime
from planetwars_agent.decision.strategies import (
    FALLBACK_NO_CANDIDATE,
    FALLBACK_NO_SOURCE,
    FALLBACK_REINFORCE,
    ActorCriticStrategy,
    EvolutionaryStrategy,
    HeuristicStrategy,
    HybridStrategy,
    RolloutStrategy,
    Simulator,
    create_strategy,
    validate_config,
)
from planetwars_agent.decision.types import EXPANSION_PRESET, AgentConfig, GamePhase, StrategyMode
from planetwars_agent.domain.state import GameParams, GameState, Player, Position, Territory
from planetwars_agent.game.actions import DO_NOTHING, send_fleet


def _territory(territory_id, owner, ships, x, y=0.0, growth=0.0, radius=1.0):
    return Territory(
        id=territory_id,
        owner=owner,
        n_ships=float(ships),
        growth_rate=float(growth),
        position=Position(float(x), float(y)),
        radius=float(radius),
    )


def _scenario_state(own_garrison):
    return GameState(
        territories=[
            _territory(0, Player.PLAYER1, own_garrison, 0),
            _territory(1, Player.NEUTRAL, 10, 5, growth=1),
        ]
    )


def _busy_state():
    return GameState(
        territories=[
            _territory(0, Player.PLAYER1, 90, 0, 0, growth=3, radius=6),
            _territory(1, Player.PLAYER1, 45, 0, 80, growth=2, radius=4),
            _territory(2, Player.NEUTRAL, 12, 40, 10, growth=2, radius=5),
            _territory(3, Player.NEUTRAL, 20, 60, 70, growth=4, radius=8),
            _territory(4, Player.NEUTRAL, 6, 100, 40, growth=1, radius=3),
            _territory(5, Player.PLAYER2, 35, 160, 20, growth=3, radius=6),
            _territory(6, Player.PLAYER2, 60, 170, 90, growth=2, radius=5),
        ]
    )


def _config(mode, **overrides):
    options = dict(
        mode=mode,
        seed=17,
        time_budget_ms=None,
        expansion=replace(EXPANSION_PRESET, safety_margin=1.3),
        rollout_count=2,
        rollout_depth=8,
        evolution_evals=4,
        sequence_length=10,
    )
    options.update(overrides)
    return AgentConfig(**options)


def _agent(mode, params=None, **overrides):
    agent = PlanetWarsAgent(_config(mode, **overrides))
    agent.prepare_to_play_as(Player.PLAYER1, params or GameParams())
    return agent


class ScenarioTests(unittest.TestCase):
    params = GameParams(transporter_speed=1.0)

    def test_feasible_expansion_sends_required_fleet(self) -> None:
        for mode in (StrategyMode.HEURISTIC, StrategyMode.ROLLOUT, StrategyMode.ACTOR_CRITIC, StrategyMode.HYBRID):
            with self.subTest(mode=mode):
                result = _agent(mode, self.params).decide(_scenario_state(50))

                self.assertIs(result.phase, GamePhase.EXPANSION)
                self.assertEqual(result.action.source_id, 0)
                self.assertEqual(result.action.destination_id, 1)
                self.assertAlmostEqual(result.action.num_ships, 19.5)
                self.assertIsNone(result.fallback)

    def test_infeasible_single_territory_returns_noop(self) -> None:
        for mode in StrategyMode:
            with self.subTest(mode=mode):
                result = _agent(mode, self.params).decide(_scenario_state(15))

                self.assertIs(result.action, DO_NOTHING)
                self.assertEqual(result.fallback, FALLBACK_NO_CANDIDATE)
                self.assertEqual(result.candidates, [])

    def test_reinforcement_fallback_moves_ships_to_weakest(self) -> None:
        state = GameState(
            territories=[
                _territory(0, Player.PLAYER1, 5, 0),
                _territory(1, Player.PLAYER1, 40, 30),
                _territory(2, Player.PLAYER2, 500, 90),
            ]
        )
        for mode in StrategyMode:
            with self.subTest(mode=mode):
                result = _agent(mode, self.params).decide(state)

                self.assertEqual(result.action, send_fleet(Player.PLAYER1, 1, 0, 16.0))
                self.assertEqual(result.fallback, FALLBACK_REINFORCE)

    def test_no_source_returns_noop(self) -> None:
        state = GameState(
            territories=[
                _territory(0, Player.PLAYER1, 4, 0),
                _territory(1, Player.NEUTRAL, 1, 10),
            ]
        )
        result = _agent(StrategyMode.ROLLOUT).decide(state)

        self.assertIs(result.action, DO_NOTHING)
        self.assertEqual(result.fallback, FALLBACK_NO_SOURCE)


class StrategyBehaviourTests(unittest.TestCase):
    def test_every_mode_returns_a_valid_action(self) -> None:
        state = _busy_state()
        for mode in StrategyMode:
            with self.subTest(mode=mode):
                result = _agent(mode).decide(state)

                self.assertIs(result.mode, mode)
                self.assertFalse(result.action.is_noop)
                self.assertEqual(validate_action(state, Player.PLAYER1, result.action), result.action)
                source = state.get(result.action.source_id)
                self.assertLessEqual(result.action.num_ships, source.n_ships)

    def test_seeded_decisions_are_reproducible(self) -> None:
        for mode in (StrategyMode.ROLLOUT, StrategyMode.ACTOR_CRITIC, StrategyMode.EVOLUTIONARY):
            with self.subTest(mode=mode):
                first = _agent(mode).decide(_busy_state())
                second = _agent(mode).decide(_busy_state())

                self.assertEqual(first.action, second.action)
                self.assertEqual(first.scores, second.scores)

    def test_rollout_scores_every_pooled_candidate(self) -> None:
        result = _agent(StrategyMode.ROLLOUT).decide(_busy_state())

        self.assertEqual(sorted(result.scores), list(range(len(result.candidates))))
        best = max(result.scores, key=result.scores.get)
        self.assertEqual(result.action, result.candidates[best].action)

    def test_expired_runtime_returns_best_so_far(self) -> None:
        for mode in (StrategyMode.ROLLOUT, StrategyMode.ACTOR_CRITIC, StrategyMode.EVOLUTIONARY):
            with self.subTest(mode=mode):
                runtime = DecisionRuntime()
                runtime.cancel()
                result = _agent(mode).decide(_busy_state(), runtime=runtime)

                self.assertTrue(result.timed_out)
                self.assertEqual(result.action, result.candidates[0].action)

    def test_evolutionary_strategy_carries_plan_between_decisions(self) -> None:
        agent = _agent(StrategyMode.EVOLUTIONARY)
        agent.decide(_busy_state())
        first_plan = agent.context.plan_buffer

        self.assertIsNotNone(first_plan)
        self.assertEqual(len(first_plan), 10)
        agent.decide(_busy_state())
        self.assertEqual(agent.context.decisions, 2)
        self.assertEqual(len(agent.context.plan_buffer), 10)

    def test_evolutionary_never_idles_while_feasible_candidates_exist(self) -> None:
        state = GameState(
            territories=[
                _territory(0, Player.PLAYER1, 12, 0),
                _territory(1, Player.PLAYER1, 0, 100),
                _territory(2, Player.NEUTRAL, 1, 5),
                _territory(3, Player.PLAYER2, 5, 300),
            ]
        )
        for seed in range(30):
            with self.subTest(seed=seed):
                result = _agent(StrategyMode.EVOLUTIONARY, seed=seed).decide(state)

                self.assertGreater(len(result.candidates), 0)
                self.assertFalse(result.action.is_noop)
                self.assertIsNone(result.fallback)
                self.assertEqual(result.action.source_id, 0)

    def test_evolutionary_noop_plan_falls_back_to_top_candidate(self) -> None:
        with mock.patch("planetwars_agent.decision.strategies.decode_action", return_value=DO_NOTHING):
            result = _agent(StrategyMode.EVOLUTIONARY).decide(_busy_state())

        self.assertEqual(result.action, result.candidates[0].action)
        self.assertIsNone(result.fallback)

    def test_hybrid_switches_on_complexity(self) -> None:
        state = _busy_state()
        quiet = _agent(StrategyMode.HYBRID, complexity_threshold=0.99).decide(state)
        contested = _agent(StrategyMode.HYBRID, complexity_threshold=0.0).decide(state)

        self.assertEqual(len(quiet.scores), 1)
        self.assertEqual(len(contested.scores), len(contested.candidates))

    def test_neutral_targets_wait_for_attack_interval_outside_expansion(self) -> None:
        state = _busy_state()
        for territory_id in (4, 5, 6):
            state.get(territory_id).owner = Player.PLAYER1
        context = DecisionContext(player=Player.PLAYER1)
        config = _config(StrategyMode.HEURISTIC, neutral_attack_interval=3)
        simulator = Simulator(params=GameParams())
        strategy = HeuristicStrategy()

        first = strategy.decide(state, context, config, simulator)
        self.assertIs(first.phase, GamePhase.DOMINATION)
        self.assertTrue(first.action.is_noop or state.get(first.action.destination_id).owner is not Player.NEUTRAL)
        self.assertEqual(context.ticks_since_neutral_attack, 1)

        strategy.decide(state, context, config, simulator)
        third = strategy.decide(state, context, config, simulator)
        self.assertIs(state.get(third.action.destination_id).owner, Player.NEUTRAL)
        self.assertEqual(context.ticks_since_neutral_attack, 0)

    def test_opponent_captures_are_tracked_between_decisions(self) -> None:
        state = _busy_state()
        context = DecisionContext(player=Player.PLAYER1)
        config = _config(StrategyMode.HEURISTIC)
        strategy = HeuristicStrategy()
        strategy.decide(state, context, config, Simulator())

        state.get(2).owner = Player.PLAYER2
        self.assertEqual(context.observe_ownership(state), [2])
        self.assertEqual(context.observe_ownership(state), [])


class FactoryTests(unittest.TestCase):
    def test_create_strategy_maps_modes(self) -> None:
        self.assertIsInstance(create_strategy("heuristic"), HeuristicStrategy)
        self.assertIsInstance(create_strategy(StrategyMode.ROLLOUT), RolloutStrategy)
        self.assertIsInstance(create_strategy(StrategyMode.ACTOR_CRITIC), ActorCriticStrategy)
        self.assertIsInstance(create_strategy(StrategyMode.EVOLUTIONARY), EvolutionaryStrategy)
        self.assertIsInstance(create_strategy(StrategyMode.HYBRID), HybridStrategy)
        with self.assertRaises(ValueError):
            create_strategy("minimax")

    def test_validate_config_rejects_bad_values(self) -> None:
        validate_config(AgentConfig())
        for overrides in (
            {"time_budget_ms": 0.0},
            {"parallel_workers": -1},
            {"expansion": replace(EXPANSION_PRESET, safety_margin=0.0)},
            {"expansion": replace(EXPANSION_PRESET, unclaimed_fleet_fraction=1.5)},
            {"sequence_length": 9},
            {"rollout_depth": 0},
            {"critic_discount": 1.5},
            {"mutation_probability": -0.1},
            {"domination_ship_differential": 10.0},
        ):
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValueError):
                    validate_config(AgentConfig(**overrides))


class AgentTests(unittest.TestCase):
    def test_agent_rejects_neutral_seat(self) -> None:
        with self.assertRaises(ValueError):
            PlanetWarsAgent().prepare_to_play_as(Player.NEUTRAL, GameParams())

    def test_agent_rejects_invalid_config(self) -> None:
        with self.assertRaises(ValueError):
            PlanetWarsAgent(AgentConfig(rollout_count=0))

    def test_prepare_resets_match_state_but_keeps_critic(self) -> None:
        agent = _agent(StrategyMode.ACTOR_CRITIC)
        agent.decide(_busy_state())
        self.assertEqual(agent.context.decisions, 1)
        self.assertIsNotNone(agent.context.last_owners)
        critic = agent.context.critic
        learned = critic.values

        agent_type = agent.prepare_to_play_as(Player.PLAYER2, GameParams())
        self.assertIn("actor_critic", agent_type)
        self.assertIs(agent.context.player, Player.PLAYER2)
        self.assertEqual(agent.context.decisions, 0)
        self.assertIsNone(agent.context.last_owners)
        self.assertIs(agent.context.critic, critic)
        self.assertEqual(agent.context.critic.values, learned)

    def test_get_action_plays_for_seat(self) -> None:
        state = _busy_state()
        for territory in state.territories:
            if territory.owner is Player.PLAYER1:
                territory.owner = Player.PLAYER2
            elif territory.owner is Player.PLAYER2:
                territory.owner = Player.PLAYER1
        agent = _agent(StrategyMode.HEURISTIC)
        agent.prepare_to_play_as(Player.PLAYER2, GameParams())

        action = agent.get_action(state)
        self.assertIs(action.player, Player.PLAYER2)
        self.assertIs(state.get(action.source_id).owner, Player.PLAYER2)


if __name__ == "__main__":
    unittest.main()
