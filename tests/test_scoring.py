import random
import unittest
from dataclasses import replace

from planetwars_agent.decision.candidates import generate_candidates
from planetwars_agent.decision.phase import phase_coefficients
from planetwars_agent.decision.scoring import opponent_threat, rank_candidates, score_candidate
from planetwars_agent.decision.types import AgentConfig
from planetwars_agent.domain.state import GameParams, GameState, Player, Position, Territory, Transporter


def _territory(territory_id, owner, ships, x, y=0.0, growth=1.0, radius=5.0):
    return Territory(
        id=territory_id,
        owner=owner,
        n_ships=float(ships),
        growth_rate=float(growth),
        position=Position(float(x), float(y)),
        radius=float(radius),
    )


def _contested_state():
    return GameState(
        territories=[
            _territory(0, Player.PLAYER1, 120, 0, 0),
            _territory(1, Player.PLAYER1, 80, 0, 60),
            _territory(2, Player.NEUTRAL, 10, 40, 0, growth=3),
            _territory(3, Player.NEUTRAL, 6, 30, 50, growth=1, radius=3),
            _territory(4, Player.PLAYER2, 20, 80, 20, growth=2, radius=7),
            _territory(5, Player.PLAYER2, 15, 70, 70, growth=4, radius=9),
        ]
    )


class ScoringTests(unittest.TestCase):
    def setUp(self) -> None:
        self.params = GameParams()
        self.state = _contested_state()

    def _candidates(self, config):
        coefficients = phase_coefficients(self.state, Player.PLAYER1, config)
        return coefficients, generate_candidates(self.state, Player.PLAYER1, coefficients, self.params)

    def test_same_seed_gives_same_ranking(self) -> None:
        config = AgentConfig(jitter=0.5)
        coefficients, candidates = self._candidates(config)

        first = rank_candidates(candidates, self.state, Player.PLAYER1, coefficients, config, random.Random(42))
        second = rank_candidates(candidates, self.state, Player.PLAYER1, coefficients, config, random.Random(42))

        self.assertGreater(len(first), 1)
        self.assertEqual(first, second)

    def test_ranking_is_sorted_and_truncated_to_pool(self) -> None:
        config = AgentConfig(jitter=0.0)
        coefficients, candidates = self._candidates(config)

        ranked = rank_candidates(candidates, self.state, Player.PLAYER1, coefficients, config, random.Random(0))
        weights = [candidate.weight for candidate in ranked]
        self.assertEqual(weights, sorted(weights, reverse=True))

        pooled = rank_candidates(
            candidates, self.state, Player.PLAYER1, coefficients, config, random.Random(0), pool_size=2
        )
        self.assertEqual(pooled, ranked[:2])

    def test_jitter_stays_within_bound(self) -> None:
        quiet = AgentConfig(jitter=0.0)
        noisy = AgentConfig(jitter=0.25)
        coefficients, candidates = self._candidates(quiet)
        rng = random.Random(7)

        for candidate in candidates:
            base = score_candidate(candidate, self.state, Player.PLAYER1, coefficients, quiet, rng)
            jittered = score_candidate(candidate, self.state, Player.PLAYER1, coefficients, noisy, rng)
            self.assertGreaterEqual(jittered, base)
            self.assertLessEqual(jittered, base + 0.25)

    def test_target_in_transit_gets_transit_bonus(self) -> None:
        config = AgentConfig(jitter=0.0)
        coefficients, candidates = self._candidates(config)
        candidate = next(item for item in candidates if item.action.destination_id == 4)
        rng = random.Random(1)

        before = score_candidate(candidate, self.state, Player.PLAYER1, coefficients, config, rng)
        self.state.get(4).transporter = Transporter(
            owner=Player.PLAYER2,
            source_id=4,
            destination_id=1,
            n_ships=3.0,
            position=Position(79.0, 20.0),
            velocity=Position(-1.0, 0.0),
        )
        after = score_candidate(candidate, self.state, Player.PLAYER1, coefficients, config, rng)

        self.assertAlmostEqual(after, before * config.transit_bonus)

    def test_recently_captured_target_is_boosted(self) -> None:
        config = AgentConfig(jitter=0.0)
        coefficients, candidates = self._candidates(config)
        candidate = next(item for item in candidates if item.action.destination_id == 5)
        rng = random.Random(1)

        plain = score_candidate(candidate, self.state, Player.PLAYER1, coefficients, config, rng)
        captured = score_candidate(
            candidate,
            self.state,
            Player.PLAYER1,
            coefficients,
            config,
            rng,
            captured_ids={5},
            captured_mean_radius=9.0,
        )
        off_size = score_candidate(
            candidate,
            self.state,
            Player.PLAYER1,
            coefficients,
            config,
            rng,
            captured_ids={5},
            captured_mean_radius=20.0,
        )

        self.assertAlmostEqual(captured, plain * coefficients.defense_weight * config.captured_radius_boost)
        self.assertAlmostEqual(off_size, plain * coefficients.defense_weight)

    def test_opponent_threat_counts_only_nearby_territories(self) -> None:
        config = AgentConfig()
        target = _territory(9, Player.NEUTRAL, 5, 0, 0)
        state = GameState(
            territories=[
                target,
                _territory(10, Player.PLAYER2, 40, 4, 0),
                _territory(11, Player.PLAYER2, 400, 100, 0),
            ]
        )

        self.assertAlmostEqual(opponent_threat(target, state, Player.PLAYER1, config), 40 / 5 * config.threat_weight)


if __name__ == "__main__":
    unittest.main()
