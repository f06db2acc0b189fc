from __future__ import annotations

import json
import logging

import click
from rich.console import Console
from rich.table import Table

from planetwars_agent.agent import PlanetWarsAgent
from planetwars_agent.decision.types import AgentConfig, DecisionResult, PhaseMetric, StrategyMode
from planetwars_agent.domain.snapshot import load_snapshot
from planetwars_agent.domain.state import Player

PLAYER_CHOICES = [Player.PLAYER1.value, Player.PLAYER2.value]


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level for the decision engine.",
)
def main(log_level: str) -> None:
    """Planet Wars decision engine tools."""
    logging.basicConfig(level=getattr(logging, log_level.upper()), format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.option("--player", default=Player.PLAYER1.value, show_default=True, type=click.Choice(PLAYER_CHOICES))
@click.option(
    "--mode",
    default=StrategyMode.ACTOR_CRITIC.value,
    show_default=True,
    type=click.Choice([mode.value for mode in StrategyMode]),
)
@click.option(
    "--phase-metric",
    default=PhaseMetric.TERRITORY_SHARE.value,
    show_default=True,
    type=click.Choice([metric.value for metric in PhaseMetric]),
)
@click.option("--seed", default=None, type=int, help="Seed for jitter, rollouts and mutation.")
@click.option(
    "--time-budget-ms",
    default=None,
    type=click.FloatRange(min=0.0, min_open=True),
    help="Soft decision deadline. Default: no deadline.",
)
@click.option("--top", default=10, show_default=True, type=click.IntRange(1, None), help="Candidate rows to print.")
@click.option("--as-json", is_flag=True, help="Print the decision as JSON instead of a table.")
def decide(
    snapshot: str,
    player: str,
    mode: str,
    phase_metric: str,
    seed: int | None,
    time_budget_ms: float | None,
    top: int,
    as_json: bool,
) -> None:
    """Run one decision on a JSON state SNAPSHOT and show the ranked candidates."""
    console = Console()
    try:
        state, params = load_snapshot(snapshot)
    except (KeyError, TypeError, ValueError) as exc:
        raise click.BadParameter(f"Unreadable snapshot: {exc}", param_hint="SNAPSHOT") from exc

    config = AgentConfig(
        mode=StrategyMode(mode),
        phase_metric=PhaseMetric(phase_metric),
        seed=seed,
        time_budget_ms=time_budget_ms,
    )
    agent = PlanetWarsAgent(config)
    agent.prepare_to_play_as(Player(player), params)
    result = agent.decide(state)

    if as_json:
        click.echo(json.dumps(_result_payload(result, top), indent=2))
        return

    table = Table(title=f"{agent.agent_type} - tick {state.game_tick}")
    table.add_column("#", justify="right")
    table.add_column("Source", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Owner")
    table.add_column("Ships", justify="right")
    table.add_column("Defense", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Score", justify="right")
    for index, candidate in enumerate(result.candidates[:top]):
        score = result.scores.get(index)
        table.add_row(
            str(index + 1),
            str(candidate.action.source_id),
            str(candidate.action.destination_id),
            candidate.target_owner.value,
            f"{candidate.action.num_ships:.1f}",
            f"{candidate.predicted_defense:.1f}",
            f"{candidate.weight:.4f}",
            f"{score:.2f}" if score is not None else "-",
        )
    if result.candidates:
        console.print(table)

    phase = result.phase.value if result.phase is not None else "-"
    console.print(f"Phase: [bold]{phase}[/bold]  Runtime: {result.runtime_ms:.1f} ms")
    if result.fallback:
        console.print(f"[yellow]Fallback:[/yellow] {result.fallback}")
    if result.timed_out:
        console.print("[yellow]Time budget exhausted; best candidate so far returned.[/yellow]")
    console.print(f"[green]Action:[/green] {result.action.describe()}")


def _result_payload(result: DecisionResult, top: int) -> dict:
    return {
        "action": {
            "source_id": result.action.source_id,
            "destination_id": result.action.destination_id,
            "num_ships": result.action.num_ships,
        },
        "mode": result.mode.value,
        "phase": result.phase.value if result.phase is not None else None,
        "fallback": result.fallback,
        "timed_out": result.timed_out,
        "runtime_ms": result.runtime_ms,
        "candidates": [
            {
                "source_id": candidate.action.source_id,
                "destination_id": candidate.action.destination_id,
                "num_ships": candidate.action.num_ships,
                "weight": candidate.weight,
                "score": result.scores.get(index),
            }
            for index, candidate in enumerate(result.candidates[:top])
        ],
    }


if __name__ == "__main__":
    main()
