"""Command line entry point: load a plan, fire rules, dump the graph."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import click
import yaml

from ..config import Config, load_config
from ..optimizer import (
    LoggingListener,
    PlannerError,
    VolcanoPlanner,
    create_rules,
)
from ..plan import PlanLoadError, build_plan
from ..utils.logging import configure_logging


def load_plan_document(plan_path: str) -> dict:
    """Read a YAML plan file; the tree may sit under a top-level ``root``."""
    with open(Path(plan_path), "r") as f:
        document = yaml.safe_load(f) or {}
    if "root" in document:
        return document["root"]
    return document


def plan_file(
    config: Config,
    plan_path: str,
    rule_names: List[str],
    max_iterations: Optional[int],
) -> Tuple[VolcanoPlanner, LoggingListener, int]:
    """Register the plan, enable rules and drain the match queue."""
    listener = LoggingListener()
    planner = VolcanoPlanner(config.planner, listener=listener)
    names = rule_names or config.planner.enabled_rules
    for rule in create_rules(names):
        planner.add_rule(rule)

    root = build_plan(planner.cluster, load_plan_document(plan_path))
    planner.set_root(root)
    calls = planner.run(max_iterations)
    return planner, listener, calls


@click.command()
@click.argument("plan_path", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, readable=True),
    help="Path to YAML config file.",
)
@click.option("-r", "--rule", "rule_names", multiple=True, help="Rule to enable (repeatable).")
@click.option("--max-iterations", type=int, default=None, help="Maximum number of rule calls.")
def cli(
    plan_path: str,
    config_path: Optional[str],
    rule_names: Tuple[str, ...],
    max_iterations: Optional[int],
) -> None:
    """Register PLAN_PATH, fire rules until the queue is empty and print
    the resulting equivalence graph."""
    try:
        config = load_config(config_path) if config_path else Config()
    except (ValueError, yaml.YAMLError) as exc:
        raise click.ClickException(f"Invalid config {config_path}: {exc}")

    configure_logging(config.logging)
    try:
        planner, listener, calls = plan_file(config, plan_path, list(rule_names), max_iterations)
    except (PlannerError, PlanLoadError, ValueError, KeyError) as exc:
        raise click.ClickException(str(exc))

    click.echo(planner.dump())
    click.echo(
        f"{calls} rule calls, {listener.attempts} attempts, "
        f"{listener.productions} productions, {len(planner.graph)} sets"
    )


if __name__ == "__main__":
    cli()
