"""Command-line interface for planning and generating email threads.

Two subcommands:

- ``plan`` sizes every beat, partitions it into threads and prints each
  thread's structure plan as JSON.  No external service is called.
- ``generate`` plans the same scenario and runs content generation,
  printing the run summary as JSON.

Usage::

    threadsmith plan --scenario scenario.json --seed 7
    threadsmith generate --scenario scenario.json --mode thread
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from threadsmith.app import configure_logging, describe_plans, plan_scenario, run_pipeline
from threadsmith.config import Settings, get_settings
from threadsmith.domain.errors import ThreadsmithError
from threadsmith.scenario import Scenario, load_scenario

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for both subcommands.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(
        prog="threadsmith",
        description="Plan and generate synthetic email threads",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--scenario",
        type=Path,
        required=True,
        help="Path to the scenario JSON file",
    )
    common.add_argument(
        "--seed",
        type=int,
        help="Run seed (overrides the scenario and GENERATION_SEED)",
    )
    common.add_argument(
        "--output",
        type=Path,
        help="Write JSON to this file instead of stdout",
    )

    subparsers.add_parser(
        "plan",
        parents=[common],
        help="Print the volume estimate and per-thread structure plans",
    )

    generate = subparsers.add_parser(
        "generate",
        parents=[common],
        help="Generate content for every planned thread",
    )
    generate.add_argument(
        "--mode",
        type=str,
        choices=["email", "thread"],
        help="One request per email (default) or one per thread",
    )
    generate.add_argument(
        "--parallel",
        type=int,
        help="Maximum threads generated at once",
    )

    return parser


def apply_overrides(
    scenario: Scenario, settings: Settings, args: argparse.Namespace
) -> tuple[Scenario, Settings]:
    """Fold command-line flags into the scenario and settings.

    Flags win over both the environment and the scenario's ``config`` block,
    so ``--parallel`` is merged into the scenario config that
    :func:`~threadsmith.app.build_generation_config` applies last.
    """
    scenario_updates: dict[str, Any] = {}
    if args.seed is not None:
        scenario_updates["seed"] = args.seed

    updates: dict[str, Any] = {}
    if getattr(args, "mode", None) is not None:
        updates["generation_mode"] = args.mode
    if getattr(args, "parallel", None) is not None:
        updates["parallel_threads"] = args.parallel
        scenario_updates["config"] = {**scenario.config, "parallel_threads": args.parallel}

    if scenario_updates:
        scenario = scenario.model_copy(update=scenario_updates)
    if updates:
        settings = settings.model_copy(update=updates)
    return scenario, settings


def _emit(payload: dict[str, Any], output: Path | None) -> None:
    text = json.dumps(payload, indent=2)
    if output is None:
        print(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    logger.info("output_written", path=str(output))


def run_plan(scenario: Scenario, settings: Settings) -> dict[str, Any]:
    config, beats, plans = plan_scenario(scenario, settings)
    return describe_plans(beats, plans, config)


def run_generate(scenario: Scenario, settings: Settings) -> dict[str, Any]:
    result = asyncio.run(run_pipeline(scenario, settings))
    return result.to_dict()


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the chosen subcommand and print JSON.

    Returns:
        Process exit status: 0 on success, 1 on invalid input, 2 when a
        generation run was cancelled or recorded errors.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(production=settings.production)

    try:
        scenario = load_scenario(args.scenario)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        logger.error("scenario_load_failed", path=str(args.scenario), error=str(exc))
        return 1

    scenario, settings = apply_overrides(scenario, settings, args)

    try:
        if args.command == "plan":
            payload = run_plan(scenario, settings)
        else:
            payload = run_generate(scenario, settings)
    except (ThreadsmithError, ValidationError) as exc:
        logger.error("command_failed", command=args.command, error=str(exc))
        return 1

    _emit(payload, args.output)
    if args.command == "generate" and (payload["errors"] or payload["was_cancelled"]):
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
