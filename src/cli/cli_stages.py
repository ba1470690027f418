from __future__ import annotations

import argparse

from env import ConfigError, PIPELINES_DIR
from cli.render import RENDER, print_table


def build_stages_parser(subparsers: argparse._SubParsersAction) -> None:
    stages = subparsers.add_parser(
        "stages", help="Show the stage table of a pipeline, or list pipelines"
    )
    stages.add_argument(
        "pipeline",
        nargs="?",
        default=None,
        help="Pipeline name (omit for the built-in pipeline)",
    )
    stages.add_argument(
        "--list", action="store_true", help="List available pipeline definitions"
    )


def handle_stages(args: argparse.Namespace) -> int:
    if args.list:
        RENDER.print("default (built-in)")
        for p in sorted(PIPELINES_DIR.glob("*.json")):
            RENDER.print(p.stem)
        return 0

    from runner import resolve_definition

    try:
        definition = resolve_definition(args.pipeline)
    except ConfigError as e:
        RENDER.print(f"Invalid pipeline: {e}", markup=False)
        return 2

    rows = [
        [str(i), stage.name, stage.policy.value, stage.action.describe()]
        for i, stage in enumerate(definition.stages, start=1)
    ]
    print_table(["#", "stage", "policy", "action"], rows, title=definition.name)

    if definition.cleanup:
        print_table(
            ["cleanup", "action"],
            [[c.name, c.action.describe()] for c in definition.cleanup],
        )
    if definition.artifacts:
        RENDER.print("Artifacts: " + ", ".join(definition.artifacts), markup=False)
    return 0
