from __future__ import annotations

import argparse

from branding import STAGEARR_BANNER, STAGEARR_HEADER
from env import ConfigError, get_env


# ------------------------------------------------------------
# Parser
# ------------------------------------------------------------


def build_run_parser(subparsers: argparse._SubParsersAction) -> None:
    run = subparsers.add_parser(
        "run", help="Run a pipeline (the built-in one unless a name is given)"
    )

    run.add_argument(
        "pipeline",
        nargs="?",
        default=None,
        help="Pipeline name (pipelines/<name>.json); omit for the built-in pipeline",
    )
    run.add_argument("--build-id", help="Build identifier (default: next counter value)")
    run.add_argument(
        "--strict",
        action="store_true",
        help="Abort as FAILURE when checkout or dependency installation fails",
    )
    run.add_argument(
        "--dry-run", action="store_true", help="Log commands without executing them"
    )
    run.add_argument("--verbose", action="store_true")
    run.add_argument("--quiet", action="store_true")


# ------------------------------------------------------------
# Handler
# ------------------------------------------------------------


def handle_run(args: argparse.Namespace) -> int:
    from logger import get_logger
    from runner import EXIT_CODES, run_once
    from cli.render import render_summary

    log = get_logger("stagearr")

    log.info(STAGEARR_BANNER)
    log.info(STAGEARR_HEADER("Pipeline Run"))

    # Force env resolution early so configuration errors surface cleanly
    try:
        env = get_env()
        result = run_once(pipeline=args.pipeline)
    except ConfigError as e:
        log.error(f"Configuration error: {e}")
        return 2

    if not env.quiet:
        render_summary(result, output_limit=env.output_limit)

    return EXIT_CODES[result.outcome]
