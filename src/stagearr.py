#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys

from bootstrap import bootstrap_base_env, bootstrap_run_context


def _dispatch_help(argv: list[str]) -> int:
    # Support:
    #   stagearr help
    #   stagearr help runs
    #   stagearr runs help
    argv = [a for a in argv if a != "help"]
    parser = build_parser()

    if not argv:
        parser.print_help()
        return 0

    # Try progressively shorter prefixes until argparse accepts "--help"
    for i in range(len(argv), 0, -1):
        try:
            build_parser().parse_args(argv[:i] + ["--help"])
        except SystemExit as e:
            if e.code == 0:
                return 0

    parser.print_help()
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="stagearr",
        description="Sequential CI/CD stage runner with SUCCESS/UNSTABLE/FAILURE outcomes",
    )

    sub = p.add_subparsers(dest="command", required=True)

    help_cmd = sub.add_parser("help", help="Show help")
    help_cmd.add_argument("path", nargs="*", help="Command path to show help for")
    help_cmd.set_defaults(_help=True)

    # Keep imports inside builder to avoid early side effects.
    from cli.cli_env import build_env_parser
    from cli.cli_run import build_run_parser
    from cli.cli_stages import build_stages_parser
    from cli.cli_runs import build_runs_parser
    from cli.cli_logs import build_logs_parser

    build_run_parser(sub)
    build_stages_parser(sub)
    build_env_parser(sub)
    build_runs_parser(sub)
    build_logs_parser(sub)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    # Load .env and base environment early
    bootstrap_base_env()

    parser = build_parser()
    args = parser.parse_args(argv)

    # Unified help routing
    if getattr(args, "_help", False):
        return _dispatch_help(list(getattr(args, "path", []) or []))

    # Stamp run context early (so stage subprocesses inherit it)
    bootstrap_run_context(
        command=args.command,
        pipeline=getattr(args, "pipeline", None) if args.command == "run" else None,
        build_id=getattr(args, "build_id", None),
        verbose=bool(getattr(args, "verbose", False)),
        quiet=bool(getattr(args, "quiet", False)),
        strict=bool(getattr(args, "strict", False)),
        dry_run=bool(getattr(args, "dry_run", False)),
    )

    # Initialize logging AFTER run-context env stamping
    from logger import init_logging, get_logger

    init_logging()

    log = get_logger("stagearr")
    log.debug(f"Command: {args.command}")

    # Dispatch
    if args.command == "run":
        from cli.cli_run import handle_run

        return handle_run(args)

    if args.command == "stages":
        from cli.cli_stages import handle_stages

        return handle_stages(args)

    if args.command == "env":
        from cli.cli_env import handle_env

        return handle_env(args)

    if args.command == "runs":
        from cli.cli_runs import handle_runs

        return handle_runs(args)

    if args.command == "logs":
        from cli.cli_logs import handle_logs

        return handle_logs(args)

    raise RuntimeError(f"Unknown command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
