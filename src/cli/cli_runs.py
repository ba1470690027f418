from __future__ import annotations

import argparse

from rich.text import Text

from cli.common import (
    add_log_dir_args,
    dispatch_subparser_help,
    find_run_log,
    infer_build_id,
    infer_run_status,
    list_run_logs,
    resolve_log_dir,
    tail,
)
from cli.render import RENDER, OUTCOME_STYLE, print_table


def build_runs_parser(sub: argparse._SubParsersAction) -> None:
    p = sub.add_parser("runs", help="Inspect past runs (from their logs)")
    sp = p.add_subparsers(dest="runs_cmd", required=True)

    help_p = sp.add_parser("help", help="Show help for runs")
    help_p.add_argument("path", nargs="*", help="Subcommand path")
    help_p.set_defaults(_help_parser=p)

    add_log_dir_args(sp.add_parser("list", help="List runs, newest first"))
    add_log_dir_args(sp.add_parser("latest", help="Show the most recent run"))

    show_p = sp.add_parser("show", help="Show one run and the end of its log")
    show_p.add_argument("run_id", help="Log file name or stem (e.g. run-2026-01-01_10-00-00)")
    show_p.add_argument("--tail", type=int, default=40, help="Lines to show from the end")
    add_log_dir_args(show_p)


def _status(value: str) -> Text:
    return Text(value, style=OUTCOME_STYLE.get(value, "dim"))


def handle_runs(args: argparse.Namespace) -> int:
    if args.runs_cmd == "help":
        return dispatch_subparser_help(
            args._help_parser, list(getattr(args, "path", []) or [])
        )

    runs = list_run_logs(resolve_log_dir(pipeline=args.pipeline, explicit=args.dir))

    if args.runs_cmd == "list":
        rows = [
            [
                r.run_id,
                r.pipeline,
                "#" + infer_build_id(r.path),
                _status(infer_run_status(r.path)),
                r.when,
            ]
            for r in runs
        ]
        print_table(["run", "pipeline", "build", "outcome", "finished"], rows)
        return 0

    if args.runs_cmd == "latest":
        match = runs[0] if runs else None
    else:
        match = find_run_log(runs, args.run_id)

    if match is None:
        RENDER.print("No runs found" if args.runs_cmd == "latest" else f"Run not found: {args.run_id}")
        return 1

    RENDER.print(Text.assemble(("Run:      ", "dim"), match.run_id))
    RENDER.print(Text.assemble(("Pipeline: ", "dim"), match.pipeline))
    RENDER.print(Text.assemble(("Build:    ", "dim"), "#" + infer_build_id(match.path)))
    RENDER.print(Text.assemble(("Outcome:  ", "dim"), _status(infer_run_status(match.path))))
    RENDER.print(Text.assemble(("Finished: ", "dim"), match.when))
    RENDER.print(Text.assemble(("Log:      ", "dim"), str(match.path)))

    if args.runs_cmd == "show":
        RENDER.print()
        for line in tail(match.path, args.tail):
            RENDER.print(line, markup=False, highlight=False)
    return 0
