from __future__ import annotations

import argparse

from cli.common import (
    add_log_dir_args,
    dispatch_subparser_help,
    find_run_log,
    list_run_logs,
    resolve_log_dir,
    tail,
)
from cli.render import RENDER, print_table


def build_logs_parser(subparsers: argparse._SubParsersAction) -> None:
    logs = subparsers.add_parser("logs", help="Browse run log files")
    lsub = logs.add_subparsers(dest="logs_cmd", required=True)

    help_p = lsub.add_parser("help", help="Show help for logs")
    help_p.add_argument("path", nargs="*", help="Subcommand path (e.g. list, show)")
    help_p.set_defaults(_help_parser=logs)

    add_log_dir_args(lsub.add_parser("list", help="List log files, newest first"))

    show_p = lsub.add_parser("show", help="Print the end of a log file")
    show_p.add_argument("name", help="Log file name or stem")
    show_p.add_argument("--tail", type=int, default=120, help="Lines from the end (0 = all)")
    add_log_dir_args(show_p)


def handle_logs(args: argparse.Namespace) -> int:
    if args.logs_cmd == "help":
        return dispatch_subparser_help(
            args._help_parser, list(getattr(args, "path", []) or [])
        )

    log_dir = resolve_log_dir(pipeline=args.pipeline, explicit=args.dir)
    logs = list_run_logs(log_dir)

    if args.logs_cmd == "list":
        rows = [
            [str(r.path.relative_to(log_dir)), f"{r.size / 1024:.1f} KiB", r.when]
            for r in logs
        ]
        print_table(["file", "size", "modified"], rows, title=str(log_dir))
        return 0

    match = find_run_log(logs, args.name)
    if match is None:
        RENDER.print(f"Log not found: {args.name}", markup=False)
        return 1

    for line in tail(match.path, args.tail):
        RENDER.print(line, markup=False, highlight=False)
    return 0
