from __future__ import annotations

import argparse
import shutil
from pathlib import Path

from rich.text import Text

from env import ConfigError, Environment, get_env
from cli.common import dispatch_subparser_help
from cli.render import RENDER, print_table


def build_env_parser(subparsers: argparse._SubParsersAction) -> None:
    env = subparsers.add_parser("env", help="Environment utilities")
    sub = env.add_subparsers(dest="env_cmd", required=True)

    help_p = sub.add_parser("help", help="Show help for env")
    help_p.add_argument("path", nargs="*", help="Subcommand path")
    help_p.set_defaults(_help_parser=env)

    sub.add_parser("dump", help="Show the resolved runtime configuration")
    sub.add_parser("check", help="Check that git, npm and docker can be found")


def handle_env(args: argparse.Namespace) -> int:
    if args.env_cmd == "help":
        return dispatch_subparser_help(
            args._help_parser, list(getattr(args, "path", []) or [])
        )

    try:
        env = get_env()
    except ConfigError as e:
        RENDER.print(f"Configuration error: {e}", markup=False)
        return 2

    if args.env_cmd == "dump":
        return _dump(env)
    if args.env_cmd == "check":
        return _check(env)

    raise RuntimeError(f"Unknown env action: {args.env_cmd}")


def _dump(env: Environment) -> int:
    RENDER.print("\n[bold]Runtime Environment[/bold]")
    for section, values in env.as_dict().items():
        print_table(["key", "value"], [[k, v] for k, v in values.items()], title=section)
    return 0


def _resolve_tool(exe: str, node_home: str) -> str | None:
    if node_home:
        candidate = Path(node_home).expanduser() / "bin" / exe
        if candidate.exists():
            return str(candidate)
    return shutil.which(exe)


def _check(env: Environment) -> int:
    tools = {"git": env.git_exe, "npm": env.npm_exe, "docker": env.docker_exe}

    rows: list[list[str | Text]] = []
    missing = 0
    for name, exe in tools.items():
        found = _resolve_tool(exe, env.node_home if name == "npm" else "")
        if found is None:
            missing += 1
        rows.append(
            [
                name,
                exe,
                Text(found, style="green") if found else Text("not found", style="red"),
            ]
        )

    print_table(["tool", "configured", "resolved"], rows, title="Toolchain")
    # a missing tool fails its stages at run time, it does not stop the run
    return 1 if missing else 0
