from __future__ import annotations

import logging
import os
import re
import shlex
import signal
import subprocess
import threading
from dataclasses import dataclass
from typing import Sequence

from logger import get_logger
from logger.console import log_passthrough
from stages.base import ActionContext, ActionResult, StageFault, StageTimeout

log = get_logger("stagearr.stages.command")

TAIL_LINES = 200


_CHILD_LEVEL_RE = re.compile(
    r"""
    ^\s*
    (?:
        npm\s+(WARN|ERR!|error|warn)
        |
        \[\s*(DEBUG|INFO|WARNING|WARN|ERROR|CRITICAL)\s*\]
        |
        (DEBUG|INFO|WARNING|ERROR|CRITICAL):
    )
    \s*
    (.*\S)?\s*$
    """,
    re.VERBOSE | re.IGNORECASE,
)

_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERR!": logging.ERROR,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_child_level(line: str) -> tuple[int | None, str]:
    m = _CHILD_LEVEL_RE.match(line)
    if not m:
        return None, line.rstrip()

    lvl = (m.group(1) or m.group(2) or m.group(3) or "").upper()
    if m.group(1):
        # npm lines keep their prefix, it tells the reader which tool spoke
        return _LEVEL_MAP.get(lvl), line.strip()
    rest = (m.group(4) or "").rstrip()
    return _LEVEL_MAP.get(lvl), rest


_POSIX = os.name == "posix"


def _kill_tree(proc: subprocess.Popen) -> None:
    if not _POSIX:
        proc.kill()
        return
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def _run_streaming(argv: Sequence[str], ctx: ActionContext) -> ActionResult:
    env = os.environ.copy()
    env.update(ctx.env)

    try:
        proc = subprocess.Popen(
            list(argv),
            cwd=str(ctx.cwd) if ctx.cwd else None,
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            bufsize=1,
            # own process group, so a timeout can take down sh -> node trees
            start_new_session=_POSIX,
        )
    except OSError as e:
        raise StageFault(f"could not launch {argv[0]!r}: {e}") from e

    timed_out = threading.Event()

    def _kill() -> None:
        timed_out.set()
        _kill_tree(proc)

    timer = threading.Timer(ctx.timeout, _kill) if ctx.timeout else None
    if timer is not None:
        timer.daemon = True
        timer.start()

    tail_lines: list[str] = []
    try:
        assert proc.stdout is not None
        for raw in proc.stdout:
            line = raw.rstrip("\n")
            if not line:
                continue

            tail_lines.append(line)
            if len(tail_lines) > TAIL_LINES:
                del tail_lines[0]

            level, msg = _parse_child_level(line)
            log_passthrough(level if level is not None else logging.INFO, msg)

        exit_code = proc.wait()
    finally:
        if timer is not None:
            timer.cancel()

    if timed_out.is_set():
        raise StageTimeout(f"{argv[0]} timed out after {ctx.timeout:g}s")

    return ActionResult(exit_code=exit_code, output="\n".join(tail_lines))


@dataclass(frozen=True)
class CommandAction:
    """
    Run one or more external commands in order.

    Every command runs even if an earlier one failed; the first non-zero
    exit code is reported. Multi-command stages are used for tiered checks
    (e.g. a basic audit followed by a stricter one).
    """

    commands: tuple[tuple[str, ...], ...]

    @classmethod
    def of(cls, *commands: Sequence[str]) -> CommandAction:
        if not commands:
            raise ValueError("CommandAction needs at least one command")
        return cls(tuple(tuple(str(a) for a in c) for c in commands))

    def describe(self) -> str:
        return " && ".join(shlex.join(c) for c in self.commands)

    def run(self, ctx: ActionContext) -> ActionResult:
        exit_code = 0
        outputs: list[str] = []

        for argv in self.commands:
            log.debug(f"$ {shlex.join(argv)}")
            result = _run_streaming(argv, ctx)
            outputs.append(result.output)

            if result.exit_code != 0:
                log.warning(f"{argv[0]} exited with {result.exit_code}")
                if exit_code == 0:
                    exit_code = result.exit_code

        output = "\n".join(o for o in outputs if o)
        tail = "\n".join(output.splitlines()[-TAIL_LINES:])
        return ActionResult(exit_code=exit_code, output=tail)
