from __future__ import annotations

import argparse
import re
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from env import LOGS_DIR


def dispatch_subparser_help(
    parser: argparse.ArgumentParser, path: list[str] | None
) -> int:
    """`X help [subcmd ...]` for a subtree parser."""
    if not path:
        parser.print_help()
        return 0

    try:
        parser.parse_args(path + ["--help"])
    except SystemExit:
        pass
    return 0


def add_log_dir_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--pipeline", help="Only logs of this pipeline (logs/run/<pipeline>/)")
    p.add_argument("--dir", help="Explicit log directory")


def resolve_log_dir(*, pipeline: str | None, explicit: str | None) -> Path:
    if explicit:
        return Path(explicit).expanduser().resolve()

    base = LOGS_DIR / "run"
    return (base / pipeline).resolve() if pipeline else base.resolve()


# ----------------------------
# Run status inference (log-driven)
# ----------------------------

KNOWN_STATUSES = ("SUCCESS", "UNSTABLE", "FAILURE")

_STATUS_RE = re.compile(r"RUN_STATUS=(\w+)")
_BUILD_RE = re.compile(r"\| #(\d+) \|")


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def infer_run_status(path: Path) -> str:
    """
    The last RUN_STATUS=<SUCCESS|UNSTABLE|FAILURE> line wins.

    A log without one belongs to a run that is still going or was killed;
    a runner fault logged before the kill still counts as FAILURE.
    """
    try:
        text = _read(path)
    except OSError:
        return "unknown"

    found = [s for s in _STATUS_RE.findall(text) if s in KNOWN_STATUSES]
    if found:
        return found[-1]
    return "FAILURE" if "Runner fault" in text else "unknown"


def infer_build_id(path: Path) -> str:
    """Last build number stamped on the run log, '-' before allocation."""
    try:
        found = _BUILD_RE.findall(_read(path))
    except OSError:
        return "-"
    return found[-1] if found else "-"


# ----------------------------
# Log listing
# ----------------------------


@dataclass(frozen=True)
class RunLog:
    path: Path
    pipeline: str
    mtime: float
    size: int

    @property
    def run_id(self) -> str:
        return self.path.stem

    @property
    def when(self) -> str:
        return datetime.fromtimestamp(self.mtime).strftime("%Y-%m-%d %H:%M:%S")


def list_run_logs(log_dir: Path) -> list[RunLog]:
    """All *.log files below `log_dir`, newest first."""
    if not log_dir.is_dir():
        return []

    logs: list[RunLog] = []
    for p in log_dir.rglob("*.log"):
        try:
            st = p.stat()
        except OSError:
            continue
        # logs/run/<pipeline>/run-<id>.log; top-level files are built-in runs
        pipeline = p.parent.name if p.parent != log_dir else "default"
        logs.append(RunLog(path=p, pipeline=pipeline, mtime=st.st_mtime, size=st.st_size))

    logs.sort(key=lambda r: r.mtime, reverse=True)
    return logs


def find_run_log(logs: list[RunLog], name: str) -> RunLog | None:
    return next((r for r in logs if name in (r.run_id, r.path.name)), None)


def tail(path: Path, lines: int) -> list[str]:
    with path.open(encoding="utf-8", errors="replace") as f:
        if lines <= 0:
            return f.read().splitlines()
        return [line.rstrip("\n") for line in deque(f, maxlen=lines)]
