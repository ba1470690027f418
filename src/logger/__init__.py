from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from env import get_logging_env
from env.paths import module_logs_dir, pipeline_logs_dir
from .console import build_console_handler
from .file import BuildContextFilter, open_run_log, switch_run_log
from .retention import prune_logs
from .state import STATE


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _level_to_int(level: str | int) -> int:
    if isinstance(level, int):
        return level
    lvl = logging.getLevelName(str(level).upper())
    return lvl if isinstance(lvl, int) else logging.INFO


def _ensure_run_id() -> str:
    run_id = os.environ.get("STAGEARR_RUN_ID")
    if not run_id:
        run_id = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        os.environ["STAGEARR_RUN_ID"] = run_id
    return run_id


def _run_log_path() -> Path:
    """logs/<command>/[<pipeline>/]<command>-<run_id>.log"""
    command = os.environ.get("STAGEARR_COMMAND") or "bootstrap"
    pipeline = os.environ.get("STAGEARR_PIPELINE")

    log_dir = pipeline_logs_dir(command, pipeline) if pipeline else module_logs_dir(command)
    return log_dir / f"{command}-{_ensure_run_id()}.log"


def _squelch_noisy_loggers() -> None:
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def bind_log_context(**context) -> None:
    """Attach run-scoped attributes (e.g. build_id) to every run-log record."""
    if STATE.context is not None:
        STATE.context.bind(**context)


def current_log_file() -> Path | None:
    return STATE.log_file


def init_logging() -> None:
    """
    Initialize logging for the entire process.

    - Handlers are attached ONLY to the root logger.
    - Named loggers inherit via propagation.
    - Safe to call multiple times; the run log is switched, not stacked.
    """
    env = get_logging_env()
    _squelch_noisy_loggers()

    root = logging.getLogger()
    logfile = _run_log_path()
    prune_logs(logfile.parent, env.log_retention)

    # Base level from env, but verbose forces DEBUG everywhere.
    root_level = logging.DEBUG if env.verbose else _level_to_int(env.log_level)

    if STATE.initialized and STATE.log_file == logfile:
        root.setLevel(root_level)
        return

    if STATE.context is None:
        STATE.context = BuildContextFilter(build_id="-")

    run_log = next((h for h in root.handlers if isinstance(h, logging.FileHandler)), None)

    root.handlers.clear()
    root.setLevel(root_level)

    if run_log is None:
        run_log = open_run_log(logfile, STATE.context)
    else:
        switch_run_log(run_log, logfile)
        if STATE.context not in run_log.filters:
            run_log.addFilter(STATE.context)
    root.addHandler(run_log)

    if not env.quiet:
        root.addHandler(build_console_handler(root_level))

    STATE.initialized = True
    STATE.run_id = os.environ.get("STAGEARR_RUN_ID")
    STATE.log_file = logfile
