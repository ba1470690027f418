from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from env import get_logging_env

# No explicit file: follows the current sys.stdout, so redirected or captured
# stdout keeps working.
LOG_CONSOLE = Console(soft_wrap=True)

CHILD_LOGGER = "stagearr.child"


class ConsoleGate(logging.Filter):
    """
    Decides what reaches the terminal. The run log always gets everything.

    - quiet: nothing
    - child process chatter (passthrough, below WARNING): only when verbose
    """

    def filter(self, record: logging.LogRecord) -> bool:
        le = get_logging_env()
        if le.quiet:
            return False
        if getattr(record, "passthrough", False) and record.levelno < logging.WARNING:
            return le.verbose
        return True


def build_console_handler(level: int = logging.INFO) -> logging.Handler:
    handler = RichHandler(
        console=LOG_CONSOLE,
        level=level,
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )

    # RichHandler renders the level column; the formatter must not repeat it.
    handler.setFormatter(logging.Formatter("%(message)s"))

    handler.addFilter(ConsoleGate())
    return handler


def log_passthrough(level: int, msg: str) -> None:
    """Forward one line of child-process output."""
    logging.getLogger(CHILD_LOGGER).log(level, msg, extra={"passthrough": True})
