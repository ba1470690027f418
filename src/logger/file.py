from __future__ import annotations

import logging
from pathlib import Path

# One line per record; the build number lets a reader grep a shared log dir.
FILE_FORMAT = "%(asctime)s | [%(levelname)s] | #%(build_id)s | %(name)s | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


class BuildContextFilter(logging.Filter):
    """
    Stamps run-scoped attributes (build_id, ...) onto records reaching the
    run log. Values set explicitly via `extra=` are left as they are.
    """

    def __init__(self, **defaults: str) -> None:
        super().__init__()
        self.values = dict(defaults)

    def bind(self, **values: str) -> None:
        self.values.update({k: str(v) for k, v in values.items()})

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.values.items():
            if key not in record.__dict__:
                setattr(record, key, value)
        return True


def open_run_log(logfile: Path, context: BuildContextFilter) -> logging.FileHandler:
    logfile.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(logfile, encoding="utf-8")
    handler.setLevel(logging.NOTSET)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
    handler.addFilter(context)
    return handler


def switch_run_log(handler: logging.FileHandler, logfile: Path) -> None:
    """Point an open handler at a new file without dropping it from the root logger."""
    logfile.parent.mkdir(parents=True, exist_ok=True)

    handler.acquire()
    try:
        handler.close()
        handler.baseFilename = str(logfile)
        handler.stream = handler._open()
    finally:
        handler.release()
