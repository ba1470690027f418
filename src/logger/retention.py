from __future__ import annotations

import logging
from pathlib import Path


def prune_logs(log_dir: Path, keep: int) -> list[Path]:
    """
    Keep the `keep` most recent *.log files in `log_dir`, delete the rest.

    keep <= 0 disables pruning. Returns the files that were removed.
    """
    if keep <= 0 or not log_dir.is_dir():
        return []

    by_age = sorted(log_dir.glob("*.log"), key=lambda p: p.stat().st_mtime)
    expired = by_age[:-keep] if len(by_age) > keep else []

    removed: list[Path] = []
    for path in expired:
        try:
            path.unlink()
        except OSError as e:
            logging.getLogger("stagearr.logger").debug(f"Could not prune {path}: {e}")
            continue
        removed.append(path)
    return removed
