from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from logger.file import BuildContextFilter


@dataclass
class LoggingState:
    """Process-wide logging bookkeeping, owned by init_logging()."""

    initialized: bool = False
    run_id: Optional[str] = None
    log_file: Optional[Path] = None
    context: Optional[BuildContextFilter] = None

    def reset(self) -> None:
        self.initialized = False
        self.run_id = None
        self.log_file = None
        self.context = None


STATE = LoggingState()
