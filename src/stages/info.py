from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from logger import get_logger
from stages.base import ActionContext, ActionResult, StageFault

log = get_logger("stagearr.stages")


@dataclass(frozen=True)
class InfoAction:
    """Informational stage: logs its lines and always succeeds."""

    lines: tuple[str, ...]

    def describe(self) -> str:
        return f"info ({len(self.lines)} lines)"

    def run(self, ctx: ActionContext) -> ActionResult:
        for line in self.lines:
            log.info(line)
        return ActionResult(exit_code=0, output="\n".join(self.lines))


@dataclass(frozen=True)
class ResetWorkspace:
    """Remove a previous checkout so the next clone starts clean."""

    path: Path

    def describe(self) -> str:
        return f"rm -rf {self.path}"

    def run(self, ctx: ActionContext) -> ActionResult:
        if not self.path.exists():
            log.info(f"Workspace already clean: {self.path}")
            return ActionResult(exit_code=0, output="")

        try:
            if self.path.is_dir():
                shutil.rmtree(self.path)
            else:
                self.path.unlink()
        except OSError as e:
            raise StageFault(f"could not reset workspace {self.path}: {e}") from e

        log.info(f"Removed workspace {self.path}")
        return ActionResult(exit_code=0, output=f"removed {self.path}")
