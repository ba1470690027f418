from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional
import time


class BuildOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"

    @property
    def severity(self) -> int:
        return {
            BuildOutcome.SUCCESS: 0,
            BuildOutcome.UNSTABLE: 1,
            BuildOutcome.FAILURE: 2,
        }[self]

    def downgrade(self, other: BuildOutcome) -> BuildOutcome:
        """Return the worse of the two outcomes."""
        return other if other.severity > self.severity else self


class StageStatus(str, Enum):
    OK = "ok"
    NONZERO = "nonzero"
    EXCEPTION = "exception"
    SKIPPED = "skipped"


class RunPhase(str, Enum):
    INIT = "init"
    STAGES = "stages"
    CLEANUP = "cleanup"
    ARCHIVE = "archive"
    REPORT = "report"
    DONE = "done"


TRUNCATED_MARK = "… (truncated)"


@dataclass(frozen=True)
class StageResult:
    name: str
    status: StageStatus
    exit_code: Optional[int] = None
    output: str = ""
    reason: Optional[str] = None
    duration: float = 0.0

    @property
    def failed(self) -> bool:
        return self.status in (StageStatus.NONZERO, StageStatus.EXCEPTION)

    def display_output(self, limit: int = 2000) -> str:
        """Output tail, cut to `limit` characters (keeping the end)."""
        text = self.output.strip()
        if limit <= 0 or len(text) <= limit:
            return text
        return f"{TRUNCATED_MARK}\n{text[-limit:]}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.name,
            "status": self.status.value,
            "exit_code": self.exit_code,
            "reason": self.reason,
            "duration_s": round(self.duration, 3),
        }


@dataclass(frozen=True)
class CleanupResult:
    name: str
    ok: bool
    message: str = ""


@dataclass
class RunMetadata:
    run_id: str
    pipeline: str
    build_id: str
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None


@dataclass
class BuildState:
    """
    Canonical accumulator for one pipeline execution.

    Created at SUCCESS, downgraded by stage failures, read by the report
    phase. Mutated by the runner only.
    """

    metadata: RunMetadata
    outcome: BuildOutcome = BuildOutcome.SUCCESS
    phase: RunPhase = RunPhase.INIT

    results: list[StageResult] = field(default_factory=list)
    cleanup: list[CleanupResult] = field(default_factory=list)
    archived: list[Path] = field(default_factory=list)
    missing_artifacts: list[str] = field(default_factory=list)

    fault: Optional[str] = None
    aborted_by: Optional[str] = None

    # ------------------------------------------------------------------
    # Phase management
    # ------------------------------------------------------------------

    def set_phase(self, phase: RunPhase) -> None:
        self.phase = phase

    # ------------------------------------------------------------------
    # Outcome
    # ------------------------------------------------------------------

    def downgrade(self, outcome: BuildOutcome) -> None:
        self.outcome = self.outcome.downgrade(outcome)

    def record(self, result: StageResult) -> None:
        self.results.append(result)

    def mark_aborted(self, stage: str) -> None:
        self.aborted_by = stage
        self.downgrade(BuildOutcome.FAILURE)

    def mark_fault(self, reason: str) -> None:
        self.fault = reason
        self.downgrade(BuildOutcome.FAILURE)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def finish(self) -> None:
        self.phase = RunPhase.DONE
        self.metadata.finished_at = time.time()

    # ------------------------------------------------------------------
    # Derived helpers (read-only)
    # ------------------------------------------------------------------

    @property
    def failed_stages(self) -> list[StageResult]:
        return [r for r in self.results if r.failed]

    @property
    def runtime_seconds(self) -> float:
        end = self.metadata.finished_at or time.time()
        return round(end - self.metadata.started_at, 2)

    def as_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.metadata.run_id,
            "pipeline": self.metadata.pipeline,
            "build_id": self.metadata.build_id,
            "outcome": self.outcome.value,
            "runtime_s": self.runtime_seconds,
            "aborted_by": self.aborted_by,
            "fault": self.fault,
            "stages": [r.to_dict() for r in self.results],
            "cleanup": [
                {"action": c.name, "ok": c.ok, "message": c.message}
                for c in self.cleanup
            ],
            "archived": [str(p) for p in self.archived],
            "missing_artifacts": list(self.missing_artifacts),
        }
