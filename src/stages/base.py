from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

from pipeline.run_state import BuildOutcome


class StageFault(RuntimeError):
    """An action could not be carried out (tool missing, transport error, ...)."""


class StageTimeout(StageFault):
    """An action ran past its time limit and was killed."""


@dataclass(frozen=True)
class ActionContext:
    stage: str
    cwd: Optional[Path] = None
    env: dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None


@dataclass(frozen=True)
class ActionResult:
    exit_code: int
    output: str = ""


class Action(Protocol):
    """
    One unit of external work.

    - run() returns the exit status and captured output tail
    - run() raises StageFault when the work could not be carried out at all
    - describe() is a one-line, human readable rendition (used in listings
      and dry runs)
    """

    def run(self, ctx: ActionContext) -> ActionResult: ...

    def describe(self) -> str: ...


class FailurePolicy(str, Enum):
    CONTINUE_AS_UNSTABLE = "continue-as-unstable"
    ABORT_AS_FAILURE = "abort-as-failure"

    @property
    def on_failure(self) -> BuildOutcome:
        if self is FailurePolicy.ABORT_AS_FAILURE:
            return BuildOutcome.FAILURE
        return BuildOutcome.UNSTABLE


@dataclass(frozen=True)
class Stage:
    name: str
    action: Action
    policy: FailurePolicy = FailurePolicy.CONTINUE_AS_UNSTABLE
    cwd: Optional[Path] = None
    env: dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None
