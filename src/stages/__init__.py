"""
Stage actions.

Each action exposes:
- run(ctx) -> ActionResult
- describe() -> str

Actions raise StageFault when the work could not be carried out at all;
the runner turns that into an EXCEPTION result.
"""
from stages.base import (
    Action,
    ActionContext,
    ActionResult,
    FailurePolicy,
    Stage,
    StageFault,
    StageTimeout,
)

__all__ = [
    "Action",
    "ActionContext",
    "ActionResult",
    "FailurePolicy",
    "Stage",
    "StageFault",
    "StageTimeout",
]
