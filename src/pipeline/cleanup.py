from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from logger import get_logger
from pipeline.run_state import CleanupResult
from stages.base import Action, ActionContext

log = get_logger("stagearr.cleanup")


@dataclass(frozen=True)
class CleanupStep:
    name: str
    action: Action


def run_cleanup(
    steps: Iterable[CleanupStep],
    *,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    dry_run: bool = False,
) -> list[CleanupResult]:
    """
    Best-effort teardown. Every step runs; a failing step is logged and
    recorded, never raised.
    """
    results: list[CleanupResult] = []

    for step in steps:
        if dry_run:
            log.info(f"[dry-run] cleanup {step.name}: {step.action.describe()}")
            results.append(CleanupResult(step.name, True, "dry-run"))
            continue

        ctx = ActionContext(stage=step.name, env=dict(env or {}), timeout=timeout)
        try:
            outcome = step.action.run(ctx)
        except Exception as e:
            log.warning(f"Cleanup '{step.name}' raised: {e}")
            results.append(CleanupResult(step.name, False, str(e)))
            continue

        if outcome.exit_code != 0:
            msg = f"exit {outcome.exit_code}"
            log.warning(f"Cleanup '{step.name}' failed ({msg})")
            results.append(CleanupResult(step.name, False, msg))
        else:
            log.debug(f"Cleanup '{step.name}' ok")
            results.append(CleanupResult(step.name, True))

    return results
