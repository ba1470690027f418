from __future__ import annotations

import os
import time
from datetime import datetime
from typing import Iterable, Mapping, Optional, Sequence

from branding import STAGEARR_HEADER, STAGEARR_SECTION_END, SYMBOLS
from env import get_env, ConfigError
from env.paths import build_artifacts_dir, build_counter_file, pipeline_file
from logger import bind_log_context, get_logger
from pipeline.artifacts import ArtifactArchive, write_json
from pipeline.build_counter import next_build_id
from pipeline.cleanup import CleanupStep, run_cleanup
from pipeline.definition import PipelineDefinition, load_definition
from pipeline.notify import LogNotifier, Notifier, build_notifiers, notify_all
from pipeline.run_state import (
    BuildOutcome,
    BuildState,
    RunMetadata,
    RunPhase,
    StageResult,
    StageStatus,
)
from stages.base import ActionContext, FailurePolicy, Stage
from stages.catalog import DEFAULT_PIPELINE, default_definition

log = get_logger("stagearr.runner")

__all__ = [
    "BuildOutcome",
    "BuildState",
    "EXIT_CODES",
    "FailurePolicy",
    "Stage",
    "StageResult",
    "StageStatus",
    "apply_policy",
    "execute_stage",
    "resolve_definition",
    "run",
    "run_once",
    "run_pipeline",
]


EXIT_CODES: dict[BuildOutcome, int] = {
    BuildOutcome.SUCCESS: 0,
    BuildOutcome.UNSTABLE: 10,
    BuildOutcome.FAILURE: 20,
}


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------


def _log_header(title: str) -> None:
    log.info(STAGEARR_HEADER(title).rstrip("\n"))


def _log_footer() -> None:
    log.info(STAGEARR_SECTION_END().rstrip("\n"))


def validate_stages(stages: Sequence[Stage]) -> None:
    seen: set[str] = set()
    for stage in stages:
        if stage.name in seen:
            raise ValueError(f"Stage names must be unique within a run: {stage.name}")
        seen.add(stage.name)


# ------------------------------------------------------------
# Core execution
# ------------------------------------------------------------


def execute_stage(
    stage: Stage,
    *,
    index: int = 1,
    total: int = 1,
    dry_run: bool = False,
    default_timeout: Optional[float] = None,
) -> StageResult:
    """
    Run one stage and turn whatever happened into a StageResult.

    Never raises for action errors: a fault becomes an EXCEPTION result with
    its message kept in `reason`.
    """
    _log_header(f"Stage {index}/{total}: {stage.name}")
    started = time.perf_counter()

    if dry_run:
        log.info(f"[dry-run] {stage.action.describe()}")
        result = StageResult(name=stage.name, status=StageStatus.OK, exit_code=0, reason="dry-run")
    else:
        ctx = ActionContext(
            stage=stage.name,
            cwd=stage.cwd,
            env=dict(stage.env),
            timeout=stage.timeout or default_timeout,
        )
        try:
            outcome = stage.action.run(ctx)
        except Exception as e:
            log.error(f"{SYMBOLS.FAIL} {stage.name}: {e}")
            result = StageResult(
                name=stage.name,
                status=StageStatus.EXCEPTION,
                reason=f"{type(e).__name__}: {e}",
                duration=time.perf_counter() - started,
            )
        else:
            ok = outcome.exit_code == 0
            result = StageResult(
                name=stage.name,
                status=StageStatus.OK if ok else StageStatus.NONZERO,
                exit_code=outcome.exit_code,
                output=outcome.output,
                reason=None if ok else f"exit code {outcome.exit_code}",
                duration=time.perf_counter() - started,
            )

    _log_header(f"Stage {index} END: {stage.name} ({result.status.value})")
    _log_footer()
    return result


def apply_policy(state: BuildState, stage: Stage, result: StageResult) -> bool:
    """Record the result and downgrade the outcome. Returns True to stop the run."""
    state.record(result)

    if not result.failed:
        return False

    if stage.policy is FailurePolicy.ABORT_AS_FAILURE:
        log.error(f"{SYMBOLS.BLOCKED} {stage.name} failed ({result.reason}); aborting run")
        state.mark_aborted(stage.name)
        return True

    log.warning(f"{SYMBOLS.WARN} {stage.name} failed ({result.reason}); build marked UNSTABLE")
    state.downgrade(stage.policy.on_failure)
    return False


def run_pipeline(
    stages: Sequence[Stage],
    *,
    state: Optional[BuildState] = None,
    cleanup: Iterable[CleanupStep] = (),
    archive: Optional[ArtifactArchive] = None,
    notifiers: Optional[Sequence[Notifier]] = None,
    dry_run: bool = False,
    default_timeout: Optional[float] = None,
    cleanup_env: Optional[Mapping[str, str]] = None,
) -> BuildState:
    validate_stages(stages)

    if state is None:
        state = BuildState(
            metadata=RunMetadata(
                run_id=datetime.now().strftime("%Y-%m-%d_%H-%M-%S"),
                pipeline="adhoc",
                build_id="0",
            )
        )

    total = len(stages)
    try:
        state.set_phase(RunPhase.STAGES)
        for i, stage in enumerate(stages, start=1):
            result = execute_stage(
                stage,
                index=i,
                total=total,
                dry_run=dry_run,
                default_timeout=default_timeout,
            )
            if apply_policy(state, stage, result):
                for blocked in stages[i:]:
                    log.info(f"{SYMBOLS.SKIPPED} {blocked.name}: skipped")
                    state.record(
                        StageResult(
                            name=blocked.name,
                            status=StageStatus.SKIPPED,
                            reason=f"blocked_by_{stage.name}",
                        )
                    )
                break
    except Exception as e:
        log.exception(f"Runner fault: {e}")
        state.mark_fault(f"{type(e).__name__}: {e}")
    finally:
        state.set_phase(RunPhase.CLEANUP)
        _log_header(f"{SYMBOLS.CLEANUP} Cleanup")
        state.cleanup = run_cleanup(
            cleanup,
            env=cleanup_env,
            timeout=default_timeout,
            dry_run=dry_run,
        )

    state.set_phase(RunPhase.ARCHIVE)
    if archive is not None:
        _log_header(f"{SYMBOLS.ARCHIVE} Archive")
        try:
            archived, missing = archive.collect()
        except Exception as e:
            # reporting still runs
            log.exception(f"Archive failed: {e}")
        else:
            state.archived.extend(archived)
            state.missing_artifacts.extend(missing)

    state.set_phase(RunPhase.REPORT)
    notify_all(notifiers if notifiers is not None else [LogNotifier()], state)
    state.finish()
    return state


def run(stages: Sequence[Stage], **kwargs) -> BuildOutcome:
    return run_pipeline(stages, **kwargs).outcome


# ------------------------------------------------------------
# Environment-driven entry
# ------------------------------------------------------------


def resolve_definition(pipeline: Optional[str] = None) -> PipelineDefinition:
    env = get_env()
    if not pipeline or pipeline == DEFAULT_PIPELINE:
        return default_definition(env)

    return load_definition(
        pipeline_file(pipeline),
        values=env.placeholders(),
        base_env=env.stage_env(),
        probe_defaults={
            "marker": env.health_marker,
            "wait": env.probe_wait,
            "timeout": env.probe_timeout,
        },
    )


def run_once(*, pipeline: Optional[str] = None) -> BuildState:
    env = get_env()
    name = pipeline or env.pipeline

    # validate before spending a build number
    definition = resolve_definition(name)
    if not definition.stages:
        raise ConfigError(f"Pipeline {definition.name} has no stages")

    if not env.build_id:
        env.build_id = str(next_build_id(build_counter_file()))
        definition = resolve_definition(name)
    bind_log_context(build_id=env.build_id)

    log.info(f"Pipeline: {definition.name} ({len(definition.stages)} stages)")
    log.info(f"Build: #{env.build_id}")
    if env.dry_run:
        log.info("Dry run: commands are logged, not executed")

    state = BuildState(
        metadata=RunMetadata(
            run_id=os.environ.get("STAGEARR_RUN_ID")
            or datetime.now().strftime("%Y-%m-%d_%H-%M-%S"),
            pipeline=definition.name,
            build_id=env.build_id,
        )
    )

    dest = build_artifacts_dir(definition.name, env.build_id)
    archive = ArtifactArchive(
        source_root=definition.workspace or env.workspace_path,
        dest=dest,
        patterns=definition.artifacts,
    )

    run_pipeline(
        definition.stages,
        state=state,
        cleanup=definition.cleanup,
        archive=None if env.dry_run else archive,
        notifiers=build_notifiers(env.notify_webhook),
        dry_run=env.dry_run,
        default_timeout=env.stage_timeout or None,
        cleanup_env=env.stage_env(),
    )

    write_json(dest / "run.json", state.as_dict())
    log.info(f"Run summary written to {dest / 'run.json'}")
    log.info(f"RUN_STATUS={state.outcome.value}")
    return state
