from pathlib import Path

from pipeline.run_state import (
    TRUNCATED_MARK,
    BuildOutcome,
    BuildState,
    CleanupResult,
    RunMetadata,
    RunPhase,
    StageResult,
    StageStatus,
)


def _state():
    return BuildState(metadata=RunMetadata(run_id="r1", pipeline="default", build_id="5"))


def test_stage_result_shape():
    r = StageResult(name="Lint", status=StageStatus.NONZERO, exit_code=2, reason="exit code 2")

    assert r.failed
    assert r.to_dict() == {
        "stage": "Lint",
        "status": "nonzero",
        "exit_code": 2,
        "reason": "exit code 2",
        "duration_s": 0.0,
    }


def test_skipped_and_ok_are_not_failures():
    assert not StageResult("a", StageStatus.OK, 0).failed
    assert not StageResult("b", StageStatus.SKIPPED).failed
    assert StageResult("c", StageStatus.EXCEPTION).failed


def test_display_output_keeps_the_end():
    r = StageResult("Build", StageStatus.NONZERO, 1, output="a" * 50 + "THE END")

    out = r.display_output(limit=10)

    assert out.startswith(TRUNCATED_MARK)
    assert out.endswith("aaaTHE END")
    assert r.display_output(limit=0) == r.output


def test_new_state_starts_green():
    state = _state()
    assert state.outcome == BuildOutcome.SUCCESS
    assert state.phase == RunPhase.INIT


def test_as_dict_shape():
    state = _state()
    state.record(StageResult("Checkout", StageStatus.OK, 0))
    state.record(StageResult("Run Tests", StageStatus.NONZERO, 1))
    state.downgrade(BuildOutcome.UNSTABLE)
    state.cleanup = [CleanupResult("docker rm", False, "exit 1")]
    state.archived = [Path("/a/coverage")]
    state.missing_artifacts = ["build"]
    state.finish()

    data = state.as_dict()

    assert data["outcome"] == "UNSTABLE"
    assert data["build_id"] == "5"
    assert [s["stage"] for s in data["stages"]] == ["Checkout", "Run Tests"]
    assert data["cleanup"] == [{"action": "docker rm", "ok": False, "message": "exit 1"}]
    assert data["archived"] == [str(Path("/a/coverage"))]
    assert data["missing_artifacts"] == ["build"]
    assert state.phase == RunPhase.DONE
    assert [r.name for r in state.failed_stages] == ["Run Tests"]
