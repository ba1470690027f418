import itertools

import pytest

from runner import BuildOutcome
from pipeline.run_state import BuildState, RunMetadata

ALL = list(BuildOutcome)


def _state() -> BuildState:
    return BuildState(metadata=RunMetadata(run_id="r", pipeline="p", build_id="1"))


def test_severity_order():
    assert (
        BuildOutcome.SUCCESS.severity
        < BuildOutcome.UNSTABLE.severity
        < BuildOutcome.FAILURE.severity
    )


def test_unstable_dominates_success():
    assert BuildOutcome.SUCCESS.downgrade(BuildOutcome.UNSTABLE) == BuildOutcome.UNSTABLE
    assert BuildOutcome.UNSTABLE.downgrade(BuildOutcome.SUCCESS) == BuildOutcome.UNSTABLE


@pytest.mark.parametrize("other", ALL)
def test_failure_is_terminal(other):
    assert BuildOutcome.FAILURE.downgrade(other) == BuildOutcome.FAILURE


def test_downgrades_never_improve_outcome():
    for seq in itertools.product(ALL, repeat=4):
        state = _state()
        previous = state.outcome
        for outcome in seq:
            state.downgrade(outcome)
            assert state.outcome.severity >= previous.severity
            previous = state.outcome
        assert state.outcome == max(
            [BuildOutcome.SUCCESS, *seq], key=lambda o: o.severity
        )


def test_fresh_state_starts_at_success():
    assert _state().outcome == BuildOutcome.SUCCESS


def test_fault_marks_failure():
    state = _state()
    state.downgrade(BuildOutcome.UNSTABLE)
    state.mark_fault("boom")
    assert state.outcome == BuildOutcome.FAILURE
    assert state.fault == "boom"
