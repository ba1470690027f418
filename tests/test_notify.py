import requests

import pipeline.notify as notify_mod
from pipeline.notify import (
    LogNotifier,
    WebhookNotifier,
    build_notifiers,
    notify_all,
    render_message,
)
from pipeline.run_state import (
    BuildOutcome,
    BuildState,
    RunMetadata,
    StageResult,
    StageStatus,
)


def _state(outcome=BuildOutcome.SUCCESS, failed=()):
    state = BuildState(metadata=RunMetadata(run_id="r", pipeline="default", build_id="42"))
    state.record(StageResult("Checkout", StageStatus.OK, 0))
    for name in failed:
        state.record(StageResult(name, StageStatus.NONZERO, 1))
    state.downgrade(outcome)
    return state


def test_three_distinct_templates():
    messages = {
        render_message(_state(BuildOutcome.SUCCESS)),
        render_message(_state(BuildOutcome.UNSTABLE, failed=["Lint"])),
        render_message(_state(BuildOutcome.FAILURE)),
    }
    assert len(messages) == 3


def test_success_message():
    msg = render_message(_state())
    assert "#42" in msg and "succeeded" in msg


def test_unstable_message_lists_failed_stages():
    msg = render_message(_state(BuildOutcome.UNSTABLE, failed=["Run Tests", "Lint"]))
    assert "UNSTABLE" in msg
    assert "2 stage(s)" in msg
    assert "Run Tests, Lint" in msg


def test_failure_message_names_abort_stage():
    state = _state()
    state.mark_aborted("Checkout")
    assert "aborted at 'Checkout'" in render_message(state)


def test_webhook_posts_payload(monkeypatch):
    sent = {}

    class Ok:
        def raise_for_status(self):
            return None

    def fake_post(url, json, timeout):
        sent.update(url=url, json=json, timeout=timeout)
        return Ok()

    monkeypatch.setattr(notify_mod.requests, "post", fake_post)
    WebhookNotifier("https://hooks.example/ci", timeout=3).notify(_state(), "hello")

    assert sent["url"] == "https://hooks.example/ci"
    assert sent["json"]["text"] == "hello"
    assert sent["json"]["outcome"] == "SUCCESS"
    assert sent["json"]["build_id"] == "42"


def test_channel_errors_never_escape(monkeypatch):
    def down(*args, **kwargs):
        raise requests.ConnectionError("hook down")

    monkeypatch.setattr(notify_mod.requests, "post", down)
    state = _state(BuildOutcome.UNSTABLE, failed=["Lint"])

    message = notify_all([WebhookNotifier("https://hooks.example/ci"), LogNotifier()], state)

    assert "UNSTABLE" in message
    assert state.outcome == BuildOutcome.UNSTABLE


def test_build_notifiers():
    assert [n.name for n in build_notifiers("")] == ["log"]
    assert [n.name for n in build_notifiers("https://x")] == ["log", "webhook"]
