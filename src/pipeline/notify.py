from __future__ import annotations

import logging
from typing import Iterable, Protocol

import requests

from branding import SYMBOLS
from logger import get_logger
from pipeline.run_state import BuildOutcome, BuildState

log = get_logger("stagearr.notify")


TEMPLATES: dict[BuildOutcome, str] = {
    BuildOutcome.SUCCESS: (
        SYMBOLS.OK + " Build #{build_id} of '{pipeline}' succeeded "
        "({stages} stages, {runtime}s)"
    ),
    BuildOutcome.UNSTABLE: (
        SYMBOLS.WARN + " Build #{build_id} of '{pipeline}' is UNSTABLE: "
        "{failed_count} stage(s) failed [{failed}]"
    ),
    BuildOutcome.FAILURE: (
        SYMBOLS.FAIL + " Build #{build_id} of '{pipeline}' FAILED: {reason}"
    ),
}

_LEVELS: dict[BuildOutcome, int] = {
    BuildOutcome.SUCCESS: logging.INFO,
    BuildOutcome.UNSTABLE: logging.WARNING,
    BuildOutcome.FAILURE: logging.ERROR,
}


def render_message(state: BuildState) -> str:
    failed = [r.name for r in state.failed_stages]

    if state.fault:
        reason = f"runner fault ({state.fault})"
    elif state.aborted_by:
        reason = f"aborted at '{state.aborted_by}'"
    else:
        reason = ", ".join(failed) or "unknown"

    return TEMPLATES[state.outcome].format(
        build_id=state.metadata.build_id,
        pipeline=state.metadata.pipeline,
        stages=len(state.results),
        runtime=state.runtime_seconds,
        failed_count=len(failed),
        failed=", ".join(failed),
        reason=reason,
    )


class Notifier(Protocol):
    name: str

    def notify(self, state: BuildState, message: str) -> None: ...


class LogNotifier:
    name = "log"

    def notify(self, state: BuildState, message: str) -> None:
        log.log(_LEVELS[state.outcome], message)


class WebhookNotifier:
    """POST the message as JSON (Slack/Teams-style `text` payload)."""

    name = "webhook"

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url = url
        self.timeout = timeout

    def notify(self, state: BuildState, message: str) -> None:
        payload = {
            "text": message,
            "outcome": state.outcome.value,
            "pipeline": state.metadata.pipeline,
            "build_id": state.metadata.build_id,
        }
        response = requests.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()


def build_notifiers(webhook_url: str = "") -> list[Notifier]:
    notifiers: list[Notifier] = [LogNotifier()]
    if webhook_url:
        notifiers.append(WebhookNotifier(webhook_url))
    return notifiers


def notify_all(notifiers: Iterable[Notifier], state: BuildState) -> str:
    """Report through every channel. Channel errors never change the outcome."""
    message = render_message(state)
    for notifier in notifiers:
        try:
            notifier.notify(state, message)
        except requests.RequestException as e:
            log.warning(f"Notification via {notifier.name} failed: {e}")
        except Exception as e:
            log.error(f"Notifier {notifier.name} raised: {e}", exc_info=e)
    return message
