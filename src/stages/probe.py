from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import requests

from logger import get_logger
from stages.base import ActionContext, ActionResult, StageFault

log = get_logger("stagearr.stages.probe")

BODY_PREVIEW = 300


@dataclass(frozen=True)
class HealthProbe:
    """
    Post-deployment check: wait, GET the URL, pass iff the body contains
    `marker`.

    An unexpected body is a normal failure (exit 1); a transport error
    (connection refused, timeout) is a fault.
    """

    url: str
    marker: str
    wait: float = 10.0
    timeout: float = 10.0
    sleep: Callable[[float], None] = time.sleep

    def describe(self) -> str:
        return f"GET {self.url} (expect {self.marker!r}, after {self.wait:g}s)"

    def run(self, ctx: ActionContext) -> ActionResult:
        if self.wait > 0:
            log.info(f"Waiting {self.wait:g}s for the service to come up")
            self.sleep(self.wait)

        try:
            response = requests.get(self.url, timeout=self.timeout)
        except requests.RequestException as e:
            raise StageFault(f"health probe could not reach {self.url}: {e}") from e

        body = response.text or ""
        preview = body[:BODY_PREVIEW]

        if self.marker in body:
            log.info(f"Health probe OK: HTTP {response.status_code}, marker found")
            return ActionResult(exit_code=0, output=preview)

        log.warning(
            f"Health probe failed: HTTP {response.status_code}, "
            f"marker {self.marker!r} not found"
        )
        return ActionResult(exit_code=1, output=preview)
