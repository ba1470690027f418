import logging
import os
import tempfile

import pytest

# Point every resolved directory at a throwaway home BEFORE any project module
# is imported: env.paths resolves (and creates) them at import time.
_HOME = tempfile.mkdtemp(prefix="stagearr-tests-")
os.environ["STAGEARR_HOME"] = _HOME
for _name in ("LOGS", "WORKSPACE", "ARTIFACTS", "PIPELINES", "STATE"):
    os.environ[f"STAGEARR_{_name}_DIR"] = os.path.join(_HOME, _name.lower())


@pytest.fixture(autouse=True)
def clean_env_and_logging(monkeypatch):
    """
    Ensure tests don't leak env, logger state, or cached environment views.
    """

    keys = [
        "STAGEARR_COMMAND",
        "STAGEARR_PIPELINE",
        "STAGEARR_RUN_ID",
        "STAGEARR_BUILD_ID",
        "BUILD_NUMBER",
        "STAGEARR_VERBOSE",
        "STAGEARR_QUIET",
        "STAGEARR_STRICT",
        "STAGEARR_DRY_RUN",
        "STAGEARR_NODE_HOME",
        "STAGEARR_HOST_PORT",
        "STAGEARR_NOTIFY_WEBHOOK",
        "STAGEARR_STAGE_TIMEOUT",
        "LOG_LEVEL",
    ]
    # main() stamps run context straight into os.environ
    saved = dict(os.environ)

    for k in keys:
        monkeypatch.delenv(k, raising=False)

    # Never sleep waiting for a container in tests
    monkeypatch.setenv("STAGEARR_PROBE_WAIT", "0")

    from env import reset_env_caches

    reset_env_caches()

    yield

    os.environ.clear()
    os.environ.update(saved)
    reset_env_caches()

    # Reset logger global state
    from logger.state import STATE

    STATE.reset()

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
