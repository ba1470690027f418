"""Process bootstrap for stagearr.

The only place that writes shared run context into os.environ. Stage
subprocesses inherit it, and env/logger read it back.

Call order at the entrypoint:
1) bootstrap_base_env()       once, before argument parsing
2) bootstrap_run_context()    after parsing, before init_logging()
"""

from __future__ import annotations

import os
from datetime import datetime

from env import PROJECT_ROOT, _load_dotenv, reset_env_caches


_BOOTSTRAPPED = False


def bootstrap_base_env() -> None:
    global _BOOTSTRAPPED
    if _BOOTSTRAPPED:
        return

    # Optional file; variables already set by the CI job win.
    _load_dotenv(PROJECT_ROOT / "config" / ".env")

    os.environ.setdefault(
        "STAGEARR_RUN_ID",
        datetime.now().strftime("%Y-%m-%d_%H-%M-%S"),
    )

    reset_env_caches()
    _BOOTSTRAPPED = True


def _flag(name: str, value: bool | None) -> None:
    if value is not None:
        os.environ[name] = "1" if value else "0"


def bootstrap_run_context(
    *,
    command: str,
    pipeline: str | None = None,
    build_id: str | None = None,
    verbose: bool | None = None,
    quiet: bool | None = None,
    strict: bool | None = None,
    dry_run: bool | None = None,
) -> None:
    """Stamp the command, pipeline and CLI flags for this process and its children."""
    os.environ["STAGEARR_COMMAND"] = command

    if pipeline:
        os.environ["STAGEARR_PIPELINE"] = pipeline
    else:
        os.environ.pop("STAGEARR_PIPELINE", None)

    if build_id:
        os.environ["STAGEARR_BUILD_ID"] = str(build_id)

    _flag("STAGEARR_VERBOSE", verbose)
    _flag("STAGEARR_QUIET", quiet)

    # --strict / --dry-run only switch on; without them .env or CI values stand.
    _flag("STAGEARR_STRICT", True if strict else None)
    _flag("STAGEARR_DRY_RUN", True if dry_run else None)

    reset_env_caches()
