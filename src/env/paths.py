from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------
# Project root
# ---------------------------------------------------------------------

# This file lives in src/env/, so project root is two levels up
PROJECT_ROOT = Path(
    os.environ.get("STAGEARR_HOME") or Path(__file__).resolve().parent.parent.parent
).resolve()


# ---------------------------------------------------------------------
# Base directories (override-friendly)
# ---------------------------------------------------------------------


def _resolve_dir(env_var: str, default: Path) -> Path:
    """
    Resolve a directory path from an environment variable or default.
    Ensures the directory exists.
    """
    raw = os.environ.get(env_var)
    path = Path(raw).expanduser().resolve() if raw else default
    path.mkdir(parents=True, exist_ok=True)
    return path


# ---------------------------------------------------------------------
# Public paths
# ---------------------------------------------------------------------

# Logs
LOGS_DIR = _resolve_dir(
    "STAGEARR_LOGS_DIR",
    PROJECT_ROOT / "logs",
)

# Checkouts (one sub-directory per workspace name)
WORKSPACE_DIR = _resolve_dir(
    "STAGEARR_WORKSPACE_DIR",
    PROJECT_ROOT / "workspace",
)

# Archived artifacts (one sub-directory per build)
ARTIFACTS_DIR = _resolve_dir(
    "STAGEARR_ARTIFACTS_DIR",
    PROJECT_ROOT / "artifacts",
)

# Pipeline definitions (<name>.json)
PIPELINES_DIR = _resolve_dir(
    "STAGEARR_PIPELINES_DIR",
    PROJECT_ROOT / "pipelines",
)

# Small persistent state (build counter)
STATE_DIR = _resolve_dir(
    "STAGEARR_STATE_DIR",
    PROJECT_ROOT / "state",
)


# ---------------------------------------------------------------------
# Utility / internal paths
# ---------------------------------------------------------------------


def pipeline_file(name: str) -> Path:
    """
    Path to a pipeline definition inside PIPELINES_DIR.
    """
    return PIPELINES_DIR / f"{name}.json"


def build_artifacts_dir(pipeline: str, build_id: str) -> Path:
    return ARTIFACTS_DIR / pipeline / str(build_id)


def build_counter_file() -> Path:
    return STATE_DIR / "build_number"


# ---------------------------------------------------------------------
# Log layout helpers (used by logger)
# ---------------------------------------------------------------------


def module_logs_dir(module: str) -> Path:
    """
    Base log directory for a CLI command (e.g. run, stages).
    """
    path = LOGS_DIR / module
    path.mkdir(parents=True, exist_ok=True)
    return path


def pipeline_logs_dir(module: str, pipeline: str) -> Path:
    """
    Log directory for a specific pipeline under a command.
    """
    path = LOGS_DIR / module / pipeline
    path.mkdir(parents=True, exist_ok=True)
    return path
