from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from env.paths import ARTIFACTS_DIR, LOGS_DIR, PIPELINES_DIR, WORKSPACE_DIR

# ------------------------------------------------------------
# Minimal dotenv loader (read-only helper, bootstrap owns usage)
# ------------------------------------------------------------


def _load_dotenv(path: Path) -> None:
    """
    Minimal dotenv loader.
    - Silent
    - Never overrides existing os.environ
    """
    if not path.exists():
        return

    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        k, v = line.split("=", 1)
        k = k.strip()
        v = v.strip()

        # strip inline comments
        if " #" in v:
            v = v.split(" #", 1)[0].rstrip()
        elif "\t#" in v:
            v = v.split("\t#", 1)[0].rstrip()

        # strip quotes
        if len(v) >= 2 and v[0] == v[-1] and v[0] in ("'", '"'):
            v = v[1:-1]

        if k and k not in os.environ:
            os.environ[k] = v


# ------------------------------------------------------------
# Errors / helpers
# ------------------------------------------------------------


class ConfigError(RuntimeError):
    pass


def _as_bool(v: str) -> bool:
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(v: str, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return default


def _as_float(v: str, default: float) -> float:
    try:
        return float(v)
    except Exception:
        return default


def _as_port(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer port, got: {raw!r}") from None
    if not 0 < port < 65536:
        raise ConfigError(f"{name} out of range: {port}")
    return port


def _as_list(v: str) -> list[str]:
    return [item.strip() for item in v.split(",") if item.strip()]


# ------------------------------------------------------------
# Logging environment (SAFE ANYWHERE)
# ------------------------------------------------------------


@dataclass(frozen=True)
class LoggingEnvironment:
    log_level: str
    log_retention: int
    verbose: bool
    quiet: bool


def get_logging_env() -> LoggingEnvironment:
    log_level = os.environ.get("LOG_LEVEL", "INFO")
    log_retention = _as_int(os.environ.get("LOG_RETENTION", "30"), 30)

    verbose = _as_bool(os.environ.get("STAGEARR_VERBOSE", "0"))
    quiet = _as_bool(os.environ.get("STAGEARR_QUIET", "0"))

    return LoggingEnvironment(
        log_level=log_level,
        log_retention=log_retention,
        verbose=verbose,
        quiet=quiet,
    )


# ------------------------------------------------------------
# Full runtime environment (PIPELINE ONLY)
# ------------------------------------------------------------

DEFAULT_REPO_URL = "https://github.com/juice-shop/juice-shop.git"
DEFAULT_IMAGE = "juice-shop"
DEFAULT_MARKER = "OWASP Juice Shop"
DEFAULT_ARTIFACTS = "test-results.xml,coverage,build"


class Environment:
    def __init__(self):
        # Logging snapshot (immutable)
        self._logging = get_logging_env()

        # ---- TOOLCHAIN ----
        self.node_home = os.environ.get("STAGEARR_NODE_HOME", "")
        self.git_exe = os.environ.get("STAGEARR_GIT_EXE", "git")
        self.npm_exe = os.environ.get("STAGEARR_NPM_EXE", "npm")
        self.docker_exe = os.environ.get("STAGEARR_DOCKER_EXE", "docker")

        # ---- TARGET APPLICATION ----
        self.repo_url = os.environ.get("STAGEARR_REPO_URL", DEFAULT_REPO_URL)
        self.workspace_name = os.environ.get("STAGEARR_WORKSPACE_NAME", "juice-shop")
        self.image_name = os.environ.get("STAGEARR_IMAGE_NAME", DEFAULT_IMAGE)
        self.container_name = os.environ.get(
            "STAGEARR_CONTAINER_NAME", f"{self.image_name}-ci"
        )
        self.host_port = _as_port("STAGEARR_HOST_PORT", 3000)
        self.container_port = _as_port("STAGEARR_CONTAINER_PORT", 3000)

        # ---- RUN CONTEXT ----
        self.command = os.environ.get("STAGEARR_COMMAND", "bootstrap")
        self.pipeline = os.environ.get("STAGEARR_PIPELINE", "default")
        self.build_id = os.environ.get("STAGEARR_BUILD_ID") or os.environ.get(
            "BUILD_NUMBER", ""
        )

        # ---- HEALTH PROBE ----
        self.health_path = os.environ.get("STAGEARR_HEALTH_PATH", "/")
        self.health_marker = os.environ.get("STAGEARR_HEALTH_MARKER", DEFAULT_MARKER)
        self.probe_wait = _as_float(os.environ.get("STAGEARR_PROBE_WAIT", "10"), 10.0)
        self.probe_timeout = _as_float(
            os.environ.get("STAGEARR_PROBE_TIMEOUT", "10"), 10.0
        )

        # ---- BEHAVIOR ----
        self.stage_timeout = _as_float(
            os.environ.get("STAGEARR_STAGE_TIMEOUT", "0"), 0.0
        )
        self.output_limit = _as_int(os.environ.get("STAGEARR_OUTPUT_LIMIT", "2000"), 2000)
        self.artifacts = _as_list(os.environ.get("STAGEARR_ARTIFACTS", DEFAULT_ARTIFACTS))
        self.test_report = os.environ.get("STAGEARR_TEST_REPORT", "test-results.xml")
        self.strict = _as_bool(os.environ.get("STAGEARR_STRICT", "0"))
        self.dry_run = _as_bool(os.environ.get("STAGEARR_DRY_RUN", "0"))
        self.notify_webhook = os.environ.get("STAGEARR_NOTIFY_WEBHOOK", "")

    # ---- derived ----
    @property
    def workspace_path(self) -> Path:
        return WORKSPACE_DIR / self.workspace_name

    @property
    def health_url(self) -> str:
        return f"http://localhost:{self.host_port}{self.health_path}"

    def stage_env(self) -> dict[str, str]:
        """Extra environment applied to every external stage command."""
        if not self.node_home:
            return {}
        node_bin = str(Path(self.node_home).expanduser() / "bin")
        return {"PATH": node_bin + os.pathsep + os.environ.get("PATH", "")}

    def placeholders(self) -> dict[str, str]:
        return {
            "workspace": str(self.workspace_path),
            "workspace_root": str(WORKSPACE_DIR),
            "image": self.image_name,
            "container": self.container_name,
            "port": str(self.host_port),
            "container_port": str(self.container_port),
            "build_id": self.build_id,
            "repo_url": self.repo_url,
            "git": self.git_exe,
            "npm": self.npm_exe,
            "docker": self.docker_exe,
        }

    def as_dict(self) -> dict:
        return {
            "Logging": {
                "log_level": self.log_level,
                "log_retention": self.log_retention,
                "verbose": self.verbose,
                "quiet": self.quiet,
            },
            "Toolchain": {
                "node_home": self.node_home or "(PATH)",
                "git_exe": self.git_exe,
                "npm_exe": self.npm_exe,
                "docker_exe": self.docker_exe,
            },
            "Target": {
                "repo_url": self.repo_url,
                "workspace": str(self.workspace_path),
                "image_name": self.image_name,
                "container_name": self.container_name,
                "host_port": self.host_port,
                "container_port": self.container_port,
            },
            "Run": {
                "command": self.command,
                "pipeline": self.pipeline,
                "build_id": self.build_id or "(auto)",
                "strict": self.strict,
                "dry_run": self.dry_run,
                "stage_timeout": self.stage_timeout or "none",
            },
            "Health": {
                "url": self.health_url,
                "marker": self.health_marker,
                "wait": self.probe_wait,
                "timeout": self.probe_timeout,
            },
            "Paths": {
                "logs": str(LOGS_DIR),
                "artifacts": str(ARTIFACTS_DIR),
                "pipelines": str(PIPELINES_DIR),
                "archive": ", ".join(self.artifacts),
            },
        }

    # ---- logging passthrough ----
    @property
    def log_level(self) -> str:
        return self._logging.log_level

    @property
    def log_retention(self) -> int:
        return self._logging.log_retention

    @property
    def verbose(self) -> bool:
        return self._logging.verbose

    @property
    def quiet(self) -> bool:
        return self._logging.quiet


_ENV: Optional[Environment] = None


def reset_env_caches() -> None:
    """Invalidate cached views of environment variables."""
    global _ENV
    _ENV = None


def get_env() -> Environment:
    global _ENV
    if _ENV is None:
        _ENV = Environment()
    return _ENV
