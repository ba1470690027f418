from env.env import (
    Environment,
    get_env,
    reset_env_caches,
    get_logging_env,
    ConfigError,
    _load_dotenv,
)

from env.paths import (
    PROJECT_ROOT,
    LOGS_DIR,
    WORKSPACE_DIR,
    ARTIFACTS_DIR,
    PIPELINES_DIR,
    STATE_DIR,
)

__all__ = [
    "Environment",
    "get_env",
    "reset_env_caches",
    "get_logging_env",
    "ConfigError",
    "PROJECT_ROOT",
    "LOGS_DIR",
    "WORKSPACE_DIR",
    "ARTIFACTS_DIR",
    "PIPELINES_DIR",
    "STATE_DIR",
    "_load_dotenv",
]
