from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from env import ConfigError
from pipeline.artifacts import is_workspace_relative
from pipeline.cleanup import CleanupStep
from stages.base import Action, FailurePolicy, Stage
from stages.command import CommandAction
from stages.info import InfoAction, ResetWorkspace
from stages.probe import HealthProbe


@dataclass(frozen=True)
class PipelineDefinition:
    name: str
    stages: tuple[Stage, ...]
    cleanup: tuple[CleanupStep, ...] = ()
    artifacts: tuple[str, ...] = ()
    workspace: Optional[Path] = None
    source: Optional[Path] = field(default=None, compare=False)


# ------------------------------------------------------------
# Placeholder expansion
# ------------------------------------------------------------


def _expand(value: str, values: Mapping[str, str], where: str) -> str:
    try:
        return value.format(**values)
    except KeyError as e:
        raise ConfigError(f"{where}: unknown placeholder {e}") from None
    except (IndexError, ValueError) as e:
        raise ConfigError(f"{where}: bad placeholder syntax in {value!r} ({e})") from None


def _expand_argv(raw: Any, values: Mapping[str, str], where: str) -> tuple[str, ...]:
    if not isinstance(raw, list) or not raw or not all(isinstance(a, str) for a in raw):
        raise ConfigError(f"{where}: a command must be a non-empty list of strings")
    return tuple(_expand(a, values, where) for a in raw)


def _commands(raw: Any, values: Mapping[str, str], where: str) -> CommandAction:
    # ["npm", "test"] or [["npm", "audit"], ["npm", "audit", "--audit-level=moderate"]]
    if isinstance(raw, list) and raw and all(isinstance(c, list) for c in raw):
        return CommandAction.of(*(_expand_argv(c, values, where) for c in raw))
    return CommandAction.of(_expand_argv(raw, values, where))


# ------------------------------------------------------------
# Stage parsing
# ------------------------------------------------------------


def _parse_action(
    data: Mapping[str, Any],
    values: Mapping[str, str],
    where: str,
    *,
    probe_defaults: Mapping[str, Any],
) -> Action:
    kinds = [k for k in ("run", "probe", "info", "reset") if k in data]
    if len(kinds) != 1:
        raise ConfigError(f"{where}: exactly one of run/probe/info/reset is required")

    kind = kinds[0]
    raw = data[kind]

    if kind == "run":
        return _commands(raw, values, where)

    if kind == "info":
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            raise ConfigError(f"{where}: info must be a string or list of strings")
        return InfoAction(tuple(_expand(str(line), values, where) for line in raw))

    if kind == "reset":
        return ResetWorkspace(Path(_expand(str(raw), values, where)))

    if not isinstance(raw, dict) or "url" not in raw:
        raise ConfigError(f"{where}: probe needs at least a url")
    try:
        return HealthProbe(
            url=_expand(str(raw["url"]), values, where),
            marker=_expand(str(raw.get("marker", probe_defaults["marker"])), values, where),
            wait=float(raw.get("wait", probe_defaults["wait"])),
            timeout=float(raw.get("timeout", probe_defaults["timeout"])),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{where}: bad probe settings ({e})") from None


def _parse_stage(
    data: Any,
    index: int,
    values: Mapping[str, str],
    *,
    base_env: Mapping[str, str],
    probe_defaults: Mapping[str, Any],
) -> Stage:
    if not isinstance(data, dict):
        raise ConfigError(f"stage #{index}: must be an object")

    name = str(data.get("name") or "").strip()
    if not name:
        raise ConfigError(f"stage #{index}: missing name")
    where = f"stage '{name}'"

    try:
        policy = FailurePolicy(data.get("policy", FailurePolicy.CONTINUE_AS_UNSTABLE.value))
    except ValueError:
        raise ConfigError(f"{where}: unknown policy {data.get('policy')!r}") from None

    cwd = data.get("cwd")
    timeout = data.get("timeout")
    if timeout is not None and (
        isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0
    ):
        raise ConfigError(f"{where}: timeout must be a non-negative number")

    raw_env = data.get("env") or {}
    if not isinstance(raw_env, dict):
        raise ConfigError(f"{where}: env must be an object of NAME: value")

    env = dict(base_env)
    for k, v in raw_env.items():
        env[str(k)] = _expand(str(v), values, where)

    return Stage(
        name=name,
        action=_parse_action(data, values, where, probe_defaults=probe_defaults),
        policy=policy,
        cwd=Path(_expand(str(cwd), values, where)) if cwd else None,
        env=env,
        timeout=float(timeout) if timeout else None,
    )


def parse_definition(
    data: Any,
    *,
    values: Mapping[str, str],
    base_env: Mapping[str, str] | None = None,
    probe_defaults: Mapping[str, Any] | None = None,
    fallback_name: str = "pipeline",
    source: Path | None = None,
) -> PipelineDefinition:
    if not isinstance(data, dict):
        raise ConfigError("pipeline definition must be a JSON object")

    raw_stages = data.get("stages")
    if not isinstance(raw_stages, list) or not raw_stages:
        raise ConfigError("pipeline definition needs a non-empty 'stages' list")

    defaults = {"marker": "", "wait": 0.0, "timeout": 10.0}
    defaults.update(probe_defaults or {})

    stages = tuple(
        _parse_stage(s, i, values, base_env=base_env or {}, probe_defaults=defaults)
        for i, s in enumerate(raw_stages, start=1)
    )

    seen: set[str] = set()
    for stage in stages:
        if stage.name in seen:
            raise ConfigError(f"duplicate stage name: {stage.name}")
        seen.add(stage.name)

    cleanup = tuple(
        CleanupStep(
            name=" ".join(argv[:3]),
            action=CommandAction.of(argv),
        )
        for argv in (
            _expand_argv(c, values, f"cleanup #{i}")
            for i, c in enumerate(data.get("cleanup") or [], start=1)
        )
    )

    artifacts = data.get("artifacts") or []
    if not isinstance(artifacts, list):
        raise ConfigError("'artifacts' must be a list of glob patterns")

    patterns = tuple(_expand(str(a), values, "artifacts") for a in artifacts)
    for pattern in patterns:
        if not is_workspace_relative(pattern):
            raise ConfigError(f"artifact pattern must stay inside the workspace: {pattern!r}")

    workspace = data.get("workspace")

    return PipelineDefinition(
        name=str(data.get("name") or fallback_name),
        stages=stages,
        cleanup=cleanup,
        artifacts=patterns,
        workspace=Path(_expand(str(workspace), values, "workspace")) if workspace else None,
        source=source,
    )


def load_definition(
    path: Path,
    *,
    values: Mapping[str, str],
    base_env: Mapping[str, str] | None = None,
    probe_defaults: Mapping[str, Any] | None = None,
) -> PipelineDefinition:
    if not path.exists():
        raise ConfigError(f"Missing pipeline definition: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path.name}: invalid JSON ({e})") from e

    return parse_definition(
        data,
        values=values,
        base_env=base_env,
        probe_defaults=probe_defaults,
        fallback_name=path.stem,
        source=path,
    )
