import logging
import sys
import time

import pytest

from stages.base import ActionContext, StageFault, StageTimeout
from stages.command import CommandAction, _parse_child_level


def _py(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def _ctx(**kw) -> ActionContext:
    return ActionContext(stage="test", **kw)


def test_zero_exit_and_output_captured():
    action = CommandAction.of(_py("print('hello from child')"))
    result = action.run(_ctx())

    assert result.exit_code == 0
    assert "hello from child" in result.output


def test_nonzero_exit_reported():
    result = CommandAction.of(_py("import sys; sys.exit(3)")).run(_ctx())
    assert result.exit_code == 3


def test_missing_tool_is_a_fault():
    action = CommandAction.of(["stagearr-definitely-not-a-real-tool", "--version"])
    with pytest.raises(StageFault):
        action.run(_ctx())


def test_missing_working_directory_is_a_fault(tmp_path):
    action = CommandAction.of(_py("pass"))
    with pytest.raises(StageFault):
        action.run(_ctx(cwd=tmp_path / "not-cloned"))


def test_timeout_kills_and_raises():
    action = CommandAction.of(_py("import time; time.sleep(30)"))
    with pytest.raises(StageTimeout):
        action.run(_ctx(timeout=0.5))


@pytest.mark.skipif(sys.platform == "win32", reason="process groups are POSIX-only")
def test_timeout_kills_grandchildren_holding_stdout():
    # the worker inherits stdout, so the pipe stays open until it dies too
    worker = "import time; time.sleep(20)"
    code = (
        "import subprocess, sys, time; "
        f"subprocess.Popen([sys.executable, '-c', {worker!r}]); "
        "time.sleep(30)"
    )
    started = time.monotonic()
    with pytest.raises(StageTimeout):
        CommandAction.of(_py(code)).run(_ctx(timeout=0.5))

    assert time.monotonic() - started < 10


def test_every_command_runs_and_first_failure_wins():
    action = CommandAction.of(
        _py("import sys; print('basic'); sys.exit(1)"),
        _py("import sys; print('moderate'); sys.exit(2)"),
    )
    result = action.run(_ctx())

    assert result.exit_code == 1
    assert "basic" in result.output
    assert "moderate" in result.output


def test_cwd_and_env_are_applied(tmp_path):
    action = CommandAction.of(
        _py("import os; print(os.getcwd()); print(os.environ['STAGEARR_PROBE'])")
    )
    result = action.run(_ctx(cwd=tmp_path, env={"STAGEARR_PROBE": "from-stage"}))

    assert str(tmp_path.resolve()) in result.output
    assert "from-stage" in result.output


def test_output_keeps_only_the_tail():
    action = CommandAction.of(_py("for i in range(500): print(f'line {i}')"))
    lines = action.run(_ctx()).output.splitlines()

    assert len(lines) == 200
    assert lines[-1] == "line 499"


def test_describe_quotes_arguments():
    action = CommandAction.of(["npm", "audit", "--audit-level=moderate"], ["git", "log", "a b"])
    assert action.describe() == "npm audit --audit-level=moderate && git log 'a b'"


def test_needs_a_command():
    with pytest.raises(ValueError):
        CommandAction.of()


@pytest.mark.parametrize(
    "line, level, message",
    [
        ("npm WARN deprecated request@2.88.2", logging.WARNING, "npm WARN deprecated request@2.88.2"),
        ("npm ERR! code ELIFECYCLE", logging.ERROR, "npm ERR! code ELIFECYCLE"),
        ("[ ERROR ] boom", logging.ERROR, "boom"),
        ("WARNING: low disk", logging.WARNING, "low disk"),
        ("  plain output  ", None, "  plain output"),
    ],
)
def test_child_level_parsing(line, level, message):
    assert _parse_child_level(line) == (level, message)
