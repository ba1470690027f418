import json
from pathlib import Path

import pytest

from env import ConfigError
from pipeline.definition import load_definition, parse_definition
from runner import FailurePolicy
from stages.command import CommandAction
from stages.info import InfoAction
from stages.probe import HealthProbe

VALUES = {"workspace": "/tmp/ws", "image": "shop", "build_id": "9", "port": "3000"}


def _parse(data, **kw):
    return parse_definition(data, values=VALUES, **kw)


def test_minimal_definition():
    d = _parse({"stages": [{"name": "Test", "run": ["npm", "test"]}]}, fallback_name="ci")

    assert d.name == "ci"
    assert d.stages[0].policy is FailurePolicy.CONTINUE_AS_UNSTABLE
    assert d.stages[0].action == CommandAction.of(["npm", "test"])
    assert d.cleanup == () and d.artifacts == ()


def test_full_definition():
    d = _parse(
        {
            "name": "shop",
            "workspace": "{workspace}",
            "stages": [
                {
                    "name": "Checkout",
                    "run": ["git", "clone", "x"],
                    "policy": "abort-as-failure",
                    "timeout": 60,
                },
                {
                    "name": "Audit",
                    "run": [["npm", "audit"], ["npm", "audit", "--audit-level=moderate"]],
                    "cwd": "{workspace}",
                    "env": {"TAG": "{image}:prod-{build_id}"},
                },
                {"name": "Probe", "probe": {"url": "http://localhost:{port}/"}},
                {"name": "Notes", "info": "release {build_id}"},
            ],
            "cleanup": [["docker", "rm", "-f", "{image}-ci"]],
            "artifacts": ["coverage", "reports/*.xml"],
        },
        base_env={"PATH": "/opt/node/bin"},
        probe_defaults={"marker": "OWASP Juice Shop", "wait": 5},
    )

    checkout, audit, probe, notes = d.stages
    assert checkout.policy is FailurePolicy.ABORT_AS_FAILURE
    assert checkout.timeout == 60.0
    assert len(audit.action.commands) == 2
    assert audit.cwd == Path("/tmp/ws")
    assert audit.env == {"PATH": "/opt/node/bin", "TAG": "shop:prod-9"}
    assert probe.action == HealthProbe(
        url="http://localhost:3000/", marker="OWASP Juice Shop", wait=5.0, timeout=10.0
    )
    assert notes.action == InfoAction(("release 9",))
    assert d.cleanup[0].name == "docker rm -f"
    assert d.artifacts == ("coverage", "reports/*.xml")
    assert d.workspace == Path("/tmp/ws")


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"stages": []},
        {"stages": [{"run": ["true"]}]},
        {"stages": [{"name": "A", "run": ["true"]}, {"name": "A", "run": ["true"]}]},
        {"stages": [{"name": "A", "run": ["true"], "policy": "retry"}]},
        {"stages": [{"name": "A", "run": ["echo", "{nope}"]}]},
        {"stages": [{"name": "A", "run": "npm test"}]},
        {"stages": [{"name": "A"}]},
        {"stages": [{"name": "A", "run": ["true"], "info": "x"}]},
        {"stages": [{"name": "A", "probe": {"marker": "x"}}]},
        {"stages": [{"name": "A", "run": ["true"], "timeout": -1}]},
        {"stages": [{"name": "A", "run": ["true"]}], "artifacts": "coverage"},
        {"stages": [{"name": "A", "run": ["true"], "timeout": True}]},
        {"stages": [{"name": "A", "run": ["true"], "env": ["CI=true"]}]},
        {"stages": [{"name": "A", "run": ["true"]}], "artifacts": ["/etc/passwd"]},
        {"stages": [{"name": "A", "run": ["true"]}], "artifacts": ["../secrets/*.pem"]},
        {"stages": [{"name": "A", "run": ["true"]}], "artifacts": ["reports/../../x"]},
    ],
)
def test_invalid_definitions(data):
    with pytest.raises(ConfigError):
        _parse(data)


def test_load_from_file(tmp_path):
    path = tmp_path / "nightly.json"
    path.write_text(json.dumps({"stages": [{"name": "Lint", "run": ["npm", "run", "lint"]}]}))

    d = load_definition(path, values=VALUES)

    assert d.name == "nightly"
    assert d.source == path


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Missing pipeline definition"):
        load_definition(tmp_path / "absent.json", values=VALUES)


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{stages: ")
    with pytest.raises(ConfigError, match="invalid JSON"):
        load_definition(path, values=VALUES)
