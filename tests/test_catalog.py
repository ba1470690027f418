from env import WORKSPACE_DIR, get_env
from runner import FailurePolicy
from stages.catalog import default_definition
from stages.command import CommandAction
from stages.info import InfoAction, ResetWorkspace
from stages.probe import HealthProbe

EXPECTED_ORDER = [
    "Workspace Reset",
    "Checkout",
    "Install Dependencies",
    "Run Tests",
    "Lint",
    "Dependency Audit",
    "Build",
    "Docker Build",
    "Deploy",
    "Health Check",
    "Tag Release",
    "Production Deployment Simulation",
    "Vulnerability Disclosure Summary",
]


def _definition(monkeypatch, **env):
    for k, v in env.items():
        monkeypatch.setenv(k, v)
    e = get_env()
    e.build_id = e.build_id or "42"
    return default_definition(e)


def test_stage_order(monkeypatch):
    d = _definition(monkeypatch)
    assert [s.name for s in d.stages] == EXPECTED_ORDER


def test_everything_continues_by_default(monkeypatch):
    d = _definition(monkeypatch)
    assert {s.policy for s in d.stages} == {FailurePolicy.CONTINUE_AS_UNSTABLE}


def test_strict_gates_checkout_and_install(monkeypatch):
    d = _definition(monkeypatch, STAGEARR_STRICT="1")
    aborting = [s.name for s in d.stages if s.policy is FailurePolicy.ABORT_AS_FAILURE]
    assert aborting == ["Checkout", "Install Dependencies"]


def test_action_kinds(monkeypatch):
    d = _definition(monkeypatch)
    by_name = {s.name: s for s in d.stages}

    assert isinstance(by_name["Workspace Reset"].action, ResetWorkspace)
    assert isinstance(by_name["Health Check"].action, HealthProbe)
    assert isinstance(by_name["Vulnerability Disclosure Summary"].action, InfoAction)
    assert len(by_name["Dependency Audit"].action.commands) == 2


def test_checkout_runs_from_workspace_root(monkeypatch):
    d = _definition(monkeypatch, STAGEARR_REPO_URL="https://git.example/app.git")
    checkout = d.stages[1]

    assert checkout.cwd == WORKSPACE_DIR
    assert "https://git.example/app.git" in checkout.action.describe()
    assert d.stages[2].cwd == get_env().workspace_path


def test_release_tag_uses_build_id(monkeypatch):
    d = _definition(monkeypatch, STAGEARR_BUILD_ID="17", STAGEARR_IMAGE_NAME="shop")
    tag = next(s for s in d.stages if s.name == "Tag Release")
    assert tag.action.describe() == "docker tag shop:latest shop:prod-17"


def test_health_check_targets_host_port(monkeypatch):
    d = _definition(monkeypatch, STAGEARR_HOST_PORT="8080")
    probe = next(s for s in d.stages if s.name == "Health Check").action

    assert probe.url == "http://localhost:8080/"
    assert probe.marker == "OWASP Juice Shop"
    assert probe.wait == 0


def test_tests_stage_points_reporters_at_report(monkeypatch):
    d = _definition(monkeypatch)
    tests = d.stages[3]

    assert tests.env["MOCHA_FILE"].endswith("test-results.xml")
    assert tests.env["CI"] == "true"


def test_cleanup_and_artifacts(monkeypatch):
    d = _definition(monkeypatch, STAGEARR_CONTAINER_NAME="shop-ci")

    assert [c.name for c in d.cleanup] == ["docker stop", "docker rm"]
    assert d.cleanup[0].action == CommandAction.of(["docker", "stop", "shop-ci"])
    assert d.artifacts == ("test-results.xml", "coverage", "build")


def test_node_home_prepends_path(monkeypatch, tmp_path):
    d = _definition(monkeypatch, STAGEARR_NODE_HOME=str(tmp_path))
    assert d.stages[2].env["PATH"].startswith(str(tmp_path / "bin"))
