from __future__ import annotations

from env import WORKSPACE_DIR, Environment
from pipeline.cleanup import CleanupStep
from pipeline.definition import PipelineDefinition
from stages.base import FailurePolicy, Stage
from stages.command import CommandAction
from stages.info import InfoAction, ResetWorkspace
from stages.probe import HealthProbe

DEFAULT_PIPELINE = "default"

# Intentionally vulnerable target: these are the findings a reviewer should
# expect in the audit output, not the result of a real check.
DISCLOSURE_NOTES = (
    "Vulnerability disclosure summary (informational, no scan performed):",
    "  - target is a deliberately insecure training application",
    "  - expect injection, broken authentication and XSS findings",
    "  - see the Dependency Audit stage output for package advisories",
    "  - do not expose the deployed container outside localhost",
)


def default_definition(env: Environment) -> PipelineDefinition:
    """
    The built-in pipeline: one parameterized stage table.

    Every stage continues as UNSTABLE on failure. In strict mode checkout and
    dependency installation abort the run as FAILURE instead.
    """
    workspace = env.workspace_path
    stage_env = env.stage_env()
    image = env.image_name
    release_tag = f"{image}:prod-{env.build_id}"

    gate = (
        FailurePolicy.ABORT_AS_FAILURE
        if env.strict
        else FailurePolicy.CONTINUE_AS_UNSTABLE
    )
    timeout = env.stage_timeout or None
    report_path = str(workspace / env.test_report)

    def npm(*args: str) -> list[str]:
        return [env.npm_exe, *args]

    def docker(*args: str) -> list[str]:
        return [env.docker_exe, *args]

    def stage(name: str, action, **kw) -> Stage:
        kw.setdefault("cwd", workspace)
        kw.setdefault("env", stage_env)
        kw.setdefault("timeout", timeout)
        return Stage(name=name, action=action, **kw)

    stages = (
        stage("Workspace Reset", ResetWorkspace(workspace), cwd=None),
        stage(
            "Checkout",
            CommandAction.of(
                [env.git_exe, "clone", "--depth", "1", env.repo_url, env.workspace_name]
            ),
            cwd=WORKSPACE_DIR,
            policy=gate,
        ),
        stage("Install Dependencies", CommandAction.of(npm("install")), policy=gate),
        stage(
            "Run Tests",
            CommandAction.of(npm("test")),
            # picked up by mocha-junit-reporter / jest-junit
            env={
                **stage_env,
                "MOCHA_FILE": report_path,
                "JEST_JUNIT_OUTPUT_FILE": report_path,
                "CI": "true",
            },
        ),
        stage("Lint", CommandAction.of(npm("run", "lint"))),
        stage(
            "Dependency Audit",
            CommandAction.of(
                npm("audit"),
                npm("audit", "--audit-level=moderate"),
            ),
        ),
        stage("Build", CommandAction.of(npm("run", "build"))),
        stage("Docker Build", CommandAction.of(docker("build", "-t", f"{image}:latest", "."))),
        stage(
            "Deploy",
            CommandAction.of(
                docker(
                    "run",
                    "-d",
                    "--name",
                    env.container_name,
                    "-p",
                    f"{env.host_port}:{env.container_port}",
                    f"{image}:latest",
                )
            ),
        ),
        stage(
            "Health Check",
            HealthProbe(
                url=env.health_url,
                marker=env.health_marker,
                wait=env.probe_wait,
                timeout=env.probe_timeout,
            ),
            cwd=None,
        ),
        stage("Tag Release", CommandAction.of(docker("tag", f"{image}:latest", release_tag))),
        stage(
            "Production Deployment Simulation",
            InfoAction(
                (
                    f"Deploying {release_tag} to production (simulated, no external call)",
                    f"Rollout: 1/1 replicas of {env.container_name} healthy (simulated)",
                    "Monitoring: CPU, memory and error rate within thresholds (simulated)",
                )
            ),
            cwd=None,
        ),
        stage("Vulnerability Disclosure Summary", InfoAction(DISCLOSURE_NOTES), cwd=None),
    )

    cleanup = (
        CleanupStep("docker stop", CommandAction.of(docker("stop", env.container_name))),
        CleanupStep("docker rm", CommandAction.of(docker("rm", env.container_name))),
    )

    return PipelineDefinition(
        name=DEFAULT_PIPELINE,
        stages=stages,
        cleanup=cleanup,
        artifacts=tuple(env.artifacts),
        workspace=workspace,
    )
