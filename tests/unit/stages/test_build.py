"""Tests for BuildRunner."""

import pytest

from rcverify.core.result import BuildOutcome
from rcverify.stages.build import BuildRunner, classify_build
from rcverify.stages.staging import StagingArea
from rcverify.stages.toolchain import BuildEnvironment

JDK11 = BuildEnvironment(executable="/opt/jdk-11/bin/java")
JDK17 = BuildEnvironment(executable="/opt/jdk-17/bin/java")


@pytest.fixture
def staging(tmp_path):
    area = StagingArea(root=tmp_path / "staging")
    area.prepare()
    return area


@pytest.fixture
def project_root(staging):
    root = staging.source_dir / "proj-1.0-src"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def switches(tmp_path):
    return tmp_path / "switches.log"


@pytest.fixture
def make_runner(test_config, staging, project_root, switches, jdk11_only_build):
    def factory(build_command=jdk11_only_build, **toolchain):
        toolchain_config = test_config.toolchain.model_copy(update={
            "query_command": "echo 'Value: /opt/jdk-21/bin/java'",
            "switch_command": f"echo {{executable}} >> {switches}",
            "version_commands": ["echo java home is $JAVA_HOME"],
            **toolchain,
        })
        build_config = test_config.build.model_copy(
            update={"command": build_command}
        )
        return BuildRunner(project_root, staging, build_config, toolchain_config)
    return factory


@pytest.mark.parametrize("output, returncode, require_exit, expected", [
    ("[INFO] BUILD SUCCESS", 0, True, BuildOutcome.SUCCESS),
    ("[INFO] BUILD FAILURE", 1, True, BuildOutcome.FAILURE),
    ("compiled", 0, True, BuildOutcome.FAILURE),
    ("[INFO] BUILD SUCCESS", 1, True, BuildOutcome.FAILURE),
    ("[INFO] BUILD SUCCESS", 1, False, BuildOutcome.SUCCESS),
    ("[INFO] BUILD SUCCESS", None, True, BuildOutcome.FAILURE),
])
def test_classification(output, returncode, require_exit, expected):
    assert classify_build(
        output, returncode, "BUILD SUCCESS", require_exit
    ) is expected


def test_empty_marker_uses_exit_status():
    assert classify_build("", 0, "") is BuildOutcome.SUCCESS
    assert classify_build("", 2, "") is BuildOutcome.FAILURE


def test_one_result_per_environment(make_runner, staging):
    results = make_runner().run_all([JDK11, JDK17])

    assert [(r.environment, r.outcome) for r in results] == [
        ("jdk-11", BuildOutcome.SUCCESS),
        ("jdk-17", BuildOutcome.FAILURE),
    ]
    assert results[0].log_file == staging.root / "build-jdk-11.log"
    assert "BUILD SUCCESS" in results[0].log_file.read_text()
    assert "BUILD FAILURE" in results[1].log_file.read_text()


def test_build_runs_in_project_root(make_runner, project_root):
    (project_root / "pom.xml").write_text("<project/>")

    results = make_runner(
        build_command="test -f pom.xml && echo BUILD SUCCESS"
    ).run_all([JDK11])

    assert results[0].success


def test_failure_tail_shown(make_runner, capsys):
    make_runner().run_all([JDK17])

    out = capsys.readouterr().out
    assert "Build output (tail):" in out
    assert "compilation failed" in out


def test_version_block_per_environment(make_runner, staging):
    make_runner().run_all([JDK11, JDK17])

    versions = staging.version_log.read_text()
    assert "--- jdk-11 ---" in versions
    assert "java home is /opt/jdk-11" in versions
    assert "--- jdk-17 ---" in versions
    assert "java home is /opt/jdk-17" in versions


def test_switch_failure_isolated(make_runner, tmp_path):
    """A broken alternative is recorded and the next one still builds."""
    switches = tmp_path / "good-switches.log"
    runner = make_runner(switch_command=(
        "case {executable} in */jdk-17/*) exit 3;; esac; "
        f"echo {{executable}} >> {switches}"
    ))

    results = runner.run_all([JDK17, JDK11])

    assert results[0].outcome is BuildOutcome.FAILURE
    assert "jdk-17" in results[0].reason
    assert results[0].log_file is None
    assert results[1].success


def test_toolchain_restored_after_loop(make_runner, switches):
    make_runner().run_all([JDK11, JDK17])

    assert switches.read_text().split() == [
        "/opt/jdk-11/bin/java",
        "/opt/jdk-17/bin/java",
        "/opt/jdk-21/bin/java",
    ]


def test_default_environment_builds_once(make_runner, switches, staging):
    results = make_runner(
        build_command="echo BUILD SUCCESS"
    ).run_all([BuildEnvironment.default()])

    assert len(results) == 1
    assert results[0].success
    assert results[0].environment == "default"
    assert (staging.root / "build-default.log").is_file()
    assert not switches.exists()


def test_shell_variables_in_switch_command(make_runner, switches, monkeypatch):
    """${VAR} in a command template is left for the shell to expand."""
    monkeypatch.setenv("SWITCH_NOTE", "noted")
    runner = make_runner(
        switch_command=f"echo {{executable}} ${{SWITCH_NOTE}} >> {switches}"
    )

    results = runner.run_all([JDK11, JDK17])

    assert [r.environment for r in results] == ["jdk-11", "jdk-17"]
    assert results[0].outcome is BuildOutcome.SUCCESS
    assert switches.read_text().splitlines()[:2] == [
        "/opt/jdk-11/bin/java noted",
        "/opt/jdk-17/bin/java noted",
    ]


def test_unexpected_fault_fails_one_environment(make_runner, monkeypatch):
    """Any fault while preparing a toolchain is that environment's failure."""
    original = BuildRunner.capture_versions

    def capture_versions(self, environment, env):
        if environment.name == "jdk-11":
            raise RuntimeError("version query crashed")
        return original(self, environment, env)

    monkeypatch.setattr(BuildRunner, "capture_versions", capture_versions)

    results = make_runner(build_command="echo '[INFO] BUILD SUCCESS'").run_all(
        [JDK11, JDK17]
    )

    assert [(r.environment, r.outcome) for r in results] == [
        ("jdk-11", BuildOutcome.FAILURE),
        ("jdk-17", BuildOutcome.SUCCESS),
    ]
    assert "version query crashed" in results[0].reason
