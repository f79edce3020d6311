"""Pytest configuration and fixtures for rcverify tests."""

import shutil
import sys
import tarfile
import tempfile
from pathlib import Path

import pytest

from rcverify.core.log import ConsoleSink, setup_logger

# Stand-in for a JDK 11 / JDK 17 host: only JDK 11 builds
BUILD_ONLY_ON_JDK11 = (
    'if [ "$JAVA_HOME" = /opt/jdk-11 ]; '
    'then echo "[INFO] BUILD SUCCESS"; '
    'else echo "[ERROR] compilation failed"; '
    'echo "[INFO] BUILD FAILURE"; exit 1; fi'
)


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only logging for the whole test session."""
    test_log_root = Path(tempfile.gettempdir()) / "rcverify-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def mock_argv():
    """Minimal sys.argv so State does not parse pytest's arguments."""
    original = sys.argv
    sys.argv = ["rcverify"]
    yield
    sys.argv = original


@pytest.fixture(scope="session")
def test_config():
    """Config loaded from the packaged defaults only."""
    from rcverify.core.config import State

    old_argv = sys.argv
    sys.argv = ['rcverify']

    try:
        state = State()
        return state.config
    finally:
        sys.argv = old_argv


def make_source_tarball(
    directory: Path, root: str = "proj-1.0-src", name: str | None = None
) -> Path:
    """Write a tar.gz whose single top-level directory is `root`."""
    directory.mkdir(parents=True, exist_ok=True)
    tree = directory / "_tree" / root
    tree.mkdir(parents=True)
    (tree / "pom.xml").write_text("<project/>\n")
    (tree / "src").mkdir()
    (tree / "src" / "Main.java").write_text("class Main {}\n")

    archive = directory / (name or f"{root}.tar.gz")
    with tarfile.open(archive, "w:gz") as tar:
        tar.add(tree, arcname=root)

    shutil.rmtree(directory / "_tree")
    return archive


@pytest.fixture
def remote_release(tmp_path):
    """A local directory laid out like a published release candidate."""
    remote = tmp_path / "remote" / "proj" / "1.0-RC1"
    remote.mkdir(parents=True)

    validator = remote / "signature-validator.sh"
    validator.write_text(
        'echo "Checking proj-1.0-src.tar.gz.asc"\n'
        'echo "SUCCESSFUL VALIDATION"\n'
    )
    make_source_tarball(remote / "source")
    (remote / "site").mkdir()
    (remote / "site" / "index.html").write_text("<html/>\n")
    return remote


@pytest.fixture
def pipeline_config(tmp_path):
    """Config overrides that drive the pipeline with shell stand-ins.

    The fetch copies the local release, the alternatives system lists
    two JDKs and records switches, and the build only passes on JDK 11.
    """
    switches = tmp_path / "switches.log"
    return {
        "staging": {"root": str(tmp_path / "staging")},
        "fetch": {"command": "cp -R {base_url}. ."},
        "toolchain": {
            "list_command": (
                "printf '%s\\n' /opt/jdk-11/bin/java /opt/jdk-17/bin/java"
            ),
            "query_command": "echo 'Value: /opt/jdk-21/bin/java'",
            "switch_command": f"echo {{executable}} >> {switches}",
            "version_commands": ["echo java home is $JAVA_HOME"],
        },
        "build": {"command": BUILD_ONLY_ON_JDK11},
    }


@pytest.fixture
def jdk11_only_build():
    return BUILD_ONLY_ON_JDK11


@pytest.fixture
def tarball_factory():
    """make_source_tarball, for tests that lay out their own sources."""
    return make_source_tarball
