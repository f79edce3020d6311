"""Tests for StagingArea."""

import pytest

from rcverify.core.errors import UsageError
from rcverify.stages.staging import StagingArea


def test_prepare_removes_previous_contents(tmp_path):
    """Nothing from an earlier run survives prepare()."""
    root = tmp_path / "rc-verify"
    (root / "source" / "old-1.0-src").mkdir(parents=True)
    (root / "build-jdk-11.log").write_text("stale")

    staging = StagingArea(root=root)
    staging.prepare()

    assert root.is_dir()
    assert list(root.iterdir()) == []


def test_prepare_replaces_plain_file(tmp_path):
    root = tmp_path / "rc-verify"
    root.write_text("not a directory")

    StagingArea(root=root).prepare()

    assert root.is_dir()


def test_prepare_creates_parents(tmp_path):
    root = tmp_path / "a" / "b" / "rc-verify"

    StagingArea(root=root).prepare()

    assert root.is_dir()


def test_paths_follow_configuration(test_config, tmp_path):
    config = test_config.model_copy(
        update={"staging": test_config.staging.model_copy(
            update={"root": tmp_path / "area"}
        )}
    )

    staging = StagingArea.from_config(config)

    assert staging.source_dir == tmp_path / "area" / "source"
    assert staging.version_log == tmp_path / "area" / "versions.log"
    assert staging.build_log("jdk-17") == tmp_path / "area" / "build-jdk-17.log"


def test_relative_root_made_absolute(test_config):
    staging = StagingArea.from_config(test_config)

    assert staging.root.is_absolute()
    assert staging.root.name == "rc-verify"


def test_build_log_name_keeps_other_braces(tmp_path):
    staging = StagingArea(
        root=tmp_path, build_log_template="build-{name}-${RUN}.log"
    )

    assert staging.build_log("jdk-11") == tmp_path / "build-jdk-11-${RUN}.log"


def test_current_directory_refused(tmp_path, monkeypatch):
    """prepare() never wipes the directory it runs from."""
    (tmp_path / "keep.txt").write_text("precious")
    monkeypatch.chdir(tmp_path)

    with pytest.raises(UsageError, match="Refusing"):
        StagingArea(root=tmp_path).prepare()

    assert (tmp_path / "keep.txt").read_text() == "precious"


def test_parent_of_current_directory_refused(tmp_path, monkeypatch):
    workdir = tmp_path / "project" / "work"
    workdir.mkdir(parents=True)
    monkeypatch.chdir(workdir)

    with pytest.raises(UsageError):
        StagingArea(root=tmp_path / "project").prepare()

    assert workdir.is_dir()


def test_home_directory_refused(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    (home / ".profile").write_text("settings")
    monkeypatch.setenv("HOME", str(home))

    with pytest.raises(UsageError):
        StagingArea(root=home).prepare()

    assert (home / ".profile").is_file()


def test_directory_beside_cwd_allowed(tmp_path, monkeypatch):
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    root = StagingArea(root=tmp_path / "rc-verify").prepare()

    assert root.is_dir()
    assert workdir.is_dir()
