from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from monoweave.errors import DirectoryExistsError, InvalidNameError
from monoweave.scaffold import WorkspaceScaffolder
from monoweave.workspace import load_workspace


@pytest.fixture()
def scaffolder() -> WorkspaceScaffolder:
    return WorkspaceScaffolder()


def test_scaffolder_creates_expected_structure(tmp_path: Path, scaffolder: WorkspaceScaffolder):
    root = scaffolder.create("my-stack", tmp_path)

    assert root == tmp_path.resolve() / "my-stack"
    expected_files = [
        root / ".moon" / "workspace.yml",
        root / ".moon" / "toolchain.yml",
        root / "package.json",
        root / "shared-wasm" / "moon.yml",
        root / "shared-wasm" / ".gitignore",
        root / "README.md",
        root / "sites" / ".keep",
        root / "apps" / ".keep",
        root / "workers" / ".keep",
        root / "crates" / ".keep",
    ]
    for path in expected_files:
        assert path.exists(), f"expected {path} to exist"
    assert os.access(root / "shared-wasm" / "gather.sh", os.X_OK)
    assert "# MyStack" in (root / "README.md").read_text(encoding="utf-8")

    loaded = load_workspace(root)
    assert loaded.name == "my-stack"
    assert loaded.manifest.projects == ()


def test_scaffolder_respects_force(tmp_path: Path, scaffolder: WorkspaceScaffolder):
    root = scaffolder.create("demo", tmp_path)
    (root / "README.md").write_text("custom", encoding="utf-8")

    with pytest.raises(DirectoryExistsError):
        scaffolder.create("demo", tmp_path)
    assert (root / "README.md").read_text(encoding="utf-8") == "custom"

    scaffolder.create("demo", tmp_path, force=True)
    assert (root / "README.md").read_text(encoding="utf-8").startswith("# Demo")


def test_scaffolder_validates_workspace_name(tmp_path: Path, scaffolder: WorkspaceScaffolder):
    with pytest.raises(InvalidNameError):
        scaffolder.create("../escape", tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_render_does_not_touch_disk(tmp_path: Path, scaffolder: WorkspaceScaffolder):
    files = scaffolder.render("demo")
    assert "shared-wasm/gather.sh" in files
    assert files["crates/.keep"] == b""
    assert list(tmp_path.iterdir()) == []


def test_scaffolder_rejects_name_with_trailing_newline(tmp_path: Path, scaffolder: WorkspaceScaffolder):
    with pytest.raises(InvalidNameError):
        scaffolder.create("stack\n", tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_scaffolder_initialises_current_directory(tmp_path: Path, scaffolder: WorkspaceScaffolder):
    target = tmp_path / "test-workspace"
    target.mkdir()

    root = scaffolder.create(".", target)

    assert root == target.resolve()
    for directory in ("apps", "sites", "workers", "crates", ".moon"):
        assert (root / directory).is_dir()
    assert json.loads((root / "package.json").read_text(encoding="utf-8"))["name"] == "test-workspace"
    assert load_workspace(root).name == "test-workspace"


def test_scaffolder_current_directory_must_be_empty(tmp_path: Path, scaffolder: WorkspaceScaffolder):
    target = tmp_path / "busy"
    target.mkdir()
    (target / "notes.txt").write_text("keep", encoding="utf-8")

    with pytest.raises(DirectoryExistsError):
        scaffolder.create(".", target)
    assert sorted(path.name for path in target.iterdir()) == ["notes.txt"]


def test_scaffolder_current_directory_needs_a_valid_name(tmp_path: Path, scaffolder: WorkspaceScaffolder):
    target = tmp_path / "Invalid Name With Spaces"
    target.mkdir()

    with pytest.raises(InvalidNameError):
        scaffolder.create(".", target)
    assert list(target.iterdir()) == []
