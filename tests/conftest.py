from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from monoweave.scaffold import WorkspaceScaffolder  # noqa: E402
from monoweave.sync import GraphSynchronizer  # noqa: E402

CONFIG_FILES = (".moon/workspace.yml", "shared-wasm/moon.yml", "package.json")


def snapshot(root: Path) -> dict[str, bytes]:
    """Return every file under ``root`` keyed by POSIX relative path."""

    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    """A freshly initialised, empty workspace."""

    return WorkspaceScaffolder().create("stack", tmp_path)


@pytest.fixture()
def synchronizer(workspace: Path) -> GraphSynchronizer:
    return GraphSynchronizer(workspace)
