from __future__ import annotations

from pathlib import Path

import pytest

from monoweave import materialize
from monoweave.errors import DirectoryExistsError, WorkspaceIOError
from monoweave.materialize import FileMaterializer


class _Boom(RuntimeError):
    pass


def _fail_on_call(monkeypatch: pytest.MonkeyPatch, failing_call: int) -> list[Path]:
    calls: list[Path] = []
    original = materialize._write_bytes

    def flaky(path: Path, data: bytes) -> None:
        calls.append(path)
        if len(calls) == failing_call:
            raise OSError(28, "No space left on device")
        original(path, data)

    monkeypatch.setattr(materialize, "_write_bytes", flaky)
    return calls


def test_successful_transaction_writes_files(tmp_path: Path):
    with FileMaterializer(tmp_path).transaction() as transaction:
        transaction.write(tmp_path / "a" / "b" / "c.txt", b"hello")
        transaction.write(tmp_path / "run.sh", b"#!/bin/sh\n", mode=0o755)

    assert (tmp_path / "a" / "b" / "c.txt").read_bytes() == b"hello"
    assert (tmp_path / "run.sh").stat().st_mode & 0o111
    assert not list(tmp_path.rglob("*.monoweave-tmp"))


def test_io_failure_rolls_back_new_and_existing_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    existing = tmp_path / "config.yml"
    existing.write_bytes(b"original\n")
    _fail_on_call(monkeypatch, 3)

    with pytest.raises(WorkspaceIOError) as excinfo:
        with FileMaterializer(tmp_path).transaction() as transaction:
            transaction.write(tmp_path / "project" / "src" / "one.txt", b"1")
            transaction.write(existing, b"changed\n")
            transaction.write(tmp_path / "project" / "two.txt", b"2")

    assert excinfo.value.operation == "write"
    assert excinfo.value.path == tmp_path / "project" / "two.txt"
    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.exit_code == 6
    assert existing.read_bytes() == b"original\n"
    assert not (tmp_path / "project").exists()


def test_other_exceptions_roll_back_and_propagate(tmp_path: Path):
    with pytest.raises(_Boom):
        with FileMaterializer(tmp_path).transaction() as transaction:
            transaction.write(tmp_path / "new.txt", b"x")
            raise _Boom()
    assert list(tmp_path.iterdir()) == []


def test_ensure_vacant(tmp_path: Path):
    target = tmp_path / "target"
    with FileMaterializer(tmp_path).transaction() as transaction:
        transaction.ensure_vacant(target)
        target.mkdir()
        transaction.ensure_vacant(target)

    (target / "file").write_text("x", encoding="utf-8")
    with pytest.raises(DirectoryExistsError) as excinfo:
        with FileMaterializer(tmp_path).transaction() as transaction:
            transaction.ensure_vacant(target)
    assert "--force" in excinfo.value.suggestion

    with FileMaterializer(tmp_path).transaction() as transaction:
        transaction.ensure_vacant(target, force=True)


def test_move_is_reversed_on_failure(tmp_path: Path):
    source = tmp_path / "apps" / "app"
    source.mkdir(parents=True)
    (source / "index.html").write_text("<html>", encoding="utf-8")

    with pytest.raises(_Boom):
        with FileMaterializer(tmp_path).transaction() as transaction:
            transaction.move(source, tmp_path / "apps" / "web")
            raise _Boom()

    assert (source / "index.html").read_text(encoding="utf-8") == "<html>"
    assert not (tmp_path / "apps" / "web").exists()


def test_removed_tree_is_restored_on_failure_and_purged_on_commit(tmp_path: Path):
    doomed = tmp_path / "crates" / "math"
    doomed.mkdir(parents=True)
    (doomed / "Cargo.toml").write_text("[package]\n", encoding="utf-8")

    with pytest.raises(_Boom):
        with FileMaterializer(tmp_path).transaction() as transaction:
            transaction.remove_tree(doomed)
            assert not doomed.exists()
            raise _Boom()
    assert (doomed / "Cargo.toml").is_file()
    assert sorted(path.name for path in tmp_path.iterdir()) == ["crates"]

    with FileMaterializer(tmp_path).transaction() as transaction:
        transaction.remove_tree(doomed)
    assert not doomed.exists()
    assert sorted(path.name for path in tmp_path.iterdir()) == ["crates"]
