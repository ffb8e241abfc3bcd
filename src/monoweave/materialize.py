"""Transactional file writer with all-or-nothing rollback."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator

from .errors import DirectoryExistsError, WorkspaceIOError

__all__ = ["FileMaterializer", "Transaction"]


LOGGER = logging.getLogger(__name__)

_TEMP_SUFFIX = ".monoweave-tmp"
_TRASH_PREFIX = ".monoweave-trash-"


def _write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` next to ``path`` and atomically swap it into place."""

    temporary = path.with_name(path.name + _TEMP_SUFFIX)
    try:
        with open(temporary, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temporary, path)
    except OSError:
        temporary.unlink(missing_ok=True)
        raise


class Transaction:
    """Journal of filesystem mutations that can be undone as a unit.

    Every mutation records how to revert itself before it happens to the
    caller. :meth:`rollback` replays the journal backwards; :meth:`commit`
    only purges directories staged for deletion.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.operation = "prepare"
        self.target: Path = root
        self._journal: list[tuple[str, Callable[[], None]]] = []
        self._touched: set[Path] = set()
        self._trash: list[Path] = []
        self.written: list[Path] = []

    def _begin(self, operation: str, target: Path) -> None:
        self.operation = operation
        self.target = target

    def ensure_vacant(self, directory: Path, *, force: bool = False) -> None:
        """Fail unless ``directory`` is missing, empty, or ``force`` is set."""

        self._begin("inspect", directory)
        if directory.exists() and not directory.is_dir():
            raise DirectoryExistsError(directory)
        if directory.is_dir() and any(directory.iterdir()) and not force:
            raise DirectoryExistsError(directory)

    def _ensure_directory(self, directory: Path) -> None:
        missing: list[Path] = []
        current = directory
        while not current.exists():
            missing.append(current)
            current = current.parent
        for path in reversed(missing):
            self._begin("create directory", path)
            path.mkdir()
            self._journal.append((f"rmdir {path}", path.rmdir))

    def write(self, path: Path, data: bytes, *, mode: int | None = None) -> None:
        """Write ``data`` to ``path``, remembering its previous content."""

        self._ensure_directory(path.parent)
        self._begin("write", path)
        if path not in self._touched:
            self._touched.add(path)
            original = path.read_bytes() if path.is_file() else None
            self._journal.append((f"restore {path}", self._restorer(path, original)))
        _write_bytes(path, data)
        if mode is not None:
            path.chmod(mode)
        self.written.append(path)

    @staticmethod
    def _restorer(path: Path, original: bytes | None) -> Callable[[], None]:
        def restore() -> None:
            if original is None:
                path.unlink(missing_ok=True)
            else:
                path.write_bytes(original)

        return restore

    def move(self, source: Path, destination: Path) -> None:
        """Rename ``source`` to ``destination``."""

        self._ensure_directory(destination.parent)
        self._begin("move", source)
        os.rename(source, destination)
        self._journal.append((f"move {destination} back", lambda: os.rename(destination, source)))

    def remove_tree(self, path: Path) -> None:
        """Stage ``path`` for deletion; it is only purged on commit."""

        self._begin("remove", path)
        trash = Path(tempfile.mkdtemp(prefix=_TRASH_PREFIX, dir=self.root))
        self._trash.append(trash)
        self._journal.append((f"rmdir {trash}", trash.rmdir))
        staged = trash / path.name
        os.rename(path, staged)
        self._journal.append((f"restore {path}", lambda: os.rename(staged, path)))

    def rollback(self) -> None:
        LOGGER.debug("rolling back %d filesystem changes", len(self._journal))
        while self._journal:
            description, undo = self._journal.pop()
            try:
                undo()
            except OSError:
                LOGGER.error("rollback step failed: %s", description, exc_info=True)
        self._trash.clear()

    def commit(self) -> None:
        self._journal.clear()
        for trash in self._trash:
            try:
                shutil.rmtree(trash)
            except OSError:
                LOGGER.warning("could not purge %s; remove it manually", trash, exc_info=True)
        self._trash.clear()


class FileMaterializer:
    """Apply a batch of filesystem changes under ``root`` atomically."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """Yield a :class:`Transaction`; any exception rolls it back.

        ``OSError`` raised inside the block is re-raised as
        :class:`~monoweave.errors.WorkspaceIOError` once rollback finished.
        """

        transaction = Transaction(self.root)
        try:
            yield transaction
        except OSError as exc:
            transaction.rollback()
            raise WorkspaceIOError(transaction.operation, transaction.target, exc) from exc
        except BaseException:
            transaction.rollback()
            raise
        transaction.commit()
