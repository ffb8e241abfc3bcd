"""Workspace scaffolding helpers."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from .bundles import TemplateStore, default_store
from .config import DEFAULT_LAYOUT, ProjectConfig, WorkspaceLayout
from .materialize import FileMaterializer
from .naming import validate_slug
from .template import TemplateRenderer

__all__ = ["WorkspaceScaffolder"]


LOGGER = logging.getLogger(__name__)

_EXECUTABLE_SUFFIXES = (".sh",)


class WorkspaceScaffolder:
    """Create a new, empty monorepo workspace."""

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        store: TemplateStore | None = None,
        layout: WorkspaceLayout = DEFAULT_LAYOUT,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.store = store or default_store()
        self.layout = layout

    def render(self, name: str) -> dict[str, bytes]:
        """Return every file of the workspace ``name`` keyed by relative path."""

        validate_slug(name)
        config = ProjectConfig.from_name(name, workspace=name, layout=self.layout)
        files = dict(self.renderer.render_bundle(self.store.workspace, config.context()))
        for directory in self.layout.directories.values():
            files.setdefault((PurePosixPath(directory) / ".keep").as_posix(), b"")
        return files

    def create(self, name: str, parent_dir: str | Path, *, force: bool = False) -> Path:
        """Create the workspace ``name`` inside ``parent_dir`` and return its root.

        A ``name`` of ``"."`` scaffolds into ``parent_dir`` itself and takes the
        workspace name from that directory.
        """

        parent = Path(parent_dir).expanduser().resolve()
        if name == ".":
            target = parent
            name = parent.name
        else:
            target = parent / name
        files = self.render(name)

        with FileMaterializer(target.parent).transaction() as transaction:
            transaction.ensure_vacant(target, force=force)
            for relative, data in files.items():
                mode = 0o755 if relative.endswith(_EXECUTABLE_SUFFIXES) else None
                transaction.write(target.joinpath(*PurePosixPath(relative).parts), data, mode=mode)

        LOGGER.info("created workspace '%s' at %s", name, target)
        return target
