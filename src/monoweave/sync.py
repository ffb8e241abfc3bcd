"""Keep the workspace graph consistent while projects are added, renamed or removed.

Every operation is split in two phases. ``plan_*`` methods read the workspace,
validate the request and compute a :class:`SyncPlan`: the resulting manifest
plus the exact set of filesystem changes. :meth:`GraphSynchronizer.apply`
hands the plan to the :class:`~monoweave.materialize.FileMaterializer`, which
either performs all of it or none of it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable

from .bundles import TemplateStore, default_store
from .config import DEFAULT_LAYOUT, ProjectConfig, WorkspaceLayout
from .errors import DirectoryExistsError, DuplicateProjectError, ProjectNotFoundError
from .materialize import FileMaterializer
from .naming import validate_slug
from .project_files import rename_config_fields, wire_consumer
from .schema import (
    ProjectArchetype,
    ProjectDescriptor,
    WorkspaceManifest,
    split_task_ref,
    task_ref,
)
from .template import TemplateRenderer
from .workspace import (
    LoadedWorkspace,
    load_workspace,
    normalize_member,
    project_directory,
    serialize_manifest,
)

__all__ = ["GraphSynchronizer", "SyncPlan"]


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncPlan:
    """Everything one operation changes, expressed relative to the workspace root.

    Changes are applied in attribute order: vacancy checks, moves, removals,
    rendered project files, edits to existing project files, and finally the
    workspace configuration files.
    """

    operation: str
    manifest: WorkspaceManifest
    project: ProjectDescriptor | None = None
    vacant: list[str] = field(default_factory=list)
    force: bool = False
    moves: list[tuple[str, str]] = field(default_factory=list)
    removals: list[str] = field(default_factory=list)
    files: dict[str, bytes] = field(default_factory=dict)
    edits: dict[str, bytes] = field(default_factory=dict)
    config: dict[str, bytes] = field(default_factory=dict)

    def describe(self) -> list[str]:
        """Human readable summary, one change per line."""

        lines = [f"move {source} -> {destination}" for source, destination in self.moves]
        lines.extend(f"remove {path}/" for path in self.removals)
        lines.extend(f"create {path}" for path in self.files)
        lines.extend(f"update {path}" for path in self.edits)
        lines.extend(f"update {path}" for path in self.config)
        return lines


def _join(directory: str, relative: str) -> str:
    return (PurePosixPath(directory) / relative).as_posix()


class GraphSynchronizer:
    """Plan and apply structural changes to the workspace under ``root``."""

    def __init__(
        self,
        root: Path | str,
        *,
        store: TemplateStore | None = None,
        renderer: TemplateRenderer | None = None,
        layout: WorkspaceLayout = DEFAULT_LAYOUT,
    ) -> None:
        self.root = Path(root)
        self.store = store or default_store()
        self.renderer = renderer or TemplateRenderer()
        self.layout = layout

    def load(self) -> LoadedWorkspace:
        return load_workspace(self.root, self.layout)

    # -- Validation ----------------------------------------------------------

    def _check_available(
        self,
        manifest: WorkspaceManifest,
        name: str,
        *,
        ignore: ProjectDescriptor | None = None,
    ) -> None:
        validate_slug(name)
        key = name.casefold()
        for reserved in manifest.foreign_projects:
            if reserved.casefold() == key:
                raise DuplicateProjectError(name, reserved)
        existing = manifest.find_casefold(name)
        if existing is not None and existing != ignore:
            raise DuplicateProjectError(name, existing.name)

    @staticmethod
    def _require(manifest: WorkspaceManifest, name: str) -> ProjectDescriptor:
        project = manifest.get(name)
        if project is None:
            raise ProjectNotFoundError(name, manifest.names)
        return project

    # -- Consumer wiring -----------------------------------------------------

    def _consumer_edits(
        self,
        workspace: LoadedWorkspace,
        manifest: WorkspaceManifest,
        *,
        skip: Iterable[str] = (),
    ) -> dict[str, bytes]:
        enabled = bool(manifest.native_libraries)
        skipped = set(skip)
        edits: dict[str, bytes] = {}
        for project in manifest.consumers:
            if project.name in skipped:
                continue
            relative = _join(project.directory, self.layout.project_file)
            path = project_directory(workspace, relative)
            if not path.is_file():
                LOGGER.warning("%s is missing; cannot wire '%s' to the collector", path, project.name)
                continue
            updated = wire_consumer(path.read_text(encoding="utf-8"), self.layout, enabled, source=path)
            if updated is not None:
                edits[relative] = updated
        return edits

    # -- Planning ------------------------------------------------------------

    def plan_add(
        self,
        archetype: ProjectArchetype | str,
        name: str,
        *,
        force: bool = False,
    ) -> SyncPlan:
        """Plan the creation of project ``name`` from the ``archetype`` bundle."""

        if not isinstance(archetype, ProjectArchetype):
            archetype = ProjectArchetype.parse(archetype)

        workspace = self.load()
        manifest = workspace.manifest
        self._check_available(manifest, name)

        project = ProjectDescriptor(
            name=name,
            archetype=archetype,
            directory=self.layout.directory_for(archetype, name),
        )

        collector_deps = list(manifest.collector_deps)
        if project.produces_artifact:
            ref = task_ref(name, self.layout.build_task)
            if ref not in collector_deps:
                collector_deps.append(ref)
            else:
                LOGGER.debug("collector already depends on %s", ref)

        # A directory already listed by hand becomes the project's membership entry.
        members: list[str] = []
        for member in manifest.members:
            if normalize_member(member) == project.directory or member == name:
                member = name
                if member in members:
                    continue
            members.append(member)
        if name not in members:
            members.append(name)

        updated = manifest.evolve(
            projects=manifest.projects + (project,),
            collector_deps=tuple(collector_deps),
            members=tuple(members),
        )

        params = ProjectConfig.from_name(
            name,
            archetype,
            has_native_libraries=bool(updated.native_libraries),
            workspace=workspace.name,
            layout=self.layout,
        )
        rendered = self.renderer.render_bundle(self.store.get(archetype), params.context())

        return SyncPlan(
            operation="add",
            manifest=updated,
            project=project,
            vacant=[project.directory],
            force=force,
            files={_join(project.directory, path): data for path, data in rendered.items()},
            edits=self._consumer_edits(workspace, updated, skip=[name]),
            config=serialize_manifest(workspace, updated),
        )

    def plan_rename(self, current: str, new: str) -> SyncPlan:
        """Plan renaming project ``current`` to ``new``.

        The descriptor, membership entry and collector references are
        rewritten in place. Inside the project directory only known
        configuration fields are updated.
        """

        workspace = self.load()
        manifest = workspace.manifest
        project = self._require(manifest, current)
        if new == current:
            raise DuplicateProjectError(new, current)
        self._check_available(manifest, new, ignore=project)

        directory = (PurePosixPath(project.directory).parent / new).as_posix()
        renamed = ProjectDescriptor(name=new, archetype=project.archetype, directory=directory)

        collector_deps: list[str] = []
        for ref in manifest.collector_deps:
            owner, task = split_task_ref(ref)
            if owner == current:
                ref = task_ref(new, task)
            if ref not in collector_deps:
                collector_deps.append(ref)

        updated = manifest.evolve(
            projects=tuple(renamed if item == project else item for item in manifest.projects),
            collector_deps=tuple(collector_deps),
            members=tuple(new if member == current else member for member in manifest.members),
        )

        plan = SyncPlan(
            operation="rename",
            manifest=updated,
            project=renamed,
            config=serialize_manifest(workspace, updated),
        )

        source = project_directory(workspace, project.directory)
        destination = project_directory(workspace, directory)
        if not source.is_dir():
            LOGGER.warning("%s does not exist; only the workspace graph is renamed", source)
            return plan

        if destination.exists() and not os.path.samefile(source, destination):
            raise DirectoryExistsError(destination)

        plan.moves.append((project.directory, directory))
        fields = rename_config_fields(
            source,
            new,
            deployable=project.archetype is not ProjectArchetype.NATIVE_LIBRARY,
        )
        plan.edits = {_join(directory, name): data for name, data in fields.items()}
        return plan

    def plan_remove(self, name: str) -> SyncPlan:
        """Plan deleting project ``name`` and every reference to it."""

        workspace = self.load()
        manifest = workspace.manifest
        project = self._require(manifest, name)

        updated = manifest.evolve(
            projects=tuple(item for item in manifest.projects if item != project),
            collector_deps=tuple(
                ref for ref in manifest.collector_deps if split_task_ref(ref)[0] != name
            ),
            members=tuple(member for member in manifest.members if member != name),
        )

        plan = SyncPlan(
            operation="remove",
            manifest=updated,
            project=project,
            edits=self._consumer_edits(workspace, updated),
            config=serialize_manifest(workspace, updated),
        )
        if project_directory(workspace, project.directory).is_dir():
            plan.removals.append(project.directory)
        return plan

    # -- Applying ------------------------------------------------------------

    def apply(self, plan: SyncPlan) -> WorkspaceManifest:
        """Materialize ``plan``; on failure nothing it touched is left changed."""

        def resolve(relative: str) -> Path:
            return self.root.joinpath(*PurePosixPath(relative).parts)

        LOGGER.debug("applying %s plan: %s", plan.operation, plan.describe())
        with FileMaterializer(self.root).transaction() as transaction:
            for directory in plan.vacant:
                transaction.ensure_vacant(resolve(directory), force=plan.force)
            for source, destination in plan.moves:
                transaction.move(resolve(source), resolve(destination))
            for directory in plan.removals:
                transaction.remove_tree(resolve(directory))
            for group in (plan.files, plan.edits, plan.config):
                for relative, data in group.items():
                    transaction.write(resolve(relative), data)

        LOGGER.info("%s complete: %d paths written", plan.operation, len(transaction.written))
        return plan.manifest

    def add(self, archetype: ProjectArchetype | str, name: str, *, force: bool = False) -> WorkspaceManifest:
        return self.apply(self.plan_add(archetype, name, force=force))

    def rename(self, current: str, new: str) -> WorkspaceManifest:
        return self.apply(self.plan_rename(current, new))

    def remove(self, name: str) -> WorkspaceManifest:
        return self.apply(self.plan_remove(name))
