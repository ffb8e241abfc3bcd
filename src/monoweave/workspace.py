"""Load and serialize the on-disk workspace configuration.

Three files describe the workspace graph:

* the orchestrator registry (``.moon/workspace.yml``) mapping project names to
  their directories;
* the collector project's ``moon.yml`` whose collector task depends on every
  native library build;
* the package manifest (``package.json``) listing workspace members.

Everything not owned by :class:`~monoweave.schema.WorkspaceManifest` is kept
in :class:`WorkspaceDocuments` and written back untouched.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any

import yaml
from pydantic import ValidationError

from .config import DEFAULT_LAYOUT, WorkspaceLayout
from .errors import NotAWorkspaceError, WorkspaceConfigError
from .schema import ProjectDescriptor, WorkspaceManifest, task_ref

__all__ = [
    "LoadedWorkspace",
    "WorkspaceDocuments",
    "dump_json",
    "dump_yaml",
    "find_workspace_root",
    "load_workspace",
    "normalize_member",
    "project_directory",
    "serialize_manifest",
]


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class WorkspaceDocuments:
    """Parsed configuration documents as found on disk."""

    registry: dict[str, Any]
    collector: dict[str, Any]
    package: dict[str, Any]


@dataclass(slots=True)
class LoadedWorkspace:
    """A workspace root together with its manifest and raw documents."""

    root: Path
    layout: WorkspaceLayout
    manifest: WorkspaceManifest
    documents: WorkspaceDocuments

    @property
    def name(self) -> str:
        package_name = self.documents.package.get("name")
        if isinstance(package_name, str) and package_name:
            return package_name
        return self.root.name


def find_workspace_root(start: Path | str, layout: WorkspaceLayout = DEFAULT_LAYOUT) -> Path:
    """Return the closest ancestor of ``start`` holding a workspace registry."""

    origin = Path(start).expanduser().resolve()
    for candidate in (origin, *origin.parents):
        if (candidate / layout.registry_file).is_file():
            return candidate
    raise NotAWorkspaceError(origin)


def dump_yaml(document: dict[str, Any]) -> bytes:
    return yaml.safe_dump(document, sort_keys=False, allow_unicode=True).encode("utf-8")


def dump_json(document: dict[str, Any]) -> bytes:
    return (json.dumps(document, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise WorkspaceConfigError(path, "file is missing") from None
    except yaml.YAMLError as exc:
        raise WorkspaceConfigError(path, f"invalid YAML: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise WorkspaceConfigError(path, "expected a mapping at the top level")
    return raw


def _read_json(path: Path) -> dict[str, Any]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise WorkspaceConfigError(path, "file is missing") from None
    except json.JSONDecodeError as exc:
        raise WorkspaceConfigError(path, f"invalid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise WorkspaceConfigError(path, "expected an object at the top level")
    return raw


def _string_list(value: Any, path: Path, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise WorkspaceConfigError(path, f"'{key}' must be a list of strings")
    return list(value)


def normalize_member(entry: str) -> str:
    """Return a membership entry as a bare POSIX directory."""

    if entry.startswith("./"):
        entry = entry[2:]
    return entry.rstrip("/")


def _registry_projects(document: dict[str, Any], path: Path) -> dict[str, str]:
    projects = document.get("projects")
    if projects is None:
        return {}
    if not isinstance(projects, dict):
        raise WorkspaceConfigError(path, "'projects' must be a mapping of project name to directory")
    entries: dict[str, str] = {}
    for name, directory in projects.items():
        if not isinstance(name, str) or not isinstance(directory, str):
            raise WorkspaceConfigError(path, f"project entry {name!r} must map a name to a directory")
        entries[name] = directory
    return entries


def _collector_task(document: dict[str, Any], layout: WorkspaceLayout, path: Path) -> dict[str, Any]:
    tasks = document.get("tasks")
    if not isinstance(tasks, dict) or not isinstance(tasks.get(layout.collector_task), dict):
        raise WorkspaceConfigError(path, f"missing task '{layout.collector_task}'")
    return tasks[layout.collector_task]


def _package_members(document: dict[str, Any], path: Path) -> list[str]:
    workspaces = document.get("workspaces")
    if isinstance(workspaces, dict):
        return _string_list(workspaces.get("packages"), path, "workspaces.packages")
    return _string_list(workspaces, path, "workspaces")


def load_workspace(root: Path | str, layout: WorkspaceLayout = DEFAULT_LAYOUT) -> LoadedWorkspace:
    """Parse the workspace configuration under ``root`` into a manifest."""

    root = Path(root)
    registry_path = root / layout.registry_file
    collector_path = root / layout.collector_file
    package_path = root / layout.package_file

    documents = WorkspaceDocuments(
        registry=_read_yaml(registry_path),
        collector=_read_yaml(collector_path),
        package=_read_json(package_path),
    )

    projects: list[ProjectDescriptor] = []
    foreign: dict[str, str] = {}
    for name, directory in _registry_projects(documents.registry, registry_path).items():
        archetype = None if name == layout.collector else layout.archetype_for(directory)
        if archetype is None:
            foreign[name] = directory
            continue
        try:
            projects.append(ProjectDescriptor(name=name, archetype=archetype, directory=directory))
        except ValidationError:
            LOGGER.debug("keeping registry entry %r verbatim: not a valid project slug", name)
            foreign[name] = directory

    by_directory = {project.directory: project.name for project in projects}
    members: list[str] = []
    for entry in _package_members(documents.package, package_path):
        members.append(by_directory.get(normalize_member(entry), entry))

    deps = _string_list(
        _collector_task(documents.collector, layout, collector_path).get("deps"),
        collector_path,
        "deps",
    )

    # An interrupted write can leave a registered project unreferenced; the
    # next mutating command writes the repaired documents back.
    for project in projects:
        if project.name not in members:
            LOGGER.warning("%s is missing from %s; adding it back", project.directory, package_path)
            members.append(project.name)
        ref = task_ref(project.name, layout.build_task)
        if project.produces_artifact and ref not in deps:
            LOGGER.warning("%s is missing from %s; adding it back", ref, collector_path)
            deps.append(ref)

    try:
        manifest = WorkspaceManifest(
            projects=tuple(projects),
            collector_deps=tuple(deps),
            members=tuple(members),
            foreign_projects=foreign,
        )
    except ValidationError as exc:
        errors = "; ".join(error["msg"] for error in exc.errors())
        raise WorkspaceConfigError(root, f"workspace graph is inconsistent: {errors}") from exc

    LOGGER.debug(
        "loaded workspace %s: %d projects, %d collector deps",
        root,
        len(manifest.projects),
        len(manifest.collector_deps),
    )
    return LoadedWorkspace(root=root, layout=layout, manifest=manifest, documents=documents)


def _registry_entries(
    original: dict[str, Any],
    before: WorkspaceManifest,
    after: WorkspaceManifest,
) -> dict[str, str]:
    """Rebuild the registry mapping in its original key order.

    A renamed project keeps the slot of its old name; new entries go last.
    """

    desired: dict[str, str] = dict(after.foreign_projects)
    desired.update((project.name, project.directory) for project in after.projects)

    renamed: dict[str, str] = {}
    if len(before.projects) == len(after.projects):
        for old, new in zip(before.projects, after.projects):
            if old.name != new.name:
                renamed[old.name] = new.name

    entries: dict[str, str] = {}
    for key in original:
        key = renamed.get(key, key)
        if key in desired:
            entries[key] = desired[key]
    for key, directory in desired.items():
        entries.setdefault(key, directory)
    return entries


def serialize_manifest(workspace: LoadedWorkspace, manifest: WorkspaceManifest) -> dict[str, bytes]:
    """Render ``manifest`` into the workspace files whose content changes.

    Documents that end up semantically identical to what was loaded are left
    out, so untouched files keep their original formatting. The registry comes
    last: a project is only registered once the collector and the membership
    list already reference it.
    """

    layout = workspace.layout
    documents = workspace.documents
    changed: dict[str, bytes] = {}

    collector = copy.deepcopy(documents.collector)
    collector["tasks"][layout.collector_task]["deps"] = list(manifest.collector_deps)
    if collector != documents.collector:
        changed[layout.collector_file] = dump_yaml(collector)

    directories = {project.name: project.directory for project in manifest.projects}
    member_entries = [directories.get(member, member) for member in manifest.members]
    package = copy.deepcopy(documents.package)
    if isinstance(package.get("workspaces"), dict):
        package["workspaces"]["packages"] = member_entries
    else:
        package["workspaces"] = member_entries
    if package != documents.package:
        changed[layout.package_file] = dump_json(package)

    registry = copy.deepcopy(documents.registry)
    original = documents.registry.get("projects")
    registry["projects"] = _registry_entries(
        original if isinstance(original, dict) else {},
        workspace.manifest,
        manifest,
    )
    if registry != documents.registry:
        changed[layout.registry_file] = dump_yaml(registry)

    return changed


def project_directory(workspace: LoadedWorkspace, directory: str) -> Path:
    """Return the absolute path of a workspace-relative POSIX directory."""

    return workspace.root.joinpath(*PurePosixPath(directory).parts)
