"""Configuration helpers shared by the synchronizer, scaffolder and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Mapping

from .naming import CaseVariants, case_variants
from .schema import ProjectArchetype, task_ref

__all__ = ["ProjectConfig", "WorkspaceLayout", "DEFAULT_LAYOUT"]


def _default_directories() -> dict[ProjectArchetype, str]:
    return {
        ProjectArchetype.STATIC_SITE: "sites",
        ProjectArchetype.SINGLE_PAGE_APP: "apps",
        ProjectArchetype.EDGE_WORKER: "workers",
        ProjectArchetype.NATIVE_LIBRARY: "crates",
    }


@dataclass(frozen=True, slots=True)
class WorkspaceLayout:
    """On-disk conventions of a workspace.

    Attributes
    ----------
    directories:
        Parent directory for each archetype, relative to the workspace root.
    collector:
        Name and directory of the synthetic project that gathers every native
        library artifact.
    collector_task:
        Task of the collector that depends on each ``<library>:build``.
    build_task:
        Task name wired into the collector for native libraries and extended
        with the collector dependency for consumer projects.
    registry_file, package_file, project_file:
        Paths of the orchestrator workspace file, the package-manager manifest
        and the per-project orchestrator file.
    """

    directories: Mapping[ProjectArchetype, str] = field(default_factory=_default_directories)
    collector: str = "shared-wasm"
    collector_task: str = "gather"
    build_task: str = "build"
    registry_file: str = ".moon/workspace.yml"
    package_file: str = "package.json"
    project_file: str = "moon.yml"

    def directory_for(self, archetype: ProjectArchetype, name: str) -> str:
        """Return the POSIX directory a project named ``name`` lives in."""

        return (PurePosixPath(self.directories[archetype]) / name).as_posix()

    def archetype_for(self, directory: str) -> ProjectArchetype | None:
        """Infer the archetype owning ``directory`` from its parent folder."""

        path = PurePosixPath(directory)
        if len(path.parts) != 2:
            return None
        for archetype, parent in self.directories.items():
            if path.parts[0] == parent:
                return archetype
        return None

    @property
    def collector_file(self) -> str:
        return (PurePosixPath(self.collector) / self.project_file).as_posix()

    @property
    def collector_ref(self) -> str:
        """The ``collector:task`` reference consumer builds depend on."""

        return task_ref(self.collector, self.collector_task)

    @property
    def artifact_input(self) -> str:
        """Workspace-relative glob of gathered artifacts, as a task input."""

        return f"/{self.collector}/*.wasm"


DEFAULT_LAYOUT = WorkspaceLayout()


@dataclass(slots=True)
class ProjectConfig:
    """Render parameters describing a new project.

    Attributes
    ----------
    name:
        The project slug exactly as the user typed it.
    archetype:
        The template family being instantiated.
    variants:
        Case conventions derived from :attr:`name`, computed once.
    flags:
        Boolean switches consumed by ``{{#if}}`` blocks.
    workspace:
        Name of the enclosing workspace, when known.
    """

    name: str
    archetype: ProjectArchetype | None
    variants: CaseVariants
    flags: dict[str, bool] = field(default_factory=dict)
    workspace: str = ""
    layout: WorkspaceLayout = field(default=DEFAULT_LAYOUT, repr=False)

    @classmethod
    def from_name(
        cls,
        name: str,
        archetype: ProjectArchetype | None = None,
        *,
        has_native_libraries: bool = False,
        workspace: str = "",
        layout: WorkspaceLayout = DEFAULT_LAYOUT,
    ) -> "ProjectConfig":
        """Build a :class:`ProjectConfig` for the slug ``name``.

        ``name`` is expected to have passed
        :func:`~monoweave.naming.validate_slug` already.
        """

        if not name.strip():
            raise ValueError("project name must not be empty")

        return cls(
            name=name,
            archetype=archetype,
            variants=case_variants(name),
            flags={"hasNativeLibraries": has_native_libraries},
            workspace=workspace,
            layout=layout,
        )

    def context(self) -> Mapping[str, Any]:
        """Return a dictionary compatible with the templating helpers."""

        layout = self.layout
        return {
            "name": self.name,
            "kebabName": self.variants.kebab,
            "snakeName": self.variants.snake,
            "titleName": self.variants.pascal,
            "camelName": self.variants.camel,
            "upperName": self.variants.screaming,
            "workspaceName": self.workspace or self.name,
            "archetype": self.archetype.value if self.archetype else "workspace",
            "collectorName": layout.collector,
            "collectorTask": layout.collector_task,
            "collectorRef": layout.collector_ref,
            "artifactInput": layout.artifact_input,
            **self.flags,
        }
