"""Typed workspace model shared by the loader, synchronizer and CLI."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from .errors import UnknownArchetypeError
from .naming import MAX_NAME_LENGTH, SLUG_PATTERN

__all__ = [
    "ProjectArchetype",
    "ProjectDescriptor",
    "WorkspaceManifest",
    "split_task_ref",
    "task_ref",
]


class ProjectArchetype(str, Enum):
    """Kinds of project a template bundle can produce."""

    STATIC_SITE = "static-site"
    SINGLE_PAGE_APP = "single-page-app"
    EDGE_WORKER = "edge-worker"
    NATIVE_LIBRARY = "native-library"

    @property
    def produces_artifact(self) -> bool:
        """Whether the project builds an artifact consumed by other projects."""

        return self is ProjectArchetype.NATIVE_LIBRARY

    @classmethod
    def parse(cls, value: str) -> "ProjectArchetype":
        """Resolve ``value`` from a canonical identifier or a short alias."""

        key = value.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        try:
            return _ALIASES[key]
        except KeyError:
            raise UnknownArchetypeError(value, [member.value for member in cls]) from None


_ALIASES = {
    "astro": ProjectArchetype.STATIC_SITE,
    "site": ProjectArchetype.STATIC_SITE,
    "react": ProjectArchetype.SINGLE_PAGE_APP,
    "app": ProjectArchetype.SINGLE_PAGE_APP,
    "durable-object": ProjectArchetype.EDGE_WORKER,
    "worker": ProjectArchetype.EDGE_WORKER,
    "crate": ProjectArchetype.NATIVE_LIBRARY,
    "wasm": ProjectArchetype.NATIVE_LIBRARY,
}


def task_ref(project: str, task: str) -> str:
    """Return the ``project:task`` reference used in dependency lists."""

    return f"{project}:{task}"


def split_task_ref(ref: str) -> Tuple[str, str]:
    """Split ``project:task`` into its two halves."""

    project, sep, task = ref.partition(":")
    if not sep or not project or not task:
        raise ValueError(f"task reference must look like 'project:task', got {ref!r}")
    return project, task


class ProjectDescriptor(BaseModel):
    """A single member project of the workspace."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(
        ...,
        max_length=MAX_NAME_LENGTH,
        pattern=SLUG_PATTERN.pattern,
        description="Unique, path-safe project identifier.",
    )
    archetype: ProjectArchetype = Field(..., description="Template family the project was created from.")
    directory: str = Field(..., description="POSIX path of the project relative to the workspace root.")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def produces_artifact(self) -> bool:
        return self.archetype.produces_artifact

    @field_validator("directory")
    @classmethod
    def _relative_directory(cls, value: str) -> str:
        path = PurePosixPath(value)
        if not value or path.is_absolute() or ".." in path.parts:
            raise ValueError(f"directory must be a relative path inside the workspace, got {value!r}")
        return path.as_posix()


class WorkspaceManifest(BaseModel):
    """Structural configuration of the monorepo.

    ``members`` holds project names for archetype projects and verbatim
    entries for anything else found in the membership list. The model refuses
    to exist in a state that breaks the wiring invariants, so every mutation
    goes through :meth:`evolve`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    projects: Tuple[ProjectDescriptor, ...] = Field(default=(), description="Archetype projects in registration order.")
    collector_deps: Tuple[str, ...] = Field(default=(), description="Task references the collector task depends on.")
    members: Tuple[str, ...] = Field(default=(), description="Package-manager membership list.")
    foreign_projects: Dict[str, str] = Field(
        default_factory=dict,
        description="Registry entries that are not archetype projects, preserved verbatim.",
    )

    @field_validator("collector_deps")
    @classmethod
    def _well_formed_refs(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        for ref in value:
            split_task_ref(ref)
        return value

    @model_validator(mode="after")
    def _check_invariants(self) -> "WorkspaceManifest":
        seen: dict[str, str] = {}
        for project in self.projects:
            key = project.name.casefold()
            if key in seen:
                raise ValueError(f"project names collide: {seen[key]!r} and {project.name!r}")
            seen[key] = project.name
            if project.name not in self.members:
                raise ValueError(f"project {project.name!r} is missing from the membership list")

        if len(set(self.members)) != len(self.members):
            raise ValueError("membership list contains duplicate entries")
        if len(set(self.collector_deps)) != len(self.collector_deps):
            raise ValueError("collector dependency list contains duplicate entries")

        for project in self.native_libraries:
            if task_ref(project.name, "build") not in self.collector_deps:
                raise ValueError(f"native library {project.name!r} is not wired into the collector")
        return self

    def evolve(self, **changes: Any) -> "WorkspaceManifest":
        """Return a validated copy with ``changes`` applied."""

        fields = {
            "projects": self.projects,
            "collector_deps": self.collector_deps,
            "members": self.members,
            "foreign_projects": dict(self.foreign_projects),
        }
        fields.update(changes)
        return type(self)(**fields)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(project.name for project in self.projects)

    @property
    def native_libraries(self) -> Tuple[ProjectDescriptor, ...]:
        return tuple(project for project in self.projects if project.produces_artifact)

    @property
    def consumers(self) -> Tuple[ProjectDescriptor, ...]:
        return tuple(project for project in self.projects if not project.produces_artifact)

    def get(self, name: str) -> Optional[ProjectDescriptor]:
        for project in self.projects:
            if project.name == name:
                return project
        return None

    def find_casefold(self, name: str) -> Optional[ProjectDescriptor]:
        """Return the project whose name equals ``name`` ignoring case."""

        key = name.casefold()
        for project in self.projects:
            if project.name.casefold() == key:
                return project
        return None
