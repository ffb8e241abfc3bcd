from __future__ import annotations

import pytest
from pydantic import ValidationError

from monoweave.errors import UnknownArchetypeError
from monoweave.schema import (
    ProjectArchetype,
    ProjectDescriptor,
    WorkspaceManifest,
    split_task_ref,
    task_ref,
)


def _library(name: str) -> ProjectDescriptor:
    return ProjectDescriptor(name=name, archetype=ProjectArchetype.NATIVE_LIBRARY, directory=f"crates/{name}")


def _app(name: str) -> ProjectDescriptor:
    return ProjectDescriptor(name=name, archetype=ProjectArchetype.SINGLE_PAGE_APP, directory=f"apps/{name}")


@pytest.mark.parametrize(
    "value, expected",
    [
        ("native-library", ProjectArchetype.NATIVE_LIBRARY),
        ("Static-Site", ProjectArchetype.STATIC_SITE),
        ("astro", ProjectArchetype.STATIC_SITE),
        ("react", ProjectArchetype.SINGLE_PAGE_APP),
        ("durable-object", ProjectArchetype.EDGE_WORKER),
        ("crate", ProjectArchetype.NATIVE_LIBRARY),
    ],
)
def test_archetype_parse_accepts_identifiers_and_aliases(value, expected):
    assert ProjectArchetype.parse(value) is expected


def test_archetype_parse_lists_known_types():
    with pytest.raises(UnknownArchetypeError) as excinfo:
        ProjectArchetype.parse("mobile")
    assert "native-library" in excinfo.value.suggestion


def test_only_native_libraries_produce_artifacts():
    assert [archetype for archetype in ProjectArchetype if archetype.produces_artifact] == [
        ProjectArchetype.NATIVE_LIBRARY
    ]
    assert _library("math").produces_artifact
    assert not _app("web").produces_artifact


def test_task_refs():
    assert task_ref("math", "build") == "math:build"
    assert split_task_ref("math:build") == ("math", "build")
    with pytest.raises(ValueError):
        split_task_ref("math")


@pytest.mark.parametrize("directory", ["/abs/path", "../outside", ""])
def test_descriptor_rejects_directories_outside_workspace(directory):
    with pytest.raises(ValidationError):
        ProjectDescriptor(name="web", archetype=ProjectArchetype.STATIC_SITE, directory=directory)


def test_descriptor_rejects_invalid_names():
    with pytest.raises(ValidationError):
        ProjectDescriptor(name="bad name", archetype=ProjectArchetype.STATIC_SITE, directory="sites/x")


def test_descriptor_is_frozen():
    project = _app("web")
    with pytest.raises(ValidationError):
        project.name = "other"


def test_manifest_accepts_a_consistent_graph():
    manifest = WorkspaceManifest(
        projects=(_library("math"), _app("web")),
        collector_deps=("math:build",),
        members=("math", "web", "tools/*"),
    )
    assert manifest.names == ("math", "web")
    assert manifest.native_libraries == (_library("math"),)
    assert manifest.consumers == (_app("web"),)
    assert manifest.get("web") == _app("web")
    assert manifest.find_casefold("WEB") == _app("web")
    assert manifest.get("WEB") is None


@pytest.mark.parametrize(
    "fields",
    [
        {"projects": (_library("math"),), "collector_deps": (), "members": ("math",)},
        {"projects": (_library("math"),), "collector_deps": ("math:build", "math:build"), "members": ("math",)},
        {"projects": (_app("web"),), "members": ("web", "web")},
        {"projects": (_app("web"),), "members": ()},
        {"projects": (_app("web"), _app("Web")), "members": ("web", "Web")},
        {"collector_deps": ("not-a-ref",)},
    ],
)
def test_manifest_rejects_broken_invariants(fields):
    with pytest.raises(ValidationError):
        WorkspaceManifest(**fields)


def test_evolve_validates_the_result():
    manifest = WorkspaceManifest(projects=(_app("web"),), members=("web",))
    with pytest.raises(ValidationError):
        manifest.evolve(projects=manifest.projects + (_library("math"),), members=("web", "math"))

    evolved = manifest.evolve(
        projects=manifest.projects + (_library("math"),),
        members=("web", "math"),
        collector_deps=("math:build",),
    )
    assert evolved.collector_deps == ("math:build",)
    assert manifest.collector_deps == ()
