"""Scaffold and evolve multi-language monorepo workspaces.

The package renders project templates for static sites, single page apps, edge
workers and WebAssembly libraries, and keeps the workspace configuration that
wires them together consistent while projects are added, renamed or removed.
Everything is usable programmatically and via the command line interface.
"""

from __future__ import annotations

from .bundles import TemplateStore, default_store
from .config import DEFAULT_LAYOUT, ProjectConfig, WorkspaceLayout
from .errors import MonoweaveError
from .naming import case_variants, slugify, validate_slug
from .scaffold import WorkspaceScaffolder
from .schema import ProjectArchetype, ProjectDescriptor, WorkspaceManifest
from .sync import GraphSynchronizer, SyncPlan
from .template import TemplateBundle, TemplateError, TemplateRenderer

__all__ = [
    "DEFAULT_LAYOUT",
    "GraphSynchronizer",
    "MonoweaveError",
    "ProjectArchetype",
    "ProjectConfig",
    "ProjectDescriptor",
    "SyncPlan",
    "TemplateBundle",
    "TemplateError",
    "TemplateRenderer",
    "TemplateStore",
    "WorkspaceLayout",
    "WorkspaceManifest",
    "WorkspaceScaffolder",
    "case_variants",
    "default_store",
    "slugify",
    "validate_slug",
]

__version__ = "0.1.0"
