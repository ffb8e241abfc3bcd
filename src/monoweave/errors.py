"""Custom exception types raised by the workspace engine."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

__all__ = [
    "ConflictError",
    "DirectoryExistsError",
    "DuplicateProjectError",
    "InvalidNameError",
    "MonoweaveError",
    "NotAWorkspaceError",
    "ProjectNotFoundError",
    "TemplateError",
    "UnknownArchetypeError",
    "WorkspaceConfigError",
    "WorkspaceIOError",
    "WorkspaceValidationError",
]


class MonoweaveError(Exception):
    """Base class for every error the engine reports to its caller.

    ``suggestion`` is an optional follow-up hint rendered below the one-line
    diagnosis. ``exit_code`` is what the command line maps the error to.
    """

    exit_code = 1

    def __init__(self, message: str, *, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion


class WorkspaceValidationError(MonoweaveError):
    """Raised when user input must be corrected before retrying."""

    exit_code = 2


class InvalidNameError(WorkspaceValidationError):
    """Raised when a project or workspace name is not a valid slug."""

    def __init__(self, name: str, reason: str, suggestions: Sequence[str] = ()) -> None:
        self.name = name
        self.reason = reason
        self.suggestions = tuple(suggestions)
        hint = None
        if self.suggestions:
            hint = "try " + ", ".join(f"'{candidate}'" for candidate in self.suggestions)
        super().__init__(f"invalid name '{name}': {reason}", suggestion=hint)


class UnknownArchetypeError(WorkspaceValidationError):
    """Raised when an archetype identifier cannot be resolved."""

    def __init__(self, value: str, known: Sequence[str]) -> None:
        self.value = value
        self.known = tuple(known)
        super().__init__(
            f"unknown project type '{value}'",
            suggestion="available types: " + ", ".join(self.known),
        )


class ProjectNotFoundError(WorkspaceValidationError):
    """Raised when an operation targets a project missing from the workspace."""

    def __init__(self, name: str, available: Sequence[str] = ()) -> None:
        self.name = name
        self.available = tuple(available)
        if self.available:
            hint = "available projects: " + ", ".join(self.available)
        else:
            hint = "the workspace has no projects yet"
        super().__init__(f"project '{name}' not found", suggestion=hint)


class NotAWorkspaceError(WorkspaceValidationError):
    """Raised when no workspace root can be located."""

    def __init__(self, start: Path) -> None:
        self.start = start
        super().__init__(
            f"not inside a workspace (searched upward from {start})",
            suggestion="create one with 'monoweave init <name>'",
        )


class ConflictError(MonoweaveError):
    """Raised when the requested change collides with existing state."""

    exit_code = 3


class DuplicateProjectError(ConflictError):
    """Raised when a project name is already taken."""

    def __init__(self, name: str, existing: str) -> None:
        self.name = name
        self.existing = existing
        detail = f"project '{existing}' already exists"
        if existing != name:
            detail += f" (names differ only by case from '{name}')"
        super().__init__(detail, suggestion="choose a different name")


class DirectoryExistsError(ConflictError):
    """Raised when a target directory already holds files."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(
            f"directory {path} already exists and is not empty",
            suggestion="pass --force to write into it anyway, or choose a different name",
        )


class TemplateError(MonoweaveError):
    """Raised when a template bundle cannot be split or rendered."""

    exit_code = 4

    def __init__(self, message: str, *, template: str | None = None) -> None:
        self.template = template
        if template:
            message = f"{template}: {message}"
        super().__init__(
            message,
            suggestion="this is a defect in the bundled templates, please report it",
        )


class WorkspaceConfigError(MonoweaveError):
    """Raised when an on-disk configuration file cannot be interpreted."""

    exit_code = 5

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class WorkspaceIOError(MonoweaveError):
    """Raised when a disk operation fails; the operation has been rolled back."""

    exit_code = 6

    def __init__(self, operation: str, path: Path, cause: OSError) -> None:
        self.operation = operation
        self.path = path
        self.cause = cause
        reason = cause.strerror or str(cause)
        super().__init__(
            f"failed to {operation} {path}: {reason}",
            suggestion="no changes were kept; check permissions and free disk space",
        )
