"""Edits applied to files inside existing project directories.

Two kinds of change live here. Consumer wiring keeps each consumer's build
task depending on the artifact collector while the workspace has native
libraries. Field renames rewrite the project name in a fixed set of known
configuration fields; arbitrary source files are never searched.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from .config import WorkspaceLayout
from .errors import WorkspaceConfigError
from .workspace import dump_json, dump_yaml

__all__ = ["rename_config_fields", "wire_consumer"]


LOGGER = logging.getLogger(__name__)

_TABLE_HEADER = re.compile(r"^\s*\[\[?\s*(?P<name>[^\]]+?)\s*\]")
_TOML_NAME = re.compile(r"""^(?P<prefix>\s*name\s*=\s*)(?P<quote>["'])(?P<value>.*?)(?P=quote)""")
_JSONC_NAME = re.compile(r'"name"\s*:\s*"[^"]*"')


def _toggle(items: list[Any], value: str, present: bool) -> bool:
    if present and value not in items:
        items.append(value)
        return True
    if not present and value in items:
        items[:] = [item for item in items if item != value]
        return True
    return False


def wire_consumer(text: str, layout: WorkspaceLayout, enabled: bool, *, source: Path) -> bytes | None:
    """Return the rewritten ``moon.yml`` of a consumer, or ``None`` if unchanged.

    When ``enabled`` the build task depends on the collector task and takes the
    gathered artifacts as an input; otherwise both references are removed.
    """

    try:
        document = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise WorkspaceConfigError(source, f"invalid YAML: {exc}") from exc

    tasks = document.get("tasks") if isinstance(document, dict) else None
    build = tasks.get(layout.build_task) if isinstance(tasks, dict) else None
    if not isinstance(build, dict):
        LOGGER.warning("%s has no '%s' task; skipping artifact wiring", source, layout.build_task)
        return None

    changed = False
    for key, value in (("inputs", layout.artifact_input), ("deps", layout.collector_ref)):
        items = build.get(key)
        if items is None:
            if not enabled:
                continue
            items = build[key] = []
        if not isinstance(items, list):
            raise WorkspaceConfigError(source, f"'tasks.{layout.build_task}.{key}' must be a list")
        changed |= _toggle(items, value, enabled)
        if not items:
            del build[key]

    return dump_yaml(document) if changed else None


def _rename_toml_field(text: str, new_name: str, *, section: str | None) -> str | None:
    lines = text.splitlines(keepends=True)
    current: str | None = None
    for index, line in enumerate(lines):
        header = _TABLE_HEADER.match(line)
        if header:
            current = header.group("name")
            continue
        if current != section:
            continue
        match = _TOML_NAME.match(line)
        if match:
            quote = match.group("quote")
            lines[index] = f"{match.group('prefix')}{quote}{new_name}{quote}" + line[match.end():]
            return "".join(lines)
    return None


def _rename_json_field(path: Path, new_name: str) -> bytes | None:
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise WorkspaceConfigError(path, f"invalid JSON: {exc}") from exc
    if not isinstance(document, dict) or "name" not in document:
        return None
    document["name"] = new_name
    return dump_json(document)


def _rename_wrangler(project_dir: Path, new_name: str) -> dict[str, bytes]:
    toml_path = project_dir / "wrangler.toml"
    if toml_path.is_file():
        updated = _rename_toml_field(toml_path.read_text(encoding="utf-8"), new_name, section=None)
        return {} if updated is None else {toml_path.name: updated.encode("utf-8")}

    json_path = project_dir / "wrangler.json"
    if json_path.is_file():
        updated_json = _rename_json_field(json_path, new_name)
        return {} if updated_json is None else {json_path.name: updated_json}

    jsonc_path = project_dir / "wrangler.jsonc"
    if jsonc_path.is_file():
        # Comments must survive, so only the first "name" pair is replaced.
        text = jsonc_path.read_text(encoding="utf-8")
        updated = _JSONC_NAME.sub(f'"name": "{new_name}"', text, count=1)
        return {jsonc_path.name: updated.encode("utf-8")} if updated != text else {}

    LOGGER.warning("no wrangler configuration found in %s", project_dir)
    return {}


def rename_config_fields(project_dir: Path, new_name: str, *, deployable: bool) -> dict[str, bytes]:
    """Rewrite the project name in the known configuration files of ``project_dir``.

    Returns a mapping of file names (relative to the project directory) to
    their new content; absent files and files without a name field are omitted.
    Unparseable JSON is reported as
    :class:`~monoweave.errors.WorkspaceConfigError`.
    """

    edits: dict[str, bytes] = {}
    if deployable:
        edits.update(_rename_wrangler(project_dir, new_name))

    package_path = project_dir / "package.json"
    if package_path.is_file():
        updated = _rename_json_field(package_path, new_name)
        if updated is not None:
            edits[package_path.name] = updated

    cargo_path = project_dir / "Cargo.toml"
    if cargo_path.is_file():
        cargo = _rename_toml_field(cargo_path.read_text(encoding="utf-8"), new_name, section="package")
        if cargo is not None:
            edits[cargo_path.name] = cargo.encode("utf-8")

    for file_name in edits:
        LOGGER.info("updated %s with new project name '%s'", project_dir / file_name, new_name)
    return edits
