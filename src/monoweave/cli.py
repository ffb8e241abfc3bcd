"""Command line interface for the monoweave utilities."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Sequence

from .bundles import default_store
from .config import ProjectConfig
from .errors import MonoweaveError
from .naming import validate_slug
from .scaffold import WorkspaceScaffolder
from .schema import ProjectArchetype
from .sync import GraphSynchronizer, SyncPlan
from .template import TemplateRenderer
from .workspace import find_workspace_root

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_key_value_pairs(pairs: Iterable[str]) -> dict[str, bool]:
    flags: dict[str, bool] = {}
    for pair in pairs:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(
                f"invalid flag '{pair}'. Expected KEY=true or KEY=false."
            )
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise argparse.ArgumentTypeError("keys must not be empty")
        normalized = value.strip().lower()
        if normalized in _TRUE:
            flags[key] = True
        elif normalized in _FALSE:
            flags[key] = False
        else:
            raise argparse.ArgumentTypeError(f"flag '{key}' must be true or false, got '{value}'")
    return flags


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monoweave",
        description="Scaffold and evolve a multi-language monorepo workspace",
    )
    parser.add_argument(
        "-w",
        "--workspace",
        type=Path,
        help="Workspace root (defaults to the closest ancestor of the current directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    archetypes = ", ".join(archetype.value for archetype in ProjectArchetype)

    init_parser = subparsers.add_parser("init", help="create a new workspace")
    init_parser.add_argument("name", help="Name of the workspace directory, or '.' for the current one")
    init_parser.add_argument(
        "-d",
        "--directory",
        type=Path,
        default=Path.cwd(),
        help="Parent directory the workspace is created in",
    )
    init_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Write into an existing non-empty directory",
    )

    add_parser = subparsers.add_parser("add", help="add a project to the workspace")
    add_parser.add_argument("type", help=f"Project type ({archetypes})")
    add_parser.add_argument("name", help="Project name")
    add_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Write into an existing non-empty project directory",
    )
    add_parser.add_argument("--dry-run", action="store_true", help="Show the changes without applying them")

    rename_parser = subparsers.add_parser("rename", help="rename a project")
    rename_parser.add_argument("current", help="Current project name")
    rename_parser.add_argument("new", help="New project name")
    rename_parser.add_argument("--dry-run", action="store_true", help="Show the changes without applying them")

    remove_parser = subparsers.add_parser("remove", help="remove a project and every reference to it")
    remove_parser.add_argument("name", help="Project name")
    remove_parser.add_argument("--dry-run", action="store_true", help="Show the changes without applying them")

    subparsers.add_parser("list", help="list the projects of the workspace")

    render_parser = subparsers.add_parser(
        "render", help="preview the files a project type would generate"
    )
    render_parser.add_argument("type", help=f"Project type ({archetypes})")
    render_parser.add_argument("name", help="Project name used for the preview")
    render_parser.add_argument(
        "-s",
        "--set",
        metavar="FLAG=BOOL",
        action="append",
        default=[],
        help="Override a conditional flag exposed to the template",
    )

    return parser


def _synchronizer(args: argparse.Namespace) -> GraphSynchronizer:
    root = find_workspace_root(args.workspace or Path.cwd())
    return GraphSynchronizer(root)


def _report(plan: SyncPlan, dry_run: bool) -> None:
    prefix = "would " if dry_run else ""
    for line in plan.describe():
        print(f"  {prefix}{line}")


def _handle_init(args: argparse.Namespace) -> int:
    scaffolder = WorkspaceScaffolder()
    workspace_path = scaffolder.create(args.name, args.directory, force=args.force)
    print(f"Workspace created at {workspace_path}")
    print("Next: cd into it and run 'monoweave add <type> <name>'")
    return 0


def _handle_add(args: argparse.Namespace) -> int:
    synchronizer = _synchronizer(args)
    plan = synchronizer.plan_add(args.type, args.name, force=args.force)
    _report(plan, args.dry_run)
    if args.dry_run:
        return 0
    synchronizer.apply(plan)
    if plan.project is not None:
        print(f"Added {plan.project.archetype.value} project '{plan.project.name}' at {plan.project.directory}")
    return 0


def _handle_rename(args: argparse.Namespace) -> int:
    synchronizer = _synchronizer(args)
    plan = synchronizer.plan_rename(args.current, args.new)
    _report(plan, args.dry_run)
    if args.dry_run:
        return 0
    synchronizer.apply(plan)
    print(f"Renamed '{args.current}' to '{args.new}'")
    return 0


def _handle_remove(args: argparse.Namespace) -> int:
    synchronizer = _synchronizer(args)
    plan = synchronizer.plan_remove(args.name)
    _report(plan, args.dry_run)
    if args.dry_run:
        return 0
    synchronizer.apply(plan)
    print(f"Removed '{args.name}'")
    return 0


def _handle_list(args: argparse.Namespace) -> int:
    manifest = _synchronizer(args).load().manifest
    for project in manifest.projects:
        print(f"{project.name}\t{project.archetype.value}\t{project.directory}")
    return 0


def _handle_render(args: argparse.Namespace) -> int:
    archetype = ProjectArchetype.parse(args.type)
    validate_slug(args.name)
    config = ProjectConfig.from_name(args.name, archetype)
    config.flags.update(_parse_key_value_pairs(args.set))
    rendered = TemplateRenderer().render_bundle(default_store().get(archetype), config.context())
    for path, data in rendered.items():
        sys.stdout.write(f"--- {path}\n")
        text = data.decode("utf-8")
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
    return 0


_HANDLERS = {
    "init": _handle_init,
    "add": _handle_add,
    "rename": _handle_rename,
    "remove": _handle_remove,
    "list": _handle_list,
    "render": _handle_render,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handler = _HANDLERS.get(args.command)
    if handler is None:
        parser.error("no command provided")
        return 2

    try:
        return handler(args)
    except MonoweaveError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        if exc.suggestion:
            print(f"hint: {exc.suggestion}", file=sys.stderr)
        return exc.exit_code
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
