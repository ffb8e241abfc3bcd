"""Lightweight multi-file templating utilities."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Any, Callable, Mapping, MutableMapping

from .errors import TemplateError
from .naming import case_variants, slugify

__all__ = [
    "FILE_MARKER",
    "RenderedFileSet",
    "TemplateBundle",
    "TemplateError",
    "TemplateRenderer",
]


FILE_MARKER = "FILE:"

RenderedFileSet = Mapping[str, bytes]

_PLACEHOLDER_PATTERN = re.compile(r"(?<!\\){{\s*(?P<expression>[^{}]+?)\s*}}")
_BLOCK_PATTERN = re.compile(
    r"(?P<lead>^[ \t]*)?"
    r"(?P<tag>(?<!\\){{\s*(?:\#if\s+(?P<flag>[^\s{}]+)|(?P<else>else)|(?P<end>/if))\s*}})"
    r"(?P<trail>[ \t]*(?:\r?\n|\Z))?",
    re.MULTILINE,
)
_ESCAPED_OPEN = "\\{{"


def _validate_relative_path(path: str, template: str) -> str:
    candidate = PurePosixPath(path.strip())
    if not path.strip():
        raise TemplateError("file marker without a path", template=template)
    if candidate.is_absolute() or ".." in candidate.parts or "\\" in path:
        raise TemplateError(f"file path {path!r} escapes the project directory", template=template)
    return candidate.as_posix()


@dataclass(frozen=True, slots=True)
class TemplateBundle:
    """An ordered sequence of ``(relative_path, raw_body)`` pairs."""

    name: str
    version: str
    files: tuple[tuple[str, str], ...]

    @classmethod
    def parse(cls, name: str, source: str, *, version: str = "1") -> "TemplateBundle":
        """Split ``source`` on ``FILE:`` marker lines.

        Text preceding the first marker is treated as a preamble and ignored.
        Each body keeps its lines verbatim, each terminated by ``\\n``.
        """

        files: list[tuple[str, list[str]]] = []
        for line in source.splitlines():
            if line.startswith(FILE_MARKER):
                path = _validate_relative_path(line[len(FILE_MARKER):], name)
                files.append((path, []))
            elif files:
                files[-1][1].append(line + "\n")

        if not files:
            raise TemplateError("bundle does not contain any FILE: markers", template=name)

        seen: set[str] = set()
        for path, _ in files:
            if path in seen:
                raise TemplateError(f"file {path!r} is declared twice", template=name)
            seen.add(path)

        return cls(
            name=name,
            version=version,
            files=tuple((path, "".join(body)) for path, body in files),
        )

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(path for path, _ in self.files)


def _resolve_value(context: Mapping[str, Any], dotted_path: str) -> Any:
    value: Any = context
    for segment in dotted_path.split("."):
        if not isinstance(value, Mapping) or segment not in value:
            raise KeyError(segment)
        value = value[segment]
    return value


def _apply_filter(value: Any, filter_name: str, filters: Mapping[str, Callable[[Any], Any]]) -> Any:
    try:
        filter_func = filters[filter_name]
    except KeyError as exc:
        raise TemplateError(f"unknown filter '{filter_name}'") from exc

    return filter_func(value)


def _default_filters() -> dict[str, Callable[[Any], Any]]:
    return {
        "upper": lambda value: case_variants(str(value)).screaming,
        "lower": lambda value: str(value).lower(),
        "title": lambda value: case_variants(str(value)).pascal,
        "kebab": lambda value: case_variants(str(value)).kebab,
        "snake": lambda value: case_variants(str(value)).snake,
        "pascal": lambda value: case_variants(str(value)).pascal,
        "camel": lambda value: case_variants(str(value)).camel,
        "screaming": lambda value: case_variants(str(value)).screaming,
        "slug": lambda value: slugify(value),
        "json": lambda value: json.dumps(value),
        "repr": repr,
        "strip": lambda value: str(value).strip(),
    }


@dataclass(slots=True)
class TemplateRenderer:
    """Render templates with ``{{ placeholder|filters }}`` and ``{{#if}}`` blocks."""

    filters: MutableMapping[str, Callable[[Any], Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.filters:
            self.filters.update(_default_filters())

    def render_string(
        self,
        template: str,
        context: Mapping[str, Any],
        *,
        missing: str = "error",
    ) -> str:
        """Render ``template`` using ``context``.

        Parameters
        ----------
        template:
            The template string to evaluate.
        context:
            Mapping providing values for placeholders and boolean flags for
            conditional blocks.
        missing:
            Controls what happens when a placeholder cannot be resolved. The
            supported policies are ``"keep"`` (return the placeholder unchanged),
            ``"empty"`` (replace with an empty string) and ``"error"`` (raise
            :class:`TemplateError`). Unknown ``{{#if}}`` flags always raise.
        """

        if missing not in {"keep", "empty", "error"}:
            raise ValueError("missing must be 'keep', 'empty', or 'error'")

        selected = self._evaluate_blocks(template, context)

        def substitute(match: re.Match[str]) -> str:
            expression = match.group("expression")
            parts = [part.strip() for part in expression.split("|") if part.strip()]
            if not parts:
                return match.group(0)

            key, *filters = parts
            if key[0] in "#/" or key == "else":
                raise TemplateError(f"unsupported block tag '{{{{{expression}}}}}'")
            try:
                value = _resolve_value(context, key)
            except KeyError:
                if missing == "keep":
                    return match.group(0)
                if missing == "empty":
                    return ""
                raise TemplateError(f"missing value for '{key}'") from None

            for filter_name in filters:
                value = _apply_filter(value, filter_name, self.filters)

            if isinstance(value, bool):
                return "true" if value else "false"
            return str(value)

        rendered = _PLACEHOLDER_PATTERN.sub(substitute, selected)
        return rendered.replace(_ESCAPED_OPEN, "{{")

    def _evaluate_blocks(self, template: str, context: Mapping[str, Any]) -> str:
        # Each frame is [condition, inside_else].
        stack: list[list[bool]] = []
        active = True
        pieces: list[str] = []
        position = 0

        for match in _BLOCK_PATTERN.finditer(template):
            standalone = match.group("lead") is not None and match.group("trail") is not None
            literal_end = match.start() if standalone else match.start("tag")
            if active:
                pieces.append(template[position:literal_end])
            position = match.end() if standalone else match.end("tag")

            if match.group("flag") is not None:
                stack.append([self._resolve_flag(context, match.group("flag")), False])
            elif match.group("else") is not None:
                if not stack or stack[-1][1]:
                    raise TemplateError("'{{else}}' outside of an '{{#if}}' block")
                stack[-1][1] = True
            else:
                if not stack:
                    raise TemplateError("'{{/if}}' without a matching '{{#if}}'")
                stack.pop()

            active = all(condition != inside_else for condition, inside_else in stack)

        if stack:
            raise TemplateError(f"{len(stack)} '{{{{#if}}}}' block(s) left open")
        pieces.append(template[position:])
        return "".join(pieces)

    @staticmethod
    def _resolve_flag(context: Mapping[str, Any], flag: str) -> bool:
        try:
            value = _resolve_value(context, flag)
        except KeyError:
            raise TemplateError(f"conditional references unknown flag '{flag}'") from None
        if not isinstance(value, bool):
            raise TemplateError(f"conditional flag '{flag}' must be a boolean, got {type(value).__name__}")
        return value

    def render_bundle(self, bundle: TemplateBundle, context: Mapping[str, Any]) -> RenderedFileSet:
        """Render every file of ``bundle``; nothing is returned unless all succeed.

        File paths are rendered too, so ``src/{{ snakeName }}.rs`` is a valid
        bundle entry.
        """

        rendered: dict[str, bytes] = {}
        for raw_path, body in bundle.files:
            label = f"{bundle.name}/{raw_path}"
            try:
                path = _validate_relative_path(self.render_string(raw_path, context), label)
                content = self.render_string(body, context)
            except TemplateError as exc:
                if exc.template is not None:
                    raise
                raise TemplateError(exc.message, template=label) from exc
            if path in rendered:
                raise TemplateError(f"rendered path {path!r} collides with another file", template=label)
            rendered[path] = content.encode("utf-8")
        return MappingProxyType(rendered)
