"""Slug validation and case-convention helpers used throughout the project."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable

from .errors import InvalidNameError

__all__ = [
    "CaseVariants",
    "MAX_NAME_LENGTH",
    "SLUG_PATTERN",
    "case_variants",
    "slugify",
    "tokenize",
    "validate_slug",
]


SLUG_PATTERN = re.compile(r"^[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)*$")
MAX_NAME_LENGTH = 100

_SEPARATORS = re.compile(r"[\s\-]+")
_NON_ALPHANUMERIC = re.compile(r"[^0-9A-Za-z]+")
_WORD = re.compile(r"[A-Z]+(?![a-z])[0-9]*|[A-Z]?[a-z0-9]+")
_PATH_SEPARATORS = ("/", "\\")


def slugify(value: str | Iterable[str], *, separator: str = "-", allow_unicode: bool = False) -> str:
    """Create a filesystem and URL friendly slug from ``value``.

    Parameters
    ----------
    value:
        The text to normalise. When an iterable of strings is provided the values
        are joined with spaces before slugification.
    separator:
        The character used to join individual words.
    allow_unicode:
        When ``True`` unicode characters are preserved. Otherwise the result is
        restricted to ASCII.
    """

    if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
        value = " ".join(str(part) for part in value)

    text = str(value)
    if not allow_unicode:
        text = unicodedata.normalize("NFKD", text)
        text = text.encode("ascii", "ignore").decode("ascii")
    else:
        text = unicodedata.normalize("NFKC", text)

    text = re.sub(r"[\s/\\.]+", " ", text)
    text = re.sub(r"[^\w\- ]", "", text, flags=re.UNICODE)
    text = text.strip().lower()

    if not text:
        return ""

    collapsed = _SEPARATORS.sub(separator, text)
    collapsed = re.sub(rf"{re.escape(separator)}+", separator, collapsed)
    return collapsed.strip(separator + "_")


def tokenize(value: str) -> list[str]:
    """Split ``value`` into lower-case words.

    Words are separated by any non-alphanumeric character and by case
    transitions, so ``"myHTTPServer"`` yields ``["my", "http", "server"]``.
    """

    words: list[str] = []
    for chunk in _NON_ALPHANUMERIC.split(value):
        words.extend(match.group(0).lower() for match in _WORD.finditer(chunk))
    return words


@dataclass(frozen=True, slots=True)
class CaseVariants:
    """Every naming convention derived from one slug."""

    kebab: str
    snake: str
    pascal: str
    camel: str
    screaming: str

    def as_dict(self) -> dict[str, str]:
        return {
            "kebab": self.kebab,
            "snake": self.snake,
            "pascal": self.pascal,
            "camel": self.camel,
            "screaming": self.screaming,
        }


def case_variants(value: str) -> CaseVariants:
    """Return the :class:`CaseVariants` record for ``value``."""

    words = tokenize(value)
    if not words:
        raise ValueError(f"cannot derive case variants from {value!r}")

    pascal = "".join(word.capitalize() for word in words)
    return CaseVariants(
        kebab="-".join(words),
        snake="_".join(words),
        pascal=pascal,
        camel=words[0] + pascal[len(words[0]):],
        screaming="_".join(word.upper() for word in words),
    )


def _suggestions(name: str) -> list[str]:
    candidates = [
        slugify(name),
        re.sub(r"[-_]{2,}", "-", name).strip("-_"),
        name[: MAX_NAME_LENGTH // 2].strip("-_"),
    ]
    unique: list[str] = []
    for candidate in candidates:
        if candidate and candidate != name and SLUG_PATTERN.fullmatch(candidate) and candidate not in unique:
            unique.append(candidate)
    return unique or ["my-project"]


def validate_slug(name: str) -> str:
    """Return ``name`` unchanged when it is a valid project slug.

    Raises :class:`~monoweave.errors.InvalidNameError` otherwise, carrying
    corrected candidates where one can be derived.
    """

    if not name:
        raise InvalidNameError(name, "name must not be empty", ["my-project"])
    if any(separator in name for separator in _PATH_SEPARATORS):
        raise InvalidNameError(name, "name must not contain path separators", _suggestions(name))
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidNameError(
            name, f"name must be at most {MAX_NAME_LENGTH} characters", _suggestions(name)
        )
    if not SLUG_PATTERN.fullmatch(name):
        raise InvalidNameError(
            name,
            "use letters, digits and single '-' or '_' separators, "
            "starting and ending with a letter or digit",
            _suggestions(name),
        )
    return name
