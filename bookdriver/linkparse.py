"""Finding and parsing ``{{#...}}`` helper expressions in chapter text."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

log = logging.getLogger(__name__)

ESCAPE_CHAR = "\\"

_USIZE_MAX = 2**64 - 1
_UNSIGNED = re.compile(r"\+?[0-9]+")

_LINK_RE = re.compile(
    r"""
    \\\{\{\#.*\}\}        # escaped link
    |
    \{\{\s*               # opening braces and whitespace
    \#([a-zA-Z0-9_]+)     # link type
    \s+                   # separating whitespace
    ([^}]+)               # target path and space separated properties
    \}\}                  # closing braces
    """,
    re.VERBOSE,
)


class LinkKind(Enum):
    """The kind of helper expression."""

    ESCAPED = "escaped"
    INCLUDE = "include"
    PLAYGROUND = "playground"
    RUSTDOC_INCLUDE = "rustdoc_include"
    TITLE = "title"


@dataclass(frozen=True)
class LineRange:
    """A half-open, zero-based range of lines; ``None`` means unbounded."""

    start: int | None = None
    end: int | None = None


@dataclass(frozen=True)
class Anchor:
    """A named anchor delimiting the lines to include."""

    name: str


@dataclass(frozen=True)
class Link:
    """A helper expression found in chapter text."""

    start_index: int
    end_index: int
    kind: LinkKind
    link_text: str
    path: Path | None = None
    target: LineRange | Anchor | None = None
    props: tuple[str, ...] = ()
    title: str | None = None

    def relative_path(self, base: str | Path) -> Path | None:
        """The directory of the referenced file, resolved against ``base``."""
        if self.kind in (LinkKind.ESCAPED, LinkKind.TITLE) or self.path is None:
            return None
        return (Path(base) / self.path).parent


def _parse_unsigned(text: str) -> int | None:
    if not _UNSIGNED.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _USIZE_MAX else None


def parse_range_or_anchor(parts: str | None) -> LineRange | Anchor:
    """Parse the ``start:end`` or ``anchor`` part following an include path."""
    pieces = (parts or "").split(":", 2)
    first = pieces[0]

    value = _parse_unsigned(first)
    if value is not None:
        # Line numbers given by users start at 1.
        start: int | None = max(value - 1, 0)
    elif first == "":
        start = None
    else:
        return Anchor(first)

    if len(pieces) < 2:
        if start is None:
            return LineRange()
        return LineRange(start, start + 1)

    end = _parse_unsigned(pieces[1])
    if start is not None:
        return LineRange(start, end)
    return LineRange(None, end)


def _split_path(path: str) -> tuple[Path, LineRange | Anchor]:
    file_part, sep, rest = path.partition(":")
    return Path(file_part), parse_range_or_anchor(rest if sep else None)


def parse_include_path(path: str) -> tuple[LinkKind, Path, LineRange | Anchor]:
    """Parse the argument of an ``include`` helper."""
    file_path, target = _split_path(path)
    return LinkKind.INCLUDE, file_path, target


def parse_rustdoc_include_path(path: str) -> tuple[LinkKind, Path, LineRange | Anchor]:
    """Parse the argument of a ``rustdoc_include`` helper."""
    file_path, target = _split_path(path)
    return LinkKind.RUSTDOC_INCLUDE, file_path, target


def _from_match(match: re.Match[str]) -> Link | None:
    typ, rest = match.group(1), match.group(2)
    base = {
        "start_index": match.start(),
        "end_index": match.end(),
        "link_text": match.group(0),
    }

    if typ is not None and rest is not None:
        if typ == "title":
            return Link(kind=LinkKind.TITLE, title=rest, **base)
        words = rest.split()
        if not words:
            return None
        file_arg, props = words[0], tuple(words[1:])
        if typ == "include":
            kind, path, target = parse_include_path(file_arg)
            return Link(kind=kind, path=path, target=target, **base)
        if typ == "rustdoc_include":
            kind, path, target = parse_rustdoc_include_path(file_arg)
            return Link(kind=kind, path=path, target=target, **base)
        if typ in ("playground", "playpen"):
            if typ == "playpen":
                log.warning(
                    "the {{#playpen}} expression has been renamed to {{#playground}}, "
                    "please update your book to use the new name"
                )
            return Link(kind=LinkKind.PLAYGROUND, path=Path(file_arg), props=props, **base)
        return None

    if typ is None and rest is None and match.group(0).startswith(ESCAPE_CHAR):
        return Link(kind=LinkKind.ESCAPED, **base)
    return None


def find_links(contents: str) -> Iterator[Link]:
    """Yield every recognised helper expression in ``contents``, in order."""
    for match in _LINK_RE.finditer(contents):
        link = _from_match(match)
        if link is not None:
            yield link