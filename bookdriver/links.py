"""Preprocessor expanding ``{{#include}}``, ``{{#playground}}`` and similar helpers."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from bookdriver.book import Book, BookItem, Chapter
from bookdriver.context import Preprocessor, PreprocessorContext
from bookdriver.linkparse import Anchor, LineRange, Link, LinkKind, find_links

log = logging.getLogger(__name__)

MAX_LINK_NESTED_DEPTH = 10

_ANCHOR_START = re.compile(r"ANCHOR:\s*(?P<anchor_name>[\w_-]+)")
_ANCHOR_END = re.compile(r"ANCHOR_END:\s*(?P<anchor_name>[\w_-]+)")


class LinkError(Exception):
    """Raised when a helper expression cannot be expanded."""


def _lines(text: str) -> list[str]:
    """Split into lines on ``\\n`` or ``\\r\\n``; a final line ending is optional."""
    parts = text.split("\n")
    last = parts.pop()
    lines = [part[:-1] if part.endswith("\r") else part for part in parts]
    if last:
        lines.append(last)
    return lines


def _contains(line_range: LineRange, index: int) -> bool:
    if line_range.start is not None and index < line_range.start:
        return False
    return line_range.end is None or index < line_range.end


def take_lines(text: str, line_range: LineRange) -> str:
    """Keep only the lines that fall within ``line_range``."""
    start = line_range.start or 0
    lines = _lines(text)[start:]
    if line_range.end is not None:
        lines = lines[: max(line_range.end - start, 0)]
    return "\n".join(lines)


def take_anchored_lines(text: str, anchor: str) -> str:
    """Keep the lines between ``ANCHOR: name`` and ``ANCHOR_END: name``."""
    retained: list[str] = []
    anchor_found = False
    for line in _lines(text):
        if anchor_found:
            end = _ANCHOR_END.search(line)
            if end is not None:
                if end["anchor_name"] == anchor:
                    break
            elif not _ANCHOR_START.search(line):
                retained.append(line)
        else:
            start = _ANCHOR_START.search(line)
            if start is not None and start["anchor_name"] == anchor:
                anchor_found = True
    return "\n".join(retained)


def take_rustdoc_include_lines(text: str, line_range: LineRange) -> str:
    """Keep every line, hiding those outside ``line_range`` behind ``# ``."""
    return "\n".join(
        line if _contains(line_range, index) else f"# {line}"
        for index, line in enumerate(_lines(text))
    )


def take_rustdoc_include_anchored_lines(text: str, anchor: str) -> str:
    """Keep every line, hiding those outside the named anchor behind ``# ``."""
    output: list[str] = []
    within = False
    for line in _lines(text):
        if within:
            end = _ANCHOR_END.search(line)
            if end is not None:
                if end["anchor_name"] == anchor:
                    within = False
            elif not _ANCHOR_START.search(line):
                output.append(line)
        else:
            start = _ANCHOR_START.search(line)
            if start is not None:
                if start["anchor_name"] == anchor:
                    within = True
            elif not _ANCHOR_END.search(line):
                output.append(f"# {line}")
    return "\n".join(output)


def _read(link: Link, target: Path) -> str:
    try:
        with target.open(encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise LinkError(f"Could not read file for link {link.link_text} ({target})") from exc


def render_link(
    link: Link, base: str | os.PathLike[str], chapter_title: str
) -> tuple[str, str]:
    """Expand one helper; return the replacement text and the chapter title."""
    base = Path(base)
    if link.kind is LinkKind.ESCAPED:
        return link.link_text[1:], chapter_title
    if link.kind is LinkKind.TITLE:
        return "", link.title or ""

    target = base / (link.path or Path())
    contents = _read(link, target)

    if link.kind is LinkKind.INCLUDE:
        if isinstance(link.target, Anchor):
            return take_anchored_lines(contents, link.target.name), chapter_title
        return take_lines(contents, link.target or LineRange()), chapter_title

    if link.kind is LinkKind.RUSTDOC_INCLUDE:
        if isinstance(link.target, Anchor):
            return take_rustdoc_include_anchored_lines(contents, link.target.name), chapter_title
        return take_rustdoc_include_lines(contents, link.target or LineRange()), chapter_title

    ftype = "rust," if link.props else "rust"
    if not contents.endswith("\n"):
        contents += "\n"
    return f"```{ftype}{','.join(link.props)}\n{contents}```\n", chapter_title


def replace_all(
    text: str,
    path: str | os.PathLike[str],
    source: str | os.PathLike[str],
    depth: int,
    chapter_title: str,
) -> tuple[str, str]:
    """Expand every helper in ``text``; return the new text and the chapter title."""
    path = Path(path)
    pieces: list[str] = []
    previous_end = 0

    for link in find_links(text):
        pieces.append(text[previous_end:link.start_index])
        try:
            new_content, chapter_title = render_link(link, path, chapter_title)
        except LinkError as exc:
            log.error('Error updating "%s", %s', link.link_text, exc)
            if exc.__cause__ is not None:
                log.warning("Caused By: %s", exc.__cause__)
            # Keep the raw helper text in the page.
            previous_end = link.start_index
            continue

        if depth < MAX_LINK_NESTED_DEPTH:
            rel_path = link.relative_path(path)
            if rel_path is not None:
                nested, chapter_title = replace_all(
                    new_content, rel_path, source, depth + 1, chapter_title
                )
                pieces.append(nested)
            else:
                pieces.append(new_content)
        else:
            log.error("Stack depth exceeded in %s. Check for cyclic includes", source)
        previous_end = link.end_index

    pieces.append(text[previous_end:])
    return "".join(pieces), chapter_title


class LinkPreprocessor(Preprocessor):
    """Expands include, rustdoc_include, playground and title helpers."""

    NAME = "links"
    name = NAME

    def run(self, ctx: PreprocessorContext, book: Book) -> Book:
        src_dir = Path(ctx.root) / ctx.config.book.src

        def visit(item: BookItem) -> None:
            if not isinstance(item, Chapter) or item.path is None:
                return
            base = src_dir / item.path.parent
            content, title = replace_all(item.content, base, item.path, 0, item.name)
            item.content = content
            if title != item.name:
                ctx.chapter_titles[item.path] = title

        book.for_each_mut(visit)
        return book