"""Loading a book from its source directory."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from bookdriver.book import (
    Book,
    BookItem,
    Chapter,
    Link,
    PartTitle,
    SectionNumber,
    Separator,
    Summary,
    SummaryItem,
)
from bookdriver.config import BuildConfig

log = logging.getLogger(__name__)

_BOM = "\ufeff"
_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_HEADING = re.compile(r"^#\s+(.*?)\s*#*\s*$")
_LIST_ITEM = re.compile(r"^(\s*)[-*+]\s+\[(.*)\]\((.*)\)\s*$")
_PLAIN_LINK = re.compile(r"^\[(.*)\]\((.*)\)\s*$")
_SEPARATOR = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$")


class LoadError(Exception):
    """Raised when a book cannot be loaded from disk."""


def _bracket_escape(text: str) -> str:
    return text.replace("<", "&lt;").replace(">", "&gt;")


def _location(raw: str) -> Path | None:
    raw = raw.strip()
    if raw.startswith("<") and raw.endswith(">"):
        raw = raw[1:-1]
    return Path(raw) if raw else None


def _parse_summary(text: str) -> Summary:
    summary = Summary()
    phase = "prefix"
    stack: list[tuple[int, Link]] = []
    counters: list[int] = []
    seen_content = False

    for lineno, raw in enumerate(_COMMENT.sub("", text).splitlines(), 1):
        line = raw.rstrip()
        if not line.strip():
            continue

        if _SEPARATOR.match(line):
            target = {
                "prefix": summary.prefix_chapters,
                "numbered": summary.numbered_chapters,
                "suffix": summary.suffix_chapters,
            }[phase]
            target.append(Separator())
            stack.clear()
            seen_content = True
            continue

        if heading := _HEADING.match(line):
            if not seen_content and summary.title is None:
                summary.title = heading[1]
            elif phase == "suffix":
                raise LoadError(f"line {lineno}: part titles cannot follow suffix chapters")
            else:
                phase = "numbered"
                summary.numbered_chapters.append(PartTitle(heading[1]))
                stack.clear()
                seen_content = True
            continue

        if item := _LIST_ITEM.match(line):
            if phase == "suffix":
                raise LoadError(f"line {lineno}: suffix chapters cannot be followed by a list")
            phase = "numbered"
            seen_content = True
            indent = len(item[1].expandtabs(4))
            while stack and stack[-1][0] >= indent:
                stack.pop()
            depth = len(stack)
            del counters[depth + 1:]
            if len(counters) > depth:
                counters[depth] += 1
            else:
                counters.append(1)
            link = Link(item[2], _location(item[3]), SectionNumber(counters))
            parent = stack[-1][1].nested_items if stack else summary.numbered_chapters
            parent.append(link)
            stack.append((indent, link))
            continue

        if plain := _PLAIN_LINK.match(line):
            link = Link(plain[1], _location(plain[2]))
            seen_content = True
            if phase == "prefix":
                summary.prefix_chapters.append(link)
            else:
                phase = "suffix"
                stack.clear()
                summary.suffix_chapters.append(link)
            continue

        raise LoadError(f"line {lineno}: unexpected content {line.strip()!r}")

    return summary


def _all_items(summary: Summary) -> list[SummaryItem]:
    return [*summary.prefix_chapters, *summary.numbered_chapters, *summary.suffix_chapters]


def load_book(src_dir: str | os.PathLike[str], build_config: BuildConfig) -> Book:
    """Load a book into memory from its source directory."""
    src_dir = Path(src_dir)
    summary_md = src_dir / "SUMMARY.md"
    try:
        content = summary_md.read_text(encoding="utf-8")
    except OSError as exc:
        raise LoadError(f'Couldn\'t open SUMMARY.md in "{src_dir}" directory') from exc

    try:
        summary = _parse_summary(content)
    except LoadError as exc:
        raise LoadError(f'Summary parsing failed for file="{summary_md}": {exc}') from exc

    if build_config.create_missing:
        try:
            create_missing(src_dir, summary)
        except OSError as exc:
            raise LoadError("Unable to create missing chapters") from exc

    return load_book_from_disk(summary, src_dir)


def create_missing(src_dir: str | os.PathLike[str], summary: Summary) -> None:
    """Create a stub file for every linked chapter that does not exist yet."""
    src_dir = Path(src_dir)
    items = _all_items(summary)
    while items:
        item = items.pop()
        if not isinstance(item, Link):
            continue
        if item.location is not None:
            filename = src_dir / item.location
            if not filename.exists():
                filename.parent.mkdir(parents=True, exist_ok=True)
                log.debug("Creating missing file %s", filename)
                with filename.open("w", encoding="utf-8", newline="") as f:
                    f.write(f"# {_bracket_escape(item.name)}\n")
        items.extend(item.nested_items)


def load_book_from_disk(summary: Summary, src_dir: str | os.PathLike[str]) -> Book:
    """Build a book from a summary; chapter paths are relative to ``src_dir``."""
    log.debug("Loading the book from disk")
    return Book([load_summary_item(item, src_dir, []) for item in _all_items(summary)])


def load_summary_item(
    item: SummaryItem, src_dir: str | os.PathLike[str], parent_names: list[str]
) -> BookItem:
    if isinstance(item, Separator):
        return Separator()
    if isinstance(item, PartTitle):
        return PartTitle(item.title)
    return load_chapter(item, src_dir, parent_names)


def load_chapter(link: Link, src_dir: str | os.PathLike[str], parent_names: list[str]) -> Chapter:
    """Read one chapter and, recursively, its nested items."""
    src_dir = Path(src_dir)
    if link.location is not None:
        log.debug("Loading %s (%s)", link.name, link.location)
        location = link.location if link.location.is_absolute() else src_dir / link.location
        try:
            with location.open(encoding="utf-8", newline="") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadError(f"Chapter file not found, {link.location}") from exc
        if content.startswith(_BOM):
            content = content[len(_BOM):]
        chapter = Chapter(
            link.name,
            content,
            path=location.relative_to(src_dir),
            parent_names=list(parent_names),
        )
    else:
        chapter = Chapter.new_draft(link.name, parent_names)

    chapter.number = link.number
    sub_parents = [*parent_names, link.name]
    chapter.sub_items = [
        load_summary_item(item, src_dir, sub_parents) for item in link.nested_items
    ]
    return chapter