"""In-memory representation of a book and of its summary."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union


@dataclass(frozen=True)
class SectionNumber:
    """A chapter's section number, such as ``1.2.``."""

    parts: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "parts", tuple(int(p) for p in self.parts))

    def __str__(self) -> str:
        if not self.parts:
            return "0"
        return "".join(f"{part}." for part in self.parts)


@dataclass
class Chapter:
    """A chapter of the book, possibly with nested items."""

    name: str
    content: str = ""
    number: SectionNumber | None = None
    sub_items: list[BookItem] = field(default_factory=list)
    path: Path | None = None
    source_path: Path | None = None
    parent_names: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.path is not None:
            self.path = Path(self.path)
        if self.source_path is not None:
            self.source_path = Path(self.source_path)
        elif self.path is not None:
            self.source_path = self.path
        if self.number is not None and not isinstance(self.number, SectionNumber):
            self.number = SectionNumber(self.number)

    @classmethod
    def new_draft(cls, name: str, parent_names: list[str]) -> Chapter:
        """Create a chapter that has no backing file."""
        return cls(name=name, parent_names=list(parent_names))

    def is_draft_chapter(self) -> bool:
        return self.path is None


@dataclass(frozen=True)
class Separator:
    """A horizontal separator between chapters."""


@dataclass(frozen=True)
class PartTitle:
    """A title dividing the book into parts."""

    title: str


BookItem = Union[Chapter, Separator, PartTitle]


def _for_each(func: Callable[[BookItem], Any], items: list[BookItem]) -> None:
    for item in items:
        if isinstance(item, Chapter):
            _for_each(func, item.sub_items)
        func(item)


def _path_or_none(value: Path | None) -> str | None:
    return None if value is None else str(value)


def _item_to_dict(item: BookItem) -> Any:
    if isinstance(item, Separator):
        return "Separator"
    if isinstance(item, PartTitle):
        return {"PartTitle": item.title}
    return {
        "Chapter": {
            "name": item.name,
            "content": item.content,
            "number": None if item.number is None else list(item.number.parts),
            "sub_items": [_item_to_dict(sub) for sub in item.sub_items],
            "path": _path_or_none(item.path),
            "source_path": _path_or_none(item.source_path),
            "parent_names": list(item.parent_names),
        }
    }


def _item_from_dict(data: Any) -> BookItem:
    if data == "Separator":
        return Separator()
    if isinstance(data, dict) and len(data) == 1:
        (kind, body), = data.items()
        if kind == "PartTitle" and isinstance(body, str):
            return PartTitle(body)
        if kind == "Chapter" and isinstance(body, dict):
            number = body.get("number")
            path = body.get("path")
            source_path = body.get("source_path")
            return Chapter(
                name=body["name"],
                content=body.get("content", ""),
                number=None if number is None else SectionNumber(number),
                sub_items=[_item_from_dict(sub) for sub in body.get("sub_items", [])],
                path=None if path is None else Path(path),
                source_path=None if source_path is None else Path(source_path),
                parent_names=list(body.get("parent_names", [])),
            )
    raise ValueError(f"invalid book item: {data!r}")


@dataclass
class Book:
    """A tree of book items."""

    items: list[BookItem] = field(default_factory=list)

    def iter(self) -> Iterator[BookItem]:
        """Yield every item depth-first, parents before their children."""
        stack = list(reversed(self.items))
        while stack:
            item = stack.pop()
            yield item
            if isinstance(item, Chapter):
                stack.extend(reversed(item.sub_items))

    def __iter__(self) -> Iterator[BookItem]:
        return self.iter()

    def for_each_mut(self, func: Callable[[BookItem], Any]) -> None:
        """Call ``func`` on every item, children before their parent."""
        _for_each(func, self.items)

    def to_dict(self) -> dict[str, Any]:
        return {"items": [_item_to_dict(item) for item in self.items]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Book:
        if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
            raise ValueError("invalid book data")
        return cls([_item_from_dict(item) for item in data.get("items", [])])


@dataclass
class Link:
    """A link entry of the summary."""

    name: str
    location: Path | None = None
    number: SectionNumber | None = None
    nested_items: list[SummaryItem] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.location is not None:
            self.location = Path(self.location)


SummaryItem = Union[Link, Separator, PartTitle]


@dataclass
class Summary:
    """The parsed structure of a summary file."""

    title: str | None = None
    prefix_chapters: list[SummaryItem] = field(default_factory=list)
    numbered_chapters: list[SummaryItem] = field(default_factory=list)
    suffix_chapters: list[SummaryItem] = field(default_factory=list)