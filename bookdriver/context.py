"""Contexts passed to preprocessors and renderers, and their base classes."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from bookdriver.book import Book
from bookdriver.config import Config

VERSION = "0.5.0-alpha.1"


@dataclass
class PreprocessorContext:
    """Information handed to a preprocessor alongside the book."""

    root: Path
    config: Config
    renderer: str
    mdbook_version: str = VERSION
    chapter_titles: dict[Path, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": str(self.root),
            "config": self.config.to_dict(),
            "renderer": self.renderer,
            "mdbook_version": self.mdbook_version,
        }


def _context_from_dict(data: Any) -> PreprocessorContext:
    if not isinstance(data, dict):
        raise ValueError("invalid preprocessor context")
    try:
        return PreprocessorContext(
            root=Path(data["root"]),
            config=Config.from_dict(data["config"]),
            renderer=data["renderer"],
            mdbook_version=data.get("mdbook_version", VERSION),
        )
    except KeyError as exc:
        raise ValueError(f"preprocessor context is missing {exc}") from exc


class Preprocessor(ABC):
    """Transforms a book before it is rendered."""

    name: str = ""

    @abstractmethod
    def run(self, ctx: PreprocessorContext, book: Book) -> Book:
        """Return the processed book."""

    def supports_renderer(self, renderer: str) -> bool:
        return True


@dataclass
class RenderContext:
    """Information handed to a renderer."""

    root: Path
    book: Book
    config: Config
    destination: Path
    version: str = VERSION
    chapter_titles: dict[Path, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)
        self.destination = Path(self.destination)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "root": str(self.root),
            "book": self.book.to_dict(),
            "config": self.config.to_dict(),
            "destination": str(self.destination),
        }


class Renderer(ABC):
    """Produces output from a processed book."""

    name: str = ""

    @abstractmethod
    def render(self, ctx: RenderContext) -> None:
        """Write the rendered book."""


def parse_input(stream: IO[str] | IO[bytes]) -> tuple[PreprocessorContext, Book]:
    """Read a ``[context, book]`` JSON pair, as sent to external preprocessors."""
    raw = stream.read()
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("Unable to parse the input") from exc
    if not isinstance(data, list) or len(data) != 2:
        raise ValueError("Unable to parse the input")
    return _context_from_dict(data[0]), Book.from_dict(data[1])