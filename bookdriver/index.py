"""Preprocessor that turns README chapters into index pages."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from bookdriver.book import Book, BookItem, Chapter
from bookdriver.context import Preprocessor, PreprocessorContext

log = logging.getLogger(__name__)

_README = re.compile(r"readme", re.IGNORECASE)


def is_readme_file(path: str | os.PathLike[str]) -> bool:
    """Whether the file stem is ``readme`` in any letter case."""
    return _README.fullmatch(Path(path).stem) is not None


def _warn_readme_name_conflict(readme_path: Path, index_path: Path) -> None:
    file_name = readme_path.name
    parent_dir = index_path.parent
    log.warning('It seems that there are both "%s" and index.md under "%s".', file_name, parent_dir)
    log.warning('mdbook converts "%s" into index.html by default. It may cause', file_name)
    log.warning("unexpected behavior if putting both files under the same directory.")
    log.warning("To solve the warning, try to rearrange the book structure or disable")
    log.warning('"index" preprocessor to stop the conversion.')


class IndexPreprocessor(Preprocessor):
    """Renames ``README.md`` chapters to ``index.md``."""

    NAME = "index"
    name = NAME

    def run(self, ctx: PreprocessorContext, book: Book) -> Book:
        source_dir = Path(ctx.root) / ctx.config.book.src

        def visit(item: BookItem) -> None:
            if isinstance(item, Chapter) and item.path is not None and is_readme_file(item.path):
                index_md = source_dir / item.path.with_name("index.md")
                if index_md.exists():
                    _warn_readme_name_conflict(item.path, index_md)
                item.path = item.path.with_name("index.md")

        book.for_each_mut(visit)
        return book