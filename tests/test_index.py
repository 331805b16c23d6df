import logging
from pathlib import Path

import pytest

from bookdriver.book import Book, Chapter, Separator
from bookdriver.config import Config
from bookdriver.context import PreprocessorContext
from bookdriver.index import IndexPreprocessor, is_readme_file


@pytest.mark.parametrize(
    "path",
    [
        "path/to/Readme.md",
        "path/to/README.md",
        "path/to/rEaDmE.md",
        "path/to/README.markdown",
        "path/to/README",
    ],
)
def test_file_stem_matches_readme_case_insensitively(path):
    assert is_readme_file(path)


def test_other_stems_are_not_readme():
    assert not is_readme_file("path/to/README-README.md")


def _ctx(root):
    return PreprocessorContext(root, Config(), "html")


def test_run_renames_readme_chapters(tmp_path):
    sub = Chapter("Sub", "s", path=Path("sub/Readme.md"))
    top = Chapter("Top", "t", path=Path("README.md"), sub_items=[sub, Separator()])
    other = Chapter("Other", "o", path=Path("other.md"))
    book = IndexPreprocessor().run(_ctx(tmp_path), Book([top, other]))
    paths = [i.path for i in book.iter() if isinstance(i, Chapter)]
    assert paths == [Path("index.md"), Path("sub/index.md"), Path("other.md")]


def test_run_keeps_source_path(tmp_path):
    book = Book([Chapter("Top", "t", path=Path("README.md"))])
    result = IndexPreprocessor().run(_ctx(tmp_path), book)
    assert result.items[0].source_path == Path("README.md")


def test_run_warns_on_conflict(tmp_path, caplog):
    src = tmp_path / "src"
    src.mkdir()
    (src / "index.md").write_text("x", encoding="utf-8")
    book = Book([Chapter("Top", "t", path=Path("README.md"))])
    with caplog.at_level(logging.WARNING, logger="bookdriver.index"):
        IndexPreprocessor().run(_ctx(tmp_path), book)
    assert any("index.md" in record.getMessage() for record in caplog.records)
    assert book.items[0].path == Path("index.md")


def test_draft_chapters_untouched(tmp_path):
    book = Book([Chapter.new_draft("Readme", [])])
    result = IndexPreprocessor().run(_ctx(tmp_path), book)
    assert result.items[0].path is None
    assert IndexPreprocessor().name == IndexPreprocessor.NAME