from pathlib import Path

import pytest

from bookdriver.book import Book, Chapter, Link, PartTitle, SectionNumber, Separator, Summary
from bookdriver.config import BuildConfig
from bookdriver.load import (
    LoadError,
    create_missing,
    load_book,
    load_book_from_disk,
    load_chapter,
    load_summary_item,
)

DUMMY_SRC = """
# Dummy Chapter

this is some dummy text.

And here is some more text.
"""


def dummy_link(tmp_path):
    chapter_path = tmp_path / "chapter_1.md"
    chapter_path.write_bytes(DUMMY_SRC.encode("utf-8"))
    return Link("Chapter 1", chapter_path)


def nested_links(tmp_path):
    root = dummy_link(tmp_path)
    second_path = tmp_path / "second.md"
    second_path.write_bytes(b"Hello World!")
    second = Link("Nested Chapter 1", second_path, SectionNumber([1, 2]))
    root.nested_items.extend([second, Separator(), Link("Nested Chapter 1", second_path,
                                                         SectionNumber([1, 2]))])
    return root


def test_load_a_single_chapter_from_disk(tmp_path):
    link = dummy_link(tmp_path)
    should_be = Chapter("Chapter 1", DUMMY_SRC, path=Path("chapter_1.md"), parent_names=[])
    assert load_chapter(link, tmp_path, []) == should_be


def test_load_a_single_chapter_with_utf8_bom_from_disk(tmp_path):
    chapter_path = tmp_path / "chapter_1.md"
    chapter_path.write_bytes(("\ufeff" + DUMMY_SRC).encode("utf-8"))
    link = Link("Chapter 1", chapter_path)
    should_be = Chapter("Chapter 1", DUMMY_SRC, path=Path("chapter_1.md"), parent_names=[])
    assert load_chapter(link, tmp_path, []) == should_be


def test_cant_load_a_nonexistent_chapter():
    link = Link("Chapter 1", "/foo/bar/baz.md")
    with pytest.raises(LoadError):
        load_chapter(link, "", [])


def test_load_recursive_link_with_separators(tmp_path):
    root = nested_links(tmp_path)
    nested = Chapter(
        name="Nested Chapter 1",
        content="Hello World!",
        number=SectionNumber([1, 2]),
        path=Path("second.md"),
        source_path=Path("second.md"),
        parent_names=["Chapter 1"],
    )
    should_be = Chapter(
        name="Chapter 1",
        content=DUMMY_SRC,
        number=None,
        path=Path("chapter_1.md"),
        source_path=Path("chapter_1.md"),
        parent_names=[],
        sub_items=[nested, Separator(), nested],
    )
    assert load_summary_item(root, tmp_path, []) == should_be


def test_load_a_book_with_a_single_chapter(tmp_path):
    link = dummy_link(tmp_path)
    summary = Summary(numbered_chapters=[link])
    should_be = Book([
        Chapter("Chapter 1", DUMMY_SRC, path=Path("chapter_1.md"),
                source_path=Path("chapter_1.md"))
    ])
    assert load_book_from_disk(summary, tmp_path) == should_be


def test_cant_load_chapters_with_an_empty_path(tmp_path):
    dummy_link(tmp_path)
    summary = Summary(numbered_chapters=[Link("Empty", Path(""))])
    with pytest.raises(LoadError):
        load_book_from_disk(summary, tmp_path)


def test_cant_load_chapters_when_the_link_is_a_directory(tmp_path):
    dummy_link(tmp_path)
    nested = tmp_path / "nested"
    nested.mkdir()
    summary = Summary(numbered_chapters=[Link("nested", nested)])
    with pytest.raises(LoadError):
        load_book_from_disk(summary, tmp_path)


def test_cant_open_summary_md(tmp_path):
    with pytest.raises(LoadError) as info:
        load_book(tmp_path, BuildConfig())
    assert str(info.value) == f'Couldn\'t open SUMMARY.md in "{tmp_path}" directory'


def test_draft_chapter_is_loaded_without_file(tmp_path):
    link = Link("Draft", None, SectionNumber([3]))
    got = load_chapter(link, tmp_path, ["Parent"])
    assert got.is_draft_chapter()
    assert got.number == SectionNumber([3])
    assert got.parent_names == ["Parent"]


def test_create_missing_writes_escaped_heading(tmp_path):
    summary = Summary(numbered_chapters=[Link("Chapter <1>", "sub/ch.md")])
    create_missing(tmp_path, summary)
    assert (tmp_path / "sub" / "ch.md").read_text(encoding="utf-8") == "# Chapter &lt;1&gt;\n"


def test_create_missing_keeps_existing_files(tmp_path):
    (tmp_path / "keep.md").write_text("original", encoding="utf-8")
    create_missing(tmp_path, Summary(prefix_chapters=[Link("Keep", "keep.md")]))
    assert (tmp_path / "keep.md").read_text(encoding="utf-8") == "original"


def test_load_book_parses_summary_and_creates_missing(tmp_path):
    (tmp_path / "SUMMARY.md").write_text(
        "# Summary\n\n[Intro](intro.md)\n\n- [Chapter 1](./chapter_1.md)\n"
        "    - [Sub](./sub.md)\n- [Draft]()\n\n# Part Two\n\n- [Chapter 3](c3.md)\n"
        "\n---\n\n[Outro](outro.md)\n",
        encoding="utf-8",
    )
    book = load_book(tmp_path, BuildConfig())
    names = [i.name if isinstance(i, Chapter) else i for i in book.iter()]
    assert names == ["Intro", "Chapter 1", "Sub", "Draft", PartTitle("Part Two"), "Chapter 3",
                     Separator(), "Outro"]
    chapters = {i.name: i for i in book.iter() if isinstance(i, Chapter)}
    assert chapters["Intro"].number is None
    assert chapters["Chapter 1"].number == SectionNumber([1])
    assert chapters["Sub"].number == SectionNumber([1, 1])
    assert chapters["Chapter 3"].number == SectionNumber([3])
    assert chapters["Draft"].is_draft_chapter()
    assert chapters["Sub"].parent_names == ["Chapter 1"]
    assert chapters["Sub"].content == "# Sub\n"
    assert (tmp_path / "outro.md").exists()


def test_load_book_without_create_missing_fails(tmp_path):
    (tmp_path / "SUMMARY.md").write_text("- [Missing](missing.md)\n", encoding="utf-8")
    config = BuildConfig(create_missing=False)
    with pytest.raises(LoadError):
        load_book(tmp_path, config)
    assert not (tmp_path / "missing.md").exists()


def test_load_book_rejects_malformed_summary(tmp_path):
    (tmp_path / "SUMMARY.md").write_text("[A](a.md)\n- [B](b.md)\n[C](c.md)\n- [D](d.md)\n",
                                         encoding="utf-8")
    with pytest.raises(LoadError) as info:
        load_book(tmp_path, BuildConfig())
    assert str(info.value).startswith("Summary parsing failed")