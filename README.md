# bookdriver

`bookdriver` works with books made of Markdown chapters. A book has a root
directory with an optional `book.toml` file and a source directory, `src/` by
default. The source directory holds a `SUMMARY.md` that lists the chapters in
order.

The package reads the configuration and loads the chapters into memory. It runs
preprocessors over them and hands the result to renderers. It has no
dependencies outside the standard library.

## Installation

```
pip install bookdriver
```

To run the test suite:

```
pip install "bookdriver[test]"
pytest
```

## A complete pass over a book

```python
from pathlib import Path

from bookdriver.config import Config
from bookdriver.context import PreprocessorContext, RenderContext
from bookdriver.index import IndexPreprocessor
from bookdriver.links import LinkPreprocessor
from bookdriver.load import load_book
from bookdriver.renderers import MarkdownRenderer

root = Path("my-book")
config = Config.from_disk(root / "book.toml")
config.update_from_env()

book = load_book(root / config.book.src, config.build)

ctx = PreprocessorContext(root, config, "markdown")
for preprocessor in (IndexPreprocessor(), LinkPreprocessor()):
    book = preprocessor.run(ctx, book)

MarkdownRenderer().render(
    RenderContext(root, book, config, root / config.build.build_dir)
)
```

## Configuration (`bookdriver.config`)

`Config` has three typed sections and keeps every other table in `rest`:

- `book` is a `BookConfig` with `title`, `authors`, `description`, `src` and
  `language`.
- `build` is a `BuildConfig` with `build_dir`, `create_missing`,
  `use_default_preprocessors` and `extra_watch_dirs`.
- `rust` is a `RustConfig` whose `edition` is a `RustEdition` or `None`.

A configuration is built with `Config.from_str`, `Config.from_disk` or
`Config.from_dict`. `to_dict` turns it back into plain data. Tables and values
are reached by dotted keys: `config.get("output.html")` returns `None` when the
key is absent, and `config.set("preprocessor.random.command", "python random.py")`
creates intermediate tables as needed.

`update_from_env()` applies environment variables that start with `MDBOOK_`.
Within the rest of the name, `__` becomes `.` and `_` becomes `-`, and the name
is lower-cased. The value is read as JSON, and kept as a string when it is not
valid JSON. For example, `MDBOOK_BUILD__BUILD_DIR=out` sets `build.build-dir`.

A file that cannot be read, is not valid TOML, or holds a value of the wrong
type raises `ConfigError`.

## The book model (`bookdriver.book`)

A `Book` holds a list of items. Each item is a `Chapter`, a `Separator` or a
`PartTitle`. A `Chapter` has a `name`, `content`, an optional `number`
(`SectionNumber`), a `path` relative to the source directory, `parent_names`
and nested `sub_items`. A chapter without a path is a draft
(`is_draft_chapter()`).

- `Book.iter()` (or plain iteration) yields items depth-first, with each parent
  before its children.
- `Book.for_each_mut(func)` calls `func` on every item, with children before
  their parent. It is meant for changing items in place.
- `Book.to_dict()` and `Book.from_dict()` convert to and from the JSON form
  that is exchanged with external commands.

`Summary` and `Link` describe the parsed structure of `SUMMARY.md`.

## Loading (`bookdriver.load`)

`load_book(src_dir, build_config)` reads `SUMMARY.md` from `src_dir` and parses
it, then loads every chapter it names. The summary may contain:

- an optional `# Title`;
- prefix chapters written as `[Name](path.md)`;
- numbered chapters written as list items, `- [Name](path.md)`, nested by
  indentation;
- part titles (`# Part`) and separators (`---`);
- suffix chapters written as `[Name](path.md)` after the numbered ones.

A link with an empty target, `[Draft]()`, becomes a draft chapter.

When `build_config.create_missing` is true, a chapter file that does not exist
yet is created, containing a heading with the chapter name. A leading UTF-8
byte-order mark is removed from chapter content. A missing `SUMMARY.md`, a
malformed summary, or a chapter file that cannot be read raises `LoadError`.

`load_book_from_disk(summary, src_dir)` builds a book from a `Summary` you
already have. `create_missing`, `load_summary_item` and `load_chapter` cover
the individual steps.

## Preprocessors

Every preprocessor subclasses `bookdriver.context.Preprocessor` and has a
`name`. It implements `run(ctx, book)`, which returns the processed book, and
it may override `supports_renderer(renderer)`, which returns `True` by default.
`PreprocessorContext` carries the book `root`, the `config`, the name of the
target `renderer`, and a `chapter_titles` mapping that preprocessors may fill.

### `links` (`bookdriver.links.LinkPreprocessor`)

This preprocessor expands helpers in chapter content:

- `{{#include file.rs}}` inserts the whole file.
- `{{#include file.rs:10:20}}`, `:10`, `:10:` and `::20` insert a range of
  lines. Line numbers start at 1.
- `{{#include file.rs:name}}` inserts the lines between `ANCHOR: name` and
  `ANCHOR_END: name`.
- `{{#rustdoc_include ...}}` takes the same arguments. It keeps every line of
  the file and hides the lines that were not selected behind `# `.
- `{{#playground file.rs editable}}` wraps the file in a ```` ```rust ````
  fenced block, with the extra words added as attributes. The older name
  `{{#playpen ...}}` is accepted with a warning.
- `{{#title My Title}}` removes itself and records the title in
  `ctx.chapter_titles` under the chapter's path.

Paths are relative to the directory of the chapter. Included files are
expanded again, to a depth of 10 (`MAX_LINK_NESTED_DEPTH`). A helper written
with a leading backslash, such as `\{{#include file.rs}}`, is kept without the
backslash. A helper whose file cannot be read is logged and left in the text
unchanged.

The building blocks are public as well:

- `replace_all(text, path, source, depth, chapter_title)` returns the expanded
  text and the chapter title.
- `render_link(link, base, chapter_title)` expands a single helper.
- `take_lines`, `take_anchored_lines`, `take_rustdoc_include_lines` and
  `take_rustdoc_include_anchored_lines` select lines from a text.

`bookdriver.linkparse` finds and parses helpers. `find_links(text)` yields
`Link` objects with their position, their `LinkKind`, the target `path`, and a
`LineRange` or `Anchor`. `parse_include_path`, `parse_rustdoc_include_path` and
`parse_range_or_anchor` parse the argument of a helper.

### `index` (`bookdriver.index.IndexPreprocessor`)

This preprocessor renames chapters whose file stem is `readme`, in any letter
case, to `index.md`. If an `index.md` already exists beside the file, it logs a
warning. `is_readme_file(path)` performs the check.

### External commands (`bookdriver.cmd.CmdPreprocessor`)

`CmdPreprocessor(name, cmd)` runs a command line that is split the way a shell
splits it.

- `supports_renderer(renderer)` runs `<cmd> supports <renderer>` and treats
  exit code 0 as support.
- `run(ctx, book)` writes the JSON pair `[context, book]` to the command's
  standard input and reads the processed book back as JSON from its standard
  output.

A command that cannot be started, exits with a non-zero code, or prints
invalid JSON raises `PreprocessorError`. On the other side of this exchange,
`bookdriver.context.parse_input(stream)` reads the pair back into a
`PreprocessorContext` and a `Book`.

## Renderers (`bookdriver.renderers`)

Every renderer subclasses `bookdriver.context.Renderer` and implements
`render(ctx)`, where `ctx` is a `RenderContext` holding `root`, `book`,
`config` and `destination`.

- `MarkdownRenderer` empties the destination and writes each chapter that is
  not a draft to its path there. The output shows what the preprocessors
  produced.
- `CmdRenderer(name, cmd)` runs a command in the destination directory and
  writes the render context to its standard input as JSON.
  - A first word that has more than one path component is looked up relative
    to the book root. It is then looked up relative to the destination, which
    is deprecated and produces a warning.
  - If the command is not found and `output.<name>.optional` is `true`, only a
    warning is logged.
  - Any other failure to start, or a non-zero exit code, raises `RenderError`.

## What this package does not do

The package provides the parts listed above, and you combine them yourself, as
in the example at the top. It does not have:

- a single object that loads a book and runs the configured preprocessors and
  renderers in order;
- a way to create a new book skeleton;
- an HTML renderer;
- a command-line program.