"""Book configuration as read from ``book.toml``."""

from __future__ import annotations

import copy
import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

_TYPED_SECTIONS = ("book", "build", "rust")
_ENV_PREFIX = "MDBOOK_"


class ConfigError(ValueError):
    """Raised for configuration that cannot be read or is malformed."""


class RustEdition(Enum):
    E2015 = "2015"
    E2018 = "2018"
    E2021 = "2021"
    E2024 = "2024"


@dataclass
class BookConfig:
    title: str | None = None
    authors: list[str] = field(default_factory=list)
    description: str | None = None
    src: Path = Path("src")
    language: str | None = "en"


@dataclass
class BuildConfig:
    build_dir: Path = Path("book")
    create_missing: bool = True
    use_default_preprocessors: bool = True
    extra_watch_dirs: list[Path] = field(default_factory=list)


@dataclass
class RustConfig:
    edition: RustEdition | None = None


def _table(value: Any, name: str) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise ConfigError(f"`{name}` must be a table")
    return dict(value)


def _typed(table: dict[str, Any], key: str, kind: type | tuple, section: str, default: Any) -> Any:
    if key not in table:
        return default
    value = table[key]
    if not isinstance(value, kind):
        raise ConfigError(f"invalid type for `{section}.{key}`: {value!r}")
    return value


def _str_list(table: dict[str, Any], key: str, section: str) -> list[str]:
    values = _typed(table, key, list, section, [])
    if not all(isinstance(v, str) for v in values):
        raise ConfigError(f"`{section}.{key}` must be a list of strings")
    return list(values)


def _insert(table: dict[str, Any], parts: list[str], value: Any) -> None:
    *parents, last = parts
    node = table
    for part in parents:
        child = node.setdefault(part, {})
        if not isinstance(child, dict):
            raise ConfigError(f"cannot set `{'.'.join(parts)}`: `{part}` is not a table")
        node = child
    node[last] = value


@dataclass
class Config:
    """The whole book configuration, typed sections plus free-form tables."""

    book: BookConfig = field(default_factory=BookConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    rust: RustConfig = field(default_factory=RustConfig)
    rest: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_str(cls, text: str) -> Config:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid configuration file: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def from_disk(cls, path: str | os.PathLike[str]) -> Config:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Unable to read the config file {path}") from exc
        return cls.from_str(text)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Config:
        data = _table(data, "config")
        book_t = _table(data.get("book", {}), "book")
        build_t = _table(data.get("build", {}), "build")
        rust_t = _table(data.get("rust", {}), "rust")

        book = BookConfig(
            title=_typed(book_t, "title", str, "book", None),
            authors=_str_list(book_t, "authors", "book"),
            description=_typed(book_t, "description", str, "book", None),
            src=Path(_typed(book_t, "src", str, "book", "src")),
            language=_typed(book_t, "language", str, "book", "en"),
        )
        build = BuildConfig(
            build_dir=Path(_typed(build_t, "build-dir", str, "build", "book")),
            create_missing=_typed(build_t, "create-missing", bool, "build", True),
            use_default_preprocessors=_typed(
                build_t, "use-default-preprocessors", bool, "build", True
            ),
            extra_watch_dirs=[Path(p) for p in _str_list(build_t, "extra-watch-dirs", "build")],
        )
        edition_value = _typed(rust_t, "edition", str, "rust", None)
        try:
            edition = None if edition_value is None else RustEdition(edition_value)
        except ValueError as exc:
            raise ConfigError(f"unknown rust edition: {edition_value!r}") from exc

        rest = {k: copy.deepcopy(v) for k, v in data.items() if k not in _TYPED_SECTIONS}
        return cls(book=book, build=build, rust=RustConfig(edition), rest=rest)

    def to_dict(self) -> dict[str, Any]:
        book: dict[str, Any] = {"authors": list(self.book.authors), "src": str(self.book.src)}
        if self.book.title is not None:
            book["title"] = self.book.title
        if self.book.description is not None:
            book["description"] = self.book.description
        if self.book.language is not None:
            book["language"] = self.book.language
        build = {
            "build-dir": str(self.build.build_dir),
            "create-missing": self.build.create_missing,
            "use-default-preprocessors": self.build.use_default_preprocessors,
            "extra-watch-dirs": [str(p) for p in self.build.extra_watch_dirs],
        }
        result: dict[str, Any] = {"book": book, "build": build}
        if self.rust.edition is not None:
            result["rust"] = {"edition": self.rust.edition.value}
        result.update(copy.deepcopy(self.rest))
        return result

    def get(self, key: str) -> Any:
        """Look up a dotted key, returning None when it is absent."""
        node: Any = self.to_dict()
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a dotted key, creating intermediate tables as needed."""
        parts = key.split(".")
        if not all(parts):
            raise ConfigError(f"invalid config key: {key!r}")
        if parts[0] in _TYPED_SECTIONS:
            data = self.to_dict()
            _insert(data, parts, value)
            updated = Config.from_dict(data)
            self.book, self.build, self.rust = updated.book, updated.build, updated.rust
        else:
            _insert(self.rest, parts, value)

    def update_from_env(self, environ: Mapping[str, str] | None = None) -> None:
        """Apply ``MDBOOK_``-prefixed environment variables as config overrides."""
        environ = os.environ if environ is None else environ
        for name in sorted(environ):
            if not name.startswith(_ENV_PREFIX):
                continue
            key = name[len(_ENV_PREFIX):].lower().replace("__", ".").replace("_", "-")
            if not key:
                continue
            raw = environ[name]
            try:
                value = json.loads(raw)
            except json.JSONDecodeError:
                value = raw
            self.set(key, value)