"""Built-in renderers: an external command runner and a Markdown writer."""

from __future__ import annotations

import json
import logging
import shlex
import shutil
import subprocess
from pathlib import Path

from bookdriver.book import Chapter
from bookdriver.context import RenderContext, Renderer

log = logging.getLogger(__name__)


class RenderError(Exception):
    """Raised when rendering fails."""


def _component_count(word: str) -> int:
    count = len(Path(word).parts)
    if word.startswith(("./", ".\\")):
        count += 1
    return max(count, 1)


class CmdRenderer(Renderer):
    """A renderer that runs an arbitrary command.

    The render context is written to the command's stdin as JSON; its stdout
    and stderr pass through to the user.  A non-zero exit code means failure.
    """

    def __init__(self, name: str, cmd: str) -> None:
        self.name = name
        self.cmd = cmd

    def __repr__(self) -> str:
        return f"CmdRenderer(name={self.name!r}, cmd={self.cmd!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CmdRenderer):
            return NotImplemented
        return (self.name, self.cmd) == (other.name, other.cmd)

    def __hash__(self) -> int:
        return hash((self.name, self.cmd))

    def compose_command(self, root: str | Path, destination: str | Path) -> list[str]:
        """Resolve the executable and return the full argument list."""
        root, destination = Path(root), Path(destination)
        try:
            words = shlex.split(self.cmd)
        except ValueError as exc:
            raise RenderError(f"Invalid command string: {exc}") from exc
        if not words:
            raise RenderError("Command string was empty")

        first, *rest = words
        if _component_count(first) == 1:
            # Looked up on PATH.
            exe = first
        else:
            abs_exe = root / first
            legacy_path = destination / first
            if abs_exe.exists():
                exe = str(abs_exe)
            elif legacy_path.exists():
                log.warning(
                    "Renderer command `%s` uses a path relative to the renderer output "
                    "directory `%s`. This was previously accepted, but has been "
                    "deprecated. Relative executable paths should be relative to the "
                    "book root.",
                    first,
                    destination,
                )
                exe = str(legacy_path)
            else:
                exe = str(abs_exe)
        return [exe, *rest]

    def _handle_start_error(self, ctx: RenderContext, error: OSError) -> None:
        if isinstance(error, FileNotFoundError):
            optional_key = f"output.{self.name}.optional"
            value = ctx.config.get(optional_key)
            if value is None:
                is_optional = False
            elif isinstance(value, bool):
                is_optional = value
            else:
                raise RenderError(f"expected bool for `{optional_key}`: {value!r}")

            if is_optional:
                log.warning(
                    "The command `%s` for backend `%s` was not found, but was marked as "
                    "optional.",
                    self.cmd,
                    self.name,
                )
                return
            log.error(
                'The command `%s` wasn\'t found, is the "%s" backend installed? If you '
                'want to ignore this error when the "%s" backend is not installed, set '
                "`optional = true` in the `[output.%s]` section of the book.toml "
                "configuration file.",
                self.cmd,
                self.name,
                self.name,
                self.name,
            )
        raise RenderError("Unable to start the backend") from error

    def render(self, ctx: RenderContext) -> None:
        log.info('Invoking the "%s" renderer', self.name)

        try:
            ctx.destination.mkdir(parents=True, exist_ok=True)
        except OSError:
            pass

        args = self.compose_command(ctx.root, ctx.destination)
        try:
            child = subprocess.Popen(args, stdin=subprocess.PIPE, cwd=ctx.destination)
        except OSError as exc:
            self._handle_start_error(ctx, exc)
            return

        payload = json.dumps(ctx.to_dict()).encode("utf-8")
        assert child.stdin is not None
        try:
            child.stdin.write(payload)
        except OSError as exc:
            # The backend hung up before reading the whole context.
            log.warning("Error writing the RenderContext to the backend, %s", exc)
        try:
            child.stdin.close()
        except OSError:
            pass

        try:
            status = child.wait()
        except OSError as exc:
            raise RenderError("Error waiting for the backend to complete") from exc

        log.debug("%s exited with status %s", self.cmd, status)
        if status != 0:
            log.error("Renderer exited with non-zero return code.")
            raise RenderError(f'The "{self.name}" renderer failed')


def _remove_dir_content(directory: Path) -> None:
    for entry in directory.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


class MarkdownRenderer(Renderer):
    """Writes the book's Markdown as it is after preprocessing."""

    name = "markdown"

    def render(self, ctx: RenderContext) -> None:
        destination = ctx.destination
        if destination.exists():
            try:
                _remove_dir_content(destination)
            except OSError as exc:
                raise RenderError("Unable to remove stale Markdown output") from exc

        log.debug("markdown render")
        for item in ctx.book.iter():
            if isinstance(item, Chapter) and not item.is_draft_chapter():
                assert item.path is not None
                target = destination / item.path
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(item.content.encode("utf-8"))

        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RenderError("Unexpected error when constructing destination path") from exc