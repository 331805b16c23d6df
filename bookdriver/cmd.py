"""Preprocessor that hands the book to an external program."""

from __future__ import annotations

import io
import json
import logging
import shlex
import subprocess
from typing import IO

from bookdriver.book import Book
from bookdriver.context import Preprocessor, PreprocessorContext

log = logging.getLogger(__name__)


class PreprocessorError(Exception):
    """Raised when an external preprocessor cannot be run or fails."""


class CmdPreprocessor(Preprocessor):
    """A preprocessor that runs a third-party command.

    ``supports_renderer`` runs ``<cmd> supports <renderer>`` and treats a zero
    exit code as support.  ``run`` writes a ``[context, book]`` JSON pair to the
    command's stdin and reads the processed book back as JSON from its stdout.
    The command's stderr is passed through to the user.
    """

    def __init__(self, name: str, cmd: str) -> None:
        self.name = name
        self.cmd = cmd

    def __repr__(self) -> str:
        return f"CmdPreprocessor(name={self.name!r}, cmd={self.cmd!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CmdPreprocessor):
            return NotImplemented
        return (self.name, self.cmd) == (other.name, other.cmd)

    def __hash__(self) -> int:
        return hash((self.name, self.cmd))

    def command(self) -> list[str]:
        """Split the command string into the program and its arguments."""
        try:
            words = shlex.split(self.cmd)
        except ValueError as exc:
            raise PreprocessorError(f"Invalid command string: {exc}") from exc
        if not words:
            raise PreprocessorError("Command string was empty")
        return words

    def write_input(self, writer: IO[str], book: Book, ctx: PreprocessorContext) -> None:
        """Write the ``[context, book]`` JSON pair to ``writer``."""
        json.dump([ctx.to_dict(), book.to_dict()], writer)

    def run(self, ctx: PreprocessorContext, book: Book) -> Book:
        args = self.command()

        buffer = io.StringIO()
        self.write_input(buffer, book, ctx)

        try:
            child = subprocess.Popen(
                args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=None,
                text=True,
                encoding="utf-8",
            )
        except OSError as exc:
            raise PreprocessorError(
                f'Unable to start the "{self.name}" preprocessor. Is it installed?'
            ) from exc

        try:
            stdout, _ = child.communicate(buffer.getvalue())
        except BrokenPipeError as exc:
            # The preprocessor hung up before it read all of its input.
            log.warning("Error writing the RenderContext to the backend, %s", exc)
            stdout = child.stdout.read() if child.stdout is not None else ""
            child.wait()
        except OSError as exc:
            raise PreprocessorError(
                f'Error waiting for the "{self.name}" preprocessor to complete'
            ) from exc

        log.debug("%s exited with status %s", self.cmd, child.returncode)
        if child.returncode != 0:
            raise PreprocessorError(
                f'The "{self.name}" preprocessor exited unsuccessfully with '
                f"exit status: {child.returncode} status"
            )

        try:
            return Book.from_dict(json.loads(stdout))
        except (ValueError, KeyError, TypeError) as exc:
            raise PreprocessorError(
                f'Unable to parse the preprocessed book from "{self.name}" processor'
            ) from exc

    def supports_renderer(self, renderer: str) -> bool:
        log.debug('Checking if the "%s" preprocessor supports "%s"', self.name, renderer)
        try:
            args = self.command()
        except PreprocessorError as exc:
            log.warning(
                'Unable to create the command for the "%s" preprocessor, %s', self.name, exc
            )
            return False

        try:
            result = subprocess.run(
                [*args, "supports", renderer],
                stdin=subprocess.DEVNULL,
                check=False,
            )
        except FileNotFoundError:
            log.warning(
                'The command wasn\'t found, is the "%s" preprocessor installed?', self.name
            )
            log.warning("\tCommand: %s", self.cmd)
            return False
        except OSError:
            return False
        return result.returncode == 0