"""Interactive prompts that resolve to a value or to cancellation.

Every read first checks the cancellation signal. A read that hits end of
file, a closed stream, or is interrupted by the interrupt handler while
blocked raises OperationCancelled instead of an I/O error.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from exporttool.core.errors import OperationCancelled, PromptError
from exporttool.core.signals import CancellationSignal

NUM_INPUT_RETRIES = 3

YES_ANSWERS = frozenset({"y", "yes"})
NO_ANSWERS = frozenset({"n", "no"})


class InputInterrupted(Exception):
    """Raised inside a blocked read by the interrupt handler."""


class TerminalInput:
    """Line-based prompts on the terminal, cancellable mid-read.

    interrupt_read() is called from the SIGINT handler. Python runs signal
    handlers on the main thread, inside the blocked read, so raising there
    unwinds the read; the flag below limits that to the read window.
    """

    def __init__(self, cancellation: CancellationSignal, console: Console | None = None) -> None:
        """Initialize TerminalInput.

        Args:
            cancellation: Signal checked before every read
            console: Console used for prompts and validation messages
        """
        self._cancellation = cancellation
        self._console = console if console is not None else Console()
        self._reading = False

    def interrupt_read(self) -> None:
        """Abandon the read in progress, if any."""
        if self._reading:
            raise InputInterrupted()

    def read_text(self, label: str) -> str:
        """Read a non-empty line.

        Raises:
            OperationCancelled: If the user quit or input was closed
            PromptError: If no value was given within the allowed retries
        """
        return self._read_non_empty(label, password=False)

    def read_secret(self, label: str) -> str:
        """Read a non-empty line without echoing it."""
        return self._read_non_empty(label, password=True)

    def confirm(self, question: str, default: bool | None = None) -> bool:
        """Ask a yes/no question.

        Args:
            question: Question to display
            default: Answer used for an empty reply; None requires an explicit answer

        Returns:
            True for yes, False for no
        """
        hint = {None: "y/n", True: "Y/n", False: "y/N"}[default]
        for _ in range(NUM_INPUT_RETRIES):
            answer = self._read(f"{question} ({hint})").strip().lower()
            if answer in YES_ANSWERS:
                return True
            if answer in NO_ANSWERS:
                return False
            if not answer and default is not None:
                return default
            self._error("Please answer 'yes' or 'no'")

        raise PromptError(f"Failed read value for '{question}'")

    def read_path(self, label: str, must_exist: bool = False, base: Path | None = None) -> Path:
        """Read a directory path.

        A relative entry is taken relative to ``base`` when given, and the
        checks apply to that resolved path. A path naming an existing
        non-directory is always rejected. With ``must_exist`` a missing path
        is rejected too.
        """
        for _ in range(NUM_INPUT_RETRIES):
            value = self._read(label).strip()
            if not value:
                self._error("Value can't be empty")
                continue

            path = Path(value).expanduser()
            if base is not None and not path.is_absolute():
                path = base / path
            try:
                exists = path.exists()
                if exists and not path.is_dir():
                    self._error("Path is not a directory")
                    continue
            except OSError as e:
                self._error(f"Failed to check path: {e}")
                continue

            if must_exist and not exists:
                self._error("Path does not exist")
                continue

            return path

        raise PromptError(f"Failed read value for '{label}'")

    def pause(self, message: str) -> None:
        """Wait until the user presses Enter."""
        self._read(message)

    def _read_non_empty(self, label: str, password: bool) -> str:
        for _ in range(NUM_INPUT_RETRIES):
            value = self._read(label, password=password)
            if value.strip():
                return value.strip() if not password else value
            self._error("Value can't be empty")

        raise PromptError(f"Failed read value for '{label}'")

    def _read(self, label: str, password: bool = False) -> str:
        if self._cancellation.should_quit:
            raise OperationCancelled()

        try:
            self._reading = True
            try:
                value = self._console.input(escape(f"{label}: "), password=password)
            finally:
                self._reading = False
        except (EOFError, InputInterrupted, OSError, ValueError) as e:
            # ValueError: read from a closed file
            raise OperationCancelled() from e

        if self._cancellation.should_quit:
            raise OperationCancelled()
        return value

    def _error(self, message: str) -> None:
        self._console.print(f"[red]{escape(message)}[/red]")
