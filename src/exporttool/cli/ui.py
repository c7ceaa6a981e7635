"""Terminal UI for export-tool using Rich library."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn, TimeElapsedColumn
from rich.table import Table

from exporttool.utils.disk import format_megabytes

if TYPE_CHECKING:
    from exporttool.tasks.restore import RestoreSummary


class _ProgressView:
    """TaskView backed by a rich Progress, redrawn only on update()."""

    def __init__(self, progress: Progress, task_id: TaskID) -> None:
        self._progress = progress
        self._task_id = task_id

    def update(self, progress: float | None, status: str = "") -> None:
        if progress is None:
            self._progress.update(self._task_id, status=status)
        else:
            self._progress.update(self._task_id, completed=progress * 100, status=status)
        self._progress.refresh()


class TerminalUI:
    """Rich-based terminal output: task spinners, progress bars and messages.

    Only the main thread calls into this class. Progress displays are created
    with auto refresh disabled so no rendering thread is started; the task
    runner redraws on every poll.
    """

    def __init__(self, console: Console | None = None) -> None:
        """Initialize TerminalUI.

        Args:
            console: Console to render on; defaults to stdout
        """
        self.console = console if console is not None else Console()

    @contextmanager
    def task_view(self, description: str, determinate: bool) -> Iterator[_ProgressView]:
        """Show a spinner (or a percentage bar) for the duration of a task.

        Args:
            description: Task description shown next to the indicator
            determinate: True to show a bar with a percentage, False for a spinner only
        """
        if determinate:
            columns = (
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                TimeElapsedColumn(),
                TextColumn("[yellow]{task.fields[status]}"),
            )
        else:
            columns = (
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                TextColumn("[yellow]{task.fields[status]}"),
            )

        progress = Progress(*columns, console=self.console, auto_refresh=False)
        task_id = progress.add_task(escape(description), total=100, status="")
        progress.start()
        try:
            yield _ProgressView(progress, task_id)
        finally:
            progress.stop()

    def show_banner(self, version: str) -> None:
        self.console.print(f"[bold]Proton Export[/bold] ({escape(version)})\n")

    def show_error(self, message: str) -> None:
        """Display an error message.

        Args:
            message: Error message to display
        """
        self.console.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def show_info(self, message: str) -> None:
        """Display an info message.

        Args:
            message: Info message to display
        """
        self.console.print(f"[blue]Info:[/blue] {escape(message)}")

    def show_warning(self, message: str) -> None:
        """Display a warning message.

        Args:
            message: Warning message to display
        """
        self.console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def show_success(self, message: str) -> None:
        """Display a success message.

        Args:
            message: Success message to display
        """
        self.console.print(f"[green]{escape(message)}[/green]")

    def show_human_verification(self, url: str) -> None:
        """Ask the user to solve the human verification challenge in a browser."""
        self.console.print("\n[bold]Human verification required[/bold]")
        self.console.print("Open the following link in a browser and complete the challenge:")
        self.console.print(f"  [link={url}]{escape(url)}[/link]\n", soft_wrap=True)

    def show_disk_space_warning(self, path: Path, expected_bytes: int, available_bytes: int) -> None:
        """Display expected and available space when the backup may not fit."""
        self.console.print(
            f"[yellow]Warning:[/yellow] The backup may not fit in {escape(str(path))}\n"
            f"  Expected size:   {format_megabytes(expected_bytes)}\n"
            f"  Available space: {format_megabytes(available_bytes)}"
        )

    def show_restore_summary(self, summary: RestoreSummary) -> None:
        """Display the restore counters table.

        Args:
            summary: Counters of the completed restore
        """
        table = Table(title="Import Summary", show_header=False, box=None)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")

        table.add_row("Importable messages", str(summary.importable))
        table.add_row("Imported", f"[green]{summary.imported}[/green]")
        failed_style = "red" if summary.failed else "white"
        table.add_row("Failed", f"[{failed_style}]{summary.failed}[/{failed_style}]")
        table.add_row("Skipped", str(summary.skipped))

        self.console.print()
        self.console.print(table)
        self.console.print()
