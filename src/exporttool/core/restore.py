"""Restore orchestration: choose the backup directory, run the import, report counters."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from exporttool.core.backup import OperationPrompts
from exporttool.core.errors import OperationCancelled, PreconditionError, RestoreError
from exporttool.core.logging import get_logger
from exporttool.core.session import Session
from exporttool.core.signals import AppState
from exporttool.core.task import TaskRunner
from exporttool.tasks.restore import RestoreSummary, RestoreTask

if TYPE_CHECKING:
    from exporttool.cli.ui import TerminalUI


class RestoreOperation:
    """One-shot restore driver, run after login.

    Source directory precedence: explicit path (flag or environment), then a
    path entered by the user. An explicit path that is missing or not a
    directory is fatal; an entered one is asked for again.
    """

    def __init__(
        self,
        session: Session,
        runner: TaskRunner,
        prompts: OperationPrompts,
        app_state: AppState,
        ui: TerminalUI,
    ) -> None:
        self._session = session
        self._runner = runner
        self._prompts = prompts
        self._app_state = app_state
        self._ui = ui
        self._logger = get_logger("restore")

    def run(self, explicit_dir: Path | None = None) -> RestoreSummary:
        """Run the restore and display its counters.

        Args:
            explicit_dir: Directory given by flag or environment variable

        Returns:
            Counters read from the restore once it completed

        Raises:
            OperationCancelled: If the user quit
            PreconditionError: If an explicit directory is missing or not a directory
            RestoreError: If the restore itself failed
        """
        self._check_quit()
        path = self.resolve_source_dir(explicit_dir)
        self._logger.info("Backup directory selected", path=str(path), explicit=explicit_dir is not None)

        restore = self._session.new_restore(path)
        self._check_quit()

        self._ui.console.print("Starting Import")
        try:
            summary = self._runner.run(RestoreTask(restore))
        except RestoreError as e:
            self._logger.error("Import failed", path=str(path), error=str(e))
            raise RestoreError(f"Failed to import: {e}") from e

        self._logger.info(
            "Import finished",
            importable=summary.importable,
            imported=summary.imported,
            failed=summary.failed,
            skipped=summary.skipped,
        )
        self._ui.show_success("Import Finished")
        self._ui.show_restore_summary(summary)
        return summary

    def resolve_source_dir(self, explicit_dir: Path | None) -> Path:
        """Pick the directory holding the backup.

        Raises:
            PreconditionError: If the explicit directory is missing or not a directory
        """
        if explicit_dir is None:
            return self._prompts.read_path("Backup directory", must_exist=True)

        path = explicit_dir.expanduser()
        if not path.exists():
            raise PreconditionError(f"Backup directory {path} does not exist")
        if not path.is_dir():
            raise PreconditionError(f"Backup path {path} is not a directory")
        return path

    def _check_quit(self) -> None:
        if self._app_state.should_quit:
            raise OperationCancelled()
