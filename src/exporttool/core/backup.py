"""Backup orchestration: choose the output directory, check space, run the export."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from exporttool.core.errors import BackupError, OperationCancelled, PreconditionError, UserDeclined
from exporttool.core.logging import get_logger
from exporttool.core.prompts import NUM_INPUT_RETRIES
from exporttool.core.session import Backup, Session
from exporttool.core.signals import AppState
from exporttool.core.task import TaskRunner
from exporttool.tasks.backup import BackupTask
from exporttool.utils.disk import check_disk_usage, format_bytes

if TYPE_CHECKING:
    from exporttool.cli.ui import TerminalUI


class OperationPrompts(Protocol):
    """Subset of the prompt layer the operation orchestrators need."""

    def confirm(self, question: str, default: bool | None = None) -> bool: ...

    def read_path(self, label: str, must_exist: bool = False, base: Path | None = None) -> Path: ...


class BackupOperation:
    """One-shot backup driver, run after login.

    Output directory precedence: explicit path (flag or environment), then the
    confirmed default ``<output_dir>/<account email>``, then a path entered by
    the user. Relative paths are resolved against ``output_dir``.
    """

    def __init__(
        self,
        session: Session,
        runner: TaskRunner,
        prompts: OperationPrompts,
        app_state: AppState,
        ui: TerminalUI,
        output_dir: Path,
    ) -> None:
        """Initialize BackupOperation.

        Args:
            session: Logged-in session creating the backup handle
            runner: Runner executing the backup off the main thread
            prompts: Source of interactive input
            app_state: Checked for a quit request before every input
            ui: Terminal output
            output_dir: Platform output directory
        """
        self._session = session
        self._runner = runner
        self._prompts = prompts
        self._app_state = app_state
        self._ui = ui
        self._output_dir = output_dir
        self._logger = get_logger("backup")

    def run(self, explicit_dir: Path | None = None) -> Path:
        """Run the backup.

        Args:
            explicit_dir: Directory given by flag or environment variable

        Returns:
            Directory the backup was written to

        Raises:
            OperationCancelled: If the user quit
            UserDeclined: If the user chose not to continue with too little disk space
            PreconditionError: If an explicit directory cannot be created
            BackupError: If the backup itself failed
        """
        self._check_quit()
        path = self.resolve_output_dir(explicit_dir)
        self._logger.info("Export directory selected", path=str(path), explicit=explicit_dir is not None)

        backup = self._session.new_backup(path)
        self.check_disk_space(backup, path)
        self._check_quit()

        self._ui.console.print("Starting Export")
        try:
            export_path = self._runner.run(BackupTask(backup))
        except BackupError as e:
            # Partial output stays on disk.
            self._logger.error("Export failed", path=str(path), error=str(e))
            raise BackupError(f"Failed to export: {e}") from e

        self._logger.info("Export finished", path=str(export_path))
        self._ui.show_success("Export Finished")
        self._ui.console.print(f"Backup written to {export_path}\n", markup=False)
        return export_path

    def resolve_output_dir(self, explicit_dir: Path | None) -> Path:
        """Pick and create the output directory.

        Raises:
            PreconditionError: If an explicit directory cannot be created, or no
                usable directory was entered within the allowed retries
        """
        if explicit_dir is not None:
            path = self._resolve(explicit_dir)
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise PreconditionError(f"Failed to create export directory {path}: {e}") from e
            return path

        default_path = self._output_dir / self._session.get_email()
        self._check_quit()
        if self._prompts.confirm(f"Export to the default path {default_path}?"):
            try:
                default_path.mkdir(parents=True, exist_ok=True)
                return default_path
            except OSError as e:
                self._ui.show_error(f"Failed to create export directory {default_path}: {e}")

        for _ in range(NUM_INPUT_RETRIES):
            self._check_quit()
            path = self._prompts.read_path("Export Path", base=self._output_dir)
            try:
                path.mkdir(parents=True, exist_ok=True)
                return path
            except OSError as e:
                self._ui.show_error(f"Failed to create export directory {path}: {e}")

        raise PreconditionError("Failed to create an export directory")

    def check_disk_space(self, backup: Backup, path: Path) -> None:
        """Ask for confirmation when the expected backup size exceeds free space.

        Raises:
            UserDeclined: If the user chose not to continue
            PreconditionError: If free space at ``path`` cannot be determined
        """
        try:
            check = check_disk_usage(path, backup.get_expected_disk_usage())
        except OSError as e:
            raise PreconditionError(f"Failed to check free disk space at {path}: {e}") from e

        self._logger.info(
            "Disk space check",
            expected=format_bytes(check.expected_bytes),
            available=format_bytes(check.available_bytes),
        )
        if check.is_sufficient:
            return

        self._ui.show_disk_space_warning(path, check.expected_bytes, check.available_bytes)
        self._check_quit()
        if not self._prompts.confirm("Do you wish to proceed?"):
            self._logger.info("User declined export with insufficient disk space")
            raise UserDeclined("Export cancelled: not enough free disk space")

    def _resolve(self, path: Path) -> Path:
        path = path.expanduser()
        return path if path.is_absolute() else self._output_dir / path

    def _check_quit(self) -> None:
        if self._app_state.should_quit:
            raise OperationCancelled()
