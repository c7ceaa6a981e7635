"""Backup body as a cancellable task."""

from __future__ import annotations

from pathlib import Path

from exporttool.core.session import Backup
from exporttool.core.task import Task


class BackupTask(Task[Path]):
    """Run a prepared backup handle and report its progress."""

    description = "Export Mail"
    reports_progress = True

    def __init__(self, backup: Backup) -> None:
        super().__init__()
        self._backup = backup

    def run(self) -> Path:
        self._backup.start(self.update_progress)
        return self._backup.get_export_path()

    def cancel(self) -> None:
        super().cancel()
        self._backup.cancel()
