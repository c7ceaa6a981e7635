"""Restore body as a cancellable task."""

from __future__ import annotations

from dataclasses import dataclass

from exporttool.core.session import Restore
from exporttool.core.task import Task


@dataclass(frozen=True)
class RestoreSummary:
    """Terminal counters of a completed restore."""

    importable: int
    imported: int
    failed: int
    skipped: int


class RestoreTask(Task[RestoreSummary]):
    """Run a prepared restore handle and collect its counters."""

    description = "Import Mail"
    reports_progress = True

    def __init__(self, restore: Restore) -> None:
        super().__init__()
        self._restore = restore

    def run(self) -> RestoreSummary:
        self._restore.start(self.update_progress)
        # Counters are final once start() has returned.
        return RestoreSummary(
            importable=self._restore.get_importable_count(),
            imported=self._restore.get_imported_count(),
            failed=self._restore.get_failed_count(),
            skipped=self._restore.get_skipped_count(),
        )

    def cancel(self) -> None:
        super().cancel()
        self._restore.cancel()
