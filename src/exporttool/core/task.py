"""Cancellable blocking tasks and the runner that drives them.

A Task wraps one blocking call (a login step, the version check, a backup or
a restore). The TaskRunner executes Task.run() on a worker thread while the
main thread polls: it renders a spinner or a percentage bar, watches the
cancellation signal, and hands the task's outcome back to the caller.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import ClassVar, Generic, Protocol, TypeVar

import structlog

from exporttool.core.errors import OperationCancelled
from exporttool.core.signals import AppState

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 0.1

logger = structlog.get_logger(__name__)


class Task(ABC, Generic[T]):
    """One unit of cancellable, progress-reporting blocking work.

    Subclasses implement run() and usually extend cancel() to forward the
    request to whatever run() is blocked on. Progress is written from the
    worker thread and read by the runner; a float store is atomic, so no lock
    is needed.
    """

    description: ClassVar[str] = ""
    reports_progress: ClassVar[bool] = False

    def __init__(self) -> None:
        self._progress = 0.0
        self._cancel_requested = False

    @abstractmethod
    def run(self) -> T:
        """Perform the work on the worker thread.

        Returns:
            The task's result

        Raises:
            OperationCancelled: If the work stopped because cancel() was called
            ExportToolError: On a recoverable failure, re-raised to the caller
        """

    def cancel(self) -> None:
        """Request that run() stops early.

        Called from the polling thread while run() executes. Advisory only:
        the runner still waits for run() to return.
        """
        self._cancel_requested = True

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def progress(self) -> float:
        return self._progress

    def update_progress(self, progress: float) -> None:
        """Record progress as a fraction of the total work, clamped to [0.0, 1.0].

        Safe to call from the worker thread; nothing is rendered here.
        """
        self._progress = min(max(progress, 0.0), 1.0)


class TaskView(Protocol):
    """Live rendering of one running task, updated from the main thread."""

    def update(self, progress: float | None, status: str = "") -> None:
        """Redraw with the current progress (None for a spinner) and status text."""
        ...


class TaskDisplay(Protocol):
    """Factory for TaskView instances (implemented by the terminal UI)."""

    def task_view(self, description: str, determinate: bool) -> AbstractContextManager[TaskView]:
        """Show a view for the duration of the ``with`` block."""
        ...


class _Worker(threading.Thread, Generic[T]):
    """Thread running a single Task.run() and capturing its outcome."""

    def __init__(self, task: Task[T]) -> None:
        super().__init__(name=f"task-{type(task).__name__}", daemon=True)
        self._task = task
        self.result: T | None = None
        self.error: Exception | None = None

    def run(self) -> None:
        try:
            self.result = self._task.run()
        except Exception as e:
            self.error = e


class TaskRunner:
    """Runs one Task at a time on a worker thread and polls it to completion.

    The runner never retries; retry policy belongs to the caller.
    """

    def __init__(
        self,
        app_state: AppState,
        display: TaskDisplay,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        """Initialize TaskRunner.

        Args:
            app_state: Source of the quit and network-lost flags
            display: Terminal UI used to render spinners and progress bars
            poll_interval: Seconds between completion/cancellation checks
        """
        self._app_state = app_state
        self._display = display
        self._poll_interval = poll_interval

    def run(self, task: Task[T]) -> T:
        """Execute a task and return its result.

        Args:
            task: Task to execute

        Returns:
            Value returned by task.run()

        Raises:
            OperationCancelled: If the task was cancelled, or failed after cancellation was requested
            Exception: Whatever task.run() raised, unchanged
        """
        log = logger.bind(task=task.description)
        log.debug("Starting task")
        started = time.monotonic()

        worker: _Worker[T] = _Worker(task)
        worker.start()

        cancel_sent = False
        with self._display.task_view(task.description, determinate=task.reports_progress) as view:
            while worker.is_alive():
                if not cancel_sent and self._app_state.should_quit:
                    log.info("Cancellation requested, waiting for task to stop")
                    cancel_sent = True
                    try:
                        task.cancel()
                    except Exception as e:
                        log.warning("Task cancel failed", error=str(e))
                view.update(task.progress if task.reports_progress else None, self._status(cancel_sent))
                worker.join(self._poll_interval)
            view.update(task.progress if task.reports_progress else None, self._status(cancel_sent))

        duration = time.monotonic() - started

        if worker.error is not None:
            if isinstance(worker.error, OperationCancelled) or cancel_sent:
                log.info("Task cancelled", duration_seconds=round(duration, 3))
                raise OperationCancelled() from worker.error
            log.debug("Task failed", error=str(worker.error), duration_seconds=round(duration, 3))
            raise worker.error

        log.debug("Task finished", duration_seconds=round(duration, 3))
        return worker.result  # type: ignore[return-value]

    def _status(self, cancelling: bool) -> str:
        if cancelling:
            return "cancelling..."
        if self._app_state.network_lost:
            return "network lost, waiting for connection..."
        return ""
