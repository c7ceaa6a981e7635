"""Shared test fixtures for export-tool tests."""

from __future__ import annotations

import io
import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

import pytest
import structlog
from rich.console import Console

from exporttool.cli.ui import TerminalUI
from exporttool.core.errors import OperationCancelled
from exporttool.core.session import Backup, LoginState, ProgressCallback, Restore, Session
from exporttool.core.signals import AppState, CancellationSignal
from exporttool.core.task import TaskRunner

Outcome = LoginState | Exception


@pytest.fixture(scope="session", autouse=True)
def configure_test_logging() -> None:
    """Keep library logs quiet while exporttool logs stay visible in live logging."""
    logging.getLogger().setLevel(logging.WARNING)
    logging.getLogger("exporttool").setLevel(logging.DEBUG)


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Undo the global logging configuration made by the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class FakeBackup(Backup):
    """Backup handle reporting scripted progress, optionally failing."""

    def __init__(
        self,
        path: Path,
        expected_bytes: int = 0,
        progress_steps: Iterable[float] = (0.25, 0.5, 1.0),
        error: Exception | None = None,
    ) -> None:
        self.path = path
        self.expected_bytes = expected_bytes
        self.progress_steps = list(progress_steps)
        self.error = error
        self.started = False
        self.cancelled = False

    def start(self, progress_callback: ProgressCallback) -> None:
        self.started = True
        for step in self.progress_steps:
            if self.cancelled:
                raise OperationCancelled()
            progress_callback(step)
        if self.error is not None:
            raise self.error

    def cancel(self) -> None:
        self.cancelled = True

    def get_export_path(self) -> Path:
        return self.path

    def get_expected_disk_usage(self) -> int:
        return self.expected_bytes


class FakeRestore(Restore):
    """Restore handle with fixed counters."""

    def __init__(
        self,
        path: Path,
        importable: int = 10,
        imported: int = 8,
        failed: int = 1,
        skipped: int = 1,
        error: Exception | None = None,
    ) -> None:
        self.path = path
        self.importable = importable
        self.imported = imported
        self.failed = failed
        self.skipped = skipped
        self.error = error
        self.started = False
        self.cancelled = False

    def start(self, progress_callback: ProgressCallback) -> None:
        self.started = True
        progress_callback(0.5)
        if self.error is not None:
            raise self.error
        progress_callback(1.0)

    def cancel(self) -> None:
        self.cancelled = True

    def get_export_path(self) -> Path:
        return self.path

    def get_importable_count(self) -> int:
        return self.importable

    def get_imported_count(self) -> int:
        return self.imported

    def get_failed_count(self) -> int:
        return self.failed

    def get_skipped_count(self) -> int:
        return self.skipped


class FakeSession(Session):
    """Session whose login steps replay scripted outcomes.

    Each ``*_outcomes`` list is consumed in order; an Exception entry is
    raised instead of returned. Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        email: str = "user@example.com",
        login_outcomes: Iterable[Outcome] = (LoginState.LOGGED_IN,),
        totp_outcomes: Iterable[Outcome] = (),
        mailbox_outcomes: Iterable[Outcome] = (),
        hv_outcomes: Iterable[Outcome] = (),
        hv_url: str = "https://verify.example.com/challenge",
        expected_bytes: int = 0,
        latest_version: str | Exception | None = None,
    ) -> None:
        self.email = email
        self.login_outcomes = list(login_outcomes)
        self.totp_outcomes = list(totp_outcomes)
        self.mailbox_outcomes = list(mailbox_outcomes)
        self.hv_outcomes = list(hv_outcomes)
        self.hv_url = hv_url
        self.expected_bytes = expected_bytes
        self.latest_version = latest_version
        self.calls: list[tuple[str, ...]] = []
        self.backups: list[FakeBackup] = []
        self.restores: list[FakeRestore] = []
        self.cancel_count = 0
        self.closed = False

    def _next(self, outcomes: list[Outcome]) -> LoginState:
        assert outcomes, f"unexpected call: {self.calls[-1]}"
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def login(self, email: str, password: str) -> LoginState:
        self.calls.append(("login", email, password))
        return self._next(self.login_outcomes)

    def login_totp(self, code: str) -> LoginState:
        self.calls.append(("login_totp", code))
        return self._next(self.totp_outcomes)

    def login_mailbox_password(self, password: str) -> LoginState:
        self.calls.append(("login_mailbox_password", password))
        return self._next(self.mailbox_outcomes)

    def mark_hv_solved(self) -> LoginState:
        self.calls.append(("mark_hv_solved",))
        return self._next(self.hv_outcomes)

    def get_hv_solve_url(self) -> str:
        return self.hv_url

    def get_email(self) -> str:
        return self.email

    def new_backup(self, path: Path) -> FakeBackup:
        backup = FakeBackup(path, expected_bytes=self.expected_bytes)
        self.backups.append(backup)
        return backup

    def new_restore(self, path: Path) -> FakeRestore:
        restore = FakeRestore(path)
        self.restores.append(restore)
        return restore

    def cancel(self) -> None:
        self.cancel_count += 1

    def get_latest_version(self) -> str | None:
        if isinstance(self.latest_version, Exception):
            raise self.latest_version
        return self.latest_version

    def close(self) -> None:
        self.closed = True


class ScriptedPrompts:
    """Prompt layer answering from fixed scripts.

    Running out of answers behaves like closed input: OperationCancelled.
    Every label asked is recorded in ``asked``.
    """

    def __init__(
        self,
        answers: Iterable[str] = (),
        confirms: Iterable[bool] = (),
        paths: Iterable[Path] = (),
        cancellation: CancellationSignal | None = None,
    ) -> None:
        self.answers = list(answers)
        self.confirms = list(confirms)
        self.paths = list(paths)
        self.cancellation = cancellation
        self.asked: list[str] = []

    def _pop(self, label: str, queue: list):  # type: ignore[type-arg]
        if self.cancellation is not None and self.cancellation.should_quit:
            raise OperationCancelled()
        self.asked.append(label)
        if not queue:
            raise OperationCancelled()
        return queue.pop(0)

    def read_text(self, label: str) -> str:
        return self._pop(label, self.answers)

    def read_secret(self, label: str) -> str:
        return self._pop(label, self.answers)

    def confirm(self, question: str, default: bool | None = None) -> bool:
        return self._pop(question, self.confirms)

    def read_path(self, label: str, must_exist: bool = False, base: Path | None = None) -> Path:
        path = self._pop(label, self.paths)
        if base is not None and not path.is_absolute():
            return base / path
        return path

    def pause(self, message: str) -> None:
        if self.cancellation is not None and self.cancellation.should_quit:
            raise OperationCancelled()
        self.asked.append(message)


class RecordingView:
    def __init__(self) -> None:
        self.updates: list[tuple[float | None, str]] = []

    def update(self, progress: float | None, status: str = "") -> None:
        self.updates.append((progress, status))


class RecordingDisplay:
    """TaskDisplay that records every view opened and every update."""

    def __init__(self) -> None:
        self.views: list[tuple[str, bool, RecordingView]] = []

    @contextmanager
    def task_view(self, description: str, determinate: bool) -> Iterator[RecordingView]:
        view = RecordingView()
        self.views.append((description, determinate, view))
        yield view


@pytest.fixture
def cancellation() -> CancellationSignal:
    return CancellationSignal()


@pytest.fixture
def app_state(cancellation: CancellationSignal) -> AppState:
    return AppState(cancellation)


@pytest.fixture
def console() -> Console:
    """Console writing to a buffer; read it back with ``console.file.getvalue()``."""
    return Console(file=io.StringIO(), force_terminal=False, width=120)


@pytest.fixture
def ui(console: Console) -> TerminalUI:
    return TerminalUI(console)


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture
def task_runner(app_state: AppState, display: RecordingDisplay) -> TaskRunner:
    return TaskRunner(app_state, display, poll_interval=0.01)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def make_session() -> type[FakeSession]:
    """FakeSession class, for tests that script their own login outcomes."""
    return FakeSession


@pytest.fixture
def make_prompts(cancellation: CancellationSignal):
    """Build ScriptedPrompts bound to the test's cancellation signal."""

    def _make(
        answers: Iterable[str] = (),
        confirms: Iterable[bool] = (),
        paths: Iterable[Path] = (),
    ) -> ScriptedPrompts:
        return ScriptedPrompts(answers, confirms, paths, cancellation=cancellation)

    return _make
