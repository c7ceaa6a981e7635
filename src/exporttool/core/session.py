"""Session façade contract consumed by the core.

The concrete session (network client, key handling, on-disk format) lives
outside this package. It is created by a factory named in the configuration
(``session.backend = "package.module:callable"``) and reached only through
the abstract classes below, so the orchestrators can be driven by fakes.
"""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Protocol

from exporttool.core.errors import ConfigError

ProgressCallback = Callable[[float], None]


class LoginState(StrEnum):
    """Stages of the multi-step authentication protocol."""

    LOGGED_OUT = "logged_out"
    AWAITING_TOTP = "awaiting_totp"
    AWAITING_HV = "awaiting_hv"
    AWAITING_MAILBOX_PASSWORD = "awaiting_mailbox_password"
    LOGGED_IN = "logged_in"


class NetworkCallbacks(Protocol):
    """Network status notifications, invoked by the session on its own thread."""

    def on_network_lost(self) -> None:
        """Connectivity to the service was lost."""
        ...

    def on_network_restored(self) -> None:
        """Connectivity to the service came back."""
        ...


class Backup(ABC):
    """Handle for one backup run, created by Session.new_backup()."""

    @abstractmethod
    def start(self, progress_callback: ProgressCallback) -> None:
        """Run the backup to completion, blocking the calling thread.

        Args:
            progress_callback: Called with a fraction in [0.0, 1.0] from the
                calling thread as work proceeds

        Raises:
            BackupError: If the backup fails
        """

    @abstractmethod
    def cancel(self) -> None:
        """Ask a running start() to stop. Safe to call from another thread."""

    @abstractmethod
    def get_export_path(self) -> Path:
        """Directory the backup writes into."""

    @abstractmethod
    def get_expected_disk_usage(self) -> int:
        """Estimated number of bytes the backup will write."""


class Restore(ABC):
    """Handle for one restore run, created by Session.new_restore()."""

    @abstractmethod
    def start(self, progress_callback: ProgressCallback) -> None:
        """Run the restore to completion, blocking the calling thread.

        Raises:
            RestoreError: If the restore fails
        """

    @abstractmethod
    def cancel(self) -> None:
        """Ask a running start() to stop. Safe to call from another thread."""

    @abstractmethod
    def get_export_path(self) -> Path:
        """Directory the restore reads from."""

    @abstractmethod
    def get_importable_count(self) -> int: ...

    @abstractmethod
    def get_imported_count(self) -> int: ...

    @abstractmethod
    def get_failed_count(self) -> int: ...

    @abstractmethod
    def get_skipped_count(self) -> int: ...


class Session(ABC):
    """Login protocol and operation factory for one account.

    Every login method returns the next LoginState. A protocol-level failure
    raises SessionError; KillSwitchError means the client must stop.
    """

    @abstractmethod
    def login(self, email: str, password: str) -> LoginState:
        """Submit username and password."""

    @abstractmethod
    def login_totp(self, code: str) -> LoginState:
        """Submit a TOTP second-factor code."""

    @abstractmethod
    def login_mailbox_password(self, password: str) -> LoginState:
        """Submit the mailbox password (two-password mode)."""

    @abstractmethod
    def mark_hv_solved(self) -> LoginState:
        """Tell the service the human verification challenge was completed."""

    @abstractmethod
    def get_hv_solve_url(self) -> str:
        """URL of the human verification challenge to open in a browser."""

    @abstractmethod
    def get_email(self) -> str:
        """Email address of the logged-in account."""

    @abstractmethod
    def new_backup(self, path: Path) -> Backup:
        """Prepare a backup into ``path``."""

    @abstractmethod
    def new_restore(self, path: Path) -> Restore:
        """Prepare a restore from ``path``."""

    @abstractmethod
    def cancel(self) -> None:
        """Abort an in-flight login request. Safe to call from another thread."""

    def get_latest_version(self) -> str | None:
        """Latest released client version, or None if unknown."""
        return None

    def close(self) -> None:
        """Release resources held by the session."""


@dataclass(frozen=True)
class SessionOptions:
    """Arguments handed to the session factory."""

    api_url: str
    telemetry_disabled: bool
    callbacks: NetworkCallbacks


SessionFactory = Callable[[SessionOptions], Session]


def load_session_factory(spec: str | None) -> SessionFactory:
    """Import a session factory from a ``package.module:callable`` string.

    Args:
        spec: Dotted path from the ``session.backend`` configuration key

    Returns:
        The factory callable

    Raises:
        ConfigError: If no backend is configured or it cannot be imported
    """
    if not spec:
        raise ConfigError("No session backend configured (set 'session.backend' in the configuration file)")

    module_path, _, attr = spec.partition(":")
    if not module_path or not attr:
        raise ConfigError(f"Invalid session backend '{spec}', expected 'package.module:callable'")

    try:
        module = importlib.import_module(module_path)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigError(f"Cannot import session backend {spec}: {e}") from e

    if not callable(factory):
        raise ConfigError(f"Session backend {spec} is not callable")
    return factory
