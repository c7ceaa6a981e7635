"""Core types and interfaces for export-tool."""

from exporttool.core.errors import (
    BackupError,
    ExportToolError,
    KillSwitchError,
    OperationCancelled,
    RestoreError,
    SessionError,
    UserDeclined,
)
from exporttool.core.logging import LogLevel
from exporttool.core.session import Backup, LoginState, Restore, Session

__all__ = [
    "Backup",
    "BackupError",
    "ExportToolError",
    "KillSwitchError",
    "LogLevel",
    "LoginState",
    "OperationCancelled",
    "Restore",
    "RestoreError",
    "Session",
    "SessionError",
    "UserDeclined",
]
