"""Concrete tasks run by the TaskRunner."""

from __future__ import annotations

from .backup import BackupTask
from .login import HumanVerificationTask, LoginTask, MailboxPasswordTask, TotpTask
from .restore import RestoreSummary, RestoreTask
from .version import VersionCheckTask

__all__ = [
    "BackupTask",
    "HumanVerificationTask",
    "LoginTask",
    "MailboxPasswordTask",
    "RestoreSummary",
    "RestoreTask",
    "TotpTask",
    "VersionCheckTask",
]
