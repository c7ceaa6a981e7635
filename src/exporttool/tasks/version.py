"""Update check against the latest released version."""

from __future__ import annotations

from packaging.version import InvalidVersion, Version

from exporttool.core.session import Session
from exporttool.core.task import Task


class VersionCheckTask(Task[str | None]):
    """Ask the session for the latest release and compare it with ours.

    Returns the newer version string, or None when this build is current or
    the latest version is unknown.
    """

    description = "Checking for updates"

    def __init__(self, session: Session, current_version: str) -> None:
        super().__init__()
        self._session = session
        self._current_version = current_version

    def run(self) -> str | None:
        latest = self._session.get_latest_version()
        if latest is None:
            return None
        try:
            if Version(latest) > Version(self._current_version):
                return latest
        except InvalidVersion:
            return None
        return None
