"""Login protocol steps as cancellable tasks.

Each step is one blocking request to the session. Cancelling a step asks the
session to abort the request in flight.
"""

from __future__ import annotations

from exporttool.core.session import LoginState, Session
from exporttool.core.task import Task


class _LoginStepTask(Task[LoginState]):
    def __init__(self, session: Session) -> None:
        super().__init__()
        self._session = session

    def cancel(self) -> None:
        super().cancel()
        self._session.cancel()


class LoginTask(_LoginStepTask):
    """Submit username and password."""

    description = "Performing Login"

    def __init__(self, session: Session, email: str, password: str) -> None:
        super().__init__(session)
        self._email = email
        self._password = password

    def run(self) -> LoginState:
        return self._session.login(self._email, self._password)


class TotpTask(_LoginStepTask):
    """Submit a TOTP code."""

    description = "Submitting TOTP"

    def __init__(self, session: Session, code: str) -> None:
        super().__init__(session)
        self._code = code

    def run(self) -> LoginState:
        return self._session.login_totp(self._code)


class MailboxPasswordTask(_LoginStepTask):
    """Submit the mailbox password used in two-password mode."""

    description = "Unlocking Mailbox"

    def __init__(self, session: Session, password: str) -> None:
        super().__init__(session)
        self._password = password

    def run(self) -> LoginState:
        return self._session.login_mailbox_password(self._password)


class HumanVerificationTask(_LoginStepTask):
    """Report a solved human verification challenge."""

    description = "Checking Human Verification"

    def run(self) -> LoginState:
        return self._session.mark_hv_solved()
