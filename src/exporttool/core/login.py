"""Login orchestration: drives the LoginState machine to LOGGED_IN.

States and the step each one performs:

    LOGGED_OUT                 username + password -> Session.login()
    AWAITING_TOTP              TOTP code           -> Session.login_totp()
    AWAITING_HV                browser challenge   -> Session.mark_hv_solved(),
                                                      then login() again if that
                                                      reports LOGGED_OUT
    AWAITING_MAILBOX_PASSWORD  mailbox password    -> Session.login_mailbox_password()
    LOGGED_IN                  terminal

Every step runs under the TaskRunner. A SessionError is recoverable: the same
state is retried until max_attempts consecutive failures, which is fatal.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from exporttool.core.errors import LoginAttemptsExceeded, LoginProtocolError, OperationCancelled, SessionError
from exporttool.core.logging import get_logger
from exporttool.core.session import LoginState, Session
from exporttool.core.signals import AppState
from exporttool.core.task import TaskRunner
from exporttool.tasks.login import HumanVerificationTask, LoginTask, MailboxPasswordTask, TotpTask

if TYPE_CHECKING:
    from exporttool.cli.ui import TerminalUI

DEFAULT_MAX_ATTEMPTS = 3


class LoginPrompts(Protocol):
    """Subset of the prompt layer the login flow needs."""

    def read_text(self, label: str) -> str: ...

    def read_secret(self, label: str) -> str: ...

    def pause(self, message: str) -> None: ...


@dataclass(frozen=True)
class Credentials:
    """Values supplied by command-line flag or environment variable."""

    username: str | None = None
    password: str | None = None
    mailbox_password: str | None = None
    totp: str | None = None


class LoginOrchestrator:
    """Sequences the login protocol with bounded retries.

    Values from Credentials are used for the first attempt at their step;
    after a failed attempt at a step the user is prompted for that step's
    secret. An explicit username is always used. Steps never overlap: each TaskRunner call returns before the next
    begins.
    """

    def __init__(
        self,
        session: Session,
        runner: TaskRunner,
        prompts: LoginPrompts,
        app_state: AppState,
        ui: TerminalUI,
        credentials: Credentials | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        """Initialize LoginOrchestrator.

        Args:
            session: Session façade performing the protocol
            runner: Runner executing each step off the main thread
            prompts: Source of interactive input
            app_state: Checked for a quit request before every input
            ui: Terminal output for step errors and the HV challenge
            credentials: Values given on the command line or in the environment
            max_attempts: Consecutive failures of one state before giving up
        """
        self._session = session
        self._runner = runner
        self._prompts = prompts
        self._app_state = app_state
        self._ui = ui
        self._credentials = credentials if credentials is not None else Credentials()
        self._max_attempts = max_attempts
        self._logger = get_logger("login")

        self._failed_states: set[LoginState] = set()
        self._last_login: tuple[str, str] | None = None
        self.visited_states: list[LoginState] = []

        self._steps: dict[LoginState, Callable[[], LoginState]] = {
            LoginState.LOGGED_OUT: self._login_step,
            LoginState.AWAITING_TOTP: self._totp_step,
            LoginState.AWAITING_HV: self._human_verification_step,
            LoginState.AWAITING_MAILBOX_PASSWORD: self._mailbox_password_step,
        }

    def run(self) -> None:
        """Drive the state machine until LOGGED_IN.

        Raises:
            OperationCancelled: If the user quit before login completed
            LoginAttemptsExceeded: If one state failed max_attempts times in a row,
                or the session returned to it max_attempts times
            LoginProtocolError: If the session reported a state with no step
        """
        state = LoginState.LOGGED_OUT
        attempts = 0
        revisits: dict[LoginState, int] = {}
        self.visited_states = [state]

        while state is not LoginState.LOGGED_IN:
            self._check_quit()

            step = self._steps.get(state)
            if step is None:
                raise LoginProtocolError(f"Unknown login state: {state!r}")

            try:
                next_state = step()
            except SessionError as e:
                attempts += 1
                self._failed_states.add(state)
                self._logger.warning("Login step failed", state=state.value, attempt=attempts, error=str(e))
                self._ui.show_error(f"{_failure_message(state)}: {e}")
                if attempts >= self._max_attempts:
                    raise LoginAttemptsExceeded(state, attempts) from e
                continue

            try:
                next_state = LoginState(next_state)
            except ValueError as e:
                raise LoginProtocolError(f"Unknown login state: {next_state!r}") from e

            if next_state is state:
                attempts += 1
                self._failed_states.add(state)
                self._logger.warning("Login step did not advance", state=state.value, attempt=attempts)
                if attempts >= self._max_attempts:
                    raise LoginAttemptsExceeded(state, attempts)
                continue

            self._logger.info("Login state changed", previous=state.value, state=next_state.value)
            attempts = 0
            if next_state in self.visited_states:
                # Returning to an earlier state is a failure of that state.
                revisits[next_state] = revisits.get(next_state, 0) + 1
                attempts = revisits[next_state]
                self._failed_states.add(next_state)
                self._logger.warning("Login state revisited", state=next_state.value, attempt=attempts)
                if attempts >= self._max_attempts:
                    raise LoginAttemptsExceeded(next_state, attempts)
            state = next_state
            self.visited_states.append(state)

        self._logger.info("Logged in", states=[s.value for s in self.visited_states])

    def _login_step(self) -> LoginState:
        # Only the password is treated as rejected; an explicit username is kept.
        username = self._credentials.username or self._prompts.read_text("Username")
        self._check_quit()
        password = self._value(LoginState.LOGGED_OUT, self._credentials.password, "Password", secret=True)
        self._check_quit()

        self._last_login = (username, password)
        return self._runner.run(LoginTask(self._session, username, password))

    def _totp_step(self) -> LoginState:
        code = self._value(LoginState.AWAITING_TOTP, self._credentials.totp, "TOTP Code", secret=True)
        self._check_quit()
        return self._runner.run(TotpTask(self._session, code))

    def _human_verification_step(self) -> LoginState:
        self._ui.show_human_verification(self._session.get_hv_solve_url())
        self._prompts.pause("Press Enter once the verification is complete")
        self._check_quit()

        state = self._runner.run(HumanVerificationTask(self._session))
        if state == LoginState.LOGGED_OUT and self._last_login is not None:
            # The session dropped the pending login; replay it with the last submitted credentials.
            self._logger.info("Retrying login after human verification")
            self._check_quit()
            username, password = self._last_login
            state = self._runner.run(LoginTask(self._session, username, password))
        return state

    def _mailbox_password_step(self) -> LoginState:
        password = self._value(
            LoginState.AWAITING_MAILBOX_PASSWORD, self._credentials.mailbox_password, "Mailbox Password", secret=True
        )
        self._check_quit()
        return self._runner.run(MailboxPasswordTask(self._session, password))

    def _value(self, state: LoginState, explicit: str | None, label: str, secret: bool) -> str:
        if explicit and state not in self._failed_states:
            return explicit
        if secret:
            return self._prompts.read_secret(label)
        return self._prompts.read_text(label)

    def _check_quit(self) -> None:
        if self._app_state.should_quit:
            raise OperationCancelled()


def _failure_message(state: LoginState) -> str:
    return {
        LoginState.LOGGED_OUT: "Failed to login",
        LoginState.AWAITING_TOTP: "Failed to submit TOTP code",
        LoginState.AWAITING_HV: "Failed to complete human verification",
        LoginState.AWAITING_MAILBOX_PASSWORD: "Failed to set mailbox password",
    }.get(state, "Login step failed")
