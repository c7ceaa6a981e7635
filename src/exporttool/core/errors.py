"""Exception hierarchy for export-tool.

Every error the core raises derives from ExportToolError. The CLI maps each
class to an exit code; only exceptions outside this hierarchy are treated as
unexpected and reported.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from exporttool.core.session import LoginState


class ExportToolError(Exception):
    """Base exception for all export-tool errors."""

    def __init__(self, message: str | None = None) -> None:
        """Initialize ExportToolError with optional message.

        Args:
            message: Optional error description
        """
        if message is None:
            super().__init__()
        else:
            super().__init__(message)


class OperationCancelled(ExportToolError):
    """The user asked to quit (Ctrl+C, SIGTERM or closed input).

    Not a failure: the CLI exits with code 0 and logs nothing at error level.
    """

    def __init__(self, message: str = "Operation cancelled by user") -> None:
        super().__init__(message)


class UserDeclined(ExportToolError):
    """The user chose not to proceed when asked to confirm."""


class SessionError(ExportToolError):
    """Protocol-level failure of a login step (bad credentials, bad code, network).

    Recoverable: the login orchestrator retries the step.
    """


class KillSwitchError(ExportToolError):
    """The service signalled that this client version must stop working."""


class BackupError(ExportToolError):
    """The backup body failed."""


class RestoreError(ExportToolError):
    """The restore body failed."""


class LoginProtocolError(ExportToolError):
    """The session reported a login state the orchestrator cannot handle."""


class LoginAttemptsExceeded(ExportToolError):
    """A login step failed too many consecutive times."""

    def __init__(self, state: LoginState, attempts: int) -> None:
        self.state = state
        self.attempts = attempts
        super().__init__(f"Failed to login: max attempts reached ({attempts}) while in state {state.value}")


class PreconditionError(ExportToolError):
    """A precondition for starting the operation does not hold."""


class PromptError(ExportToolError):
    """The user did not provide a valid value within the allowed retries."""


class ConfigError(ExportToolError):
    """Raised when configuration is invalid."""
