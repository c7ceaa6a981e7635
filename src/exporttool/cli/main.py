"""Main CLI entry point for export-tool."""

from __future__ import annotations

from enum import IntEnum, StrEnum
from pathlib import Path
from typing import Annotated

import structlog
import typer
from rich.console import Console

from exporttool import __version__
from exporttool.cli.ui import TerminalUI
from exporttool.core.backup import BackupOperation
from exporttool.core.config import APP_NAME, Configuration, load_config
from exporttool.core.errors import ExportToolError, KillSwitchError, OperationCancelled, PromptError, UserDeclined
from exporttool.core.logging import configure_logging, create_log_file_path, log_prelude
from exporttool.core.login import Credentials, LoginOrchestrator
from exporttool.core.prompts import NUM_INPUT_RETRIES, TerminalInput
from exporttool.core.restore import RestoreOperation
from exporttool.core.session import Session, SessionOptions, load_session_factory
from exporttool.core.signals import QUIT_SIGNAL, AppState, InterruptHandler, install_signal_handlers
from exporttool.core.task import TaskRunner
from exporttool.tasks.version import VersionCheckTask

FORCED_EXIT_CODE = 130  # SIGINT

console = Console()
logger = structlog.get_logger(__name__)

app = typer.Typer(
    name=APP_NAME,
    help="Export the mail of an account to a local directory, or import it back",
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


class ExitCode(IntEnum):
    SUCCESS = 0
    FAILURE = 1
    KILL_SWITCH = 3


class Operation(StrEnum):
    BACKUP = "backup"
    RESTORE = "restore"


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"{APP_NAME} version {__version__}")
        raise typer.Exit(0)


def _ask_operation(prompts: TerminalInput, ui: TerminalUI) -> Operation:
    """Ask which operation to run until a valid answer is given.

    Raises:
        OperationCancelled: If the user quit or input was closed
        PromptError: If no valid answer was given within the allowed retries
    """
    for _ in range(NUM_INPUT_RETRIES):
        answer = prompts.read_text("Operation (backup/restore)").lower()
        try:
            return Operation(answer)
        except ValueError:
            ui.show_error(f"Unknown operation '{answer}', expected 'backup' or 'restore'")
    raise PromptError("Failed read value for 'Operation'")


def _check_for_update(session: Session, runner: TaskRunner, ui: TerminalUI) -> None:
    """Warn when a newer release exists. Failures other than a kill switch are logged and ignored."""
    try:
        latest = runner.run(VersionCheckTask(session, __version__))
    except (OperationCancelled, KillSwitchError):
        raise
    except Exception as e:
        logger.warning("Version check failed", error=str(e))
        return

    if latest is not None:
        logger.info("Newer version available", current=__version__, latest=latest)
        ui.show_warning(f"A new version is available: {latest} (installed: {__version__})")


def _run(
    cfg: Configuration,
    ui: TerminalUI,
    prompts: TerminalInput,
    app_state: AppState,
    operation: Operation | None,
    directory: Path | None,
    credentials: Credentials,
    telemetry_disabled: bool,
) -> None:
    factory = load_session_factory(cfg.session_backend)
    session = factory(
        SessionOptions(
            api_url=cfg.api_url,
            telemetry_disabled=telemetry_disabled or not cfg.telemetry_enabled,
            callbacks=app_state,
        )
    )
    try:
        runner = TaskRunner(app_state, ui, poll_interval=cfg.poll_interval)

        if cfg.version_check:
            _check_for_update(session, runner, ui)

        LoginOrchestrator(
            session,
            runner,
            prompts,
            app_state,
            ui,
            credentials=credentials,
            max_attempts=cfg.max_login_attempts,
        ).run()
        ui.show_success("Logged in")

        if operation is None:
            operation = _ask_operation(prompts, ui)
        logger.info("Operation selected", operation=operation.value)

        if operation is Operation.BACKUP:
            BackupOperation(session, runner, prompts, app_state, ui, cfg.output_dir).run(directory)
        else:
            RestoreOperation(session, runner, prompts, app_state, ui).run(directory)
    finally:
        session.close()


@app.command()
def run(
    operation: Annotated[
        Operation | None,
        typer.Option("--operation", "-o", envvar="ET_OPERATION", help="Operation to perform"),
    ] = None,
    directory: Annotated[
        Path | None,
        typer.Option("--dir", "-d", envvar="ET_DIR", help="Backup output directory or restore source directory"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-p", envvar="ET_USER_PASSWORD", help="Account password"),
    ] = None,
    mbox_password: Annotated[
        str | None,
        typer.Option("--mbox-password", "-m", envvar="ET_USER_MAILBOX_PASSWORD", help="Mailbox password"),
    ] = None,
    totp: Annotated[
        str | None,
        typer.Option("--totp", "-t", envvar="ET_TOTP_CODE", help="TOTP 2FA code"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-u", envvar="ET_USER_EMAIL", help="Account email"),
    ] = None,
    telemetry_disable: Annotated[
        bool,
        typer.Option("--telemetry-disable", envvar="ET_TELEMETRY_OFF", help="Disable telemetry"),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", envvar="ET_CONFIG", help="Path to configuration file"),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version", "-v", callback=_version_callback, is_eager=True, help="Show version and exit"
        ),
    ] = False,
) -> None:
    """Log in, then back up or restore the account's mail.

    Every option can also be set with the environment variable shown in its help.

    Example:
        export-tool --operation backup --dir ~/mail-backup
        ET_USER_EMAIL=me@example.com export-tool -o restore -d ~/mail-backup
    """
    try:
        cfg = load_config(config)
    except ExportToolError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(ExitCode.FAILURE) from e

    log_path = create_log_file_path(cfg.log_dir)
    configure_logging(
        log_file_level=cfg.log_file_level,
        log_cli_level=cfg.log_cli_level,
        log_file_path=log_path,
    )
    log_prelude(APP_NAME, __version__)

    ui = TerminalUI(console)
    ui.show_banner(__version__)

    prompts = TerminalInput(QUIT_SIGNAL, console)
    interrupt_handler: InterruptHandler = install_signal_handlers(QUIT_SIGNAL, prompts)
    app_state = AppState(QUIT_SIGNAL)
    credentials = Credentials(username=user, password=password, mailbox_password=mbox_password, totp=totp)

    exit_code: int = ExitCode.SUCCESS
    try:
        _run(cfg, ui, prompts, app_state, operation, directory, credentials, telemetry_disable)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        exit_code = FORCED_EXIT_CODE
    except OperationCancelled:
        logger.info("Operation cancelled by user")
    except UserDeclined as e:
        logger.info("User declined", reason=str(e))
        ui.show_info(str(e))
    except KillSwitchError as e:
        logger.error("Kill switch engaged", error=str(e))
        ui.show_error(str(e))
        exit_code = ExitCode.KILL_SWITCH
    except ExportToolError as e:
        logger.error("Operation failed", error=str(e), error_type=type(e).__name__)
        ui.show_error(str(e))
        exit_code = ExitCode.FAILURE
    except Exception as e:
        logger.error("Unexpected error", exc_info=True)
        ui.show_error(f"Unexpected error: {e}")
        exit_code = ExitCode.FAILURE
    finally:
        interrupt_handler.cleanup()

    logger.info("Exiting", exit_code=int(exit_code), log_file=str(log_path))
    raise typer.Exit(exit_code)


def main() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
