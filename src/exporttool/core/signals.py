"""Cancellation signal, application state and interrupt handling.

The cancellation flag is the only process-wide mutable state. Lifecycle:
created false at import, set by the interrupt handler, never reset until the
process exits. Everything else is passed explicitly to the orchestrators.
"""

from __future__ import annotations

import os
import signal
import time
from typing import Any, Protocol

import structlog

logger = structlog.get_logger(__name__)

FORCE_TERMINATE_WINDOW_SECONDS = 2.0


class CancellationSignal:
    """Set-once quit flag, safe to write from a signal handler.

    request_quit() is a single attribute store: it takes no lock, allocates
    nothing and cannot raise, so it may run while the main thread is anywhere,
    including inside a lock. Reads never block.
    """

    def __init__(self) -> None:
        self._quit = False

    def request_quit(self) -> None:
        """Ask every suspension point to stop. Idempotent."""
        self._quit = True

    @property
    def should_quit(self) -> bool:
        return self._quit


# Process-wide instance used by the CLI. Tests create their own.
QUIT_SIGNAL = CancellationSignal()


class AppState:
    """Read-only view shared by the orchestrators and the task runner.

    Combines the cancellation signal with the network reachability flag. The
    flag is written only by the session, through the NetworkCallbacks
    methods, from the session's own thread.
    """

    def __init__(self, cancellation: CancellationSignal) -> None:
        self._cancellation = cancellation
        self._network_lost = False

    @property
    def should_quit(self) -> bool:
        return self._cancellation.should_quit

    @property
    def network_lost(self) -> bool:
        return self._network_lost

    def on_network_lost(self) -> None:
        self._network_lost = True
        logger.warning("Network connection lost")

    def on_network_restored(self) -> None:
        self._network_lost = False
        logger.info("Network connection restored")


class InterruptibleInput(Protocol):
    """Input source whose pending blocking read can be abandoned."""

    def interrupt_read(self) -> None:
        """Abandon a read in progress, if any, so it resolves to cancellation."""
        ...


class InterruptHandler:
    """Handles SIGINT/SIGTERM by requesting a cooperative quit.

    First interrupt: sets the cancellation signal and unblocks a pending
    prompt read. Second SIGINT within 2 seconds: restores the original
    handlers and re-raises the signal to terminate immediately.
    """

    def __init__(self, cancellation: CancellationSignal, input_source: InterruptibleInput | None = None) -> None:
        """Initialize interrupt handler.

        Args:
            cancellation: Signal to set on interrupt
            input_source: Prompt input to unblock on interrupt
        """
        self._cancellation = cancellation
        self._input_source = input_source
        self._first_interrupt_time: float | None = None
        self._original_handlers: dict[int, Any] = {}

    def handle_interrupt(self, signal_num: int, frame: Any) -> None:
        """Handle an interrupt signal.

        Runs on the main thread between bytecodes, possibly while it is blocked
        in a read or holds a lock, so it only writes flags and uses os.write.

        Args:
            signal_num: Signal number (SIGINT or SIGTERM)
            frame: Current stack frame (unused)
        """
        current_time = time.monotonic()

        if (
            signal_num == signal.SIGINT
            and self._first_interrupt_time is not None
            and current_time - self._first_interrupt_time <= FORCE_TERMINATE_WINDOW_SECONDS
        ):
            _write_stderr("\nForce terminating immediately...\n")
            self._restore_handlers()
            signal.raise_signal(signal.SIGINT)
            return

        self._first_interrupt_time = current_time
        if not self._cancellation.should_quit:
            _write_stderr("\nReceived Ctrl+C, exiting as soon as possible\n")
        self._cancellation.request_quit()

        if self._input_source is not None:
            self._input_source.interrupt_read()

    def install_handlers(self) -> None:
        """Install signal handlers for graceful shutdown."""
        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, self.handle_interrupt)

    def _restore_handlers(self) -> None:
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)

    def cleanup(self) -> None:
        """Restore original signal handlers and forget them."""
        self._restore_handlers()
        self._original_handlers.clear()

    def is_interrupted(self) -> bool:
        return self._cancellation.should_quit


def install_signal_handlers(
    cancellation: CancellationSignal,
    input_source: InterruptibleInput | None = None,
) -> InterruptHandler:
    """Create an InterruptHandler and install it for SIGINT and SIGTERM.

    Args:
        cancellation: Signal to set on interrupt
        input_source: Prompt input to unblock on interrupt

    Returns:
        InterruptHandler instance; call cleanup() to restore the previous handlers
    """
    handler = InterruptHandler(cancellation, input_source)
    handler.install_handlers()
    return handler


def _write_stderr(message: str) -> None:
    try:
        os.write(2, message.encode())
    except OSError:
        pass
