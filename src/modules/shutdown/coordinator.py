"""Shutdown sequencer driving a process from serving to terminated exactly once."""

import asyncio
from asyncio import AbstractEventLoop, Task, TimerHandle
from enum import IntEnum
import sys
from typing import Any, Callable, Optional, Tuple, cast

from ..logging import BaseLogger
from .config import ShutdownOptions
from .drain import DrainableServer
from .teardown import TeardownCallback, TeardownRunner

ExitProcess = Callable[[int], Any]


class ShutdownState(IntEnum):
    """Shutdown phases. Values only ever increase."""
    IDLE = 0
    DRAINING = 1
    CLOSING = 2
    TEARING_DOWN = 3
    TERMINATED = 4


class ShutdownController:
    """Coordinates the graceful shutdown of a single serving process.

    The first trigger starts the sequence: after ``new_connections_grace_ms`` the
    server stops accepting connections, then either the server reports that every
    connection closed or ``drain_grace_ms`` elapses, whichever comes first. The
    teardown callback then runs once and the process exits with 0, or 1 when the
    callback failed.

    All state changes happen inside loop callbacks and check the current state
    first, so repeated triggers and a losing drain/timeout callback are no-ops.
    """

    def __init__(
        self,
        options: ShutdownOptions,
        server: DrainableServer,
        exit_process: ExitProcess = sys.exit,
        loop: Optional[AbstractEventLoop] = None,
    ):
        """
        Initialize the shutdown controller.

        Args:
            options: Validated registration options
            server: Server adapted to the drain contract
            exit_process: Called once with the exit status when shutdown completes
            loop: Event loop to schedule timers on; defaults to the running loop
        """
        self.server = server
        self.logger: BaseLogger = options.logger
        self.events: Tuple[str, ...] = options.events
        self.drain_grace_ms = options.drain_grace_ms
        self.new_connections_grace_ms = options.new_connections_grace_ms
        self.teardown: Optional[TeardownCallback] = options.teardown
        self.teardown_timeout_ms = options.teardown_timeout_ms
        self.state = ShutdownState.IDLE
        self.exit_code: Optional[int] = None
        self.triggered_by: Optional[str] = None
        self._exit_process = exit_process
        self._loop = loop
        self._closing_handle: Optional[TimerHandle] = None
        self._force_close_handle: Optional[TimerHandle] = None
        self._teardown_task: Optional[Task] = None
        self._terminated = asyncio.Event()

    @property
    def loop(self) -> AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def is_shutting_down(self) -> bool:
        """Check if shutdown has been triggered."""
        return self.state is not ShutdownState.IDLE

    @property
    def grace_window_ms(self) -> float:
        return self.new_connections_grace_ms + self.drain_grace_ms

    def _advance(self, state: ShutdownState) -> None:
        if state <= self.state:
            raise RuntimeError(f"Illegal shutdown transition {self.state.name} -> {state.name}")
        previous, self.state = self.state, state
        log_transition = getattr(self.logger, 'log_transition', None)
        if callable(log_transition):
            log_transition(previous.name, state.name)

    def trigger(self, event_name: Optional[str] = None) -> None:
        """Start the shutdown sequence. Every call after the first is ignored."""
        if self.state is not ShutdownState.IDLE:
            return

        self.triggered_by = event_name
        self._advance(ShutdownState.DRAINING)
        self.logger.log_info(
            f"Shut down process initiated with graceful timeout of {self.grace_window_ms:g} ms"
        )
        self._closing_handle = self.loop.call_later(
            self.new_connections_grace_ms / 1000, self._begin_closing
        )

    def trigger_threadsafe(self, event_name: Optional[str] = None) -> None:
        """Trigger from a thread other than the one running the event loop."""
        if self._loop is None:
            raise RuntimeError("No event loop bound to the shutdown controller")
        self._loop.call_soon_threadsafe(self.trigger, event_name)

    def _begin_closing(self) -> None:
        if self.state is not ShutdownState.DRAINING:
            return

        self._closing_handle = None
        self._advance(ShutdownState.CLOSING)
        self.logger.log_info("Server close event initiated. Service won't accept new connections now.")

        # Armed before the drain starts so a synchronous completion can cancel it
        self._force_close_handle = self.loop.call_later(
            self.drain_grace_ms / 1000, self._on_drain_timeout
        )
        try:
            self.server.begin_graceful_close(self._on_all_closed)
        except Exception as e:
            self.logger.log_error(f"Error starting graceful close: {str(e)}")

    def _on_all_closed(self) -> None:
        if self.state is not ShutdownState.CLOSING:
            self.logger.log_trace("Ignoring drain completion reported after shutdown moved on")
            return

        if self._force_close_handle is not None:
            self._force_close_handle.cancel()
            self._force_close_handle = None
        self.logger.log_info("All connections were closed gracefully")
        self._enter_teardown()

    def _on_drain_timeout(self) -> None:
        if self.state is not ShutdownState.CLOSING:
            return

        self._force_close_handle = None
        self.logger.log_info(
            "Not all connections were closed within the grace time. "
            "Closing all remaining connections forcefully"
        )
        try:
            self.server.force_close()
        except Exception as e:
            self.logger.log_error(f"Error force closing connections: {str(e)}")
        self._enter_teardown()

    def _enter_teardown(self) -> None:
        self._advance(ShutdownState.TEARING_DOWN)
        if self.teardown is None:
            self._exit(0)
            return
        self._teardown_task = self.loop.create_task(self._tear_down())

    async def _tear_down(self) -> None:
        runner = TeardownRunner(self.logger, timeout_ms=self.teardown_timeout_ms)
        exit_code = 1
        try:
            outcome = await runner.run(self.teardown)
            exit_code = outcome.exit_code
        finally:
            self._exit(exit_code)

    def _exit(self, code: int) -> None:
        if self.state is ShutdownState.TERMINATED:
            return

        self.logger.log_info("Shut down process completed")
        self.exit_code = code
        self._advance(ShutdownState.TERMINATED)
        self._terminated.set()
        self._exit_process(code)

    async def wait_terminated(self) -> int:
        """Wait until the sequence has finished and return the exit status."""
        await self._terminated.wait()
        return cast(int, self.exit_code)
