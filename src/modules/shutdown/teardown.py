"""Runs the optional teardown callback and maps its outcome to an exit code."""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..logging import BaseLogger

TeardownCallback = Callable[[], Awaitable[Any]]


@dataclass
class TeardownOutcome:
    """Result of running the teardown callback."""
    success: bool
    error: Optional[BaseException] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1


class TeardownRunner:
    """Invokes a teardown callback once, without retries."""

    def __init__(self, logger: BaseLogger, timeout_ms: Optional[float] = None):
        """
        Initialize the teardown runner.

        Args:
            logger: Logger used to report the callback outcome
            timeout_ms: Optional bound on the callback in milliseconds; None waits forever
        """
        self.logger = logger
        self.timeout_ms = timeout_ms

    async def run(self, callback: Optional[TeardownCallback]) -> TeardownOutcome:
        if callback is None:
            return TeardownOutcome(success=True)

        try:
            result = callback()
            if not inspect.isawaitable(result):
                raise TypeError(f"teardown callback returned {type(result).__name__}, expected an awaitable")
            if self.timeout_ms is None:
                await result
            else:
                try:
                    await asyncio.wait_for(result, timeout=self.timeout_ms / 1000)
                except asyncio.TimeoutError as e:
                    self.logger.log_error(
                        f"Callback function execution failed: timed out after {self.timeout_ms:g} ms"
                    )
                    return TeardownOutcome(success=False, error=e)
        except asyncio.CancelledError as e:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            # Cancellation raised by something the callback awaited
            self.logger.log_error(f"Callback function execution failed: cancelled ({str(e) or 'no detail'})")
            return TeardownOutcome(success=False, error=e)
        except Exception as e:
            self.logger.log_error(f"Callback function execution failed: {str(e)}")
            return TeardownOutcome(success=False, error=e)

        self.logger.log_info("Callback function executed successfully")
        return TeardownOutcome(success=True)
