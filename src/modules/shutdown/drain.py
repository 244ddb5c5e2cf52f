"""Connection drain contract and adapters for concrete servers."""

import asyncio
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from aiohttp import web

from .errors import IncompatibleServerError


@runtime_checkable
class DrainableServer(Protocol):
    """Capability the shutdown sequencer needs from a server.

    ``begin_graceful_close`` stops accepting new connections and calls
    ``on_all_closed`` exactly once after every accepted connection is gone.
    ``force_close`` drops whatever connections are still open.
    """

    def begin_graceful_close(self, on_all_closed: Callable[[], None]) -> None:
        ...

    def force_close(self) -> None:
        ...


class AiohttpDrainAdapter:
    """Drains an ``aiohttp.web.AppRunner`` that has already been set up."""

    def __init__(self, runner: web.BaseRunner, poll_interval: float = 0.05):
        if runner.server is None:
            raise IncompatibleServerError("server must be a compatible server instance (runner is not set up)")
        self.runner = runner
        self.poll_interval = poll_interval
        self._drain_task: Optional[asyncio.Task] = None
        self._forced = False

    @property
    def open_connections(self) -> int:
        server = self.runner.server
        return len(server.connections) if server is not None else 0

    def begin_graceful_close(self, on_all_closed: Callable[[], None]) -> None:
        if self._drain_task is not None:
            return
        loop = asyncio.get_running_loop()
        self._drain_task = loop.create_task(self._drain(on_all_closed))

    async def _drain(self, on_all_closed: Callable[[], None]) -> None:
        for site in list(self.runner.sites):
            await site.stop()

        server = self.runner.server
        if server is not None:
            # Keep-alive connections close once their current request is answered
            for handler in server.connections:
                handler.close()

        while self.open_connections and not self._forced:
            await asyncio.sleep(self.poll_interval)

        if not self._forced:
            on_all_closed()

    def force_close(self) -> None:
        self._forced = True
        server = self.runner.server
        if server is not None:
            for handler in server.connections:
                handler.force_close()
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()


def adapt_server(server: Any, poll_interval: float = 0.05) -> DrainableServer:
    """Return a DrainableServer for the given server reference.

    Objects already implementing the drain contract are returned as-is and
    aiohttp runners are wrapped. Anything else is rejected.
    """
    if isinstance(server, DrainableServer):
        return server
    if isinstance(server, web.BaseRunner):
        return AiohttpDrainAdapter(server, poll_interval=poll_interval)
    raise IncompatibleServerError()
