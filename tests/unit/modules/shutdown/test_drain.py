"""Tests for the drain contract and the aiohttp adapter."""

import asyncio
import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web

from src.modules.server.app import create_app
from src.modules.shutdown.drain import AiohttpDrainAdapter, DrainableServer, adapt_server
from src.modules.shutdown.errors import IncompatibleServerError
from tests.utils.fakes import FakeServer


@pytest_asyncio.fixture
async def runner():
    """Serve the demo application on an ephemeral loopback port."""
    app_runner = web.AppRunner(create_app())
    await app_runner.setup()
    site = web.TCPSite(app_runner, "127.0.0.1", 0)
    await site.start()
    yield app_runner
    await app_runner.cleanup()


def base_url(app_runner: web.AppRunner) -> str:
    host, port = app_runner.addresses[0][:2]
    return f"http://{host}:{port}"


def test_drainable_server_returned_as_is():
    server = FakeServer()

    assert isinstance(server, DrainableServer)
    assert adapt_server(server) is server

@pytest.mark.parametrize("server", [object(), "server", 42])
def test_incompatible_server_rejected(server):
    with pytest.raises(IncompatibleServerError):
        adapt_server(server)

@pytest.mark.asyncio
async def test_runner_is_wrapped(runner):
    adapter = adapt_server(runner)

    assert isinstance(adapter, AiohttpDrainAdapter)
    assert isinstance(adapter, DrainableServer)
    assert adapter.open_connections == 0

@pytest.mark.asyncio
async def test_idle_runner_drains_immediately(runner):
    adapter = AiohttpDrainAdapter(runner, poll_interval=0.01)
    closed = asyncio.Event()

    adapter.begin_graceful_close(closed.set)
    await asyncio.wait_for(closed.wait(), timeout=1.0)

    assert not runner.sites

@pytest.mark.asyncio
async def test_in_flight_request_completes_before_drain(runner):
    adapter = AiohttpDrainAdapter(runner, poll_interval=0.01)
    closed = asyncio.Event()

    async def fetch(session):
        return await session.get(f"{base_url(runner)}/slow?seconds=0.1")

    async with aiohttp.ClientSession() as session:
        request = asyncio.create_task(fetch(session))
        while adapter.open_connections == 0:
            await asyncio.sleep(0.01)

        adapter.begin_graceful_close(closed.set)
        await asyncio.sleep(0.02)
        assert not closed.is_set()

        response = await asyncio.wait_for(request, timeout=2.0)
        assert response.status == 200
        assert (await response.json())["status"] == "ok"
        response.release()

    await asyncio.wait_for(closed.wait(), timeout=2.0)
    assert adapter.open_connections == 0

@pytest.mark.asyncio
async def test_force_close_stops_drain(runner):
    adapter = AiohttpDrainAdapter(runner, poll_interval=0.01)
    calls = []

    adapter.begin_graceful_close(lambda: calls.append(True))
    adapter.force_close()
    await asyncio.sleep(0.05)

    assert calls == []

@pytest.mark.asyncio
async def test_begin_graceful_close_only_once(runner):
    adapter = AiohttpDrainAdapter(runner, poll_interval=0.01)
    calls = []
    closed = asyncio.Event()

    def on_all_closed():
        calls.append(True)
        closed.set()

    adapter.begin_graceful_close(on_all_closed)
    adapter.begin_graceful_close(on_all_closed)
    await asyncio.wait_for(closed.wait(), timeout=1.0)
    await asyncio.sleep(0.02)

    assert calls == [True]
