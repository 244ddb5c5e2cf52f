"""Tests for serving under the shutdown coordinator."""

import asyncio
import pytest

from src.modules.server.command.serve import ServeCommand
from src.modules.shutdown import ShutdownConfigError, ShutdownSettings
from src.modules.shutdown.events import LocalEventSource
from src.modules.shutdown.registrar import ShutdownRegistrar


async def wait_for_registration():
    for _ in range(200):
        controller = ShutdownRegistrar.get_instance().controller
        if controller is not None:
            return controller
        await asyncio.sleep(0.01)
    raise AssertionError("server never registered its shutdown events")

@pytest.mark.asyncio
async def test_serve_until_event(mock_logger, exit_process):
    source = LocalEventSource()
    command = ServeCommand(logger=mock_logger, exit_process=exit_process, event_source=source)
    settings = ShutdownSettings(events=["SIGTERM"], drain_grace_ms=500)

    task = asyncio.create_task(command.serve("127.0.0.1", 0, settings))
    controller = await wait_for_registration()
    source.emit("SIGTERM")

    assert await asyncio.wait_for(task, timeout=2.0) == 0
    exit_process.assert_called_once_with(0)
    assert controller.events == ("SIGTERM",)
    mock_logger.log_info.assert_any_call("All connections were closed gracefully")
    mock_logger.log_info.assert_any_call("Callback function executed successfully")
    assert command.runner is not None
    assert command.runner.server is None

@pytest.mark.asyncio
async def test_serve_rejects_unknown_events(mock_logger, exit_process):
    command = ServeCommand(logger=mock_logger, exit_process=exit_process)
    settings = ShutdownSettings(events=["SIGNOTREAL"])

    with pytest.raises(ShutdownConfigError):
        await command.serve("127.0.0.1", 0, settings)

    exit_process.assert_not_called()
    assert ShutdownRegistrar.get_instance().controller is None
