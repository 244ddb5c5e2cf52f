import asyncio
import sys
from typing import Optional
from aiohttp import web
from ...logging import BaseLogger
from ...shutdown import ShutdownConfigError, ShutdownSettings, register_shutdown_event
from ...shutdown.coordinator import ExitProcess
from ...shutdown.events import EventSource
from ..app import create_app


class ServeCommand:
    """Command class for serving the application under the shutdown coordinator."""
    
    def __init__(
        self,
        logger: BaseLogger,
        exit_process: ExitProcess = sys.exit,
        event_source: Optional[EventSource] = None
    ):
        """
        Initialize the serve command.
        
        Args:
            logger: Logger instance
            exit_process: Called with the exit status once shutdown completes
            event_source: Source of termination events, OS signals by default
        """
        self.logger = logger
        self.exit_process = exit_process
        self.event_source = event_source
        self.runner: Optional[web.AppRunner] = None

    async def serve(self, host: str, port: int, settings: ShutdownSettings) -> int:
        """Start the server, register shutdown events and wait until shutdown completes."""
        self.runner = web.AppRunner(create_app())
        await self.runner.setup()
        site = web.TCPSite(self.runner, host, port)
        await site.start()
        self.logger.log_info(f"Serving on http://{host}:{port}")

        runner = self.runner

        async def teardown():
            await runner.cleanup()

        try:
            controller = register_shutdown_event(
                settings.to_options(self.runner, self.logger, teardown),
                event_source=self.event_source,
                exit_process=self.exit_process
            )
        except ShutdownConfigError:
            await self.runner.cleanup()
            raise

        return await controller.wait_terminated()

    def run(self, host: str, port: int, settings: ShutdownSettings):
        """
        Run the serve command until a termination event completes the shutdown.
        
        Args:
            host: Interface to bind
            port: Port to bind
            settings: Shutdown events and grace periods
        """
        try:
            asyncio.run(self.serve(host, port, settings))
        except ShutdownConfigError as err:
            self.logger.log_error(f"Shutdown configuration error ({err.field}): {str(err)}")
            sys.exit(2)
        except OSError as err:
            self.logger.log_error(f"Could not start server: {str(err)}")
            sys.exit(2)
