"""Registration of the process-wide shutdown controller."""

import asyncio
import sys
from typing import Any, Dict, Optional

from .config import ShutdownOptions
from .coordinator import ExitProcess, ShutdownController
from .drain import adapt_server
from .errors import AlreadyRegisteredError, IncompatibleServerError, ShutdownConfigError
from .events import EventSource, SignalEventSource


class ShutdownRegistrar:
    """Creates and owns the single ShutdownController of the process."""
    
    _instance: Optional['ShutdownRegistrar'] = None
    
    def __init__(self):
        self._controller: Optional[ShutdownController] = None
    
    @classmethod
    def get_instance(cls) -> 'ShutdownRegistrar':
        """Get or create the singleton registrar instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the registered controller. Event subscriptions are left untouched."""
        cls._instance = None

    @property
    def controller(self) -> Optional[ShutdownController]:
        return self._controller
    
    def register(
        self,
        options: Optional[Dict[str, Any]] = None,
        *,
        event_source: Optional[EventSource] = None,
        exit_process: ExitProcess = sys.exit,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        **kwargs: Any,
    ) -> ShutdownController:
        """
        Validate options and subscribe a new controller to every configured event.
        
        Nothing is subscribed unless every option is valid and the server could be
        adapted to the drain contract.
        
        Args:
            options: Raw registration options (see ShutdownOptions); keyword
                arguments are merged on top
            event_source: Where event names are resolved; OS signals by default
            exit_process: Called with the final exit status
            loop: Loop for timers and signal handlers; defaults to the running loop
            
        Returns:
            The registered controller
            
        Raises:
            ShutdownConfigError: If any option is invalid or a controller is
                already registered
        """
        raw: Dict[str, Any] = dict(options or {})
        raw.update(kwargs)
        validated = ShutdownOptions.parse(raw)

        if self._controller is not None:
            raise AlreadyRegisteredError()

        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        source = event_source if event_source is not None else SignalEventSource(loop)

        unsupported = [name for name in validated.events if not source.supports(name)]
        if unsupported:
            raise ShutdownConfigError(
                'events', f"unsupported termination events: {', '.join(unsupported)}"
            )
        if isinstance(source, SignalEventSource) and not source.bound:
            raise ShutdownConfigError(
                'loop', "no running event loop: register from within the loop or pass loop="
            )

        try:
            server = adapt_server(validated.server)
        except IncompatibleServerError:
            raise
        except Exception as err:
            raise IncompatibleServerError() from err

        controller = ShutdownController(validated, server, exit_process=exit_process, loop=loop)
        validated.logger.log_trace(f"Registering shutdown events: {', '.join(validated.events)}")
        for name in validated.events:
            source.subscribe(name, controller.trigger)

        self._controller = controller
        return controller


def register_shutdown_event(options: Optional[Dict[str, Any]] = None, **kwargs: Any) -> ShutdownController:
    """Register the process-wide shutdown controller. See ShutdownRegistrar.register."""
    return ShutdownRegistrar.get_instance().register(options, **kwargs)
