"""Graceful shutdown coordination: drain connections, tear down, exit once."""

from .config import ShutdownOptions, ShutdownSettings
from .coordinator import ShutdownController, ShutdownState
from .drain import AiohttpDrainAdapter, DrainableServer, adapt_server
from .errors import AlreadyRegisteredError, IncompatibleServerError, ShutdownConfigError
from .events import EventSource, LocalEventSource, SignalEventSource
from .registrar import ShutdownRegistrar, register_shutdown_event
from .teardown import TeardownOutcome, TeardownRunner

__all__ = [
    'AiohttpDrainAdapter',
    'AlreadyRegisteredError',
    'DrainableServer',
    'EventSource',
    'IncompatibleServerError',
    'LocalEventSource',
    'ShutdownConfigError',
    'ShutdownController',
    'ShutdownOptions',
    'ShutdownRegistrar',
    'ShutdownSettings',
    'ShutdownState',
    'SignalEventSource',
    'TeardownOutcome',
    'TeardownRunner',
    'adapt_server',
    'register_shutdown_event',
]
