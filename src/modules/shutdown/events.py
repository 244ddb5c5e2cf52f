"""Sources of named termination events the coordinator can subscribe to."""

import asyncio
import signal
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

EventCallback = Callable[[str], None]


@runtime_checkable
class EventSource(Protocol):
    """Something that can invoke a callback when a named external event occurs."""

    def supports(self, name: str) -> bool:
        ...

    def subscribe(self, name: str, callback: EventCallback) -> None:
        ...


class SignalEventSource:
    """Binds OS signals (by name, e.g. ``SIGTERM``) to callbacks on the event loop.

    Handlers are installed with ``loop.add_signal_handler`` so the callback runs
    as a regular loop callback instead of inside the interrupted frame.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._subscribed: List[signal.Signals] = []

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def bound(self) -> bool:
        """Whether a loop is available to install signal handlers on."""
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                return False
        return True

    def supports(self, name: str) -> bool:
        try:
            signal.Signals[name]
        except KeyError:
            return False
        return name not in ('SIGKILL', 'SIGSTOP')

    def subscribe(self, name: str, callback: EventCallback) -> None:
        sig = signal.Signals[name]
        self.loop.add_signal_handler(sig, callback, name)
        self._subscribed.append(sig)

    def unsubscribe_all(self) -> None:
        """Remove every handler installed by this source."""
        for sig in self._subscribed:
            self.loop.remove_signal_handler(sig)
        self._subscribed.clear()


class LocalEventSource:
    """In-process named events, for triggers that are not OS signals."""

    def __init__(self):
        self._subscribers: Dict[str, List[EventCallback]] = {}

    def supports(self, name: str) -> bool:
        return bool(name)

    def subscribe(self, name: str, callback: EventCallback) -> None:
        self._subscribers.setdefault(name, []).append(callback)

    def subscriber_count(self, name: Optional[str] = None) -> int:
        if name is not None:
            return len(self._subscribers.get(name, []))
        return sum(len(callbacks) for callbacks in self._subscribers.values())

    def emit(self, name: str) -> int:
        """Fire an event, returning how many callbacks were invoked."""
        callbacks = list(self._subscribers.get(name, []))
        for callback in callbacks:
            callback(name)
        return len(callbacks)
