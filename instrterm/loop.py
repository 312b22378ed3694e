"""
The event loop. Everything that touches the state of the editor and the
device session runs from this loop. Other threads (reading stdin, the
socket, or the clipboard) only post events to it.
"""

import queue
import logging
from collections import namedtuple


logger = logging.getLogger("instrterm")


# %% Events

KeyToken = namedtuple("KeyToken", ["token"])
SocketConnected = namedtuple("SocketConnected", ["generation", "sock"])
SocketFailed = namedtuple("SocketFailed", ["generation", "error"])
SocketData = namedtuple("SocketData", ["generation", "data"])
SocketClosed = namedtuple("SocketClosed", ["generation"])
PasteCompleted = namedtuple("PasteCompleted", ["text"])
Call = namedtuple("Call", ["func"])
Stop = namedtuple("Stop", [])


class EventLoop:
    """A loop that consumes events one at a time, in the order they were posted.

    Posting is thread-safe. Handlers are registered per event type.
    """

    def __init__(self):
        self._queue = queue.Queue()
        self._handlers = {Call: lambda event: event.func()}
        self._is_running = False

    def register(self, event_type, handler):
        """Set the function to call for events of the given type."""
        self._handlers[event_type] = handler

    def post(self, event):
        """Add an event to the queue. Can be called from any thread."""
        self._queue.put(event)

    def call_soon(self, func):
        self.post(Call(func))

    def stop(self):
        self.post(Stop())

    def is_running(self):
        return self._is_running

    def run(self):
        """Process events until a Stop event is processed."""
        self._is_running = True
        logger.info("Entering event loop")

        try:
            while True:
                event = self._queue.get()
                if isinstance(event, Stop):
                    break
                self.dispatch(event)
        finally:
            self._is_running = False
            logger.info("Exiting event loop")

    def run_pending(self):
        """Process the events that are currently queued, without blocking."""
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                break
            if isinstance(event, Stop):
                break
            self.dispatch(event)

    def dispatch(self, event):
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning(f"No handler for {type(event).__name__}")
            return
        try:
            handler(event)
        except Exception as err:
            logger.error(f"Internal instrterm error in {type(event).__name__}: {err}")
