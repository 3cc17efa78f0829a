"""
Callback registration and translation of raw socket events.

Every library event carries the channel name as its last argument:

    open(name)
    close(name)
    error(error, name)
    message(data, name)
"""
from typing import Any, Callable, Dict, List, Tuple
import json
import logging

from .exceptions import MalformedFrameError

EVENTS = ("open", "close", "error", "message")

Listener = Callable[..., Any]


class EventRelay:
    """Re-emits transport events as library events tagged with a channel name."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Tuple[Listener, bool]]] = {event: [] for event in EVENTS}

    def _check_event(self, event: str) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown event '{event}'. Must be one of: {', '.join(EVENTS)}")

    def on(self, event: str, callback: Listener) -> Listener:
        """Register a callback for every occurrence of an event. Returns the callback."""
        self._check_event(event)
        self._listeners[event].append((callback, False))
        return callback

    def once(self, event: str, callback: Listener) -> Listener:
        """Register a callback that is removed after its first call."""
        self._check_event(event)
        self._listeners[event].append((callback, True))
        return callback

    def off(self, event: str, callback: Listener) -> None:
        """Remove every registration of a callback for an event."""
        self._check_event(event)
        self._listeners[event] = [(cb, once) for cb, once in self._listeners[event] if cb is not callback]

    def listener_count(self, event: str) -> int:
        self._check_event(event)
        return len(self._listeners[event])

    def emit(self, event: str, *args: Any) -> None:
        """Call the listeners of an event in registration order."""
        self._check_event(event)
        listeners = self._listeners[event]
        if any(once for _, once in listeners):
            self._listeners[event] = [(cb, once) for cb, once in listeners if not once]
        for callback, _ in listeners:
            try:
                callback(*args)
            except Exception:
                logging.exception(f"Listener for '{event}' raised")

    def relay_open(self, name: str) -> None:
        self.emit("open", name)

    def relay_close(self, name: str) -> None:
        self.emit("close", name)

    def relay_error(self, name: str, error: Any) -> None:
        # Some transports fire error events without a payload.
        if not error:
            return
        self.emit("error", error, name)

    def relay_message(self, name: str, frame: Any) -> None:
        """Parse a raw frame; emit ``message`` on success, ``error`` otherwise."""
        try:
            data = json.loads(frame)
        except (TypeError, ValueError) as e:
            error = MalformedFrameError(name, frame)
            error.__cause__ = e
            logging.debug(f"Dropping malformed frame on '{name}': {e}")
            self.emit("error", error, name)
            return
        self.emit("message", data, name)
