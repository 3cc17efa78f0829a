"""
Per-client table of named sockets and their connection state machine.

Each channel name maps to at most one socket. State checks run before the
first ``await`` of every operation, so on a single event loop a second
operation on the same name always observes the first one's state.
"""
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol
import asyncio
import json
import logging

import websockets

from .events import EventRelay
from .exceptions import InvalidStateError, NotConnectedError, TransportError


class SocketState(Enum):
    ABSENT = "ABSENT"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"

    def __str__(self) -> str:
        return self.value


class Transition(Enum):
    START = "start"
    NOOP = "noop"
    REJECT = "reject"


TRANSITIONS: Dict[str, Dict[SocketState, Transition]] = {
    "connect": {
        SocketState.ABSENT: Transition.START,
        SocketState.CONNECTING: Transition.REJECT,
        SocketState.OPEN: Transition.NOOP,
        SocketState.CLOSING: Transition.REJECT,
        SocketState.CLOSED: Transition.START,
    },
    "disconnect": {
        SocketState.ABSENT: Transition.NOOP,
        SocketState.CONNECTING: Transition.REJECT,
        SocketState.OPEN: Transition.START,
        SocketState.CLOSING: Transition.REJECT,
        SocketState.CLOSED: Transition.NOOP,
    },
}


class Connection(Protocol):
    """What the registry needs from an open socket."""

    async def send(self, message: str) -> None:
        ...

    async def close(self) -> None:
        ...

    def __aiter__(self) -> AsyncIterator[Any]:
        ...


TransportFactory = Callable[[str, Optional[Mapping[str, str]]], Awaitable[Connection]]


async def websocket_transport(url: str, headers: Optional[Mapping[str, str]] = None) -> Connection:
    """Open a socket with the websockets library; returns after the handshake."""
    return await websockets.connect(url, additional_headers=headers)


class SocketHandle:
    """Registry entry: one socket, its state and the task reading from it."""

    def __init__(self, name: str, url: str):
        self.name = name
        self.url = url
        self.state = SocketState.CONNECTING
        self.connection: Optional[Connection] = None
        self.reader: Optional["asyncio.Task[None]"] = None


class SocketRegistry:
    """Owns the sockets of one client, keyed by channel name."""

    def __init__(self, relay: EventRelay, transport: TransportFactory = websocket_transport):
        self._relay = relay
        self._transport = transport
        self._sockets: Dict[str, SocketHandle] = {}

    def state(self, name: str) -> SocketState:
        handle = self._sockets.get(name)
        return handle.state if handle is not None else SocketState.ABSENT

    def names(self) -> List[str]:
        return list(self._sockets)

    def _transition(self, operation: str, name: str) -> Transition:
        state = self.state(name)
        transition = TRANSITIONS[operation][state]
        if transition is Transition.REJECT:
            raise InvalidStateError(name, state, operation)
        return transition

    async def connect(self, name: str, url: str, headers: Optional[Mapping[str, str]] = None) -> None:
        """
        Open a socket for ``name`` unless one is already open.

        Args:
            name: Channel name (symbol, "orders" or "v2")
            url: Full socket URL including the query string
            headers: Optional handshake headers

        Raises:
            InvalidStateError: If the channel is CONNECTING or CLOSING
            TransportError: If the transport fails before the socket opens
        """
        if self._transition("connect", name) is Transition.NOOP:
            logging.debug(f"Socket '{name}' already open")
            return

        handle = SocketHandle(name, url)
        self._sockets[name] = handle
        logging.debug(f"Connecting '{name}' to {url}")
        try:
            connection = await self._transport(url, headers)
        except asyncio.CancelledError:
            handle.state = SocketState.CLOSED
            raise
        except Exception as e:
            handle.state = SocketState.CLOSED
            logging.warning(f"Could not connect '{name}': {e}")
            raise TransportError(name, e) from e

        handle.connection = connection
        handle.state = SocketState.OPEN
        logging.info(f"Socket '{name}' connected")
        handle.reader = asyncio.ensure_future(self._read(handle, connection))
        self._relay.relay_open(name)

    async def disconnect(self, name: str) -> None:
        """
        Close the socket for ``name`` if it is open.

        The entry ends CLOSED and ``close`` is emitted exactly once, whether the
        close succeeds, fails or is cancelled. On failure or cancellation the
        reader is stopped so the old socket can no longer reach listeners.

        Raises:
            InvalidStateError: If the channel is CONNECTING or CLOSING
            TransportError: If the transport fails while closing
        """
        if self._transition("disconnect", name) is Transition.NOOP:
            logging.debug(f"Socket '{name}' not open, nothing to close")
            return

        handle = self._sockets[name]
        if handle.connection is None:
            raise NotConnectedError(name)
        handle.state = SocketState.CLOSING
        try:
            await handle.connection.close()
        except asyncio.CancelledError:
            if handle.reader is not None:
                handle.reader.cancel()
            self._mark_closed(handle)
            logging.warning(f"Close of '{name}' was cancelled")
            raise
        except Exception as e:
            logging.warning(f"Could not close '{name}': {e}")
            await self._stop_reader(handle)
            self._mark_closed(handle)
            raise TransportError(name, e) from e

        if handle.reader is not None and handle.reader is not asyncio.current_task():
            await handle.reader
        self._mark_closed(handle)
        logging.info(f"Socket '{name}' disconnected")

    async def send(self, name: str, message: Mapping[str, Any]) -> None:
        """
        Send a JSON message on an open socket.

        Raises:
            NotConnectedError: If the channel has no OPEN socket
            TransportError: If the transport rejects the send
        """
        handle = self._sockets.get(name)
        if handle is None or handle.state is not SocketState.OPEN or handle.connection is None:
            raise NotConnectedError(name)
        try:
            await handle.connection.send(json.dumps(message))
        except Exception as e:
            raise TransportError(name, e) from e

    def _mark_closed(self, handle: SocketHandle) -> None:
        if handle.state is SocketState.CLOSED:
            return
        handle.state = SocketState.CLOSED
        self._relay.relay_close(handle.name)

    async def _stop_reader(self, handle: SocketHandle) -> None:
        reader = handle.reader
        if reader is None or reader.done() or reader is asyncio.current_task():
            return
        reader.cancel()
        await asyncio.wait({reader})

    async def _read(self, handle: SocketHandle, connection: Connection) -> None:
        try:
            async for frame in connection:
                self._relay.relay_message(handle.name, frame)
        except asyncio.CancelledError:
            # Stopping the reader does not close the socket, so the state is left to the caller.
            raise
        except Exception as e:
            # Raised after connect() settled, so only listeners can see it.
            self._relay.relay_error(handle.name, TransportError(handle.name, e))
        self._mark_closed(handle)
