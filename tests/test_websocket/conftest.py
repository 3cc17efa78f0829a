"""
In-memory socket transport shared by the WebSocket tests.
"""
import asyncio
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pytest

_CLOSED = object()


class FakeConnection:
    """Stands in for an open websockets connection."""

    def __init__(self, url: str, headers: Optional[Mapping[str, str]]):
        self.url = url
        self.headers = dict(headers) if headers else None
        self.sent: List[str] = []
        self.closed = False
        self.send_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.hold_close = False
        self.close_release = asyncio.Event()
        self._frames: "asyncio.Queue[Any]" = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)

    async def close(self) -> None:
        if self.hold_close:
            await self.close_release.wait()
        if self.close_error is not None:
            raise self.close_error
        if not self.closed:
            self.closed = True
            self._frames.put_nowait(_CLOSED)

    def push(self, frame: Any) -> None:
        """Deliver a frame from the server."""
        self._frames.put_nowait(frame)

    def fail(self, error: BaseException) -> None:
        """Make the read loop raise, as a dropped connection would."""
        self._frames.put_nowait(error)

    def __aiter__(self) -> "FakeConnection":
        return self

    async def __anext__(self) -> Any:
        item = await self._frames.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeTransport:
    """Transport factory recording every connection attempt."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Optional[Dict[str, str]]]] = []
        self.connections: List[FakeConnection] = []
        self.error: Optional[Exception] = None
        self.hold = False
        self._gate: Optional[asyncio.Event] = None

    def release(self) -> None:
        """Let held handshakes complete."""
        self.hold = False
        if self._gate is not None:
            self._gate.set()

    async def __call__(self, url: str, headers: Optional[Mapping[str, str]] = None) -> FakeConnection:
        self.calls.append((url, dict(headers) if headers else None))
        if self.hold:
            if self._gate is None:
                self._gate = asyncio.Event()
            await self._gate.wait()
        if self.error is not None:
            raise self.error
        connection = FakeConnection(url, headers)
        self.connections.append(connection)
        return connection


class EventLog:
    """Collects library events as (event, args) tuples."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Tuple[Any, ...]]] = []

    def attach(self, target: Any) -> "EventLog":
        for event in ("open", "close", "error", "message"):
            target.on(event, lambda *args, _event=event: self.events.append((_event, args)))
        return self

    def of(self, event: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.events if name == event]


async def drain(rounds: int = 10) -> None:
    """Give background reader tasks a chance to run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def settle():
    """Coroutine function that lets pending reader tasks run."""
    return drain
