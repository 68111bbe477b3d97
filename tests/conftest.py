"""
Pytest configuration and shared fixtures for Veriflow SDK tests.
"""

import asyncio
from typing import Any, Dict, List, Optional, Union

import pytest
import structlog

from veriflow.config.settings import build_config
from veriflow.core.clock import Clock
from veriflow.exceptions import NetworkError
from veriflow.sdk.adapters.base import SDKResponse
from veriflow.sdk.adapters.mock import MockAdapter
from veriflow.sdk.adapters.websocket import Frame, WebSocketConnection, WebSocketTransport
from veriflow.sdk.context import ClientContext

EPOCH = 1_700_000_000.0


class FakeClock(Clock):
    """
    Virtual clock for deterministic tests.

    ``sleep`` records the requested delay, advances virtual time instantly
    and yields once to the event loop.
    """

    def __init__(self, start: float = EPOCH) -> None:
        self._start = start
        self._offset = 0.0
        self.sleeps: List[float] = []

    def time(self) -> float:
        return self._start + self._offset

    def monotonic(self) -> float:
        return self._offset

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._offset += max(0.0, seconds)
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self._offset += seconds


class FakeWebSocketConnection(WebSocketConnection):
    """Scripted WebSocket connection fed through ``push`` and ``drop``."""

    def __init__(self) -> None:
        self._frames: asyncio.Queue = asyncio.Queue()
        self.sent: List[str] = []
        self.closed = False

    def push(self, frame: Frame) -> None:
        self._frames.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the server closing the socket."""
        self._frames.put_nowait(None)

    async def receive(self) -> Optional[Frame]:
        if self.closed and self._frames.empty():
            return None
        return await self._frames.get()

    async def send(self, text: str) -> None:
        if self.closed:
            raise NetworkError("socket closed")
        self.sent.append(text)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._frames.put_nowait(None)


class FakeWebSocketTransport(WebSocketTransport):
    """
    Transport whose ``connect`` results are scripted in order.

    Each scripted outcome is a ``FakeWebSocketConnection`` to hand out or
    an exception to raise. Once the script runs out, ``default`` is used
    (a connection refusal unless overridden).
    """

    def __init__(self) -> None:
        self._script: List[Union[FakeWebSocketConnection, BaseException]] = []
        self.default: Optional[BaseException] = NetworkError("connection refused")
        self.connects: List[Dict[str, Any]] = []
        self.closed = False

    def add_connection(self) -> FakeWebSocketConnection:
        connection = FakeWebSocketConnection()
        self._script.append(connection)
        return connection

    def add_failure(self, error: Optional[BaseException] = None) -> None:
        self._script.append(error or NetworkError("connection refused"))

    async def connect(self, url: str, headers: Dict[str, str]) -> WebSocketConnection:
        self.connects.append({"url": url, "headers": dict(headers)})
        outcome = self._script.pop(0) if self._script else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


def token_body(
    access: str = "access-1",
    refresh: Optional[str] = "refresh-1",
    expires_in: int = 3600,
    refresh_expires_in: int = 86400,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"access_token": access, "expires_in": expires_in}
    if refresh is not None:
        body["refresh_token"] = refresh
        body["refresh_expires_in"] = refresh_expires_in
    return body


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def adapter():
    """Mock transport with a working API-key exchange."""
    return MockAdapter({
        ("POST", "/auth/api-key"): SDKResponse(status_code=200, body=token_body()),
    })


@pytest.fixture
def ws_transport():
    return FakeWebSocketTransport()


@pytest.fixture
def make_context(adapter, clock, ws_transport):
    """Build a ClientContext over the shared mock adapter.

    Keyword arguments are flat configuration options.
    """

    def _make(**options: Any) -> ClientContext:
        options.setdefault("api_key", "vf_test_key")
        options.setdefault("base_url", "https://api.test")
        return ClientContext(
            config=build_config(**options),
            adapter_factory=lambda: adapter,
            ws_transport=ws_transport,
            clock=clock,
        )

    return _make


@pytest.fixture
def context(make_context):
    return make_context()


@pytest.fixture
def make_token_body():
    return token_body


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging setup done by a test (CLI runs bind to captured streams)."""
    yield
    structlog.reset_defaults()
