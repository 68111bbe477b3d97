"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

WebSocket transport adapter.

The WebSocket client talks to a ``WebSocketTransport`` that opens
``WebSocketConnection`` objects; the default implementation uses
``aiohttp``'s client WebSocket support.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional, Union

import aiohttp

from veriflow.exceptions import AuthError, NetworkError
from veriflow.logging_config import get_logger

logger = get_logger(__name__)

Frame = Union[str, bytes]


class WebSocketConnection(ABC):
    """A single open WebSocket."""

    @abstractmethod
    async def receive(self) -> Optional[Frame]:
        """Next inbound frame, or None once the socket has closed."""
        ...

    @abstractmethod
    async def send(self, text: str) -> None:
        """Send a text frame."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        ...


class WebSocketTransport(ABC):
    """Factory for WebSocket connections."""

    @abstractmethod
    async def connect(self, url: str, headers: Dict[str, str]) -> WebSocketConnection:
        """Open a connection.

        Raises:
            NetworkError: If the endpoint cannot be reached
            AuthError: If the handshake is rejected with 401/403
        """
        ...

    async def aclose(self) -> None:
        """Release transport-level resources."""
        return None


class AiohttpWebSocketConnection(WebSocketConnection):
    """``aiohttp.ClientWebSocketResponse`` wrapper."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._ws = ws

    async def receive(self) -> Optional[Frame]:
        msg = await self._ws.receive()
        if msg.type == aiohttp.WSMsgType.TEXT:
            return msg.data
        if msg.type == aiohttp.WSMsgType.BINARY:
            return msg.data
        if msg.type == aiohttp.WSMsgType.ERROR:
            logger.warning(f"WebSocket transport error: {self._ws.exception()}")
        # CLOSE, CLOSING, CLOSED and ERROR all end the read loop
        return None

    async def send(self, text: str) -> None:
        try:
            await self._ws.send_str(text)
        except (aiohttp.ClientError, ConnectionResetError) as e:
            raise NetworkError(f"WebSocket send failed: {e}") from e

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()


class AiohttpWebSocketTransport(WebSocketTransport):
    """Real-time WebSocket transport backed by ``aiohttp``.

    Args:
        heartbeat: Ping interval in seconds (None disables pings).
    """

    def __init__(self, heartbeat: Optional[float] = 30.0) -> None:
        self._heartbeat = heartbeat
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def connect(self, url: str, headers: Dict[str, str]) -> WebSocketConnection:
        session = await self._get_session()
        try:
            ws = await session.ws_connect(url, headers=headers, heartbeat=self._heartbeat)
        except aiohttp.WSServerHandshakeError as e:
            if e.status in (401, 403):
                raise AuthError(f"WebSocket handshake rejected: {e.message}", status=e.status) from e
            raise NetworkError(f"WebSocket handshake failed: {e.message}", status=e.status) from e
        except (aiohttp.ClientError, OSError) as e:
            raise NetworkError(f"WebSocket connect to {url} failed: {e}") from e
        return AiohttpWebSocketConnection(ws)

    async def aclose(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
