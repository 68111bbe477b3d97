"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

WebSocket Client.

Manages one persistent streaming session with automatic reconnection.

States::

    CONNECTING -> OPEN -> (unexpected close) -> RECONNECTING -> CONNECTING -> ...
    RECONNECTING -> CLOSED            (reconnect attempts exhausted)
    any state    -> CLOSED            (explicit disconnect)
    any state    -> CLOSED            (unexpected transport error, reason "error")

The attempt counter resets to zero only when the session reaches OPEN.
Each failed connect or dropped session while the counter is below
``max_reconnect_attempts`` waits ``base * 2**attempts`` (capped) on the
injected clock and tries again.

Inbound frames are JSON ``{type, payload}`` envelopes. They are decoded
and dispatched to subscribers synchronously, in receipt order, from the
session's single reader task. A frame that fails to decode produces an
ERROR event and the session stays open.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple

from veriflow.core.retry import compute_backoff
from veriflow.exceptions import AuthError, DecodeError, NetworkError, VeriflowError
from veriflow.logging_config import get_logger, log_websocket_transition
from veriflow.sdk.adapters.websocket import Frame, WebSocketConnection

if TYPE_CHECKING:
    from veriflow.sdk.context import ClientContext

logger = get_logger(__name__)


class WebSocketState(str, Enum):
    """WebSocket session states."""
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


class EventType(str, Enum):
    """Events delivered to subscribers."""
    OPEN = "open"
    MESSAGE = "message"
    ERROR = "error"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"


@dataclass
class WebSocketEvent:
    """
    One event delivered to subscribers.

    Attributes:
        type: Event type
        payload: Decoded message payload, or details for lifecycle events
        message_type: Envelope ``type`` of a MESSAGE event
        error: Error behind an ERROR, RECONNECTING or DISCONNECTED event
        attempt: Reconnect attempt number of a RECONNECTING event (1-based)
        delay: Backoff delay in seconds of a RECONNECTING event
        terminal: True on the DISCONNECTED event that ends the session for good
    """
    type: EventType
    payload: Any = None
    message_type: Optional[str] = None
    error: Optional[Exception] = None
    attempt: Optional[int] = None
    delay: Optional[float] = None
    terminal: bool = False


EventHandler = Callable[[WebSocketEvent], None]


def decode_frame(frame: Frame) -> Tuple[str, Any]:
    """
    Decode a ``{type, payload}`` envelope.

    Raises:
        DecodeError: If the frame is not JSON or lacks a string ``type``
    """
    try:
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8")
        envelope = json.loads(frame)
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Malformed WebSocket frame: {e}") from e
    if not isinstance(envelope, dict) or not isinstance(envelope.get("type"), str):
        raise DecodeError("WebSocket frame is not a {type, payload} envelope")
    return envelope["type"], envelope.get("payload")


class WebSocketClient:
    """Single managed streaming connection.

    Args:
        context: Shared client context (transport, auth, clock, hooks, config).
    """

    def __init__(self, context: ClientContext) -> None:
        self._ctx = context
        ws_config = context.config.websocket
        self._url = context.config.websocket_url
        self._max_attempts = ws_config.max_reconnect_attempts
        self._base_delay = ws_config.reconnect_base_delay_ms / 1000.0
        self._max_delay = ws_config.reconnect_max_delay_ms / 1000.0

        self._state = WebSocketState.CLOSED
        self._reconnect_attempts = 0
        self._connection: Optional[WebSocketConnection] = None
        self._task: Optional[asyncio.Task] = None
        self._opened: Optional[asyncio.Future] = None
        self._closing = False
        self._subscribers: List[Tuple[EventHandler, Optional[str]]] = []

    # -- Introspection -----------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> WebSocketState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def is_open(self) -> bool:
        return self._state is WebSocketState.OPEN

    # -- Subscriptions -----------------------------------------------------

    def subscribe(
        self,
        handler: EventHandler,
        message_type: Optional[str] = None,
    ) -> Callable[[], None]:
        """
        Register an event handler.

        Args:
            handler: Called synchronously with every matching event
            message_type: Only deliver MESSAGE events whose envelope type
                matches this (shell-style wildcards allowed, e.g.
                ``"workflow.run.*"``). Lifecycle events are always delivered.

        Returns:
            A callable that removes the subscription
        """
        entry = (handler, message_type)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(entry)
            except ValueError:
                pass

        return unsubscribe

    # -- Lifecycle ---------------------------------------------------------

    async def connect(self) -> None:
        """
        Open the session and wait until it is OPEN.

        Raises:
            NetworkError: If the session reaches CLOSED without opening
            AuthError: If a token for the handshake cannot be obtained or the
                server rejects it
        """
        if self._task is None or self._task.done():
            if self._state is WebSocketState.OPEN:
                return
            self._closing = False
            self._reconnect_attempts = 0
            self._opened = asyncio.get_running_loop().create_future()
            self._opened.add_done_callback(_retrieve_exception)
            self._transition(WebSocketState.CONNECTING)
            self._task = asyncio.ensure_future(self._run())

        if self._opened is not None:
            await asyncio.shield(self._opened)

    async def disconnect(self) -> None:
        """Close the session and suppress any further reconnection."""
        self._closing = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.close()

        self._fail_opened(NetworkError("WebSocket disconnected before opening"))

        if self._state is not WebSocketState.CLOSED:
            self._transition(WebSocketState.CLOSED)
            self._emit(WebSocketEvent(EventType.DISCONNECTED, payload={"reason": "client"}))

    async def send(self, message_type: str, payload: Any = None) -> None:
        """
        Send a ``{type, payload}`` envelope.

        Raises:
            NetworkError: If the session is not OPEN
        """
        connection = self._connection
        if self._state is not WebSocketState.OPEN or connection is None:
            raise NetworkError(f"WebSocket is {self._state.value}, cannot send")
        text = json.dumps({"type": message_type, "payload": payload}, default=str)
        await connection.send(text)

    # -- Session loop ------------------------------------------------------

    async def _run(self) -> None:
        try:
            await self._session_loop()
        except Exception as e:
            logger.error(f"WebSocket session to {self._url} failed: {e}", exc_info=True)
            connection, self._connection = self._connection, None
            if connection is not None:
                try:
                    await connection.close()
                except Exception:
                    logger.warning("Closing a failed WebSocket connection raised", exc_info=True)
            self._emit(WebSocketEvent(EventType.ERROR, error=e))
            self._terminate("error", e)

    async def _session_loop(self) -> None:
        last_error: Optional[Exception] = None
        while not self._closing:
            try:
                connection = await self._open_connection()
            except AuthError as e:
                logger.error(f"WebSocket authentication failed: {e}")
                self._emit(WebSocketEvent(EventType.ERROR, error=e))
                self._terminate("auth", e)
                return
            except VeriflowError as e:
                logger.warning(f"WebSocket connect to {self._url} failed: {e}")
                last_error = e
            else:
                self._connection = connection
                self._reconnect_attempts = 0
                self._transition(WebSocketState.OPEN)
                if self._opened is not None and not self._opened.done():
                    self._opened.set_result(None)
                self._emit(WebSocketEvent(EventType.OPEN))

                last_error = await self._read_loop(connection)
                self._connection = None
                if self._closing:
                    return
                await connection.close()
                logger.warning(f"WebSocket session to {self._url} dropped")

            if self._reconnect_attempts >= self._max_attempts:
                self._terminate("exhausted", last_error)
                return

            delay = compute_backoff(self._reconnect_attempts, self._base_delay, self._max_delay)
            self._reconnect_attempts += 1
            self._transition(WebSocketState.RECONNECTING)
            self._ctx.metrics.record_websocket_reconnect()
            self._emit(WebSocketEvent(
                EventType.RECONNECTING,
                error=last_error,
                attempt=self._reconnect_attempts,
                delay=delay,
            ))
            await self._ctx.clock.sleep(delay)
            if self._closing:
                return
            self._transition(WebSocketState.CONNECTING)

    async def _open_connection(self) -> WebSocketConnection:
        token = await self._ctx.auth.get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "User-Agent": self._ctx.config.http.user_agent,
        }
        return await self._ctx.ws_transport.connect(self._url, headers)

    async def _read_loop(self, connection: WebSocketConnection) -> Optional[Exception]:
        """Dispatch frames until the socket closes; returns the error that closed it."""
        while True:
            try:
                frame = await connection.receive()
            except NetworkError as e:
                return e
            if frame is None:
                return None
            try:
                message_type, payload = decode_frame(frame)
            except DecodeError as e:
                logger.warning(f"Dropping undecodable WebSocket frame: {e}")
                self._emit(WebSocketEvent(EventType.ERROR, error=e, payload=frame))
                continue
            self._emit(WebSocketEvent(
                EventType.MESSAGE,
                payload=payload,
                message_type=message_type,
            ))

    def _terminate(self, reason: str, error: Optional[Exception]) -> None:
        self._transition(WebSocketState.CLOSED)
        self._emit(WebSocketEvent(
            EventType.DISCONNECTED,
            payload={"reason": reason},
            error=error,
            terminal=True,
        ))
        if isinstance(error, AuthError):
            self._fail_opened(error)
        else:
            self._fail_opened(NetworkError(
                f"WebSocket to {self._url} closed after "
                f"{self._reconnect_attempts} reconnect attempt(s): {error}"
            ))

    def _fail_opened(self, error: Exception) -> None:
        if self._opened is not None and not self._opened.done():
            self._opened.set_exception(error)

    def _transition(self, to_state: WebSocketState) -> None:
        from_state = self._state
        if from_state is to_state:
            return
        self._state = to_state
        log_websocket_transition(
            logger,
            self._url,
            from_state.value,
            to_state.value,
            self._reconnect_attempts,
        )
        self._ctx.metrics.set_websocket_state(to_state.value)
        self._ctx.hooks.fire_websocket_state(from_state.value, to_state.value)

    def _emit(self, event: WebSocketEvent) -> None:
        for handler, message_type in list(self._subscribers):
            if (
                message_type is not None
                and event.type is EventType.MESSAGE
                and not fnmatchcase(event.message_type or "", message_type)
            ):
                continue
            try:
                handler(event)
            except Exception:
                logger.error(f"WebSocket subscriber raised on {event.type.value} event", exc_info=True)


def _retrieve_exception(future: asyncio.Future) -> None:
    if not future.cancelled():
        future.exception()
