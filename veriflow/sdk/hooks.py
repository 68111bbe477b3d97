"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

SDK Lifecycle Hook Registry.

Provides a centralized registry of lifecycle hooks that extensions
can subscribe to in order to intercept and augment SDK execution
without modifying the runtime.

Available hooks:
- on_initialize: Fired once when the client finishes setup
- on_before_request: Fired before every transport attempt
- on_after_response: Fired after every transport response
- on_error: Fired on any terminal SDK error
- on_websocket_state: Fired when the WebSocket session changes state
"""

from __future__ import annotations

from typing import Any, Callable, List

from veriflow.logging_config import get_logger
from veriflow.sdk.adapters.base import SDKRequest, SDKResponse

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Hook callback type aliases
# ---------------------------------------------------------------------------

InitializeCallback = Callable[..., None]
BeforeRequestCallback = Callable[[SDKRequest], SDKRequest]
AfterResponseCallback = Callable[[SDKResponse, SDKRequest], None]
ErrorCallback = Callable[[Exception], None]
WebSocketStateCallback = Callable[[str, str], None]


# ---------------------------------------------------------------------------
# HookRegistry
# ---------------------------------------------------------------------------

class HookRegistry:
    """
    Manages lifecycle hooks for the Veriflow SDK.

    Extensions register callbacks via the ``on_*`` methods.  The SDK runtime
    fires hooks at the appropriate points in the request lifecycle.  Multiple
    callbacks per hook are supported and executed in registration order.
    A failing callback is logged and reported to the error hooks; it never
    aborts the request.
    """

    def __init__(self) -> None:
        self._initialize_callbacks: List[InitializeCallback] = []
        self._before_request_callbacks: List[BeforeRequestCallback] = []
        self._after_response_callbacks: List[AfterResponseCallback] = []
        self._error_callbacks: List[ErrorCallback] = []
        self._websocket_state_callbacks: List[WebSocketStateCallback] = []

    # -- Registration methods ------------------------------------------------

    def on_initialize(self, callback: InitializeCallback) -> None:
        """Register a callback fired once when the client finishes setup."""
        self._initialize_callbacks.append(callback)
        logger.debug("Registered on_initialize hook")

    def on_before_request(self, callback: BeforeRequestCallback) -> None:
        """Register a callback fired before every transport attempt.

        The callback receives the outbound ``SDKRequest`` and **must**
        return an ``SDKRequest`` (possibly modified). Hooks run before the
        request is signed, so header changes are covered by the signature.
        """
        self._before_request_callbacks.append(callback)
        logger.debug("Registered on_before_request hook")

    def on_after_response(self, callback: AfterResponseCallback) -> None:
        """Register a callback fired after every transport response."""
        self._after_response_callbacks.append(callback)
        logger.debug("Registered on_after_response hook")

    def on_error(self, callback: ErrorCallback) -> None:
        """Register a callback fired on any terminal SDK error."""
        self._error_callbacks.append(callback)
        logger.debug("Registered on_error hook")

    def on_websocket_state(self, callback: WebSocketStateCallback) -> None:
        """Register a callback receiving ``(from_state, to_state)`` transitions."""
        self._websocket_state_callbacks.append(callback)
        logger.debug("Registered on_websocket_state hook")

    # -- Firing methods (called by the SDK runtime) --------------------------

    def _dispatch(self, hook: str, callbacks: List[Callable[..., Any]], *args: Any, **kwargs: Any) -> None:
        for cb in list(callbacks):
            try:
                cb(*args, **kwargs)
            except Exception as exc:
                logger.error(f"{hook} hook error: {exc}", exc_info=True)
                self.fire_error(exc)

    def fire_initialize(self, **kwargs: Any) -> None:
        """Fire all registered on_initialize callbacks."""
        self._dispatch("on_initialize", self._initialize_callbacks, **kwargs)

    def fire_before_request(self, request: SDKRequest) -> SDKRequest:
        """Run the on_before_request pipeline.

        Each callback receives the request returned by the previous one. A
        callback returning None leaves the request unchanged; a failing
        callback is skipped.
        """
        current = request
        for cb in list(self._before_request_callbacks):
            try:
                result = cb(current)
            except Exception as exc:
                logger.error(f"on_before_request hook error: {exc}", exc_info=True)
                self.fire_error(exc)
                continue
            if result is not None:
                current = result
        return current

    def fire_after_response(self, response: SDKResponse, request: SDKRequest) -> None:
        self._dispatch("on_after_response", self._after_response_callbacks, response, request)

    def fire_websocket_state(self, from_state: str, to_state: str) -> None:
        self._dispatch("on_websocket_state", self._websocket_state_callbacks, from_state, to_state)

    def fire_error(self, error: Exception) -> None:
        """Fire all on_error callbacks. Failures here are only logged."""
        for cb in list(self._error_callbacks):
            try:
                cb(error)
            except Exception:
                logger.error("on_error hook raised", exc_info=True)
