"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

SDK Transport Adapters.
"""

from veriflow.sdk.adapters.base import BaseAdapter, SDKRequest, SDKResponse, encode_body
from veriflow.sdk.adapters.http import HttpAdapter
from veriflow.sdk.adapters.mock import MockAdapter
from veriflow.sdk.adapters.websocket import (
    AiohttpWebSocketTransport,
    WebSocketConnection,
    WebSocketTransport,
)

__all__ = [
    "BaseAdapter",
    "SDKRequest",
    "SDKResponse",
    "encode_body",
    "HttpAdapter",
    "MockAdapter",
    "AiohttpWebSocketTransport",
    "WebSocketConnection",
    "WebSocketTransport",
]
