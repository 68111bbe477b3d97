"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Veriflow SDK public API surface.

Quick start::

    from veriflow.sdk import VeriflowClient
    client = VeriflowClient(api_key="vf_test_123")

Advanced::

    from veriflow.sdk import VeriflowBuilder
    client = VeriflowBuilder().set_api_key("vf_prod").use(MyExtension()).build()
"""

from veriflow.sdk.client import VeriflowBuilder, VeriflowClient
from veriflow.sdk.context import ClientContext
from veriflow.sdk.hooks import HookRegistry
from veriflow.sdk.extensions import VeriflowExtension
from veriflow.sdk.http_client import HTTPClient, RequestDescriptor
from veriflow.sdk.graphql import GraphQLClient
from veriflow.sdk.websocket import EventType, WebSocketClient, WebSocketEvent, WebSocketState
from veriflow.sdk.verifications import VerificationOperations
from veriflow.sdk.workflows import WorkflowOperations
from veriflow.sdk.users import UserOperations
from veriflow.sdk.analytics import AnalyticsOperations
from veriflow.sdk.adapters import (
    BaseAdapter,
    HttpAdapter,
    MockAdapter,
    SDKRequest,
    SDKResponse,
)

__all__ = [
    # client
    "VeriflowClient",
    "VeriflowBuilder",
    "ClientContext",
    # transport
    "HTTPClient",
    "RequestDescriptor",
    "GraphQLClient",
    "WebSocketClient",
    "WebSocketEvent",
    "WebSocketState",
    "EventType",
    # operations
    "VerificationOperations",
    "WorkflowOperations",
    "UserOperations",
    "AnalyticsOperations",
    # infra
    "HookRegistry",
    "VeriflowExtension",
    "BaseAdapter",
    "HttpAdapter",
    "MockAdapter",
    "SDKRequest",
    "SDKResponse",
]
