"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Veriflow SDK - client runtime for the Veriflow verification and workflow APIs.

Turns typed service calls into authenticated HTTP/GraphQL requests and
managed WebSocket streams, with pooled connections, bounded retries and
response caching.
"""

from veriflow._version import __version__
from veriflow.sdk.client import VeriflowBuilder, VeriflowClient

__all__ = ["__version__", "VeriflowClient", "VeriflowBuilder"]
