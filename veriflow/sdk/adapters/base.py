"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

SDK Transport Adapter base class and data structures.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class SDKRequest:
    """Outbound SDK request representation."""
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Any] = None
    params: Optional[Dict[str, Any]] = None


@dataclass
class SDKResponse:
    """Inbound SDK response representation."""
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400


def encode_body(body: Any) -> str:
    """
    Serialize a request body to the exact text sent on the wire.

    Mappings and sequences are encoded as canonical JSON (sorted keys, no
    insignificant whitespace); strings and bytes pass through; ``None``
    encodes to the empty string. Request signatures are computed over this
    same text.
    """
    if body is None:
        return ""
    if isinstance(body, bytes):
        return body.decode("utf-8")
    if isinstance(body, str):
        return body
    return json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)


class BaseAdapter(ABC):
    """Abstract base for all transport adapters.

    One adapter instance is one transport handle; the connection pool
    leases adapters to callers.
    """

    @abstractmethod
    async def send(
        self,
        request: SDKRequest,
        timeout: Optional[float] = None,
    ) -> SDKResponse:
        """Send a request and return the response."""
        ...

    async def aclose(self) -> None:
        """Release adapter resources, awaiting transport shutdown."""
        self.close()

    @abstractmethod
    def close(self) -> None:
        """Release adapter resources."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the adapter is in a usable state."""
        ...
