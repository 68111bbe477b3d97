"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

HTTP/REST transport adapter (default).
"""

from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from veriflow.exceptions import DecodeError, NetworkError, TimeoutError
from veriflow.logging_config import get_logger
from veriflow.sdk.adapters.base import BaseAdapter, SDKRequest, SDKResponse, encode_body

logger = get_logger(__name__)


class HttpAdapter(BaseAdapter):
    """Default HTTP transport using ``httpx.AsyncClient``.

    Each adapter is a single pooled handle: its client keeps at most one
    connection open so a lease corresponds to one reusable socket.

    Args:
        base_url: Root URL of the Veriflow API (e.g. ``https://api.veriflow.io``).
        timeout: Default request timeout in seconds.
        max_connections: Connection limit of the underlying client.
        transport: Optional ``httpx`` transport (e.g. ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        max_connections: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_connections = max_connections
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                limits=httpx.Limits(
                    max_connections=self._max_connections,
                    max_keepalive_connections=self._max_connections,
                ),
                transport=self._transport,
            )
        return self._client

    async def send(
        self,
        request: SDKRequest,
        timeout: Optional[float] = None,
    ) -> SDKResponse:
        client = self._ensure_client()
        start = time.monotonic()

        content = encode_body(request.body) if request.body is not None else None
        try:
            resp = await client.request(
                method=request.method,
                url=request.path,
                headers=request.headers,
                content=content,
                params=request.params,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except httpx.TimeoutException as e:
            raise TimeoutError(
                f"{request.method} {request.path} timed out: {e}"
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                f"{request.method} {request.path} failed: {e}"
            ) from e
        elapsed = (time.monotonic() - start) * 1000

        return SDKResponse(
            status_code=resp.status_code,
            headers=dict(resp.headers),
            body=self._decode(resp),
            elapsed_ms=round(elapsed, 2),
        )

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        if not resp.content:
            return None
        content_type = resp.headers.get("content-type", "")
        if "json" not in content_type:
            return resp.text
        try:
            return resp.json()
        except ValueError as e:
            if resp.status_code >= 400:
                return resp.text
            raise DecodeError(
                f"Malformed JSON response body: {e}", status=resp.status_code
            ) from e

    async def aclose(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()

    def close(self) -> None:
        if self._client:
            # httpx.AsyncClient.aclose() is async; for sync teardown we
            # just drop the reference and let the GC handle the sockets.
            self._client = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and not self._client.is_closed
