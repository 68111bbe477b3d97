"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Mock transport adapter for local testing.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from veriflow.sdk.adapters.base import BaseAdapter, SDKRequest, SDKResponse

MockResult = Union[
    SDKResponse,
    BaseException,
    Callable[[SDKRequest], Any],
    List[Any],
]


class MockAdapter(BaseAdapter):
    """In-memory mock adapter for unit tests.

    Args:
        responses: Mapping from ``(method, path)`` tuples to a result. A
            result is an ``SDKResponse``, an exception instance to raise, a
            callable (sync or async) receiving the request, or a list of
            those consumed one per call (the last element repeats).

    Example::

        adapter = MockAdapter({
            ("GET", "/verifications"): SDKResponse(status_code=200, body=[]),
            ("POST", "/verifications"): [
                SDKResponse(status_code=503),
                SDKResponse(status_code=201, body={"id": "v1"}),
            ],
        })
    """

    def __init__(
        self,
        responses: Optional[Dict[Tuple[str, str], MockResult]] = None,
    ) -> None:
        self._responses: Dict[Tuple[str, str], MockResult] = dict(responses or {})
        self._sent: list[SDKRequest] = []
        self._closed = False

    def add(self, method: str, path: str, result: MockResult) -> None:
        """Register (or replace) the result for ``(method, path)``."""
        self._responses[(method.upper(), path)] = result

    async def send(
        self,
        request: SDKRequest,
        timeout: Optional[float] = None,
    ) -> SDKResponse:
        self._sent.append(request)
        key = (request.method.upper(), request.path)
        if key not in self._responses:
            return SDKResponse(
                status_code=404,
                headers={},
                body={"error": "not mocked"},
                elapsed_ms=0.0,
            )

        result = self._responses[key]
        if isinstance(result, list):
            result = result.pop(0) if len(result) > 1 else result[0]

        if isinstance(result, BaseException):
            raise result
        if callable(result):
            result = result(request)
            if inspect.isawaitable(result):
                result = await result
        return result

    def close(self) -> None:
        self._closed = True

    @property
    def is_connected(self) -> bool:
        return not self._closed

    @property
    def sent_requests(self) -> list[SDKRequest]:
        """All requests that have been sent through this adapter."""
        return list(self._sent)

    def calls_to(self, method: str, path: str) -> int:
        """Number of requests sent to ``(method, path)``."""
        return sum(
            1 for r in self._sent
            if r.method.upper() == method.upper() and r.path == path
        )
