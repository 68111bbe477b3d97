"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

HTTP Client for the SDK runtime.

Executes one logical request against the Veriflow REST API:

1. Cacheable reads are answered from the cache when possible.
2. A pooled connection is leased for the whole logical request.
3. Every attempt gets a current bearer token, fresh signing headers and a
   bounded timeout.
4. Transport failures, 429 and 5xx responses are retried with exponential
   backoff (honoring ``Retry-After``) for idempotent requests only.
5. A 401 drops the rejected token and retries once with a fresh one.
6. Successful reads are cached; successful writes invalidate the cached
   reads of the same resource.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Tuple

from veriflow.core.cache import make_key
from veriflow.core.pool import Lease
from veriflow.core.retry import parse_retry_after
from veriflow.exceptions import (
    AuthError,
    HTTPError,
    TimeoutError,
    TransportError,
    extract_error_message,
    is_retryable,
)
from veriflow.logging_config import get_correlation_id, get_logger, log_request_retry
from veriflow.sdk.adapters.base import SDKRequest, SDKResponse

if TYPE_CHECKING:
    from veriflow.sdk.context import ClientContext

logger = get_logger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

ResponseValidator = Callable[[SDKResponse], None]


@dataclass(frozen=True)
class RequestDescriptor:
    """
    Immutable description of one logical request.

    Attributes:
        method: HTTP method
        path: Resource path relative to the API base URL
        body: JSON-serializable request body
        params: Query parameters
        headers: Extra request headers
        cacheable: Whether a successful response may be cached
        idempotent: Whether the request is safe to retry. Defaults to True
            for GET/HEAD/OPTIONS and for any request with an idempotency key.
        idempotency_key: Client-generated deduplication key, sent as
            ``Idempotency-Key``
        cache_key: Explicit cache key (derived from method, path and params
            when omitted)
        cache_ttl: Per-entry TTL override in seconds
        mutates: Whether success invalidates cached reads of ``path``.
            Defaults to True for POST/PUT/PATCH/DELETE.
        invalidates: Further paths whose cached reads a successful write
            invalidates (e.g. the collection an action endpoint changes)
    """
    method: str
    path: str
    body: Any = None
    params: Optional[Dict[str, Any]] = None
    headers: Optional[Dict[str, str]] = None
    cacheable: bool = False
    idempotent: Optional[bool] = None
    idempotency_key: Optional[str] = None
    cache_key: Optional[str] = None
    cache_ttl: Optional[float] = None
    mutates: Optional[bool] = None
    invalidates: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        method = self.method.upper()
        object.__setattr__(self, "method", method)
        if self.idempotent is None:
            object.__setattr__(
                self,
                "idempotent",
                method in SAFE_METHODS or self.idempotency_key is not None,
            )
        if self.mutates is None:
            object.__setattr__(self, "mutates", method in MUTATING_METHODS)

    @property
    def cache_eligible(self) -> bool:
        return bool(self.cacheable and self.idempotent and not self.mutates)

    @property
    def retryable(self) -> bool:
        return bool(self.idempotent)

    @classmethod
    def get(
        cls,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        cacheable: bool = True,
        **kwargs: Any,
    ) -> RequestDescriptor:
        return cls("GET", path, params=params, cacheable=cacheable, **kwargs)

    @classmethod
    def post(cls, path: str, body: Any = None, **kwargs: Any) -> RequestDescriptor:
        return cls("POST", path, body=body, **kwargs)

    @classmethod
    def put(cls, path: str, body: Any = None, **kwargs: Any) -> RequestDescriptor:
        return cls("PUT", path, body=body, **kwargs)

    @classmethod
    def patch(cls, path: str, body: Any = None, **kwargs: Any) -> RequestDescriptor:
        return cls("PATCH", path, body=body, **kwargs)

    @classmethod
    def delete(cls, path: str, **kwargs: Any) -> RequestDescriptor:
        return cls("DELETE", path, **kwargs)


class HTTPClient:
    """Executes request descriptors against the pooled transport.

    Args:
        context: Shared client context.
    """

    def __init__(self, context: ClientContext) -> None:
        self._ctx = context

    async def execute(
        self,
        descriptor: RequestDescriptor,
        *,
        timeout: Optional[float] = None,
        validate: Optional[ResponseValidator] = None,
    ) -> SDKResponse:
        """
        Execute one logical request.

        Args:
            descriptor: What to send
            timeout: Per-attempt timeout in seconds (config default if None)
            validate: Called with a successful response before it is cached;
                may raise to reject it

        Returns:
            The successful response

        Raises:
            NetworkError: Transport unreachable after all retries
            TimeoutError: Every attempt exceeded its deadline
            HTTPError: Terminal 4xx, or 429/5xx after all retries
            AuthError: Token exchange failed, or the server rejected a fresh token
            DecodeError: The response body could not be decoded
        """
        cache = self._ctx.cache
        cache_key = None
        if cache is not None and descriptor.cache_eligible:
            cache_key = descriptor.cache_key or make_key(
                descriptor.method, descriptor.path, descriptor.params
            )
            cached = cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for {cache_key}")
                return cached

        if timeout is None:
            timeout = self._ctx.request_timeout
        request_id = get_correlation_id() or str(uuid.uuid4())

        try:
            async with self._ctx.pool.lease() as lease:
                response = await self._send_with_retry(lease, descriptor, timeout, request_id)
            # The server accepted the write even if the body is rejected below.
            if cache is not None and descriptor.mutates:
                for path in (descriptor.path, *descriptor.invalidates):
                    cache.invalidate_path(path)
            if validate is not None:
                validate(response)
        except Exception as exc:
            self._ctx.metrics.record_request(
                descriptor.method,
                str(exc.status) if getattr(exc, "status", None) else type(exc).__name__,
            )
            self._ctx.hooks.fire_error(exc)
            raise

        if cache_key is not None:
            cache.set(cache_key, response, ttl=descriptor.cache_ttl, path=descriptor.path)

        self._ctx.metrics.record_request(descriptor.method, str(response.status_code))
        return response

    async def _send_with_retry(
        self,
        lease: Lease,
        descriptor: RequestDescriptor,
        timeout: float,
        request_id: str,
    ) -> SDKResponse:
        policy = self._ctx.retry_policy
        max_attempts = policy.max_attempts if descriptor.retryable else 1
        failures = 0
        auth_retried = False

        while True:
            token = await self._ctx.auth.get_token()
            request = self._build_request(descriptor, token, request_id)
            retry_after: Optional[float] = None

            try:
                with self._ctx.metrics.time_request(descriptor.method):
                    response = await asyncio.wait_for(
                        lease.send(request, timeout=timeout), timeout
                    )
            except asyncio.TimeoutError:
                error: Exception = TimeoutError(
                    f"{descriptor.method} {descriptor.path} exceeded {timeout}s"
                )
                reason = "timeout"
            except TransportError as e:
                error = e
                reason = type(e).__name__
            else:
                self._ctx.hooks.fire_after_response(response, request)

                if response.status_code == 401:
                    if auth_retried:
                        raise AuthError(
                            extract_error_message(response.body) or "Request rejected with a fresh token",
                            status=401,
                        )
                    auth_retried = True
                    self._ctx.auth.invalidate(token)
                    self._ctx.metrics.record_retry("401")
                    logger.info(f"{descriptor.method} {descriptor.path} got 401, retrying with a new token")
                    continue

                if response.ok:
                    return response

                error = HTTPError(
                    response.status_code,
                    extract_error_message(response.body) or "",
                    body=response.body,
                )
                if not is_retryable(error):
                    raise error
                retry_after = parse_retry_after(response.headers, now=self._ctx.clock.time())
                reason = str(response.status_code)

            failures += 1
            if failures >= max_attempts:
                raise error

            delay = policy.delay_for(failures - 1, retry_after)
            log_request_retry(
                logger,
                descriptor.method,
                descriptor.path,
                attempt=failures,
                max_attempts=max_attempts,
                delay_seconds=delay,
                reason=reason,
                request_id=request_id,
            )
            self._ctx.metrics.record_retry(reason)
            await self._ctx.clock.sleep(delay)

    def _build_request(
        self,
        descriptor: RequestDescriptor,
        token: str,
        request_id: str,
    ) -> SDKRequest:
        headers: Dict[str, str] = {
            "User-Agent": self._ctx.config.http.user_agent,
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Request-ID": request_id,
        }
        if descriptor.headers:
            headers.update(descriptor.headers)
        if descriptor.idempotency_key:
            headers["Idempotency-Key"] = descriptor.idempotency_key
        headers["Authorization"] = f"Bearer {token}"

        request = SDKRequest(
            method=descriptor.method,
            path=descriptor.path,
            headers=headers,
            body=descriptor.body,
            params=dict(descriptor.params) if descriptor.params else None,
        )
        request = self._ctx.hooks.fire_before_request(request)

        signer = self._ctx.signer
        if signer is not None:
            # Timestamp taken immediately before signing.
            timestamp = int(self._ctx.clock.time())
            request.headers.update(
                signer.signed_headers(request.method, request.path, timestamp, request.body)
            )
        return request

    # -- Convenience helpers (return decoded bodies) -----------------------

    async def get(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        cacheable: bool = True,
        cache_ttl: Optional[float] = None,
    ) -> Any:
        descriptor = RequestDescriptor.get(
            path,
            params=dict(params) if params else None,
            cacheable=cacheable,
            cache_ttl=cache_ttl,
        )
        return (await self.execute(descriptor)).body

    async def post(
        self,
        path: str,
        body: Any = None,
        idempotency_key: Optional[str] = None,
    ) -> Any:
        descriptor = RequestDescriptor.post(path, body, idempotency_key=idempotency_key)
        return (await self.execute(descriptor)).body

    async def put(self, path: str, body: Any = None) -> Any:
        return (await self.execute(RequestDescriptor.put(path, body))).body

    async def patch(self, path: str, body: Any = None) -> Any:
        return (await self.execute(RequestDescriptor.patch(path, body))).body

    async def delete(self, path: str) -> Any:
        return (await self.execute(RequestDescriptor.delete(path))).body
