"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

SDK Client Context.

One ``ClientContext`` is built per configured client and handed to every
runtime component. It owns the shared mutable state (credential store,
auth manager, connection pool, response cache) so that several
independently configured clients can live in one process.
"""

from __future__ import annotations

from typing import Callable, Optional

from veriflow.config.settings import VeriflowConfig
from veriflow.core.auth import AuthManager
from veriflow.core.cache import CacheManager
from veriflow.core.clock import Clock, SystemClock
from veriflow.core.credentials import CredentialStore
from veriflow.core.pool import ConnectionPool
from veriflow.core.retry import RetryPolicy
from veriflow.core.signing import RequestSigner
from veriflow.logging_config import get_logger
from veriflow.monitoring.metrics import MetricsRegistry
from veriflow.sdk.adapters.base import BaseAdapter
from veriflow.sdk.adapters.http import HttpAdapter
from veriflow.sdk.adapters.websocket import AiohttpWebSocketTransport, WebSocketTransport
from veriflow.sdk.hooks import HookRegistry

logger = get_logger(__name__)

AdapterFactory = Callable[[], BaseAdapter]


class ClientContext:
    """Shared runtime state for one client configuration.

    Args:
        config: Validated client configuration.
        adapter_factory: Creates one transport handle. Used for pooled
            handles and for the dedicated auth handle. Defaults to
            :class:`HttpAdapter` against ``config.base_url``.
        ws_transport: WebSocket transport (defaults to aiohttp).
        clock: Time source shared by auth, cache, retry and reconnect logic.
        metrics: Metrics registry (a private one is created if omitted).
    """

    def __init__(
        self,
        config: VeriflowConfig,
        adapter_factory: Optional[AdapterFactory] = None,
        ws_transport: Optional[WebSocketTransport] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.config = config
        self.clock = clock or SystemClock()
        self.hooks = HookRegistry()
        self.metrics = metrics or MetricsRegistry()
        self.adapter_factory: AdapterFactory = adapter_factory or self._default_adapter
        self.ws_transport = ws_transport or AiohttpWebSocketTransport()

        self.credentials = CredentialStore(config.api_key)
        self._auth_adapter = self.adapter_factory()
        self.auth = AuthManager(
            store=self.credentials,
            adapter=self._auth_adapter,
            clock=self.clock,
            refresh_margin=config.auth.refresh_margin_s,
            api_key_path=config.auth.api_key_path,
            refresh_path=config.auth.refresh_path,
            timeout=self.request_timeout,
            metrics=self.metrics,
        )
        self.pool = ConnectionPool(
            factory=self.adapter_factory,
            max_connections=config.http.max_connections,
            metrics=self.metrics,
        )
        self.cache: Optional[CacheManager] = None
        if config.cache.enabled:
            self.cache = CacheManager(
                default_ttl=config.cache.ttl_ms / 1000.0,
                max_entries=config.cache.max_entries,
                clock=self.clock,
                metrics=self.metrics,
            )
        self.signer: Optional[RequestSigner] = None
        if config.secret_key:
            self.signer = RequestSigner(config.secret_key)

        self.retry_policy = RetryPolicy(
            max_retries=config.http.max_retries,
            base_delay=config.http.retry_base_delay_ms / 1000.0,
            max_delay=config.http.retry_max_delay_ms / 1000.0,
        )
        self._closed = False

    @property
    def request_timeout(self) -> float:
        """Default per-call transport timeout in seconds."""
        return self.config.http.request_timeout_ms / 1000.0

    @property
    def closed(self) -> bool:
        return self._closed

    def _default_adapter(self) -> BaseAdapter:
        return HttpAdapter(
            base_url=self.config.base_url,
            timeout=self.request_timeout,
        )

    async def aclose(self) -> None:
        """Drain the pool and close the auth and WebSocket transports."""
        if self._closed:
            return
        self._closed = True
        await self.pool.drain()
        await self._auth_adapter.aclose()
        await self.ws_transport.aclose()
        logger.info("ClientContext closed")
