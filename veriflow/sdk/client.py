"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Veriflow SDK Client & Builder.

Provides two entry points to initialize the SDK:
    - ``VeriflowClient(api_key=...)`` for a quick start with sensible defaults
    - ``VeriflowBuilder().set_api_key(...).use(...).build()`` for advanced config
"""

from __future__ import annotations

from typing import Any, List, Optional

from veriflow.config.settings import VeriflowConfig, build_config
from veriflow.core.clock import Clock
from veriflow.exceptions import SDKConfigurationError
from veriflow.logging_config import get_logger
from veriflow.monitoring.metrics import MetricsRegistry
from veriflow.sdk.adapters.websocket import WebSocketTransport
from veriflow.sdk.analytics import AnalyticsOperations
from veriflow.sdk.context import AdapterFactory, ClientContext
from veriflow.sdk.extensions import VeriflowExtension
from veriflow.sdk.graphql import GraphQLClient
from veriflow.sdk.http_client import HTTPClient
from veriflow.sdk.users import UserOperations
from veriflow.sdk.verifications import VerificationOperations
from veriflow.sdk.websocket import WebSocketClient
from veriflow.sdk.workflows import WorkflowOperations

logger = get_logger(__name__)


class VeriflowClient:
    """SDK client for the Veriflow API.

    Quick start::

        async with VeriflowClient(api_key="vf_test_123") as client:
            verification = await client.verifications.create(
                type="identity", subject={"email": "ada@example.com"},
            )

    Every component of one client shares a single :class:`ClientContext`,
    so clients built from different configurations are fully independent.

    Args:
        api_key: API key for authentication (overrides ``config.api_key``).
        base_url: Root URL of the Veriflow API (overrides ``config.base_url``).
        config: Full configuration. Defaults are used when omitted.
        adapter_factory: Creates transport handles (defaults to ``HttpAdapter``).
        ws_transport: WebSocket transport (defaults to aiohttp).
        clock: Time source (defaults to the system clock).
        metrics: Metrics registry (a private one is created if omitted).
        **options: Flat configuration options such as ``max_connections``,
            ``cache_ttl_ms``, ``max_retries`` or ``secret_key``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        config: Optional[VeriflowConfig] = None,
        adapter_factory: Optional[AdapterFactory] = None,
        ws_transport: Optional[WebSocketTransport] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[MetricsRegistry] = None,
        **options: Any,
    ) -> None:
        config = build_config(config, api_key=api_key, base_url=base_url, **options)
        if not config.api_key:
            raise SDKConfigurationError("VeriflowClient requires an api_key.")

        self._context = ClientContext(
            config=config,
            adapter_factory=adapter_factory,
            ws_transport=ws_transport,
            clock=clock,
            metrics=metrics,
        )
        self._http = HTTPClient(self._context)
        self._graphql = GraphQLClient(self._context, self._http)
        self._websocket = WebSocketClient(self._context)

        self._verifications = VerificationOperations(self._http)
        self._workflows = WorkflowOperations(self._http, self._websocket)
        self._users = UserOperations(self._http)
        self._analytics = AnalyticsOperations(self._http, self._graphql, self._websocket)

        self._extensions: List[VeriflowExtension] = []
        logger.info(f"VeriflowClient initialized for {config.base_url}")

    # -- Extension registration --------------------------------------------

    def use(self, extension: VeriflowExtension) -> VeriflowClient:
        """Register an extension plugin.

        Args:
            extension: Extension implementing :class:`VeriflowExtension`.

        Returns:
            ``self`` for method chaining.
        """
        extension.install(self._context.hooks)
        self._extensions.append(extension)
        logger.info(f"Extension installed: {extension.name} v{extension.version}")
        return self

    @property
    def extensions(self) -> List[VeriflowExtension]:
        return list(self._extensions)

    # -- Component accessors -----------------------------------------------

    @property
    def context(self) -> ClientContext:
        return self._context

    @property
    def config(self) -> VeriflowConfig:
        return self._context.config

    @property
    def hooks(self):
        return self._context.hooks

    @property
    def metrics(self) -> MetricsRegistry:
        return self._context.metrics

    @property
    def http(self) -> HTTPClient:
        return self._http

    @property
    def graphql(self) -> GraphQLClient:
        return self._graphql

    @property
    def websocket(self) -> WebSocketClient:
        return self._websocket

    @property
    def verifications(self) -> VerificationOperations:
        return self._verifications

    @property
    def workflows(self) -> WorkflowOperations:
        return self._workflows

    @property
    def users(self) -> UserOperations:
        return self._users

    @property
    def analytics(self) -> AnalyticsOperations:
        return self._analytics

    # -- Lifecycle ---------------------------------------------------------

    async def aclose(self) -> None:
        """Disconnect the WebSocket session and release all transports."""
        await self._websocket.disconnect()
        await self._context.aclose()
        logger.info("VeriflowClient closed")

    async def __aenter__(self) -> VeriflowClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


# ---------------------------------------------------------------------------
# VeriflowBuilder (advanced initialization)
# ---------------------------------------------------------------------------

class VeriflowBuilder:
    """Fluent builder for advanced VeriflowClient configuration.

    Example::

        client = (
            VeriflowBuilder()
            .set_api_key("vf_prod_123")
            .set_base_url("https://api.veriflow.io")
            .set_secret_key("shared-secret")
            .set_option("max_connections", 20)
            .use(TenantHeader())
            .build()
        )
    """

    def __init__(self) -> None:
        self._config: Optional[VeriflowConfig] = None
        self._api_key: Optional[str] = None
        self._base_url: Optional[str] = None
        self._options: dict = {}
        self._adapter_factory: Optional[AdapterFactory] = None
        self._ws_transport: Optional[WebSocketTransport] = None
        self._clock: Optional[Clock] = None
        self._extensions: List[VeriflowExtension] = []

    def set_config(self, config: VeriflowConfig) -> VeriflowBuilder:
        """Start from a full configuration (e.g. from ``load_config``)."""
        self._config = config
        return self

    def set_api_key(self, key: str) -> VeriflowBuilder:
        """Set the API key."""
        self._api_key = key
        return self

    def set_base_url(self, url: str) -> VeriflowBuilder:
        """Set the Veriflow API base URL."""
        self._base_url = url
        return self

    def set_secret_key(self, secret: str) -> VeriflowBuilder:
        """Enable request signing with a shared secret."""
        self._options["secret_key"] = secret
        return self

    def set_option(self, name: str, value: Any) -> VeriflowBuilder:
        """Set a flat configuration option (e.g. ``max_retries``)."""
        self._options[name] = value
        return self

    def set_transport(self, adapter_factory: AdapterFactory) -> VeriflowBuilder:
        """Override the default HTTP adapter factory."""
        self._adapter_factory = adapter_factory
        return self

    def set_websocket_transport(self, transport: WebSocketTransport) -> VeriflowBuilder:
        """Override the default aiohttp WebSocket transport."""
        self._ws_transport = transport
        return self

    def set_clock(self, clock: Clock) -> VeriflowBuilder:
        self._clock = clock
        return self

    def use(self, extension: VeriflowExtension) -> VeriflowBuilder:
        """Queue an extension for installation after build."""
        self._extensions.append(extension)
        return self

    def build(self) -> VeriflowClient:
        """Construct the VeriflowClient and install all queued extensions.

        Raises:
            SDKConfigurationError: If no API key is configured.
            InvalidConfigurationError: If an option is unknown or invalid.
        """
        api_key = self._api_key or (self._config.api_key if self._config else None)
        if not api_key:
            raise SDKConfigurationError(
                "VeriflowBuilder.build() requires set_api_key() or a config with an api_key."
            )

        client = VeriflowClient(
            api_key=api_key,
            base_url=self._base_url,
            config=self._config,
            adapter_factory=self._adapter_factory,
            ws_transport=self._ws_transport,
            clock=self._clock,
            **self._options,
        )

        for ext in self._extensions:
            client.use(ext)

        # Fire initialize hooks after all extensions are installed
        client.hooks.fire_initialize(client=client)

        logger.info(
            f"VeriflowBuilder: built client with {len(self._extensions)} extension(s)"
        )
        return client
