"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Unit tests for VeriflowClient and VeriflowBuilder.
"""

import pytest

from veriflow.config.settings import build_config
from veriflow.exceptions import InvalidConfigurationError, SDKConfigurationError
from veriflow.sdk.client import VeriflowBuilder, VeriflowClient
from veriflow.sdk.extensions import VeriflowExtension


class TenantHeader(VeriflowExtension):
    def __init__(self):
        self.initialized_with = None

    @property
    def name(self):
        return "tenant-header"

    @property
    def version(self):
        return "1.0.0"

    def install(self, hooks):
        hooks.on_before_request(self._inject)
        hooks.on_initialize(self._on_init)

    def _inject(self, request):
        request.headers["X-Tenant-ID"] = "acme"
        return request

    def _on_init(self, client=None):
        self.initialized_with = client


@pytest.fixture
def make_client(adapter, ws_transport, clock):
    def _make(**kwargs):
        kwargs.setdefault("api_key", "vf_test_key")
        kwargs.setdefault("base_url", "https://api.test")
        return VeriflowClient(
            adapter_factory=lambda: adapter,
            ws_transport=ws_transport,
            clock=clock,
            **kwargs,
        )
    return _make


class TestVeriflowClient:
    def test_requires_api_key(self):
        with pytest.raises(SDKConfigurationError):
            VeriflowClient()

    def test_api_key_from_config(self, adapter):
        config = build_config(api_key="vf_from_config")
        client = VeriflowClient(config=config, adapter_factory=lambda: adapter)
        assert client.config.api_key == "vf_from_config"

    def test_flat_options(self, make_client):
        client = make_client(max_connections=3, cache_ttl_ms=500, secret_key="s")
        assert client.context.pool.max_connections == 3
        assert client.context.cache.default_ttl == 0.5
        assert client.context.signer is not None

    def test_unknown_option_rejected(self, make_client):
        with pytest.raises(InvalidConfigurationError):
            make_client(max_conections=3)

    def test_components_share_context(self, make_client):
        client = make_client()
        assert client.verifications is not None
        assert client.workflows is not None
        assert client.users is not None
        assert client.analytics is not None
        assert client.websocket.url == "wss://api.test/ws"

    @pytest.mark.asyncio
    async def test_end_to_end_read(self, make_client, adapter):
        from veriflow.sdk.adapters.base import SDKResponse

        adapter.add("GET", "/users/me", SDKResponse(status_code=200, body={"id": "u1"}))

        async with make_client() as client:
            assert await client.users.me() == {"id": "u1"}
            assert await client.users.me() == {"id": "u1"}

        assert adapter.calls_to("GET", "/users/me") == 1
        assert client.context.closed

    @pytest.mark.asyncio
    async def test_aclose_disconnects_websocket(self, make_client, ws_transport):
        ws_transport.add_connection()
        client = make_client()
        await client.websocket.connect()

        await client.aclose()

        assert not client.websocket.is_open
        assert ws_transport.closed

    @pytest.mark.asyncio
    async def test_use_installs_extension(self, make_client, adapter):
        from veriflow.sdk.adapters.base import SDKResponse

        adapter.add("GET", "/users/me", SDKResponse(status_code=200, body={}))
        ext = TenantHeader()
        client = make_client().use(ext)

        await client.users.me()

        assert client.extensions == [ext]
        assert adapter.sent_requests[-1].headers["X-Tenant-ID"] == "acme"
        await client.aclose()

    def test_independent_clients(self, adapter):
        first = VeriflowClient(api_key="vf_a", adapter_factory=lambda: adapter)
        second = VeriflowClient(api_key="vf_b", adapter_factory=lambda: adapter)
        assert first.context is not second.context
        assert first.metrics is not second.metrics


class TestVeriflowBuilder:
    def test_build_requires_key(self):
        with pytest.raises(SDKConfigurationError):
            VeriflowBuilder().build()

    def test_build(self, adapter, ws_transport, clock):
        client = (
            VeriflowBuilder()
            .set_api_key("vf_built")
            .set_base_url("https://eu.api.test")
            .set_secret_key("shh")
            .set_option("max_retries", 1)
            .set_transport(lambda: adapter)
            .set_websocket_transport(ws_transport)
            .set_clock(clock)
            .build()
        )

        assert client.config.api_key == "vf_built"
        assert client.config.base_url == "https://eu.api.test"
        assert client.config.http.max_retries == 1
        assert client.context.signer is not None
        assert client.context.clock is clock

    def test_key_from_config(self, adapter):
        client = (
            VeriflowBuilder()
            .set_config(build_config(api_key="vf_cfg"))
            .set_transport(lambda: adapter)
            .build()
        )
        assert client.config.api_key == "vf_cfg"

    def test_extensions_installed_then_initialized(self, adapter):
        ext = TenantHeader()
        client = (
            VeriflowBuilder()
            .set_api_key("vf_built")
            .set_transport(lambda: adapter)
            .use(ext)
            .build()
        )

        assert client.extensions == [ext]
        assert ext.initialized_with is client
