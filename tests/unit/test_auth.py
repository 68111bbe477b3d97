"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Unit tests for the Auth Manager.
"""

import asyncio

import pytest

from veriflow.core.auth import AuthManager
from veriflow.core.credentials import CredentialStore, Token
from veriflow.exceptions import AuthError, NetworkError
from veriflow.monitoring.metrics import MetricsRegistry
from veriflow.sdk.adapters.base import SDKResponse
from veriflow.sdk.adapters.mock import MockAdapter


@pytest.fixture
def store():
    return CredentialStore("vf_test_key")


def _manager(store, adapter, clock, **kwargs):
    return AuthManager(store=store, adapter=adapter, clock=clock, **kwargs)


class TestFastPath:
    @pytest.mark.asyncio
    async def test_valid_token_needs_no_io(self, store, clock):
        adapter = MockAdapter()
        store.store(Token("cached", expires_at=clock.time() + 3600))
        manager = _manager(store, adapter, clock)

        assert await manager.get_token() == "cached"
        assert adapter.sent_requests == []

    @pytest.mark.asyncio
    async def test_token_inside_margin_is_renewed(self, store, clock, adapter):
        store.store(Token("stale", expires_at=clock.time() + 10))
        manager = _manager(store, adapter, clock, refresh_margin=30.0)

        assert await manager.get_token() == "access-1"
        assert adapter.calls_to("POST", "/auth/api-key") == 1


class TestApiKeyExchange:
    @pytest.mark.asyncio
    async def test_exchange_stores_pair(self, store, clock, adapter):
        manager = _manager(store, adapter, clock)

        assert await manager.get_token() == "access-1"

        request = adapter.sent_requests[0]
        assert request.body == {"api_key": "vf_test_key"}
        assert store.access_token.expires_at == clock.time() + 3600
        assert store.refresh_token.value == "refresh-1"
        assert store.refresh_token.expires_at > store.access_token.expires_at

    @pytest.mark.asyncio
    async def test_single_in_flight_exchange(self, store, clock):
        """Ten concurrent callers share one authentication call."""

        async def slow_exchange(request):
            await asyncio.sleep(0.01)
            return SDKResponse(status_code=200, body={"access_token": "shared", "expires_in": 600})

        adapter = MockAdapter({("POST", "/auth/api-key"): slow_exchange})
        manager = _manager(store, adapter, clock)

        tokens = await asyncio.gather(*(manager.get_token() for _ in range(10)))

        assert tokens == ["shared"] * 10
        assert adapter.calls_to("POST", "/auth/api-key") == 1
        assert manager.exchange_in_flight is False

    @pytest.mark.asyncio
    async def test_camel_case_response(self, store, clock):
        adapter = MockAdapter({
            ("POST", "/auth/api-key"): SDKResponse(
                status_code=200,
                body={"accessToken": "camel", "expiresIn": 60, "refreshToken": "r"},
            ),
        })
        manager = _manager(store, adapter, clock)
        assert await manager.get_token() == "camel"
        assert store.refresh_token.value == "r"

    @pytest.mark.asyncio
    async def test_refresh_outlives_access(self, store, clock, make_token_body):
        body = make_token_body(expires_in=3600, refresh_expires_in=60)
        adapter = MockAdapter({("POST", "/auth/api-key"): SDKResponse(status_code=200, body=body)})
        manager = _manager(store, adapter, clock)

        await manager.get_token()
        assert store.refresh_token.expires_at > store.access_token.expires_at

    @pytest.mark.asyncio
    async def test_rejected_key_raises_auth_error(self, store, clock):
        adapter = MockAdapter({
            ("POST", "/auth/api-key"): SDKResponse(status_code=401, body={"message": "bad key"}),
        })
        manager = _manager(store, adapter, clock)

        with pytest.raises(AuthError) as exc_info:
            await manager.get_token()
        assert exc_info.value.status == 401
        assert "bad key" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_failure_raises_auth_error(self, store, clock):
        adapter = MockAdapter({("POST", "/auth/api-key"): NetworkError("unreachable")})
        manager = _manager(store, adapter, clock)

        with pytest.raises(AuthError) as exc_info:
            await manager.get_token()
        assert isinstance(exc_info.value.__cause__, NetworkError)

    @pytest.mark.asyncio
    async def test_missing_access_token(self, store, clock):
        adapter = MockAdapter({("POST", "/auth/api-key"): SDKResponse(status_code=200, body={})})
        manager = _manager(store, adapter, clock)
        with pytest.raises(AuthError, match="access_token"):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_no_api_key(self, clock):
        manager = _manager(CredentialStore(""), MockAdapter(), clock)
        with pytest.raises(AuthError):
            await manager.get_token()

    @pytest.mark.asyncio
    async def test_failure_clears_in_flight_state(self, store, clock, make_token_body):
        adapter = MockAdapter({
            ("POST", "/auth/api-key"): [
                NetworkError("blip"),
                SDKResponse(status_code=200, body=make_token_body(access="second")),
            ],
        })
        manager = _manager(store, adapter, clock)

        with pytest.raises(AuthError):
            await manager.get_token()
        assert manager.exchange_in_flight is False
        assert await manager.get_token() == "second"


class TestRefresh:
    @pytest.mark.asyncio
    async def test_uses_refresh_token(self, store, clock, make_token_body):
        store.store(Token("old", clock.time() - 1), Token("r-old", clock.time() + 3600))
        adapter = MockAdapter({
            ("POST", "/auth/refresh"): SDKResponse(
                status_code=200, body=make_token_body(access="refreshed", refresh="r-new"),
            ),
        })
        manager = _manager(store, adapter, clock)

        assert await manager.get_token() == "refreshed"
        assert adapter.sent_requests[0].body == {"refresh_token": "r-old"}
        assert adapter.calls_to("POST", "/auth/api-key") == 0
        assert store.refresh_token.value == "r-new"

    @pytest.mark.asyncio
    async def test_revoked_refresh_falls_back_to_api_key(self, store, clock, make_token_body):
        store.store(Token("old", clock.time() - 1), Token("revoked", clock.time() + 3600))
        adapter = MockAdapter({
            ("POST", "/auth/refresh"): SDKResponse(status_code=401, body={"error": "revoked"}),
            ("POST", "/auth/api-key"): SDKResponse(
                status_code=200, body=make_token_body(access="fresh"),
            ),
        })
        manager = _manager(store, adapter, clock)

        assert await manager.get_token() == "fresh"
        assert adapter.calls_to("POST", "/auth/refresh") == 1
        assert adapter.calls_to("POST", "/auth/api-key") == 1

    @pytest.mark.asyncio
    async def test_expired_refresh_token_skipped(self, store, clock, adapter):
        store.store(Token("old", clock.time() - 10), Token("r", clock.time() - 1))
        manager = _manager(store, adapter, clock)

        assert await manager.get_token() == "access-1"
        assert adapter.calls_to("POST", "/auth/refresh") == 0

    @pytest.mark.asyncio
    async def test_both_paths_fail(self, store, clock):
        store.store(Token("old", clock.time() - 1), Token("r", clock.time() + 3600))
        adapter = MockAdapter({
            ("POST", "/auth/refresh"): SDKResponse(status_code=401),
            ("POST", "/auth/api-key"): SDKResponse(status_code=403, body={"message": "disabled"}),
        })
        manager = _manager(store, adapter, clock)

        with pytest.raises(AuthError) as exc_info:
            await manager.get_token()
        assert exc_info.value.status == 403


class TestInvalidate:
    @pytest.mark.asyncio
    async def test_invalidate_forces_new_exchange(self, store, clock, adapter):
        manager = _manager(store, adapter, clock)
        token = await manager.get_token()

        assert manager.invalidate(token) is True
        assert store.access_token is None
        await manager.get_token()
        # Refresh is tried first; it is not mocked, so the API key is used again
        assert adapter.calls_to("POST", "/auth/refresh") == 1
        assert adapter.calls_to("POST", "/auth/api-key") == 2

    def test_invalidate_stale_value_keeps_current(self, store, clock):
        store.store(Token("current", clock.time() + 3600))
        manager = _manager(store, MockAdapter(), clock)
        assert manager.invalidate("previous") is False
        assert store.access_token.value == "current"


class TestMetrics:
    @pytest.mark.asyncio
    async def test_exchange_recorded(self, store, clock, adapter):
        metrics = MetricsRegistry()
        manager = _manager(store, adapter, clock, metrics=metrics)
        await manager.get_token()

        value = metrics.registry.get_sample_value(
            "veriflow_token_exchanges_total", {"kind": "api_key", "outcome": "success"}
        )
        assert value == 1.0
