"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Tests for SDK Transport Adapters.
"""

import httpx
import pytest

from veriflow.exceptions import DecodeError, NetworkError, TimeoutError
from veriflow.sdk.adapters.base import BaseAdapter, SDKRequest, SDKResponse, encode_body
from veriflow.sdk.adapters.http import HttpAdapter
from veriflow.sdk.adapters.mock import MockAdapter
from veriflow.sdk.adapters.websocket import AiohttpWebSocketTransport, WebSocketTransport


class TestEncodeBody:
    def test_canonical_json(self):
        assert encode_body({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_none_is_empty(self):
        assert encode_body(None) == ""

    def test_text_passthrough(self):
        assert encode_body("raw") == "raw"
        assert encode_body(b"raw") == "raw"


class TestSDKResponse:
    @pytest.mark.parametrize("status,ok", [(200, True), (204, True), (304, True), (400, False), (503, False)])
    def test_ok(self, status, ok):
        assert SDKResponse(status_code=status).ok is ok


class TestMockAdapter:
    @pytest.mark.asyncio
    async def test_send_returns_matched_response(self):
        expected = SDKResponse(status_code=200, body={"ok": True}, elapsed_ms=0.5)
        adapter = MockAdapter(responses={("POST", "/verifications"): expected})

        req = SDKRequest(method="POST", path="/verifications", headers={}, body={"type": "kyc"})
        result = await adapter.send(req)
        assert result.status_code == 200
        assert result.body == {"ok": True}

    @pytest.mark.asyncio
    async def test_send_returns_404_for_unmocked(self):
        adapter = MockAdapter()
        result = await adapter.send(SDKRequest(method="GET", path="/unknown"))
        assert result.status_code == 404
        assert result.body == {"error": "not mocked"}

    @pytest.mark.asyncio
    async def test_sequence_last_repeats(self):
        adapter = MockAdapter({
            ("GET", "/x"): [SDKResponse(status_code=503), SDKResponse(status_code=200)],
        })
        req = SDKRequest(method="GET", path="/x")
        statuses = [(await adapter.send(req)).status_code for _ in range(3)]
        assert statuses == [503, 200, 200]

    @pytest.mark.asyncio
    async def test_raises_exceptions(self):
        adapter = MockAdapter({("GET", "/x"): NetworkError("down")})
        with pytest.raises(NetworkError):
            await adapter.send(SDKRequest(method="GET", path="/x"))

    @pytest.mark.asyncio
    async def test_callables(self):
        async def echo(request):
            return SDKResponse(status_code=200, body=request.body)

        adapter = MockAdapter()
        adapter.add("post", "/echo", echo)
        adapter.add("GET", "/sync", lambda request: SDKResponse(status_code=204))

        assert (await adapter.send(SDKRequest("POST", "/echo", body={"a": 1}))).body == {"a": 1}
        assert (await adapter.send(SDKRequest("GET", "/sync"))).status_code == 204

    @pytest.mark.asyncio
    async def test_tracks_sent_requests(self):
        adapter = MockAdapter()
        await adapter.send(SDKRequest(method="DELETE", path="/verifications/123", headers={"X-Test": "1"}))
        assert len(adapter.sent_requests) == 1
        assert adapter.sent_requests[0].path == "/verifications/123"
        assert adapter.calls_to("delete", "/verifications/123") == 1

    @pytest.mark.asyncio
    async def test_aclose_marks_disconnected(self):
        adapter = MockAdapter()
        assert adapter.is_connected is True
        await adapter.aclose()
        assert adapter.is_connected is False


def _adapter(handler, **kwargs):
    return HttpAdapter("https://api.test/", transport=httpx.MockTransport(handler), **kwargs)


class TestHttpAdapter:
    def test_is_base_adapter(self):
        assert issubclass(HttpAdapter, BaseAdapter)

    def test_not_connected_before_first_request(self):
        assert HttpAdapter("https://api.test").is_connected is False

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["method"] = request.method
            seen["body"] = request.content.decode()
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(201, json={"id": "v1"})

        adapter = _adapter(handler)
        response = await adapter.send(SDKRequest(
            method="POST",
            path="/verifications",
            headers={"Authorization": "Bearer t"},
            body={"type": "kyc", "subject": "u1"},
            params={"dry_run": "1"},
        ))

        assert response.status_code == 201
        assert response.body == {"id": "v1"}
        assert seen["url"] == "https://api.test/verifications?dry_run=1"
        assert seen["method"] == "POST"
        # Body on the wire is the canonical encoding the signer uses
        assert seen["body"] == encode_body({"type": "kyc", "subject": "u1"})
        assert seen["auth"] == "Bearer t"
        assert adapter.is_connected
        await adapter.aclose()
        assert adapter.is_connected is False

    @pytest.mark.asyncio
    async def test_error_status_is_returned_not_raised(self):
        adapter = _adapter(lambda request: httpx.Response(
            429, json={"message": "slow down"}, headers={"Retry-After": "3"},
        ))
        response = await adapter.send(SDKRequest(method="GET", path="/x"))

        assert response.status_code == 429
        assert response.headers["retry-after"] == "3"
        assert response.body == {"message": "slow down"}
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_empty_and_text_bodies(self):
        adapter = _adapter(lambda request: (
            httpx.Response(204) if request.url.path == "/empty"
            else httpx.Response(200, text="pong")
        ))

        assert (await adapter.send(SDKRequest("DELETE", "/empty"))).body is None
        assert (await adapter.send(SDKRequest("GET", "/ping"))).body == "pong"
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_malformed_json_raises_decode_error(self):
        adapter = _adapter(lambda request: httpx.Response(
            200, content=b"{not json", headers={"Content-Type": "application/json"},
        ))
        with pytest.raises(DecodeError):
            await adapter.send(SDKRequest("GET", "/x"))
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_malformed_json_error_status_kept_as_text(self):
        adapter = _adapter(lambda request: httpx.Response(
            502, content=b"<html>bad gateway", headers={"Content-Type": "application/json"},
        ))
        response = await adapter.send(SDKRequest("GET", "/x"))
        assert response.status_code == 502
        assert response.body == "<html>bad gateway"
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_connect_error_maps_to_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        adapter = _adapter(handler)
        with pytest.raises(NetworkError):
            await adapter.send(SDKRequest("GET", "/x"))
        await adapter.aclose()

    @pytest.mark.asyncio
    async def test_timeout_maps_to_timeout_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        adapter = _adapter(handler)
        with pytest.raises(TimeoutError):
            await adapter.send(SDKRequest("GET", "/x"), timeout=0.1)
        await adapter.aclose()


class TestAiohttpWebSocketTransport:
    def test_is_transport(self):
        assert isinstance(AiohttpWebSocketTransport(), WebSocketTransport)

    @pytest.mark.asyncio
    async def test_aclose_without_session(self):
        transport = AiohttpWebSocketTransport(heartbeat=None)
        await transport.aclose()
