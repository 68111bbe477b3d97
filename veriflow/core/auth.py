"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Auth Manager for the SDK runtime.

Turns a CredentialStore into a valid bearer token on demand:

1. A current, unexpired access token is returned without any I/O.
2. Otherwise an unexpired refresh token is exchanged for a new pair.
3. If there is no refresh token, or the exchange fails, the API key is
   used for full re-authentication.

At most one exchange is in flight at a time; concurrent callers await the
same result.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Mapping, Optional, Tuple

from veriflow.core.clock import Clock, SystemClock
from veriflow.core.credentials import CredentialStore, Token
from veriflow.exceptions import (
    AuthError,
    DecodeError,
    TransportError,
    VeriflowError,
    extract_error_message,
)
from veriflow.logging_config import get_logger, log_token_exchange
from veriflow.monitoring.metrics import MetricsRegistry, TokenExchangeKind
from veriflow.sdk.adapters.base import BaseAdapter, SDKRequest

logger = get_logger(__name__)

DEFAULT_REFRESH_TTL_SECONDS = 7 * 24 * 3600


class AuthManager:
    """
    Single source of bearer tokens for one client context.

    Token exchanges use a dedicated adapter rather than the connection
    pool, so a caller holding a pooled lease can always obtain a token.

    Args:
        store: Credential store to read and update
        adapter: Transport used for the auth endpoints
        clock: Time source for expiry checks
        refresh_margin: Seconds before expiry at which a token is treated as expired
        api_key_path: Endpoint exchanging the API key for a token pair
        refresh_path: Endpoint exchanging a refresh token for a new pair
        timeout: Per-exchange timeout in seconds
        metrics: Optional metrics registry
    """

    def __init__(
        self,
        store: CredentialStore,
        adapter: BaseAdapter,
        clock: Optional[Clock] = None,
        refresh_margin: float = 30.0,
        api_key_path: str = "/auth/api-key",
        refresh_path: str = "/auth/refresh",
        timeout: Optional[float] = None,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self._store = store
        self._adapter = adapter
        self._clock = clock or SystemClock()
        self._refresh_margin = refresh_margin
        self._api_key_path = api_key_path
        self._refresh_path = refresh_path
        self._timeout = timeout
        self._metrics = metrics
        self._inflight: Optional[asyncio.Future] = None

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def exchange_in_flight(self) -> bool:
        """Whether a token exchange is currently running."""
        return self._inflight is not None and not self._inflight.done()

    async def get_token(self) -> str:
        """
        Return a valid access token value.

        Raises:
            AuthError: If refresh and re-authentication both fail
        """
        token = self._store.access_token
        if token is not None and not token.is_expired(self._clock.time(), self._refresh_margin):
            return token.value

        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._obtain())
            self._inflight.add_done_callback(self._on_exchange_done)

        # Cancelling one waiter leaves the shared exchange running.
        return await asyncio.shield(self._inflight)

    def invalidate(self, token_value: Optional[str] = None) -> bool:
        """
        Drop the current access token after the server rejected it.

        Args:
            token_value: The rejected token. If a concurrent refresh already
                replaced it, the newer token is kept.

        Returns:
            True if a token was dropped
        """
        dropped = self._store.invalidate_access_token(token_value)
        if dropped:
            logger.info("Access token invalidated")
        return dropped

    def _on_exchange_done(self, future: asyncio.Future) -> None:
        if self._inflight is future:
            self._inflight = None
        if not future.cancelled():
            # Mark the exception retrieved even if every waiter was cancelled.
            future.exception()

    async def _obtain(self) -> str:
        refresh = self._store.refresh_token
        if refresh is not None and not refresh.is_expired(self._clock.time()):
            try:
                return await self._exchange(
                    TokenExchangeKind.REFRESH,
                    self._refresh_path,
                    {"refresh_token": refresh.value},
                )
            except VeriflowError as e:
                # Revoked or expired server-side; fall back to the API key.
                logger.warning(f"Refresh token exchange failed, re-authenticating: {e}")

        if not self._store.api_key:
            raise AuthError("No API key configured and no valid refresh token available")

        return await self._exchange(
            TokenExchangeKind.API_KEY,
            self._api_key_path,
            {"api_key": self._store.api_key},
        )

    async def _exchange(
        self,
        kind: TokenExchangeKind,
        path: str,
        body: Dict[str, Any],
    ) -> str:
        request = SDKRequest(
            method="POST",
            path=path,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            body=body,
        )
        try:
            response = await self._adapter.send(request, timeout=self._timeout)
            if not response.ok:
                raise AuthError(
                    extract_error_message(response.body) or f"{kind.value} exchange rejected",
                    status=response.status_code,
                )
            access, refresh = self._parse_token_pair(response.body)
        except (TransportError, DecodeError) as e:
            self._record(kind, False, str(e))
            raise AuthError(f"{kind.value} exchange failed: {e}", status=e.status) from e
        except AuthError as e:
            self._record(kind, False, str(e))
            raise

        self._store.store(access, refresh)
        self._record(kind, True, None, expires_at=access.expires_at)
        return access.value

    def _parse_token_pair(self, body: Any) -> Tuple[Token, Optional[Token]]:
        if not isinstance(body, Mapping):
            raise AuthError("Token response is not a JSON object")

        access_value = _field(body, "access_token", "accessToken")
        if not access_value or not isinstance(access_value, str):
            raise AuthError("Token response is missing access_token")

        try:
            expires_in = float(_field(body, "expires_in", "expiresIn") or 3600)
            refresh_expires_in = float(
                _field(body, "refresh_expires_in", "refreshExpiresIn")
                or DEFAULT_REFRESH_TTL_SECONDS
            )
        except (TypeError, ValueError) as e:
            raise AuthError(f"Token response has invalid expiry: {e}") from e

        now = self._clock.time()
        access = Token(value=access_value, expires_at=now + expires_in)

        refresh_value = _field(body, "refresh_token", "refreshToken")
        refresh = None
        if refresh_value:
            # A refresh token always outlives the access token it accompanies.
            refresh_ttl = max(refresh_expires_in, expires_in + 1)
            refresh = Token(value=refresh_value, expires_at=now + refresh_ttl)
        return access, refresh

    def _record(
        self,
        kind: TokenExchangeKind,
        success: bool,
        reason: Optional[str],
        **kwargs: Any,
    ) -> None:
        log_token_exchange(logger, kind.value, success, reason=reason, **kwargs)
        if self._metrics is not None:
            self._metrics.record_token_exchange(kind, success)


def _field(body: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in body:
            return body[name]
    return None

