"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Credential storage for the SDK runtime.

Holds the raw API key and, once obtained, the access/refresh token pair.
Only the AuthManager mutates a CredentialStore after construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Token:
    """A bearer or refresh token with its absolute expiry (epoch seconds)."""
    value: str
    expires_at: float

    def is_expired(self, now: float, margin: float = 0.0) -> bool:
        """Whether the token is expired, or will be within ``margin`` seconds."""
        return now + margin >= self.expires_at

    def __repr__(self) -> str:
        # Token material stays out of logs and tracebacks.
        return f"Token(value='***', expires_at={self.expires_at})"


@dataclass
class Credentials:
    """API key plus the current token pair, if any."""
    api_key: str
    access_token: Optional[Token] = None
    refresh_token: Optional[Token] = None

    def __repr__(self) -> str:
        return (
            f"Credentials(api_key='***', access_token={self.access_token!r}, "
            f"refresh_token={self.refresh_token!r})"
        )


class CredentialStore:
    """
    Mutable holder for one set of credentials.

    At most one access token is current; storing a new pair replaces both
    tokens atomically (no suspension point between the two assignments).
    """

    def __init__(self, api_key: str) -> None:
        self._credentials = Credentials(api_key=api_key)

    @property
    def api_key(self) -> str:
        return self._credentials.api_key

    @property
    def access_token(self) -> Optional[Token]:
        return self._credentials.access_token

    @property
    def refresh_token(self) -> Optional[Token]:
        return self._credentials.refresh_token

    def store(self, access_token: Token, refresh_token: Optional[Token] = None) -> None:
        """Replace the token pair. A missing refresh token clears the old one."""
        self._credentials.access_token = access_token
        self._credentials.refresh_token = refresh_token

    def invalidate_access_token(self, value: Optional[str] = None) -> bool:
        """
        Drop the current access token.

        Args:
            value: If given, only drop the token when it still has this value,
                so a token already replaced by a concurrent refresh survives.

        Returns:
            True if a token was dropped
        """
        current = self._credentials.access_token
        if current is None:
            return False
        if value is not None and current.value != value:
            return False
        self._credentials.access_token = None
        return True

    def clear(self) -> None:
        """Forget both tokens; the API key is kept."""
        self._credentials.access_token = None
        self._credentials.refresh_token = None

    def snapshot(self) -> Credentials:
        """Copy of the current credentials."""
        return Credentials(
            api_key=self._credentials.api_key,
            access_token=self._credentials.access_token,
            refresh_token=self._credentials.refresh_token,
        )
