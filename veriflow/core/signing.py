"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Request signing for the SDK runtime.

Computes an HMAC-SHA256 integrity signature over method, path, timestamp
and the serialized body. The signer holds only the shared secret and
performs no I/O.
"""

import hashlib
import hmac
from typing import Any, Dict, Optional, Union

from veriflow.sdk.adapters.base import encode_body

TIMESTAMP_HEADER = "X-Veriflow-Timestamp"
SIGNATURE_HEADER = "X-Veriflow-Signature"


class RequestSigner:
    """
    HMAC request signer.

    The receiver recomputes the signature from the same four inputs, so the
    timestamp travels with the request in ``X-Veriflow-Timestamp``.

    Args:
        secret_key: Shared secret
    """

    def __init__(self, secret_key: Union[str, bytes]) -> None:
        if not secret_key:
            raise ValueError("secret_key cannot be empty")
        self._secret = secret_key.encode() if isinstance(secret_key, str) else secret_key

    def sign(
        self,
        method: str,
        path: str,
        timestamp: Union[int, str],
        body: Optional[Any] = None,
    ) -> str:
        """
        Compute the signature for one request.

        Args:
            method: HTTP method (case-insensitive)
            path: Request path as sent
            timestamp: Unix timestamp placed in the request headers
            body: Request body; serialized with ``encode_body`` (empty if None)

        Returns:
            Hex-encoded HMAC-SHA256 digest
        """
        payload = f"{method.upper()}{path}{timestamp}{encode_body(body)}"
        return hmac.new(
            self._secret,
            payload.encode(),
            hashlib.sha256,
        ).hexdigest()

    def verify(
        self,
        signature: str,
        method: str,
        path: str,
        timestamp: Union[int, str],
        body: Optional[Any] = None,
    ) -> bool:
        """Constant-time check of a signature against the request inputs."""
        expected = self.sign(method, path, timestamp, body)
        return hmac.compare_digest(expected, signature)

    def signed_headers(
        self,
        method: str,
        path: str,
        timestamp: Union[int, str],
        body: Optional[Any] = None,
    ) -> Dict[str, str]:
        """Timestamp and signature headers for an outbound request."""
        return {
            TIMESTAMP_HEADER: str(timestamp),
            SIGNATURE_HEADER: self.sign(method, path, timestamp, body),
        }
