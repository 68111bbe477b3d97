"""
Exception hierarchy for the Veriflow SDK runtime.

All custom exceptions inherit from VeriflowError base class. Every error
carries an optional HTTP ``status`` and a human-readable message so
terminal failures can always be reported with both.
"""

from typing import Any, List, Optional


class VeriflowError(Exception):
    """Base exception for all Veriflow SDK errors."""

    def __init__(self, message: str = "", status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is not None:
            return f"HTTP {self.status}: {self.message}"
        return self.message


# Configuration Errors
class ConfigurationError(VeriflowError):
    """Base exception for configuration-related errors."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration is invalid or malformed."""
    pass


class ConfigurationLoadError(ConfigurationError):
    """Raised when loading configuration fails."""
    pass


# SDK Errors
class SDKError(VeriflowError):
    """Base exception for SDK-related errors."""
    pass


class SDKConfigurationError(SDKError):
    """Raised when SDK configuration is invalid."""
    pass


class TransportError(SDKError):
    """Base exception for transient transport failures."""
    pass


class NetworkError(TransportError):
    """Raised when the transport is unreachable or the connection is reset."""
    pass


class TimeoutError(TransportError):
    """Raised when a transport call exceeds its deadline."""
    pass


class HTTPError(SDKError):
    """Raised when the server answers with a non-success status code."""

    def __init__(
        self,
        status: int,
        message: str = "",
        body: Any = None,
    ) -> None:
        super().__init__(message or f"request failed with status {status}", status=status)
        self.body = body

    @property
    def retryable(self) -> bool:
        """Whether the status is one the runtime retries with backoff."""
        return self.status == 429 or (self.status is not None and self.status >= 500)


class AuthError(SDKError):
    """Raised when token exchange, refresh or re-authentication fails."""
    pass


class DecodeError(SDKError):
    """Raised when a response or frame payload cannot be decoded."""
    pass


class GraphQLError(SDKError):
    """Raised when a GraphQL response carries an ``errors`` array."""

    def __init__(self, errors: List[Any], status: Optional[int] = None) -> None:
        messages = [
            e.get("message", str(e)) if isinstance(e, dict) else str(e)
            for e in errors
        ]
        super().__init__("; ".join(messages) or "GraphQL request failed", status=status)
        self.errors = errors


# Connection Pool Errors
class PoolError(SDKError):
    """Raised when a pooled connection is misused (double release, foreign handle)."""
    pass


class PoolClosedError(PoolError):
    """Raised when acquiring from a pool that has been drained."""
    pass


def is_retryable(exc: BaseException) -> bool:
    """
    Classify an exception as transient.

    Network failures, timeouts and 429/5xx responses are retried by the
    runtime; everything else is terminal.
    """
    if isinstance(exc, TransportError):
        return True
    if isinstance(exc, HTTPError):
        return exc.retryable
    return False


def extract_error_message(body: Any) -> Optional[str]:
    """Pull a human-readable message out of an error response body."""
    if isinstance(body, dict):
        for key in ("message", "error_description", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(body, str) and body:
        return body
    return None
