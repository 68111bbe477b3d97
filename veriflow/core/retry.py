"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Retry and backoff utilities for the SDK runtime.

This module computes exponential backoff delays and interprets
``Retry-After`` hints. The HTTP client and the WebSocket reconnection loop
both use it; the actual waiting goes through the injected clock.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional

from veriflow.logging_config import get_logger

logger = get_logger(__name__)


RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def compute_backoff(
    attempt: int,
    base_delay: float,
    max_delay: float,
    backoff_factor: float = 2.0,
) -> float:
    """
    Exponential backoff delay for a zero-based attempt number.

    Args:
        attempt: Number of attempts already made (0 for the first retry)
        base_delay: Delay in seconds before the first retry
        max_delay: Upper bound for any single delay
        backoff_factor: Multiplier applied per attempt (default: 2.0)

    Returns:
        ``min(max_delay, base_delay * backoff_factor ** attempt)``

    Example:
        >>> [compute_backoff(n, 0.5, 3.0) for n in range(4)]
        [0.5, 1.0, 2.0, 3.0]
    """
    if attempt < 0:
        attempt = 0
    return min(max_delay, base_delay * (backoff_factor ** attempt))


def is_retryable_status(status_code: int) -> bool:
    """Whether a status code is retried with backoff (429 and 5xx)."""
    return status_code in RETRYABLE_STATUS_CODES or 500 <= status_code < 600


def parse_retry_after(
    headers: Mapping[str, str],
    now: Optional[float] = None,
) -> Optional[float]:
    """
    Parse a ``Retry-After`` header into a delay in seconds.

    Accepts both delta-seconds (``"120"``) and HTTP-date values. Header
    lookup is case-insensitive. Dates in the past yield ``0.0``.

    Args:
        headers: Response headers
        now: Current epoch seconds, used for HTTP-date values

    Returns:
        Delay in seconds, or None when the header is absent or unparseable
    """
    value = None
    for name, header_value in headers.items():
        if name.lower() == "retry-after":
            value = header_value
            break
    if value is None:
        return None

    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring unparseable Retry-After header: {value!r}")
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    if now is None:
        now = datetime.now(timezone.utc).timestamp()
    return max(0.0, retry_at.timestamp() - now)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry ceiling and backoff shape for transient failures.

    Attributes:
        max_retries: Retries after the initial attempt (default: 3)
        base_delay: Initial backoff delay in seconds (default: 0.2)
        max_delay: Cap for computed delays and Retry-After hints (default: 10.0)
        backoff_factor: Multiplier between attempts (default: 2.0)
    """
    max_retries: int = 3
    base_delay: float = 0.2
    max_delay: float = 10.0
    backoff_factor: float = 2.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """
        Delay before the next attempt.

        A server-provided ``Retry-After`` hint takes precedence over the
        computed backoff, clamped to ``max_delay``.
        """
        if retry_after is not None:
            return min(self.max_delay, retry_after)
        return compute_backoff(attempt, self.base_delay, self.max_delay, self.backoff_factor)
