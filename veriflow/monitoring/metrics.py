"""
Prometheus metrics for the Veriflow SDK runtime.

This module provides metrics for monitoring:
- HTTP request metrics (count, duration, status)
- Retry metrics (by reason)
- Response cache metrics (hits, misses, evictions)
- Connection pool metrics (leased, waiting)
- Token exchange metrics (kind, outcome)
- WebSocket session metrics (reconnects, state)

Each client context owns its own ``CollectorRegistry`` so several
independently configured clients can live in one process.
"""

from contextlib import contextmanager
from enum import Enum
import time
from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

from veriflow.logging_config import get_logger

logger = get_logger(__name__)


class TokenExchangeKind(str, Enum):
    """Token exchange kinds for metrics."""
    API_KEY = "api_key"
    REFRESH = "refresh"


_WEBSOCKET_STATES = ("connecting", "open", "reconnecting", "closed")


class MetricsRegistry:
    """
    Registry for all SDK runtime metrics.

    Provides metrics for:
    - Outbound HTTP requests
    - Retries
    - Response cache
    - Connection pool
    - Token exchanges
    - WebSocket sessions
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics registry.

        Args:
            registry: Optional Prometheus CollectorRegistry (creates new if not provided)
        """
        self.registry = registry or CollectorRegistry()

        # HTTP Request Metrics
        self.requests_total = Counter(
            'veriflow_requests_total',
            'Total number of logical SDK requests',
            ['method', 'status_code'],
            registry=self.registry
        )

        self.request_duration_seconds = Histogram(
            'veriflow_request_duration_seconds',
            'Transport attempt duration in seconds',
            ['method'],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self.registry
        )

        self.retries_total = Counter(
            'veriflow_retries_total',
            'Total number of retried transport attempts',
            ['reason'],
            registry=self.registry
        )

        # Cache Metrics
        self.cache_hits_total = Counter(
            'veriflow_cache_hits_total',
            'Total number of response cache hits',
            registry=self.registry
        )

        self.cache_misses_total = Counter(
            'veriflow_cache_misses_total',
            'Total number of response cache misses',
            registry=self.registry
        )

        self.cache_evictions_total = Counter(
            'veriflow_cache_evictions_total',
            'Total number of response cache entries removed by invalidation',
            registry=self.registry
        )

        # Connection Pool Metrics
        self.pool_leased = Gauge(
            'veriflow_pool_leased_connections',
            'Number of pooled connections currently leased',
            registry=self.registry
        )

        self.pool_waiting = Gauge(
            'veriflow_pool_waiting_callers',
            'Number of callers suspended waiting for a connection',
            registry=self.registry
        )

        # Auth Metrics
        self.token_exchanges_total = Counter(
            'veriflow_token_exchanges_total',
            'Total number of token exchanges',
            ['kind', 'outcome'],
            registry=self.registry
        )

        # WebSocket Metrics
        self.websocket_reconnects_total = Counter(
            'veriflow_websocket_reconnects_total',
            'Total number of WebSocket reconnection attempts',
            registry=self.registry
        )

        self.websocket_state = Gauge(
            'veriflow_websocket_state',
            'WebSocket session state (1 for the active state)',
            ['state'],
            registry=self.registry
        )

        logger.debug("MetricsRegistry initialized")

    # Request Metrics Methods

    def record_request(self, method: str, status_code: str):
        """
        Record a completed logical request.

        Args:
            method: HTTP method
            status_code: Final status code, or the error class name
        """
        self.requests_total.labels(method=method, status_code=status_code).inc()

    @contextmanager
    def time_request(self, method: str):
        """Context manager timing a single transport attempt."""
        start_time = time.time()
        try:
            yield
        finally:
            self.request_duration_seconds.labels(method=method).observe(
                time.time() - start_time
            )

    def record_retry(self, reason: str):
        """Record a retried attempt."""
        self.retries_total.labels(reason=reason).inc()

    # Cache Metrics Methods

    def record_cache_hit(self):
        """Record a response cache hit."""
        self.cache_hits_total.inc()

    def record_cache_miss(self):
        """Record a response cache miss."""
        self.cache_misses_total.inc()

    def record_cache_eviction(self, count: int = 1):
        """Record entries removed by invalidation."""
        if count:
            self.cache_evictions_total.inc(count)

    # Pool Metrics Methods

    def update_pool_stats(self, leased: int, waiting: int):
        """
        Update connection pool gauges.

        Args:
            leased: Number of leased connections
            waiting: Number of suspended acquirers
        """
        self.pool_leased.set(leased)
        self.pool_waiting.set(waiting)

    # Auth Metrics Methods

    def record_token_exchange(self, kind: TokenExchangeKind, success: bool):
        """Record a token exchange outcome."""
        self.token_exchanges_total.labels(
            kind=kind.value,
            outcome="success" if success else "failure",
        ).inc()

    # WebSocket Metrics Methods

    def record_websocket_reconnect(self):
        """Record a WebSocket reconnection attempt."""
        self.websocket_reconnects_total.inc()

    def set_websocket_state(self, state: str):
        """Mark ``state`` as the active WebSocket state."""
        for name in _WEBSOCKET_STATES:
            self.websocket_state.labels(state=name).set(1 if name == state else 0)

    # Export

    def generate_metrics(self) -> bytes:
        """
        Generate Prometheus metrics in text format.

        Returns:
            Metrics in Prometheus text format
        """
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        """
        Get content type for Prometheus metrics.

        Returns:
            Content type string
        """
        return CONTENT_TYPE_LATEST
