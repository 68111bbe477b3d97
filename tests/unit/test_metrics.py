"""
Unit tests for Prometheus metrics.
"""

import pytest
from prometheus_client import CollectorRegistry

from veriflow.monitoring.metrics import MetricsRegistry, TokenExchangeKind


class TestMetricsRegistry:
    """Test MetricsRegistry class."""

    def test_initialization(self):
        registry = CollectorRegistry()
        metrics = MetricsRegistry(registry)
        assert metrics.registry is registry

    def test_registries_are_independent(self):
        first, second = MetricsRegistry(), MetricsRegistry()
        first.record_cache_hit()
        assert first.registry.get_sample_value("veriflow_cache_hits_total") == 1.0
        assert second.registry.get_sample_value("veriflow_cache_hits_total") == 0.0

    def test_record_request(self):
        metrics = MetricsRegistry()
        metrics.record_request("GET", "200")
        metrics.record_request("GET", "200")
        metrics.record_request("POST", "NetworkError")

        value = metrics.registry.get_sample_value
        assert value("veriflow_requests_total", {"method": "GET", "status_code": "200"}) == 2.0
        assert value("veriflow_requests_total", {"method": "POST", "status_code": "NetworkError"}) == 1.0

    def test_cache_counters(self):
        metrics = MetricsRegistry()
        metrics.record_cache_miss()
        metrics.record_cache_eviction(3)
        metrics.record_cache_eviction(0)

        value = metrics.registry.get_sample_value
        assert value("veriflow_cache_misses_total") == 1.0
        assert value("veriflow_cache_evictions_total") == 3.0

    def test_pool_gauges(self):
        metrics = MetricsRegistry()
        metrics.update_pool_stats(leased=4, waiting=2)

        value = metrics.registry.get_sample_value
        assert value("veriflow_pool_leased_connections") == 4.0
        assert value("veriflow_pool_waiting_callers") == 2.0

    def test_token_exchange(self):
        metrics = MetricsRegistry()
        metrics.record_token_exchange(TokenExchangeKind.REFRESH, success=False)
        assert metrics.registry.get_sample_value(
            "veriflow_token_exchanges_total", {"kind": "refresh", "outcome": "failure"}
        ) == 1.0

    def test_websocket_state_is_one_hot(self):
        metrics = MetricsRegistry()
        metrics.set_websocket_state("open")
        metrics.set_websocket_state("reconnecting")

        value = metrics.registry.get_sample_value
        assert value("veriflow_websocket_state", {"state": "reconnecting"}) == 1.0
        assert value("veriflow_websocket_state", {"state": "open"}) == 0.0

    def test_generate_metrics(self):
        metrics = MetricsRegistry()
        metrics.record_retry("503")
        output = metrics.generate_metrics()
        assert b"veriflow_retries_total" in output
        assert metrics.get_content_type().startswith("text/plain")


class TestMetricsContextManagers:
    def test_time_request(self):
        metrics = MetricsRegistry()
        with metrics.time_request("GET"):
            pass
        assert metrics.registry.get_sample_value(
            "veriflow_request_duration_seconds_count", {"method": "GET"}
        ) == 1.0

    def test_time_request_with_error(self):
        metrics = MetricsRegistry()
        with pytest.raises(ValueError):
            with metrics.time_request("POST"):
                raise ValueError("boom")
        assert metrics.registry.get_sample_value(
            "veriflow_request_duration_seconds_count", {"method": "POST"}
        ) == 1.0
