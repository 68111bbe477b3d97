"""
Monitoring for the Veriflow SDK runtime.
"""

from veriflow.monitoring.metrics import MetricsRegistry, TokenExchangeKind

__all__ = ["MetricsRegistry", "TokenExchangeKind"]
