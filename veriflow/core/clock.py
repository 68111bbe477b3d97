"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Clock abstraction for the SDK runtime.

Token expiry, cache TTLs, retry backoff and WebSocket reconnection delays
all read time through a ``Clock`` so they can be driven deterministically.
"""

import asyncio
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Source of time and suspension for runtime components."""

    @abstractmethod
    def time(self) -> float:
        """Wall-clock time in epoch seconds (used for token expiry)."""
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Monotonic seconds (used for cache TTLs and latency)."""
        ...

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        ...


class SystemClock(Clock):
    """Clock backed by the ``time`` module and ``asyncio.sleep``."""

    def time(self) -> float:
        return time.time()

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))
