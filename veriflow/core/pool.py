"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

Connection Pool for the SDK runtime.

Owns a bounded set of reusable transport handles. Callers receive a
``Lease`` (a temporary right to use one handle) and must return it on
every exit path; ``ConnectionPool.lease()`` does that automatically.

- Handles are created lazily up to ``max_connections`` and live until the
  pool is drained.
- Idle handles are reused LIFO so the most recently used (warmest)
  connection is handed out first.
- When every handle is leased, acquirers suspend on a FIFO queue and are
  woken one per release; a released handle is passed straight to the
  oldest waiter so it cannot be taken by a newcomer.
"""

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable, Deque, Dict, List, Optional, Set

from veriflow.exceptions import PoolClosedError, PoolError
from veriflow.logging_config import get_logger
from veriflow.monitoring.metrics import MetricsRegistry
from veriflow.sdk.adapters.base import BaseAdapter, SDKRequest, SDKResponse

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    """Pooled connection states."""
    IDLE = "idle"
    LEASED = "leased"


@dataclass(eq=False)
class PooledConnection:
    """A transport handle owned by the pool."""
    id: int
    handle: BaseAdapter
    state: ConnectionState = ConnectionState.IDLE
    lease_count: int = 0


class Lease:
    """Non-owning right to use one pooled connection until released."""

    __slots__ = ("_pool", "_connection", "_released")

    def __init__(self, pool: ConnectionPool, connection: PooledConnection) -> None:
        self._pool = pool
        self._connection = connection
        self._released = False

    @property
    def connection_id(self) -> int:
        return self._connection.id

    @property
    def released(self) -> bool:
        return self._released

    @property
    def handle(self) -> BaseAdapter:
        """The leased transport handle.

        Raises:
            PoolError: If the lease has already been released
        """
        if self._released:
            raise PoolError(f"Lease on connection {self._connection.id} was already released")
        return self._connection.handle

    async def send(self, request: SDKRequest, timeout: Optional[float] = None) -> SDKResponse:
        """Send ``request`` over the leased handle."""
        return await self.handle.send(request, timeout=timeout)

    def __repr__(self) -> str:
        state = "released" if self._released else "active"
        return f"Lease(connection_id={self._connection.id}, {state})"


class ConnectionPool:
    """
    Bounded pool of transport handles.

    Args:
        factory: Creates a new transport handle
        max_connections: Upper bound on simultaneously leased handles
        metrics: Optional metrics registry
    """

    def __init__(
        self,
        factory: Callable[[], BaseAdapter],
        max_connections: int = 10,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        if max_connections < 1:
            raise ValueError(f"max_connections must be at least 1, got {max_connections}")
        self._factory = factory
        self._max_connections = max_connections
        self._metrics = metrics

        self._connections: Dict[int, PooledConnection] = {}
        self._idle: List[PooledConnection] = []
        self._waiters: Deque[asyncio.Future] = deque()
        self._next_id = 1
        self._closed = False
        self._closing_tasks: Set[asyncio.Task] = set()

        logger.info(f"ConnectionPool initialized: max_connections={max_connections}")

    # -- Introspection -----------------------------------------------------

    @property
    def max_connections(self) -> int:
        return self._max_connections

    @property
    def size(self) -> int:
        """Number of handles created so far."""
        return len(self._connections)

    @property
    def leased_count(self) -> int:
        return sum(
            1 for c in self._connections.values() if c.state is ConnectionState.LEASED
        )

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def waiting(self) -> int:
        """Number of suspended acquirers."""
        return sum(1 for f in self._waiters if not f.done())

    @property
    def closed(self) -> bool:
        return self._closed

    # -- Leasing -----------------------------------------------------------

    async def acquire(self) -> Lease:
        """
        Lease a connection, suspending while the pool is at capacity.

        Raises:
            PoolClosedError: If the pool has been drained
        """
        if self._closed:
            raise PoolClosedError("Connection pool has been drained")

        if not self._waiters:
            if self._idle:
                return self._lease(self._idle.pop())
            if len(self._connections) < self._max_connections:
                return self._lease(self._create())

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        self._update_metrics()
        logger.debug(f"Pool at capacity, {self.waiting} caller(s) waiting")
        try:
            connection = await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Handed a connection just as the caller was cancelled.
                self._return(waiter.result())
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            self._update_metrics()
            raise
        self._update_metrics()
        return Lease(self, connection)

    def release(self, lease: Lease) -> None:
        """
        Return a leased connection to the pool.

        Raises:
            PoolError: If the lease belongs to another pool or was already released
        """
        if lease._pool is not self:
            raise PoolError("Lease does not belong to this pool")
        if lease._released:
            raise PoolError(f"Connection {lease.connection_id} released twice")
        lease._released = True
        self._return(lease._connection)

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[Lease]:
        """Acquire a lease that is released on every exit path."""
        held = await self.acquire()
        try:
            yield held
        finally:
            self.release(held)

    async def drain(self) -> None:
        """
        Shut the pool down.

        Pending acquirers fail with ``PoolClosedError``, idle handles are
        closed now, and leased handles are closed as they are released.
        """
        if self._closed:
            return
        self._closed = True

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_exception(PoolClosedError("Connection pool has been drained"))

        idle, self._idle = self._idle, []
        for connection in idle:
            self._connections.pop(connection.id, None)
            await connection.handle.aclose()

        if self._closing_tasks:
            await asyncio.gather(*self._closing_tasks, return_exceptions=True)

        self._update_metrics()
        logger.info(f"ConnectionPool drained ({len(self._connections)} handle(s) still leased)")

    # -- Internals -----------------------------------------------------------

    def _create(self) -> PooledConnection:
        connection = PooledConnection(id=self._next_id, handle=self._factory())
        self._next_id += 1
        self._connections[connection.id] = connection
        logger.debug(f"Created pooled connection {connection.id}")
        return connection

    def _lease(self, connection: PooledConnection) -> Lease:
        connection.state = ConnectionState.LEASED
        connection.lease_count += 1
        self._update_metrics()
        return Lease(self, connection)

    def _return(self, connection: PooledConnection) -> None:
        if self._closed:
            self._connections.pop(connection.id, None)
            connection.state = ConnectionState.IDLE
            task = asyncio.ensure_future(connection.handle.aclose())
            self._closing_tasks.add(task)
            task.add_done_callback(self._closing_tasks.discard)
            self._update_metrics()
            return

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                connection.lease_count += 1
                waiter.set_result(connection)
                self._update_metrics()
                return

        connection.state = ConnectionState.IDLE
        self._idle.append(connection)
        self._update_metrics()

    def _update_metrics(self) -> None:
        if self._metrics is not None:
            self._metrics.update_pool_stats(self.leased_count, self.waiting)
