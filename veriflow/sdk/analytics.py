"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

SDK Analytics Operations.

Read-only reporting: cached REST summaries, GraphQL queries and a live
event stream.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from veriflow.sdk.graphql import GraphQLClient
from veriflow.sdk.http_client import HTTPClient, RequestDescriptor
from veriflow.sdk.websocket import WebSocketClient, WebSocketEvent

ANALYTICS_EVENT = "analytics.event"


class AnalyticsOperations:
    """Analytics reporting."""

    def __init__(
        self,
        http: HTTPClient,
        graphql: GraphQLClient,
        websocket: WebSocketClient,
    ) -> None:
        self._http = http
        self._graphql = graphql
        self._websocket = websocket

    async def summary(self, start: str, end: str) -> Dict[str, Any]:
        """Aggregate verification and workflow counts between two ISO-8601 instants."""
        response = await self._http.execute(
            RequestDescriptor.get("/analytics/summary", params={"start": start, "end": end})
        )
        return response.body

    async def events(
        self,
        event_type: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Recent analytics events, newest first."""
        params: Dict[str, Any] = {"limit": limit}
        if event_type:
            params["event_type"] = event_type
        response = await self._http.execute(
            RequestDescriptor.get("/analytics/events", params=params)
        )
        return response.body

    async def query(self, gql: str, variables: Optional[Dict[str, Any]] = None) -> Any:
        """Run an analytics GraphQL query."""
        return await self._graphql.query(gql, variables)

    async def stream(self, handler: Callable[[WebSocketEvent], None]) -> Callable[[], None]:
        """Deliver live ``analytics.event`` messages to ``handler``.

        Returns:
            A callable that stops the stream
        """
        unsubscribe = self._websocket.subscribe(handler, message_type=ANALYTICS_EVENT)
        if not self._websocket.is_open:
            try:
                await self._websocket.connect()
            except BaseException:
                unsubscribe()
                raise
        return unsubscribe
