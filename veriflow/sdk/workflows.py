"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

SDK Workflow Operations.

Workflow definitions and runs, plus a live feed of run events over the
WebSocket session.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from veriflow.logging_config import get_logger
from veriflow.sdk.http_client import HTTPClient, RequestDescriptor
from veriflow.sdk.websocket import EventType, WebSocketClient, WebSocketEvent

logger = get_logger(__name__)

RUN_EVENT_PATTERN = "workflow.run.*"


class WorkflowOperations:
    """Workflow management and run control."""

    def __init__(self, http: HTTPClient, websocket: WebSocketClient) -> None:
        self._http = http
        self._websocket = websocket

    async def _execute(self, descriptor: RequestDescriptor) -> Any:
        response = await self._http.execute(descriptor)
        return response.body

    # -- Definitions -------------------------------------------------------

    async def create(
        self,
        name: str,
        steps: List[Dict[str, Any]],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a workflow definition."""
        body: Dict[str, Any] = {"name": name, "steps": steps}
        if metadata:
            body["metadata"] = metadata
        return await self._execute(RequestDescriptor.post("/workflows", body))

    async def get(self, workflow_id: str) -> Dict[str, Any]:
        """Get a workflow by ID."""
        return await self._execute(RequestDescriptor.get(f"/workflows/{workflow_id}"))

    async def list(self, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        """List workflows."""
        return await self._execute(
            RequestDescriptor.get("/workflows", params={"limit": limit, "offset": offset})
        )

    # -- Runs --------------------------------------------------------------

    async def run(
        self,
        workflow_id: str,
        inputs: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Start a run of a workflow."""
        return await self._execute(
            RequestDescriptor.post(
                f"/workflows/{workflow_id}/runs",
                {"inputs": inputs or {}},
                idempotency_key=idempotency_key,
            )
        )

    async def get_run(self, workflow_id: str, run_id: str) -> Dict[str, Any]:
        """Get the status of a run.

        Run status changes server-side without a client write, so it is
        never served from the cache.
        """
        return await self._execute(
            RequestDescriptor.get(f"/workflows/{workflow_id}/runs/{run_id}", cacheable=False)
        )

    async def cancel_run(self, workflow_id: str, run_id: str) -> Dict[str, Any]:
        """Cancel an in-progress run."""
        return await self._execute(
            RequestDescriptor.post(f"/workflows/{workflow_id}/runs/{run_id}/cancel")
        )

    async def watch(
        self,
        workflow_id: str,
        handler: Callable[[WebSocketEvent], None],
    ) -> Callable[[], None]:
        """Stream ``workflow.run.*`` events for one workflow.

        Connects the WebSocket session if needed.

        Returns:
            A callable that stops the stream
        """

        def _filter(event: WebSocketEvent) -> None:
            if event.type is EventType.MESSAGE:
                payload = event.payload if isinstance(event.payload, dict) else {}
                if payload.get("workflow_id") != workflow_id:
                    return
            handler(event)

        unsubscribe = self._websocket.subscribe(_filter, message_type=RUN_EVENT_PATTERN)
        if not self._websocket.is_open:
            try:
                await self._websocket.connect()
            except BaseException:
                unsubscribe()
                raise
        logger.debug(f"Watching run events of workflow {workflow_id}")
        return unsubscribe
