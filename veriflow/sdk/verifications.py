"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

SDK Verification Operations.

Provides CRUD operations for verifications.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from veriflow.logging_config import get_logger
from veriflow.sdk.http_client import HTTPClient, RequestDescriptor

logger = get_logger(__name__)


class VerificationOperations:
    """Verification management.

    Reads are cached; every write invalidates the cached reads of the
    verification it touches.
    """

    def __init__(self, http: HTTPClient) -> None:
        self._http = http

    async def _execute(self, descriptor: RequestDescriptor) -> Any:
        response = await self._http.execute(descriptor)
        return response.body

    # -- Public API --------------------------------------------------------

    async def create(
        self,
        type: str,
        subject: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Start a new verification.

        Creation is retried on transient failures only when an
        ``idempotency_key`` is supplied.
        """
        body: Dict[str, Any] = {"type": type, "subject": subject}
        if metadata:
            body["metadata"] = metadata
        return await self._execute(
            RequestDescriptor.post("/verifications", body, idempotency_key=idempotency_key)
        )

    async def get(self, verification_id: str) -> Dict[str, Any]:
        """Get a verification by ID."""
        return await self._execute(RequestDescriptor.get(f"/verifications/{verification_id}"))

    async def list(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """List verifications, optionally filtered by status."""
        params: Dict[str, Any] = {"limit": limit, "offset": offset}
        if status:
            params["status"] = status
        return await self._execute(RequestDescriptor.get("/verifications", params=params))

    async def update(self, verification_id: str, **fields: Any) -> Dict[str, Any]:
        """Update an existing verification."""
        return await self._execute(
            RequestDescriptor.patch(f"/verifications/{verification_id}", fields)
        )

    async def cancel(self, verification_id: str) -> Dict[str, Any]:
        """Cancel a pending verification."""
        return await self._execute(
            RequestDescriptor.post(
                f"/verifications/{verification_id}/cancel",
                invalidates=("/verifications",),
            )
        )

    async def delete(self, verification_id: str) -> Any:
        """Delete a verification."""
        return await self._execute(RequestDescriptor.delete(f"/verifications/{verification_id}"))
