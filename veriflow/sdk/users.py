"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

SDK User Operations.
"""

from __future__ import annotations

from typing import Any, Dict, List

from veriflow.sdk.http_client import HTTPClient, RequestDescriptor


class UserOperations:
    """User lookup and profile updates."""

    def __init__(self, http: HTTPClient) -> None:
        self._http = http

    async def me(self) -> Dict[str, Any]:
        """The user owning the API key."""
        response = await self._http.execute(RequestDescriptor.get("/users/me"))
        return response.body

    async def get(self, user_id: str) -> Dict[str, Any]:
        response = await self._http.execute(RequestDescriptor.get(f"/users/{user_id}"))
        return response.body

    async def list(self, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
        response = await self._http.execute(
            RequestDescriptor.get("/users", params={"limit": limit, "offset": offset})
        )
        return response.body

    async def update(self, user_id: str, **fields: Any) -> Dict[str, Any]:
        response = await self._http.execute(RequestDescriptor.patch(f"/users/{user_id}", fields))
        return response.body
