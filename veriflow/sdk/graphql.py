"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Veriflow, a product of Garudex Labs

GraphQL Client.

Wraps queries and mutations in a ``{query, variables}`` envelope and posts
them through the HTTP client. Queries are cacheable under a key built from
the normalized query text and variables; mutations never are, and a
successful mutation drops every cached query result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from veriflow.core.cache import make_graphql_key
from veriflow.exceptions import DecodeError, GraphQLError
from veriflow.logging_config import get_logger
from veriflow.sdk.adapters.base import SDKResponse
from veriflow.sdk.http_client import HTTPClient, RequestDescriptor

if TYPE_CHECKING:
    from veriflow.sdk.context import ClientContext

logger = get_logger(__name__)


def _check_envelope(response: SDKResponse) -> None:
    body = response.body
    if not isinstance(body, Mapping):
        raise DecodeError("GraphQL response is not a JSON object", status=response.status_code)
    errors = body.get("errors")
    if errors:
        raise GraphQLError(list(errors), status=response.status_code)


class GraphQLClient:
    """GraphQL operations over the HTTP client.

    Args:
        context: Shared client context.
        http: HTTP client used for transport.
    """

    def __init__(self, context: ClientContext, http: HTTPClient) -> None:
        self._ctx = context
        self._http = http

    @property
    def endpoint(self) -> str:
        return self._ctx.config.graphql_path

    async def query(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        operation_name: Optional[str] = None,
        cacheable: bool = True,
        cache_ttl: Optional[float] = None,
    ) -> Any:
        """Run a query and return its ``data``.

        Raises:
            GraphQLError: If the response carries an ``errors`` array
        """
        descriptor = RequestDescriptor(
            "POST",
            self.endpoint,
            body=self._envelope(query, variables, operation_name),
            cacheable=cacheable,
            idempotent=True,
            mutates=False,
            cache_key=make_graphql_key(query, variables, operation_name),
            cache_ttl=cache_ttl,
        )
        response = await self._http.execute(descriptor, validate=_check_envelope)
        return response.body.get("data")

    async def mutation(
        self,
        mutation: str,
        variables: Optional[Dict[str, Any]] = None,
        operation_name: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Any:
        """Run a mutation and return its ``data``.

        Mutations are retried only when an ``idempotency_key`` is supplied.
        """
        descriptor = RequestDescriptor(
            "POST",
            self.endpoint,
            body=self._envelope(mutation, variables, operation_name),
            idempotency_key=idempotency_key,
            mutates=True,
        )
        response = await self._http.execute(descriptor, validate=_check_envelope)
        return response.body.get("data")

    @staticmethod
    def _envelope(
        query: str,
        variables: Optional[Dict[str, Any]],
        operation_name: Optional[str],
    ) -> Dict[str, Any]:
        envelope: Dict[str, Any] = {"query": query, "variables": variables or {}}
        if operation_name:
            envelope["operationName"] = operation_name
        return envelope
