"""
Notion REST API Fallback

Architectural Intent:
- Implements FallbackPort by calling the Notion REST API directly with httpx
- Used only when the MCP path failed and the operation is in the supported subset
- Translates a logical operation name and parameter bag into method, path and body

Design Decisions:
- Deletion is a soft delete: PATCH archived=true, matching Notion semantics
- A payload with object == "error" raises RemoteError with Notion's message
- Successful payloads are tagged with source="fallback"
- Credential is validated here independently of the MCP transport
"""

from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote
import logging

import httpx

from notion_mcp_wrapper.domain.errors import (
    ConfigurationError,
    FallbackError,
    InvalidParametersError,
    RemoteError,
    UnsupportedOperationError,
)
from notion_mcp_wrapper.domain.value_objects.operation_catalog import FALLBACK_OPERATIONS

logger = logging.getLogger(__name__)

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
SOURCE_TAG = "fallback"

_UPDATE_FIELDS = ("properties", "archived", "icon", "cover")


@dataclass(frozen=True)
class FallbackRequest:
    method: str
    path: str
    body: Optional[dict[str, Any]] = None


def _page_path(params: dict[str, Any], operation: str) -> str:
    page_id = params.get("page_id")
    if not page_id:
        raise InvalidParametersError(f"page_id is required for {operation}")
    return f"/pages/{quote(str(page_id), safe='')}"


def build_request(operation: str, params: dict[str, Any]) -> FallbackRequest:
    """Translate a logical operation into a Notion REST request."""
    if operation == "getPage":
        return FallbackRequest("GET", _page_path(params, operation))

    if operation == "createPage":
        body = {
            key: params[key]
            for key in ("parent", "properties", "children")
            if params.get(key) is not None
        }
        return FallbackRequest("POST", "/pages", body)

    if operation == "updatePage":
        body = {key: params[key] for key in _UPDATE_FIELDS if params.get(key) is not None}
        return FallbackRequest("PATCH", _page_path(params, operation), body)

    if operation == "movePage":
        if not params.get("parent"):
            raise InvalidParametersError("parent is required for movePage")
        return FallbackRequest(
            "PATCH", _page_path(params, operation), {"parent": params["parent"]}
        )

    if operation == "deletePage":
        return FallbackRequest("PATCH", _page_path(params, operation), {"archived": True})

    raise UnsupportedOperationError(operation)


class NotionAPIFallback:
    """Executes page operations against the Notion REST API."""

    def __init__(
        self,
        credential: Optional[str],
        base_url: str = NOTION_API_BASE,
        notion_version: str = NOTION_VERSION,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._credential = credential
        self._base_url = base_url.rstrip("/")
        self._notion_version = notion_version
        self._timeout = timeout
        self._transport = transport

    def supported_operations(self) -> list[str]:
        return sorted(FALLBACK_OPERATIONS)

    def supports(self, operation: str) -> bool:
        return operation in FALLBACK_OPERATIONS

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._credential}",
            "Notion-Version": self._notion_version,
            "Content-Type": "application/json",
        }

    async def execute(self, operation: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self.supports(operation):
            raise UnsupportedOperationError(operation)
        if not self._credential:
            raise ConfigurationError("NOTION_API_KEY or NOTION_TOKEN required for fallback")

        request = build_request(operation, params)
        logger.info("Fallback %s %s (%s)", request.method, request.path, operation)

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    request.method,
                    request.path,
                    headers=self._headers(),
                    json=request.body,
                )
        except httpx.HTTPError as e:
            raise FallbackError(f"Fallback failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FallbackError(
                f"Fallback failed: non-JSON response (HTTP {response.status_code})"
            ) from e

        if not isinstance(payload, dict):
            raise FallbackError(
                f"Fallback failed: unexpected response shape (HTTP {response.status_code})"
            )

        if payload.get("object") == "error":
            raise RemoteError(
                payload.get("message") or "Notion API error",
                code=payload.get("code"),
                status=payload.get("status", response.status_code),
            )

        if response.is_error:
            raise RemoteError(
                f"Notion API returned HTTP {response.status_code}",
                status=response.status_code,
            )

        return {**payload, "source": SOURCE_TAG}
