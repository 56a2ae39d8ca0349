"""
Operation Catalog

Architectural Intent:
- Static mapping from logical operation names to Notion MCP tool names
- Separate static subset of operations the REST fallback can execute
- Both tables are immutable configuration, never runtime state
"""

from types import MappingProxyType
from typing import Mapping, Optional

OPERATION_TOOLS: Mapping[str, str] = MappingProxyType({
    "movePage": "API-move-page",
    "getPage": "API-retrieve-a-page",
    "updatePage": "API-patch-page",
    "createPage": "API-post-page",
    "deletePage": "API-delete-a-block",
    "getBlockChildren": "API-get-block-children",
    "appendBlocks": "API-patch-block-children",
    "queryDatabase": "API-query-data-source",
    "search": "API-post-search",
})

FALLBACK_OPERATIONS: frozenset[str] = frozenset({
    "movePage",
    "getPage",
    "updatePage",
    "createPage",
    "deletePage",
})


def tool_for(operation: str) -> Optional[str]:
    """Return the MCP tool name for an operation, or None if unmapped."""
    return OPERATION_TOOLS.get(operation)


def supports_fallback(operation: str) -> bool:
    return operation in FALLBACK_OPERATIONS
