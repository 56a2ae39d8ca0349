"""
MCP Clients Package

Architectural Intent:
- Contains the MCP client transport that drives the Notion MCP server
- Implements ToolTransportPort over a stdio subprocess
"""

from notion_mcp_wrapper.infrastructure.mcp_clients.stdio_transport import (
    StdioTransport,
    LineFramer,
    PendingRequest,
    parse_tool_result,
)

__all__ = ["StdioTransport", "LineFramer", "PendingRequest", "parse_tool_result"]
