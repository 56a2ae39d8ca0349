"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the orchestrator needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from notion_mcp_wrapper.domain.ports.tool_transport_port import ToolTransportPort
from notion_mcp_wrapper.domain.ports.fallback_port import FallbackPort
from notion_mcp_wrapper.domain.ports.event_bus_port import EventBusPort, EventHandler

__all__ = [
    "ToolTransportPort",
    "FallbackPort",
    "EventBusPort",
    "EventHandler",
]
