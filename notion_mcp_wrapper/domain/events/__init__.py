"""
Domain Events Package

Architectural Intent:
- Contains the notifications published on the event bus
- Events are the only channel from the transport and prober to observers
"""

from notion_mcp_wrapper.domain.events.event_base import WrapperEvent
from notion_mcp_wrapper.domain.events.connection_events import (
    TransportDisconnectedEvent,
    HealthChangedEvent,
    RecoveryNeededEvent,
)

__all__ = [
    "WrapperEvent",
    "TransportDisconnectedEvent",
    "HealthChangedEvent",
    "RecoveryNeededEvent",
]
