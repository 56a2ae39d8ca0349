"""
Event Bus Infrastructure

Architectural Intent:
- In-memory event bus delivering wrapper events to async observers
- Dispatch is by exact event type; observer order is unspecified
- A failing observer is logged; delivery to the remaining observers continues
"""

import logging

from notion_mcp_wrapper.domain.events.event_base import WrapperEvent
from notion_mcp_wrapper.domain.ports.event_bus_port import EventHandler

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = {}

    async def publish(self, events: list[WrapperEvent]) -> None:
        for event in events:
            for handler in list(self._handlers.get(type(event), ())):
                try:
                    await handler(event)
                except Exception:
                    logger.exception(
                        "Event handler %r failed for %s", handler, event.event_type
                    )

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: type, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, ()))
