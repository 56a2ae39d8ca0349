"""
Event Bus Port

Architectural Intent:
- Abstract interface for publishing connection and health events
- Decouples the transport and prober from whoever observes them
"""

from typing import Protocol, Callable, Awaitable, runtime_checkable
from notion_mcp_wrapper.domain.events.event_base import WrapperEvent

EventHandler = Callable[[WrapperEvent], Awaitable[None]]


@runtime_checkable
class EventBusPort(Protocol):
    async def publish(self, events: list[WrapperEvent]) -> None: ...

    def subscribe(self, event_type: type, handler: EventHandler) -> None: ...

    def unsubscribe(self, event_type: type, handler: EventHandler) -> None: ...
