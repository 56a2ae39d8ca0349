"""
Connection and Health Events

Architectural Intent:
- TransportDisconnectedEvent: the MCP server process exited (any reason)
- HealthChangedEvent: the prober's healthy flag changed (or a probe failed)
- RecoveryNeededEvent: a probe failed; emitted on every failure so a
  supervisor always receives a fresh actionable signal
"""

from dataclasses import dataclass
from typing import Any, Optional

from notion_mcp_wrapper.domain.events.event_base import WrapperEvent


@dataclass(frozen=True)
class TransportDisconnectedEvent(WrapperEvent):
    exit_code: Optional[int] = None

    def payload(self) -> dict[str, Any]:
        return {"exit_code": self.exit_code}


@dataclass(frozen=True)
class HealthChangedEvent(WrapperEvent):
    healthy: bool = False
    latency_ms: Optional[float] = None

    def payload(self) -> dict[str, Any]:
        return {"healthy": self.healthy, "latency_ms": self.latency_ms}


@dataclass(frozen=True)
class RecoveryNeededEvent(WrapperEvent):
    reason: str = ""

    def payload(self) -> dict[str, Any]:
        return {"reason": self.reason}
