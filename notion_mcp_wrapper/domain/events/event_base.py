"""
Wrapper Events Base

Architectural Intent:
- Immutable notifications emitted by the transport and the health prober
- Dispatched by type through the event bus; observers never call back into
  the emitter synchronously
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any


@dataclass(frozen=True)
class WrapperEvent:
    occurred_at: str = field(
        default_factory=lambda: datetime.now(UTC).isoformat(), init=False, repr=False
    )

    @property
    def event_type(self) -> str:
        return self.__class__.__name__

    def payload(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_type": self.event_type,
            "occurred_at": self.occurred_at,
            **self.payload(),
        }
