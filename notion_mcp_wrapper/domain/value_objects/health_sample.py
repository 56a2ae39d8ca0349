from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Optional


@dataclass(frozen=True)
class HealthSample:
    """
    Value Object holding the outcome of one health probe.
    Replaced wholesale after every probe, never mutated.
    """
    healthy: bool
    latency_ms: Optional[float] = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if self.latency_ms is not None and self.latency_ms < 0:
            raise ValueError(f"Latency cannot be negative, got {self.latency_ms}")
        if not self.healthy and self.latency_ms is not None:
            raise ValueError("Unhealthy samples carry no latency")

    @classmethod
    def ok(cls, latency_ms: float) -> "HealthSample":
        return cls(healthy=True, latency_ms=latency_ms)

    @classmethod
    def failed(cls) -> "HealthSample":
        return cls(healthy=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "latency_ms": self.latency_ms,
            "checked_at": self.checked_at.isoformat(),
        }
