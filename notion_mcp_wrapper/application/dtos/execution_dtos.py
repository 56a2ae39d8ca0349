"""
Execution DTOs

Architectural Intent:
- Data Transfer Objects for orchestrator and use case boundaries
- StartResult gives start() a uniform non-throwing status
- ExecutionResult carries the provenance tag (mcp vs fallback)
"""

from dataclasses import dataclass, field
from typing import Any, Optional

SOURCE_MCP = "mcp"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class StartResult:
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    data: Any = None
    source: str = SOURCE_MCP

    def __post_init__(self) -> None:
        if self.source not in (SOURCE_MCP, SOURCE_FALLBACK):
            raise ValueError(f"Unknown result source: {self.source!r}")

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "data": self.data, "source": self.source}


@dataclass(frozen=True)
class PageMoveResult:
    page_id: str
    parent_id: str
    success: bool
    source: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class MoveReport:
    results: tuple[PageMoveResult, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def via_fallback(self) -> int:
        return sum(1 for r in self.results if r.source == SOURCE_FALLBACK)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0
