"""
Fallback Port

Architectural Intent:
- Abstract interface for an alternate execution path used when the primary
  MCP transport fails
- Implementations declare which logical operations they can execute
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class FallbackPort(Protocol):
    def supported_operations(self) -> list[str]: ...

    def supports(self, operation: str) -> bool: ...

    async def execute(self, operation: str, params: dict[str, Any]) -> dict[str, Any]: ...
