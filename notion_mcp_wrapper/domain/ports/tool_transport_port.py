"""
Tool Transport Port

Architectural Intent:
- Port interface for invoking named MCP tools on a remote server
- Implemented by the stdio subprocess transport; test doubles implement it too
- Consumed by the orchestrator and the health prober
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from notion_mcp_wrapper.domain.value_objects.connection_state import ConnectionState


class ToolTransportPort(ABC):
    """
    Port interface for a connection that executes MCP tools.
    """

    @property
    @abstractmethod
    def state(self) -> ConnectionState:
        """Current connection lifecycle state."""

    @abstractmethod
    async def connect(self) -> None:
        """
        Establishes the connection. Idempotent; concurrent callers share
        one in-flight attempt.
        """

    @abstractmethod
    async def call_tool(
        self, tool_name: str, arguments: Optional[dict[str, Any]] = None
    ) -> Any:
        """
        Invokes a tool and returns its unwrapped result.
        Connects first when not ready.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Tears down the connection. Safe to call repeatedly."""

    @property
    def is_ready(self) -> bool:
        return self.state is ConnectionState.READY
