"""
Application Orchestration Package

Architectural Intent:
- Contains the wrapper orchestrator layering retry and REST fallback over
  the MCP transport
"""

from notion_mcp_wrapper.application.orchestration.wrapper_orchestrator import (
    WrapperOrchestrator,
)

__all__ = ["WrapperOrchestrator"]
