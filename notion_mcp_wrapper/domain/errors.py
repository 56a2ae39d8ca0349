"""
Wrapper Errors

Architectural Intent:
- Single error taxonomy shared by the transport, the resilience layer and the CLI
- Connection and timeout errors also derive from the builtin ConnectionError /
  TimeoutError so generic handlers keep working
- Caller programming errors (unknown / unsupported operation) are distinct so
  the orchestrator can skip retry and fallback for them
"""

from typing import Any, Optional


class WrapperError(Exception):
    """Base class for all Notion MCP wrapper errors."""


class ConfigurationError(WrapperError):
    """Missing credential or invalid configuration. Never retried."""


class TransportConnectionError(WrapperError, ConnectionError):
    """The MCP server could not be spawned, initialized, or went away."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class RequestTimeoutError(WrapperError, TimeoutError):
    """A call, handshake or probe exceeded its deadline."""


class InvalidParametersError(WrapperError, ValueError):
    """Operation parameters are missing or malformed. Never retried."""


class RemoteError(WrapperError):
    """Error reported by the remote side (MCP server or Notion API)."""

    def __init__(
        self,
        message: str,
        code: Optional[Any] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


class UnknownOperationError(WrapperError):
    """The operation has no MCP tool mapping."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Unknown operation: {operation}")
        self.operation = operation


class UnsupportedOperationError(WrapperError):
    """The operation cannot be executed through the fallback path."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Unsupported fallback operation: {operation}")
        self.operation = operation


class FallbackError(WrapperError):
    """The fallback path failed.

    When raised by the orchestrator after a primary failure, both the primary
    and the fallback errors are attached.
    """

    def __init__(
        self,
        message: str,
        primary_error: Optional[BaseException] = None,
        fallback_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.primary_error = primary_error
        self.fallback_error = fallback_error
