"""
Wrapper Orchestrator

Architectural Intent:
- Single execute(operation, params) entry point over the MCP transport
- Layers: per-call timeout (transport) -> retry with backoff -> REST fallback
- Manages the start/stop lifecycle of the transport and the health prober

Propagation Policy:
- Unknown operations fail fast: no retry, no fallback
- Primary failures fall back only when a fallback is configured and supports
  the operation; otherwise the original error propagates unchanged
- A failing fallback raises FallbackError carrying both errors
- start() never raises; stop() is best-effort
"""

import logging
from typing import Any, Optional

from notion_mcp_wrapper.application.dtos.execution_dtos import (
    ExecutionResult,
    StartResult,
    SOURCE_FALLBACK,
    SOURCE_MCP,
)
from notion_mcp_wrapper.application.resilience.retry_policy import RetryPolicy
from notion_mcp_wrapper.domain.errors import FallbackError, UnknownOperationError
from notion_mcp_wrapper.domain.events.connection_events import RecoveryNeededEvent
from notion_mcp_wrapper.domain.ports.event_bus_port import EventBusPort
from notion_mcp_wrapper.domain.ports.fallback_port import FallbackPort
from notion_mcp_wrapper.domain.ports.tool_transport_port import ToolTransportPort
from notion_mcp_wrapper.domain.value_objects.connection_state import ConnectionState
from notion_mcp_wrapper.domain.value_objects.operation_catalog import tool_for
from notion_mcp_wrapper.infrastructure.health.health_prober import HealthProber

logger = logging.getLogger(__name__)


class WrapperOrchestrator:
    def __init__(
        self,
        transport: ToolTransportPort,
        health_prober: Optional[HealthProber] = None,
        retry_policy: Optional[RetryPolicy] = None,
        fallback: Optional[FallbackPort] = None,
        event_bus: Optional[EventBusPort] = None,
    ) -> None:
        self.transport = transport
        self.health_prober = health_prober
        self.retry_policy = retry_policy
        self.fallback = fallback
        if event_bus is not None:
            event_bus.subscribe(RecoveryNeededEvent, self._on_recovery_needed)

    async def start(self) -> StartResult:
        """Connect the transport and start health probing."""
        try:
            await self.transport.connect()
            if self.health_prober is not None:
                await self.health_prober.start()
        except Exception as e:
            logger.error("Failed to start: %s", e)
            return StartResult(success=False, error=str(e))

        logger.info("Started successfully")
        return StartResult(success=True)

    async def execute(
        self, operation: str, params: Optional[dict[str, Any]] = None
    ) -> ExecutionResult:
        """Execute a logical operation via MCP, falling back to the REST API."""
        tool_name = tool_for(operation)
        if tool_name is None:
            raise UnknownOperationError(operation)

        arguments = dict(params or {})

        async def call_mcp() -> Any:
            logger.debug("Executing %s via MCP tool %s", operation, tool_name)
            return await self.transport.call_tool(tool_name, arguments)

        try:
            if self.retry_policy is not None:
                data = await self.retry_policy.execute(call_mcp)
            else:
                data = await call_mcp()
        except Exception as e:
            if self.fallback is None or not self.fallback.supports(operation):
                raise
            logger.warning(
                "MCP failed for %s, using fallback: %s",
                operation,
                e,
                extra={"operation": operation},
            )
            return await self._execute_with_fallback(operation, arguments, e)

        return ExecutionResult(success=True, data=data, source=SOURCE_MCP)

    async def stop(self) -> None:
        """Stop probing and disconnect. Cleanup problems are logged, not raised."""
        if self.health_prober is not None:
            try:
                await self.health_prober.stop()
            except Exception as e:
                logger.warning("Error stopping health prober: %s", e)
        try:
            await self.transport.disconnect()
        except Exception as e:
            logger.warning("Error disconnecting transport: %s", e)
        logger.info("Stopped")

    def status(self) -> ConnectionState:
        """Transport state, reported as DEGRADED when ready but failing probes."""
        state = self.transport.state
        prober = self.health_prober
        if (
            state is ConnectionState.READY
            and prober is not None
            and prober.probe_count > 0
            and not prober.is_healthy()
        ):
            return ConnectionState.DEGRADED
        return state

    async def _execute_with_fallback(
        self, operation: str, params: dict[str, Any], primary_error: Exception
    ) -> ExecutionResult:
        try:
            data = await self.fallback.execute(operation, params)
        except Exception as e:
            raise FallbackError(
                f"Fallback also failed: {e}",
                primary_error=primary_error,
                fallback_error=e,
            ) from e
        return ExecutionResult(success=True, data=data, source=SOURCE_FALLBACK)

    async def _on_recovery_needed(self, event: RecoveryNeededEvent) -> None:
        logger.warning("Recovery needed: %s", event.reason)
