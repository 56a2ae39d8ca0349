"""Tests for WrapperOrchestrator with scripted transport and fallback doubles."""

import logging

import pytest
from unittest.mock import AsyncMock, MagicMock

from notion_mcp_wrapper.application.orchestration import WrapperOrchestrator
from notion_mcp_wrapper.application.resilience.retry_policy import RetryPolicy
from notion_mcp_wrapper.domain.errors import (
    ConfigurationError,
    FallbackError,
    InvalidParametersError,
    RemoteError,
    TransportConnectionError,
    UnknownOperationError,
)
from notion_mcp_wrapper.domain.events.connection_events import RecoveryNeededEvent
from notion_mcp_wrapper.domain.ports.tool_transport_port import ToolTransportPort
from notion_mcp_wrapper.domain.value_objects.connection_state import ConnectionState
from notion_mcp_wrapper.infrastructure.event_bus import EventBus
from notion_mcp_wrapper.infrastructure.fallback.notion_api_fallback import NotionAPIFallback


class ScriptedTransport(ToolTransportPort):
    """Replays a list of outcomes for successive call_tool invocations."""

    def __init__(self, outcomes=(), connect_error=None):
        self.outcomes = list(outcomes)
        self.connect_error = connect_error
        self.calls = []
        self.disconnects = 0
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self):
        return self._state

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        self._state = ConnectionState.READY

    async def call_tool(self, tool_name, arguments=None):
        self.calls.append((tool_name, arguments))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def disconnect(self):
        self.disconnects += 1
        self._state = ConnectionState.DISCONNECTED


def _fallback(result=None, error=None, supported=("movePage", "getPage")):
    fallback = MagicMock()
    fallback.supports = MagicMock(side_effect=lambda op: op in supported)
    fallback.execute = AsyncMock(return_value=result, side_effect=error)
    return fallback


def _no_wait_retry(max_retries=2):
    return RetryPolicy(max_retries=max_retries, base_delay=0.0, max_delay=0.0)


class TestStart:
    @pytest.mark.asyncio
    async def test_start_success(self):
        prober = MagicMock()
        prober.start = AsyncMock()
        orchestrator = WrapperOrchestrator(ScriptedTransport(), health_prober=prober)

        result = await orchestrator.start()

        assert result.success is True
        assert result.error is None
        prober.start.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_failure_is_reported_not_raised(self):
        transport = ScriptedTransport(
            connect_error=ConfigurationError("Notion credential required")
        )
        prober = MagicMock()
        prober.start = AsyncMock()
        orchestrator = WrapperOrchestrator(transport, health_prober=prober)

        result = await orchestrator.start()

        assert result.success is False
        assert "credential" in result.error
        assert result.to_dict() == {"success": False, "error": result.error}
        prober.start.assert_not_awaited()


class TestExecute:
    @pytest.mark.asyncio
    async def test_mcp_success(self):
        transport = ScriptedTransport([{"object": "page"}])
        orchestrator = WrapperOrchestrator(transport)

        result = await orchestrator.execute("getPage", {"page_id": "abc"})

        assert result.to_dict() == {"success": True, "data": {"object": "page"}, "source": "mcp"}
        assert transport.calls == [("API-retrieve-a-page", {"page_id": "abc"})]

    @pytest.mark.asyncio
    async def test_unknown_operation_fails_fast(self):
        transport = ScriptedTransport()
        fallback = _fallback()
        orchestrator = WrapperOrchestrator(
            transport, retry_policy=_no_wait_retry(), fallback=fallback
        )

        with pytest.raises(UnknownOperationError, match="renamePage"):
            await orchestrator.execute("renamePage", {})

        assert transport.calls == []
        fallback.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retry_recovers(self):
        transport = ScriptedTransport([RemoteError("flaky"), {"ok": True}])
        orchestrator = WrapperOrchestrator(transport, retry_policy=_no_wait_retry())

        result = await orchestrator.execute("search", {"query": "x"})

        assert result.data == {"ok": True}
        assert result.source == "mcp"
        assert len(transport.calls) == 2

    @pytest.mark.asyncio
    async def test_fallback_after_retries_exhausted(self):
        transport = ScriptedTransport([TransportConnectionError("down")] * 3)
        fallback = _fallback(result={"object": "page", "source": "fallback"})
        orchestrator = WrapperOrchestrator(
            transport, retry_policy=_no_wait_retry(2), fallback=fallback
        )
        params = {"page_id": "abc", "parent": {"page_id": "def"}}

        result = await orchestrator.execute("movePage", params)

        assert result.success is True
        assert result.source == "fallback"
        assert result.data == {"object": "page", "source": "fallback"}
        assert len(transport.calls) == 3
        fallback.execute.assert_awaited_once_with("movePage", params)

    @pytest.mark.asyncio
    async def test_unsupported_operation_propagates_primary_error(self):
        primary = RemoteError("search failed")
        fallback = _fallback()
        orchestrator = WrapperOrchestrator(
            ScriptedTransport([primary]), fallback=fallback
        )

        with pytest.raises(RemoteError) as exc_info:
            await orchestrator.execute("search", {"query": "x"})

        assert exc_info.value is primary
        fallback.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_fallback_propagates_primary_error(self):
        primary = TransportConnectionError("down")
        orchestrator = WrapperOrchestrator(ScriptedTransport([primary]))

        with pytest.raises(TransportConnectionError) as exc_info:
            await orchestrator.execute("movePage", {"page_id": "abc"})
        assert exc_info.value is primary

    @pytest.mark.asyncio
    async def test_both_paths_fail(self):
        primary = TransportConnectionError("mcp down")
        secondary = RemoteError("Could not find page")
        orchestrator = WrapperOrchestrator(
            ScriptedTransport([primary]), fallback=_fallback(error=secondary)
        )

        with pytest.raises(FallbackError, match="Fallback also failed: Could not find page") as exc_info:
            await orchestrator.execute("getPage", {"page_id": "abc"})

        assert exc_info.value.primary_error is primary
        assert exc_info.value.fallback_error is secondary

    @pytest.mark.asyncio
    async def test_missing_fallback_parameter_is_distinguishable(self):
        primary = TransportConnectionError("mcp down")
        orchestrator = WrapperOrchestrator(
            ScriptedTransport([primary]), fallback=NotionAPIFallback("secret_key")
        )

        with pytest.raises(FallbackError) as exc_info:
            await orchestrator.execute("movePage", {"page_id": "abc"})

        assert exc_info.value.primary_error is primary
        assert isinstance(exc_info.value.fallback_error, InvalidParametersError)

    @pytest.mark.asyncio
    async def test_params_are_copied(self):
        transport = ScriptedTransport([{}])
        orchestrator = WrapperOrchestrator(transport)
        params = {"page_id": "abc"}

        await orchestrator.execute("getPage", params)

        sent = transport.calls[0][1]
        assert sent == params
        assert sent is not params

    @pytest.mark.asyncio
    async def test_missing_params_become_empty(self):
        transport = ScriptedTransport([{}])
        await WrapperOrchestrator(transport).execute("search")
        assert transport.calls == [("API-post-search", {})]


class TestStopAndStatus:
    @pytest.mark.asyncio
    async def test_stop_is_best_effort(self):
        transport = ScriptedTransport()
        prober = MagicMock()
        prober.stop = AsyncMock(side_effect=RuntimeError("stuck"))
        orchestrator = WrapperOrchestrator(transport, health_prober=prober)

        await orchestrator.stop()

        assert transport.disconnects == 1

    @pytest.mark.asyncio
    async def test_stop_twice(self):
        transport = ScriptedTransport()
        orchestrator = WrapperOrchestrator(transport)
        await orchestrator.stop()
        await orchestrator.stop()
        assert transport.disconnects == 2

    @pytest.mark.asyncio
    async def test_status_follows_transport(self):
        transport = ScriptedTransport()
        orchestrator = WrapperOrchestrator(transport)
        assert orchestrator.status() is ConnectionState.DISCONNECTED
        await transport.connect()
        assert orchestrator.status() is ConnectionState.READY

    @pytest.mark.asyncio
    async def test_status_degraded_when_probes_fail(self):
        transport = ScriptedTransport()
        await transport.connect()
        prober = MagicMock()
        prober.probe_count = 2
        prober.is_healthy = MagicMock(return_value=False)
        orchestrator = WrapperOrchestrator(transport, health_prober=prober)

        assert orchestrator.status() is ConnectionState.DEGRADED

    @pytest.mark.asyncio
    async def test_status_not_degraded_before_first_probe(self):
        transport = ScriptedTransport()
        await transport.connect()
        prober = MagicMock()
        prober.probe_count = 0
        prober.is_healthy = MagicMock(return_value=False)
        orchestrator = WrapperOrchestrator(transport, health_prober=prober)

        assert orchestrator.status() is ConnectionState.READY


class TestRecoveryLogging:
    @pytest.mark.asyncio
    async def test_recovery_needed_is_logged(self, caplog):
        bus = EventBus()
        WrapperOrchestrator(ScriptedTransport(), event_bus=bus)

        with caplog.at_level(logging.WARNING, logger="notion_mcp_wrapper"):
            await bus.publish([RecoveryNeededEvent(reason="probe timed out")])

        assert "Recovery needed: probe timed out" in caplog.text

    @pytest.mark.asyncio
    async def test_fallback_warning_carries_operation(self, caplog):
        orchestrator = WrapperOrchestrator(
            ScriptedTransport([TransportConnectionError("down")]),
            fallback=_fallback(result={"object": "page"}),
        )
        with caplog.at_level(logging.WARNING, logger="notion_mcp_wrapper"):
            await orchestrator.execute("getPage", {"page_id": "abc"})

        records = [r for r in caplog.records if "using fallback" in r.getMessage()]
        assert records[0].operation == "getPage"
