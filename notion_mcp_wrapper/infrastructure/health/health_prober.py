"""
Health Prober

Architectural Intent:
- Periodically issues a lightweight tool call through the shared transport
- Tracks a binary healthy/unhealthy sample plus the last latency
- Publishes HealthChangedEvent on recovery (edge-triggered) and both
  HealthChangedEvent and RecoveryNeededEvent on every failed probe

Probe Loop:
- One asyncio task runs probes back to back: probe, sleep(interval), probe...
- A probe never starts before the previous one resolved, timed out, or the
  prober was stopped
- Each probe is bounded by its own timeout, independent of the transport's
  per-request timeout (the shorter of the two governs)
"""

import asyncio
import logging
import time
from typing import Any, Optional

from notion_mcp_wrapper.domain.errors import WrapperError
from notion_mcp_wrapper.domain.events.connection_events import (
    HealthChangedEvent,
    RecoveryNeededEvent,
)
from notion_mcp_wrapper.domain.events.event_base import WrapperEvent
from notion_mcp_wrapper.domain.ports.event_bus_port import EventBusPort
from notion_mcp_wrapper.domain.ports.tool_transport_port import ToolTransportPort
from notion_mcp_wrapper.domain.value_objects.health_sample import HealthSample

logger = logging.getLogger(__name__)


class HealthProber:
    def __init__(
        self,
        transport: ToolTransportPort,
        event_bus: Optional[EventBusPort] = None,
        interval: float = 5.0,
        timeout: float = 10.0,
        probe_tool: str = "API-get-self",
        probe_arguments: Optional[dict[str, Any]] = None,
    ) -> None:
        self._transport = transport
        self._event_bus = event_bus
        self._interval = interval
        self._timeout = timeout
        self._probe_tool = probe_tool
        self._probe_arguments = dict(probe_arguments or {})
        self._sample = HealthSample.failed()
        self._probe_count = 0
        self._lock = asyncio.Lock()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def sample(self) -> HealthSample:
        return self._sample

    @property
    def probe_count(self) -> int:
        return self._probe_count

    def is_healthy(self) -> bool:
        return self._sample.healthy

    def last_latency(self) -> Optional[float]:
        return self._sample.latency_ms

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start periodic probing; the first probe runs immediately."""
        if self.is_running():
            return
        self._running = True
        self._task = asyncio.create_task(self._probe_loop())
        logger.info(
            "Health prober started (interval=%ss, timeout=%ss, tool=%s)",
            self._interval,
            self._timeout,
            self._probe_tool,
        )

    async def stop(self) -> None:
        """Stop probing. The last sample is kept."""
        self._running = False
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.wait({task})
        logger.info("Health prober stopped")

    async def check(self) -> HealthSample:
        """Run one probe and return the resulting sample."""
        async with self._lock:
            started = time.monotonic()
            try:
                async with asyncio.timeout(self._timeout):
                    await self._transport.call_tool(
                        self._probe_tool, dict(self._probe_arguments)
                    )
            except WrapperError as e:
                await self._record_failure(str(e) or e.__class__.__name__)
            except TimeoutError:
                await self._record_failure(f"Health check timeout after {self._timeout}s")
            except Exception as e:
                await self._record_failure(str(e) or e.__class__.__name__)
            else:
                await self._record_success((time.monotonic() - started) * 1000)
            return self._sample

    async def _probe_loop(self) -> None:
        while self._running:
            await self.check()
            if not self._running:
                break
            await asyncio.sleep(self._interval)

    async def _record_success(self, latency_ms: float) -> None:
        was_healthy = self._sample.healthy
        self._sample = HealthSample.ok(latency_ms)
        self._probe_count += 1
        if not was_healthy:
            logger.info("MCP server healthy (latency %.1f ms)", latency_ms)
            await self._publish(HealthChangedEvent(healthy=True, latency_ms=latency_ms))

    async def _record_failure(self, reason: str) -> None:
        self._sample = HealthSample.failed()
        self._probe_count += 1
        logger.warning("Health check failed: %s", reason)
        await self._publish(
            HealthChangedEvent(healthy=False),
            RecoveryNeededEvent(reason=reason),
        )

    async def _publish(self, *events: WrapperEvent) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(list(events))
