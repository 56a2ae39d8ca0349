"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the Notion MCP wrapper
- Single place where transport, prober, retry, fallback and orchestrator
  are wired together
- No adapter instantiation should occur outside this module (except tests)

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- Credentials are resolved here, once, in component-specific order:
  the MCP transport prefers NOTION_TOKEN, the REST fallback NOTION_API_KEY
- Disabled components (health, retry, fallback) are simply left as None
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from notion_mcp_wrapper.application.orchestration.wrapper_orchestrator import (
    WrapperOrchestrator,
)
from notion_mcp_wrapper.application.resilience.retry_policy import RetryPolicy
from notion_mcp_wrapper.application.use_cases.move_pages import MovePages
from notion_mcp_wrapper.infrastructure.config import (
    WrapperConfig,
    load_config,
    resolve_credential,
)
from notion_mcp_wrapper.infrastructure.event_bus import EventBus
from notion_mcp_wrapper.infrastructure.fallback.notion_api_fallback import NotionAPIFallback
from notion_mcp_wrapper.infrastructure.health.health_prober import HealthProber
from notion_mcp_wrapper.infrastructure.mcp_clients.stdio_transport import StdioTransport


@dataclass
class WrapperContainer:
    """DI container holding all wired dependencies."""

    config: WrapperConfig
    event_bus: EventBus
    transport: StdioTransport
    health_prober: Optional[HealthProber]
    retry_policy: Optional[RetryPolicy]
    fallback: Optional[NotionAPIFallback]
    orchestrator: WrapperOrchestrator
    move_pages: MovePages


def create_container(
    config: Optional[WrapperConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> WrapperContainer:
    """Create and wire all dependencies."""
    if config is None:
        config = load_config(environ=environ)

    primary = config.credentials.primary_env
    secondary = config.credentials.secondary_env
    transport_credential = resolve_credential((primary, secondary), environ)
    fallback_credential = resolve_credential((secondary, primary), environ)

    event_bus = EventBus()
    client = config.client
    transport = StdioTransport(
        credential=transport_credential,
        command=config.server.command,
        args=config.server.args,
        event_bus=event_bus,
        protocol_version=client.protocol_version,
        client_name=client.client_name,
        client_version=client.client_version,
        initialize_timeout=client.initialize_timeout,
        request_timeout=client.request_timeout,
        connect_attempts=client.connect_attempts,
        connect_retry_delay=client.connect_retry_delay,
        shutdown_timeout=client.shutdown_timeout,
        credential_env=primary,
        env=environ,
    )

    health_prober = None
    if config.health.enabled:
        health_prober = HealthProber(
            transport,
            event_bus=event_bus,
            interval=config.health.interval,
            timeout=config.health.timeout,
            probe_tool=config.health.probe_tool,
        )

    retry_policy = None
    if config.retry.enabled:
        retry_policy = RetryPolicy(
            max_retries=config.retry.max_retries,
            base_delay=config.retry.base_delay,
            max_delay=config.retry.max_delay,
            multiplier=config.retry.multiplier,
        )

    fallback = None
    if config.fallback.enabled:
        fallback = NotionAPIFallback(
            fallback_credential,
            base_url=config.fallback.base_url,
            notion_version=config.fallback.notion_version,
            timeout=config.fallback.timeout,
        )

    orchestrator = WrapperOrchestrator(
        transport,
        health_prober=health_prober,
        retry_policy=retry_policy,
        fallback=fallback,
        event_bus=event_bus,
    )

    return WrapperContainer(
        config=config,
        event_bus=event_bus,
        transport=transport,
        health_prober=health_prober,
        retry_policy=retry_policy,
        fallback=fallback,
        orchestrator=orchestrator,
        move_pages=MovePages(orchestrator),
    )
