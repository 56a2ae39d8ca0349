"""Global test configuration.

Provides a transport factory wired to the scripted fake MCP server under
tests/fixtures, run with the current interpreter.
"""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

FAKE_SERVER = Path(__file__).parent / "tests" / "fixtures" / "fake_mcp_server.py"


@pytest.fixture
def fake_server_path() -> Path:
    return FAKE_SERVER


@pytest_asyncio.fixture
async def make_transport():
    """Build StdioTransports against the fake server and disconnect them afterwards."""
    from notion_mcp_wrapper.infrastructure.mcp_clients.stdio_transport import (
        StdioTransport,
    )

    created = []

    def factory(mode: str = "normal", credential: str = "secret_test_token", **kwargs):
        kwargs.setdefault("connect_retry_delay", 0.01)
        kwargs.setdefault("initialize_timeout", 5.0)
        kwargs.setdefault("request_timeout", 5.0)
        transport = StdioTransport(
            credential,
            command=sys.executable,
            args=(str(FAKE_SERVER), "--mode", mode),
            **kwargs,
        )
        created.append(transport)
        return transport

    yield factory

    for transport in created:
        await transport.disconnect()
