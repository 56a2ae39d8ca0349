from enum import Enum


class ConnectionState(Enum):
    """
    Lifecycle state of the MCP server connection.

    DEGRADED is never set by the transport itself; it is derived from the
    health prober's latest sample and does not block calls.
    """
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    DEGRADED = "degraded"

    def __str__(self) -> str:
        return self.value
