"""
MCP Stdio Client Transport

Architectural Intent:
- Owns the Notion MCP server subprocess and its stdin/stdout/stderr pipes
- Newline-delimited JSON-RPC 2.0 framing; a partial trailing line is
  buffered across reads
- Correlates responses to in-flight requests by numeric ID; responses may
  arrive in any order
- Connection attempts are serialized: concurrent connect() callers join the
  single in-flight attempt and observe its outcome

MCP Integration:
- initialize (reserved request ID 0) -> result -> notifications/initialized
- tools/call {name, arguments} for every tool invocation
- Publishes TransportDisconnectedEvent whenever the server process exits

Design Decisions:
- The handshake ID sits outside the call-ID sequence (which starts at 1) and
  is only matched while a handshake is being awaited
- A timed-out call only drops its own pending entry; the process survives
- disconnect() abandons pending calls without resolving them, while an
  unexpected process exit fails them with TransportConnectionError
"""

import asyncio
import contextlib
import itertools
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from notion_mcp_wrapper.domain.errors import (
    ConfigurationError,
    RemoteError,
    RequestTimeoutError,
    TransportConnectionError,
)
from notion_mcp_wrapper.domain.events.connection_events import TransportDisconnectedEvent
from notion_mcp_wrapper.domain.ports.event_bus_port import EventBusPort
from notion_mcp_wrapper.domain.ports.tool_transport_port import ToolTransportPort
from notion_mcp_wrapper.domain.value_objects.connection_state import ConnectionState

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
MCP_PROTOCOL_VERSION = "2024-11-05"
HANDSHAKE_REQUEST_ID = 0
READ_CHUNK_SIZE = 64 * 1024


def encode_message(obj: dict[str, Any]) -> bytes:
    """Encode a JSON-RPC message as one newline-terminated line."""
    return (json.dumps(obj) + "\n").encode("utf-8")


def decode_message(line: str) -> Optional[dict[str, Any]]:
    """Parse one line into a JSON-RPC envelope. Returns None for anything else."""
    try:
        message = json.loads(line)
    except ValueError:
        return None
    if not isinstance(message, dict):
        return None
    return message


def parse_tool_result(result: Any) -> Any:
    """Unwrap a tools/call result.

    Text content blocks are concatenated and parsed as JSON; non-JSON text is
    returned as {"text": ...}. Results without a content list pass through.
    """
    if not isinstance(result, dict) or not isinstance(result.get("content"), list):
        return result

    text = "".join(
        str(block.get("text", ""))
        for block in result["content"]
        if isinstance(block, dict) and block.get("type") == "text"
    )
    try:
        return json.loads(text)
    except ValueError:
        return {"text": text}


class LineFramer:
    """Splits a byte stream into lines, keeping the incomplete tail buffered."""

    def __init__(self) -> None:
        self._buffer = b""

    def feed(self, data: bytes) -> list[str]:
        self._buffer += data
        *lines, self._buffer = self._buffer.split(b"\n")
        decoded = (line.decode("utf-8", errors="replace").strip() for line in lines)
        return [line for line in decoded if line]

    @property
    def pending(self) -> bytes:
        return self._buffer


@dataclass
class PendingRequest:
    """An in-flight tools/call awaiting its response or its timeout."""
    request_id: int
    tool_name: str
    future: asyncio.Future
    timer: Optional[asyncio.TimerHandle] = None

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class StdioTransport(ToolTransportPort):
    """
    MCP client speaking JSON-RPC to a spawned server over stdio.
    """

    def __init__(
        self,
        credential: Optional[str],
        command: str = "npx",
        args: tuple[str, ...] = ("-y", "@notionhq/notion-mcp-server"),
        event_bus: Optional[EventBusPort] = None,
        protocol_version: str = MCP_PROTOCOL_VERSION,
        client_name: str = "notion-mcp-wrapper",
        client_version: str = "2.0.0",
        initialize_timeout: float = 10.0,
        request_timeout: float = 30.0,
        connect_attempts: int = 3,
        connect_retry_delay: float = 1.0,
        shutdown_timeout: float = 5.0,
        credential_env: str = "NOTION_TOKEN",
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        if connect_attempts < 1:
            raise ValueError(f"connect_attempts must be >= 1, got {connect_attempts}")
        self._credential = credential
        self._command = command
        self._args = tuple(args)
        self._event_bus = event_bus
        self._protocol_version = protocol_version
        self._client_name = client_name
        self._client_version = client_version
        self._initialize_timeout = initialize_timeout
        self._request_timeout = request_timeout
        self._connect_attempts = connect_attempts
        self._connect_retry_delay = connect_retry_delay
        self._shutdown_timeout = shutdown_timeout
        self._credential_env = credential_env
        self._env = env

        self._state = ConnectionState.DISCONNECTED
        self._process: Optional[asyncio.subprocess.Process] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._generation = 0
        self._handshake: Optional[asyncio.Future] = None
        self._pending: dict[int, PendingRequest] = {}
        self._request_ids = itertools.count(1)
        self._background: set[asyncio.Task] = set()
        self._server_info: Optional[dict[str, Any]] = None

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process is not None else None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def server_info(self) -> Optional[dict[str, Any]]:
        return self._server_info

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def connect(self) -> None:
        if self._state is ConnectionState.READY:
            return

        if self._connect_task is None:
            if not self._credential:
                raise ConfigurationError(
                    "Notion credential required to start the MCP server "
                    "(set NOTION_TOKEN or NOTION_API_KEY)"
                )
            self._connect_task = asyncio.ensure_future(self._establish())
            self._connect_task.add_done_callback(self._connect_finished)

        task = self._connect_task
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and current is not None and not current.cancelling():
                raise TransportConnectionError(
                    "Connection attempt aborted by disconnect()"
                ) from None
            raise

    async def call_tool(
        self, tool_name: str, arguments: Optional[dict[str, Any]] = None
    ) -> Any:
        if self._state is not ConnectionState.READY:
            await self.connect()

        process = self._process
        if process is None:
            raise TransportConnectionError("MCP server is not running")

        loop = asyncio.get_running_loop()
        request_id = next(self._request_ids)
        pending = PendingRequest(request_id, tool_name, loop.create_future())
        pending.timer = loop.call_later(
            self._request_timeout, self._expire_request, request_id
        )
        self._pending[request_id] = pending

        try:
            await self._send(
                process,
                {
                    "jsonrpc": JSONRPC_VERSION,
                    "id": request_id,
                    "method": "tools/call",
                    "params": {"name": tool_name, "arguments": arguments or {}},
                },
            )
            result = await pending.future
        finally:
            self._discard_request(pending)

        return parse_tool_result(result)

    async def disconnect(self) -> None:
        self._generation += 1
        task = self._connect_task
        self._connect_task = None
        if task is not None and not task.done():
            task.cancel()

        process = self._process
        self._process = None
        self._abandon_pending()
        self._state = ConnectionState.DISCONNECTED

        if process is not None:
            await self._terminate(process)
            logger.info("Disconnected from MCP server (pid %s)", process.pid)

    # ------------------------------------------------------------------ #
    # Connection establishment
    # ------------------------------------------------------------------ #

    def _connect_finished(self, task: asyncio.Task) -> None:
        if self._connect_task is task:
            self._connect_task = None
        # Mark the outcome retrieved; joiners re-raise it.
        if not task.cancelled():
            task.exception()

    def _ensure_not_aborted(self, generation: int) -> None:
        if self._generation != generation:
            raise TransportConnectionError("Connection attempt aborted by disconnect()")

    async def _establish(self) -> None:
        generation = self._generation
        last_error: Optional[BaseException] = None

        for attempt in range(1, self._connect_attempts + 1):
            self._ensure_not_aborted(generation)
            self._state = ConnectionState.CONNECTING
            try:
                await self._spawn_and_initialize()
            except Exception as e:
                self._ensure_not_aborted(generation)
                last_error = e
                logger.warning(
                    "MCP connect attempt %d/%d failed: %s",
                    attempt,
                    self._connect_attempts,
                    e,
                )
                if attempt < self._connect_attempts:
                    await asyncio.sleep(self._connect_retry_delay * attempt)
                continue

            if self._generation != generation:
                process, self._process = self._process, None
                if process is not None:
                    await self._terminate(process)
                self._ensure_not_aborted(generation)
            self._state = ConnectionState.READY
            logger.info("MCP server ready (pid %s)", self.pid, extra={"pid": self.pid})
            return

        self._state = ConnectionState.DISCONNECTED
        raise TransportConnectionError(
            f"Failed to connect to MCP server after {self._connect_attempts} "
            f"attempt(s): {last_error}",
            cause=last_error,
        ) from last_error

    async def _spawn_and_initialize(self) -> None:
        process = await asyncio.create_subprocess_exec(
            self._command,
            *self._args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self._child_env(),
        )
        logger.debug("Spawned MCP server %s (pid %s)", self._command, process.pid)
        self._process = process
        self._spawn_background(self._read_stdout(process))
        self._spawn_background(self._read_stderr(process))

        handshake = asyncio.get_running_loop().create_future()
        self._handshake = handshake
        try:
            await self._send(
                process,
                {
                    "jsonrpc": JSONRPC_VERSION,
                    "id": HANDSHAKE_REQUEST_ID,
                    "method": "initialize",
                    "params": {
                        "protocolVersion": self._protocol_version,
                        "capabilities": {},
                        "clientInfo": {
                            "name": self._client_name,
                            "version": self._client_version,
                        },
                    },
                },
            )
            try:
                async with asyncio.timeout(self._initialize_timeout):
                    result = await handshake
            except TimeoutError:
                raise RequestTimeoutError(
                    f"MCP initialization timeout after {self._initialize_timeout}s"
                ) from None

            await self._send(
                process,
                {"jsonrpc": JSONRPC_VERSION, "method": "notifications/initialized"},
            )
        except (Exception, asyncio.CancelledError):
            if self._process is process:
                self._process = None
            await self._terminate(process)
            raise
        finally:
            if self._handshake is handshake:
                self._handshake = None
            if not handshake.done():
                handshake.cancel()

        self._server_info = result.get("serverInfo") if isinstance(result, dict) else None

    def _child_env(self) -> dict[str, str]:
        env = dict(os.environ if self._env is None else self._env)
        env[self._credential_env] = self._credential or ""
        return env

    def _spawn_background(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ------------------------------------------------------------------ #
    # Wire I/O
    # ------------------------------------------------------------------ #

    async def _send(
        self, process: asyncio.subprocess.Process, message: dict[str, Any]
    ) -> None:
        stdin = process.stdin
        if stdin is None or stdin.is_closing():
            raise TransportConnectionError("MCP server stdin is closed")
        stdin.write(encode_message(message))
        try:
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise TransportConnectionError("MCP server stdin is closed", cause=e) from e

    async def _read_stdout(self, process: asyncio.subprocess.Process) -> None:
        framer = LineFramer()
        try:
            while True:
                chunk = await process.stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                for line in framer.feed(chunk):
                    try:
                        self._dispatch_line(line)
                    except Exception:
                        logger.exception("Failed to dispatch MCP server output: %.200s", line)
        except (ConnectionError, OSError) as e:
            logger.warning("Lost MCP server stdout: %s", e)

        exit_code = await process.wait()
        await self._handle_exit(process, exit_code)

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        framer = LineFramer()
        try:
            while True:
                chunk = await process.stderr.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                for line in framer.feed(chunk):
                    if "error" in line.lower():
                        logger.warning("[MCP stderr] %s", line)
                    else:
                        logger.debug("[MCP stderr] %s", line)
        except (ConnectionError, OSError) as e:
            logger.debug("Lost MCP server stderr: %s", e)

    def _dispatch_line(self, line: str) -> None:
        message = decode_message(line)
        if message is None:
            logger.debug("Discarding non-protocol output: %.200s", line)
            return

        msg_id = message.get("id")
        if msg_id is None or ("result" not in message and "error" not in message):
            logger.debug("Ignoring server-initiated message %s", message.get("method"))
            return

        # Request IDs are plain ints; bools, floats and containers never match.
        if type(msg_id) is not int:
            logger.debug("Discarding response with malformed id %.100r", msg_id)
            return

        if msg_id == HANDSHAKE_REQUEST_ID and self._handshake is not None:
            self._settle(self._handshake, message)
            return

        pending = self._pending.pop(msg_id, None)
        if pending is None:
            logger.debug("Dropping response for unknown or expired request %s", msg_id)
            return
        pending.cancel_timer()
        self._settle(pending.future, message)

    @staticmethod
    def _settle(future: asyncio.Future, message: dict[str, Any]) -> None:
        if future.done():
            return
        error = message.get("error")
        if error:
            if isinstance(error, dict):
                future.set_exception(
                    RemoteError(error.get("message") or "MCP Error", code=error.get("code"))
                )
            else:
                future.set_exception(RemoteError(str(error)))
        else:
            future.set_result(message.get("result"))

    # ------------------------------------------------------------------ #
    # Pending request bookkeeping
    # ------------------------------------------------------------------ #

    def _expire_request(self, request_id: int) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None or pending.future.done():
            return
        pending.timer = None
        pending.future.set_exception(
            RequestTimeoutError(
                f"Request timeout: {pending.tool_name} (id {request_id}) "
                f"exceeded {self._request_timeout}s"
            )
        )

    def _discard_request(self, pending: PendingRequest) -> None:
        if self._pending.get(pending.request_id) is pending:
            del self._pending[pending.request_id]
        pending.cancel_timer()

    def _abandon_pending(self) -> None:
        for pending in self._pending.values():
            pending.cancel_timer()
        self._pending.clear()

    def _fail_pending(self, error: Exception) -> None:
        pending_requests = list(self._pending.values())
        self._pending.clear()
        for pending in pending_requests:
            pending.cancel_timer()
            if not pending.future.done():
                pending.future.set_exception(error)

    # ------------------------------------------------------------------ #
    # Process teardown
    # ------------------------------------------------------------------ #

    async def _handle_exit(
        self, process: asyncio.subprocess.Process, exit_code: Optional[int]
    ) -> None:
        logger.info(
            "MCP server process %s exited with code %s",
            process.pid,
            exit_code,
            extra={"pid": process.pid, "exit_code": exit_code},
        )

        if self._process is process:
            self._process = None
            if self._state is ConnectionState.READY:
                self._state = ConnectionState.DISCONNECTED
            if self._handshake is not None and not self._handshake.done():
                self._handshake.set_exception(
                    TransportConnectionError(
                        f"MCP server exited during initialization (code {exit_code})"
                    )
                )
            self._fail_pending(
                TransportConnectionError(f"MCP server exited with code {exit_code}")
            )

        if self._event_bus is not None:
            await self._event_bus.publish(
                [TransportDisconnectedEvent(exit_code=exit_code)]
            )

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            async with asyncio.timeout(self._shutdown_timeout):
                await process.wait()
        except TimeoutError:
            logger.warning(
                "MCP server (pid %s) ignored SIGTERM for %ss; killing it",
                process.pid,
                self._shutdown_timeout,
            )
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
