"""
feedbridge MCP Client — Blocking facade over the official mcp SDK.

The SDK's ClientSession and stdio transport are asyncio based. MCPClient
runs them on a private event loop in a background thread and exposes
plain blocking calls, each with its own timeout, so MCPConnector keeps the
synchronous connector API.

The server's stderr goes to a temporary file rather than a pipe, so a
chatty server can never block on a full pipe; its tail is logged when the
client closes.
"""

import asyncio
import concurrent.futures
import os
import tempfile
import threading
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.shared.exceptions import McpError
from mcp.types import METHOD_NOT_FOUND

from ..core.config import expand_env
from ..errors import ConnectorConnectionError, ToolInvocationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

STDERR_TAIL_BYTES = 4096

LIST_METHODS = {
    "tools": "list_tools",
    "resources": "list_resources",
}

__all__ = ["METHOD_NOT_FOUND", "MCPClient"]


def _dump(result: Any) -> Dict[str, Any]:
    """Turn an SDK result model into the plain JSON dict seen on the wire."""
    if hasattr(result, "model_dump"):
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(result, dict):
        return result
    raise ToolInvocationError(f"Malformed MCP result: expected an object, got {type(result).__name__}")


class MCPClient:
    """One MCP session with one spawned stdio server.

    Example:
        >>> client = MCPClient(request_timeout=30)
        >>> client.start("npx", ["-y", "@modelcontextprotocol/server-memory"])
        >>> client.initialize(timeout=10)
        >>> client.list_all("tools")
        >>> client.close()
    """

    def __init__(self, request_timeout: float = 30.0):
        self.request_timeout = request_timeout
        self.server_info: Dict[str, Any] = {}
        self.capabilities: Dict[str, Any] = {}
        self.session: Optional[ClientSession] = None
        self._argv: List[str] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None
        self._errlog = None

    @property
    def is_alive(self) -> bool:
        """True while the session is open and its transport has not failed."""
        return self.session is not None and self._task is not None and not self._task.done()

    # ──── Lifecycle ────

    def start(
        self,
        command: str,
        args: Optional[List[str]] = None,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Spawn the server and open a session on its stdio.

        `env` is layered over the current environment; its values may
        reference other variables as ${VAR}.

        Raises:
            ConnectorConnectionError: If the process cannot be started.
        """
        self._argv = [command, *(str(a) for a in (args or []))]
        params = StdioServerParameters(
            command=command,
            args=self._argv[1:],
            env={**os.environ, **{k: str(v) for k, v in expand_env(env or {}).items()}},
            cwd=cwd or None,
            encoding_error_handler="replace",
        )

        self._errlog = tempfile.TemporaryFile()
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, name="feedbridge-mcp", daemon=True)
        self._thread.start()

        ready: concurrent.futures.Future = concurrent.futures.Future()
        asyncio.run_coroutine_threadsafe(self._run(params, ready), self._loop)
        try:
            ready.result(timeout=timeout if timeout is not None else self.request_timeout)
        except concurrent.futures.TimeoutError as e:
            self.close(grace=1.0)
            raise ConnectorConnectionError(f"Cannot start MCP server '{' '.join(self._argv)}': timed out") from e
        except Exception as e:
            self.close(grace=1.0)
            raise ConnectorConnectionError(f"Cannot start MCP server '{' '.join(self._argv)}': {e}") from e
        logger.info("mcp.process_started", command=self._argv)

    async def _run(self, params: StdioServerParameters, ready: concurrent.futures.Future) -> None:
        """Own the transport and session until close() sets the stop event."""
        self._task = asyncio.current_task()
        self._stop = asyncio.Event()
        try:
            async with stdio_client(params, errlog=self._errlog) as (read, write):
                async with ClientSession(read, write) as session:
                    self.session = session
                    ready.set_result(None)
                    await self._stop.wait()
        except Exception as e:
            if not ready.done():
                ready.set_exception(e)
            raise
        finally:
            self.session = None

    async def _shutdown(self, grace: float) -> None:
        task = self._task
        if task is None or task.done():
            return
        self._stop.set()
        done, _ = await asyncio.wait({task}, timeout=grace)
        if not done:
            # Cancelling the transport kills the process
            logger.warning("mcp.kill", command=self._argv, grace=grace)
            task.cancel()
            done, _ = await asyncio.wait({task}, timeout=grace)
            if not done:
                logger.error("mcp.kill_failed", command=self._argv)

    def close(self, grace: float = 5.0) -> None:
        """End the session: close stdin and wait `grace` seconds, then kill."""
        loop, self._loop = self._loop, None
        if loop is None:
            return

        try:
            asyncio.run_coroutine_threadsafe(self._shutdown(grace), loop).result(timeout=2 * grace + 1)
        except concurrent.futures.TimeoutError:
            logger.error("mcp.shutdown_timeout", command=self._argv)

        task = self._task
        if task is not None and task.done() and not task.cancelled() and task.exception() is not None:
            logger.debug("mcp.transport_error", command=self._argv, error=str(task.exception()))

        loop.call_soon_threadsafe(loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=grace)
        if not loop.is_running():
            loop.close()
        self._thread = None
        self._task = None
        self.session = None
        self._log_stderr()
        logger.info("mcp.process_stopped", command=self._argv)

    def _log_stderr(self) -> None:
        errlog, self._errlog = self._errlog, None
        if errlog is None:
            return
        with errlog:
            size = errlog.seek(0, os.SEEK_END)
            errlog.seek(max(size - STDERR_TAIL_BYTES, 0))
            tail = errlog.read().decode("utf-8", errors="replace")
        for line in tail.splitlines():
            if line.strip():
                logger.debug("mcp.stderr", command=self._argv, line=line.rstrip())

    # ──── Requests ────

    def call(
        self,
        label: str,
        operation: Callable[[ClientSession], Awaitable[Any]],
        timeout: Optional[float] = None,
    ) -> Any:
        """Run one session operation and wait for it.

        Raises:
            ToolInvocationError: On an MCP error, a timeout, or a dead transport.
        """
        session, loop = self.session, self._loop
        if session is None or loop is None or not self.is_alive:
            raise ToolInvocationError("MCP session not started")

        future = asyncio.run_coroutine_threadsafe(operation(session), loop)
        try:
            return future.result(timeout=timeout if timeout is not None else self.request_timeout)
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            raise ToolInvocationError(f"Request timeout: {label}") from e
        except McpError as e:
            raise ToolInvocationError(f"MCP Error: {e.error.message}", code=e.error.code) from e
        except Exception as e:
            raise ToolInvocationError(f"MCP request {label} failed: {e}") from e

    def initialize(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Run the MCP handshake and record the server's capabilities."""
        result = _dump(self.call("initialize", lambda s: s.initialize(), timeout))
        server_info = result.get("serverInfo")
        capabilities = result.get("capabilities")
        if not isinstance(server_info, dict) or not isinstance(capabilities, dict):
            raise ToolInvocationError("Malformed initialize result")
        self.server_info = server_info
        self.capabilities = capabilities
        return result

    def ping(self, timeout: Optional[float] = None) -> None:
        self.call("ping", lambda s: s.send_ping(), timeout)

    def list_all(self, kind: str, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        """Collect every page of tools/list or resources/list."""
        method = LIST_METHODS[kind]
        items: List[Dict[str, Any]] = []
        cursor = None
        while True:
            page = _dump(self.call(f"{kind}/list", self._list_page(method, cursor), timeout))
            entries = page.get(kind, [])
            if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
                raise ToolInvocationError(f"Malformed {kind}/list result")
            items.extend(entries)
            cursor = page.get("nextCursor")
            if not cursor:
                return items

    @staticmethod
    def _list_page(method: str, cursor: Optional[str]) -> Callable[[ClientSession], Awaitable[Any]]:
        if cursor:
            return lambda s: getattr(s, method)(cursor=cursor)
        return lambda s: getattr(s, method)()

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return _dump(self.call(f"tools/call {name}", lambda s: s.call_tool(name, arguments or {})))

    def read_resource(self, uri: str) -> Dict[str, Any]:
        return _dump(self.call(f"resources/read {uri}", lambda s: s.read_resource(uri)))
