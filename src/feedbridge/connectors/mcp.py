"""
feedbridge MCP Connector — Use any MCP server as a data source.

Gives access to the MCP ecosystem: database servers (postgres, sqlite),
file system servers, API servers (github, slack) and custom servers.
Tools show up in the schema as `tool:<name>` fields and resources as
`resource:<uri>` fields; a sync calls or reads each mapped source.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .base import BaseConnector, register_connector
from .mcp_client import METHOD_NOT_FOUND, MCPClient
from ..core.config import Settings
from ..core.schema import FieldMapping, FieldType, Schema, SchemaField, SyncError, SyncResult
from ..errors import ConnectorConnectionError, ToolInvocationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

TOOL_PREFIX = "tool:"
RESOURCE_PREFIX = "resource:"
DEFAULT_KILL_GRACE = 5.0


def _remaining(deadline: float) -> float:
    return max(deadline - time.monotonic(), 0.01)


@dataclass(frozen=True)
class MCPTool:
    """A callable tool exposed by an MCP server."""

    name: str
    description: str = ""
    input_schema: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MCPTool":
        return cls(
            name=data["name"],
            description=data.get("description") or "",
            input_schema=data.get("inputSchema") or {},
        )


@dataclass(frozen=True)
class MCPResource:
    """A readable resource exposed by an MCP server."""

    uri: str
    name: str
    mime_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MCPResource":
        return cls(
            uri=data["uri"],
            name=data.get("name") or data["uri"],
            mime_type=data.get("mimeType"),
        )


class MCPConnector(BaseConnector):
    """Connector for stdio MCP servers.

    Config:
        command: Executable to spawn, e.g. "npx" (required).
        args: Argument list.
        cwd: Working directory for the server process.
        env: Extra environment variables, ${VAR} references are expanded.
        timeout: Connect timeout in seconds (default 10).
        requestTimeout: Per-request timeout in seconds (default 30).
        killTimeout: Seconds to wait for the server to exit before killing it (default 5).

    Example:
        >>> connector = MCPConnector("my-db", "PostgreSQL via MCP")
        >>> connector.connect({
        ...     "command": "npx",
        ...     "args": ["-y", "@modelcontextprotocol/server-postgres"],
        ...     "env": {"POSTGRES_URL": "${POSTGRES_URL}"},
        ... })
    """

    def __init__(self, id: str, name: str):
        super().__init__(id, name)
        self.settings = Settings.from_env()
        self.client: Optional[MCPClient] = None
        self.tools: List[MCPTool] = []
        self.resources: List[MCPResource] = []
        self.kill_grace = DEFAULT_KILL_GRACE

    # ──── Lifecycle ────

    def connect(self, config: Dict[str, Any]) -> None:
        self._require(config, "command")
        timeout = self._seconds(config, "timeout", self.settings.mcp_connect_timeout)
        request_timeout = self._seconds(config, "requestTimeout", self.settings.mcp_request_timeout)
        kill_grace = self._seconds(config, "killTimeout", DEFAULT_KILL_GRACE)
        self.disconnect()
        self.config = dict(config)
        self.kill_grace = kill_grace

        deadline = time.monotonic() + timeout
        client = MCPClient(request_timeout=request_timeout)
        client.start(
            config["command"], config.get("args") or [], config.get("cwd"), config.get("env"), timeout=timeout
        )

        try:
            client.initialize(timeout=_remaining(deadline))
            self.client = client
            self.tools = [MCPTool.from_dict(t) for t in self._list("tools", deadline)]
            self.resources = [MCPResource.from_dict(r) for r in self._list("resources", deadline)]
        except Exception as e:
            self.client = None
            self.tools, self.resources = [], []
            client.close(grace=self.kill_grace)
            raise ConnectorConnectionError(
                f"Cannot connect to MCP server '{config['command']}' within {timeout:g}s: {e}"
            ) from e

        self.connected = True
        logger.info(
            "connector.connected",
            connector_id=self.id,
            server=client.server_info.get("name"),
            tools=len(self.tools),
            resources=len(self.resources),
        )

    def _list(self, kind: str, deadline: Optional[float] = None) -> List[Dict[str, Any]]:
        """List tools or resources; servers without the capability yield []."""
        if self.client.capabilities and kind not in self.client.capabilities:
            return []
        timeout = _remaining(deadline) if deadline is not None else None
        try:
            return self.client.list_all(kind, timeout=timeout)
        except ToolInvocationError as e:
            if e.code == METHOD_NOT_FOUND:
                return []
            raise

    def disconnect(self) -> None:
        if self.client is not None:
            self.client.close(grace=self.kill_grace)
            self.client = None
        self.tools = []
        self.resources = []
        self.connected = False

    def test_connection(self) -> bool:
        if self.client is None or not self.client.is_alive:
            return False
        try:
            self.client.ping()
            return True
        except ToolInvocationError:
            return False

    # ──── MCP surface ────

    def get_tools(self) -> List[MCPTool]:
        """Refresh and return the server's tools (tools/list)."""
        self.ensure_connected()
        self.tools = [MCPTool.from_dict(t) for t in self._list("tools")]
        return list(self.tools)

    def get_resources(self) -> List[MCPResource]:
        """Refresh and return the server's resources (resources/list)."""
        self.ensure_connected()
        self.resources = [MCPResource.from_dict(r) for r in self._list("resources")]
        return list(self.resources)

    def call_tool(self, tool_name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """Call a tool (tools/call) and return its structured result.

        Raises:
            ToolInvocationError: On protocol errors or a result flagged isError.
        """
        self.ensure_connected()
        logger.debug("mcp.call_tool", connector_id=self.id, tool=tool_name)
        result = self.client.call_tool(tool_name, args)
        if result.get("isError"):
            texts = [c.get("text", "") for c in result.get("content") or [] if isinstance(c, dict)]
            detail = " ".join(t for t in texts if t) or "tool reported an error"
            raise ToolInvocationError(f"Tool {tool_name} failed: {detail}")
        return result

    def read_resource(self, uri: str) -> Any:
        """Read a resource (resources/read) and return its contents."""
        self.ensure_connected()
        logger.debug("mcp.read_resource", connector_id=self.id, uri=uri)
        return self.client.read_resource(uri)

    # ──── Data access ────

    def get_schema(self) -> Schema:
        self.ensure_connected()
        fields = [
            SchemaField(name=f"{TOOL_PREFIX}{t.name}", type=FieldType.OBJECT, nullable=False, sample=t.description)
            for t in self.tools
        ]
        fields += [
            SchemaField(name=f"{RESOURCE_PREFIX}{r.uri}", type=FieldType.STRING, nullable=True, sample=r.name)
            for r in self.resources
        ]
        return Schema(fields=fields)

    def preview(self, limit: int = 10) -> List[Dict[str, Any]]:
        self.ensure_connected()
        return [
            {"type": "resource", "uri": r.uri, "name": r.name}
            for r in self.resources[:max(limit, 0)]
        ]

    def sync(self, mapping: Sequence[FieldMapping]) -> SyncResult:
        """Read or call every mapped source once.

        Each mapping entry is one unit of work; a failing entry becomes a
        SyncError carrying the source key and does not stop the others.
        """
        self.ensure_connected()
        started = time.perf_counter()
        errors: List[SyncError] = []
        created = 0

        for m in mapping:
            try:
                if m.source.startswith(RESOURCE_PREFIX):
                    self.read_resource(m.source[len(RESOURCE_PREFIX):])
                elif m.source.startswith(TOOL_PREFIX):
                    self.call_tool(m.source[len(TOOL_PREFIX):], {})
                else:
                    raise ToolInvocationError(
                        f"Unsupported source '{m.source}': expected a '{TOOL_PREFIX}' or '{RESOURCE_PREFIX}' prefix"
                    )
                created += 1
            except Exception as e:
                errors.append(SyncError(field=m.source, message=str(e)))

        result = SyncResult.build(created=created, errors=errors, started=started)
        logger.info(
            "sync.finished",
            connector_id=self.id,
            connector_type=self.connector_type,
            processed=result.records_processed,
            failed=result.records_failed,
        )
        return result


# Pre-configured MCP server templates
MCP_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "postgres": {
        "command": "npx",
        "args": ["-y", "@modelcontextprotocol/server-postgres"],
        "env_required": ["POSTGRES_URL"],
    },
    "sqlite": {
        "command": "npx",
        "args": ["-y", "@modelcontextprotocol/server-sqlite"],
        "env_required": ["SQLITE_PATH"],
    },
    "filesystem": {
        "command": "npx",
        "args": ["-y", "@modelcontextprotocol/server-filesystem"],
        "env_required": ["ALLOWED_PATHS"],
    },
    "github": {
        "command": "npx",
        "args": ["-y", "@modelcontextprotocol/server-github"],
        "env_required": ["GITHUB_TOKEN"],
    },
    "slack": {
        "command": "npx",
        "args": ["-y", "@modelcontextprotocol/server-slack"],
        "env_required": ["SLACK_TOKEN"],
    },
    "memory": {
        "command": "npx",
        "args": ["-y", "@modelcontextprotocol/server-memory"],
        "env_required": [],
    },
}


def template_config(template: str, **env: str) -> Dict[str, Any]:
    """Build an MCPConnector config from a named template.

    Raises:
        ValueError: If the template is unknown or a required env var is missing.
    """
    entry = MCP_TEMPLATES.get(template)
    if entry is None:
        raise ValueError(f"Unknown MCP template: {template}. Available: {', '.join(MCP_TEMPLATES)}")
    missing = [name for name in entry["env_required"] if not env.get(name)]
    if missing:
        raise ValueError(f"MCP template '{template}' requires: {', '.join(missing)}")
    return {"command": entry["command"], "args": list(entry["args"]), "env": dict(env)}


# Register this connector
register_connector(
    "mcp",
    MCPConnector,
    label="MCP Server",
    description="Tools and resources of a stdio MCP server",
)
