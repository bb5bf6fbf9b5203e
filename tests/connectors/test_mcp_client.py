import json
import os
import sys

import pytest

from feedbridge.connectors.mcp_client import MCPClient
from feedbridge.errors import ConnectorConnectionError, ToolInvocationError

FAKE_MCP_SERVER = os.path.join(os.path.dirname(os.path.dirname(__file__)), "fixtures", "fake_mcp_server.py")


@pytest.fixture
def client():
    c = MCPClient(request_timeout=10)
    yield c
    c.close(grace=2.0)


def start_fake(client, mode="", **env):
    client.start(sys.executable, [FAKE_MCP_SERVER], env={"FAKE_MCP_MODE": mode, **env}, timeout=10)


class TestMCPClient:
    def test_call_before_start(self, client):
        assert client.is_alive is False
        with pytest.raises(ToolInvocationError, match="not started"):
            client.ping()

    def test_initialize(self, client):
        start_fake(client)
        result = client.initialize(timeout=10)

        assert client.is_alive
        assert result["protocolVersion"]
        assert client.server_info["name"] == "fake-mcp"
        assert "tools" in client.capabilities
        assert "resources" in client.capabilities

    def test_ping(self, client):
        start_fake(client)
        client.initialize(timeout=10)
        client.ping(timeout=10)

    def test_list_all(self, client):
        start_fake(client)
        client.initialize(timeout=10)
        tools = client.list_all("tools")
        assert [t["name"] for t in tools] == ["ping", "echo", "fail", "env", "crash"]
        assert [r["uri"] for r in client.list_all("resources")] == [
            "file:///catalog.json", "file:///prices.csv",
        ]

    def test_call_tool(self, client):
        start_fake(client)
        client.initialize(timeout=10)
        result = client.call_tool("echo", {"text": "moin"})
        assert json.loads(result["content"][0]["text"]) == {"text": "moin"}

    def test_mcp_error(self, client):
        start_fake(client)
        client.initialize(timeout=10)
        with pytest.raises(ToolInvocationError, match="MCP Error"):
            client.read_resource("file:///missing.json")

    def test_request_timeout(self, client):
        start_fake(client, mode="silent")
        with pytest.raises(ToolInvocationError, match="Request timeout: initialize"):
            client.initialize(timeout=0.3)
        # Only the request gave up, the session is still open
        assert client.is_alive

    def test_server_exit_fails_request(self):
        client = MCPClient(request_timeout=3)
        try:
            start_fake(client)
            client.initialize(timeout=10)
            with pytest.raises(ToolInvocationError):
                client.call_tool("crash")
            with pytest.raises(ToolInvocationError):
                client.ping()
        finally:
            client.close(grace=2.0)

    def test_spawn_failure(self, client):
        with pytest.raises(ConnectorConnectionError, match="Cannot start MCP server"):
            client.start("feedbridge-no-such-mcp-server-binary", timeout=10)
        assert client.is_alive is False

    def test_close_is_idempotent(self, client):
        start_fake(client)
        client.initialize(timeout=10)
        client.close(grace=2.0)
        client.close(grace=2.0)
        assert client.is_alive is False
        with pytest.raises(ToolInvocationError, match="not started"):
            client.ping()

    def test_invalid_utf8_on_stderr(self, client):
        start_fake(client, mode="noisy")
        client.initialize(timeout=10)
        assert len(client.list_all("tools")) == 5
        client.ping(timeout=10)

    def test_env_is_layered_over_environment(self, client, monkeypatch):
        monkeypatch.setenv("FEEDBRIDGE_TEST_GREETING", "moin")
        start_fake(client, FAKE_MCP_GREETING="${FEEDBRIDGE_TEST_GREETING} ${HOME}")
        client.initialize(timeout=10)
        result = client.call_tool("env")
        assert result["content"][0]["text"] == f"moin {os.environ.get('HOME', '')}"
