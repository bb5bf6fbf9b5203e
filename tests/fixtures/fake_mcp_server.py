"""FastMCP server used by the MCP connector tests.

Behaviour is selected with FAKE_MCP_MODE:
    (unset)       tools + resources
    no-resources  tools only
    noisy         writes invalid UTF-8 and 256 KB to stderr before serving
    silent        speaks no MCP at all, exits when stdin closes
    garbled       answers every request with a non-object result

FAKE_MCP_PIDFILE, when set, receives the server's process id.
"""

import json
import os
import sys

from mcp.server.fastmcp import FastMCP

MODE = os.environ.get("FAKE_MCP_MODE", "")

server = FastMCP("fake-mcp")


@server.tool(description="Health check")
def ping() -> str:
    return "pong"


@server.tool(description="Echo the arguments back")
def echo(text: str) -> str:
    return json.dumps({"text": text}, sort_keys=True)


@server.tool(description="Always reports an error")
def fail() -> str:
    raise ValueError("boom")


@server.tool(description="Return FAKE_MCP_GREETING")
def env() -> str:
    return os.environ.get("FAKE_MCP_GREETING", "")


@server.tool(description="Exit the server with code 3")
def crash() -> str:
    os._exit(3)


if MODE != "no-resources":

    @server.resource("file:///catalog.json", name="Catalog", mime_type="application/json")
    def catalog() -> str:
        return "{}"

    @server.resource("file:///prices.csv", name="Prices", mime_type="text/csv")
    def prices() -> str:
        return "sku,price\n"


def serve_garbled():
    for line in sys.stdin:
        message = json.loads(line)
        if "id" in message:
            sys.stdout.write(json.dumps({"jsonrpc": "2.0", "id": message["id"], "result": "ok"}) + "\n")
            sys.stdout.flush()


def main():
    pidfile = os.environ.get("FAKE_MCP_PIDFILE")
    if pidfile:
        with open(pidfile, "w") as f:
            f.write(str(os.getpid()))

    if MODE == "silent":
        for _ in sys.stdin:
            pass
        return
    if MODE == "garbled":
        serve_garbled()
        return
    if MODE == "noisy":
        os.write(2, b"\xff\xfe not utf-8\n" + b"x" * 256 * 1024 + b"\n")

    server.run()


if __name__ == "__main__":
    main()
