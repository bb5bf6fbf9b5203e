import typer
from rich.table import Table as RichTable

from feedbridge.connectors import MCP_TEMPLATES, MCPConnector
from .commands import CONFIG_HELP, _fail, _short, connected_source
from .main import app, console


@app.command()
def tools(
    config: str = typer.Argument(..., help=CONFIG_HELP),
):
    """🧰 List the tools and resources of an MCP server source."""
    with connected_source(config) as (source, connector):
        if not isinstance(connector, MCPConnector):
            _fail(f"'{source.name}' is a {source.type} source; tools only applies to mcp sources")
        server_tools = connector.get_tools()
        resources = connector.get_resources()

    table = RichTable(title=f"🧰 Tools ({len(server_tools)})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Arguments", style="dim")
    for t in server_tools:
        args = ", ".join((t.input_schema.get("properties") or {}).keys()) or "—"
        table.add_row(t.name, _short(t.description, 60), args)
    console.print()
    console.print(table)

    if resources:
        res_table = RichTable(title=f"📄 Resources ({len(resources)})")
        res_table.add_column("URI", style="cyan")
        res_table.add_column("Name", style="green")
        res_table.add_column("Type")
        for r in resources:
            res_table.add_row(r.uri, r.name, r.mime_type or "—")
        console.print()
        console.print(res_table)
    console.print()


@app.command()
def templates():
    """📦 Show pre-configured MCP server templates."""
    console.print()
    table = RichTable(title="MCP Server Templates")
    table.add_column("Template", style="cyan", no_wrap=True)
    table.add_column("Command", style="green")
    table.add_column("Required env", style="yellow")

    for name, entry in MCP_TEMPLATES.items():
        command = " ".join([entry["command"], *entry["args"]])
        table.add_row(name, command, ", ".join(entry["env_required"]) or "—")

    console.print(table)
    console.print()
