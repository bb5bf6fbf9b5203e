import json
from contextlib import contextmanager

import typer
from rich.panel import Panel
from rich.table import Table as RichTable

from feedbridge import __version__
from feedbridge.connectors import ExcelConnector, available_connectors, connector_from_config
from feedbridge.core.config import load_connector_config, load_mappings
from feedbridge.core.schema import SyncResult
from feedbridge.errors import ConnectorError
from .main import app, console

CONFIG_HELP = "Connector config file (YAML or JSON) with id, name, type and config."


def _fail(message) -> None:
    console.print(f"\n[red]Error:[/red] {message}")
    raise typer.Exit(code=1)


def _short(value, width: int = 40) -> str:
    """Single-line rendering of a sample value for tables."""
    if value is None:
        return "—"
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    text = " ".join(text.split())
    return text if len(text) <= width else text[: width - 1] + "…"


@contextmanager
def connected_source(config_path: str):
    """Load a connector config, connect, and always disconnect afterwards.

    Connector errors raised while connecting or inside the block are
    reported and turned into exit code 1.
    """
    try:
        source = load_connector_config(config_path)
        connector = connector_from_config(source)
    except ConnectorError as e:
        _fail(e)

    try:
        with console.status(f"[bold green]Connecting to {source.type} source..."):
            connector.connect(source.config)
        yield source, connector
    except ConnectorError as e:
        _fail(e)
    finally:
        connector.disconnect()


def _print_schema(schema, title: str) -> None:
    table = RichTable(title=title)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Type", style="green")
    table.add_column("Nullable", justify="center")
    table.add_column("Sample", style="dim")
    for f in schema.fields:
        table.add_row(f.name, f.type.value, "yes" if f.nullable else "no", _short(f.sample))
    console.print()
    console.print(table)


def _print_sync_result(result: SyncResult) -> None:
    status = "[green]✅ Success[/green]" if result.success else "[red]❌ Completed with errors[/red]"
    console.print(f"\n  {status}")
    console.print(f"  Processed: [cyan]{result.records_processed}[/cyan]")
    console.print(f"  Created:   [green]{result.records_created}[/green]")
    console.print(f"  Updated:   {result.records_updated}")
    console.print(f"  Failed:    [red]{result.records_failed}[/red]")
    console.print(f"  Duration:  {result.duration:.1f} ms")

    if result.errors:
        table = RichTable(title=f"Errors ({len(result.errors)})")
        table.add_column("Row", justify="right")
        table.add_column("Field", style="cyan")
        table.add_column("Message", style="red")
        for err in result.errors[:20]:
            row = str(err.row) if err.row is not None else "—"
            table.add_row(row, err.field or "—", err.message)
        console.print()
        console.print(table)
        if len(result.errors) > 20:
            console.print(f"  [dim]... and {len(result.errors) - 20} more[/dim]")
    console.print()


@app.command(name="connectors")
def list_connectors():
    """📋 Show available connector types."""
    console.print()
    table = RichTable(title="Available Connectors")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Connector", style="green")
    table.add_column("Label")
    table.add_column("Description", style="dim")

    for info in available_connectors():
        table.add_row(info.type, info.cls.__name__, info.label, info.description)

    console.print(table)
    console.print()


@app.command(name="test")
def test_source(
    config: str = typer.Argument(..., help=CONFIG_HELP),
):
    """🔎 Check that a data source is reachable."""
    with connected_source(config) as (source, connector):
        ok = connector.test_connection()

    if not ok:
        console.print(f"\n  ❌ [red]Connection test failed[/red] for [cyan]{source.name}[/cyan]\n")
        raise typer.Exit(code=1)
    console.print(f"\n  ✅ Connection OK: [cyan]{source.name}[/cyan] ({source.type})\n")


@app.command()
def schema(
    config: str = typer.Argument(..., help=CONFIG_HELP),
):
    """📊 Show the schema inferred from a data source."""
    with connected_source(config) as (source, connector):
        inferred = connector.get_schema()

    _print_schema(inferred, f"📊 {source.name} ({len(inferred.fields)} fields)")
    console.print()


@app.command()
def preview(
    config: str = typer.Argument(..., help=CONFIG_HELP),
    limit: int = typer.Option(
        10,
        "--limit", "-n",
        min=0,
        help="Maximum number of records to show.",
    ),
):
    """👀 Print the first records of a data source as JSON."""
    with connected_source(config) as (_, connector):
        records = connector.preview(limit)

    console.print_json(json.dumps(records, default=str))


@app.command()
def sync(
    config: str = typer.Argument(..., help=CONFIG_HELP),
    mapping: str = typer.Argument(
        ...,
        help="Field mapping file: a list of {source, target, transform?}.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the sync result as JSON.",
    ),
):
    """🔄 Project every record through a field mapping and report the result.

    Examples:
        feedbridge sync catalog.yaml mapping.yaml
        feedbridge sync shop.json mapping.json --json
    """
    try:
        field_mapping = load_mappings(mapping)
    except ConnectorError as e:
        _fail(e)

    if not as_json:
        console.print()
        console.print(
            Panel.fit("🔄 [bold cyan]feedbridge sync[/bold cyan]", subtitle="v" + __version__)
        )

    with connected_source(config) as (_, connector):
        result = connector.sync(field_mapping)

    if as_json:
        typer.echo(result.to_json(indent=2))
    else:
        _print_sync_result(result)

    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def sheets(
    config: str = typer.Argument(..., help=CONFIG_HELP),
):
    """📑 List the sheets of an Excel workbook source."""
    with connected_source(config) as (source, connector):
        if not isinstance(connector, ExcelConnector):
            _fail(f"'{source.name}' is a {source.type} source; sheets only applies to excel sources")
        names = connector.get_sheet_names()
        current = connector.sheet_name

    console.print()
    for name in names:
        marker = " [green](loaded)[/green]" if name == current else ""
        console.print(f"  • [cyan]{name}[/cyan]{marker}")
    console.print()
