import typer
from rich.console import Console

from feedbridge import __version__
from feedbridge.utils.logger import configure_logging

app = typer.Typer(
    name="feedbridge",
    help="🔌 Pull product data from files, catalog feeds, REST APIs and MCP servers.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

@app.callback(invoke_without_command=True)
def main(
    version: bool = typer.Option(
        False, "--version", "-V", help="Show version and exit."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", help="Log connector activity to stderr."
    ),
):
    """🔌 feedbridge — Pull product data from files, feeds, APIs and MCP servers."""
    if version:
        console.print(f"feedbridge version: [cyan]{__version__}[/cyan]")
        raise typer.Exit()
    if verbose:
        configure_logging(level="DEBUG")
