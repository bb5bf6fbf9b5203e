"""feedbridge CLI — Inspect, preview and sync data sources from the command line."""

from .main import app, console
from . import commands
from . import mcp

__all__ = ["app", "console", "commands", "mcp"]
