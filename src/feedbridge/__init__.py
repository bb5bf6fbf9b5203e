"""
feedbridge — Pull product data from files, feeds, APIs and MCP servers.

A connector loads records from one data source, infers a schema from them
and projects them into a target schema through field mappings.
"""

__version__ = "0.4.0"

from .errors import (  # noqa: E402
    ConnectorConnectionError,
    ConnectorError,
    NotConnectedError,
    ToolInvocationError,
    UnsupportedConnectorTypeError,
)
from .connectors import create_connector  # noqa: E402

__all__ = [
    "__version__",
    "create_connector",
    "ConnectorError",
    "ConnectorConnectionError",
    "NotConnectedError",
    "ToolInvocationError",
    "UnsupportedConnectorTypeError",
]
