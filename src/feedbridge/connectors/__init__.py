"""
feedbridge Connectors — Load product data from files, feeds, APIs and MCP servers.

Each connector knows how to open one kind of data source, infer a schema
from its records and project them through field mappings. Importing this
package registers every built-in connector type.
"""

from .base import (
    BaseConnector,
    ConnectorInfo,
    available_connectors,
    connector_from_config,
    create_connector,
    register_connector,
)
from .files import CSVConnector
from .excel import ExcelConnector
from .bmecat import BMEcatConnector
from .rest import RESTConnector
from .mcp import MCP_TEMPLATES, MCPConnector, MCPResource, MCPTool, template_config

__all__ = [
    "BaseConnector",
    "ConnectorInfo",
    "available_connectors",
    "connector_from_config",
    "create_connector",
    "register_connector",
    "CSVConnector",
    "ExcelConnector",
    "BMEcatConnector",
    "RESTConnector",
    "MCPConnector",
    "MCPTool",
    "MCPResource",
    "MCP_TEMPLATES",
    "template_config",
]
