"""
feedbridge Errors — Exception hierarchy shared by all connectors.

Connect-time and out-of-sequence failures are raised to the caller.
Per-record failures during a sync are collected as SyncError values
instead (see feedbridge.core.schema).
"""


class ConnectorError(Exception):
    """Base class for every error raised by feedbridge."""


class ConnectorConnectionError(ConnectorError, ConnectionError):
    """The data source could not be reached, read or handshaken with.

    Also a builtin ConnectionError, so callers that already catch
    ConnectionError keep working.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UnsupportedAuthError(ConnectorConnectionError):
    """The configured authentication scheme is not implemented."""


class NotConnectedError(ConnectorError):
    """A data-accessing operation was called before connect()."""


class UnsupportedConnectorTypeError(ConnectorError, ValueError):
    """The connector factory was given an unknown type tag."""


class ToolInvocationError(ConnectorError):
    """An MCP tool call or resource read failed."""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


class MappingError(ConnectorError):
    """A single record could not be projected through a field mapping."""


class ConfigError(ConnectorError, ValueError):
    """A connector config or mapping file is missing or malformed."""
