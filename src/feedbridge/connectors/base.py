"""
feedbridge Base Connector — Abstract interface for all data source connectors.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

from ..core.mapping import Lookup, apply_mapping, resolve_path
from ..core.schema import ConnectorConfig, FieldMapping, Schema, SyncError, SyncResult
from ..errors import ConnectorConnectionError, NotConnectedError, UnsupportedConnectorTypeError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class BaseConnector(ABC):
    """Abstract base class for data source connectors.

    Lifecycle: construct → connect(config) → get_schema() / preview() /
    sync(mapping) → disconnect(). Data-accessing operations raise
    NotConnectedError until connect() has fully succeeded.

    A connector owns exactly one underlying source handle and is not safe
    for concurrent use: callers must not run connect(), sync() or
    disconnect() on the same instance from several threads at once.

    To add a new connector, subclass this, set `connector_type`, implement
    the abstract methods and call register_connector().
    """

    connector_type: str = ""

    def __init__(self, id: str, name: str):
        """Initialize an unconnected connector.

        Args:
            id: Stable identifier of the data source.
            name: Human-readable name, used in error messages.
        """
        self.id = id
        self.name = name
        self.config: Dict[str, Any] = {}
        self.connected = False

    def __repr__(self) -> str:
        state = "connected" if self.connected else "disconnected"
        return f"<{type(self).__name__} id={self.id!r} {state}>"

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.disconnect()

    # ──── Lifecycle ────

    @abstractmethod
    def connect(self, config: Dict[str, Any]) -> None:
        """Open the data source and load its records.

        Raises:
            ConnectorConnectionError: If the source is unreachable,
                malformed, or required config fields are missing.
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Release the source handle. Always succeeds, idempotent."""

    @abstractmethod
    def test_connection(self) -> bool:
        """Check that the source is reachable. Never raises."""

    # ──── Data access ────

    @abstractmethod
    def get_schema(self) -> Schema:
        """Infer the schema of the connected data."""

    @abstractmethod
    def preview(self, limit: int = 10) -> List[Any]:
        """Return at most `limit` records without changing state."""

    @abstractmethod
    def sync(self, mapping: Sequence[FieldMapping]) -> SyncResult:
        """Project every loaded record through `mapping`."""

    # ──── Helpers ────

    def ensure_connected(self) -> None:
        if not self.connected:
            raise NotConnectedError(f"Connector {self.name} is not connected")

    def _require(self, config: Dict[str, Any], *keys: str) -> None:
        missing = [k for k in keys if not config.get(k)]
        if missing:
            raise ConnectorConnectionError(
                f"{self.connector_type} connector '{self.name}' is missing "
                f"required config: {', '.join(missing)}"
            )

    def _seconds(self, config: Dict[str, Any], key: str, default: float) -> float:
        """Read a positive duration from config; absent means `default`."""
        value = config.get(key)
        if value is None:
            return float(default)
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            seconds = 0.0
        if seconds <= 0:
            raise ConnectorConnectionError(
                f"{self.connector_type} connector '{self.name}': {key} must be a positive "
                f"number of seconds, got {value!r}"
            )
        return seconds

    def _run_sync(
        self,
        records: Iterable[Any],
        mapping: Sequence[FieldMapping],
        lookup: Lookup = resolve_path,
    ) -> SyncResult:
        """Project records in load order, isolating per-record failures."""
        started = time.perf_counter()
        errors: List[SyncError] = []
        created = 0

        for i, record in enumerate(records):
            try:
                apply_mapping(record, mapping, lookup)
                # Persisting the mapped record is the caller's concern.
                created += 1
            except Exception as e:
                errors.append(SyncError(row=i, message=str(e)))

        result = SyncResult.build(created=created, errors=errors, started=started)
        logger.info(
            "sync.finished",
            connector_id=self.id,
            connector_type=self.connector_type,
            processed=result.records_processed,
            failed=result.records_failed,
            duration_ms=round(result.duration, 2),
        )
        return result


# ──── Connector Registry ────


@dataclass(frozen=True)
class ConnectorInfo:
    """Registry entry: the class plus metadata shown in UIs and the CLI."""

    type: str
    cls: type
    label: str
    description: str = ""


_CONNECTOR_REGISTRY: Dict[str, ConnectorInfo] = {}


def register_connector(
    type_tag: str,
    connector_class: type,
    label: str | None = None,
    description: str = "",
) -> None:
    """Register a connector class under a type tag."""
    key = type_tag.lower()
    connector_class.connector_type = key
    _CONNECTOR_REGISTRY[key] = ConnectorInfo(
        type=key,
        cls=connector_class,
        label=label or connector_class.__name__,
        description=description,
    )


def available_connectors() -> List[ConnectorInfo]:
    """Return registered connectors in registration order."""
    return list(_CONNECTOR_REGISTRY.values())


def create_connector(type_tag: str, id: str, name: str) -> BaseConnector:
    """Construct an unconnected connector for a type tag.

    Args:
        type_tag: One of the registered tags (csv, excel, bmecat, rest, mcp).
        id: Data source identifier.
        name: Human-readable name.

    Raises:
        UnsupportedConnectorTypeError: If no connector is registered for the tag.
    """
    info = _CONNECTOR_REGISTRY.get(str(type_tag).lower())
    if info is None:
        raise UnsupportedConnectorTypeError(
            f"Unknown connector type: {type_tag}\n"
            f"Available connectors: {', '.join(_CONNECTOR_REGISTRY.keys())}"
        )
    return info.cls(id, name)


def connector_from_config(config: ConnectorConfig) -> BaseConnector:
    """Construct the connector described by a registered data source."""
    return create_connector(config.type, config.id, config.name)

