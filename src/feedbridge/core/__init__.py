"""feedbridge core — schema types, field mapping and configuration."""

from .schema import (
    ConnectorConfig,
    FieldMapping,
    FieldType,
    Schema,
    SchemaField,
    ScheduleConfig,
    SyncError,
    SyncResult,
)

__all__ = [
    "ConnectorConfig",
    "FieldMapping",
    "FieldType",
    "Schema",
    "SchemaField",
    "ScheduleConfig",
    "SyncError",
    "SyncResult",
]
