"""
feedbridge Schema — Value types shared by every connector.

Connectors describe their data with a Schema, consume FieldMapping rules
and report each sync run as an immutable SyncResult.
"""

import json
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class FieldType(str, Enum):
    """Universal field types produced by schema inference."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


@dataclass
class SchemaField:
    """A single field discovered in a data source."""

    name: str
    type: FieldType
    nullable: bool = True
    sample: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "nullable": self.nullable,
            "sample": self.sample,
        }


@dataclass
class Schema:
    """Ordered list of fields inferred from connected data."""

    fields: List[SchemaField] = field(default_factory=list)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get(self, name: str) -> Optional[SchemaField]:
        """Return the field called `name`, or None."""
        return next((f for f in self.fields if f.name == name), None)

    def to_dict(self) -> Dict[str, Any]:
        return {"fields": [f.to_dict() for f in self.fields]}


@dataclass(frozen=True)
class FieldMapping:
    """Projects one source field (dot path) onto one target field."""

    source: str
    target: str
    transform: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldMapping":
        """Build a mapping from its wire shape {source, target, transform?}."""
        try:
            return cls(
                source=str(data["source"]),
                target=str(data["target"]),
                transform=data.get("transform") or None,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Invalid field mapping {data!r}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        out = {"source": self.source, "target": self.target}
        if self.transform:
            out["transform"] = self.transform
        return out


@dataclass(frozen=True)
class SyncError:
    """A recoverable failure recorded during a sync run."""

    message: str
    row: Optional[int] = None
    field: Optional[str] = None
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"message": self.message}
        if self.row is not None:
            out["row"] = self.row
        if self.field is not None:
            out["field"] = self.field
        if self.data is not None:
            out["data"] = self.data
        return out


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync() call. Never mutated after creation."""

    success: bool
    records_processed: int
    records_created: int
    records_updated: int
    records_failed: int
    errors: Tuple[SyncError, ...] = ()
    duration: float = 0.0
    """Wall-clock duration in milliseconds."""

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        created: int,
        errors: List[SyncError],
        started: float,
        updated: int = 0,
    ) -> "SyncResult":
        """Assemble a result from counters.

        `started` is a time.perf_counter() reading taken when the run began.
        The failure count is the number of errors, and processed is the sum
        of created, updated and failed.
        """
        failed = len(errors)
        return cls(
            success=failed == 0,
            records_processed=created + updated + failed,
            records_created=created,
            records_updated=updated,
            records_failed=failed,
            errors=tuple(errors),
            duration=(time.perf_counter() - started) * 1000.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape with camelCase keys and an ISO-8601 timestamp."""
        return {
            "success": self.success,
            "recordsProcessed": self.records_processed,
            "recordsCreated": self.records_created,
            "recordsUpdated": self.records_updated,
            "recordsFailed": self.records_failed,
            "errors": [e.to_dict() for e in self.errors],
            "duration": round(self.duration, 3),
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(), default=str, **kwargs)


@dataclass(frozen=True)
class ScheduleConfig:
    """Cron-like schedule attached to a registered data source."""

    expression: str
    timezone: Optional[str] = None


@dataclass(frozen=True)
class ConnectorConfig:
    """A registered data source: identity, type tag and connect config."""

    id: str
    name: str
    type: str
    config: Dict[str, Any] = field(default_factory=dict)
    schedule: Optional[ScheduleConfig] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectorConfig":
        missing = [k for k in ("id", "type") if not data.get(k)]
        if missing:
            raise ValueError(f"Connector config is missing required keys: {', '.join(missing)}")

        schedule = data.get("schedule")
        if isinstance(schedule, str):
            schedule = ScheduleConfig(expression=schedule)
        elif isinstance(schedule, dict):
            schedule = ScheduleConfig(
                expression=schedule["expression"],
                timezone=schedule.get("timezone"),
            )

        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            type=str(data["type"]).lower(),
            config=dict(data.get("config") or {}),
            schedule=schedule,
        )

    def with_config(self, **changes: Any) -> "ConnectorConfig":
        """Return a copy whose connect config has `changes` merged in."""
        return replace(self, config={**self.config, **changes})
