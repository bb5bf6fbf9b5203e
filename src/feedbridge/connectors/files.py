"""
feedbridge File Connector — Load delimited text (CSV, TSV, ...) files.

The whole file is read into memory at connect() time. The header row
becomes the field names and empty lines are skipped.
"""

import csv
import os
from typing import Any, Dict, List, Sequence

from .base import BaseConnector, register_connector
from .utils import infer_fields
from ..core.schema import FieldMapping, Schema, SyncResult
from ..errors import ConnectorConnectionError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _read_delimited(file_path: str, delimiter: str, encoding: str) -> tuple[List[str], List[Dict[str, Any]]]:
    """Read a delimited file and return (headers, rows)."""
    with open(file_path, "r", newline="", encoding=encoding) as f:
        reader = csv.DictReader(f, delimiter=delimiter)
        headers = [h.strip() for h in (reader.fieldnames or [])]
        rows = []
        for raw in reader:
            values = [raw.get(h) for h in reader.fieldnames or []]
            # A line of bare delimiters is an empty line too
            if all(v is None or v == "" for v in values):
                continue
            rows.append({
                header: (value if value is not None else "")
                for header, value in zip(headers, values)
            })
    return headers, rows


class CSVConnector(BaseConnector):
    """Connector for delimited text files.

    Config:
        filePath: Path to the file (required).
        delimiter: Field separator, default ",".
        encoding: Text encoding, default "utf-8-sig" (strips a BOM).
    """

    def __init__(self, id: str, name: str):
        super().__init__(id, name)
        self.file_path = ""
        self.delimiter = ","
        self.headers: List[str] = []
        self.rows: List[Dict[str, Any]] = []

    def connect(self, config: Dict[str, Any]) -> None:
        self._require(config, "filePath")
        self.config = dict(config)
        self.file_path = os.path.expanduser(config["filePath"])
        self.delimiter = config.get("delimiter") or ","
        encoding = config.get("encoding") or "utf-8-sig"
        self.connected = False

        if not os.path.isfile(self.file_path):
            raise ConnectorConnectionError(f"File not found: {self.file_path}")

        try:
            headers, rows = _read_delimited(self.file_path, self.delimiter, encoding)
        except (OSError, UnicodeDecodeError, csv.Error, TypeError) as e:
            raise ConnectorConnectionError(f"Cannot read {self.file_path}: {e}") from e

        self.headers, self.rows = headers, rows
        self.connected = True
        logger.info("connector.connected", connector_id=self.id, file=self.file_path, records=len(rows))

    def disconnect(self) -> None:
        self.rows = []
        self.headers = []
        self.connected = False

    def test_connection(self) -> bool:
        return bool(self.file_path) and os.path.isfile(self.file_path)

    def get_schema(self) -> Schema:
        self.ensure_connected()
        return Schema(fields=infer_fields(self.headers, self.rows, parse_dates=True))

    def preview(self, limit: int = 10) -> List[Dict[str, Any]]:
        self.ensure_connected()
        return [dict(row) for row in self.rows[:max(limit, 0)]]

    def sync(self, mapping: Sequence[FieldMapping]) -> SyncResult:
        self.ensure_connected()
        return self._run_sync(self.rows, mapping)


# Register this connector
register_connector(
    "csv",
    CSVConnector,
    label="CSV File",
    description="Delimited text file with a header row",
)
