"""
feedbridge Excel Connector — Load one sheet of an Excel (.xlsx) workbook.

The first row of the sheet holds the column headers; every following
non-blank row becomes a record.
"""

import os
from typing import Any, Dict, List, Sequence

from .base import BaseConnector, register_connector
from .utils import infer_fields
from ..core.schema import FieldMapping, Schema, SyncResult
from ..errors import ConnectorConnectionError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_EXTENSIONS = (".xlsx", ".xlsm", ".xltx", ".xltm")


def _sheet_records(rows: List[tuple]) -> tuple[List[str], List[Dict[str, Any]]]:
    """Turn raw sheet rows into (headers, records)."""
    if not rows:
        return [], []

    headers = [
        str(h).strip() if h is not None else f"col_{i}"
        for i, h in enumerate(rows[0])
    ]
    records = []
    for row in rows[1:]:
        if row is None or all(v is None or v == "" for v in row):
            continue
        records.append({
            header: row[i] if i < len(row) else None
            for i, header in enumerate(headers)
        })
    return headers, records


class ExcelConnector(BaseConnector):
    """Connector for Excel workbooks.

    Config:
        filePath: Path to the workbook (required).
        sheetName: Sheet to load, default is the first sheet.
    """

    def __init__(self, id: str, name: str):
        super().__init__(id, name)
        self.file_path = ""
        self.sheet_name = ""
        self.sheet_names: List[str] = []
        self.headers: List[str] = []
        self.rows: List[Dict[str, Any]] = []

    def connect(self, config: Dict[str, Any]) -> None:
        import openpyxl

        self._require(config, "filePath")
        self.config = dict(config)
        self.file_path = os.path.expanduser(config["filePath"])
        self.connected = False

        if not os.path.isfile(self.file_path):
            raise ConnectorConnectionError(f"Excel file not found: {self.file_path}")

        ext = os.path.splitext(self.file_path)[1].lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise ConnectorConnectionError(f"Unsupported file format: {ext}. Use .xlsx files.")

        try:
            wb = openpyxl.load_workbook(self.file_path, read_only=True, data_only=True)
        except Exception as e:
            raise ConnectorConnectionError(f"Cannot open workbook {self.file_path}: {e}") from e

        try:
            sheet_names = list(wb.sheetnames)
            if not sheet_names:
                raise ConnectorConnectionError(f"Workbook has no sheets: {self.file_path}")
            sheet_name = config.get("sheetName") or sheet_names[0]
            if sheet_name not in sheet_names:
                raise ConnectorConnectionError(
                    f"Sheet '{sheet_name}' not found. Available: {', '.join(sheet_names)}"
                )
            rows = list(wb[sheet_name].iter_rows(values_only=True))
        finally:
            wb.close()

        self.sheet_names = sheet_names
        self.sheet_name = sheet_name
        self.headers, self.rows = _sheet_records(rows)
        self.connected = True
        logger.info(
            "connector.connected",
            connector_id=self.id,
            file=self.file_path,
            sheet=sheet_name,
            records=len(self.rows),
        )

    def disconnect(self) -> None:
        self.rows = []
        self.headers = []
        self.sheet_names = []
        self.connected = False

    def test_connection(self) -> bool:
        return bool(self.file_path) and os.path.isfile(self.file_path)

    def get_sheet_names(self) -> List[str]:
        """Sheet names of the loaded workbook (empty before connect)."""
        return list(self.sheet_names)

    def get_schema(self) -> Schema:
        self.ensure_connected()
        # Cells carry native number/date types, so strings are not date-parsed
        return Schema(fields=infer_fields(self.headers, self.rows, parse_dates=False))

    def preview(self, limit: int = 10) -> List[Dict[str, Any]]:
        self.ensure_connected()
        return [dict(row) for row in self.rows[:max(limit, 0)]]

    def sync(self, mapping: Sequence[FieldMapping]) -> SyncResult:
        self.ensure_connected()
        return self._run_sync(self.rows, mapping)


# Register this connector
register_connector(
    "excel",
    ExcelConnector,
    label="Excel Workbook",
    description="One sheet of an .xlsx workbook, first row as headers",
)
