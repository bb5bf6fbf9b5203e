"""
Shared utility functions for feedbridge connectors.
"""

import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List

from ..core.schema import FieldType, SchemaField

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

# Date layouts seen in catalog exports besides ISO-8601
_DATE_FORMATS = ("%d.%m.%Y", "%m/%d/%Y", "%Y/%m/%d", "%d.%m.%Y %H:%M:%S")


def is_empty(value: Any) -> bool:
    """True for missing values: None and blank strings."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def looks_like_number(text: str) -> bool:
    return bool(_NUMBER_RE.match(text.strip()))


def looks_like_date(text: str) -> bool:
    """Check whether a string parses as a calendar date."""
    s = text.strip()
    if not s or not any(c.isdigit() for c in s):
        return False
    try:
        datetime.fromisoformat(s.replace("Z", "+00:00"))
        return True
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            datetime.strptime(s, fmt)
            return True
        except ValueError:
            continue
    return False


def infer_type(value: Any, parse_dates: bool = True) -> FieldType:
    """Infer a FieldType from a sample value.

    Precedence: missing → string, list → array, dict → object,
    number → number, "true"/"false" → boolean, date → date, else string.
    Native booleans are checked before numbers since bool is an int.

    Args:
        value: A sample value from the data source.
        parse_dates: Whether strings may be classified as dates. Sources
            with native date cells (spreadsheets, JSON APIs) pass False.
    """
    if is_empty(value):
        return FieldType.STRING
    if isinstance(value, (list, tuple)):
        return FieldType.ARRAY
    if isinstance(value, dict):
        return FieldType.OBJECT
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float)):
        return FieldType.NUMBER
    if isinstance(value, (date, datetime)):
        return FieldType.DATE

    s = str(value)
    if looks_like_number(s):
        return FieldType.NUMBER
    if s in ("true", "false"):
        return FieldType.BOOLEAN
    if parse_dates and looks_like_date(s):
        return FieldType.DATE
    return FieldType.STRING


def infer_fields(
    headers: Iterable[str],
    rows: List[Dict[str, Any]],
    parse_dates: bool = True,
) -> List[SchemaField]:
    """Build schema fields for tabular data.

    The type and sample come from the first row; a field is nullable when
    any row holds an empty value for it.
    """
    first = rows[0] if rows else {}
    fields = []
    for header in headers:
        sample = first.get(header)
        fields.append(SchemaField(
            name=header,
            type=infer_type(sample, parse_dates=parse_dates),
            nullable=any(is_empty(row.get(header)) for row in rows),
            sample=sample,
        ))
    return fields
