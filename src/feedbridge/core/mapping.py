"""
feedbridge Mapping — Project source records onto a target schema.

A record is projected by walking its FieldMapping list in order: the
source path is resolved, an optional named transform is applied, and the
value is written to the target key. Later mappings to the same target
overwrite earlier ones.
"""

import json
from typing import Any, Callable, Dict, Iterable, Optional

from ..errors import MappingError
from .schema import FieldMapping

Lookup = Callable[[Any, str], Any]


def resolve_path(record: Any, path: str) -> Any:
    """Resolve a dot path such as "address.city" or "prices.0.amount".

    A missing final key yields None. Traversing into a scalar, or a bad
    list index, raises MappingError.
    """
    value = record
    for segment in path.split("."):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(segment)
        elif isinstance(value, (list, tuple)):
            try:
                value = value[int(segment)]
            except (ValueError, IndexError):
                raise MappingError(f"Cannot resolve '{segment}' in path '{path}': not a valid index")
        else:
            raise MappingError(
                f"Cannot resolve '{segment}' in path '{path}': "
                f"{type(value).__name__} value has no fields"
            )
    return value


def _to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    # Decimal comma, e.g. "4,50" in German catalogs
    if text.count(",") == 1 and "." not in text:
        text = text.replace(",", ".")
    try:
        return int(text)
    except ValueError:
        return float(text)


def _to_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in ("true", "1", "yes", "y", "on"):
        return True
    if s in ("false", "0", "no", "n", "off", ""):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _split(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [part.strip() for part in str(value).split(",") if part.strip()]


def _json(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return value
    return json.loads(value)


TRANSFORMS: Dict[str, Callable[[Any], Any]] = {
    "trim": lambda v: v.strip() if isinstance(v, str) else v,
    "lower": lambda v: str(v).lower(),
    "upper": lambda v: str(v).upper(),
    "string": str,
    "number": _to_number,
    "integer": lambda v: int(_to_number(v)),
    "boolean": _to_boolean,
    "split": _split,
    "json": _json,
}


def apply_transform(name: Optional[str], value: Any) -> Any:
    """Apply the transform called `name`. None values pass through."""
    if not name or value is None:
        return value
    func = TRANSFORMS.get(name)
    if func is None:
        raise MappingError(
            f"Unknown transform '{name}'. Available: {', '.join(sorted(TRANSFORMS))}"
        )
    try:
        return func(value)
    except (ValueError, TypeError) as e:
        raise MappingError(f"Transform '{name}' failed for value {value!r}: {e}") from e


def apply_mapping(
    record: Any,
    mapping: Iterable[FieldMapping],
    lookup: Lookup = resolve_path,
) -> Dict[str, Any]:
    """Project one record. Raises MappingError if any mapping fails."""
    mapped: Dict[str, Any] = {}
    for m in mapping:
        mapped[m.target] = apply_transform(m.transform, lookup(record, m.source))
    return mapped
