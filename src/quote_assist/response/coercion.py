"""Schema assembly for recovered JSON values.

Every tier hands its candidate value to `assemble`, which is the one place
where field types are checked and coerced. Unknown keys pass through; schema
fields of the wrong type are coerced when the conversion is unambiguous and
dropped otherwise.
"""

import logging
import re
from typing import Any

from quote_assist.constants import (
    DEFAULT_MATERIAL_PRICE,
    DEFAULT_MATERIAL_QUANTITY,
    DEFAULT_MATERIAL_UNIT,
)
from quote_assist.core.schemas import MATERIAL_SCHEMA
from quote_assist.core.types import (
    ExpectedShape,
    FieldKind,
    FieldSpec,
    ObjectArray,
    Schema,
    SingleObject,
)

log = logging.getLogger(__name__)

_NUMERIC = re.compile(r"^\s*-?\d+(?:\.\d+)?\s*$")

_MATERIAL_DEFAULTS = {
    "quantity": DEFAULT_MATERIAL_QUANTITY,
    "unit": DEFAULT_MATERIAL_UNIT,
    "price": DEFAULT_MATERIAL_PRICE,
}


def coerce_number(value: Any) -> int | float | None:
    """Return `value` as a number, or None if it is not unambiguously one.

    Numeric-looking strings (``"120"``, ``" 12.5 "``) are converted.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return value
    if isinstance(value, str) and _NUMERIC.match(value):
        text = value.strip()
        return float(text) if "." in text else int(text)
    return None


def coerce_string(value: Any, choices: tuple[str, ...] | None = None) -> str | None:
    """Return `value` as a string, or None if it cannot be one.

    With `choices`, the lower-cased value must be one of them.
    """
    if isinstance(value, str):
        text = value
    elif isinstance(value, int | float) and not isinstance(value, bool):
        text = str(value)
    else:
        return None
    if choices is None:
        return text
    normalized = text.strip().lower()
    return normalized if normalized in choices else None


def assemble_material(raw: dict[str, Any]) -> dict[str, Any] | None:
    """Assemble a material line, filling the fields the model left out."""
    record = assemble_record(raw, MATERIAL_SCHEMA)
    if record is None:
        return None
    for name, default in _MATERIAL_DEFAULTS.items():
        record.setdefault(name, default)
    return record


def _coerce_field(value: Any, field: FieldSpec) -> Any:
    if field.kind is FieldKind.NUMBER:
        return coerce_number(value)
    if field.kind is FieldKind.STRING:
        return coerce_string(value, field.choices)
    if not isinstance(value, list):
        return None
    materials = (assemble_material(item) for item in value if isinstance(item, dict))
    return [m for m in materials if m is not None]


def _is_present(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip() != ""
    return value is not None


def assemble_record(raw: dict[str, Any], schema: Schema) -> dict[str, Any] | None:
    """Assemble one record against `schema`.

    Returns:
        The record, or None when a required field is missing or unusable.
        Fields keep the key they arrived under; aliases are not renamed.
    """
    record: dict[str, Any] = {}
    consumed: set[str] = set()

    for field in schema:
        key = next((k for k in field.keys if k in raw), None)
        if key is None:
            continue
        consumed.add(key)
        coerced = _coerce_field(raw[key], field)
        if coerced is not None:
            record[key] = coerced

    for field in schema:
        if field.required and not any(
            _is_present(record.get(key)) for key in field.keys
        ):
            return None

    for key, value in raw.items():
        if key not in consumed and key not in record:
            record[key] = value
    return record


def assemble(value: Any, shape: ExpectedShape) -> Any | None:
    """Check `value` against the shape's cardinality and assemble its records.

    Arrays longer than ``shape.max_items`` are truncated, not rejected.
    Array elements that fail assembly are dropped; an array that loses every
    element does not satisfy the shape.

    Returns:
        The assembled value, or None if it does not satisfy `shape`.
    """
    if isinstance(shape, SingleObject):
        if not isinstance(value, dict):
            return None
        return assemble_record(value, shape.schema)

    if isinstance(shape, ObjectArray):
        if not isinstance(value, list):
            return None
        records = (
            assemble_record(item, shape.schema)
            for item in value
            if isinstance(item, dict)
        )
        items = [r for r in records if r is not None]
        if value and not items:
            return None
        if len(value) != len(items):
            log.debug("Dropped %d invalid element(s).", len(value) - len(items))
        if len(items) > shape.max_items:
            log.debug(
                "Truncating %d elements to max_items=%d.", len(items), shape.max_items
            )
        return items[: shape.max_items]

    return value if isinstance(value, str) else None
