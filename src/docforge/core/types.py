"""Field type registry with JSON Schema shapes, query operators and coercion."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable

ORDERED_OPERATORS = ["$gt", "$gte", "$lt", "$lte"]


def format_datetime(value: datetime) -> str:
    """Render a datetime as an ISO 8601 UTC string with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_datetime(value: Any) -> str:
    """Normalize a date given as datetime, epoch milliseconds or ISO string.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to a date")
    if isinstance(value, (int, float)):
        return format_datetime(datetime.fromtimestamp(value / 1000, tz=UTC))
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return format_datetime(datetime.fromisoformat(text))
    raise ValueError(f"Cannot convert {value!r} to a date")


def _coerce_string(value: Any) -> Any:
    return value if isinstance(value, str) else str(value)


def _coerce_number(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert {value!r} to a number")
    if isinstance(value, (int, float)):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return float(text)


def _coerce_boolean(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if value in ("true", "1", 1):
        return True
    if value in ("false", "0", 0):
        return False
    raise ValueError(f"Cannot convert {value!r} to a boolean")


def _coerce_object_id(value: Any) -> Any:
    if isinstance(value, dict) and "_id" in value:
        return str(value["_id"])
    return str(value)


@dataclass
class FieldType:
    name: str
    json_schema: dict[str, Any]
    query_operators: list[str] = field(default_factory=list)
    coerce: Callable[[Any], Any] = _coerce_string

    @property
    def ordered(self) -> bool:
        return "$gt" in self.query_operators


# Built-in field types
FIELD_TYPES: dict[str, FieldType] = {
    "string": FieldType(
        name="string",
        json_schema={"type": "string"},
        query_operators=["$in", "$regex", "$options"],
        coerce=_coerce_string,
    ),
    "number": FieldType(
        name="number",
        json_schema={"type": "number"},
        query_operators=list(ORDERED_OPERATORS),
        coerce=_coerce_number,
    ),
    "boolean": FieldType(
        name="boolean",
        json_schema={"type": "boolean"},
        query_operators=["$in"],
        coerce=_coerce_boolean,
    ),
    "date": FieldType(
        name="date",
        json_schema={"type": "string", "format": "date-time"},
        query_operators=list(ORDERED_OPERATORS),
        coerce=parse_datetime,
    ),
    "objectId": FieldType(
        name="objectId",
        json_schema={"type": "string"},
        query_operators=["$in"],
        coerce=_coerce_object_id,
    ),
    "object": FieldType(
        name="object",
        json_schema={"type": "object"},
        coerce=lambda value: value,
    ),
    "array": FieldType(
        name="array",
        json_schema={"type": "array"},
        query_operators=["$in"],
        coerce=lambda value: value,
    ),
}


def get_field_type(type_name: str) -> FieldType:
    """Get field type definition, defaulting to string if unknown."""
    return FIELD_TYPES.get(type_name, FIELD_TYPES["string"])
