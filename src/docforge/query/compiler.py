"""Compile parsed list-query parameters into a store filter.

Only fields listed in a resource's ``query_fields`` (plus ``_id``) may be
queried. Values are coerced to the field's type, and operator objects may
only use the operators registered for that type.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any

from docforge.core.types import FieldType, get_field_type
from docforge.errors import InvalidRequest
from docforge.metadata.loader import DocumentModel, FieldDefinition

RESERVED_PARAMS = ("limit", "page", "sort")
COMPLEX_QUERY_PARAMS = ("$and", "$or")
# Operators that carry their own value type rather than the field's
PASSTHROUGH_OPERATORS = ("$regex", "$options")

DEFAULT_LIMIT = 100
MAX_LIMIT = 500

SortSpec = list[tuple[str, int]]


@dataclass
class CompiledQuery:
    """A validated list query.

    Attributes:
        filter: Store filter (mongo-style operators)
        sort: Ordered ``(field, 1 | -1)`` pairs
        limit: Page size after clamping
        page: 1-based page number, or None when not paginating
    """

    filter: dict[str, Any] = field(default_factory=dict)
    sort: SortSpec = field(default_factory=list)
    limit: int = DEFAULT_LIMIT
    page: int | None = None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit if self.page else 0


def parse_sort(sort: Any) -> SortSpec:
    """Parse ``"-created name"`` or ``{"created": "descending"}`` into pairs.

    Raises:
        InvalidRequest: For an unknown sort direction
    """
    if not sort:
        return []
    if isinstance(sort, str):
        result = []
        for token in sort.replace(",", " ").split():
            if token.startswith("-"):
                result.append((token[1:], -1))
            else:
                result.append((token.lstrip("+"), 1))
        return result
    if isinstance(sort, dict):
        result = []
        for name, direction in sort.items():
            if direction in ("ascending", "asc", 1, "1"):
                result.append((name, 1))
            elif direction in ("descending", "desc", -1, "-1"):
                result.append((name, -1))
            else:
                raise InvalidRequest(f"Invalid sort direction for {name}: {direction}")
        return result
    if isinstance(sort, list):
        return [(str(name), int(direction)) for name, direction in sort]
    raise InvalidRequest(f"Invalid sort: {sort}")


def _field_type_for(model: DocumentModel, key: str) -> tuple[FieldDefinition | None, FieldType | None]:
    if key == "_id":
        return None, get_field_type("objectId")
    field_def = model.resolve_path(key)
    if field_def is None:
        return None, None
    if field_def.is_array and field_def.items is not None:
        # Matching an array field compares against its elements
        return field_def, get_field_type(field_def.items.type)
    return field_def, get_field_type(field_def.type)


def _coerce(key: str, field_type: FieldType | None, value: Any) -> Any:
    if field_type is None:
        # Not a model field; only normalize booleans
        if value == "true":
            return True
        if value == "false":
            return False
        return value
    if isinstance(value, (dict, list)) and field_type.name not in ("object", "array"):
        raise InvalidRequest(f"Invalid value for {key}: {value}")
    try:
        return field_type.coerce(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"Invalid value for {key}: {value}")


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return list(value.values())
    return [value]


def compile_condition(model: DocumentModel, key: str, value: Any) -> Any:
    """Coerce one field condition, checking operators against the field type.

    Raises:
        InvalidRequest: For a disallowed operator or an uncoercible value
    """
    _, field_type = _field_type_for(model, key)

    if isinstance(value, list):
        # Repeated keys compile to $in, which not every type supports
        if field_type is not None and "$in" not in field_type.query_operators:
            raise InvalidRequest(f"Operator $in is not allowed for {key}.")
        return {"$in": [_coerce(key, field_type, v) for v in value]}

    if not isinstance(value, dict):
        return _coerce(key, field_type, value)

    allowed = field_type.query_operators if field_type is not None else None
    condition: dict[str, Any] = {}
    for operator, operand in value.items():
        if allowed is not None and operator not in allowed:
            raise InvalidRequest(f"Operator {operator} is not allowed for {key}.")
        if operator in ("$in", "$nin"):
            condition[operator] = [_coerce(key, field_type, v) for v in _as_list(operand)]
        elif operator in PASSTHROUGH_OPERATORS:
            condition[operator] = str(operand)
            if operator == "$regex":
                try:
                    re.compile(condition[operator])
                except re.error as e:
                    raise InvalidRequest(f"Invalid value for {key}: {e}")
        else:
            condition[operator] = _coerce(key, field_type, operand)
    return condition


def check_query_param_allowed(key: str, value: Any, query_fields: list[str]) -> None:
    """Reject fields outside ``query_fields``; ``$and``/``$or`` are checked one level deep.

    Raises:
        InvalidRequest: Naming the first disallowed field
    """
    if key in COMPLEX_QUERY_PARAMS:
        for sub_query in _as_list(value):
            if not isinstance(sub_query, dict):
                raise InvalidRequest(f"{key} must be a list of conditions.")
            for sub_key, sub_value in sub_query.items():
                if sub_key in COMPLEX_QUERY_PARAMS:
                    raise InvalidRequest(f"{sub_key} is not allowed as a query param.")
                check_query_param_allowed(sub_key, sub_value, query_fields)
        return
    if key != "_id" and key not in query_fields:
        raise InvalidRequest(f"{key} is not allowed as a query param.")


def _parse_limit(raw: Any, default_limit: int, max_limit: int) -> int:
    try:
        requested = int(float(raw))
    except (TypeError, ValueError):
        return default_limit
    if requested <= 0:
        return default_limit
    return min(requested, max_limit)


def _parse_page(raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        page = int(raw)
    except (TypeError, ValueError):
        raise InvalidRequest(f"Invalid page: {raw}")
    if page < 1:
        raise InvalidRequest(f"Invalid page: {raw}")
    return page


def compile_query(
    params: dict[str, Any],
    model: DocumentModel,
    query_fields: list[str] | None = None,
    *,
    sort_default: Any = None,
    default_params: dict[str, Any] | None = None,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> CompiledQuery:
    """Validate and compile parsed query params.

    Args:
        params: Output of ``parse_query_params``
        model: Model being listed
        query_fields: Fields a client may filter on
        sort_default: Sort used when the request has none
        default_params: Conditions applied before the request's own
        default_limit: Limit when the request has none
        max_limit: Upper bound for a requested limit

    Returns:
        CompiledQuery

    Raises:
        InvalidRequest: For disallowed fields or operators, bad values or a bad page
    """
    query_fields = list(query_fields or [])
    compiled_filter: dict[str, Any] = copy.deepcopy(default_params) if default_params else {}

    for key, value in params.items():
        if key in RESERVED_PARAMS:
            continue
        check_query_param_allowed(key, value, query_fields)
        if key in COMPLEX_QUERY_PARAMS:
            compiled_filter[key] = [
                {sub_key: compile_condition(model, sub_key, sub_value) for sub_key, sub_value in sub.items()}
                for sub in _as_list(value)
            ]
        else:
            compiled_filter[key] = compile_condition(model, key, value)

    sort = parse_sort(params.get("sort")) if params.get("sort") else parse_sort(sort_default)

    return CompiledQuery(
        filter=compiled_filter,
        sort=sort,
        limit=_parse_limit(params.get("limit"), default_limit, max_limit),
        page=_parse_page(params.get("page")),
    )
