"""Evaluate mongo-style filters against plain dict documents.

Supported: equality, ``$gt $gte $lt $lte $ne $in $nin $exists $regex
$options``, and top-level ``$and``/``$or``. Dotted paths descend through
nested objects and arrays; a condition on an array matches when any element
matches.
"""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Any

_MISSING = object()


def _resolve(doc: Any, parts: list[str]) -> list[Any]:
    """All values reachable at ``parts``, flattening arrays along the way."""
    if not parts:
        return [doc]
    if isinstance(doc, list):
        values = []
        for item in doc:
            values.extend(_resolve(item, parts))
        return values
    if not isinstance(doc, dict):
        return []
    head, rest = parts[0], parts[1:]
    if head not in doc:
        return [] if rest else [_MISSING]
    return _resolve(doc[head], rest)


def get_path(doc: dict[str, Any], path: str) -> list[Any]:
    return _resolve(doc, path.split("."))


def _candidates(values: list[Any]) -> list[Any]:
    # A field holding an array matches on the array itself or any element
    result = []
    for value in values:
        result.append(value)
        if isinstance(value, list):
            result.extend(value)
    return result


def _comparable(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool)
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return True
    return type(a) is type(b) and isinstance(a, str)


def _compare(operator: str, value: Any, operand: Any) -> bool:
    if value is _MISSING or value is None or not _comparable(value, operand):
        return False
    if operator == "$gt":
        return value > operand
    if operator == "$gte":
        return value >= operand
    if operator == "$lt":
        return value < operand
    return value <= operand


def _equals(values: list[Any], operand: Any) -> bool:
    if operand is None:
        return any(v is _MISSING or v is None for v in values)
    return any(v == operand for v in _candidates(values) if v is not _MISSING)


def _match_operators(values: list[Any], condition: dict[str, Any]) -> bool:
    for operator, operand in condition.items():
        if operator in ("$gt", "$gte", "$lt", "$lte"):
            if not any(_compare(operator, v, operand) for v in _candidates(values)):
                return False
        elif operator == "$ne":
            if _equals(values, operand):
                return False
        elif operator == "$in":
            if not any(_equals(values, option) for option in operand):
                return False
        elif operator == "$nin":
            if any(_equals(values, option) for option in operand):
                return False
        elif operator == "$exists":
            present = any(v is not _MISSING for v in values)
            if present != bool(operand):
                return False
        elif operator == "$regex":
            flags = 0
            options = condition.get("$options", "")
            if "i" in options:
                flags |= re.IGNORECASE
            if "m" in options:
                flags |= re.MULTILINE
            if "s" in options:
                flags |= re.DOTALL
            pattern = re.compile(operand, flags)
            if not any(isinstance(v, str) and pattern.search(v) for v in _candidates(values)):
                return False
        elif operator == "$options":
            continue
        else:
            raise ValueError(f"Unsupported query operator: {operator}")
    return True


def _is_operator_dict(value: Any) -> bool:
    return isinstance(value, dict) and bool(value) and all(k.startswith("$") for k in value)


def matches(doc: dict[str, Any], query: dict[str, Any] | None) -> bool:
    """True if ``doc`` satisfies every condition in ``query``."""
    if not query:
        return True
    for key, condition in query.items():
        if key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        else:
            values = get_path(doc, key)
            if _is_operator_dict(condition):
                if not _match_operators(values, condition):
                    return False
            elif not _equals(values, condition):
                return False
    return True


def _sort_value(doc: dict[str, Any], path: str) -> Any:
    values = [v for v in get_path(doc, path) if v is not _MISSING]
    return values[0] if values else None


def _compare_values(a: Any, b: Any) -> int:
    # None sorts first, then numbers, then strings, then anything else
    def rank(v: Any) -> int:
        if v is None:
            return 0
        if isinstance(v, bool):
            return 1
        if isinstance(v, (int, float)):
            return 2
        if isinstance(v, str):
            return 3
        return 4

    ra, rb = rank(a), rank(b)
    if ra != rb:
        return -1 if ra < rb else 1
    if ra in (0, 4) or a == b:
        return 0
    return -1 if a < b else 1


def sort_documents(docs: list[dict[str, Any]], sort: list[tuple[str, int]] | None) -> list[dict[str, Any]]:
    """Stable multi-key sort by ``(path, 1 | -1)`` pairs."""
    if not sort:
        return list(docs)

    def compare(a: dict[str, Any], b: dict[str, Any]) -> int:
        for path, direction in sort:
            result = _compare_values(_sort_value(a, path), _sort_value(b, path))
            if result:
                return result * direction
        return 0

    return sorted(docs, key=cmp_to_key(compare))
