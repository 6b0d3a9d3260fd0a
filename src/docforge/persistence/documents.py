"""Document preparation shared by every store.

Stores own ``_id`` assignment, ``created``/``updated`` stamping (for documents
and for object-array items) and schema validation. Keeping it here means the
memory and SQL stores behave identically.
"""

from __future__ import annotations

import copy
import secrets
from datetime import UTC, datetime
from typing import Any, Callable

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from docforge.core.types import format_datetime, get_field_type
from docforge.metadata.loader import DocumentModel, FieldDefinition
from docforge.metadata.schema import document_validation_schema

Clock = Callable[[], datetime]

TIMESTAMP_FIELDS = ("created", "updated")


class DocumentValidationError(ValueError):
    """A document does not satisfy its model.

    Attributes:
        errors: ``{path: message}`` for every failure
    """

    def __init__(self, model_name: str, errors: dict[str, str]):
        self.model_name = model_name
        self.errors = errors
        summary = "; ".join(f"{path}: {message}" for path, message in errors.items())
        super().__init__(f"{model_name} validation failed: {summary}")


def new_object_id() -> str:
    """24 hex characters, the shape every document and item id takes."""
    return secrets.token_hex(12)


def utc_now() -> datetime:
    return datetime.now(UTC)


def _json_path(error: ValidationError) -> str:
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return ".".join(parts).replace(".[", "[") or "(root)"


def validate_document(model: DocumentModel, doc: dict[str, Any]) -> None:
    """Validate a prepared document against the model schema.

    Raises:
        DocumentValidationError: Listing every failing path
    """
    validator = Draft202012Validator(document_validation_schema(model))
    errors: dict[str, str] = {}
    for error in sorted(validator.iter_errors(doc), key=lambda e: list(map(str, e.path))):
        errors.setdefault(_json_path(error), error.message)
    if errors:
        raise DocumentValidationError(model.name, errors)


def _coerce_value(field_def: FieldDefinition, value: Any, path: str, errors: dict[str, str]) -> Any:
    if value is None:
        return None

    if field_def.type == "object":
        if not isinstance(value, dict):
            return value  # left for schema validation
        return _coerce_fields(field_def.fields, value, f"{path}.", errors, keep_unknown=False)

    if field_def.type == "array":
        if not isinstance(value, list) or field_def.items is None:
            return value
        return [
            _coerce_value(field_def.items, item, f"{path}[{i}]", errors)
            for i, item in enumerate(value)
        ]

    if isinstance(value, (dict, list)) and field_def.type != "objectId":
        return value
    try:
        return get_field_type(field_def.type).coerce(value)
    except (TypeError, ValueError) as e:
        errors[path] = str(e)
        return value


def _coerce_fields(
    fields: list[FieldDefinition],
    data: dict[str, Any],
    prefix: str,
    errors: dict[str, str],
    keep_unknown: bool = False,
) -> dict[str, Any]:
    known = {f.name: f for f in fields}
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key == "_id":
            result[key] = value
        elif key in known:
            result[key] = _coerce_value(known[key], value, f"{prefix}{key}", errors)
        elif keep_unknown:
            result[key] = value
    return result


def _apply_defaults(fields: list[FieldDefinition], doc: dict[str, Any]) -> None:
    for f in fields:
        if doc.get(f.name) is None and f.default is not None:
            doc[f.name] = copy.deepcopy(f.default)


def clean_document(model: DocumentModel, data: dict[str, Any]) -> dict[str, Any]:
    """Drop unknown fields (keeping ``_id``) and coerce values to their types.

    Raises:
        DocumentValidationError: When a value cannot be coerced
    """
    errors: dict[str, str] = {}
    doc = _coerce_fields(model.fields, copy.deepcopy(data), "", errors)
    if errors:
        raise DocumentValidationError(model.name, errors)
    return doc


def _stamp_array_items(
    model: DocumentModel,
    doc: dict[str, Any],
    previous: dict[str, Any] | None,
    now: str,
) -> None:
    """Give object-array items an ``_id`` and refresh timestamps of touched items."""
    for field_def in model.array_fields():
        if not field_def.has_object_items:
            continue
        items = doc.get(field_def.name)
        if not isinstance(items, list):
            continue

        stamps = field_def.items.timestamps
        before = {}
        if previous is not None:
            for old in previous.get(field_def.name) or []:
                if isinstance(old, dict) and old.get("_id"):
                    before[old["_id"]] = old

        for item in items:
            if not isinstance(item, dict):
                continue
            item_id = item.get("_id")
            if not item_id:
                item["_id"] = item_id = new_object_id()
            if not stamps:
                continue
            old = before.get(item_id)
            if old is None:
                item.setdefault("created", now)
                item["updated"] = item.get("updated") or now
                continue
            item["created"] = old.get("created", now)
            unchanged = _without_timestamps(item) == _without_timestamps(old)
            item["updated"] = old.get("updated", now) if unchanged else now


def _without_timestamps(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if k not in TIMESTAMP_FIELDS}


def prepare_insert(model: DocumentModel, data: dict[str, Any], now: datetime) -> dict[str, Any]:
    """Build a new stored document from user data.

    Raises:
        DocumentValidationError: When coercion or schema validation fails
    """
    doc = clean_document(model, data)
    _apply_defaults(model.fields, doc)
    doc["_id"] = str(doc.get("_id") or new_object_id())

    stamp = format_datetime(now)
    if model.timestamps:
        doc["created"] = doc.get("created") or stamp
        doc["updated"] = stamp
    _stamp_array_items(model, doc, None, stamp)

    validate_document(model, doc)
    return doc


def prepare_replace(
    model: DocumentModel,
    existing: dict[str, Any],
    data: dict[str, Any],
    now: datetime,
) -> dict[str, Any]:
    """Build the replacement for ``existing`` from a full document.

    ``_id`` and ``created`` are kept from the stored document.

    Raises:
        DocumentValidationError: When coercion or schema validation fails
    """
    doc = clean_document(model, data)
    doc["_id"] = existing["_id"]

    stamp = format_datetime(now)
    if model.timestamps:
        doc["created"] = existing.get("created") or stamp
        doc["updated"] = stamp
    _stamp_array_items(model, doc, existing, stamp)

    validate_document(model, doc)
    return doc
