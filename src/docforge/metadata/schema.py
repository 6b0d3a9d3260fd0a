"""JSON Schema shapes derived from document models.

The same property schemas back persistence-layer validation and the OpenAPI
reflector, so documented and enforced shapes cannot drift apart.
"""

from __future__ import annotations

import copy
from typing import Any

from docforge.core.types import get_field_type
from docforge.metadata.loader import DocumentModel, FieldDefinition

ID_SCHEMA = {"type": "string", "description": "Document identifier"}


def field_schema(field_def: FieldDefinition) -> dict[str, Any]:
    """OpenAPI/JSON Schema property for a single field."""
    schema = copy.deepcopy(get_field_type(field_def.type).json_schema)

    if field_def.type == "object":
        properties, required = fields_properties(field_def.fields)
        schema["properties"] = properties
        if required:
            schema["required"] = required
    elif field_def.type == "array" and field_def.items is not None:
        item_schema = field_schema(field_def.items)
        if field_def.items.type == "object":
            item_schema["properties"] = {"_id": dict(ID_SCHEMA), **item_schema.get("properties", {})}
        schema["items"] = item_schema

    if field_def.enum:
        schema["enum"] = list(field_def.enum)
    if field_def.default is not None:
        schema["default"] = field_def.default
    if field_def.read_only:
        schema["readOnly"] = True
    if field_def.description:
        schema["description"] = field_def.description
    return schema


def fields_properties(fields: list[FieldDefinition]) -> tuple[dict[str, Any], list[str]]:
    properties = {f.name: field_schema(f) for f in fields}
    required = [f.name for f in fields if f.required]
    return properties, required


def model_properties(model: DocumentModel) -> tuple[dict[str, Any], list[str]]:
    """Properties (including ``_id``) and required field names for a model."""
    properties, required = fields_properties(model.fields)
    return {"_id": dict(ID_SCHEMA), **properties}, required


def _validation_schema(field_def: FieldDefinition) -> dict[str, Any]:
    schema: dict[str, Any] = dict(get_field_type(field_def.type).json_schema)
    schema.pop("format", None)

    if field_def.type == "object":
        schema["properties"] = {f.name: _validation_schema(f) for f in field_def.fields}
        required = [f.name for f in field_def.fields if f.required]
        if required:
            schema["required"] = required
    elif field_def.type == "array" and field_def.items is not None:
        schema["items"] = _validation_schema(field_def.items)
    if field_def.enum:
        schema["enum"] = list(field_def.enum) + ([] if field_def.required else [None])

    if not field_def.required:
        schema = {"anyOf": [schema, {"type": "null"}]}
    return schema


def document_validation_schema(model: DocumentModel) -> dict[str, Any]:
    """Schema a stored document must satisfy (null allowed for optional fields)."""
    return {
        "type": "object",
        "properties": {f.name: _validation_schema(f) for f in model.fields},
        "required": [f.name for f in model.fields if f.required],
    }
