"""Reflect a resource's model and options into OpenAPI operations.

The operations built here are attached to the generated routes and collected
by ``OpenApiDocument`` when the schema is requested.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from docforge.core.types import get_field_type
from docforge.metadata.loader import DocumentModel, FieldDefinition
from docforge.metadata.schema import field_schema, fields_properties, model_properties
from docforge.populate import ModelRegistry, PopulatePath, reference_field

if TYPE_CHECKING:
    from docforge.api.options import ResourceOptions

API_ERROR_CONTENT = {
    "application/json": {
        "schema": {"$ref": "#/components/schemas/APIError"},
    },
}

DEFAULT_ERROR_RESPONSES: dict[str, Any] = {
    "400": {"content": API_ERROR_CONTENT, "description": "Bad request"},
    "401": {"description": "The user must be authenticated"},
    "403": {
        "content": API_ERROR_CONTENT,
        "description": "The user is not allowed to perform this action on this document",
    },
    "404": {"content": API_ERROR_CONTENT, "description": "Document not found"},
    "405": {
        "content": API_ERROR_CONTENT,
        "description": "The user is not allowed to perform this action on any document",
    },
}

API_ERROR_SCHEMA: dict[str, Any] = {
    "properties": {
        "code": {
            "description": "An application-specific error code, expressed as a string value.",
            "type": "string",
        },
        "detail": {
            "description": "A human-readable explanation specific to this occurrence of the problem.",
            "type": "string",
        },
        "id": {
            "description": "A unique identifier for this particular occurrence of the problem.",
            "type": "string",
        },
        "links": {
            "properties": {
                "about": {
                    "description": "A link that leads to further details about this particular occurrence of the problem.",
                    "type": "string",
                },
                "type": {
                    "description": "A link that identifies the type of error that this particular error is an instance of.",
                    "type": "string",
                },
            },
            "type": "object",
        },
        "meta": {
            "description": "A meta object containing non-standard meta-information about the error.",
            "type": "object",
        },
        "source": {
            "properties": {
                "header": {
                    "description": "The name of a single request header which caused the error.",
                    "type": "string",
                },
                "parameter": {
                    "description": "Which URI query parameter caused the error.",
                    "type": "string",
                },
                "pointer": {
                    "description": "A JSON Pointer to the associated entity in the request document.",
                    "type": "string",
                },
            },
            "type": "object",
        },
        "status": {"description": "The HTTP status code applicable to this problem.", "type": "number"},
        "title": {"description": "The error message", "type": "string"},
    },
    "type": "object",
}

PAGINATION_PARAMETERS = [
    {"in": "query", "name": "page", "schema": {"type": "number"}},
    {"in": "query", "name": "sort", "schema": {"type": "string"}},
    {"in": "query", "name": "limit", "schema": {"type": "number"}},
]

ID_PARAMETER = {"in": "path", "name": "id", "required": True, "schema": {"type": "string"}}


def deep_merge(base: dict[str, Any], override: dict[str, Any] | None) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``; override wins."""
    result = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


# ---------------------------------------------------------------------------
# Query parameters
# ---------------------------------------------------------------------------


def query_parameter_schema(field_def: FieldDefinition | None) -> dict[str, Any]:
    """``oneOf`` a plain value or an object of the operators the type allows."""
    if field_def is None:
        return {"type": "string"}
    type_name = field_def.items.type if field_def.is_array and field_def.items else field_def.type
    field_type = get_field_type(type_name)
    plain = dict(field_type.json_schema)

    operators: dict[str, Any] = {}
    for operator in field_type.query_operators:
        if operator == "$in":
            operators[operator] = {"items": {"type": plain["type"]}, "type": "array"}
        elif operator in ("$regex", "$options"):
            operators[operator] = {"type": "string"}
        else:
            operators[operator] = dict(plain)

    if not operators:
        return plain
    return {"oneOf": [plain, {"properties": operators, "type": "object"}]}


def list_parameters(model: DocumentModel, query_fields: tuple[str, ...] | list[str]) -> list[dict[str, Any]]:
    parameters = [
        {
            "in": "query",
            "name": "_id",
            "schema": {
                "properties": {"$in": {"items": {"type": "string"}, "type": "array"}},
                "type": "object",
            },
        }
    ]
    for name in query_fields:
        if name == "_id":
            continue
        parameters.append(
            {"in": "query", "name": name, "schema": query_parameter_schema(model.resolve_path(name))}
        )
    return parameters + copy.deepcopy(PAGINATION_PARAMETERS)


# ---------------------------------------------------------------------------
# Model schemas
# ---------------------------------------------------------------------------


def populated_schema(
    model: DocumentModel,
    populate_path: PopulatePath,
    registry: ModelRegistry | None,
) -> dict[str, Any]:
    """Schema of one expanded reference: a component ``$ref`` or limited properties."""
    if populate_path.openapi_component:
        return {"$ref": f"#/components/schemas/{populate_path.openapi_component}"}

    target = reference_field(model, populate_path.path)
    ref_model = registry.get_model(target.ref) if registry is not None else None
    if ref_model is None:
        return {"type": "object"}

    fields = populate_path.fields
    if fields and all(f.startswith("-") for f in fields):
        excluded = {f[1:] for f in fields}
        properties, _ = model_properties(ref_model)
        properties = {k: v for k, v in properties.items() if k not in excluded}
    elif fields:
        properties = {
            name: field_schema(ref_model.get_field(name))
            for name in fields
            if ref_model.get_field(name) is not None
        }
    else:
        properties, _ = model_properties(ref_model)
    return {"properties": properties, "type": "object"}


def _replace_property(properties: dict[str, Any], parts: list[str], replacement: dict[str, Any]) -> None:
    name = parts[0]
    prop = properties.get(name)
    if prop is None:
        return
    is_array = prop.get("type") == "array"

    if len(parts) == 1:
        properties[name] = {"items": replacement, "type": "array"} if is_array else replacement
        return

    target = prop.get("items", {}) if is_array else prop
    nested = dict(target.get("properties", {}))
    _replace_property(nested, parts[1:], replacement)
    new_target = {**target, "properties": nested}
    properties[name] = {**prop, "items": new_target} if is_array else new_target


def _select(properties: dict[str, Any], allowed: set[str] | None) -> dict[str, Any]:
    if allowed is None:
        return properties
    return {k: v for k, v in properties.items() if k == "_id" or k in allowed}


def response_schema(
    model: DocumentModel,
    options: ResourceOptions,
    registry: ModelRegistry | None = None,
) -> dict[str, Any]:
    """Object schema of one document as the client reads it."""
    properties, required = model_properties(model)
    properties = _select(properties, options.transformer.documented_read_fields())
    for populate_path in options.populate_paths:
        _replace_property(
            properties,
            populate_path.path.split("."),
            populated_schema(model, populate_path, registry),
        )
    if options.openapi_extra_model_properties:
        properties.update(copy.deepcopy(dict(options.openapi_extra_model_properties)))

    required = [name for name in required if name in properties]
    for name in ("_id", "created", "updated"):
        if name in properties and name not in required:
            required.append(name)
    return {"properties": properties, "required": required, "type": "object"}


def request_schema(model: DocumentModel, options: ResourceOptions) -> dict[str, Any]:
    """Object schema of a create/update body (documented write fields only)."""
    properties, _ = fields_properties(model.fields)
    allowed = options.transformer.documented_write_fields()
    if allowed is not None:
        properties = {k: v for k, v in properties.items() if k in allowed}
    return {"properties": properties, "type": "object"}


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def _json_content(schema: dict[str, Any]) -> dict[str, Any]:
    return {"application/json": {"schema": schema}}


def _data_envelope(schema: dict[str, Any]) -> dict[str, Any]:
    return {"properties": {"data": schema}, "type": "object"}


def _operation(
    operation: str,
    model: DocumentModel,
    options: ResourceOptions,
    op: dict[str, Any],
) -> dict[str, Any]:
    op["responses"] = {**op["responses"], **copy.deepcopy(DEFAULT_ERROR_RESPONSES)}
    op["tags"] = [model.collection]
    overwrite = (options.openapi_overwrite or {}).get(operation)
    return deep_merge(op, overwrite)


def list_operation(model: DocumentModel, options: ResourceOptions, registry: ModelRegistry | None = None) -> dict[str, Any]:
    item = response_schema(model, options, registry)
    envelope = {
        "properties": {
            "data": {"items": item, "type": "array"},
            "limit": {"type": "number"},
            "more": {"type": "boolean"},
            "page": {"type": "number"},
            "total": {"type": "number"},
        },
        "type": "object",
    }
    return _operation(
        "list",
        model,
        options,
        {
            "parameters": list_parameters(model, options.query_fields),
            "responses": {"200": {"content": _json_content(envelope), "description": "Successful list"}},
        },
    )


def read_operation(model: DocumentModel, options: ResourceOptions, registry: ModelRegistry | None = None) -> dict[str, Any]:
    schema = _data_envelope(response_schema(model, options, registry))
    return _operation(
        "read",
        model,
        options,
        {
            "parameters": [dict(ID_PARAMETER)],
            "responses": {"200": {"content": _json_content(schema), "description": "Successful read"}},
        },
    )


def create_operation(model: DocumentModel, options: ResourceOptions, registry: ModelRegistry | None = None) -> dict[str, Any]:
    schema = _data_envelope(response_schema(model, options, registry))
    return _operation(
        "create",
        model,
        options,
        {
            "requestBody": {"content": _json_content(request_schema(model, options)), "required": True},
            "responses": {"201": {"content": _json_content(schema), "description": "Successful create"}},
        },
    )


def update_operation(model: DocumentModel, options: ResourceOptions, registry: ModelRegistry | None = None) -> dict[str, Any]:
    schema = _data_envelope(response_schema(model, options, registry))
    return _operation(
        "update",
        model,
        options,
        {
            "parameters": [dict(ID_PARAMETER)],
            "requestBody": {"content": _json_content(request_schema(model, options)), "required": True},
            "responses": {"200": {"content": _json_content(schema), "description": "Successful update"}},
        },
    )


def delete_operation(model: DocumentModel, options: ResourceOptions, registry: ModelRegistry | None = None) -> dict[str, Any]:
    return _operation(
        "delete",
        model,
        options,
        {
            "parameters": [dict(ID_PARAMETER)],
            "responses": {"204": {"description": "Successful delete"}},
        },
    )


def array_operation(
    model: DocumentModel,
    options: ResourceOptions,
    field_def: FieldDefinition,
    method: str,
    registry: ModelRegistry | None = None,
) -> dict[str, Any]:
    """Operation for ``POST /{id}/{field}`` and ``PATCH|DELETE /{id}/{field}/{item}``."""
    parameters = [dict(ID_PARAMETER)]
    if method != "post":
        parameters.append({"in": "path", "name": "item_id", "required": True, "schema": {"type": "string"}})

    op: dict[str, Any] = {
        "parameters": parameters,
        "responses": {
            "200": {
                "content": _json_content(_data_envelope(response_schema(model, options, registry))),
                "description": "Successful update",
            }
        },
    }
    if method != "delete" and field_def.items is not None:
        item_schema = field_schema(field_def.items)
        body = {"properties": {field_def.name: item_schema}, "required": [field_def.name], "type": "object"}
        op["requestBody"] = {"content": _json_content(body), "required": True}
    return _operation("update", model, options, op)


def resource_operations(
    model: DocumentModel,
    options: ResourceOptions,
    registry: ModelRegistry | None = None,
) -> dict[str, dict[str, Any] | None]:
    """Operation dicts per CRUD operation; None where the operation is not documented."""
    builders = {
        "list": list_operation,
        "read": read_operation,
        "create": create_operation,
        "update": update_operation,
        "delete": delete_operation,
    }
    return {
        name: build(model, options, registry) if options.is_enabled(name) else None
        for name, build in builders.items()
    }
