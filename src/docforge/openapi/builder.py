"""Fluent builder for documenting hand-written routes.

The built dict is passed as ``openapi_extra`` on a FastAPI route so it shows
up in the aggregated ``/openapi.json``::

    @router.get(
        "/food/stats",
        openapi_extra=OpenApiBuilder()
        .with_tags(["Stats"])
        .with_summary("Get food statistics")
        .with_query_parameter("category", {"type": "string"}, description="Filter by category")
        .with_response(200, {"count": {"type": "number"}})
        .build(),
    )
    async def food_stats(): ...
"""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel

from docforge.openapi.reflector import DEFAULT_ERROR_RESPONSES

Properties = dict[str, dict[str, Any]] | type[BaseModel]


def _object_schema(properties: Properties) -> dict[str, Any]:
    """Object schema from property dicts (``required: True`` per property) or a pydantic model."""
    if isinstance(properties, type) and issubclass(properties, BaseModel):
        schema = properties.model_json_schema()
        result: dict[str, Any] = {"properties": schema.get("properties", {}), "type": "object"}
        if schema.get("required"):
            result["required"] = list(schema["required"])
        return result

    props: dict[str, Any] = {}
    required: list[str] = []
    for name, prop in properties.items():
        prop = dict(prop)
        if prop.pop("required", False) is True:
            required.append(name)
        props[name] = prop
    result = {"properties": props, "type": "object"}
    if required:
        result["required"] = required
    return result


class OpenApiBuilder:
    """Accumulates one OpenAPI operation. Every ``with_*`` method returns self."""

    def __init__(self):
        self._tags: list[str] = []
        self._summary: str | None = None
        self._description: str | None = None
        self._parameters: list[dict[str, Any]] = []
        self._request_body: dict[str, Any] | None = None
        self._responses: dict[str, Any] = {}

    def with_tags(self, tags: list[str]) -> OpenApiBuilder:
        self._tags.extend(tags)
        return self

    def with_summary(self, summary: str) -> OpenApiBuilder:
        self._summary = summary
        return self

    def with_description(self, description: str) -> OpenApiBuilder:
        self._description = description
        return self

    def with_query_parameter(
        self,
        name: str,
        schema: dict[str, Any],
        *,
        description: str | None = None,
        required: bool = False,
    ) -> OpenApiBuilder:
        parameter: dict[str, Any] = {"in": "query", "name": name, "required": required, "schema": dict(schema)}
        if description:
            parameter["description"] = description
        self._parameters.append(parameter)
        return self

    def with_path_parameter(
        self,
        name: str,
        schema: dict[str, Any],
        *,
        description: str | None = None,
    ) -> OpenApiBuilder:
        parameter: dict[str, Any] = {"in": "path", "name": name, "required": True, "schema": dict(schema)}
        if description:
            parameter["description"] = description
        self._parameters.append(parameter)
        return self

    def with_request_body(
        self,
        properties: Properties,
        *,
        required: bool = True,
        description: str | None = None,
    ) -> OpenApiBuilder:
        body: dict[str, Any] = {
            "content": {"application/json": {"schema": _object_schema(properties)}},
            "required": required,
        }
        if description:
            body["description"] = description
        self._request_body = body
        return self

    def with_response(
        self,
        status: int,
        properties: Properties | str | None = None,
        *,
        description: str | None = None,
    ) -> OpenApiBuilder:
        """Document a response; a bare string is taken as a body-less description."""
        if isinstance(properties, str):
            self._responses[str(status)] = {"description": properties}
            return self

        response: dict[str, Any] = {"description": description or "Success"}
        if properties is not None:
            response["content"] = {"application/json": {"schema": _object_schema(properties)}}
        self._responses[str(status)] = response
        return self

    def with_array_response(
        self,
        status: int,
        properties: Properties,
        *,
        description: str | None = None,
    ) -> OpenApiBuilder:
        schema = {"items": _object_schema(properties), "type": "array"}
        self._responses[str(status)] = {
            "content": {"application/json": {"schema": schema}},
            "description": description or "Success",
        }
        return self

    def build(self) -> dict[str, Any]:
        """The operation dict, with the default error responses filled in."""
        operation: dict[str, Any] = {"tags": list(self._tags)}
        if self._summary:
            operation["summary"] = self._summary
        if self._description:
            operation["description"] = self._description
        if self._parameters:
            operation["parameters"] = copy.deepcopy(self._parameters)
        if self._request_body is not None:
            operation["requestBody"] = copy.deepcopy(self._request_body)

        responses = copy.deepcopy(DEFAULT_ERROR_RESPONSES)
        responses.update(copy.deepcopy(self._responses))
        operation["responses"] = responses
        return operation
