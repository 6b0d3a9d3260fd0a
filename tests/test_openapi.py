"""Tests for schema reflection, the operation builder and /openapi.json."""

import pytest
from fastapi import APIRouter
from pydantic import BaseModel

from docforge.api import ResourceOptions
from docforge.auth import AdminOwnerTransformer, Permissions
from docforge.openapi import DEFAULT_ERROR_RESPONSES, OpenApiBuilder, OpenApiDocument, compute_etag, deep_merge
from docforge.openapi.reflector import (
    list_parameters,
    query_parameter_schema,
    request_schema,
    resource_operations,
    response_schema,
)
from docforge.populate import PopulatePath

ALL_OPERATIONS = {
    "list": [Permissions.IsAny],
    "read": [Permissions.IsAny],
    "create": [Permissions.IsAny],
    "update": [Permissions.IsAny],
    "delete": [Permissions.IsAny],
}


# =============================================================================
# Reflector
# =============================================================================


class TestQueryParameters:
    def test_number_is_one_of_plain_or_operators(self, food_model):
        schema = query_parameter_schema(food_model.get_field("calories"))
        plain, operators = schema["oneOf"]
        assert plain == {"type": "number"}
        assert set(operators["properties"]) == {"$gt", "$gte", "$lt", "$lte"}

    def test_string_operators(self, food_model):
        schema = query_parameter_schema(food_model.get_field("name"))
        assert set(schema["oneOf"][1]["properties"]) == {"$in", "$regex", "$options"}

    def test_list_parameters_order(self, food_model):
        names = [p["name"] for p in list_parameters(food_model, ("name", "calories"))]
        assert names == ["_id", "name", "calories", "page", "sort", "limit"]


class TestSchemas:
    def test_read_and_write_allow_lists(self, food_model):
        options = ResourceOptions(
            transformer=AdminOwnerTransformer(
                admin_read_fields=["name", "calories"],
                auth_read_fields=["name"],
                admin_write_fields=["name"],
            )
        )
        response = response_schema(food_model, options)
        assert set(response["properties"]) == {"_id", "name", "calories"}
        assert response["required"] == ["_id"]
        assert set(request_schema(food_model, options)["properties"]) == {"name"}

    def test_populate_inline(self, food_model, registry):
        options = ResourceOptions(populate_paths=[PopulatePath("ownerId", fields=["email"])])
        owner = response_schema(food_model, options, registry)["properties"]["ownerId"]
        assert set(owner["properties"]) == {"email"}

    def test_populate_component_ref(self, food_model, registry):
        options = ResourceOptions(populate_paths=[PopulatePath("eatenBy", openapi_component="LimitedUser")])
        eaten_by = response_schema(food_model, options, registry)["properties"]["eatenBy"]
        assert eaten_by == {"items": {"$ref": "#/components/schemas/LimitedUser"}, "type": "array"}

    def test_populate_through_array_items(self, food_model, registry):
        options = ResourceOptions(populate_paths=[PopulatePath("likesIds.userId", openapi_component="LimitedUser")])
        likes = response_schema(food_model, options, registry)["properties"]["likesIds"]
        assert likes["items"]["properties"]["userId"] == {"$ref": "#/components/schemas/LimitedUser"}
        assert "likes" in likes["items"]["properties"]

    def test_extra_properties_and_timestamps_required(self, user_model):
        options = ResourceOptions(openapi_extra_model_properties={"score": {"type": "number"}})
        schema = response_schema(user_model, options)
        assert schema["properties"]["score"] == {"type": "number"}
        assert schema["required"] == ["_id", "created", "updated"]


class TestResourceOperations:
    def test_operations_without_permissions_skipped(self, food_model):
        operations = resource_operations(food_model, ResourceOptions(permissions={"list": [Permissions.IsAny]}))
        assert operations["list"] is not None
        assert operations["create"] is None
        assert operations["delete"] is None

    def test_default_errors_and_tags(self, food_model):
        operations = resource_operations(food_model, ResourceOptions(permissions=ALL_OPERATIONS))
        for operation in operations.values():
            assert operation["tags"] == ["food"]
            for status in DEFAULT_ERROR_RESPONSES:
                assert status in operation["responses"]
        assert "201" in operations["create"]["responses"]
        assert "204" in operations["delete"]["responses"]

    def test_overwrite_deep_merged(self, food_model):
        options = ResourceOptions(
            permissions=ALL_OPERATIONS,
            openapi_overwrite={"list": {"responses": {"200": {"description": "Get all the food"}}}},
        )
        list_op = resource_operations(food_model, options)["list"]
        assert list_op["responses"]["200"]["description"] == "Get all the food"
        assert "content" in list_op["responses"]["200"]


def test_deep_merge():
    assert deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}, "d": 4}) == {"a": {"b": 1, "c": 3}, "d": 4}


# =============================================================================
# Builder
# =============================================================================


class StatsResponse(BaseModel):
    count: int
    label: str | None = None


class TestOpenApiBuilder:
    def test_full_operation(self):
        operation = (
            OpenApiBuilder()
            .with_tags(["Stats"])
            .with_summary("Get food statistics")
            .with_description("Counts per category")
            .with_query_parameter("category", {"type": "string"}, description="Filter by category")
            .with_path_parameter("id", {"type": "string"})
            .with_request_body({"name": {"type": "string", "required": True}, "note": {"type": "string"}})
            .with_response(200, {"count": {"type": "number"}})
            .build()
        )
        assert operation["tags"] == ["Stats"]
        assert operation["summary"] == "Get food statistics"
        assert operation["parameters"][0] == {
            "in": "query",
            "name": "category",
            "required": False,
            "schema": {"type": "string"},
            "description": "Filter by category",
        }
        assert operation["parameters"][1]["required"] is True
        body = operation["requestBody"]["content"]["application/json"]["schema"]
        assert body["required"] == ["name"]
        assert "required" not in body["properties"]["name"]
        assert operation["responses"]["200"]["description"] == "Success"
        for status in DEFAULT_ERROR_RESPONSES:
            assert status in operation["responses"]

    def test_pydantic_model_properties(self):
        operation = OpenApiBuilder().with_array_response(200, StatsResponse).build()
        schema = operation["responses"]["200"]["content"]["application/json"]["schema"]
        assert schema["type"] == "array"
        assert schema["items"]["required"] == ["count"]

    def test_string_response(self):
        operation = OpenApiBuilder().with_response(204, "Deleted").build()
        assert operation["responses"]["204"] == {"description": "Deleted"}


# =============================================================================
# /openapi.json
# =============================================================================


def test_compute_etag_is_stable():
    assert compute_etag({"b": 1, "a": 2}) == compute_etag({"a": 2, "b": 1})
    etag = compute_etag({"a": 1})
    assert etag.startswith('"') and etag.endswith('"') and len(etag) == 18


class TestOpenApiDocument:
    @pytest.fixture
    def client(self, make_client):
        openapi = OpenApiDocument(title="Test API")
        openapi.component("schemas", "LimitedUser", {"type": "object"})

        router = APIRouter()

        @router.get(
            "/health",
            openapi_extra=OpenApiBuilder().with_tags(["Health"]).with_response(200, "OK").build(),
        )
        async def health():
            return {"ok": True}

        options = ResourceOptions(
            permissions={"list": [Permissions.IsAny], "read": [Permissions.IsAny], "update": [Permissions.IsOwner]},
        )
        return make_client(options, openapi=openapi, routers=[router])

    def test_document_contents(self, client):
        response = client.get("/openapi.json")
        assert response.status_code == 200
        document = response.json()
        assert document["info"]["title"] == "Test API"
        assert "LimitedUser" in document["components"]["schemas"]
        assert "APIError" in document["components"]["schemas"]
        assert set(document["paths"]["/food"]) == {"get"}
        assert set(document["paths"]["/food/{id}"]) == {"get", "patch"}
        assert "post" in document["paths"]["/food/{id}/categories"]
        assert set(document["paths"]["/food/{id}/categories/{item_id}"]) == {"patch", "delete"}
        assert document["paths"]["/health"]["get"]["tags"] == ["Health"]

    def test_etag_revalidation(self, client):
        first = client.get("/openapi.json")
        etag = first.headers["ETag"]
        assert etag == compute_etag(first.json())

        second = client.get("/openapi.json", headers={"If-None-Match": etag})
        assert second.status_code == 304
        assert second.headers["ETag"] == etag
        assert second.content == b""

    def test_stale_etag_gets_document(self, client):
        response = client.get("/openapi.json", headers={"If-None-Match": '"0000000000000000"'})
        assert response.status_code == 200

    def test_swagger_disabled_by_default(self, client):
        assert client.get("/swagger").status_code == 404
