"""Food/User demo application.

Run with ``docforge serve`` (or ``python run_api.py``), then mint a token
with ``docforge token <user id>`` and call ``/food`` with it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Request

from docforge.api import Resource, ResourceOptions, create_app
from docforge.auth import AdminOwnerTransformer, Permissions, get_requester
from docforge.config import Settings
from docforge.errors import InvalidRequest
from docforge.logging_config import configure_logging
from docforge.metadata.loader import MetadataLoader
from docforge.openapi import OpenApiBuilder, OpenApiDocument
from docforge.persistence import DatabaseConfig, create_store
from docforge.populate import PopulatePath

logger = logging.getLogger(__name__)

FOOD_FIELDS = [
    "name",
    "calories",
    "created",
    "ownerId",
    "hidden",
    "source",
    "tags",
    "eatenBy",
    "categories",
    "likesIds",
]

LIMITED_USER_SCHEMA = {
    "properties": {
        "_id": {"type": "string"},
        "id": {"type": "string"},
        "name": {"type": "string"},
    },
    "type": "object",
}


def _default_metadata_path() -> Path:
    return Path(__file__).resolve().parents[2] / "metadata"


def load_registry(settings: Settings) -> MetadataLoader:
    """Load the demo models from the configured metadata directory."""
    loader = MetadataLoader(settings.metadata_path or _default_metadata_path())
    loader.load_all()
    logger.debug("Loaded models: %s", ", ".join(loader.list_models()))
    return loader


def _prepare_food(body: dict, request: Request) -> dict:
    """New food belongs to whoever creates it unless an admin says otherwise."""
    body = _check_calories(body, request)
    requester = get_requester(request)
    if requester is not None and not (requester.admin and body.get("ownerId")):
        body = {**body, "ownerId": requester.id}
    return body


def _check_calories(body: dict, request: Request) -> dict:
    calories = body.get("calories")
    if isinstance(calories, (int, float)) and calories < 0:
        raise InvalidRequest("Calories cannot be negative")
    return body


def _food_endpoints(registry: MetadataLoader):
    def add(router: APIRouter) -> None:
        @router.get(
            "/stats",
            openapi_extra=OpenApiBuilder()
            .with_tags(["food"])
            .with_summary("Food statistics")
            .with_query_parameter("ownerId", {"type": "string"}, description="Only count this owner's food")
            .with_response(200, {"count": {"type": "number"}, "calories": {"type": "number"}})
            .build(),
        )
        async def food_stats(request: Request, ownerId: str | None = None):
            store = request.app.state.store
            model = registry.get_model("Food")
            query = {"hidden": {"$ne": True}}
            if ownerId:
                query["ownerId"] = ownerId
            docs = await store.find(model, query)
            return {"count": len(docs), "calories": sum(d.get("calories") or 0 for d in docs)}

    return add


def build_resources(registry: MetadataLoader) -> list[Resource]:
    food = ResourceOptions(
        permissions={
            "list": [Permissions.IsAny],
            "read": [Permissions.IsAny],
            "create": [Permissions.IsAuthenticated],
            "update": [Permissions.IsOwner],
            "delete": [Permissions.IsAdmin],
        },
        transformer=AdminOwnerTransformer(
            admin_read_fields=FOOD_FIELDS,
            admin_write_fields=FOOD_FIELDS,
            owner_read_fields=FOOD_FIELDS,
            owner_write_fields=[f for f in FOOD_FIELDS if f != "ownerId"],
            auth_read_fields=[f for f in FOOD_FIELDS if f != "hidden"],
            auth_write_fields=["name", "calories", "source", "tags", "eatenBy", "categories", "likesIds"],
            anon_read_fields=["name", "calories", "created", "ownerId"],
            anon_write_fields=[],
        ),
        query_fields=("name", "calories", "created", "ownerId", "hidden", "tags", "eatenBy"),
        sort="-created",
        populate_paths=(PopulatePath("ownerId", fields=("name",), openapi_component="LimitedUser"),),
        pre_create=_prepare_food,
        pre_update=_check_calories,
        endpoints=_food_endpoints(registry),
        openapi_overwrite={"list": {"responses": {"200": {"description": "Get all the food"}}}},
    )
    users = ResourceOptions(
        permissions={
            "list": [Permissions.IsAuthenticated],
            "read": [Permissions.IsAuthenticated],
            "create": [Permissions.IsAdmin],
            "update": [Permissions.owned_by("_id")],
            "delete": [Permissions.IsAdmin],
        },
        transformer=AdminOwnerTransformer(
            admin_read_fields=["name", "email", "admin", "age", "created", "updated"],
            admin_write_fields=["name", "email", "admin", "age"],
            owner_read_fields=["name", "email", "admin", "age", "created", "updated"],
            owner_write_fields=["name", "email", "age"],
            auth_read_fields=["name"],
            owner_field="_id",
        ),
        query_fields=("name", "email"),
        sort="name",
    )
    return [
        Resource("/food", registry.get_model("Food"), food),
        Resource("/users", registry.get_model("User"), users),
    ]


def build_app(settings: Settings | None = None, store=None):
    """Demo app wired from settings (memory store unless DATABASE_URL is set)."""
    settings = settings or Settings.from_env()
    registry = load_registry(settings)
    openapi = OpenApiDocument(title="docforge example", description="Food and users")
    openapi.component("schemas", "LimitedUser", LIMITED_USER_SCHEMA)

    return create_app(
        build_resources(registry),
        registry,
        store=store or create_store(DatabaseConfig.from_env()),
        settings=settings,
        openapi=openapi,
    )


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = build_app(_settings)
