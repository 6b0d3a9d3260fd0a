"""Shared fixtures: demo models, memory store, bearer tokens and app builder."""

import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docforge.api import Resource, ResourceOptions, create_app
from docforge.auth import JWTService, Requester
from docforge.config import Settings
from docforge.metadata.loader import MetadataLoader
from docforge.persistence import MemoryDocumentStore

SECRET_KEY = "test-secret-key-with-enough-length-1234"
METADATA_PATH = Path(__file__).parent.parent / "metadata"

ADMIN_ID = "a" * 24
OWNER_ID = "b" * 24
OTHER_ID = "c" * 24


def auth_headers(user_id: str, admin: bool = False) -> dict[str, str]:
    token = JWTService(SECRET_KEY).generate_access_token(user_id, admin=admin)
    return {"Authorization": f"Bearer {token}"}


def run(coro):
    """Run a store coroutine from a sync test."""
    return asyncio.run(coro)


@pytest.fixture
def registry():
    loader = MetadataLoader(METADATA_PATH)
    loader.load_all()
    return loader


@pytest.fixture
def food_model(registry):
    return registry.get_model("Food")


@pytest.fixture
def user_model(registry):
    return registry.get_model("User")


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def admin():
    return Requester(id=ADMIN_ID, admin=True)


@pytest.fixture
def owner():
    return Requester(id=OWNER_ID)


@pytest.fixture
def other():
    return Requester(id=OTHER_ID)


@pytest.fixture
def users(store, user_model):
    """Three users: an admin, a food owner and somebody else."""
    return {
        "admin": run(store.insert(user_model, {"_id": ADMIN_ID, "name": "Admin", "email": "admin@example.com", "admin": True})),
        "owner": run(store.insert(user_model, {"_id": OWNER_ID, "name": "Owner", "email": "owner@example.com"})),
        "other": run(store.insert(user_model, {"_id": OTHER_ID, "name": "Other", "email": "other@example.com"})),
    }


@pytest.fixture
def make_client(registry, store):
    """Build a TestClient serving ``/food`` (and optionally ``/users``) with the given options."""
    clients = []

    def _make(food_options: ResourceOptions, user_options: ResourceOptions | None = None, **kwargs):
        resources = [Resource("/food", "Food", food_options)]
        if user_options is not None:
            resources.append(Resource("/users", "User", user_options))
        settings = Settings(secret_key=SECRET_KEY, cors_origins=["*"])
        app = create_app(resources, registry, store=store, settings=settings, **kwargs)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
