"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Iterable

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docforge.api.options import ResourceOptions
from docforge.api.router import model_router
from docforge.auth.jwt_service import JWTService
from docforge.auth.middleware import AuthMiddleware
from docforge.config import Settings
from docforge.errors import install_error_handlers
from docforge.metadata.loader import DocumentModel, MetadataLoader
from docforge.openapi.document import OpenApiDocument
from docforge.persistence import DatabaseConfig, DocumentStore, create_store

logger = logging.getLogger(__name__)


@dataclass
class Resource:
    """A model served under ``prefix`` (e.g. ``"/food"``)."""

    prefix: str
    model: DocumentModel | str
    options: ResourceOptions = field(default_factory=ResourceOptions)


def create_app(
    resources: Iterable[Resource],
    registry: MetadataLoader,
    *,
    store: DocumentStore | None = None,
    settings: Settings | None = None,
    openapi: OpenApiDocument | None = None,
    routers: Iterable[APIRouter] = (),
) -> FastAPI:
    """Build the app: middleware, error handlers, resources and /openapi.json.

    Args:
        resources: Models to serve and their options
        registry: Loaded models (resolves model names and populated references)
        store: Document store; defaults to one built from DATABASE_URL / DOCFORGE_DB_PATH
        settings: Defaults to ``Settings.from_env()``
        openapi: Document to serve; pass one to register extra components
        routers: Hand-written routers included after the resources

    Raises:
        ValueError: If a resource names a model the registry does not know
    """
    settings = settings or Settings.from_env()
    store = store or create_store(DatabaseConfig.from_env())
    openapi = openapi or OpenApiDocument(title=settings.title)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Connect the store on startup, close it on shutdown."""
        await store.connect()
        for model in registry.models.values():
            await store.initialize_model(model)
        logger.info("Serving %d resource(s)", len(served))
        yield
        await store.close()

    app = FastAPI(
        title=settings.title,
        lifespan=lifespan,
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.store = store
    app.state.registry = registry
    app.state.settings = settings
    app.state.openapi = openapi

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if not settings.disable_auth:
        app.add_middleware(AuthMiddleware, jwt_service=JWTService(settings.secret_key))

    install_error_handlers(app)

    served: list[str] = []
    for resource in resources:
        model = resource.model
        if isinstance(model, str):
            name = model
            model = registry.get_model(name)
            if model is None:
                raise ValueError(f"Unknown model '{name}' for resource {resource.prefix}")
        router = model_router(model, resource.options, store=store, registry=registry)
        app.include_router(router, prefix=resource.prefix)
        served.append(resource.prefix)

    for router in routers:
        app.include_router(router)

    openapi.mount(app, swagger_path="/swagger" if settings.enable_swagger else None)
    return app
