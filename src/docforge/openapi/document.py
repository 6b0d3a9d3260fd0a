"""Aggregate route operations into one OpenAPI document and serve it."""

from __future__ import annotations

import copy
import hashlib
import json
from typing import Any

from fastapi import FastAPI, Request
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse, Response
from fastapi.routing import APIRoute

from docforge.openapi.reflector import API_ERROR_SCHEMA

OPENAPI_VERSION = "3.0.0"


def compute_etag(document: dict[str, Any]) -> str:
    """Quoted first 16 hex chars of the SHA-256 of the canonical JSON."""
    digest = hashlib.sha256(json.dumps(document, sort_keys=True).encode("utf-8")).hexdigest()
    return f'"{digest[:16]}"'


class OpenApiDocument:
    """Collects documented routes of an app plus shared components.

    Routes are documented by their ``openapi_extra`` dict; routes without
    one are left out. The document is rebuilt on every request so routes and
    components added after startup still show up.
    """

    def __init__(self, title: str = "docforge API", version: str = "1.0.0", description: str | None = None):
        self.title = title
        self.version = version
        self.description = description
        self.components: dict[str, dict[str, Any]] = {"schemas": {"APIError": copy.deepcopy(API_ERROR_SCHEMA)}}

    def component(self, kind: str, name: str, schema: dict[str, Any]) -> OpenApiDocument:
        """Register a reusable component, e.g. ``component("schemas", "LimitedUser", {...})``."""
        self.components.setdefault(kind, {})[name] = copy.deepcopy(schema)
        return self

    def build(self, app: FastAPI) -> dict[str, Any]:
        paths: dict[str, dict[str, Any]] = {}
        for route in app.routes:
            if not isinstance(route, APIRoute) or not route.include_in_schema or not route.openapi_extra:
                continue
            for method in sorted(route.methods or ()):
                if method == "HEAD":
                    continue
                paths.setdefault(route.path_format, {})[method.lower()] = copy.deepcopy(route.openapi_extra)

        info: dict[str, Any] = {"title": self.title, "version": self.version}
        if self.description:
            info["description"] = self.description
        return {
            "components": copy.deepcopy(self.components),
            "info": info,
            "openapi": OPENAPI_VERSION,
            "paths": paths,
        }

    def mount(self, app: FastAPI, path: str = "/openapi.json", swagger_path: str | None = None) -> None:
        """Serve the document at ``path`` (with ETag revalidation) and optionally Swagger UI."""

        @app.get(path, include_in_schema=False)
        async def openapi_json(request: Request) -> Response:
            document = self.build(request.app)
            etag = compute_etag(document)
            if request.headers.get("if-none-match") == etag:
                return Response(status_code=304, headers={"ETag": etag})
            return JSONResponse(document, headers={"ETag": etag})

        if swagger_path:

            @app.get(swagger_path, include_in_schema=False)
            async def swagger_ui() -> Response:
                return get_swagger_ui_html(openapi_url=path, title=f"{self.title} - Swagger UI")
