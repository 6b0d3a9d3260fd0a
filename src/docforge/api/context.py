"""Per-resource request helpers shared by the CRUD and array routes."""

from __future__ import annotations

import copy
import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from jsonschema import Draft202012Validator

from docforge.api.options import ResourceOptions
from docforge.auth.middleware import get_requester
from docforge.auth.permissions import check_permissions
from docforge.auth.types import Requester
from docforge.errors import (
    APIError,
    InvalidRequest,
    MethodDisabled,
    NotAllowed,
    NotFound,
    wrap_error,
)
from docforge.metadata.loader import DocumentModel
from docforge.openapi.reflector import request_schema
from docforge.persistence.adapter import DocumentStore
from docforge.persistence.documents import DocumentValidationError
from docforge.populate import ModelRegistry, populate

logger = logging.getLogger(__name__)

HTTP_METHODS = {
    "list": "GET",
    "read": "GET",
    "create": "POST",
    "update": "PATCH",
    "delete": "DELETE",
}


def with_id(doc: dict[str, Any]) -> dict[str, Any]:
    """Mirror ``_id`` as ``id`` on an outgoing document."""
    if "_id" in doc and "id" not in doc:
        return {**doc, "id": doc["_id"]}
    return doc


def default_response_handler(
    value: Any,
    method: str,
    request: Request,
    options: ResourceOptions,
) -> Any:
    """Apply read field visibility to one document or a list of documents."""
    requester = get_requester(request)
    if isinstance(value, list):
        return [options.transformer.filter_for_read(with_id(doc), requester) for doc in value]
    return options.transformer.filter_for_read(with_id(value), requester)


def set_path(doc: dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted path, creating intermediate objects."""
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


def apply_patch(doc: dict[str, Any], body: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``doc`` with top-level and dotted keys from ``body`` applied."""
    result = copy.deepcopy(doc)
    for key, value in body.items():
        if key in ("_id", "id"):
            continue
        if "." in key:
            set_path(result, key, copy.deepcopy(value))
        else:
            result[key] = copy.deepcopy(value)
    return result


@dataclass
class ResourceContext:
    """Everything a generated route needs to serve one model."""

    model: DocumentModel
    options: ResourceOptions
    store: DocumentStore
    registry: ModelRegistry

    def requester(self, request: Request) -> Requester | None:
        """The request's requester; 401 when anonymous access is off.

        Raises:
            APIError: 401 for anonymous requests on a non-anonymous resource
        """
        requester = get_requester(request)
        if requester is None and not self.options.allow_anonymous:
            raise APIError("Authentication required", 401)
        return requester

    async def check_request(self, operation: str, requester: Requester | None, method: str | None = None) -> None:
        """Request-level permission check, before any document is loaded.

        Raises:
            MethodDisabled: When no predicate allows the operation
        """
        if not await check_permissions(operation, self.options.permissions_for(operation), requester):
            verb = method or HTTP_METHODS[operation]
            raise MethodDisabled(
                f"Access to {verb} on {self.model.name} denied for {requester.id if requester else None}"
            )

    async def check_object(
        self,
        operation: str,
        requester: Requester | None,
        doc: dict[str, Any],
        title: str | None = None,
    ) -> None:
        """Object-level permission check against the loaded document.

        Raises:
            NotAllowed: When no predicate allows the operation on this document
        """
        if not await check_permissions(operation, self.options.permissions_for(operation), requester, doc):
            raise NotAllowed(
                title
                or f"Access to {HTTP_METHODS[operation]} on {self.model.name}:{doc['_id']} denied for "
                f"{requester.id if requester else None}"
            )

    async def load(self, id: str, title: str | None = None) -> dict[str, Any]:
        """Fetch a live document.

        Raises:
            NotFound: When missing, or soft-deleted (``meta.deleted`` is then ``"true"``)
        """
        doc = await self.store.get(self.model, id)
        if doc is None:
            raise NotFound(title or f"Document {id} not found for model {self.model.name}")
        if self.model.soft_delete and doc.get("deleted"):
            raise NotFound(
                title or f"Document {id} not found for model {self.model.name}",
                meta={"deleted": "true"},
            )
        return doc

    async def read_body(self, request: Request, operation: str) -> dict[str, Any]:
        """Parse the JSON body, validating it when the resource asks for it.

        Raises:
            InvalidRequest: For a non-object body or a schema mismatch
        """
        raw = await request.body()
        try:
            body = json.loads(raw) if raw else {}
        except ValueError:
            raise InvalidRequest("Invalid JSON body")
        if not isinstance(body, dict):
            raise InvalidRequest("Request body must be a JSON object")

        if self.options.validation:
            validator = Draft202012Validator(request_schema(self.model, self.options))
            errors = sorted(validator.iter_errors(body), key=lambda e: list(map(str, e.path)))
            if errors:
                raise InvalidRequest(
                    f"Request body validation failed for {operation}",
                    meta={"errors": [e.message for e in errors]},
                )
        return body

    async def populate(self, docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if not self.options.populate_paths or not docs:
            return docs
        try:
            return await populate(docs, self.model, self.options.populate_paths, self.store, self.registry)
        except ValueError as e:
            raise APIError(f"Populate error: {e}", 400, error=e)

    async def populate_one(self, doc: dict[str, Any]) -> dict[str, Any]:
        return (await self.populate([doc]))[0]

    async def respond(self, value: Any, method: str, request: Request) -> Any:
        """Serialize through the configured response handler.

        Raises:
            APIError: 500 wrapping a handler failure (an APIError passes through)
        """
        handler = self.options.response_handler or default_response_handler
        try:
            result = handler(value, method, request, self.options)
            if inspect.isawaitable(result):
                result = await result
        except APIError:
            raise
        except Exception as e:
            raise wrap_error(e, f"responseHandler error: {e}", 500) from e
        return result

    def store_error(self, error: DocumentValidationError) -> APIError:
        return InvalidRequest(str(error), fields=error.errors, error=error)
