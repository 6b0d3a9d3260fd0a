"""Generate a REST resource (list, create, read, update, delete) for one model.

Request flow for every operation::

    requester -> permission check -> field transformer -> pre hook
      -> store -> populate -> post hook -> response handler -> envelope

A permission failure before a document is loaded answers 405; a failure
against the loaded document answers 403.
"""

from __future__ import annotations

import copy
import inspect
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from docforge.api.arrays import add_array_routes
from docforge.api.context import ResourceContext, apply_patch
from docforge.api.options import ResourceOptions
from docforge.errors import APIError, NotFound, ServerFault, wrap_error
from docforge.hooks import run_post_hook, run_pre_hook, unwrap_pre_outcome
from docforge.metadata.loader import DocumentModel
from docforge.openapi.reflector import resource_operations
from docforge.persistence.adapter import DocumentStore
from docforge.persistence.documents import DocumentValidationError
from docforge.populate import ModelRegistry
from docforge.query import compile_query, parse_query_params

logger = logging.getLogger(__name__)


async def _apply_query_filter(
    options: ResourceOptions,
    requester: Any,
    query: dict[str, Any],
) -> dict[str, Any] | None:
    """Merge the resource's query filter into ``query``; None means "no results"."""
    if options.query_filter is None:
        return query
    try:
        extra = options.query_filter(requester, query)
        if inspect.isawaitable(extra):
            extra = await extra
    except APIError:
        raise
    except Exception as e:
        raise wrap_error(e, f"Query filter error: {e}") from e
    if extra is None:
        return None
    return {**query, **extra}


def model_router(
    model: DocumentModel,
    options: ResourceOptions | None = None,
    *,
    store: DocumentStore,
    registry: ModelRegistry,
) -> APIRouter:
    """Create the router for one model.

    Routes are registered relative to the mount point (the list route is the
    prefix itself), so include the router with ``prefix="/food"``. Custom
    ``options.endpoints`` are registered first and win over generated routes.

    Args:
        model: The model to serve
        options: Resource configuration (permissions, hooks, ...)
        store: Document store (connected by the app lifespan)
        registry: Model registry used to resolve populated references

    Returns:
        APIRouter with the generated routes
    """
    options = options or ResourceOptions()
    ctx = ResourceContext(model=model, options=options, store=store, registry=registry)
    operations = resource_operations(model, options, registry)
    router = APIRouter()

    if options.endpoints:
        options.endpoints(router)

    # --- List ---

    async def list_documents(request: Request) -> Response:
        requester = ctx.requester(request)
        await ctx.check_request("list", requester)

        params = parse_query_params(request.query_params.multi_items())
        compiled = compile_query(
            params,
            model,
            options.query_fields,
            sort_default=options.sort,
            default_params=dict(options.default_query_params) if options.default_query_params else None,
            default_limit=options.default_limit,
            max_limit=options.max_limit,
        )

        query = await _apply_query_filter(options, requester, compiled.filter)
        if query is None:
            return JSONResponse({"data": []})
        if model.soft_delete and "deleted" not in query:
            query["deleted"] = {"$ne": True}

        total = await store.count(model, query)
        docs = await store.find(model, query, compiled.sort, compiled.limit + 1, compiled.skip)
        more = len(docs) > compiled.limit
        docs = await ctx.populate(docs[: compiled.limit])
        listed = await run_post_hook("postList", options.post_list, docs, request)
        if listed is not None:
            docs = listed
        if more and compiled.page is None:
            logger.warning(
                "More than %s results returned for %s without pagination, data may be silently truncated. query: %s",
                compiled.limit,
                model.collection,
                dict(request.query_params),
            )

        serialized = await ctx.respond(docs, "list", request)
        if not isinstance(serialized, list):
            return JSONResponse({"data": serialized})

        body: dict[str, Any] = {"data": serialized, "limit": compiled.limit, "more": more, "total": total}
        if compiled.page is not None:
            body["page"] = compiled.page
        return JSONResponse(body)

    router.add_api_route(
        "",
        list_documents,
        methods=["GET"],
        name=f"{model.collection}_list",
        openapi_extra=operations["list"],
    )

    # --- Create ---

    async def create_document(request: Request) -> Response:
        requester = ctx.requester(request)
        await ctx.check_request("create", requester)

        body = await ctx.read_body(request, "create")
        body = options.transformer.filter_for_write(body, requester)
        outcome = await run_pre_hook("preCreate", options.pre_create, body, request)
        body = unwrap_pre_outcome("preCreate", outcome)

        try:
            doc = await store.insert(model, body)
        except DocumentValidationError as e:
            raise ctx.store_error(e)

        doc = await ctx.populate_one(doc)
        await run_post_hook("postCreate", options.post_create, doc, request)
        serialized = await ctx.respond(doc, "create", request)
        return JSONResponse({"data": serialized}, status_code=201)

    router.add_api_route(
        "",
        create_document,
        methods=["POST"],
        name=f"{model.collection}_create",
        openapi_extra=operations["create"],
    )

    # --- Read ---

    async def read_document(id: str, request: Request) -> Response:
        requester = ctx.requester(request)
        await ctx.check_request("read", requester)
        doc = await ctx.load(id)
        await ctx.check_object("read", requester, doc)

        doc = await ctx.populate_one(doc)
        fetched = await run_post_hook("postGet", options.post_get, doc, request)
        if fetched is not None:
            doc = fetched
        serialized = await ctx.respond(doc, "read", request)
        return JSONResponse({"data": serialized})

    router.add_api_route(
        "/{id}",
        read_document,
        methods=["GET"],
        name=f"{model.collection}_read",
        openapi_extra=operations["read"],
    )

    # --- Update ---

    async def update_document(id: str, request: Request) -> Response:
        requester = ctx.requester(request)
        await ctx.check_request("update", requester)
        doc = await ctx.load(id)
        await ctx.check_object("update", requester, doc)

        body = await ctx.read_body(request, "update")
        body = options.transformer.filter_for_write(body, requester, doc)
        outcome = await run_pre_hook("preUpdate", options.pre_update, body, request)
        body = unwrap_pre_outcome("preUpdate", outcome, label=id)

        previous = copy.deepcopy(doc)
        try:
            updated = await store.replace(model, id, apply_patch(doc, body))
        except DocumentValidationError as e:
            raise ctx.store_error(e)
        if updated is None:
            raise NotFound(f"Document {id} not found for model {model.name}")

        updated = await ctx.populate_one(updated)
        await run_post_hook(
            "postUpdate",
            options.post_update,
            updated,
            body,
            request,
            previous,
            title=f"postUpdate hook error on {id}",
        )
        serialized = await ctx.respond(updated, "update", request)
        return JSONResponse({"data": serialized})

    router.add_api_route(
        "/{id}",
        update_document,
        methods=["PATCH"],
        name=f"{model.collection}_update",
        openapi_extra=operations["update"],
    )

    # --- Delete ---

    async def delete_document(id: str, request: Request) -> Response:
        requester = ctx.requester(request)
        await ctx.check_request("delete", requester)
        doc = await ctx.load(id)
        await ctx.check_object("delete", requester, doc)

        outcome = await run_pre_hook("preDelete", options.pre_delete, doc, request)
        unwrap_pre_outcome("preDelete", outcome, label=id)

        if model.soft_delete:
            doc = await store.replace(model, id, {**doc, "deleted": True}) or doc
        else:
            await store.delete(model, id)

        await run_post_hook("postDelete", options.post_delete, request, doc)
        return Response(status_code=204)

    router.add_api_route(
        "/{id}",
        delete_document,
        methods=["DELETE"],
        name=f"{model.collection}_delete",
        openapi_extra=operations["delete"],
    )

    # --- PUT is never supported ---

    async def put_document(id: str, request: Request) -> Response:
        ctx.requester(request)
        raise ServerFault("PUT is not supported.")

    router.add_api_route(
        "/{id}",
        put_document,
        methods=["PUT"],
        name=f"{model.collection}_put",
        include_in_schema=False,
    )

    add_array_routes(router, ctx)
    return router
