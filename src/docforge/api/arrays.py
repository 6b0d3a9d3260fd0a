"""Sub-resource routes for mutating one entry of an array field.

For every array field ``<field>`` of the model::

    POST   /{id}/<field>             body {"<field>": item}      append
    PATCH  /{id}/<field>/{item_id}   body {"<field>": changes}   merge (objects) or replace (scalars)
    DELETE /{id}/<field>/{item_id}                               remove

Object entries are addressed by their ``_id``, scalar entries by value. Each
operation is an update of the whole array and runs the update permissions
and hooks. The read-modify-write is not atomic.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from docforge.api.context import ResourceContext
from docforge.errors import InvalidRequest, NotFound
from docforge.hooks import run_post_hook, run_pre_hook, unwrap_pre_outcome
from docforge.metadata.loader import FieldDefinition
from docforge.openapi.reflector import array_operation
from docforge.persistence.documents import DocumentValidationError

logger = logging.getLogger(__name__)


def _find_index(items: list[Any], field_def: FieldDefinition, item_id: str) -> int:
    for index, item in enumerate(items):
        if field_def.has_object_items:
            if isinstance(item, dict) and str(item.get("_id")) == item_id:
                return index
        elif item == item_id or str(item) == item_id:
            return index
    return -1


def apply_array_operation(
    doc: dict[str, Any],
    field_def: FieldDefinition,
    operation: str,
    body: dict[str, Any],
    item_id: str | None = None,
) -> list[Any]:
    """Compute the new array for ``field_def`` without touching ``doc``.

    Raises:
        InvalidRequest: When the body does not carry the field's key
        NotFound: When ``item_id`` is not in the array
    """
    field = field_def.name
    if operation != "DELETE" and set(body) != {field}:
        raise InvalidRequest(
            "Malformed body, array operations should have a single, top level key, got: "
            + ",".join(body.keys())
        )

    items = copy.deepcopy(doc.get(field) or [])
    if operation == "POST":
        items.append(copy.deepcopy(body[field]))
        return items

    index = _find_index(items, field_def, item_id or "")
    if index == -1:
        raise NotFound(f"Could not find {field}/{item_id}")

    if operation == "DELETE":
        del items[index]
    elif field_def.has_object_items and isinstance(body[field], dict):
        items[index] = {**items[index], **copy.deepcopy(body[field]), "_id": items[index]["_id"]}
    else:
        items[index] = copy.deepcopy(body[field])
    return items


async def _array_update(
    ctx: ResourceContext,
    request: Request,
    field_def: FieldDefinition,
    operation: str,
    id: str,
    item_id: str | None,
) -> Response:
    options = ctx.options
    requester = ctx.requester(request)
    await ctx.check_request("update", requester, method="PATCH")
    doc = await ctx.load(id, title=f"Could not find document to PATCH: {id}")
    await ctx.check_object(
        "update",
        requester,
        doc,
        title=f"Patch not allowed for user {requester.id if requester else None} on doc {id}",
    )

    body = await ctx.read_body(request, "update") if operation != "DELETE" else {}
    items = apply_array_operation(doc, field_def, operation, body, item_id)

    update: dict[str, Any] = {field_def.name: items}
    update = options.transformer.filter_for_write(update, requester, doc)
    outcome = await run_pre_hook("preUpdate", options.pre_update, update, request)
    update = unwrap_pre_outcome("preUpdate", outcome, label=id)

    previous = copy.deepcopy(doc)
    try:
        updated = await ctx.store.replace(ctx.model, id, {**doc, **update})
    except DocumentValidationError as e:
        raise ctx.store_error(e)
    if updated is None:
        raise NotFound(f"Could not find document to PATCH: {id}")

    updated = await ctx.populate_one(updated)
    await run_post_hook(
        "postUpdate",
        options.post_update,
        updated,
        update,
        request,
        previous,
        title=f"postUpdate hook error on {id}",
    )
    serialized = await ctx.respond(updated, "update", request)
    return JSONResponse({"data": serialized})


def add_array_routes(router: APIRouter, ctx: ResourceContext) -> None:
    """Register append/patch/remove routes for every array field of the model."""
    model = ctx.model
    for field_def in model.array_fields():
        documented = ctx.options.is_enabled("update")

        def make_handlers(field_def: FieldDefinition):
            async def array_post(id: str, request: Request) -> Response:
                return await _array_update(ctx, request, field_def, "POST", id, None)

            async def array_patch(id: str, item_id: str, request: Request) -> Response:
                return await _array_update(ctx, request, field_def, "PATCH", id, item_id)

            async def array_delete(id: str, item_id: str, request: Request) -> Response:
                return await _array_update(ctx, request, field_def, "DELETE", id, item_id)

            return array_post, array_patch, array_delete

        array_post, array_patch, array_delete = make_handlers(field_def)
        base = f"/{{id}}/{field_def.name}"

        for path, handler, method in (
            (base, array_post, "POST"),
            (f"{base}/{{item_id}}", array_patch, "PATCH"),
            (f"{base}/{{item_id}}", array_delete, "DELETE"),
        ):
            router.add_api_route(
                path,
                handler,
                methods=[method],
                name=f"{model.collection}_{field_def.name}_{method.lower()}",
                openapi_extra=(
                    array_operation(model, ctx.options, field_def, method.lower(), ctx.registry)
                    if documented
                    else None
                ),
            )
        logger.debug("Registered array routes for %s.%s", model.name, field_def.name)
