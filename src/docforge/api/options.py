"""Configuration for a generated resource."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from docforge.auth.fields import NoopTransformer
from docforge.auth.permissions import OPERATIONS, Permission
from docforge.populate import PopulatePath
from docforge.query.compiler import DEFAULT_LIMIT, MAX_LIMIT


@dataclass(frozen=True)
class ResourceOptions:
    """Everything a resource router and its reflected schema are built from.

    Attributes:
        permissions: Operation (``list``, ``read``, ``create``, ``update``,
            ``delete``) to predicate list. A missing or empty list disables
            the operation for every requester.
        allow_anonymous: Let requests without a requester reach permission checks
        transformer: Field visibility per role (``AdminOwnerTransformer``)
        query_fields: Fields a client may filter list requests on
        query_filter: ``(requester, query) -> dict | None``; None means "no results"
        default_query_params: Conditions applied to every list request
        sort: Default sort (``"-created name"`` or ``{"name": "ascending"}``)
        populate_paths: References expanded in every response
        default_limit: List page size when the request has none
        max_limit: Upper bound for a requested list limit
        pre_create: ``(body, request)`` returning the body to create
        pre_update: ``(body, request)`` returning the body to apply
        pre_delete: ``(document, request)`` returning a value to proceed
        post_create: ``(document, request)``
        post_update: ``(document, cleaned_body, request, previous_document)``
        post_delete: ``(request, document)``
        post_get: ``(document, request)`` after a read; a returned value replaces the document
        post_list: ``(documents, request)`` after a list; a returned list replaces the page
        response_handler: ``(value, method, request, options)`` serializer
        endpoints: ``(router)`` adding custom routes ahead of generated ones
        openapi_extra_model_properties: Extra response properties to document
        openapi_overwrite: Per-operation dicts deep-merged into reflected operations
        validation: Validate request bodies against the documented write schema
    """

    permissions: Mapping[str, tuple[Permission, ...]] = field(default_factory=dict)
    allow_anonymous: bool = True
    transformer: NoopTransformer = field(default_factory=NoopTransformer)
    query_fields: tuple[str, ...] = ()
    query_filter: Callable[..., Any] | None = None
    default_query_params: Mapping[str, Any] | None = None
    sort: str | Mapping[str, str] | None = None
    populate_paths: tuple[PopulatePath, ...] = ()
    default_limit: int = DEFAULT_LIMIT
    max_limit: int = MAX_LIMIT
    pre_create: Callable[..., Any] | None = None
    pre_update: Callable[..., Any] | None = None
    pre_delete: Callable[..., Any] | None = None
    post_create: Callable[..., Any] | None = None
    post_update: Callable[..., Any] | None = None
    post_delete: Callable[..., Any] | None = None
    post_get: Callable[..., Any] | None = None
    post_list: Callable[..., Any] | None = None
    response_handler: Callable[..., Any] | None = None
    endpoints: Callable[..., None] | None = None
    openapi_extra_model_properties: Mapping[str, Any] | None = None
    openapi_overwrite: Mapping[str, Any] | None = None
    validation: bool = False

    def __post_init__(self):
        unknown = set(self.permissions) - set(OPERATIONS)
        if unknown:
            raise ValueError(f"Unknown permission operations: {', '.join(sorted(unknown))}")
        object.__setattr__(
            self,
            "permissions",
            MappingProxyType({op: tuple(preds or ()) for op, preds in self.permissions.items()}),
        )
        object.__setattr__(self, "query_fields", tuple(self.query_fields))
        object.__setattr__(
            self,
            "populate_paths",
            tuple(p if isinstance(p, PopulatePath) else PopulatePath(**p) for p in self.populate_paths),
        )
        if self.default_limit < 1 or self.max_limit < 1:
            raise ValueError("default_limit and max_limit must be positive")

    def permissions_for(self, operation: str) -> tuple[Permission, ...]:
        return self.permissions.get(operation, ())

    def is_enabled(self, operation: str) -> bool:
        """Operations without predicates are still routed (to answer 405) but not documented."""
        return bool(self.permissions_for(operation))
