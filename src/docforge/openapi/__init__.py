"""OpenAPI reflection, builder and document serving."""

from docforge.openapi.builder import OpenApiBuilder
from docforge.openapi.document import OpenApiDocument, compute_etag
from docforge.openapi.reflector import DEFAULT_ERROR_RESPONSES, deep_merge, resource_operations

__all__ = [
    "DEFAULT_ERROR_RESPONSES",
    "OpenApiBuilder",
    "OpenApiDocument",
    "compute_etag",
    "deep_merge",
    "resource_operations",
]
