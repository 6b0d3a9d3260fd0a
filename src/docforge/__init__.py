"""docforge - declarative REST resources for document models on FastAPI."""

from docforge.api import Resource, ResourceOptions, create_app, model_router
from docforge.auth import AdminOwnerTransformer, NoopTransformer, Permissions
from docforge.errors import APIError
from docforge.hooks import Deny, Proceed
from docforge.metadata.loader import DocumentModel, MetadataLoader
from docforge.populate import PopulatePath

__all__ = [
    "APIError",
    "AdminOwnerTransformer",
    "Deny",
    "DocumentModel",
    "MetadataLoader",
    "NoopTransformer",
    "Permissions",
    "PopulatePath",
    "Proceed",
    "Resource",
    "ResourceOptions",
    "create_app",
    "model_router",
]
