"""Resource routers and the application factory."""

from docforge.api.app import Resource, create_app
from docforge.api.options import ResourceOptions
from docforge.api.router import model_router

__all__ = ["Resource", "ResourceOptions", "create_app", "model_router"]
