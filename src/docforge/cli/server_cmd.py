"""Serving commands: serve, openapi and token."""

import importlib
import json

import click

from docforge.auth.jwt_service import JWTService
from docforge.config import Settings
from docforge.logging_config import configure_logging


def _import_app(target: str):
    """Import ``module:attribute`` and return the attribute."""
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise click.BadParameter(f"Expected 'module:app', got '{target}'", param_hint="TARGET")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"Cannot import '{module_name}': {e}", param_hint="TARGET") from e
    try:
        return getattr(module, attribute)
    except AttributeError as e:
        raise click.BadParameter(
            f"Module '{module_name}' has no attribute '{attribute}'", param_hint="TARGET"
        ) from e


@click.command()
@click.argument("target", default="docforge.example:app")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes.")
@click.option("--log-level", default=None, help="Overrides DOCFORGE_LOG_LEVEL.")
def serve(target: str, host: str, port: int, reload: bool, log_level: str | None):
    """Run an app with uvicorn (TARGET is module:app)."""
    import uvicorn

    level = (log_level or Settings.from_env().log_level).lower()
    configure_logging(level)
    uvicorn.run(target, host=host, port=port, reload=reload, log_level=level)


@click.command()
@click.argument("target", default="docforge.example:app")
@click.option("--indent", default=2, type=int, show_default=True)
def openapi(target: str, indent: int):
    """Print the OpenAPI document of an app (TARGET is module:app)."""
    app = _import_app(target)
    document = getattr(app.state, "openapi", None)
    if document is None:
        click.echo(f"Error: {target} was not built with create_app", err=True)
        raise SystemExit(1)
    click.echo(json.dumps(document.build(app), indent=indent, sort_keys=True))


@click.command()
@click.argument("user_id")
@click.option("--admin", is_flag=True, default=False, help="Issue an admin token.")
@click.option("--email", default=None)
@click.option("--ttl", default=None, type=int, help="Lifetime in seconds.")
def token(user_id: str, admin: bool, email: str | None, ttl: int | None):
    """Mint a development bearer token signed with DOCFORGE_SECRET_KEY."""
    service = JWTService(Settings.from_env().secret_key)
    click.echo(service.generate_access_token(user_id, admin=admin, email=email, ttl=ttl))
