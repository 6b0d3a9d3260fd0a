"""Model commands: validate and list."""

from pathlib import Path

import click

from docforge.config import Settings
from docforge.metadata.loader import MetadataLoader


def _resolve_metadata_path(path: Path | None) -> Path:
    """Explicit --path, then DOCFORGE_METADATA_PATH, then ./metadata."""
    if path is not None:
        return path
    settings = Settings.from_env()
    if settings.metadata_path is not None:
        return settings.metadata_path
    cwd = Path.cwd()
    if cwd.name == "src":
        cwd = cwd.parent
    return cwd / "metadata"


def _load(path: Path | None) -> MetadataLoader:
    metadata_path = _resolve_metadata_path(path)
    if not metadata_path.exists():
        click.echo(f"Error: Metadata directory not found at {metadata_path}", err=True)
        raise SystemExit(1)
    try:
        loader = MetadataLoader(metadata_path)
        loader.load_all()
    except (ValueError, KeyError) as e:
        click.echo(click.style(f"Model validation failed: {e}", fg="red"), err=True)
        raise SystemExit(1)
    return loader


_path_option = click.option(
    "--path",
    "metadata_path",
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Metadata directory (defaults to ./metadata).",
)


@click.group()
def models():
    """Model metadata commands."""
    pass


@models.command()
@_path_option
def validate(metadata_path: Path | None):
    """Load every model and check references between them."""
    loader = _load(metadata_path)

    names = loader.list_models()
    if not names:
        click.echo(click.style("No models found.", fg="yellow"))
        raise SystemExit(1)

    click.echo(f"Loaded {len(names)} model(s):")
    for name in sorted(names):
        model = loader.get_model(name)
        extras = []
        if model.soft_delete:
            extras.append("soft delete")
        arrays = [f.name for f in model.array_fields()]
        if arrays:
            extras.append("arrays: " + ", ".join(arrays))
        suffix = f", {'; '.join(extras)}" if extras else ""
        click.echo(f"  ✓ {name} ({len(model.fields)} fields, collection: {model.collection}{suffix})")

    click.echo(click.style("\nAll models are valid.", fg="green", bold=True))


@models.command("list")
@_path_option
def list_cmd(metadata_path: Path | None):
    """Print model fields, their types and references."""
    loader = _load(metadata_path)

    for name in sorted(loader.list_models()):
        model = loader.get_model(name)
        click.echo(click.style(f"{name} (/{model.collection})", bold=True))
        for f in model.fields:
            type_name = f.type
            if f.is_array and f.items is not None:
                type_name = f"array<{f.items.type}>"
            flags = []
            if f.required:
                flags.append("required")
            if f.read_only:
                flags.append("readOnly")
            ref = f.ref or (f.items.ref if f.items is not None else None)
            if ref:
                flags.append(f"ref {ref}")
            detail = f" [{', '.join(flags)}]" if flags else ""
            click.echo(f"  {f.name}: {type_name}{detail}")
