"""Replace objectId references with (a projection of) the referenced documents.

``expand_path`` and ``unpopulate`` never mutate their input: only the
containers along the path are copied, everything else is shared with the
original document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from docforge.auth.permissions import ref_id
from docforge.metadata.loader import DocumentModel, FieldDefinition
from docforge.persistence.adapter import DocumentStore
from docforge.persistence.matching import get_path


@dataclass(frozen=True)
class PopulatePath:
    """A reference path to expand in responses.

    Attributes:
        path: Dotted path to an objectId field (may pass through arrays)
        fields: Fields of the referenced document to include; a list made
            only of ``-name`` entries excludes those fields instead
        openapi_component: Name of a registered schema component describing
            the populated document
    """

    path: str
    fields: tuple[str, ...] | None = None
    openapi_component: str | None = None

    def __post_init__(self):
        if self.fields is not None and not isinstance(self.fields, tuple):
            object.__setattr__(self, "fields", tuple(self.fields))


class ModelRegistry(Protocol):
    def get_model(self, name: str) -> DocumentModel | None: ...


def project(doc: dict[str, Any], fields: tuple[str, ...] | list[str] | None) -> dict[str, Any]:
    """Limit a populated document to ``fields`` (``_id``/``id`` always kept)."""
    if fields:
        excluded = [f[1:] for f in fields if f.startswith("-")]
        if len(excluded) == len(fields):
            result = {k: v for k, v in doc.items() if k not in excluded}
        else:
            keep = {"_id", *fields}
            result = {k: v for k, v in doc.items() if k in keep}
    else:
        result = dict(doc)
    if "_id" in result:
        result["id"] = result["_id"]
    return result


def _transform_at(value: Any, parts: list[str], fn: Callable[[Any], Any]) -> Any:
    if isinstance(value, list):
        return [_transform_at(item, parts, fn) for item in value]
    if not parts:
        return fn(value)
    head = parts[0]
    if not isinstance(value, dict) or head not in value:
        return value
    child = value[head]
    new_child = _transform_at(child, parts[1:], fn)
    if new_child is child:
        return value
    return {**value, head: new_child}


def expand_path(
    doc: dict[str, Any],
    path: str,
    lookup: dict[str, dict[str, Any]],
    fields: tuple[str, ...] | list[str] | None = None,
) -> dict[str, Any]:
    """Return a copy of ``doc`` with the references at ``path`` expanded.

    References missing from ``lookup`` are left as they are.
    """

    def expand(value: Any) -> Any:
        key = ref_id(value)
        if key is None or key not in lookup:
            return value
        return project(lookup[key], fields)

    return _transform_at(doc, path.split("."), expand)


def unpopulate(doc: dict[str, Any], path: str) -> dict[str, Any]:
    """Return a copy of ``doc`` with populated values at ``path`` reduced to their ids."""

    def collapse(value: Any) -> Any:
        if isinstance(value, dict):
            return ref_id(value)
        return value

    return _transform_at(doc, path.split("."), collapse)


def reference_field(model: DocumentModel, path: str) -> FieldDefinition:
    """The objectId field a populate path points at.

    Raises:
        ValueError: If the path does not resolve to a referencing field
    """
    field_def = model.resolve_path(path)
    if field_def is not None and field_def.is_array and field_def.items is not None:
        field_def = field_def.items
    if field_def is None or field_def.type != "objectId" or not field_def.ref:
        raise ValueError(f"Populate path '{path}' on {model.name} is not a reference field")
    return field_def


def _collect_ids(docs: list[dict[str, Any]], path: str) -> list[str]:
    ids: list[str] = []
    for doc in docs:
        for value in get_path(doc, path):
            values = value if isinstance(value, list) else [value]
            for v in values:
                key = ref_id(v) if isinstance(v, (str, dict)) else None
                if key:
                    ids.append(key)
    return list(dict.fromkeys(ids))


async def populate(
    docs: list[dict[str, Any]],
    model: DocumentModel,
    populate_paths: list[PopulatePath] | tuple[PopulatePath, ...],
    store: DocumentStore,
    registry: ModelRegistry,
) -> list[dict[str, Any]]:
    """Expand every populate path across ``docs`` with one lookup per path.

    Raises:
        ValueError: For a path that is not a reference or names an unknown model
    """
    result = list(docs)
    for populate_path in populate_paths:
        target = reference_field(model, populate_path.path)
        ref_model = registry.get_model(target.ref)
        if ref_model is None:
            raise ValueError(f"Unknown model '{target.ref}' for populate path '{populate_path.path}'")

        ids = _collect_ids(result, populate_path.path)
        if not ids:
            continue
        found = await store.get_many(ref_model, ids)
        lookup = {str(d["_id"]): d for d in found}
        result = [expand_path(doc, populate_path.path, lookup, populate_path.fields) for doc in result]
    return result


async def populate_document(
    doc: dict[str, Any],
    model: DocumentModel,
    populate_paths: list[PopulatePath] | tuple[PopulatePath, ...],
    store: DocumentStore,
    registry: ModelRegistry,
) -> dict[str, Any]:
    return (await populate([doc], model, populate_paths, store, registry))[0]
