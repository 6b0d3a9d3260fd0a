"""Load and resolve document model metadata from YAML files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from docforge.core.types import FIELD_TYPES


@dataclass
class FieldDefinition:
    name: str
    type: str
    display_name: str = ""
    required: bool = False
    read_only: bool = False
    default: Any = None
    enum: list[Any] | None = None
    description: str = ""
    ref: str | None = None  # Referenced model name for objectId fields
    fields: list[FieldDefinition] = field(default_factory=list)  # object / object items
    items: FieldDefinition | None = None  # array element definition
    timestamps: bool = False  # object array items carry created/updated

    @property
    def is_array(self) -> bool:
        return self.type == "array"

    @property
    def has_object_items(self) -> bool:
        return self.is_array and self.items is not None and self.items.type == "object"

    def get_field(self, name: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass
class DocumentModel:
    name: str
    collection: str
    fields: list[FieldDefinition]
    display_name: str = ""
    timestamps: bool = False
    description: str = ""

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def soft_delete(self) -> bool:
        """Models with a boolean ``deleted`` field are flagged instead of removed."""
        deleted = self.get_field("deleted")
        return deleted is not None and deleted.type == "boolean"

    def get_field(self, name: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def array_fields(self) -> list[FieldDefinition]:
        return [f for f in self.fields if f.is_array]

    def resolve_path(self, path: str) -> FieldDefinition | None:
        """Resolve a dotted path, descending through objects and array items.

        "source.name" and "likesIds.userId" both resolve to the leaf field.
        """
        parts = path.split(".")
        current = self.get_field(parts[0])
        for part in parts[1:]:
            if current is None:
                return None
            if current.is_array and current.items is not None:
                current = current.items
            current = current.get_field(part)
        return current


class MetadataLoader:
    """Loads model and block definitions from YAML files.

    Layout::

        metadata/
          blocks/*.yaml   # block: <name>, fields: [...]
          models/*.yaml   # model: <Name>, fields: [...], includes: [{block: ...}]
    """

    def __init__(self, metadata_path: Path | None = None):
        self.metadata_path = metadata_path
        self.models: dict[str, DocumentModel] = {}
        self.blocks: dict[str, list[dict]] = {}

    def load_all(self) -> None:
        """Load all blocks and models, then check references between them."""
        if self.metadata_path is None:
            return
        self._load_blocks()
        self._load_models()
        self.validate_references()

    def _load_blocks(self) -> None:
        """Load reusable block definitions."""
        blocks_path = self.metadata_path / "blocks"
        if not blocks_path.exists():
            return

        for yaml_file in sorted(blocks_path.glob("*.yaml")):
            with open(yaml_file) as f:
                data = yaml.safe_load(f)
                if data and "block" in data:
                    self.blocks[data["block"]] = data.get("fields", [])

    def _load_models(self) -> None:
        models_path = self.metadata_path / "models"
        if not models_path.exists():
            return

        for yaml_file in sorted(models_path.glob("*.yaml")):
            with open(yaml_file) as f:
                data = yaml.safe_load(f)
                if data and "model" in data:
                    self.register(self.resolve_model(data))

    def register(self, model: DocumentModel) -> DocumentModel:
        """Add a model built in code (or loaded from YAML) to the registry."""
        self.models[model.name] = model
        return model

    def validate_references(self) -> None:
        """Ensure every objectId ``ref`` names a known model.

        Raises:
            ValueError: On the first unknown reference
        """
        for model in self.models.values():
            for path, field_def in _walk_fields(model.fields):
                if field_def.ref and field_def.ref not in self.models:
                    raise ValueError(
                        f"Model '{model.name}' field '{path}' references unknown model '{field_def.ref}'"
                    )

    def resolve_model(self, data: dict) -> DocumentModel:
        """Resolve a model definition, expanding blocks."""
        name = data["model"]

        all_fields: list[dict] = []
        for include in data.get("includes", []):
            block_name = include["block"]
            prefix = include.get("prefix", "")
            if block_name not in self.blocks:
                raise ValueError(f"Model '{name}' includes unknown block '{block_name}'")
            for block_field in self.blocks[block_name]:
                field_copy = dict(block_field)
                if prefix:
                    field_copy["name"] = prefix + field_copy["name"]
                all_fields.append(field_copy)
        all_fields.extend(data.get("fields", []))

        timestamps = data.get("timestamps", False)
        fields = [self._resolve_field(f) for f in all_fields]
        if timestamps:
            fields = _with_timestamp_fields(fields)

        return DocumentModel(
            name=name,
            collection=data.get("collection", name.lower() + "s"),
            fields=fields,
            display_name=data.get("displayName", name),
            timestamps=timestamps,
            description=data.get("description", ""),
        )

    def _resolve_field(self, data: dict) -> FieldDefinition:
        """Convert field dict to FieldDefinition."""
        name = data.get("name", "")
        field_type = data.get("type", "string")
        if field_type not in FIELD_TYPES:
            raise ValueError(f"Field '{name}' has unknown type '{field_type}'")

        sub_fields = [self._resolve_field(f) for f in data.get("fields", [])]
        timestamps = data.get("timestamps", False)
        if timestamps:
            sub_fields = _with_timestamp_fields(sub_fields)

        items = None
        if field_type == "array":
            items_data = data.get("items", {"type": "string"})
            if isinstance(items_data, str):
                items_data = {"type": items_data}
            items = self._resolve_field({"name": "", **items_data})

        return FieldDefinition(
            name=name,
            type=field_type,
            display_name=data.get("displayName", self._to_display_name(name)),
            required=data.get("required", False),
            read_only=data.get("readOnly", False),
            default=data.get("default"),
            enum=data.get("enum"),
            description=data.get("description", ""),
            ref=data.get("ref"),
            fields=sub_fields,
            items=items,
            timestamps=timestamps,
        )

    def _to_display_name(self, name: str) -> str:
        """Convert camelCase to Title Case."""
        result = []
        for i, char in enumerate(name):
            if char.isupper() and i > 0:
                result.append(" ")
            result.append(char)
        return "".join(result).title()

    def get_model(self, name: str) -> DocumentModel | None:
        return self.models.get(name)

    def list_models(self) -> list[str]:
        return list(self.models.keys())


def _with_timestamp_fields(fields: list[FieldDefinition]) -> list[FieldDefinition]:
    names = {f.name for f in fields}
    result = list(fields)
    for stamp in ("created", "updated"):
        if stamp not in names:
            result.append(FieldDefinition(name=stamp, type="date", display_name=stamp.title()))
    return result


def _walk_fields(fields: list[FieldDefinition], prefix: str = ""):
    for f in fields:
        path = f"{prefix}{f.name}"
        yield path, f
        yield from _walk_fields(f.fields, path + ".")
        if f.items is not None:
            yield path, f.items
            yield from _walk_fields(f.items.fields, path + ".")


def load_model(data: dict, loader: MetadataLoader | None = None) -> DocumentModel:
    """Build (and register, when a loader is given) a model from a dict."""
    resolver = loader or MetadataLoader()
    model = resolver.resolve_model(data)
    if loader is not None:
        loader.register(model)
    return model
