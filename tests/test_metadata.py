"""Tests for model loading and the schemas derived from models."""

import textwrap

import pytest

from docforge.metadata.loader import MetadataLoader, load_model
from docforge.metadata.schema import document_validation_schema, field_schema, model_properties


def write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content))


class TestLoader:
    def test_demo_models(self, registry):
        assert set(registry.list_models()) == {"Food", "User"}

    def test_food_fields(self, food_model):
        assert food_model.collection == "food"
        assert food_model.get_field("ownerId").ref == "User"
        assert [f.name for f in food_model.array_fields()] == ["tags", "eatenBy", "categories", "likesIds"]
        assert food_model.get_field("categories").has_object_items
        assert not food_model.get_field("tags").has_object_items

    def test_timestamps_added(self, user_model, food_model):
        assert {"created", "updated"} <= set(user_model.field_names)
        categories = food_model.get_field("categories").items
        assert categories.get_field("updated") is not None
        assert food_model.get_field("likesIds").items.get_field("created") is None

    def test_soft_delete(self, user_model, food_model):
        assert user_model.soft_delete
        assert not food_model.soft_delete

    def test_resolve_path(self, food_model):
        assert food_model.resolve_path("source.name").type == "string"
        assert food_model.resolve_path("likesIds.userId").ref == "User"
        assert food_model.resolve_path("nope.name") is None

    def test_blocks_and_default_collection(self, tmp_path):
        write(
            tmp_path / "blocks" / "audit.yaml",
            """
            block: audit
            fields:
              - name: By
                type: objectId
                ref: Person
            """,
        )
        write(
            tmp_path / "models" / "person.yaml",
            """
            model: Person
            includes:
              - block: audit
                prefix: created
            fields:
              - name: fullName
                type: string
                required: true
            """,
        )
        loader = MetadataLoader(tmp_path)
        loader.load_all()

        person = loader.get_model("Person")
        assert person.collection == "persons"
        assert person.field_names == ["createdBy", "fullName"]
        assert person.get_field("fullName").display_name == "Full Name"

    def test_unknown_reference(self, tmp_path):
        write(
            tmp_path / "models" / "thing.yaml",
            """
            model: Thing
            fields:
              - name: ownerId
                type: objectId
                ref: Ghost
            """,
        )
        loader = MetadataLoader(tmp_path)
        with pytest.raises(ValueError, match="references unknown model 'Ghost'"):
            loader.load_all()

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="unknown type 'money'"):
            load_model({"model": "Bad", "fields": [{"name": "price", "type": "money"}]})

    def test_load_model_registers(self):
        loader = MetadataLoader()
        model = load_model({"model": "Note", "fields": [{"name": "body"}]}, loader)
        assert loader.get_model("Note") is model
        assert model.get_field("body").type == "string"


class TestSchemas:
    def test_field_schema(self, food_model):
        assert field_schema(food_model.get_field("created")) == {"type": "string", "format": "date-time"}
        tags = field_schema(food_model.get_field("tags"))
        assert tags == {"type": "array", "items": {"type": "string"}}

    def test_object_items_get_id(self, food_model):
        schema = field_schema(food_model.get_field("categories"))
        assert "_id" in schema["items"]["properties"]
        assert "show" in schema["items"]["properties"]

    def test_model_properties(self, user_model):
        properties, required = model_properties(user_model)
        assert "_id" in properties
        assert properties["admin"]["default"] is False
        assert required == []

    def test_validation_allows_null_for_optional(self, food_model):
        schema = document_validation_schema(food_model)
        assert {"type": "null"} in schema["properties"]["name"]["anyOf"]
