"""Tests for reference population and depopulation."""

import copy

import pytest

from docforge.populate import PopulatePath, expand_path, populate, populate_document, project, unpopulate

from conftest import OTHER_ID, OWNER_ID

LOOKUP = {
    OWNER_ID: {"_id": OWNER_ID, "name": "Owner", "email": "owner@example.com"},
    OTHER_ID: {"_id": OTHER_ID, "name": "Other", "email": "other@example.com"},
}

FOOD = {
    "_id": "f" * 24,
    "name": "Apple",
    "ownerId": OWNER_ID,
    "eatenBy": [OWNER_ID, OTHER_ID],
    "likesIds": [{"_id": "1" * 24, "userId": OTHER_ID, "likes": True}],
    "source": {"name": "Orchard"},
}


class TestProject:
    def test_allow_list_keeps_id(self):
        assert project(LOOKUP[OWNER_ID], ["email"]) == {
            "_id": OWNER_ID,
            "id": OWNER_ID,
            "email": "owner@example.com",
        }

    def test_block_list(self):
        result = project(LOOKUP[OWNER_ID], ["-email"])
        assert "email" not in result
        assert result["name"] == "Owner"

    def test_everything(self):
        assert project(LOOKUP[OWNER_ID], None)["name"] == "Owner"


class TestExpandPath:
    def test_single_reference(self):
        result = expand_path(FOOD, "ownerId", LOOKUP, ["name"])
        assert result["ownerId"] == {"_id": OWNER_ID, "id": OWNER_ID, "name": "Owner"}

    def test_array_of_references(self):
        result = expand_path(FOOD, "eatenBy", LOOKUP, ["name"])
        assert [u["name"] for u in result["eatenBy"]] == ["Owner", "Other"]

    def test_through_object_array(self):
        result = expand_path(FOOD, "likesIds.userId", LOOKUP, ["name"])
        assert result["likesIds"][0]["userId"]["name"] == "Other"
        assert result["likesIds"][0]["likes"] is True

    def test_does_not_mutate_and_shares_siblings(self):
        original = copy.deepcopy(FOOD)
        result = expand_path(FOOD, "ownerId", LOOKUP)
        assert FOOD == original
        assert result["source"] is FOOD["source"]
        assert result["likesIds"] is FOOD["likesIds"]

    def test_dangling_reference_left_alone(self):
        doc = {**FOOD, "ownerId": "9" * 24}
        assert expand_path(doc, "ownerId", LOOKUP)["ownerId"] == "9" * 24

    def test_missing_path_returns_same_document(self):
        doc = {"_id": "x", "name": "No owner"}
        assert expand_path(doc, "ownerId", LOOKUP) is doc


class TestUnpopulate:
    @pytest.mark.parametrize("path", ["ownerId", "eatenBy", "likesIds.userId"])
    def test_round_trip(self, path):
        expanded = expand_path(FOOD, path, LOOKUP, ["name"])
        assert unpopulate(expanded, path) == FOOD

    def test_other_expanded_paths_untouched(self):
        expanded = expand_path(expand_path(FOOD, "ownerId", LOOKUP), "eatenBy", LOOKUP)
        result = unpopulate(expanded, "ownerId")
        assert result["ownerId"] == OWNER_ID
        assert result["eatenBy"] is expanded["eatenBy"]
        assert result["eatenBy"][0]["name"] == "Owner"


# =============================================================================
# populate (store-backed)
# =============================================================================


class TestPopulate:
    @pytest.mark.asyncio
    async def test_batch_lookup(self, store, food_model, user_model, registry):
        for user in LOOKUP.values():
            await store.insert(user_model, user)
        docs = [FOOD, {**FOOD, "_id": "e" * 24, "ownerId": OTHER_ID}]

        result = await populate(
            docs,
            food_model,
            [PopulatePath("ownerId", fields=("email",)), PopulatePath("eatenBy", fields=("name",))],
            store,
            registry,
        )

        assert result[0]["ownerId"]["email"] == "owner@example.com"
        assert "name" not in result[0]["ownerId"]
        assert result[1]["ownerId"]["_id"] == OTHER_ID
        assert result[1]["eatenBy"][1]["name"] == "Other"

    @pytest.mark.asyncio
    async def test_not_a_reference(self, store, food_model, registry):
        with pytest.raises(ValueError, match="not a reference field"):
            await populate_document(FOOD, food_model, [PopulatePath("name")], store, registry)

    def test_fields_become_tuple(self):
        assert PopulatePath("ownerId", fields=["name"]).fields == ("name",)
