"""Tests for permission predicates and their evaluation."""

import pytest

from docforge.auth import Permissions, Requester, check_permissions, owned_by
from docforge.auth.permissions import ref_id

OWNER = Requester(id="b" * 24)
OTHER = Requester(id="c" * 24)
ADMIN = Requester(id="a" * 24, admin=True)
ANON_SESSION = Requester(id="d" * 24, is_anonymous=True)

FOOD = {"_id": "f" * 24, "name": "Apple", "ownerId": "b" * 24}


# ── ref_id ───────────────────────────────────────────────────────────────────


def test_ref_id_plain_and_populated():
    assert ref_id("abc") == "abc"
    assert ref_id({"_id": "abc", "name": "x"}) == "abc"
    assert ref_id({"id": "abc"}) == "abc"
    assert ref_id(None) is None


# ── Built-in predicates ──────────────────────────────────────────────────────


class TestBuiltins:
    def test_is_any(self):
        assert Permissions.IsAny("create", None, None)

    def test_is_authenticated(self):
        assert Permissions.IsAuthenticated("create", OWNER, None)
        assert not Permissions.IsAuthenticated("create", None, None)
        assert not Permissions.IsAuthenticated("create", ANON_SESSION, None)

    def test_is_admin(self):
        assert Permissions.IsAdmin("delete", ADMIN, None)
        assert not Permissions.IsAdmin("delete", OWNER, None)
        assert not Permissions.IsAdmin("delete", None, None)

    def test_authenticated_or_read_only(self):
        assert Permissions.IsAuthenticatedOrReadOnly("list", None, None)
        assert Permissions.IsAuthenticatedOrReadOnly("read", None, FOOD)
        assert not Permissions.IsAuthenticatedOrReadOnly("update", None, FOOD)
        assert Permissions.IsAuthenticatedOrReadOnly("update", OWNER, FOOD)

    def test_owner_or_read_only(self):
        assert Permissions.IsOwnerOrReadOnly("read", OTHER, FOOD)
        assert not Permissions.IsOwnerOrReadOnly("update", OTHER, FOOD)
        assert Permissions.IsOwnerOrReadOnly("update", OWNER, FOOD)


class TestIsOwner:
    def test_passes_without_object(self):
        """The request-level check defers to the object-level one."""
        assert Permissions.IsOwner("update", OTHER, None)
        assert Permissions.IsOwner("update", None, None)

    def test_owner_matches(self):
        assert Permissions.IsOwner("update", OWNER, FOOD)

    def test_other_user_rejected(self):
        assert not Permissions.IsOwner("update", OTHER, FOOD)

    def test_admin_always_owner(self):
        assert Permissions.IsOwner("update", ADMIN, FOOD)

    def test_anonymous_rejected(self):
        assert not Permissions.IsOwner("update", None, FOOD)
        assert not Permissions.IsOwner("update", ANON_SESSION, {**FOOD, "ownerId": ANON_SESSION.id})

    def test_populated_owner(self):
        doc = {**FOOD, "ownerId": {"_id": OWNER.id, "name": "Owner"}}
        assert Permissions.IsOwner("update", OWNER, doc)

    def test_document_without_owner(self):
        assert not Permissions.IsOwner("update", OWNER, {"_id": "f" * 24})

    def test_custom_owner_field(self):
        is_self = owned_by("_id")
        assert is_self("update", OWNER, {"_id": OWNER.id})
        assert not is_self("update", OTHER, {"_id": OWNER.id})


# ── check_permissions ────────────────────────────────────────────────────────


class TestCheckPermissions:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("requester", [None, OWNER, ADMIN])
    async def test_missing_predicates_deny_everyone(self, requester):
        assert not await check_permissions("list", None, requester)
        assert not await check_permissions("list", [], requester)

    @pytest.mark.asyncio
    async def test_any_predicate_allows(self):
        assert await check_permissions("delete", [Permissions.IsAdmin, Permissions.IsOwner], OWNER, FOOD)

    @pytest.mark.asyncio
    async def test_all_false_denies(self):
        assert not await check_permissions("delete", [Permissions.IsAdmin], OWNER, FOOD)

    @pytest.mark.asyncio
    async def test_async_predicate(self):
        async def is_named_owner(method, requester, obj):
            return requester is not None and requester.id == OWNER.id

        assert await check_permissions("read", [is_named_owner], OWNER)
        assert not await check_permissions("read", [is_named_owner], OTHER)
