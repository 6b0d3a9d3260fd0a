"""Per-role field visibility for reads and writes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from docforge.auth.permissions import ref_id
from docforge.auth.types import Requester
from docforge.errors import NotAllowed

ID_FIELDS = ("_id", "id")


class Role(str, Enum):
    """How the requester relates to the document being read or written."""

    ANONYMOUS = "anon"
    AUTHENTICATED = "auth"
    OWNER = "owner"
    ADMIN = "admin"


@dataclass(frozen=True)
class FieldAccess:
    read: frozenset[str] = field(default_factory=frozenset)
    write: frozenset[str] = field(default_factory=frozenset)


class NoopTransformer:
    """Transformer that lets every field through in both directions."""

    def filter_for_write(
        self,
        body: dict[str, Any],
        requester: Requester | None,
        existing: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return body

    def filter_for_read(self, obj: dict[str, Any], requester: Requester | None) -> dict[str, Any]:
        return obj

    def documented_read_fields(self) -> set[str] | None:
        return None

    def documented_write_fields(self) -> set[str] | None:
        return None


class AdminOwnerTransformer(NoopTransformer):
    """Field allow-lists per role.

    Each role has its own read and write lists; roles do not inherit from one
    another. The owner role applies when the document's owner reference
    matches the requester.

    Example::

        AdminOwnerTransformer(
            admin_read_fields=["name", "calories", "created", "ownerId"],
            admin_write_fields=["name", "calories", "created", "ownerId"],
            owner_read_fields=["name", "calories", "created", "ownerId"],
            owner_write_fields=["name", "calories", "created"],
            auth_read_fields=["name", "calories", "created"],
            auth_write_fields=["name", "calories"],
            anon_read_fields=["name"],
            anon_write_fields=[],
        )
    """

    def __init__(
        self,
        *,
        admin_read_fields: Iterable[str] = (),
        admin_write_fields: Iterable[str] = (),
        owner_read_fields: Iterable[str] = (),
        owner_write_fields: Iterable[str] = (),
        auth_read_fields: Iterable[str] = (),
        auth_write_fields: Iterable[str] = (),
        anon_read_fields: Iterable[str] = (),
        anon_write_fields: Iterable[str] = (),
        owner_field: str = "ownerId",
    ):
        self.owner_field = owner_field
        self._access = {
            Role.ADMIN: FieldAccess(frozenset(admin_read_fields), frozenset(admin_write_fields)),
            Role.OWNER: FieldAccess(frozenset(owner_read_fields), frozenset(owner_write_fields)),
            Role.AUTHENTICATED: FieldAccess(frozenset(auth_read_fields), frozenset(auth_write_fields)),
            Role.ANONYMOUS: FieldAccess(frozenset(anon_read_fields), frozenset(anon_write_fields)),
        }

    def fields_for(self, role: Role) -> FieldAccess:
        return self._access[role]

    def _owns(self, requester: Requester, obj: dict[str, Any] | None) -> bool:
        if obj is None:
            return False
        owner = ref_id(obj.get(self.owner_field))
        return owner is not None and owner == requester.id

    def resolve_role(
        self,
        requester: Requester | None,
        obj: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Role:
        """Resolve the requester's role once for a read or write.

        For writes without an existing document (create), ownership is taken
        from the owner reference in the body.
        """
        if requester is None or requester.is_anonymous:
            return Role.ANONYMOUS
        if requester.admin:
            return Role.ADMIN
        if obj is not None:
            if self._owns(requester, obj):
                return Role.OWNER
        elif body is not None and self._owns(requester, body):
            return Role.OWNER
        return Role.AUTHENTICATED

    def filter_for_write(
        self,
        body: dict[str, Any],
        requester: Requester | None,
        existing: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Return the body unchanged if every key is writable for the role.

        Raises:
            NotAllowed: Naming the role and every disallowed field
        """
        role = self.resolve_role(requester, existing, body)
        writable = self.fields_for(role).write
        disallowed = [
            key for key in body if key not in ID_FIELDS and key.split(".")[0] not in writable
        ]
        if disallowed:
            raise NotAllowed(f"User of type {role.value} cannot write fields: {', '.join(disallowed)}")
        return body

    def filter_for_read(self, obj: dict[str, Any], requester: Requester | None) -> dict[str, Any]:
        role = self.resolve_role(requester, obj)
        readable = self.fields_for(role).read
        return {key: value for key, value in obj.items() if key in ID_FIELDS or key in readable}

    def documented_read_fields(self) -> set[str]:
        return set().union(*(access.read for access in self._access.values()))

    def documented_write_fields(self) -> set[str]:
        return set().union(*(access.write for access in self._access.values()))
