"""Per-operation permission predicates.

A predicate is called as ``predicate(method, requester, obj)`` and returns a
bool (or an awaitable resolving to one). ``obj`` is ``None`` for the
request-level check made before a document is loaded; object-scoped
operations are re-checked once the document is in hand.

Operations are named ``list``, ``read``, ``create``, ``update`` and ``delete``.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Union

from docforge.auth.types import Requester

PermissionResult = Union[bool, Awaitable[bool]]
Permission = Callable[[str, "Requester | None", "dict[str, Any] | None"], PermissionResult]

READ_ONLY_METHODS = frozenset({"list", "read"})
OPERATIONS = ("list", "create", "read", "update", "delete")


def ref_id(value: Any) -> str | None:
    """Reference id of a plain or populated objectId value."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("_id", value.get("id"))
        return None if value is None else str(value)
    return str(value)


def is_any(method: str, requester: Requester | None, obj: dict | None = None) -> bool:
    return True


def is_authenticated(method: str, requester: Requester | None, obj: dict | None = None) -> bool:
    return requester is not None and requester.is_authenticated


def is_admin(method: str, requester: Requester | None, obj: dict | None = None) -> bool:
    return requester is not None and requester.admin


def is_authenticated_or_read_only(
    method: str, requester: Requester | None, obj: dict | None = None
) -> bool:
    if method in READ_ONLY_METHODS:
        return True
    return is_authenticated(method, requester, obj)


def owned_by(owner_field: str = "ownerId") -> Permission:
    """Build an owner predicate that reads the owner reference from ``owner_field``.

    Without an object the predicate passes so the object-level check decides.
    """

    def is_owner(method: str, requester: Requester | None, obj: dict | None = None) -> bool:
        if obj is None:
            return True
        if requester is None or requester.is_anonymous:
            return False
        if requester.admin:
            return True
        owner = ref_id(obj.get(owner_field))
        return owner is not None and owner == requester.id

    is_owner.__name__ = f"is_owner_{owner_field}" if owner_field != "ownerId" else "is_owner"
    return is_owner


is_owner = owned_by("ownerId")


def owned_by_or_read_only(owner_field: str = "ownerId") -> Permission:
    owner_check = owned_by(owner_field)

    def is_owner_or_read_only(method: str, requester: Requester | None, obj: dict | None = None) -> bool:
        if method in READ_ONLY_METHODS:
            return True
        return owner_check(method, requester, obj)

    return is_owner_or_read_only


is_owner_or_read_only = owned_by_or_read_only("ownerId")


class Permissions:
    """Built-in predicates under the names used in resource configuration."""

    IsAny = staticmethod(is_any)
    IsAuthenticated = staticmethod(is_authenticated)
    IsAdmin = staticmethod(is_admin)
    IsOwner = staticmethod(is_owner)
    IsAuthenticatedOrReadOnly = staticmethod(is_authenticated_or_read_only)
    IsOwnerOrReadOnly = staticmethod(is_owner_or_read_only)

    owned_by = staticmethod(owned_by)
    owned_by_or_read_only = staticmethod(owned_by_or_read_only)


async def check_permissions(
    method: str,
    predicates: list[Permission] | None,
    requester: Requester | None,
    obj: dict[str, Any] | None = None,
) -> bool:
    """Evaluate a predicate list; satisfied if any predicate returns true.

    Args:
        method: Operation name (``list``, ``read``, ...)
        predicates: Configured predicates; empty or missing denies everyone
        requester: The caller, or None when unauthenticated
        obj: The loaded document for object-level checks

    Returns:
        True if at least one predicate allows the operation
    """
    if not predicates:
        return False

    for predicate in predicates:
        result = predicate(method, requester, obj)
        if inspect.isawaitable(result):
            result = await result
        if result:
            return True
    return False
