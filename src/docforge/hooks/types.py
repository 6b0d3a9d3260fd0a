"""Hook types for generated resources.

Pre hooks (``pre_create``, ``pre_update``, ``pre_delete``) run after the
field transformer and before persistence. Their return value decides whether
the operation proceeds:

- the body itself, or ``Proceed(body)``: continue with that body
- ``Deny(detail)``: refuse with 403
- ``None``: refuse with 403, since no body was returned

Post hooks (``post_create``, ``post_update``, ``post_delete``) run after
persistence and their return value is ignored.

Hooks may be plain functions or coroutines.
"""

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Proceed:
    """Continue the operation with ``body``."""

    body: Any


@dataclass(frozen=True)
class Deny:
    """Refuse the operation; ``detail`` is returned with the 403."""

    detail: str | None = None


@dataclass(frozen=True)
class Fail:
    """The hook raised ``error``."""

    error: BaseException


HookOutcome = Union[Proceed, Deny, Fail]


STAGE_OPERATIONS = {
    "preCreate": "Create",
    "preUpdate": "Update",
    "preDelete": "Delete",
}
