"""DocumentStore protocol: the shared interface for all document stores."""

from typing import Any, Protocol, runtime_checkable

from docforge.metadata.loader import DocumentModel


@runtime_checkable
class DocumentStore(Protocol):
    """Interface the resource router talks to.

    Documents are plain dicts keyed by ``_id``. Stores assign ids, stamp
    ``created``/``updated`` (on documents and object-array items) and raise
    ``DocumentValidationError`` for documents that do not fit their model.
    Filters use mongo-style operators (see ``persistence.matching``); sort is
    a list of ``(path, 1 | -1)`` pairs.
    """

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def initialize_model(self, model: DocumentModel) -> None: ...

    async def insert(self, model: DocumentModel, data: dict[str, Any]) -> dict[str, Any]: ...

    async def get(self, model: DocumentModel, id: str) -> dict[str, Any] | None: ...

    async def get_many(self, model: DocumentModel, ids: list[str]) -> list[dict[str, Any]]: ...

    async def find(
        self,
        model: DocumentModel,
        filter: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[dict[str, Any]]: ...

    async def count(self, model: DocumentModel, filter: dict[str, Any] | None = None) -> int: ...

    async def replace(
        self, model: DocumentModel, id: str, data: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    async def delete(self, model: DocumentModel, id: str) -> bool: ...
