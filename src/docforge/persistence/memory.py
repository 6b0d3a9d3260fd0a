"""In-memory document store.

Handy for tests and demos. Every read and write deep-copies, so callers can
never mutate stored state through a returned document.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from docforge.metadata.loader import DocumentModel
from docforge.persistence.documents import (
    Clock,
    DocumentValidationError,
    prepare_insert,
    prepare_replace,
    utc_now,
)
from docforge.persistence.matching import matches, sort_documents

logger = logging.getLogger(__name__)


class MemoryDocumentStore:
    """Document store keeping collections in dicts."""

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or utc_now
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    async def connect(self) -> None:
        logger.debug("Memory store ready")

    async def close(self) -> None:
        logger.debug("Memory store closed")

    async def initialize_model(self, model: DocumentModel) -> None:
        self._collections.setdefault(model.collection, {})

    def _collection(self, model: DocumentModel) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(model.collection, {})

    async def insert(self, model: DocumentModel, data: dict[str, Any]) -> dict[str, Any]:
        doc = prepare_insert(model, data, self._clock())
        collection = self._collection(model)
        if doc["_id"] in collection:
            raise DocumentValidationError(model.name, {"_id": f"Duplicate _id {doc['_id']}"})
        collection[doc["_id"]] = doc
        return copy.deepcopy(doc)

    async def get(self, model: DocumentModel, id: str) -> dict[str, Any] | None:
        doc = self._collection(model).get(str(id))
        return copy.deepcopy(doc) if doc is not None else None

    async def get_many(self, model: DocumentModel, ids: list[str]) -> list[dict[str, Any]]:
        collection = self._collection(model)
        return [copy.deepcopy(collection[i]) for i in dict.fromkeys(map(str, ids)) if i in collection]

    async def find(
        self,
        model: DocumentModel,
        filter: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[dict[str, Any]]:
        docs = [d for d in self._collection(model).values() if matches(d, filter)]
        docs = sort_documents(docs, sort)
        end = skip + limit if limit is not None else None
        return [copy.deepcopy(d) for d in docs[skip:end]]

    async def count(self, model: DocumentModel, filter: dict[str, Any] | None = None) -> int:
        return sum(1 for d in self._collection(model).values() if matches(d, filter))

    async def replace(
        self, model: DocumentModel, id: str, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        collection = self._collection(model)
        existing = collection.get(str(id))
        if existing is None:
            return None
        doc = prepare_replace(model, existing, data, self._clock())
        collection[doc["_id"]] = doc
        return copy.deepcopy(doc)

    async def delete(self, model: DocumentModel, id: str) -> bool:
        return self._collection(model).pop(str(id), None) is not None
