"""Persistence layer - document stores and their shared document handling."""

from docforge.persistence.adapter import DocumentStore
from docforge.persistence.config import DatabaseConfig, create_store
from docforge.persistence.documents import DocumentValidationError, new_object_id
from docforge.persistence.memory import MemoryDocumentStore
from docforge.persistence.sql import SQLDocumentStore

__all__ = [
    "DatabaseConfig",
    "DocumentStore",
    "DocumentValidationError",
    "MemoryDocumentStore",
    "SQLDocumentStore",
    "create_store",
    "new_object_id",
]
