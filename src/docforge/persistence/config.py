"""Database configuration and store factory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from docforge.persistence.adapter import DocumentStore

MEMORY_URL = "memory://"


@dataclass
class DatabaseConfig:
    """Database connection configuration.

    Supports memory://, sqlite:/// and postgresql:// URL schemes.
    """

    url: str

    @classmethod
    def from_env(cls) -> DatabaseConfig:
        """Create config from environment variables.

        Resolution order:
        1. DATABASE_URL env var (standard)
        2. DOCFORGE_DB_PATH env var (converted to sqlite:/// URL)
        3. Default: memory://
        """
        url = os.environ.get("DATABASE_URL")
        if url:
            return cls(url=url)

        db_path = os.environ.get("DOCFORGE_DB_PATH")
        if db_path:
            return cls(url=f"sqlite:///{db_path}")

        return cls(url=MEMORY_URL)

    @property
    def is_memory(self) -> bool:
        return self.url.startswith("memory:")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_postgresql(self) -> bool:
        return self.url.startswith("postgresql") or self.url.startswith("postgres://")

    @property
    def sqlalchemy_url(self) -> str:
        """URL suitable for SQLAlchemy engine creation.

        Ensures postgresql:// URLs use the psycopg (v3) driver.
        """
        for prefix in ("postgresql://", "postgres://"):
            if self.url.startswith(prefix):
                return self.url.replace(prefix, "postgresql+psycopg://", 1)
        return self.url


def create_store(config: DatabaseConfig) -> DocumentStore:
    """Create a document store based on the database URL scheme.

    Args:
        config: Database configuration with URL.

    Returns:
        A DocumentStore instance (not yet connected).

    Raises:
        ValueError: For unsupported URL schemes.
    """
    if config.is_memory:
        from docforge.persistence.memory import MemoryDocumentStore

        return MemoryDocumentStore()

    if config.is_sqlite or config.is_postgresql:
        from docforge.persistence.sql import SQLDocumentStore

        return SQLDocumentStore(config.sqlalchemy_url)

    raise ValueError(f"Unsupported database URL scheme: {config.url}")
