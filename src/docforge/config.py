"""Application settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"

_TRUE_VALUES = ("1", "true", "yes")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class Settings:
    """Settings for ``create_app`` and the CLI.

    Attributes:
        secret_key: HS256 key for bearer tokens
        disable_auth: Skip the auth middleware (every request is anonymous)
        cors_origins: Allowed CORS origins
        enable_swagger: Serve Swagger UI at /swagger
        metadata_path: Directory holding ``models/`` and ``blocks/`` YAML
        log_level: Root log level
        title: API title in the OpenAPI document
    """

    secret_key: str = DEFAULT_SECRET_KEY
    disable_auth: bool = False
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])
    enable_swagger: bool = False
    metadata_path: Path | None = None
    log_level: str = "INFO"
    title: str = "docforge API"

    @classmethod
    def from_env(cls) -> Settings:
        """Create settings from DOCFORGE_* environment variables."""
        origins = os.environ.get("DOCFORGE_CORS_ORIGINS")
        metadata_path = os.environ.get("DOCFORGE_METADATA_PATH")
        return cls(
            secret_key=os.environ.get("DOCFORGE_SECRET_KEY", DEFAULT_SECRET_KEY),
            disable_auth=_env_flag("DOCFORGE_DISABLE_AUTH"),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins is not None
                else ["http://localhost:5173"]
            ),
            enable_swagger=_env_flag("DOCFORGE_ENABLE_SWAGGER"),
            metadata_path=Path(metadata_path) if metadata_path else None,
            log_level=os.environ.get("DOCFORGE_LOG_LEVEL", "INFO").upper(),
        )

    def resolve_metadata_path(self) -> Path:
        """Configured metadata directory, else ``./metadata``."""
        return self.metadata_path or Path.cwd() / "metadata"
