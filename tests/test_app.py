"""Tests for settings, logging setup and the application factory."""

import logging
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docforge.api import Resource, ResourceOptions, create_app
from docforge.auth import Permissions
from docforge.config import DEFAULT_SECRET_KEY, Settings
from docforge.logging_config import configure_logging

from conftest import OWNER_ID, SECRET_KEY, auth_headers


# =============================================================================
# Settings
# =============================================================================


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "DOCFORGE_SECRET_KEY",
            "DOCFORGE_DISABLE_AUTH",
            "DOCFORGE_CORS_ORIGINS",
            "DOCFORGE_ENABLE_SWAGGER",
            "DOCFORGE_METADATA_PATH",
            "DOCFORGE_LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.secret_key == DEFAULT_SECRET_KEY
        assert settings.disable_auth is False
        assert settings.cors_origins == ["http://localhost:5173"]
        assert settings.enable_swagger is False
        assert settings.metadata_path is None
        assert settings.log_level == "INFO"

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DOCFORGE_SECRET_KEY", "k" * 32)
        monkeypatch.setenv("DOCFORGE_DISABLE_AUTH", "true")
        monkeypatch.setenv("DOCFORGE_CORS_ORIGINS", "http://a.test, http://b.test,")
        monkeypatch.setenv("DOCFORGE_ENABLE_SWAGGER", "1")
        monkeypatch.setenv("DOCFORGE_METADATA_PATH", str(tmp_path))
        monkeypatch.setenv("DOCFORGE_LOG_LEVEL", "debug")
        settings = Settings.from_env()
        assert settings.secret_key == "k" * 32
        assert settings.disable_auth is True
        assert settings.cors_origins == ["http://a.test", "http://b.test"]
        assert settings.enable_swagger is True
        assert settings.metadata_path == tmp_path
        assert settings.log_level == "DEBUG"

    def test_flag_values(self, monkeypatch):
        monkeypatch.setenv("DOCFORGE_DISABLE_AUTH", "no")
        assert Settings.from_env().disable_auth is False

    def test_resolve_metadata_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert Settings().resolve_metadata_path() == Path.cwd() / "metadata"
        assert Settings(metadata_path=Path("/x")).resolve_metadata_path() == Path("/x")


def test_configure_logging():
    configure_logging("debug")
    assert logging.getLogger("docforge").level == logging.DEBUG
    configure_logging("bogus")
    assert logging.getLogger("docforge").level == logging.INFO
    logging.getLogger("docforge").setLevel(logging.NOTSET)


# =============================================================================
# create_app
# =============================================================================


class TestCreateApp:
    def test_unknown_model(self, registry, store):
        with pytest.raises(ValueError, match="Unknown model 'Drink'"):
            create_app([Resource("/drinks", "Drink")], registry, store=store, settings=Settings())

    def test_model_instance(self, registry, store, food_model):
        options = ResourceOptions(permissions={"list": [Permissions.IsAny]})
        app = create_app([Resource("/food", food_model, options)], registry, store=store, settings=Settings())
        with TestClient(app) as client:
            assert client.get("/food").json()["data"] == []

    def test_state(self, registry, store):
        settings = Settings()
        app = create_app([], registry, store=store, settings=settings)
        assert app.state.store is store
        assert app.state.registry is registry
        assert app.state.settings is settings

    def test_disable_auth_ignores_tokens(self, registry, store):
        options = ResourceOptions(permissions={"list": [Permissions.IsAuthenticated]})
        settings = Settings(secret_key=SECRET_KEY, disable_auth=True)
        app = create_app([Resource("/food", "Food", options)], registry, store=store, settings=settings)
        with TestClient(app) as client:
            assert client.get("/food", headers=auth_headers(OWNER_ID)).status_code == 405

    def test_swagger_enabled(self, registry, store):
        settings = Settings(enable_swagger=True)
        app = create_app([], registry, store=store, settings=settings)
        with TestClient(app) as client:
            response = client.get("/swagger")
            assert response.status_code == 200
            assert "swagger-ui" in response.text

    def test_cors(self, registry, store):
        settings = Settings(cors_origins=["http://app.test"])
        app = create_app([], registry, store=store, settings=settings)
        with TestClient(app) as client:
            response = client.get("/openapi.json", headers={"Origin": "http://app.test"})
            assert response.headers["access-control-allow-origin"] == "http://app.test"

    def test_wrong_secret_is_anonymous(self, registry, store):
        options = ResourceOptions(permissions={"list": [Permissions.IsAuthenticated]})
        app = create_app(
            [Resource("/food", "Food", options)],
            registry,
            store=store,
            settings=Settings(secret_key="another-secret-key-entirely-0000"),
        )
        with TestClient(app) as client:
            assert client.get("/food", headers=auth_headers(OWNER_ID)).status_code == 405
