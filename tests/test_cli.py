"""Tests for the docforge CLI commands."""

import json

from click.testing import CliRunner

from docforge.auth import JWTService
from docforge.cli.main import cli
from docforge.config import DEFAULT_SECRET_KEY

from conftest import METADATA_PATH


# ── models ───────────────────────────────────────────────────────────


class TestModelsValidate:
    def test_valid_metadata(self):
        result = CliRunner().invoke(cli, ["models", "validate", "--path", str(METADATA_PATH)])
        assert result.exit_code == 0
        assert "Loaded 2 model(s):" in result.output
        assert "✓ Food" in result.output
        assert "collection: users, soft delete" in result.output
        assert "All models are valid." in result.output

    def test_invalid_reference(self, tmp_path):
        models_dir = tmp_path / "models"
        models_dir.mkdir()
        (models_dir / "food.yaml").write_text(
            "model: Food\nfields:\n  - name: ownerId\n    type: objectId\n    ref: Nobody\n"
        )
        result = CliRunner().invoke(cli, ["models", "validate", "--path", str(tmp_path)])
        assert result.exit_code == 1
        assert "Model validation failed" in result.output

    def test_empty_directory(self, tmp_path):
        (tmp_path / "models").mkdir()
        result = CliRunner().invoke(cli, ["models", "validate", "--path", str(tmp_path)])
        assert result.exit_code == 1
        assert "No models found." in result.output

    def test_missing_directory_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DOCFORGE_METADATA_PATH", str(tmp_path / "nowhere"))
        result = CliRunner().invoke(cli, ["models", "validate"])
        assert result.exit_code == 1
        assert "Metadata directory not found" in result.output


def test_models_list():
    result = CliRunner().invoke(cli, ["models", "list", "--path", str(METADATA_PATH)])
    assert result.exit_code == 0
    assert "Food (/food)" in result.output
    assert "ownerId: objectId [ref User]" in result.output
    assert "eatenBy: array<objectId> [ref User]" in result.output


# ── token ────────────────────────────────────────────────────────────


def test_token_uses_configured_secret(monkeypatch):
    monkeypatch.setenv("DOCFORGE_SECRET_KEY", "cli-secret-key-for-tests-0123456789")
    result = CliRunner().invoke(cli, ["token", "b" * 24, "--admin", "--email", "a@b.c"])
    assert result.exit_code == 0

    claims = JWTService("cli-secret-key-for-tests-0123456789").decode_token(result.output.strip())
    assert claims.user_id == "b" * 24
    assert claims.admin is True
    assert claims.email == "a@b.c"


def test_token_default_secret(monkeypatch):
    monkeypatch.delenv("DOCFORGE_SECRET_KEY", raising=False)
    result = CliRunner().invoke(cli, ["token", "user-1"])
    claims = JWTService(DEFAULT_SECRET_KEY).decode_token(result.output.strip())
    assert claims.admin is False


# ── openapi ──────────────────────────────────────────────────────────


def test_openapi_prints_document():
    result = CliRunner().invoke(cli, ["openapi", "docforge.example:app"])
    assert result.exit_code == 0
    document = json.loads(result.output)
    assert document["openapi"].startswith("3.")
    assert "/food" in document["paths"]
    assert "/food/stats" in document["paths"]
    assert "LimitedUser" in document["components"]["schemas"]


def test_openapi_bad_target():
    result = CliRunner().invoke(cli, ["openapi", "not_a_module_anywhere:app"])
    assert result.exit_code == 2
    assert "Cannot import" in result.output


def test_openapi_target_without_colon():
    result = CliRunner().invoke(cli, ["openapi", "docforge.example"])
    assert result.exit_code == 2
