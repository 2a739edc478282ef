"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from profileguard.config import (
    DEFAULT_SCHEMA_FILE,
    DatabaseSettings,
    SchemaSettings,
    get_settings,
)
from profileguard.sources import DatabaseSchemaSource, JsonFileSchemaSource, create_schema_source


class TestSchemaSettings:
    """Test schema source and cache settings."""

    def test_defaults(self):
        settings = SchemaSettings()

        assert settings.source == "file"
        assert settings.file_path == DEFAULT_SCHEMA_FILE
        assert settings.cache_ttl_seconds == 300
        assert settings.nested_sections == ["privacy_settings"]

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SCHEMA_SOURCE", " Database ")
        monkeypatch.setenv("SCHEMA_CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("SCHEMA_NESTED_SECTIONS", '["privacy_settings", "media"]')

        settings = SchemaSettings()

        assert settings.source == "database"
        assert settings.cache_ttl_seconds == 60
        assert settings.nested_sections == ["privacy_settings", "media"]

    def test_unknown_source_rejected(self):
        with pytest.raises(ValidationError):
            SchemaSettings(source="redis")

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValidationError):
            SchemaSettings(cache_ttl_seconds=-1)


class TestDatabaseSettings:
    """Test database URL construction."""

    def test_url_built_from_parts(self):
        settings = DatabaseSettings(host="db", port=5433, name="b2b", user="app", password="p@ss")

        assert settings.url == "postgresql+asyncpg://app:p%40ss@db:5433/b2b"

    def test_url_override(self):
        settings = DatabaseSettings(url_override="sqlite+aiosqlite:///schema.db")

        assert settings.url == "sqlite+aiosqlite:///schema.db"


class TestSchemaSourceSelection:
    """Test picking the schema source from settings."""

    @pytest.fixture(autouse=True)
    def clear_settings_cache(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_file_source(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SCHEMA_FILE_PATH", str(tmp_path / "schema.json"))

        source = create_schema_source(get_settings())

        assert isinstance(source, JsonFileSchemaSource)
        assert source.path == tmp_path / "schema.json"

    def test_database_source(self, monkeypatch):
        monkeypatch.setenv("SCHEMA_SOURCE", "database")
        monkeypatch.setenv("DB_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")

        source = create_schema_source(get_settings())

        assert isinstance(source, DatabaseSchemaSource)
        assert source.db_manager.settings.url == "sqlite+aiosqlite:///:memory:"
