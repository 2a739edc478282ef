"""Configuration management for ProfileGuard."""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_SCHEMA_FILE = Path(__file__).parent / "data" / "company_profile_schema.json"


class DatabaseSettings(BaseSettings):
    """Database configuration for the schema table."""

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="b2b", description="Database name")
    user: str = Field(default="b2b", description="Database user")
    password: str = Field(default="", description="Database password")
    db_schema: Optional[str] = Field(
        default=None, description="Postgres schema holding the profile tables"
    )

    # Full SQLAlchemy async URL, takes precedence over the individual parts
    url_override: Optional[str] = Field(
        default=None, description="Explicit SQLAlchemy async database URL"
    )

    # Connection pool settings
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=0, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")

    @property
    def url(self) -> str:
        """Get the database URL."""
        if self.url_override:
            return self.url_override
        encoded_user = quote_plus(self.user)
        encoded_password = quote_plus(self.password) if self.password else ""
        return f"postgresql+asyncpg://{encoded_user}:{encoded_password}@{self.host}:{self.port}/{self.name}"

    class Config:
        env_prefix = "DB_"


class SchemaSettings(BaseSettings):
    """Schema source and cache configuration."""

    source: str = Field(
        default="file", description="Where field definitions come from: file or database"
    )
    file_path: Path = Field(
        default=DEFAULT_SCHEMA_FILE, description="JSON file with field definition rows"
    )
    cache_ttl_seconds: float = Field(
        default=300, description="How long a loaded schema stays fresh"
    )
    nested_sections: list[str] = Field(
        default=["privacy_settings"],
        description="Sections whose fields live in a sub-object of the same name",
    )

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        """Only the known source kinds are accepted."""
        v = v.strip().lower()
        if v not in ("file", "database"):
            raise ValueError("Schema source must be 'file' or 'database'")
        return v

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Schema cache TTL cannot be negative")
        return v

    class Config:
        env_prefix = "SCHEMA_"


class AppSettings(BaseSettings):
    """Application configuration."""

    title: str = Field(default="ProfileGuard", description="Application title")
    version: str = Field(default="0.1.0", description="Application version")

    # Environment
    environment: str = Field(
        default="development",
        description="Application environment (development, staging, production)",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")

    class Config:
        env_prefix = "APP_"


class Settings:
    """Main settings class combining all configurations."""

    def __init__(self) -> None:
        self.app = AppSettings()
        self.database = DatabaseSettings()
        self.schema = SchemaSettings()


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
