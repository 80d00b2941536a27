"""Runtime configuration for the catalog indexer."""
from __future__ import annotations

from urllib.parse import quote

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IndexerSettings(BaseSettings):
    """Environment-aware settings for a single indexing run."""

    database_url: str = Field(
        default="sqlite:///./data/indexer.db",
        description="Connection URL for the catalog database.",
    )
    database_echo: bool = Field(
        default=False, description="Enable SQL echo for debugging queries."
    )

    redis_url: str | None = Field(
        default=None,
        description="Full Redis URL for the filter cache; overrides the host/port fields.",
    )
    redis_host: str = Field(default="localhost", description="Filter cache host.")
    redis_port: int = Field(default=6379, description="Filter cache port.")
    redis_username: str | None = Field(default=None, description="Filter cache user.")
    redis_password: str | None = Field(default=None, description="Filter cache password.")
    redis_ssl: bool = Field(
        default=True, description="Use TLS (rediss://) when building the cache URL."
    )

    tmdb_api_key: str | None = Field(default=None, description="TMDB API key.")
    tmdb_api_url: str = Field(default="https://api.themoviedb.org/3")
    tmdb_language: str = Field(default="en-US")
    omdb_api_key: str | None = Field(default=None, description="OMDB API key.")
    omdb_api_url: str = Field(default="https://www.omdbapi.com")
    http_timeout: float = Field(
        default=20.0, description="Timeout in seconds for metadata provider requests."
    )

    movies_folder: str | None = Field(
        default=None, description="Remote folder id holding movie files."
    )
    shows_folder: str | None = Field(
        default=None, description="Remote folder id holding show folders."
    )

    drive_client_id: str | None = Field(default=None)
    drive_client_email: str | None = Field(default=None)
    drive_private_key: str | None = Field(
        default=None, description="PKCS#8 private key of the service account."
    )
    drive_private_key_id: str | None = Field(default=None)
    drive_application_name: str = Field(default="ZPlex Indexer")
    listing_concurrency: int = Field(
        default=100, ge=1, description="Maximum folder listings in flight at once."
    )
    listing_page_size: int = Field(default=1000, ge=1, le=1000)

    debug: bool = Field(default=False, description="Enable verbose logging.")

    model_config = SettingsConfigDict(
        env_prefix="ZPLEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        # Heroku-style URLs use the scheme SQLAlchemy dropped in 1.4.
        if value.startswith("postgres://"):
            return "postgresql://" + value.removeprefix("postgres://")
        return value

    @field_validator("drive_private_key")
    @classmethod
    def _restore_newlines(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.replace("\\n", "\n")

    def redis_connection_url(self) -> str:
        """Return the cache URL, building it from its parts when not given."""

        if self.redis_url:
            return self.redis_url

        scheme = "rediss" if self.redis_ssl else "redis"
        credentials = ""
        if self.redis_username or self.redis_password:
            username = quote(self.redis_username or "", safe="")
            password = quote(self.redis_password or "", safe="")
            credentials = f"{username}:{password}@"
        return f"{scheme}://{credentials}{self.redis_host}:{self.redis_port}"
