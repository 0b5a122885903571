"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache) — single instance per process
    - No database when database_url is unset; /health/database is then not registered

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults for everything: an empty environment boots with ./api and ./routes
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from routeforge import __version__


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Application
    app_name: str = "routeforge"
    app_version: str = __version__
    environment: str = "production"

    # Route sources
    api_path: str = "./api"
    routes_path: str = "./routes"
    controllers_path: str | None = None
    default_method: str = "GET"
    auto_routes_enabled: bool = True
    declarative_routes_enabled: bool = True
    discovery_chunk_size: int = 10
    discovery_extensions: tuple[str, ...] = (".py", ".pyc")
    manual_routes_max_concurrency: int | None = None

    # Database
    database_url: str | None = None

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v):
        """Hosted providers hand out postgresql:// but the async engine needs a driver."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("default_method", mode="before")
    @classmethod
    def upper_method(cls, v):
        return v.upper() if isinstance(v, str) else v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Responses
    include_request_id: bool = True
    include_timestamp: bool = True
    log_responses: bool = True

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
