"""
Application configuration using Pydantic Settings.
Loads environment variables with validation and type coercion.
"""

from functools import lru_cache
from typing import Annotated, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Everything has a development default except MONGODB_URI, which is only
    checked when the first database connection is attempted.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "TechAssist API"
    node_env: str = "development"
    port: int = 3001

    # MongoDB
    mongodb_uri: Optional[str] = None
    mongodb_db_name: str = "techassist"
    mongodb_server_selection_timeout_ms: int = Field(default=5000, ge=0)
    mongodb_socket_timeout_ms: int = Field(default=45000, ge=0)
    mongodb_connect_timeout_ms: int = Field(default=10000, ge=0)
    mongodb_max_pool_size: int = Field(default=10, ge=0)
    mongodb_min_pool_size: int = Field(default=1, ge=0)
    mongodb_max_idle_time_ms: int = Field(default=30000, ge=0)

    # Upper bound for callers waiting on an in-flight connection attempt.
    # An empty value removes the bound; the driver-level timeouts still apply.
    db_connect_wait_timeout: Optional[float] = Field(default=30.0, gt=0)

    # Connect during startup when running locally (never in production)
    db_warm_up_on_startup: bool = True

    # CORS
    frontend_url: Optional[str] = None
    production_origins: Annotated[List[str], NoDecode] = ["https://techassist.vercel.app"]

    @field_validator("production_origins", mode="before")
    @classmethod
    def parse_production_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("mongodb_uri", "frontend_url", "db_connect_wait_timeout", mode="before")
    @classmethod
    def blank_as_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # Serverless platform (Vercel)
    vercel: Optional[str] = None
    vercel_env: Optional[str] = None
    vercel_region: Optional[str] = None

    @property
    def environment(self) -> str:
        return self.node_env or "development"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def debug(self) -> bool:
        """Error details, docs and the debug endpoint are only exposed outside production."""
        return not self.is_production

    @property
    def cors_origins(self) -> List[str]:
        if not self.is_production:
            return ["*"]
        origins = [self.frontend_url] if self.frontend_url else []
        return origins + [o for o in self.production_origins if o not in origins]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to avoid re-reading environment on every call.
    Clear cache in tests with: get_settings.cache_clear()
    """
    return Settings()


# Export a settings instance
settings = get_settings()
