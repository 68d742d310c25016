"""
resto_api.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (identity signing secret, provider API key).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single settings object injected across layers.
    Defaults are safe for local development only.
    """

    model_config = SettingsConfigDict(env_prefix="RESTO_", case_sensitive=False)

    # `prod` hides error details from clients and switches log verbosity.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "resto-api"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 3000

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./resto.db"

    # Identity provider: token verification
    identity_jwt_alg: str = "HS256"
    identity_jwt_issuer: str = "resto-identity"
    identity_jwt_audience: str = "resto-api"
    identity_jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    # Identity provider: account lifecycle API
    identity_api_base_url: str = "https://identitytoolkit.googleapis.com"
    identity_api_key: str = Field(default="", repr=False)
    identity_timeout_seconds: float = 10.0

    # CORS
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3001"]
    )

    @property
    def is_production(self) -> bool:
        return self.env == "prod"

    def cors_origins(self) -> list[str]:
        # The server's own origin is always allowed so the docs UI can call the API.
        origins = [o.strip() for o in self.allowed_origins if o.strip()]
        own = f"http://localhost:{self.api_port}"
        if own not in origins:
            origins.append(own)
        return origins


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every other module depends on this one; keep field names stable since they
# double as environment variable names (RESTO_<FIELD>).
