from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (restricted anon key, used by request handling)
      - DATABASE_URL (Supabase Postgres connection string)

    Optional:
      - SUPABASE_JWT_SECRET (HS256 secret; when unset, provider tokens are
        verified by Supabase Auth instead)
      - SUPABASE_SERVICE_ROLE_KEY (elevated key, reconciliation only)
      - AUTH_HOOK_SECRET (shared secret for the identity-created hook)
    """

    PROJECT_NAME: str = "Church CMS API"
    API_V1_STR: str = "/api/v1"

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # Identity provider JWT verification (login only)
    SUPABASE_JWT_SECRET: str | None = None
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (maintenance commands only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Sessions
    SESSION_TTL_HOURS: int = 24 * 7

    # Upper bound for a single session/profile lookup; exceeding it is a denial
    DB_LOOKUP_TIMEOUT_MS: int = 5000

    # Identity-created webhook; disabled when unset
    AUTH_HOOK_SECRET: str | None = None

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
