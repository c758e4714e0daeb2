"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "HeartLink"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Database (Supabase Postgres) ---
    supabase_db_url: str  # direct postgres connection string for asyncpg
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    supabase_realtime_db_url: str | None = None  # session-mode URL for LISTEN
    realtime_enabled: bool = True

    # --- Identity provider ---
    auth_jwks_url: str
    auth_issuer: str | None = None
    auth_audience: str | None = None
    auth_require_verified_email: bool = True

    # --- AI consultation (OpenAI-compatible chat completions) ---
    ai_api_base_url: str = "https://api.deepseek.com/v1"
    ai_model: str = "deepseek-chat"
    ai_api_key: str = ""  # fallback when the caller sends no X-AI-Api-Key
    ai_timeout_seconds: float = 30.0

    # --- Product rules ---
    free_usage_limit: int = 100
    invite_code_length: int = 6

    # --- Rate Limiting ---
    rate_limit_per_minute: int = 60

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:5173"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
