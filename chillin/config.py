"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "ChillIn Sync"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Durable store (Postgres) ---
    database_url: str  # postgres connection string for asyncpg
    database_pool_min: int = 2
    database_pool_max: int = 20

    # --- Fast store (Realtime Database REST) ---
    realtime_db_url: str  # e.g. https://<project>-default-rtdb.<region>.firebasedatabase.app
    realtime_db_auth: str = ""  # database secret or ID token, sent as ?auth=
    fast_store_timeout_s: float = 10.0

    # --- Identity ---
    jwt_secret: str
    jwt_algorithm: str = "HS256"

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
