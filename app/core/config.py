"""
Runtime settings, read from the environment (and .env) with pydantic-settings.
Connection strings, cache TTL, result limits and store timeouts live here.

Model constants (rank scales, pool sizes, probability bands, weights)
are NOT here - they live in the versioned calibration
(app/models/calibration.py) so model changes stay auditable.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL (historical_cutoffs table)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "counsel_user"
    postgres_password: str = "password"
    postgres_db: str = "counsel_db"
    database_url: Optional[str] = None  # Overrides the postgres_* fields when set

    # MongoDB (colleges reference documents)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "counsel_docs"

    # Result cache
    cache_ttl_seconds: float = 600.0
    cache_max_entries: int = 1000

    # Recommendation assembler
    display_limit: int = 10
    internal_limit: int = 50
    lookback_years: int = 5

    # Historical store access
    store_timeout_seconds: float = 5.0
    store_retry_attempts: int = 1
    store_retry_backoff_seconds: float = 0.2

    # Optional JSON file with a calibration to use instead of the defaults
    calibration_path: Optional[str] = None

    # App
    debug: bool = False
    log_level: str = "INFO"

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Unknown env vars (e.g. other services' keys in .env) are ignored
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
