from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from catalogue.models.catalogue.dataset import DatasetMode

_MIB = 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="CATALOGUE_", extra="ignore"
    )

    # MongoDB (persistent poster cache tier)
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "poster_catalogue"
    mongo_max_pool_size: int = 10
    mongo_connect_timeout_ms: int = 5000

    # Datasets
    dataset_dir: str | None = None  # searched before the bundled package data
    dataset_mode: DatasetMode = DatasetMode.ORIGINAL

    # HTTP fetcher
    http_timeout: float = 30.0
    http_verify_ssl: bool = True
    http_user_agent: str = "PosterCatalogue/1.0"

    # Poster cache capacities, in bytes
    memory_cache_bytes: int = 50 * _MIB
    persistent_cache_bytes: int = 100 * _MIB

    # Logging
    log_level: str = "INFO"


settings = Settings()
