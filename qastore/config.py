"""
Settings for the entity store, loaded from QASTORE_* environment variables
(or a .env file in the working directory).

    from qastore.config import get_settings
    tz = get_settings().site_timezone
"""

import os
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = os.path.join(
    os.path.dirname(__file__), "..", ".pgdata", "qastore"
)


class Settings(BaseSettings):
    """Runtime configuration."""

    model_config = SettingsConfigDict(
        env_prefix="QASTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Timezone assumed for date strings that carry no offset
    site_timezone: str = "UTC"

    # PostgreSQL backend
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "postgres"
    database_user: str = "postgres"
    database_password: str = ""

    # Embedded server data directory
    data_dir: str = DEFAULT_DATA_DIR

    # Logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"
    log_level_store: str = "WARNING"   # qastore.client / qastore.subscriptions


@lru_cache
def get_settings() -> Settings:
    return Settings()
