"""Environment-driven settings for BasketRec."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Values are read from ``BASKETREC_*`` environment variables or a local
    ``.env`` file. Recommendation defaults (limits, thresholds) are not part
    of the settings; they live next to the strategies that use them.
    """

    APP_NAME: str = "BasketRec API"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Directory with products.csv, orders.csv and order_items.csv
    DATA_DIR: str = "data"
    # Joblib snapshot written by scripts/build_snapshot.py; wins over DATA_DIR
    SNAPSHOT_PATH: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="BASKETREC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
