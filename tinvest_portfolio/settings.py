from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tinvest_portfolio.data_pipeline.invest_api import DEFAULT_BASE_URLS


class Settings(BaseSettings):
    """
    Sync settings, loaded from ``TINVEST_*`` environment variables or ``.env``.
    The API token is also accepted as ``TINKOFF_TOKEN``.
    """
    token: str = Field(default="", validation_alias=AliasChoices("TINVEST_TOKEN", "TINKOFF_TOKEN"))
    base_urls: list[str] = Field(default_factory=lambda: list(DEFAULT_BASE_URLS))
    reporting_currency: str = "RUB"

    # Grouping field for the aggregated and per-category tables
    aggregate_by: Literal["name", "ticker", "figi"] = "name"

    cache_ttl_seconds: int = 6 * 3600
    cache_maxsize: int = 4096
    lookup_pause_seconds: float = 0.03
    request_timeout_seconds: float = 10.0
    output_dir: Path = Path("outputs")

    log_level: str = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(
        env_prefix="TINVEST_", env_file=".env", extra="ignore", populate_by_name=True
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
