from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Fast Pass
    fuzzy_threshold: float = 0.85
    default_category: str = "Uncategorized"
    default_currency: str = "GBP"

    # Template population
    clear_unfilled_placeholders: bool = False
    max_upload_bytes: int = 20 * 1024 * 1024


settings = Settings()
