"""
Configuration settings for the CardDemo posting batch.

Uses Pydantic Settings to load environment variables for database connections,
logging, decimal policy, and batch defaults.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("carddemo", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(30_000, alias="DB_STATEMENT_TIMEOUT_MS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Posting rules
    monetary_scale: int = Field(2, ge=0, alias="MONETARY_SCALE")
    rounding_mode: str = Field("ROUND_HALF_UP", alias="ROUNDING_MODE")
    cycle_posting_policy: Literal["debit_purchases", "signed_credit"] = Field(
        "debit_purchases", alias="CYCLE_POSTING_POLICY"
    )

    # Batch defaults
    data_dir: str = Field("data", alias="DATA_DIR")
    results_dir: str = Field("results", alias="RESULTS_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
