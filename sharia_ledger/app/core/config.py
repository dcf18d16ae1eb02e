from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Sharia Ledger API"
    database_url: str = "sqlite:///sharia_ledger.db"
    log_level: str = "INFO"
    sqlite_busy_timeout: float = 30.0

    account_number_prefix: str = "BSA"
    account_number_max_attempts: int = 5
    default_minimum_balance: Decimal = Decimal("0")
    statement_limit: int = 50

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LEDGER_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
