"""
Settings
========
Read from CRM_* environment variables (or a .env file)
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CRM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # sqlite+aiosqlite for local runs, postgresql+asyncpg in production
    database_url: str = Field(default="sqlite+aiosqlite:///./data/crm.sqlite")
    echo_sql: bool = False
    log_level: str = "INFO"
    create_tables_on_startup: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
