from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "SalonStock"
    APP_ENV: str = "dev"

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent.parent)
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent.parent / "data")

    DB_URL: str = Field(
        default="sqlite:///data/inventory.db",
        validation_alias=AliasChoices("DB_URL", "DATABASE_URL"),
    )

    HOST: str = "0.0.0.0"
    PORT: int = 8089

    # An empty API key leaves the JSON API open, which suits a single-machine
    # salon install. Set one before exposing the service on a network.
    API_KEY: str = Field(default="", validation_alias=AliasChoices("API_KEY", "API_TOKEN"))
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    TRANSACTION_PAGE_SIZE: int = 50

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @property
    def API_KEY_VALUE(self) -> str:
        return (self.API_KEY or "").strip()


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings
