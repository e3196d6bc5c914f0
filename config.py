from functools import lru_cache

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Process settings, read from the environment (and `.env`)."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    api_env: str = "development"
    api_version: str = "1.0.0"

    sentry_dsn: str | None = None
    sentry_release: str | None = None

    log_level: str = "INFO"
    log_json: bool = False
    log_file: str | None = None

    allowed_origins: str = "*"
    port: int = 8000

    @field_validator("sentry_dsn", "sentry_release", "log_file", mode="before")
    @classmethod
    def blank_as_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
