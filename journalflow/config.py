"""
Application settings.

Values come from the environment (or a local ``.env`` file) through
pydantic-settings. Use ``get_settings()`` instead of instantiating
``Settings`` directly so every module shares one cached instance.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./journalflow.db")

    # Auth
    SECRET_KEY: str = Field(default="JOURNALFLOW_SECRET_KEY_CHANGE_LATER")
    ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="console", description="console or json")

    # Mail delivery (Mailgun). Without a key and domain, notifications are logged only.
    MAILGUN_API_KEY: str | None = Field(default=None)
    MAILGUN_DOMAIN: str | None = Field(default=None)
    MAILGUN_FROM_EMAIL: str = Field(default="noreply@journalflow.local")
    MAILGUN_BASE_URL: str = Field(default="https://api.mailgun.net/v3")
    MAIL_TIMEOUT_SECONDS: float = Field(default=10.0)
    SITE_URL: str = Field(default="http://localhost:8000")

    # Workflow
    REVISION_RETRY_LIMIT: int = Field(default=3, ge=1)


@lru_cache
def get_settings() -> Settings:
    return Settings()
