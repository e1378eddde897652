from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Rental Marketplace Client"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    api_base_url: str = "http://localhost:8000"
    api_v1_prefix: str = "/api/v1"
    access_token: str = ""
    request_timeout_seconds: float = 15.0

    # Thread polling stands in for a push channel
    poll_interval_seconds: float = 3.0

    message_max_length: int = 500
    preview_max_chars: int = 140
    unread_badge_cap: int = 99
    quick_message_templates: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [
            "Is this property still available?",
            "Can I schedule a viewing?",
            "Can you send more photos?",
            "What's included in the rent?",
        ]
    )

    @field_validator("quick_message_templates", mode="before")
    @classmethod
    def parse_quick_message_templates(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
