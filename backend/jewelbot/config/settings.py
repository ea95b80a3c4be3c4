# /jewelbot/config/settings.py

import sys
import re
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # WhatsApp Cloud API
    whatsapp_access_token: str = ""
    whatsapp_phone_id: str = ""
    whatsapp_verify_token: str
    whatsapp_api_version: str = "v18.0"

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"
    openai_timeout_seconds: float = 30.0

    # Catalog
    catalog_path: str = "uploads/app-items.xlsx"

    # Conversation state
    history_max_turns: int = 12
    history_context_turns: int = 6
    conversation_ttl_seconds: int = 3600
    max_conversations: int = 10000

    # Product results
    products_per_page: int = 3
    max_rows_to_model: int = 20

    # Security
    api_key: str | None = None

    # Deployment
    workers: int = 4
    environment: str = "production"
    log_level: str = "INFO"

    # Comma-separated
    cors_allowed_origins: str = "https://rkjewellers.in"
    allowed_hosts: str = "*"

    # App Metadata & Limits
    api_version: str = "v1"
    rate_limit_per_minute: int = 100

    # ---------------- Validators ---------------- #

    @field_validator("whatsapp_phone_id")
    @classmethod
    def phone_id_must_be_digits(cls, v):
        if v and not re.match(r"^\d+$", v):
            raise ValueError("WHATSAPP_PHONE_ID must contain only digits")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v):
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return v.upper()

    @field_validator("products_per_page", "max_rows_to_model", "history_max_turns", "history_context_turns")
    @classmethod
    def must_be_positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


def validate_environment(settings_obj: Settings):
    try:
        if not settings_obj.whatsapp_verify_token:
            raise ValueError("WHATSAPP_VERIFY_TOKEN is required")

        if settings_obj.environment == "production":
            for var in ["openai_api_key", "whatsapp_access_token", "whatsapp_phone_id"]:
                if not getattr(settings_obj, var):
                    raise ValueError(f"{var.upper()} is required in production")

        return settings_obj

    except Exception as e:
        print(f"--- [ERROR] Environment validation failed: {e}")
        sys.exit(1)


settings = Settings()
validate_environment(settings)
