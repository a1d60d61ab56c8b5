# clinic_crm/config.py - Configuration management
from dotenv import load_dotenv

load_dotenv()
from typing import Optional, Union
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator


class Settings(BaseSettings):
    """Application settings with validation and environment variable support (Pydantic V2 Syntax)"""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Application
    app_name: str = "Clinic & Agency CRM"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")

    # Database
    database_url: str = Field(default="sqlite:///./clinic_crm.db", alias="DATABASE_URL")

    # CORS
    cors_origins: Union[str, list[str]] = Field(default=["http://localhost:3000"], alias="CORS_ORIGINS")

    # Clinic operating window (minutes from midnight)
    clinic_timezone: str = Field(default="Europe/Zurich", alias="CLINIC_TIMEZONE")
    day_start_minutes: int = Field(default=8 * 60, alias="DAY_START_MINUTES")
    day_end_minutes: int = Field(default=17 * 60, alias="DAY_END_MINUTES")
    slot_step_minutes: int = Field(default=15, alias="SLOT_STEP_MINUTES")
    default_appointment_minutes: int = Field(default=30, alias="DEFAULT_APPOINTMENT_MINUTES")

    # Content calendar: time-of-day given to posts dropped onto a new date
    post_drop_hour: int = Field(default=10, alias="POST_DROP_HOUR")

    # Email (SendGrid)
    sendgrid_api_key: Optional[str] = Field(default=None, alias="SENDGRID_API_KEY")
    sender_email: str = Field(default="noreply@clinic.example", alias="SENDER_EMAIL")

    # WhatsApp (Twilio)
    twilio_account_sid: Optional[str] = Field(default=None, alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: Optional[str] = Field(default=None, alias="TWILIO_AUTH_TOKEN")
    twilio_whatsapp_from: Optional[str] = Field(default=None, alias="TWILIO_WHATSAPP_FROM")
    twilio_confirmation_content_sid: Optional[str] = Field(default=None, alias="TWILIO_CONFIRMATION_CONTENT_SID")

    # --- Pydantic V2 Validators ---
    @field_validator("cors_origins", mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return ["http://localhost:3000"]
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL is required")
        if not v.startswith(("postgresql://", "postgresql+psycopg2://", "sqlite://")):
            raise ValueError("DATABASE_URL must be a valid PostgreSQL or SQLite URL")
        return v

    @field_validator("post_drop_hour")
    @classmethod
    def validate_post_drop_hour(cls, v):
        if not 0 <= v <= 23:
            raise ValueError("POST_DROP_HOUR must be between 0 and 23")
        return v

    @model_validator(mode="after")
    def validate_operating_window(self):
        if not 0 <= self.day_start_minutes < self.day_end_minutes <= 24 * 60:
            raise ValueError("Operating window must satisfy 0 <= start < end <= 1440")
        if self.slot_step_minutes <= 0:
            raise ValueError("SLOT_STEP_MINUTES must be positive")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def whatsapp_enabled(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_whatsapp_from)

    @property
    def email_enabled(self) -> bool:
        return bool(self.sendgrid_api_key)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()

# Note: Do not instantiate settings at import time.
# Use `get_settings()` instead.
