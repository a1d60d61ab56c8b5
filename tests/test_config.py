# tests/test_config.py
import pytest
from pydantic import ValidationError

from clinic_crm.config import Settings
from clinic_crm.scheduling.slots import OperatingWindow


def test_defaults_match_operating_window():
    window = OperatingWindow.from_settings(Settings(DATABASE_URL="sqlite://"))
    assert (window.start_minutes, window.end_minutes, window.step_minutes) == (480, 1020, 15)
    assert window.default_appointment_minutes == 30


def test_cors_origins_parsed_from_comma_list():
    settings = Settings(DATABASE_URL="sqlite://", CORS_ORIGINS="https://a.example, https://b.example")
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_rejects_unknown_database():
    with pytest.raises(ValidationError):
        Settings(DATABASE_URL="mysql://localhost/crm")


def test_rejects_inverted_window():
    with pytest.raises(ValidationError):
        Settings(DATABASE_URL="sqlite://", DAY_START_MINUTES=1020, DAY_END_MINUTES=480)


def test_rejects_bad_drop_hour():
    with pytest.raises(ValidationError):
        Settings(DATABASE_URL="sqlite://", POST_DROP_HOUR=24)


def test_provider_flags():
    settings = Settings(
        DATABASE_URL="sqlite://",
        SENDGRID_API_KEY="SG.key",
        TWILIO_ACCOUNT_SID="AC1",
        TWILIO_AUTH_TOKEN="tok",
        TWILIO_WHATSAPP_FROM="+14155238886",
    )
    assert settings.email_enabled
    assert settings.whatsapp_enabled
