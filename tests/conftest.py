# tests/conftest.py
import os

# Settings and the engine are built at import time; point them at an in-memory DB first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SENDGRID_API_KEY"] = ""
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["TWILIO_WHATSAPP_FROM"] = ""
os.environ["CLINIC_TIMEZONE"] = "Europe/Zurich"

import pytest
from fastapi.testclient import TestClient

from clinic_crm import crud, schemas
from clinic_crm.database import SessionLocal, create_tables, drop_tables, get_db
from clinic_crm.main import app


@pytest.fixture
def db():
    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_tables()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def patient(db):
    return crud.create_patient(db, schemas.PatientCreate(
        first_name="Jane", last_name="Doe", email="jane@example.com",
    ))


@pytest.fixture
def booking(patient):
    def _booking(**overrides):
        payload = {
            "patient_id": patient.id,
            "day": "2024-01-01",
            "time": "09:00",
            "duration_minutes": 15,
            "booking_channel_status": "In Person",
        }
        payload.update(overrides)
        return payload
    return _booking
