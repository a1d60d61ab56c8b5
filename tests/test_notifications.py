# tests/test_notifications.py
import json
from datetime import datetime
from types import SimpleNamespace

import pytest

from clinic_crm import crud, models
from clinic_crm.database import SessionLocal
from clinic_crm.services.email_service import EmailService
from clinic_crm.services.notification_service import NotificationService, build_confirmation
from clinic_crm.services.whatsapp_service import WhatsAppService


def make_appointment(**overrides):
    values = dict(
        id=None,
        patient=SimpleNamespace(full_name="Jane Doe", email="jane@example.com", phone="+41790000000"),
        provider=None,
        assigned_provider_name=None,
        start_time=datetime(2024, 1, 1, 9, 0),
        end_time=datetime(2024, 1, 1, 9, 15),
        location=None,
        reason=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class FakeEmail:
    def __init__(self, result=None, error=None):
        self.result = result or {"success": True, "message": "ok", "message_id": "sg-1"}
        self.error = error
        self.sent = []

    def render(self, template_name, context):
        return f"<p>{context['patient_name']}</p>"

    async def send_email(self, to_email, subject, html_content):
        if self.error:
            raise self.error
        self.sent.append((to_email, subject, html_content))
        return self.result


class FakeWhatsApp:
    confirmation_content_sid = "HX123"

    def __init__(self, result=None):
        self.result = result or {"success": True, "message": "ok", "message_id": "SM1"}
        self.sent = []

    async def send_template(self, phone_number, content_sid, parameters):
        self.sent.append((phone_number, content_sid, parameters))
        return self.result


class TestBuildConfirmation:
    def test_fallbacks(self):
        message = build_confirmation(make_appointment())
        assert message.subject == "Appointment confirmation - January 1, 2024 9:00 AM - 9:15 AM"
        assert message.context["doctor_name"] == "your doctor"
        assert message.context["location"] == "the clinic"
        assert message.context["service_label"] == "Appointment"
        assert message.whatsapp_parameters == [
            "Jane Doe", "January 1, 2024", "9:00 AM - 9:15 AM", "your doctor", "the clinic",
        ]

    def test_assigned_doctor_wins_over_provider(self):
        appointment = make_appointment(
            assigned_provider_name="Dr. Weber",
            provider=SimpleNamespace(name="Dr. Keller"),
            location="Zurich",
            reason="Botox",
        )
        message = build_confirmation(appointment)
        assert message.context["doctor_name"] == "Dr. Weber"
        assert message.context["location"] == "Zurich"
        assert message.context["service_label"] == "Botox"

    def test_provider_name_used_when_unassigned(self):
        message = build_confirmation(make_appointment(provider=SimpleNamespace(name="Dr. Keller")))
        assert message.context["doctor_name"] == "Dr. Keller"

    def test_afternoon_label(self):
        message = build_confirmation(make_appointment(
            start_time=datetime(2024, 1, 1, 13, 15), end_time=datetime(2024, 1, 1, 14, 0),
        ))
        assert message.context["time_label"] == "1:15 PM - 2:00 PM"


class TestDispatch:
    @pytest.mark.asyncio
    async def test_both_channels_sent_and_recorded(self, db):
        email, whatsapp = FakeEmail(), FakeWhatsApp()
        service = NotificationService(email=email, whatsapp=whatsapp, session_factory=SessionLocal)

        await service.dispatch_confirmation(build_confirmation(make_appointment()))

        assert email.sent[0][0] == "jane@example.com"
        assert whatsapp.sent[0][:2] == ("+41790000000", "HX123")
        records = crud.get_notifications(db)
        assert {(r.channel, r.status) for r in records} == {
            (models.NotificationChannel.email, models.NotificationStatus.sent),
            (models.NotificationChannel.whatsapp, models.NotificationStatus.sent),
        }

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self, db):
        email = FakeEmail(error=RuntimeError("smtp down"))
        whatsapp = FakeWhatsApp(result={"success": False, "message": "Twilio Error: 400 - bad number"})
        service = NotificationService(email=email, whatsapp=whatsapp, session_factory=SessionLocal)

        await service.dispatch_confirmation(build_confirmation(make_appointment()))

        records = {r.channel: r for r in crud.get_notifications(db)}
        assert records[models.NotificationChannel.email].status == models.NotificationStatus.failed
        assert records[models.NotificationChannel.email].error == "smtp down"
        assert records[models.NotificationChannel.whatsapp].status == models.NotificationStatus.failed

    @pytest.mark.asyncio
    async def test_missing_contact_details_skip_channel(self, db):
        email, whatsapp = FakeEmail(), FakeWhatsApp()
        service = NotificationService(email=email, whatsapp=whatsapp, session_factory=SessionLocal)
        appointment = make_appointment(patient=SimpleNamespace(full_name="Jane Doe", email=None, phone=None))

        await service.dispatch_confirmation(build_confirmation(appointment))

        assert email.sent == []
        assert whatsapp.sent == []
        assert crud.get_notifications(db) == []


class TestProviders:
    @pytest.mark.asyncio
    async def test_email_disabled_without_key(self):
        service = EmailService(api_key="")
        result = await service.send_email("jane@example.com", "Hi", "<p>Hi</p>")
        assert result["skipped"] is True
        assert result["success"] is False

    def test_confirmation_template_renders(self):
        html = EmailService(api_key="").render("appointment_confirmation", {
            "patient_name": "Jane <Doe>",
            "doctor_name": "Dr. Weber",
            "service_label": "Consultation",
            "date_label": "January 1, 2024",
            "time_label": "9:00 AM - 9:15 AM",
            "location": "Zurich",
        })
        assert "Dr. Weber" in html
        assert "January 1, 2024" in html
        assert "Jane &lt;Doe&gt;" in html

    @pytest.mark.asyncio
    async def test_whatsapp_disabled_without_credentials(self):
        service = WhatsAppService(account_sid="", auth_token="", from_number="")
        result = await service.send_template("+41790000000", "HX123", ["a"])
        assert result["skipped"] is True

    @pytest.mark.asyncio
    async def test_whatsapp_template_variables(self):
        service = WhatsAppService(account_sid="AC123", auth_token="token", from_number="+14155238886")
        captured = {}

        def fake_create(**kwargs):
            captured.update(kwargs)
            return SimpleNamespace(sid="SM42")

        service.client = SimpleNamespace(messages=SimpleNamespace(create=fake_create))
        result = await service.send_template("+41790000000", "HX123", ["Jane", "January 1, 2024"])

        assert result == {"success": True, "message": "Message sent successfully", "message_id": "SM42"}
        assert captured["from_"] == "whatsapp:+14155238886"
        assert captured["to"] == "whatsapp:+41790000000"
        assert json.loads(captured["content_variables"]) == {"1": "Jane", "2": "January 1, 2024"}
