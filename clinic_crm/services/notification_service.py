# clinic_crm/services/notification_service.py
"""
Booking confirmations over email and WhatsApp.

Dispatch runs after the appointment is committed (as a background task). Every
attempt is recorded in `notifications`; a failed send is logged and recorded
but never propagates back to the booking.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud, models
from ..config import get_settings
from ..database import SessionLocal
from ..scheduling.slots import format_time_label
from .email_service import EmailService
from .whatsapp_service import WhatsAppService

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationMessage:
    appointment_id: int
    patient_name: str
    email: Optional[str]
    phone: Optional[str]
    subject: str
    context: dict
    whatsapp_parameters: List[str] = field(default_factory=list)


def _time_range_label(start: datetime, end: Optional[datetime]) -> str:
    if end is None:
        end = start + timedelta(minutes=get_settings().slot_step_minutes)
    return f"{format_time_label(start.hour * 60 + start.minute)} - {format_time_label(end.hour * 60 + end.minute)}"


def build_confirmation(appointment: models.Appointment) -> ConfirmationMessage:
    """Snapshot everything the confirmation needs while the request session is still open."""
    patient = appointment.patient
    patient_name = patient.full_name if patient else ""
    doctor_name = (
        appointment.assigned_provider_name
        or (appointment.provider.name if appointment.provider else None)
        or "your doctor"
    )
    start = appointment.start_time
    date_label = f"{start.strftime('%B')} {start.day}, {start.year}"
    time_label = _time_range_label(start, appointment.end_time)
    location = appointment.location or "the clinic"
    service_label = appointment.reason or "Appointment"

    return ConfirmationMessage(
        appointment_id=appointment.id,
        patient_name=patient_name,
        email=patient.email if patient else None,
        phone=patient.phone if patient else None,
        subject=f"Appointment confirmation - {date_label} {time_label}",
        context={
            "patient_name": patient_name,
            "doctor_name": doctor_name,
            "date_label": date_label,
            "time_label": time_label,
            "location": location,
            "service_label": service_label,
        },
        whatsapp_parameters=[patient_name or "patient", date_label, time_label, doctor_name, location],
    )


class NotificationService:
    def __init__(
        self,
        email: Optional[EmailService] = None,
        whatsapp: Optional[WhatsAppService] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.email = email or EmailService()
        self.whatsapp = whatsapp or WhatsAppService()
        self.session_factory = session_factory

    def _record(self, message: ConfirmationMessage, channel: models.NotificationChannel, recipient: str, result: dict, subject: Optional[str] = None):
        if result.get("success"):
            status = models.NotificationStatus.sent
        elif result.get("skipped"):
            status = models.NotificationStatus.skipped
        else:
            status = models.NotificationStatus.failed

        db = self.session_factory()
        try:
            crud.create_notification(
                db,
                channel=channel,
                recipient=recipient,
                status=status,
                appointment_id=message.appointment_id,
                subject=subject,
                error=None if result.get("success") else result.get("message"),
                provider_message_id=result.get("message_id"),
            )
        except (crud.CRUDError, SQLAlchemyError) as e:
            logger.error(f"Failed to record {channel.value} notification for appointment {message.appointment_id}: {e}")
        finally:
            db.close()

    async def send_email_confirmation(self, message: ConfirmationMessage) -> Optional[dict]:
        if not message.email:
            return None
        try:
            html = self.email.render("appointment_confirmation", message.context)
            result = await self.email.send_email(message.email, message.subject, html)
        except Exception as e:
            logger.error(f"Error sending confirmation email for appointment {message.appointment_id}: {e}")
            result = {"success": False, "message": str(e)}
        self._record(message, models.NotificationChannel.email, message.email, result, subject=message.subject)
        return result

    async def send_whatsapp_confirmation(self, message: ConfirmationMessage) -> Optional[dict]:
        if not message.phone:
            return None
        try:
            result = await self.whatsapp.send_template(
                message.phone, self.whatsapp.confirmation_content_sid, message.whatsapp_parameters
            )
        except Exception as e:
            logger.error(f"Error sending WhatsApp confirmation for appointment {message.appointment_id}: {e}")
            result = {"success": False, "message": str(e)}
        self._record(message, models.NotificationChannel.whatsapp, message.phone, result)
        return result

    async def dispatch_confirmation(self, message: ConfirmationMessage) -> None:
        """Fire-and-forget: both channels are attempted independently."""
        await self.send_email_confirmation(message)
        await self.send_whatsapp_confirmation(message)


_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
