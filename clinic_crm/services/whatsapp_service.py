# clinic_crm/services/whatsapp_service.py
import json
import asyncio
import logging
from typing import Optional, Dict, Any, List

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from ..config import get_settings

logger = logging.getLogger(__name__)


class WhatsAppService:
    """Outbound WhatsApp template messages through Twilio."""

    def __init__(self, account_sid: Optional[str] = None, auth_token: Optional[str] = None, from_number: Optional[str] = None):
        settings = get_settings()
        self.account_sid = account_sid if account_sid is not None else settings.twilio_account_sid
        self.auth_token = auth_token if auth_token is not None else settings.twilio_auth_token
        self.from_number = from_number if from_number is not None else settings.twilio_whatsapp_from
        self.confirmation_content_sid = settings.twilio_confirmation_content_sid

        self.enabled = bool(self.account_sid and self.auth_token and self.from_number)

        if self.enabled:
            self.client = Client(self.account_sid, self.auth_token)
            logger.info("Twilio WhatsApp Service - ENABLED")
        else:
            logger.warning("Twilio WhatsApp not configured - Service disabled")
            self.client = None

    @staticmethod
    def _whatsapp_address(phone_number: str) -> str:
        if phone_number.startswith("whatsapp:"):
            return phone_number
        return f"whatsapp:{phone_number}"

    async def send_template(self, phone_number: str, content_sid: Optional[str], parameters: List[str]) -> Dict[str, Any]:
        """Send an approved template; Twilio expects variables keyed "1", "2", ..."""
        if not self.enabled:
            return {"success": False, "skipped": True, "message": "WhatsApp service not configured"}
        if not content_sid:
            return {"success": False, "skipped": True, "message": "No WhatsApp template configured"}

        message_params = {
            "from_": self._whatsapp_address(self.from_number),
            "to": self._whatsapp_address(phone_number),
            "content_sid": content_sid,
        }
        variables = {str(i + 1): value for i, value in enumerate(parameters)}
        if variables:
            message_params["content_variables"] = json.dumps(variables)

        try:
            sent_message = await asyncio.to_thread(self.client.messages.create, **message_params)
        except TwilioRestException as e:
            logger.error(f"Twilio API Error sending to {phone_number}: {e}")
            return {"success": False, "message": f"Twilio Error: {e.status} - {e.msg}"}
        except Exception as e:
            logger.error(f"General Error sending WhatsApp message to {phone_number}: {e}", exc_info=True)
            return {"success": False, "message": str(e)}

        return {"success": True, "message": "Message sent successfully", "message_id": sent_message.sid}
