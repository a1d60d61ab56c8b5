# clinic_crm/services/email_service.py
from typing import Optional, Dict, Any
import asyncio
import logging
from pathlib import Path

import jinja2
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from ..config import get_settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


class EmailService:
    def __init__(self, api_key: Optional[str] = None, sender_email: Optional[str] = None):
        settings = get_settings()
        self.sendgrid_api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self.sender_email = sender_email or settings.sender_email
        self.enabled = bool(self.sendgrid_api_key)

        if self.enabled:
            self.sg = SendGridAPIClient(api_key=self.sendgrid_api_key)
        else:
            logger.warning("SENDGRID_API_KEY not found - Email service disabled")
            self.sg = None

        self.template_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=jinja2.select_autoescape(["html"]),
        )

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        template = self.template_env.get_template(f"{template_name}.html")
        return template.render(**context)

    async def send_email(self, to_email: str, subject: str, html_content: str) -> Dict[str, Any]:
        """Send one transactional email. Never raises; the result dict says what happened."""
        if not self.enabled:
            return {"success": False, "skipped": True, "message": "Email service not configured"}

        mail = Mail(
            from_email=self.sender_email,
            to_emails=to_email,
            subject=subject,
            html_content=html_content,
        )
        try:
            response = await asyncio.to_thread(self.sg.send, mail)
        except Exception as e:
            logger.error(f"Error sending email to {to_email}: {e}")
            return {"success": False, "message": f"Failed to send email: {e}"}

        logger.info(f"Email sent to {to_email}. Status: {response.status_code}")
        message_id = None
        headers = getattr(response, "headers", None)
        if headers:
            message_id = headers.get("X-Message-Id")
        return {"success": True, "message": "Email sent successfully", "message_id": message_id}
