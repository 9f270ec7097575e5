"""
Email Service

SMTP delivery for notification emails (plain text with an HTML alternative).
"""
import html as html_lib
import logging
import re
import smtplib
from pathlib import Path
from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid
from typing import Optional

import jinja2

from core.config import settings

logger = logging.getLogger(__name__)


class EmailSendError(Exception):
    """Exception raised when email sending fails"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(f"Email send failed: {message}")


def strip_html(html: str) -> str:
    text = re.sub(r"<[^>]*>", "", html)
    return html_lib.unescape(re.sub(r"\n\s+", "\n", text)).strip()


TEMPLATE_DIR = Path(__file__).parent / "templates" / "email"

template_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(TEMPLATE_DIR),
    autoescape=jinja2.select_autoescape(["html", "xml"]),
)


def render_notification_html(title: str, message: str) -> str:
    """Render the notification email body; title and message are escaped"""
    template = template_env.get_template("notification.html")
    return template.render(
        title=title,
        message=message,
        app_url=settings.APP_URL,
        app_name=settings.APP_NAME,
    )


class EmailService:
    """Email service for sending emails via SMTP"""

    def __init__(self, host: str = None, port: int = None, user: str = None, password: str = None,
                 use_tls: bool = None):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls

    def is_configured(self) -> bool:
        return bool(self.host)

    def build_message(self, to: str, subject: str, html: str, text: str = None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((settings.SMTP_FROM_NAME, settings.SMTP_FROM_EMAIL))
        message["To"] = to
        message["Subject"] = subject
        message["Date"] = formatdate(localtime=True)
        message["Message-ID"] = make_msgid()
        message.set_content(text or strip_html(html))
        message.add_alternative(html, subtype="html")
        return message

    def send_email(self, to: str, subject: str, html: str, text: str = None) -> str:
        """
        Send an email

        Returns:
            Message-ID of sent email

        Raises:
            EmailSendError: If email sending fails
        """
        message = self.build_message(to, subject, html, text)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                if self.use_tls:
                    server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            raise EmailSendError(str(e), e)

        logger.info(f"Email sent successfully to {to}")
        return message["Message-ID"]


# Global service instance
email_service = EmailService()
