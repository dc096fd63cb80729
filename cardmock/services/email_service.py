"""
SMTP Email Service

Sends notification email over SMTP with aiosmtplib. Selected by
``EMAIL_PROVIDER=smtp`` through the transactional email service.
"""

import os
import logging
from typing import Optional, Dict, Any, List
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid

import aiosmtplib

logger = logging.getLogger(__name__)


class EmailServiceConfig:
    """SMTP settings from environment variables."""

    def __init__(self):
        self.smtp_host = os.getenv('SMTP_HOST', 'localhost')
        self.smtp_port = int(os.getenv('SMTP_PORT', '587'))
        self.smtp_username = os.getenv('SMTP_USERNAME', '')
        self.smtp_password = os.getenv('SMTP_PASSWORD', '')
        self.smtp_use_tls = os.getenv('SMTP_USE_TLS', 'false').lower() == 'true'
        self.smtp_start_tls = os.getenv('SMTP_START_TLS', 'true').lower() == 'true'
        self.from_email = os.getenv('FROM_EMAIL', 'noreply@cardmock.app')
        self.from_name = os.getenv('FROM_NAME', 'CardMock')
        self.reply_to_email = os.getenv('REPLY_TO_EMAIL', '')
        self.timeout = float(os.getenv('SMTP_TIMEOUT', '15'))

    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_port and self.from_email)

    def validate(self) -> List[str]:
        errors = []
        if not self.smtp_host:
            errors.append("SMTP_HOST is required")
        if self.smtp_port <= 0:
            errors.append("SMTP_PORT must be a positive integer")
        if not self.from_email:
            errors.append("FROM_EMAIL is required")
        if self.smtp_use_tls and self.smtp_start_tls:
            errors.append("SMTP_USE_TLS and SMTP_START_TLS are mutually exclusive")
        return errors


class EmailService:
    """Sends multipart (text + HTML) messages over SMTP."""

    def __init__(self, config: Optional[EmailServiceConfig] = None):
        self.config = config or EmailServiceConfig()

    def build_message(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> MIMEMultipart:
        message = MIMEMultipart('alternative')
        message['From'] = f"{self.config.from_name} <{self.config.from_email}>"
        message['To'] = to_email
        message['Subject'] = subject
        message['Message-ID'] = make_msgid(domain=self.config.from_email.split('@')[-1])
        if reply_to or self.config.reply_to_email:
            message['Reply-To'] = reply_to or self.config.reply_to_email
        # multipart/alternative: last part is the preferred rendering.
        if text_content:
            message.attach(MIMEText(text_content, 'plain', 'utf-8'))
        message.attach(MIMEText(html_content, 'html', 'utf-8'))
        return message

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an email via SMTP.

        Returns:
            Dict with 'success', 'message_id' and 'error' keys
        """
        if not self.config.is_configured():
            return {'success': False, 'error': 'Email service not configured'}

        message = self.build_message(to_email, subject, html_content, text_content, reply_to)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.config.smtp_host,
                port=self.config.smtp_port,
                username=self.config.smtp_username or None,
                password=self.config.smtp_password or None,
                use_tls=self.config.smtp_use_tls,
                start_tls=self.config.smtp_start_tls,
                timeout=self.config.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            error_msg = f"Failed to send email to {to_email}: {str(e)}"
            logger.error(error_msg)
            return {'success': False, 'provider': 'smtp', 'error': error_msg}

        logger.info(f"Email sent successfully to {to_email}: {subject}")
        return {'success': True, 'provider': 'smtp', 'message_id': message['Message-ID']}


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get singleton SMTP email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
