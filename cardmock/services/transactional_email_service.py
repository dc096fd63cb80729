"""
Transactional Email Service

Delivers notification emails through a hosted provider and renders the
Jinja2 email templates shipped with the package.

Supports:
- Resend (default)
- SendGrid
- Mailgun (plain HTTP via requests)
- SMTP (delegates to the aiosmtplib EmailService)
"""

import os
import re
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List

import requests
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_DIR = str(Path(__file__).resolve().parent.parent / "templates" / "email")


class EmailProvider(Enum):
    """Supported email delivery providers."""
    RESEND = "resend"
    SENDGRID = "sendgrid"
    MAILGUN = "mailgun"
    SMTP = "smtp"


class TransactionalEmailConfig:
    """Configuration for transactional email delivery, read from the environment."""

    def __init__(self):
        raw_provider = os.getenv('EMAIL_PROVIDER', 'resend').strip().lower()
        try:
            self.provider = EmailProvider(raw_provider)
        except ValueError:
            logger.error(f"Unknown EMAIL_PROVIDER '{raw_provider}', falling back to resend")
            self.provider = EmailProvider.RESEND

        self.from_email = os.getenv('FROM_EMAIL', 'noreply@cardmock.app')
        self.from_name = os.getenv('FROM_NAME', 'CardMock')
        self.reply_to_email = os.getenv('REPLY_TO_EMAIL', '')

        self.resend_api_key = os.getenv('RESEND_API_KEY', '')
        self.sendgrid_api_key = os.getenv('SENDGRID_API_KEY', '')
        self.mailgun_api_key = os.getenv('MAILGUN_API_KEY', '')
        self.mailgun_domain = os.getenv('MAILGUN_DOMAIN', '')
        self.smtp_host = os.getenv('SMTP_HOST', '')

        self.template_dir = os.getenv('EMAIL_TEMPLATE_DIR', DEFAULT_TEMPLATE_DIR)

    @property
    def sender(self) -> str:
        return f"{self.from_name} <{self.from_email}>"

    def validate(self) -> List[str]:
        """Missing settings for the selected provider; empty when it can send."""
        errors = []
        if not self.from_email:
            errors.append("FROM_EMAIL is required")
        if self.provider == EmailProvider.RESEND and not self.resend_api_key:
            errors.append("RESEND_API_KEY is required for Resend provider")
        elif self.provider == EmailProvider.SENDGRID and not self.sendgrid_api_key:
            errors.append("SENDGRID_API_KEY is required for SendGrid provider")
        elif self.provider == EmailProvider.MAILGUN:
            if not self.mailgun_api_key:
                errors.append("MAILGUN_API_KEY is required for Mailgun provider")
            if not self.mailgun_domain:
                errors.append("MAILGUN_DOMAIN is required for Mailgun provider")
        elif self.provider == EmailProvider.SMTP and not self.smtp_host:
            errors.append("SMTP_HOST is required for SMTP provider")
        return errors


class ResendEmailService:
    """Resend delivery."""

    def __init__(self, config: TransactionalEmailConfig):
        import resend
        resend.api_key = config.resend_api_key
        self.config = config
        self.client = resend

    async def send_email(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "from": self.config.sender,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            params["text"] = text_content
        if self.config.reply_to_email:
            params["reply_to"] = self.config.reply_to_email
        try:
            result = self.client.Emails.send(params)
        except Exception as e:
            return {'success': False, 'provider': 'resend', 'error': str(e)}
        return {'success': True, 'provider': 'resend', 'message_id': result.get('id', ''), 'provider_response': result}


class SendGridEmailService:
    """SendGrid delivery."""

    def __init__(self, config: TransactionalEmailConfig):
        from sendgrid import SendGridAPIClient
        self.config = config
        self.client = SendGridAPIClient(api_key=config.sendgrid_api_key)

    async def send_email(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> Dict[str, Any]:
        from sendgrid.helpers.mail import Mail, From, To, PlainTextContent

        mail = Mail(
            from_email=From(self.config.from_email, self.config.from_name),
            to_emails=To(to_email),
            subject=subject,
            html_content=html_content,
        )
        if text_content:
            mail.plain_text_content = PlainTextContent(text_content)
        if self.config.reply_to_email:
            mail.reply_to = self.config.reply_to_email
        try:
            response = self.client.send(mail)
        except Exception as e:
            return {'success': False, 'provider': 'sendgrid', 'error': str(e)}
        return {
            'success': 200 <= response.status_code < 300,
            'provider': 'sendgrid',
            'message_id': response.headers.get('X-Message-Id', ''),
            'status_code': response.status_code,
        }


class MailgunEmailService:
    """Mailgun delivery over its HTTP API."""

    def __init__(self, config: TransactionalEmailConfig):
        self.config = config
        self.base_url = f"https://api.mailgun.net/v3/{config.mailgun_domain}"

    async def send_email(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> Dict[str, Any]:
        data = {
            "from": self.config.sender,
            "to": to_email,
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            data["text"] = text_content
        if self.config.reply_to_email:
            data["h:Reply-To"] = self.config.reply_to_email
        try:
            response = requests.post(
                f"{self.base_url}/messages",
                auth=("api", self.config.mailgun_api_key),
                data=data,
                timeout=15,
            )
        except requests.RequestException as e:
            return {'success': False, 'provider': 'mailgun', 'error': str(e)}
        if response.status_code != 200:
            return {'success': False, 'provider': 'mailgun', 'error': f"HTTP {response.status_code}: {response.text}"}
        result = response.json()
        return {'success': True, 'provider': 'mailgun', 'message_id': result.get('id', ''), 'provider_response': result}


class SmtpEmailService:
    """Adapter exposing the SMTP EmailService through the provider interface."""

    def __init__(self, config: TransactionalEmailConfig):
        from cardmock.services.email_service import get_email_service
        self.config = config
        self.smtp = get_email_service()

    async def send_email(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> Dict[str, Any]:
        result = await self.smtp.send_email(
            to_email=to_email,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
        )
        result.setdefault('provider', 'smtp')
        return result


_PROVIDERS = {
    EmailProvider.RESEND: ResendEmailService,
    EmailProvider.SENDGRID: SendGridEmailService,
    EmailProvider.MAILGUN: MailgunEmailService,
    EmailProvider.SMTP: SmtpEmailService,
}


class TransactionalEmailService:
    """Front door for email delivery; picks the provider and renders templates."""

    def __init__(self, config: Optional[TransactionalEmailConfig] = None):
        self.config = config or TransactionalEmailConfig()
        self.provider_service = None
        self.template_env = None
        self._setup_provider()
        self._setup_templates()

    def _setup_provider(self):
        errors = self.config.validate()
        if errors:
            logger.warning("Email service not configured: %s", "; ".join(errors))
            return
        try:
            self.provider_service = _PROVIDERS[self.config.provider](self.config)
            logger.info(f"Initialized {self.config.provider.value} email service")
        except Exception as e:
            logger.error(f"Failed to initialize email provider {self.config.provider.value}: {e}")

    def _setup_templates(self):
        template_path = Path(self.config.template_dir)
        if not template_path.exists():
            logger.warning(f"Email template directory not found: {template_path}")
        self.template_env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(['html']),
        )

    def is_configured(self) -> bool:
        return self.provider_service is not None

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Send an email via the configured provider.

        Returns:
            Dict with 'success', 'provider', 'message_id' and 'error' keys
        """
        if not self.provider_service:
            return {'success': False, 'error': 'Email service not configured or initialization failed'}

        try:
            logger.info(f"Sending email to {to_email} via {self.config.provider.value}")
            result = await self.provider_service.send_email(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
            )
        except Exception as e:
            error_msg = f"Email service error: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return {'success': False, 'error': error_msg}

        if result.get('success'):
            logger.info(f"Email sent to {to_email} via {result.get('provider')}")
        else:
            logger.error(f"Email sending failed: {result.get('error')}")
        return result

    def render_template(self, template_name: str, context: Dict[str, Any]) -> tuple[str, str]:
        """
        Render an email template.

        Returns:
            Tuple of (html_content, text_content). The text part comes from a
            sibling ``.txt`` template when present, otherwise from the HTML.
        """
        try:
            html_content = self.template_env.get_template(f"{template_name}.html").render(**context)
        except TemplateNotFound as e:
            raise ValueError(f"Email template not found: {template_name}") from e

        try:
            text_content = self.template_env.get_template(f"{template_name}.txt").render(**context)
        except TemplateNotFound:
            text_content = self._html_to_text(html_content)
        return html_content, text_content

    def _html_to_text(self, html_content: str) -> str:
        text = re.sub(r'<(style|head)[^>]*>.*?</\1>', '', html_content, flags=re.S | re.I)
        text = re.sub(r'<[^>]+>', '', text)
        text = text.replace('&amp;', '&').replace('&lt;', '<').replace('&gt;', '>')
        text = text.replace('&quot;', '"').replace('&#39;', "'")
        return re.sub(r'\s+', ' ', text).strip()


_email_service: Optional[TransactionalEmailService] = None


def get_transactional_email_service() -> TransactionalEmailService:
    """Get singleton transactional email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = TransactionalEmailService()
    return _email_service


def reset_transactional_email_service_for_tests() -> None:
    global _email_service
    _email_service = None
