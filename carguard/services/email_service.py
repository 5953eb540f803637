"""
Email service for sending expiry reminders to car owners.
Composes the message and delivers it through SMTP, an HTTP email API,
or the log (development).
"""

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from datetime import date
from email.message import EmailMessage
from html import escape
from typing import Optional, Protocol, Union

import httpx

from carguard.config import AppConfig
from carguard.models import SERVICE_TYPE_LABELS, CarInfo, ServiceType
from carguard.services.eligibility import days_until_expiry

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Delivers one reminder; returns True on confirmed delivery

    `today` is the sweep's reference date for the days-left hint.
    """

    async def send(
        self,
        to_email: str,
        car: CarInfo,
        service_type: ServiceType,
        expiry_date: date,
        today: Optional[date] = None,
    ) -> bool: ...


@dataclass(frozen=True)
class ReminderEmail:
    subject: str
    html: str
    text: str


def format_date(value: date) -> str:
    """Render a date as DD.MM.YYYY"""
    return value.strftime("%d.%m.%Y")


def service_label(service_type: Union[str, ServiceType]) -> str:
    """Human-readable name for a service type"""
    try:
        return SERVICE_TYPE_LABELS[ServiceType(service_type)]
    except ValueError:
        return str(service_type)


def _expiry_phrase(expiry_date: date, today: Optional[date]) -> str:
    if today is None:
        return f"expires on {format_date(expiry_date)}"

    days_left = days_until_expiry(expiry_date, today)
    if days_left < 0:
        return f"expired on {format_date(expiry_date)} ({-days_left} days ago)"
    if days_left == 0:
        return f"expires today ({format_date(expiry_date)})"
    return f"expires on {format_date(expiry_date)} (in {days_left} days)"


def compose_reminder_email(
    car: CarInfo,
    service_type: ServiceType,
    expiry_date: date,
    today: Optional[date] = None,
) -> ReminderEmail:
    """
    Build subject and body of a reminder email

    Args:
        car: Car the obligation belongs to
        service_type: Kind of obligation
        expiry_date: When it expires
        today: Optional reference date for the "in N days" hint

    Returns:
        ReminderEmail with subject, HTML and plain-text bodies
    """
    label = service_label(service_type)
    phrase = _expiry_phrase(expiry_date, today)

    overdue = today is not None and days_until_expiry(expiry_date, today) < 0
    verb = "expired" if overdue else "expires"
    subject = (
        f"🚗 Reminder: {label} for {car.display_name} {verb} on {format_date(expiry_date)}"
    )

    text = (
        "Hello,\n\n"
        f"This is a reminder that the {label} of your car "
        f"{car.display_name} ({car.year}) {phrase}.\n\n"
        "We recommend renewing it soon to avoid any trouble.\n"
        "Log in to update your records once it is done.\n\n"
        "Thank you!"
    )

    html = (
        "<h2>Car service reminder</h2>"
        "<p>Hello,</p>"
        f"<p>This is a reminder that the <strong>{escape(label)}</strong> of your car "
        f"<strong>{escape(car.display_name)}</strong> ({car.year}) "
        f"<strong>{escape(phrase)}</strong>.</p>"
        "<p>We recommend renewing it soon to avoid any trouble.</p>"
        "<p>Log in to update your records once it is done.</p>"
        "<p>Thank you!</p>"
    )

    return ReminderEmail(subject=subject, html=html, text=text)


class LogNotifier:
    """Development backend: writes the email to the log and reports success"""

    async def send(self, to_email, car, service_type, expiry_date, today=None) -> bool:
        email = compose_reminder_email(car, service_type, expiry_date, today or date.today())
        logger.info(f"[log backend] To: {to_email} | Subject: {email.subject}")
        logger.debug(email.text)
        return True


class SmtpNotifier:
    """Send reminders through an SMTP server (STARTTLS or implicit TLS)"""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_ssl: bool = False,
        timeout: float = 10,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_ssl = use_ssl
        self.timeout = timeout

    def build_message(self, to_email, car, service_type, expiry_date, today=None) -> EmailMessage:
        email = compose_reminder_email(car, service_type, expiry_date, today or date.today())
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_email
        message["Subject"] = email.subject
        message.set_content(email.text)
        message.add_alternative(email.html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        context = ssl.create_default_context()
        if self.use_ssl:
            smtp = smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=context
            )
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)

        with smtp:
            if not self.use_ssl:
                smtp.starttls(context=context)
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)

    async def send(self, to_email, car, service_type, expiry_date, today=None) -> bool:
        message = self.build_message(to_email, car, service_type, expiry_date, today)
        try:
            # smtplib blocks; keep the event loop free
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email to {to_email}: {e}")
            return False

        logger.info(f"Reminder email sent to {to_email}")
        return True


class HttpEmailNotifier:
    """
    Send reminders through a transactional email HTTP API.

    Posts {"from", "to", "subject", "html", "text"} as JSON with a bearer
    token; any 2xx response counts as delivered.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        timeout: float = 10,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, to_email, car, service_type, expiry_date, today=None) -> bool:
        email = compose_reminder_email(car, service_type, expiry_date, today or date.today())
        payload = {
            "from": self.sender,
            "to": [to_email],
            "subject": email.subject,
            "html": email.html,
            "text": email.text,
        }

        try:
            response = await self.client.post(
                self.api_url,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "User-Agent": "CarGuard-Reminders/1.0",
                },
            )
        except httpx.TimeoutException:
            logger.warning(f"Email API timeout for {to_email}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Email API request failed for {to_email}: {e}")
            return False

        if not response.is_success:
            logger.error(
                f"Email API rejected reminder for {to_email}: {response.status_code} - {response.text}"
            )
            return False

        logger.info(f"Reminder email sent to {to_email}")
        return True

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()


def build_notifier(config: AppConfig) -> Notifier:
    """Create the notifier selected by EMAIL_BACKEND"""
    if config.email_backend == "smtp":
        logger.info(f"Email backend: SMTP via {config.smtp_host}:{config.smtp_port}")
        return SmtpNotifier(
            host=config.smtp_host,
            port=config.smtp_port,
            sender=config.email_from,
            username=config.smtp_username,
            password=config.smtp_password,
            use_ssl=config.smtp_use_ssl,
            timeout=config.smtp_timeout,
        )
    if config.email_backend == "http":
        logger.info(f"Email backend: HTTP API at {config.email_api_url}")
        return HttpEmailNotifier(
            api_url=config.email_api_url,
            api_key=config.email_api_key,
            sender=config.email_from,
            timeout=config.email_api_timeout,
        )

    logger.info("Email backend: log only (no emails leave this process)")
    return LogNotifier()
