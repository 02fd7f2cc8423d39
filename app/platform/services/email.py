import os
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

import requests
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.platform.config import settings
from app.platform.exceptions import EmailDeliveryError
from app.platform.logger import get_logger

logger = get_logger("email_service")

current_dir = os.path.dirname(os.path.abspath(__file__))
template_dir = os.path.join(current_dir, "../../features/payments/templates")

if not os.path.exists(template_dir):
    template_dir = os.path.join(os.getcwd(), "app/features/payments/templates")

env = Environment(loader=FileSystemLoader(template_dir), autoescape=select_autoescape(["html"]))


def render_template(name: str, **context) -> str:
    return env.get_template(name).render(**context)


def send_email(to_email: str, subject: str, body: str) -> str:
    """
    Send an HTML email and return the provider message id.
    Uses the HTTP relay when configured, with direct SMTP as fallback.
    Raises EmailDeliveryError when no transport accepted the message.
    """
    if settings.EMAIL_RELAY_URL and settings.EMAIL_RELAY_API_KEY:
        try:
            return send_email_via_relay(to_email, subject, body)
        except EmailDeliveryError as e:
            logger.error(f"Email relay failed: {e.message}")
            logger.info("Attempting direct SMTP as fallback...")
            return send_email_direct_smtp(to_email, subject, body)

    logger.warning("Email relay not configured, attempting direct SMTP")
    return send_email_direct_smtp(to_email, subject, body)


def send_email_via_relay(to_email: str, subject: str, body: str) -> str:
    """Send email via HTTP relay service"""
    payload = {
        "to_email": to_email,
        "subject": subject,
        "body": body,
        "from_address": settings.MAIL_FROM_ADDRESS
    }

    headers = {
        "X-API-Key": settings.EMAIL_RELAY_API_KEY,
        "Content-Type": "application/json"
    }

    try:
        response = requests.post(
            settings.EMAIL_RELAY_URL,
            json=payload,
            headers=headers,
            timeout=settings.EMAIL_RELAY_TIMEOUT
        )
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        logger.error(f"Email relay timeout for {to_email}")
        raise EmailDeliveryError("Email relay service timeout") from e
    except requests.exceptions.RequestException as e:
        if e.response is not None:
            logger.error(f"Relay response status: {e.response.status_code}, body: {e.response.text}")
        raise EmailDeliveryError(f"Email relay service error: {e}") from e

    # a 2xx means the relay took the message, whatever the body looks like
    try:
        result = response.json()
    except ValueError:
        logger.warning(f"Email relay accepted mail for {to_email} but sent a non-JSON body")
        return ""
    if not isinstance(result, dict):
        result = {}

    message_id = result.get("message_id") or result.get("id") or ""
    logger.info(f"Email sent via relay to {to_email}: {result.get('message')}")
    return message_id


def send_email_direct_smtp(to_email: str, subject: str, body: str) -> str:
    """Send email via SMTP"""
    message_id = make_msgid()
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = formataddr((settings.MAIL_FROM_NAME, settings.MAIL_FROM_ADDRESS))
    msg["To"] = to_email
    msg["Message-ID"] = message_id

    msg.attach(MIMEText(body, "html"))

    try:
        port = settings.MAIL_PORT

        if port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.MAIL_HOST, port, context=context, timeout=settings.EMAIL_RELAY_TIMEOUT) as server:
                server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
                server.sendmail(settings.MAIL_FROM_ADDRESS, to_email, msg.as_string())
        else:
            with smtplib.SMTP(settings.MAIL_HOST, port, timeout=settings.EMAIL_RELAY_TIMEOUT) as server:
                server.ehlo()

                if str(settings.MAIL_ENCRYPTION).upper() in ["TLS", "TRUE"]:
                    server.starttls()
                    server.ehlo()

                server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
                server.sendmail(settings.MAIL_FROM_ADDRESS, to_email, msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"CRITICAL EMAIL ERROR: {e}")
        raise EmailDeliveryError(f"SMTP delivery failed: {e}") from e

    logger.info(f"Email sent via SMTP to {to_email}")
    return message_id


def send_payment_verification_email(to_email: str, code: str, expires_in_minutes: int) -> str:
    body = render_template(
        "payment_verification.html",
        code=code,
        expires_in_minutes=expires_in_minutes,
        brand=settings.MAIL_FROM_NAME,
    )
    return send_email(to_email, f"Email Verification - {settings.MAIL_FROM_NAME}", body)
