"""Transactional email (Mailgun, SendGrid fallback). Sending never raises; callers get a NotificationResult."""
import html as html_lib
import logging
import re
from dataclasses import dataclass
from datetime import datetime

import httpx

from app.config import Settings, get_settings
from app.timeutils import as_utc

log = logging.getLogger(__name__)

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"
BRAND = "Cubby Health"


@dataclass
class NotificationResult:
    sent: bool
    error: str | None = None

    def as_response_fields(self) -> dict:
        fields = {"email_sent": self.sent}
        if self.error:
            fields["email_error"] = self.error
        return fields


def strip_html(html: str) -> str:
    text = re.sub(r"<br\s*/?>", "\n", html or "", flags=re.IGNORECASE)
    text = re.sub(r"</(p|li|td)>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"\s+", " ", text)
    return html_lib.unescape(text).strip()


def send_email(
    to_email: str,
    subject: str,
    html_content: str,
    text_content: str | None = None,
    *,
    to_name: str | None = None,
    settings: Settings | None = None,
) -> NotificationResult:
    """Send via Mailgun (preferred) or SendGrid. Unconfigured transport is reported as not sent."""
    settings = settings or get_settings()
    text_content = text_content or strip_html(html_content)
    if settings.mailgun_api_key and settings.mailgun_domain:
        return _send_email_mailgun(to_email, subject, html_content, text_content, to_name=to_name, settings=settings)
    if settings.sendgrid_api_key:
        return _send_email_sendgrid(to_email, subject, html_content, text_content, to_name=to_name, settings=settings)
    log.warning("Email NOT SENT to=%s subject=%r: no mail transport configured", to_email, subject)
    return NotificationResult(sent=False, error="Email transport not configured")


def _send_email_mailgun(
    to_email: str,
    subject: str,
    html_content: str,
    text_content: str,
    *,
    to_name: str | None,
    settings: Settings,
) -> NotificationResult:
    base = (settings.mailgun_base_url or MAILGUN_US_BASE).strip().rstrip("/")
    domain = (settings.mailgun_domain or "").strip().lower()
    from_addr = (settings.mailgun_from_email or "").strip()
    from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
    if domain and from_domain != domain:
        # Mailgun drops mail whose sender domain does not match the sending domain
        from_addr = f"noreply@{domain}"
    data = {
        "from": f"{settings.mailgun_from_name} <{from_addr}>",
        "to": f"{to_name} <{to_email}>" if to_name else to_email,
        "subject": subject,
        "text": text_content or "",
        "html": html_content or "",
    }
    try:
        with httpx.Client(timeout=10.0) as client:
            r = client.post(f"{base}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
            if r.status_code == 401 and base == MAILGUN_US_BASE:
                log.info("Mailgun 401 with US endpoint, retrying EU endpoint")
                r = client.post(
                    f"{MAILGUN_EU_BASE}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data
                )
    except httpx.HTTPError as e:
        log.error("Mailgun request failed to=%s: %s: %s", to_email, type(e).__name__, e)
        return NotificationResult(sent=False, error=f"{type(e).__name__}: {e}")

    if 200 <= r.status_code < 300:
        log.info("Mailgun accepted to=%s subject=%r status=%s", to_email, subject, r.status_code)
        return NotificationResult(sent=True)
    log.error("Mailgun rejected to=%s status=%s body=%s", to_email, r.status_code, r.text[:500])
    return NotificationResult(sent=False, error=f"Mailgun status {r.status_code}: {r.text[:200]}")


def _send_email_sendgrid(
    to_email: str,
    subject: str,
    html_content: str,
    text_content: str,
    *,
    to_name: str | None,
    settings: Settings,
) -> NotificationResult:
    try:
        from sendgrid import SendGridAPIClient
        from sendgrid.helpers.mail import Mail

        message = Mail(
            from_email=(settings.sendgrid_from_email, settings.sendgrid_from_name),
            to_emails=to_email,
            subject=subject,
            html_content=html_content,
            plain_text_content=text_content or "",
        )
        SendGridAPIClient(settings.sendgrid_api_key).send(message)
    except Exception as e:  # sendgrid surfaces python_http_client errors of several types
        log.error("SendGrid send failed to=%s: %s: %s", to_email, type(e).__name__, e)
        return NotificationResult(sent=False, error=f"{type(e).__name__}: {e}")
    return NotificationResult(sent=True)


def format_expiry(expires_at: datetime) -> str:
    return as_utc(expires_at).strftime("%A, %B %d, %Y at %H:%M UTC")


def _layout(title: str, body: str) -> str:
    return f"""
    <div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;">
      <h1 style="color:#1e40af;">{title}</h1>
      {body}
      <p>The {BRAND} Team</p>
    </div>
    """


def send_admin_invitation_email(
    to_email: str,
    full_name: str,
    setup_link: str,
    expires_at: datetime,
    *,
    regenerated: bool = False,
) -> NotificationResult:
    name = html_lib.escape(full_name or "there")
    intro = (
        f"A new invitation link has been generated for your {BRAND} admin account."
        if regenerated
        else f"You've been invited to join the {BRAND} admin team."
    )
    body = f"""
      <p>Dear {name},</p>
      <p>{intro} Use the link below to set your password and access the administrative dashboard.</p>
      <p><a href="{setup_link}">Set Up Your Account</a></p>
      <ul>
        <li>This invitation link expires on <strong>{format_expiry(expires_at)}</strong></li>
        <li>You must set your password before the link expires</li>
        <li>Keep your credentials secure and do not share them</li>
      </ul>
      <p>If the button does not work, copy this link into your browser: {setup_link}</p>
      <p>If you didn't expect this invitation, please ignore this email.</p>
    """
    return send_email(
        to_email,
        f"Admin Invitation - Set Up Your {BRAND} Account",
        _layout("Admin Invitation", body),
        to_name=full_name,
    )


def send_member_invitation_email(
    to_email: str,
    full_name: str,
    setup_link: str,
    expires_at: datetime,
) -> NotificationResult:
    name = html_lib.escape(full_name or "there")
    body = f"""
      <p>Dear {name},</p>
      <p>An account has been created for you on the {BRAND} member portal.
      Choose your password using the link below.</p>
      <p><a href="{setup_link}">Set Up Your Account</a></p>
      <p>This link expires on <strong>{format_expiry(expires_at)}</strong>.</p>
      <p>If the button does not work, copy this link into your browser: {setup_link}</p>
    """
    return send_email(
        to_email,
        f"Welcome to {BRAND} - Set Up Your Account",
        _layout("Your Member Account", body),
        to_name=full_name,
    )


def send_member_approval_email(to_email: str, full_name: str) -> NotificationResult:
    name = html_lib.escape(full_name or "there")
    body = f"""
      <p>Dear {name},</p>
      <p>Great news! Your {BRAND} member account has been approved.</p>
      <p>You can now sign in to the member portal and access exclusive partner offers.</p>
    """
    return send_email(
        to_email,
        f"Your {BRAND} Account Has Been Approved!",
        _layout("Account Approved", body),
        to_name=full_name,
    )


def send_registration_emails(
    to_email: str,
    full_name: str,
    company_name: str | None = None,
    phone: str | None = None,
    settings: Settings | None = None,
) -> dict[str, NotificationResult]:
    """Welcome mail to the member and a heads-up to the admin inbox; each attempted independently."""
    settings = settings or get_settings()
    name = html_lib.escape(full_name or "there")
    member_body = f"""
      <p>Dear {name},</p>
      <p>Thank you for registering with {BRAND}. Your registration has been received and is pending
      review by our team. You will receive another email once your account has been approved.</p>
    """
    admin_body = f"""
      <p>A new member has registered and is awaiting approval.</p>
      <ul>
        <li><strong>Name:</strong> {name}</li>
        <li><strong>Email:</strong> {html_lib.escape(to_email)}</li>
        <li><strong>Company:</strong> {html_lib.escape(company_name or "Not provided")}</li>
        <li><strong>Phone:</strong> {html_lib.escape(phone or "Not provided")}</li>
      </ul>
      <p>Review the registration in the admin dashboard.</p>
    """
    return {
        "member_email": send_email(
            to_email,
            f"Welcome to {BRAND} - Registration Received",
            _layout("Registration Received", member_body),
            to_name=full_name,
            settings=settings,
        ),
        "admin_email": send_email(
            settings.admin_notification_email,
            f"New Member Registration - {full_name}",
            _layout("New Member Registration", admin_body),
            to_name=settings.admin_notification_name,
            settings=settings,
        ),
    }
