"""HTML email builders. Each returns a ready-to-submit EmailMessage."""

from __future__ import annotations

from datetime import datetime
from html import escape
from typing import TYPE_CHECKING

from membership.services.notifications import EmailMessage

if TYPE_CHECKING:
    from membership.core.config import Settings
    from membership.models import Enrollment, Event, User

BRAND_COLOR = "#059669"

BUTTON_STYLE = (
    f"display:inline-block;background-color:{BRAND_COLOR};color:#ffffff;"
    "padding:12px 24px;text-decoration:none;border-radius:6px;"
    "font-weight:bold;margin-top:20px;"
)


def _layout(settings: Settings, title: str, content: str) -> str:
    """Wrap body content in the branded container shared by every email."""
    name = escape(settings.ASSOCIATION_NAME)
    year = datetime.now().year
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1.0"></head>
<body style="margin:0;padding:20px;background-color:#f3f4f6;">
  <div style="max-width:600px;margin:0 auto;font-family:Arial,sans-serif;border:1px solid #e5e7eb;border-radius:8px;">
    <div style="background-color:{BRAND_COLOR};padding:20px;text-align:center;border-radius:8px 8px 0 0;">
      <h1 style="color:#ffffff;margin:0;font-size:24px;">{name}</h1>
    </div>
    <div style="padding:30px;background-color:#ffffff;color:#333333;line-height:1.6;">
      <h2 style="color:{BRAND_COLOR};margin-top:0;">{escape(title)}</h2>
      {content}
    </div>
    <div style="padding:20px;text-align:center;font-size:12px;color:#666666;background-color:#f9fafb;border-radius:0 0 8px 8px;">
      <p>&copy; {year} {name}. All rights reserved.</p>
      <p>{escape(settings.CONTACT_EMAIL)}</p>
    </div>
  </div>
</body>
</html>
"""


def _button(url: str, label: str) -> str:
    return (
        f'<div style="text-align:center;">'
        f'<a href="{escape(url, quote=True)}" style="{BUTTON_STYLE}">{escape(label)}</a></div>'
    )


def _credentials_block(email: str, password: str) -> str:
    return (
        '<div style="background-color:#f0fdf4;border:1px solid #bbf7d0;padding:15px;'
        'border-radius:6px;margin:20px 0;">'
        f"<p style=\"margin:5px 0;\"><strong>Email:</strong> {escape(email)}</p>"
        f"<p style=\"margin:5px 0;\"><strong>Password:</strong> <code>{escape(password)}</code></p>"
        "</div>"
    )


def enrollment_received(
    settings: Settings, enrollment: Enrollment, password: str | None = None
) -> EmailMessage:
    """Applicant confirmation; carries credentials when the account was created at submission."""
    content = (
        f"<p>Hello <strong>{escape(enrollment.first_name)} {escape(enrollment.last_name)}</strong>,</p>"
        f"<p>We have received your application to join <strong>{escape(settings.ASSOCIATION_NAME)}</strong>.</p>"
        "<p>Your application is <strong>under review</strong>. You will be notified by email "
        "as soon as a decision has been made.</p>"
    )
    if password is not None:
        content += (
            "<p>A member account has already been created for you. Your sign-in details:</p>"
            + _credentials_block(enrollment.email, password)
            + "<p>Please change your password after your first sign-in.</p>"
            + _button(settings.FRONTEND_LOGIN_URL, "Sign in")
        )
    return EmailMessage(
        to=enrollment.email,
        subject=f"We received your application - {settings.ASSOCIATION_NAME}",
        html=_layout(settings, "Application received", content),
        kind="enrollment.received",
    )


def admin_alert(settings: Settings, title: str, details: list[tuple[str, str]]) -> EmailMessage:
    """Notification to the association's admin mailbox."""
    rows = "".join(
        f"<p><strong>{escape(label)}:</strong> {escape(value)}</p>" for label, value in details
    )
    content = (
        '<div style="background-color:#f3f4f6;padding:15px;border-radius:6px;">'
        f"{rows}</div>" + _button(settings.FRONTEND_DASHBOARD_URL, "Open the dashboard")
    )
    return EmailMessage(
        to=settings.ADMIN_EMAIL,
        subject=f"{title} - {settings.ASSOCIATION_NAME}",
        html=_layout(settings, f"Admin: {title}", content),
        kind="admin.alert",
    )


def new_enrollment_alert(settings: Settings, enrollment: Enrollment) -> EmailMessage:
    return admin_alert(
        settings,
        "New membership application (pending)",
        [
            ("Name", f"{enrollment.first_name} {enrollment.last_name}"),
            ("Email", enrollment.email),
            ("Phone", enrollment.phone),
            ("Location", f"{enrollment.city}, {enrollment.country}"),
            ("Company", enrollment.company_name or "Not provided"),
        ],
    )


def welcome_with_credentials(
    settings: Settings, enrollment: Enrollment, password: str
) -> EmailMessage:
    content = (
        f"<p>Hello <strong>{escape(enrollment.first_name)}</strong>,</p>"
        "<p>Congratulations! Your application has been <strong>APPROVED</strong>.</p>"
        "<p>A member account has been created for you. Your sign-in details:</p>"
        + _credentials_block(enrollment.email, password)
        + "<p>Please change your password after your first sign-in.</p>"
        + _button(settings.FRONTEND_LOGIN_URL, "Go to my account")
    )
    return EmailMessage(
        to=enrollment.email,
        subject=f"Welcome to {settings.ASSOCIATION_NAME} - your sign-in details",
        html=_layout(settings, f"Welcome to {settings.ASSOCIATION_NAME}!", content),
        kind="enrollment.welcome",
    )


def approved_existing_account(settings: Settings, enrollment: Enrollment) -> EmailMessage:
    content = (
        f"<p>Hello <strong>{escape(enrollment.first_name)}</strong>,</p>"
        "<p>Your new application has been <strong>APPROVED</strong>.</p>"
        "<p>You already have an account with us, so keep using your existing "
        "sign-in details.</p>" + _button(settings.FRONTEND_LOGIN_URL, "Sign in")
    )
    return EmailMessage(
        to=enrollment.email,
        subject=f"Application approved - {settings.ASSOCIATION_NAME}",
        html=_layout(settings, "Application approved", content),
        kind="enrollment.approved",
    )


def enrollment_rejected(settings: Settings, enrollment: Enrollment) -> EmailMessage:
    content = (
        f"<p>Hello <strong>{escape(enrollment.first_name)}</strong>,</p>"
        f"<p>Thank you for your interest in <strong>{escape(settings.ASSOCIATION_NAME)}</strong>.</p>"
        "<p>After careful review, we regret to inform you that your application "
        "has not been accepted at this time.</p>"
        "<p>Feel free to contact us with any questions or for future opportunities.</p>"
    )
    return EmailMessage(
        to=enrollment.email,
        subject=f"Update on your application - {settings.ASSOCIATION_NAME}",
        html=_layout(settings, "Update on your application", content),
        kind="enrollment.rejected",
    )


def _format_event_dates(event: Event) -> str:
    start = event.date_start.strftime("%d/%m/%Y")
    end = event.date_end.strftime("%d/%m/%Y")
    return start if start == end else f"{start} - {end}"


def event_registration_confirmed(settings: Settings, user: User, event: Event) -> EmailMessage:
    content = (
        f"<p>Hello <strong>{escape(user.first_name)}</strong>,</p>"
        "<p>You are registered for:</p>"
        f'<h3 style="color:#111827;">{escape(event.title)}</h3>'
        '<ul style="list-style:none;padding:0;margin:20px 0;">'
        f"<li><strong>Date:</strong> {escape(_format_event_dates(event))}</li>"
        f"<li><strong>Location:</strong> {escape(event.location or '')}</li>"
        "</ul><p>We look forward to seeing you there!</p>"
    )
    return EmailMessage(
        to=user.email,
        subject=f"Registration confirmed: {event.title}",
        html=_layout(settings, "Registration confirmed", content),
        kind="event.registration",
    )


def event_registration_alert(settings: Settings, user: User, event: Event) -> EmailMessage:
    return admin_alert(
        settings,
        f"New event registration: {event.title}",
        [
            ("Member", f"{user.first_name} {user.last_name}"),
            ("Email", user.email),
            ("Event", event.title),
            ("Date", _format_event_dates(event)),
        ],
    )


def password_reset(settings: Settings, user: User, password: str) -> EmailMessage:
    content = (
        f"<p>Hello <strong>{escape(user.first_name)}</strong>,</p>"
        "<p>Your password has been reset. Your temporary password is:</p>"
        '<p style="text-align:center;">'
        '<code style="background-color:#f3f4f6;padding:10px 20px;font-size:18px;'
        f'letter-spacing:2px;border-radius:6px;border:1px dashed {BRAND_COLOR};">'
        f"{escape(password)}</code></p>"
        "<p>Sign in with it and choose a new password from your account page.</p>"
        + _button(settings.FRONTEND_LOGIN_URL, "Sign in")
    )
    return EmailMessage(
        to=user.email,
        subject=f"Password reset - {settings.ASSOCIATION_NAME}",
        html=_layout(settings, "Password reset", content),
        kind="account.password_reset",
    )
