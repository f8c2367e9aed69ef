"""
Celery tasks for outbound email and SMS.

Every delivery attempt, sent or failed, is written to ``NotificationLog``.
Tasks never raise on delivery problems; callers queue them with ``.delay``
and move on.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import EmailMultiAlternatives
from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string

from notifications.models import NotificationLog

logger = logging.getLogger(__name__)
User = get_user_model()

EMAIL = NotificationLog.Channel.EMAIL
SMS = NotificationLog.Channel.SMS


def _get_user(user_id: int) -> Optional[User]:
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        logger.warning("notifications: user %s no longer exists", user_id)
    return user


def _twilio_client():
    """Return ``(client, from_number)`` or ``(None, None)`` when Twilio is not configured."""
    account_sid = getattr(settings, "TWILIO_ACCOUNT_SID", None)
    auth_token = getattr(settings, "TWILIO_AUTH_TOKEN", None)
    from_number = getattr(settings, "TWILIO_FROM_NUMBER", None)
    if not (account_sid and auth_token and from_number):
        logger.info("notifications: Twilio settings incomplete, SMS disabled")
        return None, None
    from twilio.rest import Client

    return Client(account_sid, auth_token), from_number


def _frontend_url(path: str) -> str:
    origin = (getattr(settings, "FRONTEND_ORIGIN", "") or "").rstrip("/")
    return f"{origin}{path}" if origin else ""


def _render_email(subject: str, template: str, context: dict | None) -> tuple[str, str | None]:
    """Render ``email/<template>`` plus an optional ``.html`` sibling."""
    full_context = {
        "site_name": getattr(settings, "SITE_NAME", "LendIt"),
        "site_url": _frontend_url(""),
        "support_email": getattr(settings, "DEFAULT_FROM_EMAIL", ""),
        "subject": subject,
        **(context or {}),
    }
    path = template if template.startswith("email/") else f"email/{template}"
    text = render_to_string(path, full_context).strip()
    try:
        html = render_to_string(f"{path.rsplit('.', 1)[0]}.html", full_context).strip()
    except TemplateDoesNotExist:
        html = None
    return text, html


def _record(channel, type_, status, **fields) -> None:
    try:
        NotificationLog.record(channel, type_, status, **fields)
    except Exception:
        logger.exception("notifications: could not write %s log for %s", channel, type_)


def _failed(channel, type_, error: str, **fields) -> bool:
    _record(channel, type_, NotificationLog.Status.FAILED, error=error, **fields)
    return False


def _send_email_logged(
    type_: str,
    *,
    to_email: str | None,
    subject: str,
    template: str,
    context: dict | None = None,
    user_id: int | None = None,
    reservation_id: int | None = None,
) -> bool:
    fields = {"user_id": user_id, "recipient": to_email, "reservation_id": reservation_id}
    if not to_email:
        logger.warning("notifications: %s email for user %s has no recipient", type_, user_id)
        return _failed(EMAIL, type_, "missing recipient email", **fields)

    text, html = _render_email(subject, template, context)
    message = EmailMultiAlternatives(
        subject=subject,
        body=text,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to_email],
    )
    if html:
        message.attach_alternative(html, "text/html")
    try:
        message.send(fail_silently=False)
    except Exception as exc:
        logger.exception("notifications: %s email to user %s failed", type_, user_id)
        return _failed(EMAIL, type_, str(exc) or exc.__class__.__name__, **fields)

    _record(EMAIL, type_, NotificationLog.Status.SENT, **fields)
    return True


def _send_sms_logged(
    type_: str,
    *,
    to_phone: str | None,
    template: str,
    context: dict | None = None,
    user_id: int | None = None,
) -> bool:
    fields = {"user_id": user_id, "recipient": to_phone}
    if not to_phone:
        logger.warning("notifications: %s SMS for user %s has no phone", type_, user_id)
        return _failed(SMS, type_, "missing destination phone", **fields)

    client, from_number = _twilio_client()
    if client is None:
        return _failed(SMS, type_, "sms client unavailable", **fields)

    path = template if template.startswith("sms/") else f"sms/{template}"
    body = render_to_string(path, context or {}).strip()
    try:
        client.messages.create(body=body, from_=from_number, to=to_phone)
    except Exception as exc:
        logger.exception("notifications: %s SMS to user %s failed", type_, user_id)
        return _failed(SMS, type_, str(exc) or exc.__class__.__name__, **fields)

    _record(SMS, type_, NotificationLog.Status.SENT, **fields)
    return True


def _display_name(user: Optional[User]) -> str:
    if not user:
        return "Unknown"
    full_name = (user.get_full_name() or "").strip()
    return full_name or user.username or str(user)


def _format_date(value: Optional[date]) -> str:
    if not value:
        return "N/A"
    return value.strftime("%b %d, %Y")


def _format_cents(cents: int | None) -> str:
    return f"${(cents or 0) / 100:,.2f}"


# --- Account ---


@shared_task(queue="emails")
def send_welcome_email(user_id: int):
    """Greet a newly registered user."""
    user = _get_user(user_id)
    if not user:
        return
    _send_email_logged(
        "welcome",
        to_email=user.email,
        subject="Welcome to LendIt",
        template="welcome.txt",
        context={"user": user, "name": _display_name(user), "cta_url": _frontend_url("/")},
        user_id=user_id,
    )


@shared_task(queue="emails")
def send_password_reset_code_email(user_id: int, to_email: str, code: str):
    """Deliver the password reset challenge via email."""
    user = _get_user(user_id)
    _send_email_logged(
        "password_reset_code",
        to_email=to_email,
        subject="Your password reset code",
        template="password_reset_code.txt",
        context={"user": user, "code": code},
        user_id=user_id,
    )


@shared_task(queue="sms")
def send_password_reset_code_sms(user_id: int, to_number: str, code: str):
    """Deliver the password reset challenge via SMS."""
    user = _get_user(user_id)
    _send_sms_logged(
        "password_reset_code",
        to_phone=to_number,
        template="password_reset_code.txt",
        context={"user": user, "code": code},
        user_id=user_id,
    )


@shared_task(queue="emails")
def send_login_alert_email(user_id: int, ip: str, ua: str):
    """Alert the user that a login from a new device occurred."""
    user = _get_user(user_id)
    if not user:
        return
    _send_email_logged(
        "login_alert",
        to_email=user.email,
        subject="New login detected",
        template="login_alert.txt",
        context={"user": user, "ip": ip, "ua": ua},
        user_id=user_id,
    )


@shared_task(queue="emails")
def send_password_changed_email(user_id: int):
    """Confirm that the user's password was updated."""
    user = _get_user(user_id)
    if not user:
        return
    _send_email_logged(
        "password_changed",
        to_email=user.email,
        subject="Your password was changed",
        template="password_changed.txt",
        context={"user": user},
        user_id=user_id,
    )


# --- Reservations and orders ---


@shared_task(queue="emails")
def send_reservation_request_email(reservation_id: int):
    """Notify the host that a renter requested their listing."""
    from reservations.models import Reservation

    reservation = Reservation.objects.filter(pk=reservation_id).first()
    if reservation is None:
        logger.warning("notifications: reservation %s no longer exists", reservation_id)
        return
    listing_title = reservation.listing_title or "your listing"
    context = {
        "reservation": reservation,
        "host_name": reservation.host_name,
        "renter_name": reservation.renter_name,
        "listing_title": listing_title,
        "start_date": _format_date(reservation.start_date),
        "end_date": _format_date(reservation.end_date),
        "total_days": reservation.total_days,
        "cta_url": _frontend_url("/profile?tab=reservation-requests"),
    }
    _send_email_logged(
        "reservation_request",
        to_email=reservation.host_email,
        subject=f"New reservation request for {listing_title}",
        template="reservation_request.txt",
        context=context,
        user_id=reservation.host_id,
        reservation_id=reservation.id,
    )


@shared_task(queue="emails")
def send_reservation_status_email(renter_id: int, reservation_id: int, new_status: str):
    """Notify the renter that their reservation was accepted, declined or cancelled."""
    from reservations.models import Reservation

    renter = _get_user(renter_id)
    if not renter:
        return
    reservation = Reservation.objects.filter(pk=reservation_id).first()
    if reservation is None:
        logger.warning("notifications: reservation %s no longer exists", reservation_id)
        return

    status_words = {
        Reservation.Status.ACCEPTED: "accepted",
        Reservation.Status.REJECTED: "declined",
        Reservation.Status.CANCELLED: "cancelled",
        Reservation.Status.CONFIRMED: "confirmed",
    }
    status_word = status_words.get(new_status, "updated")
    listing_title = reservation.listing_title or "your listing"
    context = {
        "renter": renter,
        "renter_name": _display_name(renter),
        "reservation": reservation,
        "listing_title": listing_title,
        "status_label": status_word.capitalize(),
        "start_date": _format_date(reservation.start_date),
        "end_date": _format_date(reservation.end_date),
        "cta_url": _frontend_url("/profile?tab=rentals"),
    }
    _send_email_logged(
        "reservation_status_update",
        to_email=renter.email,
        subject=f"Your reservation for {listing_title} was {status_word}",
        template="reservation_status_update.txt",
        context=context,
        user_id=renter_id,
        reservation_id=reservation.id,
    )


@shared_task(queue="emails")
def send_order_created_email(order_id: int):
    """Send the order summary to both the renter and the host."""
    from reservations.models import Order

    order = Order.objects.filter(pk=order_id).first()
    if order is None:
        logger.warning("notifications: order %s no longer exists", order_id)
        return
    context = {
        "order": order,
        "order_number": order.order_number,
        "listing_title": order.listing_title,
        "start_date": _format_date(order.start_date),
        "end_date": _format_date(order.end_date),
        "total_days": order.total_days,
        "renter_pays": _format_cents(order.renter_pays_cents),
        "host_earns": _format_cents(order.host_earns_cents),
    }
    recipients = (
        ("renter", order.renter_id, order.renter_email, order.renter_name),
        ("host", order.host_id, order.host_email, order.host_name),
    )
    for role, user_id, email, name in recipients:
        _send_email_logged(
            f"order_created_{role}",
            to_email=email,
            subject=f"Order {order.order_number} confirmed",
            template="order_created.txt",
            context={**context, "role": role, "name": name},
            user_id=user_id,
            reservation_id=order.reservation_id,
        )


# --- Support ---


@shared_task(queue="emails")
def send_claim_submitted_email(claim_id: int):
    """Acknowledge a claim to the user who filed it."""
    from claims.models import Claim

    claim = Claim.objects.select_related("order", "created_by").filter(pk=claim_id).first()
    if claim is None:
        logger.warning("notifications: claim %s no longer exists", claim_id)
        return
    user = claim.created_by
    _send_email_logged(
        "claim_submitted",
        to_email=user.email,
        subject=f"We received your claim {claim.claim_number}",
        template="claim_submitted.txt",
        context={
            "name": _display_name(user),
            "claim": claim,
            "order_number": claim.order.order_number,
            "cta_url": _frontend_url("/profile?tab=claims"),
        },
        user_id=user.id,
        reservation_id=claim.order.reservation_id,
    )
