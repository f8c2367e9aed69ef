from unittest import mock

import pytest
from django.core import mail

from notifications import tasks
from notifications.models import NotificationLog

pytestmark = pytest.mark.django_db


def test_welcome_email_is_sent_and_logged(renter_user):
    tasks.send_welcome_email(renter_user.id)

    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert message.to == [renter_user.email]
    assert message.subject == "Welcome to LendIt"
    assert "Renter" in message.body
    log = NotificationLog.objects.get()
    assert (log.channel, log.type, log.status) == ("email", "welcome", "sent")
    assert log.user_id == renter_user.id
    assert log.recipient == renter_user.email


def test_missing_user_sends_nothing():
    tasks.send_welcome_email(999999)

    assert mail.outbox == []
    assert not NotificationLog.objects.exists()


def test_password_reset_email_contains_code(renter_user):
    tasks.send_password_reset_code_email(renter_user.id, "reset@example.com", "123456")

    assert mail.outbox[0].to == ["reset@example.com"]
    assert "123456" in mail.outbox[0].body


def test_email_without_destination_logs_failure(renter_user):
    renter_user.email = ""
    renter_user.save(update_fields=["email"])

    tasks.send_password_changed_email(renter_user.id)

    assert mail.outbox == []
    log = NotificationLog.objects.get()
    assert log.status == NotificationLog.Status.FAILED


def test_email_backend_failure_is_logged(renter_user):
    with mock.patch.object(
        tasks.EmailMultiAlternatives, "send", side_effect=RuntimeError("smtp down")
    ):
        tasks.send_login_alert_email(renter_user.id, "203.0.113.5", "Firefox")

    log = NotificationLog.objects.get()
    assert log.status == NotificationLog.Status.FAILED
    assert "smtp down" in log.error


def test_sms_skipped_without_twilio_config(renter_user, settings):
    settings.TWILIO_ACCOUNT_SID = None

    tasks.send_password_reset_code_sms(renter_user.id, "+15555550123", "654321")

    log = NotificationLog.objects.get()
    assert (log.channel, log.status) == ("sms", "failed")
    assert log.error == "sms client unavailable"
    assert log.recipient == "+15555550123"


def test_sms_sent_through_twilio(renter_user, settings):
    settings.TWILIO_ACCOUNT_SID = "AC123"
    settings.TWILIO_AUTH_TOKEN = "token"
    settings.TWILIO_FROM_NUMBER = "+15555550100"

    with mock.patch("twilio.rest.Client") as client_cls:
        tasks.send_password_reset_code_sms(renter_user.id, "+15555550123", "654321")

    create = client_cls.return_value.messages.create
    create.assert_called_once()
    kwargs = create.call_args.kwargs
    assert kwargs["to"] == "+15555550123"
    assert kwargs["from_"] == "+15555550100"
    assert "654321" in kwargs["body"]
    assert NotificationLog.objects.get().status == NotificationLog.Status.SENT


def test_reservation_request_email_goes_to_host(reservation, host_user):
    mail.outbox.clear()
    NotificationLog.objects.all().delete()

    tasks.send_reservation_request_email(reservation.id)

    message = mail.outbox[0]
    assert message.to == [host_user.email]
    assert "Cordless Drill" in message.subject
    assert "Jun 01, 2030" in message.body
    assert NotificationLog.objects.get().reservation_id == reservation.id


def test_reservation_status_email_uses_friendly_word(reservation, renter_user):
    tasks.send_reservation_status_email(renter_user.id, reservation.id, "rejected")

    assert mail.outbox[-1].subject == "Your reservation for Cordless Drill was declined"


def test_order_created_email_reaches_both_sides(order, renter_user, host_user):
    mail.outbox.clear()

    tasks.send_order_created_email(order.id)

    assert sorted(m.to[0] for m in mail.outbox) == sorted([renter_user.email, host_user.email])
    assert all(order.order_number in m.subject for m in mail.outbox)
    assert NotificationLog.objects.filter(type__startswith="order_created_").count() == 2


def test_format_helpers():
    assert tasks._format_cents(123456) == "$1,234.56"
    assert tasks._format_cents(None) == "$0.00"
    assert tasks._format_date(None) == "N/A"
