"""Tests for the message API."""

from __future__ import annotations

from unittest import mock

import pytest
from rest_framework.test import APIClient

from chat.models import Message, MessageThread, get_or_create_thread, post_system_message
from users.models import UserBlock

pytestmark = pytest.mark.django_db


def auth(user):
    client = APIClient()
    resp = client.post(
        "/api/users/token/",
        {"identifier": user.username, "password": "testpass"},
        format="json",
    )
    token = resp.data["access"]
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client


def _send(client, recipient, body="Is Thursday still good for pickup?"):
    return client.post("/api/messages/", {"recipient_id": recipient.id, "body": body}, format="json")


def test_send_message_creates_direct_thread(renter_user, host_user, _fake_redis):
    resp = _send(auth(renter_user), host_user)

    assert resp.status_code == 201, resp.data
    message = resp.data["message"]
    assert message["sender_id"] == renter_user.id
    assert message["recipient_id"] == host_user.id
    assert message["message_type"] == "user"
    assert message["is_from_current_user"] is True
    thread = MessageThread.objects.get()
    assert thread.last_message_at is not None
    # One chat event per participant.
    streams = [call.args[0] for call in _fake_redis.xadd.call_args_list]
    assert sorted(streams) == sorted(
        [f"events:user:{renter_user.id}", f"events:user:{host_user.id}"]
    )


def test_messages_reuse_the_same_thread(renter_user, host_user):
    _send(auth(renter_user), host_user)
    _send(auth(host_user), renter_user, body="Yes, see you then")

    assert MessageThread.objects.count() == 1
    assert Message.objects.count() == 2


def test_cannot_message_self(renter_user):
    assert _send(auth(renter_user), renter_user).status_code == 400


def test_blank_body_is_rejected(renter_user, host_user):
    assert _send(auth(renter_user), host_user, body="   ").status_code == 400


def test_blocked_users_cannot_message(renter_user, host_user):
    UserBlock.objects.create(blocker=host_user, blocked=renter_user)

    resp = _send(auth(renter_user), host_user)

    assert resp.status_code == 403
    assert not Message.objects.exists()


def test_closed_dms_require_existing_thread(renter_user, host_user):
    host_user.open_dms = False
    host_user.save(update_fields=["open_dms"])

    assert _send(auth(renter_user), host_user).status_code == 403

    get_or_create_thread(renter_user.id, host_user.id)
    assert _send(auth(renter_user), host_user).status_code == 201


def test_history_is_oldest_first(renter_user, host_user):
    _send(auth(renter_user), host_user, body="first")
    _send(auth(host_user), renter_user, body="second")

    resp = auth(renter_user).get(f"/api/messages/{host_user.id}/")

    assert [row["body"] for row in resp.data["messages"]] == ["first", "second"]
    assert [row["is_from_current_user"] for row in resp.data["messages"]] == [True, False]


def test_conversations_list_one_row_per_person(renter_user, host_user, other_user):
    _send(auth(renter_user), host_user, body="hello host")
    _send(auth(other_user), renter_user, body="hello renter")

    resp = auth(renter_user).get("/api/messages/conversations/")

    rows = resp.data["conversations"]
    assert [row["other_user_id"] for row in rows] == [other_user.id, host_user.id]
    assert rows[0]["last_message"] == "hello renter"


def test_post_system_message_marks_type(renter_user, host_user):
    msg = post_system_message(renter_user.id, host_user.id, "Reservation request sent")

    assert msg.message_type == Message.MESSAGE_TYPE_SYSTEM
    assert msg.recipient_id == host_user.id


def test_post_system_message_swallows_failures(renter_user, host_user, caplog):
    with mock.patch("chat.models.create_system_message", side_effect=RuntimeError("db down")):
        assert post_system_message(renter_user.id, host_user.id, "hello") is None
    assert "failed to post system message" in caplog.text
