"""Message threads between users, plus helpers for system-generated messages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Tuple

from django.conf import settings
from django.db import models, transaction
from django.db.models import Q
from django.utils import timezone

from core.redis import push_to_users

if TYPE_CHECKING:  # pragma: no cover
    from users.models import User

logger = logging.getLogger(__name__)


class MessageThread(models.Model):
    """
    A conversation between two users.

    Direct threads are unique per pair. Claim and report threads are opened
    separately so support conversations stay attached to their ticket.
    """

    participant_a = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    participant_b = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    claim = models.ForeignKey(
        "claims.Claim",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="threads",
    )
    report = models.ForeignKey(
        "reports.Report",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="threads",
    )
    created_at = models.DateTimeField(default=timezone.now)
    last_message_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-last_message_at", "-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["participant_a", "participant_b"],
                condition=Q(claim__isnull=True, report__isnull=True),
                name="uniq_direct_thread",
            ),
        ]

    def __str__(self) -> str:
        return f"Thread({self.participant_a_id}<->{self.participant_b_id})"

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.participant_a_id, self.participant_b_id)

    def other_participant_id(self, user_id: int) -> int:
        return self.participant_b_id if self.participant_a_id == user_id else self.participant_a_id


class Message(models.Model):
    """Individual message, either user-generated or system-generated. Append-only."""

    MESSAGE_TYPE_USER = "user"
    MESSAGE_TYPE_SYSTEM = "system"
    MESSAGE_TYPE_CHOICES = [
        (MESSAGE_TYPE_USER, "User"),
        (MESSAGE_TYPE_SYSTEM, "System"),
    ]

    thread = models.ForeignKey(
        MessageThread,
        on_delete=models.CASCADE,
        related_name="messages",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_messages",
    )
    message_type = models.CharField(
        max_length=10,
        choices=MESSAGE_TYPE_CHOICES,
        default=MESSAGE_TYPE_USER,
    )
    body = models.TextField()
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["sender", "recipient", "created_at"], name="message_pair_created_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"Message(thread={self.thread_id}, type={self.message_type})"


def _ordered_pair(user_a_id: int, user_b_id: int) -> Tuple[int, int]:
    return (user_a_id, user_b_id) if user_a_id <= user_b_id else (user_b_id, user_a_id)


def threads_between(user_a_id: int, user_b_id: int):
    low, high = _ordered_pair(user_a_id, user_b_id)
    return MessageThread.objects.filter(participant_a_id=low, participant_b_id=high)


def get_or_create_thread(user_a_id: int, user_b_id: int) -> MessageThread:
    """Return the direct thread between two users, creating it on first use."""
    low, high = _ordered_pair(user_a_id, user_b_id)
    thread, _ = MessageThread.objects.get_or_create(
        participant_a_id=low,
        participant_b_id=high,
        claim=None,
        report=None,
    )
    return thread


def open_ticket_thread(
    user_id: int,
    support_id: int,
    *,
    claim=None,
    report=None,
) -> MessageThread:
    """Open a fresh thread between a user and support tied to a claim or report."""
    low, high = _ordered_pair(user_id, support_id)
    return MessageThread.objects.create(
        participant_a_id=low,
        participant_b_id=high,
        claim=claim,
        report=report,
    )


def _push_message_event(thread: MessageThread, msg: Message) -> None:
    """Send a Redis event to both participants when a message is created."""
    payload = {
        "thread_id": thread.id,
        "claim_id": thread.claim_id,
        "message": {
            "id": msg.id,
            "sender_id": msg.sender_id,
            "recipient_id": msg.recipient_id,
            "message_type": msg.message_type,
            "body": msg.body,
            "created_at": msg.created_at.isoformat(),
        },
    }
    push_to_users(
        (thread.participant_a_id, thread.participant_b_id), "chat:new_message", payload
    )


def _append(thread: MessageThread, sender_id: int, body: str, message_type: str) -> Message:
    msg = Message.objects.create(
        thread=thread,
        sender_id=sender_id,
        recipient_id=thread.other_participant_id(sender_id),
        message_type=message_type,
        body=body,
    )
    MessageThread.objects.filter(pk=thread.pk).update(last_message_at=msg.created_at)
    thread.last_message_at = msg.created_at
    _push_message_event(thread, msg)
    return msg


def create_user_message(thread: MessageThread, sender: "User", body: str) -> Message:
    """Create a user-authored message and emit events."""
    return _append(thread, sender.id, body, Message.MESSAGE_TYPE_USER)


def create_system_message(thread: MessageThread, sender_id: int, body: str) -> Message:
    """Create a system-generated message on behalf of ``sender_id``."""
    return _append(thread, sender_id, body, Message.MESSAGE_TYPE_SYSTEM)


def post_system_message(sender_id: int, recipient_id: int, body: str) -> Optional[Message]:
    """
    Best-effort system message on the direct thread between two users.

    Failures are logged and swallowed so callers never roll back their own work.
    """
    try:
        with transaction.atomic():
            thread = get_or_create_thread(sender_id, recipient_id)
            return create_system_message(thread, sender_id, body)
    except Exception:
        logger.warning(
            "chat: failed to post system message from %s to %s",
            sender_id,
            recipient_id,
            exc_info=True,
        )
        return None
