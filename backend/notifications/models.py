from django.conf import settings
from django.db import models


class NotificationLog(models.Model):
    """One delivery attempt of an outbound email or SMS."""

    class Channel(models.TextChoices):
        EMAIL = "email", "Email"
        SMS = "sms", "SMS"

    class Status(models.TextChoices):
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"

    channel = models.CharField(max_length=8, choices=Channel.choices)
    type = models.CharField(max_length=128)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notification_logs",
    )
    # Email address or phone number the attempt was addressed to.
    recipient = models.CharField(max_length=254, blank=True)
    reservation_id = models.IntegerField(null=True, blank=True)
    status = models.CharField(max_length=8, choices=Status.choices)
    error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="notif_user_created_idx"),
            models.Index(fields=["reservation_id", "created_at"], name="notif_reservation_created_idx"),
            models.Index(fields=["type", "status"], name="notif_type_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.channel}:{self.type} -> {self.recipient or '?'} ({self.status})"

    @classmethod
    def record(
        cls,
        channel: str,
        type_: str,
        status: str,
        *,
        user_id: int | None = None,
        recipient: str | None = None,
        reservation_id: int | None = None,
        error: str | None = None,
    ) -> "NotificationLog":
        return cls.objects.create(
            channel=channel,
            type=type_,
            status=status,
            user_id=user_id,
            recipient=(recipient or "")[:254],
            reservation_id=reservation_id,
            error=error or "",
        )
