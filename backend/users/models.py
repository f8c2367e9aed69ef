from __future__ import annotations

import hashlib
import secrets
from urllib.parse import quote_plus

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    """Marketplace account: renter, host, moderator or admin."""

    phone = models.CharField(
        max_length=32,
        unique=True,
        null=True,
        blank=True,
        help_text="Optional E.164 formatted phone number.",
    )
    city = models.CharField(max_length=120, blank=True, default="")
    postal_code = models.CharField(
        max_length=32,
        blank=True,
        default="",
        help_text="Postal or ZIP code used for distance calculations.",
    )
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    avatar_url = models.URLField(max_length=1024, blank=True, default="")

    admin = models.BooleanField(default=False)
    moderator = models.BooleanField(default=False)
    founding_supporter = models.BooleanField(default=False)
    top_referrer = models.BooleanField(default=False)
    ambassador = models.BooleanField(default=False)
    open_dms = models.BooleanField(
        default=True,
        help_text="Allow users without an existing thread to send direct messages.",
    )

    email_verified = models.BooleanField(default=False)
    last_login_ip = models.GenericIPAddressField(null=True, blank=True)
    last_login_ua = models.TextField(null=True, blank=True)

    rating = models.FloatField(null=True, blank=True)
    review_count = models.PositiveIntegerField(default=0)

    @property
    def name(self) -> str:
        return (self.get_full_name() or "").strip() or self.username

    @property
    def is_moderator_or_admin(self) -> bool:
        return bool(self.admin or self.moderator)

    @property
    def display_avatar_url(self) -> str:
        """Uploaded avatar or a deterministic initials placeholder."""
        if self.avatar_url:
            return self.avatar_url
        seed = quote_plus(self.name or f"user-{self.pk or 'anon'}")
        return f"https://api.dicebear.com/7.x/initials/svg?seed={seed}&backgroundColor=5B8CA6"

    def set_name(self, full_name: str) -> None:
        first, _, last = (full_name or "").strip().partition(" ")
        self.first_name = first[:150]
        self.last_name = last.strip()[:150]


class SocialIdentity(models.Model):
    """Links a user to an external OAuth provider account."""

    class Provider(models.TextChoices):
        GOOGLE = "google", "Google"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="social_identities",
        on_delete=models.CASCADE,
    )
    provider = models.CharField(max_length=32, choices=Provider.choices)
    provider_user_id = models.CharField(max_length=255)
    email = models.EmailField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        constraints = [
            models.UniqueConstraint(
                fields=("provider", "provider_user_id"),
                name="uniq_social_provider_user",
            ),
            models.UniqueConstraint(
                fields=("user", "provider"),
                name="uniq_social_user_provider",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.provider}:{self.provider_user_id} -> {self.user_id}"


class LoginEvent(models.Model):
    """Immutable record of a login attempt, successful or not."""

    class Method(models.TextChoices):
        PASSWORD = "password", "Email/password"
        OAUTH = "oauth", "OAuth"

    class Device(models.TextChoices):
        DESKTOP = "desktop", "Desktop"
        TABLET = "tablet", "Tablet"
        MOBILE = "mobile", "Mobile"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="login_events",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
    )
    ip = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default="")
    browser = models.CharField(max_length=64, blank=True, default="")
    device = models.CharField(max_length=16, choices=Device.choices, blank=True, default="")
    success = models.BooleanField(default=True)
    method = models.CharField(max_length=16, choices=Method.choices, default=Method.PASSWORD)
    oauth_provider = models.CharField(max_length=32, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("user", "created_at"), name="login_event_user_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} @ {self.ip} ({'ok' if self.success else 'failed'})"


class PasswordResetChallenge(models.Model):
    """Stores hashed reset codes and metadata for throttling/verification."""

    class Channel(models.TextChoices):
        EMAIL = "email", "Email"
        SMS = "sms", "SMS"

    CODE_DIGITS = 6

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="password_reset_challenges",
        on_delete=models.CASCADE,
    )
    channel = models.CharField(max_length=8, choices=Channel.choices, default=Channel.EMAIL)
    contact = models.CharField(max_length=255, help_text="Destination email or E.164 number.")
    code_hash = models.CharField(max_length=128)
    expires_at = models.DateTimeField()
    attempts = models.PositiveIntegerField(default=0)
    max_attempts = models.PositiveIntegerField(default=5)
    verified_at = models.DateTimeField(null=True, blank=True)
    consumed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("channel", "contact"), name="prc_channel_contact_idx"),
            models.Index(fields=("expires_at",), name="prc_expires_idx"),
        ]

    def __str__(self) -> str:
        return f"Password reset for {self.user}"

    @classmethod
    def generate_code(cls) -> str:
        """Return a zero-padded numeric challenge code."""
        return f"{secrets.randbelow(10**cls.CODE_DIGITS):0{cls.CODE_DIGITS}d}"

    @staticmethod
    def _hash_code(raw_code: str) -> str:
        return hashlib.sha512(raw_code.encode("utf-8")).hexdigest()

    def set_code(self, raw_code: str) -> None:
        self.code_hash = self._hash_code(raw_code)
        self.attempts = 0
        self.consumed = False
        self.verified_at = None

    def is_expired(self) -> bool:
        return timezone.now() >= self.expires_at

    def can_attempt(self) -> bool:
        if self.consumed:
            return False
        if self.attempts >= self.max_attempts:
            return False
        return not self.is_expired()

    def check_code(self, raw_code: str) -> bool:
        """
        Constant-time verification of a submitted code.

        A match marks the challenge verified; the password change itself
        consumes it. Callers save the instance.
        """
        if not self.can_attempt():
            return False

        matches = secrets.compare_digest(self._hash_code(raw_code), self.code_hash)
        self.attempts += 1
        if matches:
            self.verified_at = timezone.now()
        return matches


class UserReview(models.Model):
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="user_reviews_written",
        on_delete=models.CASCADE,
    )
    reviewed_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="user_reviews_received",
        on_delete=models.CASCADE,
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        constraints = [
            models.UniqueConstraint(
                fields=("reviewer", "reviewed_user"),
                name="uniq_user_review_per_reviewer",
            ),
        ]

    def __str__(self) -> str:
        return f"UserReview {self.pk} {self.reviewer_id} -> {self.reviewed_user_id}"


def update_user_review_stats(user: User) -> None:
    """Recompute rating and review_count from the user's received reviews."""
    stats = UserReview.objects.filter(reviewed_user=user).aggregate(
        avg=models.Avg("rating"),
        total=models.Count("id"),
    )
    user.review_count = stats["total"] or 0
    user.rating = round(float(stats["avg"]), 2) if stats["avg"] is not None else None
    user.save(update_fields=["rating", "review_count"])


class UserBlock(models.Model):
    blocker = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="blocks_made",
        on_delete=models.CASCADE,
    )
    blocked = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="blocked_by",
        on_delete=models.CASCADE,
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=("blocker", "blocked"), name="uniq_user_block"),
        ]

    def __str__(self) -> str:
        return f"{self.blocker_id} blocks {self.blocked_id}"


def is_blocked(sender_id: int, recipient_id: int) -> bool:
    """True when either user has blocked the other."""
    return UserBlock.objects.filter(
        models.Q(blocker_id=sender_id, blocked_id=recipient_id)
        | models.Q(blocker_id=recipient_id, blocked_id=sender_id)
    ).exists()
