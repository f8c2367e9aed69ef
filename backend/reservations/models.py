"""Database models for reservations and orders."""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from listings.models import Listing


class Reservation(models.Model):
    """A renter's request to book a listing for an inclusive date range."""

    class Status(models.TextChoices):
        PENDING = "pending", "pending"
        ACCEPTED = "accepted", "accepted"
        REJECTED = "rejected", "rejected"
        CANCELLED = "cancelled", "cancelled"
        CONFIRMED = "confirmed", "confirmed"

    listing = models.ForeignKey(
        Listing,
        related_name="reservations",
        on_delete=models.CASCADE,
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="reservations_as_renter",
        on_delete=models.CASCADE,
    )
    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="reservations_as_host",
        on_delete=models.CASCADE,
    )
    start_date = models.DateField()
    end_date = models.DateField(help_text="Last rental day, inclusive.")
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
    )

    # Snapshot taken when the reservation is created.
    host_name = models.CharField(max_length=255, blank=True, default="")
    host_email = models.EmailField(blank=True, default="")
    renter_name = models.CharField(max_length=255, blank=True, default="")
    renter_email = models.EmailField(blank=True, default="")
    listing_title = models.CharField(max_length=140, blank=True, default="")
    listing_image = models.CharField(max_length=1024, blank=True, default="")
    listing_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    listing_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    daily_price_cents = models.PositiveIntegerField(default=0)
    total_days = models.PositiveIntegerField(default=1)
    rental_type = models.CharField(max_length=16, default="daily")
    addons = models.JSONField(default=list, blank=True)
    addons_total_cents = models.PositiveIntegerField(default=0)

    new_dates_proposed = models.BooleanField(default=False)
    last_modified = models.DateTimeField(null=True, blank=True)
    modified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="+",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["listing", "start_date", "end_date"], name="reservation_listing_dates_idx"
            ),
            models.Index(fields=["renter", "status"], name="reservation_renter_status_idx"),
            models.Index(fields=["host", "status"], name="reservation_host_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Reservation #{self.pk} for {self.listing_id} ({self.status})"

    def is_participant(self, user) -> bool:
        user_id = getattr(user, "id", None)
        return user_id is not None and user_id in (self.renter_id, self.host_id)

    def touch(self, user) -> None:
        """Stamp who changed the reservation and when."""
        self.last_modified = timezone.now()
        self.modified_by = user


class Order(models.Model):
    """A confirmed rental created from an accepted reservation."""

    class Status(models.TextChoices):
        PENDING = "pending", "pending"
        UPCOMING = "upcoming", "upcoming"
        ACTIVE = "active", "active"
        COMPLETED = "completed", "completed"
        CANCELLED = "cancelled", "cancelled"

    order_number = models.CharField(max_length=32, unique=True, null=True, blank=True)
    reservation = models.OneToOneField(
        Reservation,
        related_name="order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    listing = models.ForeignKey(
        Listing,
        related_name="orders",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="orders_as_host",
        on_delete=models.PROTECT,
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="orders_as_renter",
        on_delete=models.PROTECT,
    )
    host_name = models.CharField(max_length=255, blank=True, default="")
    host_email = models.EmailField(blank=True, default="")
    renter_name = models.CharField(max_length=255, blank=True, default="")
    renter_email = models.EmailField(blank=True, default="")
    listing_title = models.CharField(max_length=140, blank=True, default="")
    listing_image = models.CharField(max_length=1024, blank=True, default="")
    listing_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    listing_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    start_date = models.DateField()
    end_date = models.DateField()
    daily_price_cents = models.PositiveIntegerField(default=0)
    total_days = models.PositiveIntegerField(default=1)
    rental_type = models.CharField(max_length=16, default="daily")
    currency = models.CharField(max_length=3, default="usd")
    addons = models.JSONField(default=list, blank=True)

    subtotal_cents = models.PositiveIntegerField(default=0)
    daily_total_cents = models.PositiveIntegerField(default=0)
    tax_cents = models.PositiveIntegerField(default=0)
    host_earns_cents = models.PositiveIntegerField(default=0)
    renter_pays_cents = models.PositiveIntegerField(default=0)
    platform_commission_total_cents = models.PositiveIntegerField(default=0)
    total_cents = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.UPCOMING,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["renter", "status"], name="order_renter_status_idx"),
            models.Index(fields=["host", "status"], name="order_host_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_number or 'Order'} ({self.status})"

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        if not self.order_number and self.pk:
            self.order_number = f"ORD-{self.pk}"
            Order.objects.filter(pk=self.pk).update(order_number=self.order_number)

    def is_participant(self, user) -> bool:
        user_id = getattr(user, "id", None)
        return user_id is not None and user_id in (self.renter_id, self.host_id)
