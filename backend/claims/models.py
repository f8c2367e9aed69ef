from __future__ import annotations

from django.conf import settings
from django.db import models


class Claim(models.Model):
    """A dispute ticket a renter or host files against an order."""

    class Status(models.TextChoices):
        SUBMITTED = "submitted", "Submitted"
        UNDER_REVIEW = "under review", "Under review"
        AWAITING_CUSTOMER = "awaiting customer response", "Awaiting customer response"
        REIMBURSEMENT_PENDING = "reimbursement pending", "Reimbursement pending"
        LEGAL_ACTION = "legal action", "Legal action"
        CANCELED = "canceled", "Canceled"
        REJECTED = "rejected", "Rejected"
        RESOLVED = "resolved", "Resolved"

    claim_number = models.CharField(max_length=32, unique=True, null=True, blank=True)
    order = models.ForeignKey(
        "reservations.Order",
        on_delete=models.CASCADE,
        related_name="claims",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="claims_created",
    )
    claim_type = models.CharField(max_length=64)
    claim_details = models.TextField()
    incident_date = models.DateField(null=True, blank=True)
    priority = models.PositiveSmallIntegerField(default=5)
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.SUBMITTED)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="claims_assigned",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["priority", "-created_at"]
        indexes = [
            models.Index(fields=["status", "priority"], name="claim_status_priority_idx"),
            models.Index(fields=["assigned_to", "status"], name="claim_assigned_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.claim_number or 'Claim'} ({self.status})"

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        if not self.claim_number and self.pk:
            self.claim_number = f"CLM-{self.pk}"
            Claim.objects.filter(pk=self.pk).update(claim_number=self.claim_number)

    @property
    def thread(self):
        return self.threads.order_by("created_at").first()
