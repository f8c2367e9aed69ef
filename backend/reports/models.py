from __future__ import annotations

from django.conf import settings
from django.db import models


class Report(models.Model):
    """A policy-violation flag raised against a listing or a user."""

    class ReportFor(models.TextChoices):
        LISTING = "listing", "Listing"
        USER = "user", "User"

    class Status(models.TextChoices):
        SUBMITTED = "submitted", "Submitted"
        REJECTED = "rejected", "Rejected"
        RESOLVED = "resolved", "Resolved"

    report_number = models.CharField(max_length=32, unique=True, null=True, blank=True)
    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="reports_filed",
    )
    report_for = models.CharField(max_length=16, choices=ReportFor.choices)
    reported_id = models.PositiveIntegerField()
    report_reasons = models.JSONField(default=list)
    report_details = models.TextField(blank=True, default="")
    content_snapshot = models.JSONField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.SUBMITTED)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reports_assigned",
    )
    moderator_message = models.TextField(blank=True, default="")
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["report_for", "reported_id"], name="report_target_idx"),
            models.Index(fields=["status", "created_at"], name="report_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.report_number or 'Report'} ({self.report_for} {self.reported_id})"

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        if not self.report_number and self.pk:
            self.report_number = f"REP-{self.pk}"
            Report.objects.filter(pk=self.pk).update(report_number=self.report_number)
