from django.conf import settings
from django.db import models


class Feedback(models.Model):
    class Status(models.TextChoices):
        SUBMITTED = "submitted", "Submitted"
        TRIAGED = "triaged", "Triaged"
        UNDER_REVIEW = "under review", "Under review"
        PLANNED = "planned", "Planned"
        IN_PROGRESS = "in progress", "In progress"
        IMPLEMENTED = "implemented", "Implemented"
        DECLINED = "declined", "Declined"
        DUPLICATE = "duplicate", "Duplicate"
        OUT_OF_SCOPE = "out of scope", "Out of scope"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="feedback",
    )
    selected_categories = models.JSONField(default=list)
    feedback_details = models.TextField()
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.SUBMITTED)
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="feedback_assigned",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "feedback"

    def __str__(self) -> str:
        return f"Feedback #{self.pk} ({self.status})"
