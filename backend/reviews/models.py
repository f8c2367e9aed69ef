from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class ListingReview(models.Model):
    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listing_reviews",
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField()
    helpful_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["listing", "created_at"], name="listing_review_created_idx")]

    def __str__(self) -> str:
        return f"Review {self.pk} by {self.reviewer_id} for listing {self.listing_id}"


def update_listing_review_stats(listing) -> None:
    """Recalculate rating and review_count aggregates for the given listing."""
    from django.db.models import Avg, Count

    agg = ListingReview.objects.filter(listing=listing).aggregate(
        avg=Avg("rating"), count=Count("id")
    )
    avg = agg.get("avg")
    listing.rating = round(avg, 2) if avg is not None else None
    listing.review_count = agg.get("count") or 0
    listing.save(update_fields=["rating", "review_count"])
