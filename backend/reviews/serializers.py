from __future__ import annotations

from typing import Any

from rest_framework import serializers

from listings.models import Listing

from .models import ListingReview, update_listing_review_stats


class ListingReviewSerializer(serializers.ModelSerializer):
    listing_id = serializers.PrimaryKeyRelatedField(
        source="listing",
        queryset=Listing.objects.all(),
    )
    reviewer_id = serializers.IntegerField(read_only=True)
    reviewer_name = serializers.CharField(source="reviewer.name", read_only=True)
    reviewer_username = serializers.CharField(source="reviewer.username", read_only=True)
    reviewer_avatar_url = serializers.CharField(
        source="reviewer.display_avatar_url", read_only=True
    )
    listing_name = serializers.CharField(source="listing.name", read_only=True)
    comment = serializers.CharField(allow_blank=True)

    class Meta:
        model = ListingReview
        fields = (
            "id",
            "listing_id",
            "listing_name",
            "reviewer_id",
            "reviewer_name",
            "reviewer_username",
            "reviewer_avatar_url",
            "rating",
            "comment",
            "helpful_count",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "helpful_count", "created_at", "updated_at")
        extra_kwargs = {
            "rating": {
                "error_messages": {
                    "min_value": "rating must be between 1 and 5",
                    "max_value": "rating must be between 1 and 5",
                }
            },
        }

    def validate_rating(self, value: int) -> int:
        if value < 1 or value > 5:
            raise serializers.ValidationError("rating must be between 1 and 5")
        return value

    def validate_comment(self, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("comment is required")
        return value

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        request = self.context.get("request")
        user = getattr(request, "user", None)
        listing = attrs.get("listing")
        if self.instance is None and listing is not None and listing.host_id == user.id:
            raise serializers.ValidationError("You cannot review your own listing.")
        if self.instance is not None and listing is not None and listing != self.instance.listing:
            raise serializers.ValidationError({"listing_id": "A review cannot move to another listing."})
        return attrs

    def create(self, validated_data: dict[str, Any]) -> ListingReview:
        validated_data["reviewer"] = self.context["request"].user
        review = ListingReview.objects.create(**validated_data)
        update_listing_review_stats(review.listing)
        return review

    def update(self, instance: ListingReview, validated_data: dict[str, Any]) -> ListingReview:
        validated_data.pop("listing", None)
        review = super().update(instance, validated_data)
        update_listing_review_stats(review.listing)
        return review
