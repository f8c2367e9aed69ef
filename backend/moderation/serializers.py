from django.contrib.auth import get_user_model
from rest_framework import serializers

from listings.models import Listing
from reviews.models import ListingReview
from users.models import UserReview

User = get_user_model()


class AdminUserSerializer(serializers.ModelSerializer):
    name = serializers.CharField(read_only=True)
    active = serializers.BooleanField(source="is_active", read_only=True)

    class Meta:
        model = User
        fields = (
            "id",
            "username",
            "email",
            "name",
            "avatar_url",
            "admin",
            "moderator",
            "active",
            "email_verified",
            "rating",
            "review_count",
            "date_joined",
            "last_login",
        )
        read_only_fields = fields


class AdminUserStatusSerializer(serializers.Serializer):
    admin = serializers.BooleanField(required=False)
    moderator = serializers.BooleanField(required=False)
    active = serializers.BooleanField(required=False)


class AdminListingSerializer(serializers.ModelSerializer):
    host_id = serializers.IntegerField(read_only=True)
    host_username = serializers.CharField(source="host.username", read_only=True)
    host_email = serializers.CharField(source="host.email", read_only=True)
    image_url = serializers.CharField(source="primary_image_url", read_only=True)

    class Meta:
        model = Listing
        fields = (
            "id",
            "name",
            "price_cents",
            "zip_code",
            "enabled",
            "host_id",
            "host_username",
            "host_email",
            "image_url",
            "rating",
            "review_count",
            "created_at",
        )
        read_only_fields = fields


class AdminListingReviewSerializer(serializers.ModelSerializer):
    review_type = serializers.SerializerMethodField()
    reviewer_id = serializers.IntegerField(read_only=True)
    reviewer_username = serializers.CharField(source="reviewer.username", read_only=True)
    target_id = serializers.IntegerField(source="listing_id", read_only=True)

    class Meta:
        model = ListingReview
        fields = (
            "id",
            "review_type",
            "reviewer_id",
            "reviewer_username",
            "target_id",
            "rating",
            "comment",
            "created_at",
        )
        read_only_fields = fields

    def get_review_type(self, obj) -> str:
        return "listing"


class AdminUserReviewSerializer(serializers.ModelSerializer):
    review_type = serializers.SerializerMethodField()
    reviewer_id = serializers.IntegerField(read_only=True)
    reviewer_username = serializers.CharField(source="reviewer.username", read_only=True)
    target_id = serializers.IntegerField(source="reviewed_user_id", read_only=True)

    class Meta:
        model = UserReview
        fields = (
            "id",
            "review_type",
            "reviewer_id",
            "reviewer_username",
            "target_id",
            "rating",
            "comment",
            "created_at",
        )
        read_only_fields = fields

    def get_review_type(self, obj) -> str:
        return "user"


class AssignSerializer(serializers.Serializer):
    assigned_to = serializers.IntegerField(required=False, allow_null=True)

    def to_internal_value(self, data):
        if hasattr(data, "keys") and "assignToId" in data and "assigned_to" not in data:
            data = {"assigned_to": data.get("assignToId")}
        return super().to_internal_value(data)

    def validate(self, attrs):
        if "assigned_to" not in attrs:
            raise serializers.ValidationError({"assigned_to": ["This field is required."]})
        return attrs


class TicketStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class TakeActionSerializer(serializers.Serializer):
    fieldsToRemove = serializers.ListField(child=serializers.CharField(), required=False)
    moderatorMessage = serializers.CharField(required=False, allow_blank=True)
    reportFor = serializers.ChoiceField(choices=("listing", "user"), required=False)
