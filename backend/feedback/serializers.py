from rest_framework import serializers

from .models import Feedback


class FeedbackSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True, allow_null=True)
    assigned_to_id = serializers.IntegerField(read_only=True, allow_null=True)
    selected_categories = serializers.ListField(
        child=serializers.CharField(max_length=64),
        allow_empty=False,
        error_messages={"empty": "Select at least one category."},
    )

    class Meta:
        model = Feedback
        fields = (
            "id",
            "user_id",
            "selected_categories",
            "feedback_details",
            "status",
            "assigned_to_id",
            "created_at",
        )
        read_only_fields = ("id", "status", "created_at")

    def validate_feedback_details(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Feedback details are required.")
        return value
