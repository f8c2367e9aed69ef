from __future__ import annotations

from rest_framework import serializers

from .models import Report


class ReportCreateSerializer(serializers.Serializer):
    report_for = serializers.ChoiceField(
        choices=Report.ReportFor.choices,
        error_messages={"invalid_choice": "Invalid report_for value. Must be 'listing' or 'user'"},
    )
    reported_id = serializers.IntegerField(min_value=1)
    report_reasons = serializers.ListField(
        child=serializers.CharField(max_length=120),
        allow_empty=False,
    )
    report_details = serializers.CharField(required=False, allow_blank=True, default="")


class ReportSerializer(serializers.ModelSerializer):
    reporter_id = serializers.IntegerField(read_only=True, allow_null=True)
    assigned_to_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Report
        fields = (
            "id",
            "report_number",
            "reporter_id",
            "report_for",
            "reported_id",
            "report_reasons",
            "report_details",
            "content_snapshot",
            "status",
            "assigned_to_id",
            "moderator_message",
            "resolved_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields
