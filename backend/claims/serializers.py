from __future__ import annotations

from rest_framework import serializers

from .models import Claim


class ClaimCreateSerializer(serializers.Serializer):
    order_id = serializers.IntegerField()
    claim_type = serializers.CharField(max_length=64)
    claim_details = serializers.CharField()
    incident_date = serializers.DateField(required=False, allow_null=True)

    def validate_claim_details(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Claim details are required.")
        return value


class ClaimSerializer(serializers.ModelSerializer):
    order_id = serializers.IntegerField(read_only=True)
    order_number = serializers.CharField(source="order.order_number", read_only=True)
    created_by_id = serializers.IntegerField(read_only=True)
    created_by_name = serializers.CharField(source="created_by.name", read_only=True)
    assigned_to_id = serializers.IntegerField(read_only=True, allow_null=True)
    thread_id = serializers.SerializerMethodField()

    class Meta:
        model = Claim
        fields = (
            "id",
            "claim_number",
            "order_id",
            "order_number",
            "created_by_id",
            "created_by_name",
            "claim_type",
            "claim_details",
            "incident_date",
            "priority",
            "status",
            "assigned_to_id",
            "thread_id",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_thread_id(self, obj: Claim):
        thread = obj.thread
        return thread.id if thread else None
