"""Serializers for message threads."""

from __future__ import annotations

from rest_framework import serializers

from chat.models import Message


class MessageSerializer(serializers.ModelSerializer):
    sender_id = serializers.IntegerField(read_only=True)
    recipient_id = serializers.IntegerField(read_only=True)
    thread_id = serializers.IntegerField(read_only=True)
    is_from_current_user = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = [
            "id",
            "thread_id",
            "sender_id",
            "recipient_id",
            "message_type",
            "body",
            "created_at",
            "is_from_current_user",
        ]

    def get_is_from_current_user(self, obj: Message) -> bool:
        request = self.context.get("request")
        user_id = getattr(getattr(request, "user", None), "id", None)
        return obj.sender_id == user_id


class SendMessageSerializer(serializers.Serializer):
    recipient_id = serializers.IntegerField()
    body = serializers.CharField(max_length=5000, allow_blank=True, trim_whitespace=True)

    def validate_body(self, value: str) -> str:
        if not value.strip():
            raise serializers.ValidationError("Message body cannot be empty.")
        return value
