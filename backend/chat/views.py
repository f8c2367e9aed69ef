"""Message API views."""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from chat.models import Message, MessageThread, create_user_message, get_or_create_thread, threads_between
from chat.serializers import MessageSerializer, SendMessageSerializer
from users.models import is_blocked

User = get_user_model()


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def conversations(request):
    """Return one entry per person the user has exchanged messages with, newest first."""
    user = request.user
    threads = (
        MessageThread.objects.filter(Q(participant_a=user) | Q(participant_b=user))
        .exclude(last_message_at__isnull=True)
        .order_by("-last_message_at")
    )
    seen: set[int] = set()
    rows = []
    for thread in threads:
        other_id = thread.other_participant_id(user.id)
        if other_id in seen:
            continue
        seen.add(other_id)
        last = (
            Message.objects.filter(
                Q(sender=user, recipient_id=other_id) | Q(sender_id=other_id, recipient=user)
            )
            .order_by("-created_at", "-id")
            .first()
        )
        other = User.objects.filter(pk=other_id).first()
        if other is None or last is None:
            continue
        rows.append(
            {
                "other_user_id": other.id,
                "name": other.name,
                "username": other.username,
                "avatar_url": other.display_avatar_url,
                "last_message": last.body,
                "last_message_at": last.created_at,
            }
        )
    return Response({"ok": True, "conversations": rows})


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def messages_with(request, other_user_id: int):
    """Return the full message history with another user, oldest first."""
    other = get_object_or_404(User, pk=other_user_id)
    qs = Message.objects.filter(
        Q(sender=request.user, recipient=other) | Q(sender=other, recipient=request.user)
    ).order_by("created_at", "id")
    serializer = MessageSerializer(qs, many=True, context={"request": request})
    return Response({"ok": True, "messages": serializer.data})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def send_message(request):
    """Create a user-authored message on the direct thread with the recipient."""
    serializer = SendMessageSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    recipient = get_object_or_404(
        User, pk=serializer.validated_data["recipient_id"], is_active=True
    )
    sender = request.user
    if recipient.id == sender.id:
        return Response(
            {"detail": "You cannot message yourself."},
            status=status.HTTP_400_BAD_REQUEST,
        )
    if is_blocked(sender.id, recipient.id):
        return Response(
            {"detail": "You cannot message this user."},
            status=status.HTTP_403_FORBIDDEN,
        )
    if not recipient.open_dms and not threads_between(sender.id, recipient.id).exists():
        return Response(
            {"detail": "This user is not accepting new messages."},
            status=status.HTTP_403_FORBIDDEN,
        )

    thread = get_or_create_thread(sender.id, recipient.id)
    msg = create_user_message(thread, sender, serializer.validated_data["body"].strip())
    return Response(
        {"ok": True, "message": MessageSerializer(msg, context={"request": request}).data},
        status=status.HTTP_201_CREATED,
    )
