from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from notifications import tasks as notification_tasks
from reservations.models import Order

from .models import Claim
from .serializers import ClaimCreateSerializer, ClaimSerializer
from .services import create_claim

logger = logging.getLogger(__name__)


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def claims(request):
    if request.method == "GET":
        qs = (
            Claim.objects.filter(created_by=request.user)
            .select_related("order", "created_by")
            .order_by("-created_at")
        )
        return Response({"ok": True, "claims": ClaimSerializer(qs, many=True).data})

    payload = ClaimCreateSerializer(data=request.data)
    payload.is_valid(raise_exception=True)
    data = payload.validated_data
    order = get_object_or_404(Order, pk=data["order_id"])
    try:
        claim = create_claim(
            order=order,
            user=request.user,
            claim_type=data["claim_type"],
            claim_details=data["claim_details"],
            incident_date=data.get("incident_date"),
        )
    except PermissionDenied as exc:
        return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)

    try:
        notification_tasks.send_claim_submitted_email.delay(claim.id)
    except Exception:
        logger.info("notifications: could not queue send_claim_submitted_email", exc_info=True)
    return Response(
        {"ok": True, "claim": ClaimSerializer(claim).data},
        status=status.HTTP_201_CREATED,
    )
