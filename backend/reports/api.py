from __future__ import annotations

from django.core.exceptions import ValidationError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .serializers import ReportCreateSerializer
from .services import create_report


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def submit_report(request):
    payload = ReportCreateSerializer(data=request.data)
    payload.is_valid(raise_exception=True)
    data = payload.validated_data
    try:
        report = create_report(
            reporter=request.user,
            report_for=data["report_for"],
            reported_id=data["reported_id"],
            report_reasons=data["report_reasons"],
            report_details=data.get("report_details", ""),
        )
    except ValidationError as exc:
        return Response(exc.message_dict, status=status.HTTP_400_BAD_REQUEST)
    return Response(
        {
            "ok": True,
            "message": "Report submitted successfully",
            "report_id": report.id,
            "report_number": report.report_number,
        },
        status=status.HTTP_201_CREATED,
    )
