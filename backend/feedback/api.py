from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .serializers import FeedbackSerializer


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def submit_feedback(request):
    serializer = FeedbackSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    feedback = serializer.save(user=request.user)
    return Response(
        {"ok": True, "feedback": FeedbackSerializer(feedback).data},
        status=status.HTTP_201_CREATED,
    )
