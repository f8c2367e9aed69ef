import logging

from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .geo import ReverseGeocodeError, reverse_geocode

logger = logging.getLogger(__name__)


class ReverseGeocodeSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)


@api_view(["POST"])
@permission_classes([AllowAny])
def reverse_geocode_view(request):
    serializer = ReverseGeocodeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    latitude = serializer.validated_data["latitude"]
    longitude = serializer.validated_data["longitude"]
    try:
        result = reverse_geocode(latitude, longitude)
    except ReverseGeocodeError:
        logger.warning("geo: reverse geocode failed for %s,%s", latitude, longitude, exc_info=True)
        return Response(
            {"ok": False, "detail": "Reverse geocoding is unavailable right now."},
            status=status.HTTP_502_BAD_GATEWAY,
        )
    return Response({"ok": True, **result})
