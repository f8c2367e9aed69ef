import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.geo import get_zip_coordinates
from storage.s3 import guess_content_type, listing_object_key, presign_put

from .models import Favorite, Listing, ListingImage
from .serializers import FavoriteSerializer, ListingSerializer
from .services import delete_image_objects, search_listings

logger = logging.getLogger(__name__)

PUBLIC_ACTIONS = {"list", "retrieve", "conflicts"}


class ListingPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100


class IsHostOrReadOnly(permissions.BasePermission):
    message = "Only the host can modify this listing."

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.host_id == getattr(request.user, "id", None)


def _int_param(params, name):
    raw = params.get(name)
    try:
        return int(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _float_param(params, name):
    raw = params.get(name)
    try:
        return float(raw) if raw not in (None, "") else None
    except (TypeError, ValueError):
        return None


class ListingViewSet(viewsets.ModelViewSet):
    serializer_class = ListingSerializer
    pagination_class = ListingPagination
    permission_classes = [permissions.IsAuthenticatedOrReadOnly, IsHostOrReadOnly]
    http_method_names = ["get", "post", "put", "patch", "delete", "head", "options"]

    def get_permissions(self):
        if getattr(self, "action", None) in PUBLIC_ACTIONS:
            return [permissions.AllowAny()]
        return [permission() for permission in self.permission_classes]

    def perform_authentication(self, request):
        """Downgrade to anonymous user when public actions receive invalid tokens."""
        try:
            return super().perform_authentication(request)
        except AuthenticationFailed:
            if getattr(self, "action", None) in PUBLIC_ACTIONS:
                request._not_authenticated()
                return
            raise

    def _base_queryset(self):
        return Listing.objects.select_related("host").prefetch_related(
            "categories", "images", "addons"
        )

    def get_queryset(self):
        qs = self._base_queryset()
        if self.action != "list":
            return qs

        params = self.request.query_params
        qs = qs.filter(enabled=True)
        return search_listings(
            qs=qs,
            q=params.get("q") or None,
            category=params.get("category") or None,
            host_id=_int_param(params, "host"),
            price_min_cents=_int_param(params, "price_min"),
            price_max_cents=_int_param(params, "price_max"),
        )

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["origin"] = self._request_origin()
        return context

    def _request_origin(self):
        request = getattr(self, "request", None)
        if request is None or request.method != "GET":
            return None
        params = request.query_params
        lat = _float_param(params, "lat")
        lon = _float_param(params, "lon")
        if lat is not None and lon is not None:
            return lat, lon
        zip_code = params.get("zip")
        if zip_code:
            return get_zip_coordinates(zip_code)
        return None

    def retrieve(self, request, *args, **kwargs):
        listing = self.get_object()
        if not listing.enabled and listing.host_id != getattr(request.user, "id", None):
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        return Response(self.get_serializer(listing).data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        listing = serializer.save(host=request.user, **self._coordinates_for(serializer))
        return Response(
            {"ok": True, "id": listing.id, "listing": self.get_serializer(listing).data},
            status=status.HTTP_200_OK,
        )

    def update(self, request, *args, **kwargs):
        listing = self.get_object()
        serializer = self.get_serializer(listing, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        extra = {}
        if "zip_code" in serializer.validated_data:
            extra = self._coordinates_for(serializer)
        listing = serializer.save(**extra)
        return Response({"ok": True, "listing": self.get_serializer(listing).data})

    @staticmethod
    def _coordinates_for(serializer) -> dict:
        data = serializer.validated_data
        if data.get("latitude") is not None and data.get("longitude") is not None:
            return {}
        coords = get_zip_coordinates(data.get("zip_code"))
        if coords is None:
            return {}
        return {"latitude": round(coords[0], 6), "longitude": round(coords[1], 6)}

    def destroy(self, request, *args, **kwargs):
        listing = self.get_object()
        urls = list(listing.images.values_list("url", flat=True))
        with transaction.atomic():
            listing.delete()
            delete_image_objects(urls)
        logger.info("listings: listing %s deleted by host %s", kwargs.get("pk"), request.user.id)
        return Response({"ok": True})

    @action(detail=True, methods=["patch"], url_path="toggle-enabled")
    def toggle_enabled(self, request, pk=None):
        listing = self.get_object()
        enabled = request.data.get("enabled")
        listing.enabled = (not listing.enabled) if enabled is None else bool(enabled)
        listing.save(update_fields=["enabled", "updated_at"])
        return Response({"ok": True, "id": listing.id, "enabled": listing.enabled})

    @action(
        detail=False,
        methods=["patch"],
        url_path="bulk/update-enabled",
        permission_classes=[IsAuthenticated],
    )
    def bulk_update_enabled(self, request):
        listing_ids = request.data.get("listing_ids", request.data.get("listingIds"))
        enabled = request.data.get("enabled")
        if not isinstance(listing_ids, list) or not listing_ids:
            return Response(
                {"listing_ids": ["Provide a non-empty list of listing ids."]},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not isinstance(enabled, bool):
            return Response(
                {"enabled": ["Must be true or false."]},
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            ids = [int(value) for value in listing_ids]
        except (TypeError, ValueError):
            return Response(
                {"listing_ids": ["Listing ids must be integers."]},
                status=status.HTTP_400_BAD_REQUEST,
            )
        updated = Listing.objects.filter(host=request.user, id__in=ids).update(
            enabled=enabled, updated_at=timezone.now()
        )
        return Response({"ok": True, "updated": updated, "enabled": enabled})

    @action(detail=False, methods=["get"], url_path="mine", permission_classes=[IsAuthenticated])
    def mine(self, request):
        """Return the authenticated user's listings, enabled or not."""
        qs = self._base_queryset().filter(host=request.user).order_by("-created_at")
        page = self.paginate_queryset(qs)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(self.get_serializer(qs, many=True).data)

    @action(detail=True, methods=["get"], url_path="reservations", permission_classes=[IsAuthenticated])
    def reservations(self, request, pk=None):
        from reservations.serializers import ReservationSerializer

        listing = get_object_or_404(Listing, pk=pk)
        if listing.host_id != request.user.id:
            return Response(
                {"detail": "Only the host can view reservations for this listing."},
                status=status.HTTP_403_FORBIDDEN,
            )
        qs = listing.reservations.select_related("renter", "host").order_by("start_date")
        return Response(ReservationSerializer(qs, many=True).data)

    @action(detail=True, methods=["get"], url_path="conflicts")
    def conflicts(self, request, pk=None):
        from reservations.domain import blocking_ranges

        listing = get_object_or_404(Listing, pk=pk)
        ranges = [
            {"start_date": start.isoformat(), "end_date": end.isoformat()}
            for start, end in blocking_ranges(listing)
        ]
        return Response({"ok": True, "listing_id": listing.id, "conflicts": ranges})

    @action(detail=True, methods=["post"], url_path="presigned-url")
    def presigned_url(self, request, pk=None):
        listing = self.get_object()
        filename = request.data.get("filename") or "upload"
        content_type = request.data.get("content_type") or guess_content_type(filename)
        if not content_type.startswith("image/"):
            return Response(
                {"content_type": ["Only images can be uploaded."]},
                status=status.HTTP_400_BAD_REQUEST,
            )
        size_hint = _int_param(request.data, "size")
        key = listing_object_key(listing_id=listing.id, host_id=request.user.id, filename=filename)
        try:
            presigned = presign_put(key, content_type=content_type, size_hint=size_hint)
        except ValueError as exc:
            return Response({"size": [str(exc)]}, status=status.HTTP_400_BAD_REQUEST)
        return Response(presigned)

    @action(
        detail=False,
        methods=["post"],
        url_path="delete-image",
        permission_classes=[IsAuthenticated],
    )
    def delete_image(self, request):
        url = (request.data.get("url") or request.data.get("image_url") or "").strip()
        listing_id = _int_param(request.data, "listing_id")
        if not url or listing_id is None:
            return Response(
                {"detail": "listing_id and url are required."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        listing = get_object_or_404(Listing, pk=listing_id)
        if listing.host_id != request.user.id:
            return Response(
                {"detail": "Only the host can remove listing images."},
                status=status.HTTP_403_FORBIDDEN,
            )
        with transaction.atomic():
            deleted, _ = ListingImage.objects.filter(listing=listing, url=url).delete()
            if not deleted:
                return Response({"detail": "Image not found."}, status=status.HTTP_404_NOT_FOUND)
            delete_image_objects([url])
        return Response({"ok": True})


@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def favorites(request):
    if request.method == "GET":
        qs = (
            Favorite.objects.filter(user=request.user)
            .select_related("listing__host")
            .prefetch_related("listing__categories", "listing__images", "listing__addons")
        )
        return Response(FavoriteSerializer(qs, many=True).data)

    listing_id = _int_param(request.data, "listing_id")
    if listing_id is None:
        return Response(
            {"listing_id": ["This field is required."]},
            status=status.HTTP_400_BAD_REQUEST,
        )
    listing = get_object_or_404(Listing, pk=listing_id)
    favorite, created = Favorite.objects.get_or_create(user=request.user, listing=listing)
    return Response(
        {"ok": True, "id": favorite.id, "alreadyFavorited": not created},
        status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@api_view(["DELETE"])
@permission_classes([IsAuthenticated])
def remove_favorite(request, listing_id: int):
    deleted, _ = Favorite.objects.filter(user=request.user, listing_id=listing_id).delete()
    if not deleted:
        return Response({"detail": "Favorite not found."}, status=status.HTTP_404_NOT_FOUND)
    return Response({"ok": True})


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def check_favorite(request, listing_id: int):
    exists = Favorite.objects.filter(user=request.user, listing_id=listing_id).exists()
    return Response({"ok": True, "isFavorited": exists})
