from __future__ import annotations

from django.db.models import F
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from listings.models import Listing

from .models import ListingReview, update_listing_review_stats
from .serializers import ListingReviewSerializer


class IsReviewerOrReadOnly(permissions.BasePermission):
    message = "Only the author can change this review."

    def has_object_permission(self, request, view, obj) -> bool:
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.reviewer_id == getattr(request.user, "id", None)


class ListingReviewViewSet(viewsets.ModelViewSet):
    """Reviews that renters leave on listings."""

    serializer_class = ListingReviewSerializer
    permission_classes = [permissions.IsAuthenticatedOrReadOnly, IsReviewerOrReadOnly]
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_queryset(self):
        return ListingReview.objects.select_related("reviewer", "listing").order_by("-created_at")

    @action(detail=False, methods=["get"], url_path=r"listing/(?P<listing_id>\d+)")
    def for_listing(self, request, listing_id=None):
        listing = get_object_or_404(Listing, pk=listing_id)
        qs = self.get_queryset().filter(listing=listing)
        return Response(
            {
                "ok": True,
                "rating": listing.rating,
                "review_count": listing.review_count,
                "reviews": self.get_serializer(qs, many=True).data,
            }
        )

    @action(detail=False, methods=["get"], url_path=r"host/(?P<host_id>\d+)")
    def for_host(self, request, host_id=None):
        qs = self.get_queryset().filter(listing__host_id=host_id)
        return Response({"ok": True, "reviews": self.get_serializer(qs, many=True).data})

    @action(
        detail=True,
        methods=["patch"],
        url_path="helpful",
        permission_classes=[permissions.IsAuthenticated],
    )
    def helpful(self, request, pk=None):
        review = get_object_or_404(ListingReview, pk=pk)
        ListingReview.objects.filter(pk=review.pk).update(helpful_count=F("helpful_count") + 1)
        review.refresh_from_db(fields=["helpful_count"])
        return Response({"ok": True, "helpful_count": review.helpful_count})

    def perform_destroy(self, instance: ListingReview) -> None:
        listing = instance.listing
        instance.delete()
        update_listing_review_stats(listing)

    def destroy(self, request, *args, **kwargs):
        super().destroy(request, *args, **kwargs)
        return Response({"ok": True}, status=status.HTTP_200_OK)
