from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api import ListingReviewViewSet

router = DefaultRouter()
router.register("", ListingReviewViewSet, basename="listing-review")

urlpatterns = [
    path("", include(router.urls)),
]
