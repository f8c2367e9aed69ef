from django.conf import settings
from django.contrib import admin
from django.urls import include, path

from core.health import healthz

urlpatterns = [
    path("api/healthz", healthz),
    path("api/users/", include("users.urls")),
    path("api/listings/", include("listings.urls")),
    path("api/favorites/", include("listings.urls_favorites")),
    path("api/listing-reviews/", include("reviews.urls")),
    path("api/messages/", include("chat.urls")),
    path("api/claims/", include("claims.urls")),
    path("api/reports/", include("reports.urls")),
    path("api/feedback/", include("feedback.urls")),
    path("api/geocode/", include("core.urls")),
    path("api/admin/", include("moderation.urls")),
    path("api/", include("reservations.urls")),
]

if settings.ENABLE_DJANGO_ADMIN:
    urlpatterns.insert(0, path("admin/", admin.site.urls))
