from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api import OrderViewSet, ReservationViewSet

router = DefaultRouter()
router.include_root_view = False
router.register("reservations", ReservationViewSet, basename="reservation")
router.register("orders", OrderViewSet, basename="order")

urlpatterns = [
    path("", include(router.urls)),
]
