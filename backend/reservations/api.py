"""API viewsets for reservations and orders."""

from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from chat.models import post_system_message
from core.redis import push_to_users
from notifications import tasks as notification_tasks

from .domain import (
    ReservationConflict,
    change_status,
    create_order_from_reservation,
    create_reservation,
    propose_new_dates,
)
from .models import Order, Reservation
from .serializers import (
    OrderSerializer,
    ReservationCreateSerializer,
    ReservationDatesSerializer,
    ReservationSerializer,
    ReservationStatusSerializer,
)

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    Reservation.Status.ACCEPTED: "Reservation request accepted",
    Reservation.Status.REJECTED: "Reservation request declined",
    Reservation.Status.CANCELLED: "Reservation cancelled",
}


def _safe_notify(task, *args):
    try:
        task.delay(*args)
    except Exception:
        logger.info("notifications: could not queue %s", getattr(task, "name", task), exc_info=True)


def _push_reservation_event(reservation: Reservation, event_type: str, **extra) -> None:
    payload = {
        "reservation_id": reservation.id,
        "listing_id": reservation.listing_id,
        "status": reservation.status,
        "start_date": reservation.start_date.isoformat(),
        "end_date": reservation.end_date.isoformat(),
        **extra,
    }
    push_to_users((reservation.renter_id, reservation.host_id), event_type, payload)


def _error_response(exc: ValidationError) -> Response:
    code = status.HTTP_409_CONFLICT if isinstance(exc, ReservationConflict) else status.HTTP_400_BAD_REQUEST
    return Response(exc.message_dict, status=code)


class IsReservationParticipant(permissions.BasePermission):
    """Allow access only to the renter or host of the reservation."""

    message = "You are not part of this reservation."

    def has_object_permission(self, request, view, obj) -> bool:
        return obj.is_participant(request.user)


class ReservationViewSet(viewsets.GenericViewSet):
    """Reservation creation and state transitions."""

    serializer_class = ReservationSerializer
    permission_classes = (permissions.IsAuthenticated, IsReservationParticipant)

    def get_queryset(self):
        user = self.request.user
        return (
            Reservation.objects.select_related("order")
            .filter(Q(renter=user) | Q(host=user))
            .order_by("-created_at")
        )

    def get_object(self):
        obj = get_object_or_404(Reservation.objects.select_related("listing"), pk=self.kwargs["pk"])
        self.check_object_permissions(self.request, obj)
        return obj

    def list(self, request, *args, **kwargs):
        """Return reservations where the user is renter or host."""
        qs = self.get_queryset()
        role = request.query_params.get("role")
        if role == "renter":
            qs = qs.filter(renter=request.user)
        elif role == "host":
            qs = qs.filter(host=request.user)
        return Response(self.get_serializer(qs, many=True).data)

    def retrieve(self, request, *args, **kwargs):
        return Response(self.get_serializer(self.get_object()).data)

    def create(self, request, *args, **kwargs):
        payload = ReservationCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        try:
            reservation = create_reservation(
                listing_id=data["listing_id"],
                renter=request.user,
                start_date=data["start_date"],
                end_date=data["end_date"],
                addons=data.get("addons"),
            )
        except ValidationError as exc:
            return _error_response(exc)

        _safe_notify(notification_tasks.send_reservation_request_email, reservation.id)
        _push_reservation_event(reservation, "reservation:created")
        post_system_message(
            reservation.renter_id,
            reservation.host_id,
            f"Reservation request sent for {reservation.listing_title} "
            f"({reservation.start_date.isoformat()} to {reservation.end_date.isoformat()}).",
        )
        return Response(
            {"ok": True, "reservation": self.get_serializer(reservation).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["patch", "put"], url_path="status")
    def update_status(self, request, pk=None):
        reservation = self.get_object()
        payload = ReservationStatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        new_status = payload.validated_data["status"].strip().lower()
        try:
            reservation = change_status(reservation.id, request.user, new_status)
        except PermissionDenied as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
        except ValidationError as exc:
            return _error_response(exc)

        _safe_notify(
            notification_tasks.send_reservation_status_email,
            reservation.renter_id,
            reservation.id,
            reservation.status,
        )
        _push_reservation_event(reservation, "reservation:status_changed")
        text = STATUS_MESSAGES.get(reservation.status)
        if text:
            other_id = (
                reservation.renter_id
                if request.user.id == reservation.host_id
                else reservation.host_id
            )
            post_system_message(request.user.id, other_id, f"{text}: {reservation.listing_title}.")
        return Response({"ok": True, "reservation": self.get_serializer(reservation).data})

    @action(detail=True, methods=["patch", "put"], url_path="dates")
    def update_dates(self, request, pk=None):
        reservation = self.get_object()
        payload = ReservationDatesSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            reservation = propose_new_dates(
                reservation,
                request.user,
                payload.validated_data["start_date"],
                payload.validated_data["end_date"],
            )
        except PermissionDenied as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
        except ValidationError as exc:
            return _error_response(exc)

        _push_reservation_event(reservation, "reservation:dates_proposed")
        other_id = (
            reservation.renter_id if request.user.id == reservation.host_id else reservation.host_id
        )
        post_system_message(
            request.user.id,
            other_id,
            f"New dates proposed for {reservation.listing_title}: "
            f"{reservation.start_date.isoformat()} to {reservation.end_date.isoformat()}.",
        )
        return Response({"ok": True, "reservation": self.get_serializer(reservation).data})

    @action(detail=True, methods=["post"], url_path="create-order")
    def create_order(self, request, pk=None):
        reservation = self.get_object()
        try:
            order = create_order_from_reservation(reservation.id, request.user)
        except PermissionDenied as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
        except ValidationError as exc:
            return _error_response(exc)

        _safe_notify(notification_tasks.send_order_created_email, order.id)
        reservation.refresh_from_db(fields=["status"])
        _push_reservation_event(
            reservation,
            "reservation:confirmed",
            order_id=order.id,
            order_number=order.order_number,
        )
        return Response(
            {"ok": True, "order": OrderSerializer(order).data},
            status=status.HTTP_201_CREATED,
        )


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    """Orders where the user is renter or host."""

    serializer_class = OrderSerializer
    permission_classes = (permissions.IsAuthenticated,)

    def get_queryset(self):
        user = self.request.user
        qs = Order.objects.filter(Q(renter=user) | Q(host=user)).order_by("-created_at")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs
