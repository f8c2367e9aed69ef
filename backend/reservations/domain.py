"""Domain helpers for reservation validation and state transitions."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.utils import timezone

from listings.models import Listing

from .fees import compute_fees
from .models import Order, Reservation

logger = logging.getLogger(__name__)

# Statuses that hold dates on a listing's calendar.
BLOCKING_STATUSES = (
    Reservation.Status.PENDING,
    Reservation.Status.ACCEPTED,
)

ALLOWED_TRANSITIONS = {
    Reservation.Status.PENDING: {
        Reservation.Status.ACCEPTED,
        Reservation.Status.REJECTED,
        Reservation.Status.CANCELLED,
    },
    Reservation.Status.ACCEPTED: {
        Reservation.Status.REJECTED,
        Reservation.Status.CANCELLED,
    },
    Reservation.Status.REJECTED: {Reservation.Status.ACCEPTED},
    Reservation.Status.CANCELLED: set(),
    Reservation.Status.CONFIRMED: set(),
}

HOST_ONLY_STATUSES = {Reservation.Status.ACCEPTED, Reservation.Status.REJECTED}


class ReservationConflict(ValidationError):
    """Requested dates intersect a pending or accepted reservation."""


def reservation_days(start_date: date, end_date: date) -> int:
    """Inclusive day count; a same-day rental is one day."""
    return (end_date - start_date).days + 1


def validate_reservation_dates(start_date: date | None, end_date: date | None) -> None:
    """Validate that the provided dates exist and form a valid range."""
    if not start_date or not end_date:
        raise ValidationError({"non_field_errors": ["Start and end dates are required."]})
    if start_date > end_date:
        raise ValidationError({"end_date": ["End date must be on or after start date."]})


def ensure_no_conflict(
    listing: Listing,
    start_date: date,
    end_date: date,
    *,
    exclude_reservation_id: Optional[int] = None,
) -> None:
    """Raise ReservationConflict when the inclusive range touches a blocking reservation."""
    qs = Reservation.objects.filter(listing=listing, status__in=BLOCKING_STATUSES)
    if exclude_reservation_id is not None:
        qs = qs.exclude(pk=exclude_reservation_id)
    if qs.filter(start_date__lte=end_date, end_date__gte=start_date).exists():
        raise ReservationConflict(
            {"non_field_errors": ["Requested dates are not available for this listing."]}
        )


def blocking_ranges(listing: Listing) -> list[tuple[date, date]]:
    """Return the (start, end) ranges currently held on a listing."""
    rows = (
        Reservation.objects.filter(listing=listing, status__in=BLOCKING_STATUSES)
        .order_by("start_date", "end_date")
        .values_list("start_date", "end_date")
    )
    return [(start, end) for start, end in rows]


def resolve_addons(listing: Listing, requested: Iterable[dict] | None) -> list[dict]:
    """
    Turn ``[{"id": addon_id, "qty": n}, ...]`` into snapshot rows priced from the listing.
    """
    requested = list(requested or [])
    if not requested:
        return []
    available = {addon.id: addon for addon in listing.addons.all()}
    snapshot = []
    for item in requested:
        try:
            addon_id = int(item.get("id"))
            qty = int(item.get("qty") or 1)
        except (AttributeError, TypeError, ValueError):
            raise ValidationError({"addons": ["Each addon needs an id and a quantity."]})
        addon = available.get(addon_id)
        if addon is None:
            raise ValidationError({"addons": [f"Addon {addon_id} is not offered on this listing."]})
        if qty < 1 or qty > max(addon.quantity, 1):
            raise ValidationError({"addons": [f"Invalid quantity for {addon.name}."]})
        snapshot.append(
            {
                "id": addon.id,
                "name": addon.name,
                "price_cents": addon.price_cents,
                "consumable": addon.consumable,
                "qty": qty,
            }
        )
    return snapshot


def create_reservation(
    *,
    listing_id: int,
    renter,
    start_date: date,
    end_date: date,
    addons: Iterable[dict] | None = None,
) -> Reservation:
    """
    Create a pending reservation.

    The listing row is locked for the duration of the overlap check and the
    insert, so overlapping requests for one listing are serialized.
    """
    validate_reservation_dates(start_date, end_date)
    with transaction.atomic():
        listing = (
            Listing.objects.select_for_update(of=("self",))
            .select_related("host")
            .filter(pk=listing_id)
            .first()
        )
        if listing is None:
            raise ValidationError({"listing_id": ["Listing not found."]})
        if not listing.enabled:
            raise ValidationError({"listing_id": ["This listing is not accepting reservations."]})
        if listing.host_id == renter.id:
            raise ValidationError({"listing_id": ["You cannot reserve your own listing."]})

        ensure_no_conflict(listing, start_date, end_date)

        addon_rows = resolve_addons(listing, addons)
        host = listing.host
        reservation = Reservation.objects.create(
            listing=listing,
            renter=renter,
            host=host,
            start_date=start_date,
            end_date=end_date,
            status=Reservation.Status.PENDING,
            host_name=host.name,
            host_email=host.email or "",
            renter_name=renter.name,
            renter_email=renter.email or "",
            listing_title=listing.name or "",
            listing_image=listing.primary_image_url,
            listing_latitude=listing.latitude,
            listing_longitude=listing.longitude,
            daily_price_cents=listing.price_cents,
            total_days=reservation_days(start_date, end_date),
            addons=addon_rows,
            addons_total_cents=sum(row["price_cents"] * row["qty"] for row in addon_rows),
        )
    logger.info(
        "reservations: reservation %s created for listing %s by %s",
        reservation.id,
        listing_id,
        renter.id,
    )
    return reservation


def hours_until_start(reservation: Reservation, now: datetime | None = None) -> float:
    now = now or timezone.now()
    start = timezone.make_aware(
        datetime.combine(reservation.start_date, time.min),
        timezone.get_current_timezone(),
    )
    return (start - now) / timedelta(hours=1)


def assert_can_change_status(
    reservation: Reservation,
    user,
    new_status: str,
    *,
    now: datetime | None = None,
) -> None:
    """Raise ValidationError or PermissionDenied if ``user`` may not move the reservation."""
    if new_status not in Reservation.Status.values:
        raise ValidationError({"status": ["Invalid status."]})
    if not reservation.is_participant(user):
        raise PermissionDenied("You are not part of this reservation.")
    if new_status == Reservation.Status.CONFIRMED:
        raise ValidationError(
            {"status": ["Reservations are confirmed by creating an order."]}
        )
    if new_status in HOST_ONLY_STATUSES and reservation.host_id != user.id:
        raise PermissionDenied("Only the host can accept or reject this reservation.")
    if new_status == reservation.status:
        raise ValidationError({"status": [f"Reservation is already {new_status}."]})
    if new_status not in ALLOWED_TRANSITIONS.get(reservation.status, set()):
        raise ValidationError(
            {"status": [f"Cannot change a {reservation.status} reservation to {new_status}."]}
        )
    if (
        reservation.status == Reservation.Status.REJECTED
        and new_status == Reservation.Status.ACCEPTED
    ):
        min_hours = getattr(settings, "REACCEPT_MIN_HOURS", 24)
        if hours_until_start(reservation, now) < min_hours:
            raise ValidationError(
                {
                    "status": [
                        f"Rejected reservations can only be re-accepted at least "
                        f"{min_hours} hours before they start."
                    ]
                }
            )


def change_status(
    reservation_id: int,
    user,
    new_status: str,
    *,
    now: datetime | None = None,
) -> Reservation:
    with transaction.atomic():
        reservation = (
            Reservation.objects.select_for_update(of=("self",))
            .select_related("listing")
            .get(pk=reservation_id)
        )
        assert_can_change_status(reservation, user, new_status, now=now)
        if new_status == Reservation.Status.ACCEPTED:
            ensure_no_conflict(
                reservation.listing,
                reservation.start_date,
                reservation.end_date,
                exclude_reservation_id=reservation.id,
            )
        reservation.status = new_status
        reservation.touch(user)
        reservation.save(update_fields=["status", "last_modified", "modified_by", "updated_at"])
    return reservation


def propose_new_dates(
    reservation: Reservation,
    user,
    start_date: date | None,
    end_date: date | None,
) -> Reservation:
    """Overwrite the dates and send the reservation back to pending."""
    if not reservation.is_participant(user):
        raise PermissionDenied("You are not part of this reservation.")
    validate_reservation_dates(start_date, end_date)
    reservation.start_date = start_date
    reservation.end_date = end_date
    reservation.total_days = reservation_days(start_date, end_date)
    reservation.status = Reservation.Status.PENDING
    reservation.new_dates_proposed = True
    reservation.touch(user)
    reservation.save(
        update_fields=[
            "start_date",
            "end_date",
            "total_days",
            "status",
            "new_dates_proposed",
            "last_modified",
            "modified_by",
            "updated_at",
        ]
    )
    return reservation


def create_order_from_reservation(reservation_id: int, user) -> Order:
    """Price an accepted reservation, create its order and confirm it in one transaction."""
    with transaction.atomic():
        reservation = Reservation.objects.select_for_update().get(pk=reservation_id)
        if not reservation.is_participant(user):
            raise PermissionDenied("You are not part of this reservation.")
        if reservation.status != Reservation.Status.ACCEPTED:
            raise ValidationError(
                {"status": ["Only accepted reservations can be turned into orders."]}
            )

        fees = compute_fees(
            daily_price_cents=reservation.daily_price_cents,
            total_days=reservation.total_days,
            addons=reservation.addons,
        )
        order = Order.objects.create(
            reservation=reservation,
            listing_id=reservation.listing_id,
            host_id=reservation.host_id,
            renter_id=reservation.renter_id,
            host_name=reservation.host_name,
            host_email=reservation.host_email,
            renter_name=reservation.renter_name,
            renter_email=reservation.renter_email,
            listing_title=reservation.listing_title,
            listing_image=reservation.listing_image,
            listing_latitude=reservation.listing_latitude,
            listing_longitude=reservation.listing_longitude,
            start_date=reservation.start_date,
            end_date=reservation.end_date,
            daily_price_cents=reservation.daily_price_cents,
            total_days=reservation.total_days,
            rental_type=reservation.rental_type,
            currency=getattr(settings, "ORDER_CURRENCY", "usd"),
            addons=reservation.addons,
            subtotal_cents=fees.subtotal_cents,
            daily_total_cents=fees.daily_total_cents,
            tax_cents=fees.tax_cents,
            host_earns_cents=fees.host_earns_cents,
            renter_pays_cents=fees.renter_pays_cents,
            platform_commission_total_cents=fees.platform_commission_total_cents,
            total_cents=fees.total_cents,
            status=Order.Status.UPCOMING,
        )
        reservation.status = Reservation.Status.CONFIRMED
        reservation.touch(user)
        reservation.save(update_fields=["status", "last_modified", "modified_by", "updated_at"])
    logger.info(
        "reservations: order %s created from reservation %s", order.order_number, reservation.id
    )
    return order


def advance_orders(today: date | None = None) -> dict[str, int]:
    """Move upcoming orders to active once started and active orders to completed once ended."""
    today = today or timezone.localdate()
    activated = Order.objects.filter(
        status=Order.Status.UPCOMING,
        start_date__lte=today,
        end_date__gte=today,
    ).update(status=Order.Status.ACTIVE, updated_at=timezone.now())
    completed = Order.objects.filter(
        status__in=(Order.Status.UPCOMING, Order.Status.ACTIVE),
        end_date__lt=today,
    ).update(status=Order.Status.COMPLETED, updated_at=timezone.now())
    return {"activated": activated, "completed": completed}
