"""Shared fixtures for marketplace tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from listings.models import Listing, ListingAddon, ListingCategory, ListingImage
from reservations.domain import create_order_from_reservation, create_reservation
from reservations.models import Reservation

User = get_user_model()


def _create_user(username: str, **extra) -> User:
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="testpass",
        first_name=username.capitalize(),
        last_name="Tester",
        **extra,
    )


def auth_client(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


def spy_task(monkeypatch, task):
    """Replace ``task.delay`` with a recorder and return the list of calls."""
    calls = []

    def _capture(*args, **kwargs):
        calls.append({"args": args, "kwargs": kwargs})

    monkeypatch.setattr(task, "delay", _capture)
    return calls


@pytest.fixture
def host_user(db):
    return _create_user("host")


@pytest.fixture
def renter_user(db):
    return _create_user("renter")


@pytest.fixture
def other_user(db):
    return _create_user("other")


@pytest.fixture
def support_user(db, settings):
    user = _create_user("support", moderator=True)
    settings.SUPPORT_USER_ID = user.id
    return user


@pytest.fixture
def moderator_user(db):
    return _create_user("moderator", moderator=True)


@pytest.fixture
def admin_user(db):
    return _create_user("admin", admin=True)


@pytest.fixture
def listing(host_user):
    listing = Listing.objects.create(
        host=host_user,
        name="Cordless Drill",
        description="18V drill with two batteries.",
        price_cents=2500,
        zip_code="10001",
        latitude=Decimal("40.750000"),
        longitude=Decimal("-73.997000"),
    )
    ListingCategory.objects.create(listing=listing, name="tools")
    ListingImage.objects.create(
        listing=listing,
        url="https://lendit-test.s3.us-east-1.amazonaws.com/uploads/listings/drill.jpg",
        position=0,
    )
    ListingAddon.objects.create(listing=listing, name="Drill bits", price_cents=500, quantity=2)
    ListingAddon.objects.create(
        listing=listing, name="Sanding pads", price_cents=300, consumable=True, quantity=5
    )
    return listing


@pytest.fixture
def reservation(listing, renter_user) -> Reservation:
    return create_reservation(
        listing_id=listing.id,
        renter=renter_user,
        start_date=date(2030, 6, 1),
        end_date=date(2030, 6, 5),
    )


@pytest.fixture
def accepted_reservation(reservation) -> Reservation:
    Reservation.objects.filter(pk=reservation.pk).update(status=Reservation.Status.ACCEPTED)
    reservation.refresh_from_db()
    return reservation


@pytest.fixture
def order(accepted_reservation, renter_user):
    return create_order_from_reservation(accepted_reservation.id, renter_user)
