import pytest

from listings.models import Favorite
from reservations.tests.fixtures import auth_client

pytestmark = pytest.mark.django_db


def test_add_and_list_favorite(listing, renter_user):
    client = auth_client(renter_user)

    first = client.post("/api/favorites/", {"listing_id": listing.id}, format="json")
    again = client.post("/api/favorites/", {"listing_id": listing.id}, format="json")
    listed = client.get("/api/favorites/")

    assert first.status_code == 201
    assert first.data["alreadyFavorited"] is False
    assert again.status_code == 200
    assert again.data["alreadyFavorited"] is True
    assert Favorite.objects.count() == 1
    assert listed.data[0]["listing"]["id"] == listing.id


def test_favorite_requires_listing_id(renter_user):
    resp = auth_client(renter_user).post("/api/favorites/", {}, format="json")
    assert resp.status_code == 400


def test_favorite_unknown_listing(renter_user):
    resp = auth_client(renter_user).post("/api/favorites/", {"listing_id": 424242}, format="json")
    assert resp.status_code == 404


def test_check_and_remove_favorite(listing, renter_user):
    client = auth_client(renter_user)
    Favorite.objects.create(user=renter_user, listing=listing)

    assert client.get(f"/api/favorites/{listing.id}/check/").data["isFavorited"] is True
    assert client.delete(f"/api/favorites/{listing.id}/").status_code == 200
    assert client.get(f"/api/favorites/{listing.id}/check/").data["isFavorited"] is False
    assert client.delete(f"/api/favorites/{listing.id}/").status_code == 404


def test_favorites_require_authentication(api_client):
    assert api_client.get("/api/favorites/").status_code == 401
