import pytest

from reservations.tests.fixtures import auth_client
from reviews.models import ListingReview

pytestmark = pytest.mark.django_db


def _review(client, listing, rating=4, comment="Worked great"):
    return client.post(
        "/api/listing-reviews/",
        {"listing_id": listing.id, "rating": rating, "comment": comment},
        format="json",
    )


def test_create_review_updates_listing_stats(listing, renter_user, other_user):
    first = _review(auth_client(renter_user), listing, rating=5)
    second = _review(auth_client(other_user), listing, rating=2)

    assert first.status_code == 201, first.data
    assert first.data["reviewer_id"] == renter_user.id
    assert first.data["listing_name"] == "Cordless Drill"
    assert second.status_code == 201
    listing.refresh_from_db()
    assert listing.review_count == 2
    assert listing.rating == 3.5


def test_host_cannot_review_own_listing(listing, host_user):
    resp = _review(auth_client(host_user), listing)

    assert resp.status_code == 400
    assert not ListingReview.objects.exists()


@pytest.mark.parametrize("rating", [0, 6])
def test_rating_out_of_range(listing, renter_user, rating):
    resp = _review(auth_client(renter_user), listing, rating=rating)

    assert resp.status_code == 400
    assert resp.data["rating"] == ["rating must be between 1 and 5"]


def test_blank_comment_rejected(listing, renter_user):
    resp = _review(auth_client(renter_user), listing, comment="   ")
    assert resp.data["comment"] == ["comment is required"]


def test_reviews_for_listing_and_host_are_public(api_client, listing, renter_user):
    _review(auth_client(renter_user), listing, rating=4)

    by_listing = api_client.get(f"/api/listing-reviews/listing/{listing.id}/")
    by_host = api_client.get(f"/api/listing-reviews/host/{listing.host_id}/")

    assert by_listing.status_code == 200
    assert by_listing.data["review_count"] == 1
    assert by_listing.data["rating"] == 4
    assert len(by_host.data["reviews"]) == 1


def test_only_author_can_edit_or_delete(listing, renter_user, other_user):
    review_id = _review(auth_client(renter_user), listing).data["id"]
    url = f"/api/listing-reviews/{review_id}/"

    assert auth_client(other_user).patch(url, {"rating": 1}, format="json").status_code == 403
    assert auth_client(other_user).delete(url).status_code == 403

    edited = auth_client(renter_user).patch(url, {"rating": 2}, format="json")
    assert edited.status_code == 200
    listing.refresh_from_db()
    assert listing.rating == 2

    assert auth_client(renter_user).delete(url).data == {"ok": True}
    listing.refresh_from_db()
    assert listing.review_count == 0
    assert listing.rating is None


def test_helpful_counter(listing, renter_user, other_user):
    review_id = _review(auth_client(renter_user), listing).data["id"]

    resp = auth_client(other_user).patch(f"/api/listing-reviews/{review_id}/helpful/")

    assert resp.data == {"ok": True, "helpful_count": 1}
