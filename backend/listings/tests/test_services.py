from unittest import mock

import pytest
from django.db import transaction

from listings import services
from listings.models import Listing

pytestmark = pytest.mark.django_db


def test_replace_images_returns_dropped_urls(listing):
    old = listing.images.first().url

    dropped = services.replace_images(listing, ["https://cdn.example.com/new.jpg"])

    assert dropped == [old]
    assert listing.image_urls == ["https://cdn.example.com/new.jpg"]


def test_replace_categories_dedupes_case_insensitively(listing):
    services.replace_categories(listing, ["Tools", " tools ", "Outdoor"])
    assert listing.category_names == ["Tools", "Outdoor"]


def test_distance_to_needs_both_points(listing):
    assert services.distance_to(listing, None) is None
    listing.latitude = None
    assert services.distance_to(listing, (40.0, -73.0)) is None


def test_delete_image_objects_skips_foreign_urls():
    assert services.delete_image_objects(["https://elsewhere.example.com/a.jpg"]) == 0


def test_delete_image_objects_runs_after_commit(listing, django_capture_on_commit_callbacks):
    url = listing.images.first().url

    with mock.patch("listings.services.s3.delete_object") as delete_object:
        with django_capture_on_commit_callbacks(execute=True):
            with transaction.atomic():
                assert services.delete_image_objects([url]) == 1
                delete_object.assert_not_called()

    delete_object.assert_called_once_with("uploads/listings/drill.jpg")


def test_delete_image_objects_logs_failures(listing, django_capture_on_commit_callbacks, caplog):
    url = listing.images.first().url

    with mock.patch("listings.services.s3.delete_object", side_effect=RuntimeError("boom")):
        with django_capture_on_commit_callbacks(execute=True):
            services.delete_image_objects([url])

    assert "failed to delete image object" in caplog.text


def test_search_listings_by_host(listing, other_user):
    Listing.objects.create(host=other_user, name="Kayak", price_cents=4000)

    qs = services.search_listings(Listing.objects.all(), q=None, host_id=other_user.id)

    assert [row.name for row in qs] == ["Kayak"]
