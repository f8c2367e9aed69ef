from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.db import transaction
from django.db.models import Q, QuerySet

from core.geo import Coordinates, calculate_distance_miles
from storage import s3

from .models import Listing, ListingAddon, ListingCategory, ListingImage

logger = logging.getLogger(__name__)


def search_listings(
    qs: QuerySet[Listing],
    q: str | None,
    category: str | None = None,
    host_id: int | None = None,
    price_min_cents: int | None = None,
    price_max_cents: int | None = None,
) -> QuerySet[Listing]:
    if q:
        qs = qs.filter(
            Q(name__icontains=q) | Q(description__icontains=q) | Q(location_city__icontains=q)
        )
    if category:
        qs = qs.filter(categories__name__iexact=category)
    if host_id is not None:
        qs = qs.filter(host_id=host_id)
    if price_min_cents is not None:
        qs = qs.filter(price_cents__gte=price_min_cents)
    if price_max_cents is not None:
        qs = qs.filter(price_cents__lte=price_max_cents)
    return qs.distinct().order_by("-created_at")


def listing_coordinates(listing: Listing) -> Optional[Coordinates]:
    if listing.latitude is None or listing.longitude is None:
        return None
    return float(listing.latitude), float(listing.longitude)


def distance_to(listing: Listing, origin: Optional[Coordinates]) -> Optional[float]:
    """Miles from origin to the listing, or None when either side is unknown."""
    destination = listing_coordinates(listing)
    if origin is None or destination is None:
        return None
    return calculate_distance_miles(origin, destination)


def replace_categories(listing: Listing, names: Iterable[str]) -> None:
    listing.categories.all().delete()
    seen = set()
    rows = []
    for name in names:
        cleaned = name.strip()
        if cleaned and cleaned.lower() not in seen:
            seen.add(cleaned.lower())
            rows.append(ListingCategory(listing=listing, name=cleaned))
    ListingCategory.objects.bulk_create(rows)


def replace_images(listing: Listing, urls: Iterable[str]) -> list[str]:
    """Swap the image rows; return URLs that are no longer referenced."""
    previous = set(listing.images.values_list("url", flat=True))
    listing.images.all().delete()
    urls = list(urls)
    ListingImage.objects.bulk_create(
        [ListingImage(listing=listing, url=url, position=index) for index, url in enumerate(urls)]
    )
    return sorted(previous - set(urls))


def replace_addons(listing: Listing, addons: Iterable[dict]) -> None:
    listing.addons.all().delete()
    ListingAddon.objects.bulk_create(
        [
            ListingAddon(
                listing=listing,
                name=addon["name"],
                price_cents=addon.get("price_cents", 0),
                consumable=addon.get("consumable", False),
                quantity=addon.get("quantity", 1),
            )
            for addon in addons
        ]
    )


def delete_image_objects(urls: Iterable[str]) -> int:
    """
    Best-effort removal of S3 objects behind listing image URLs.

    Runs after the surrounding transaction commits; failures are logged.
    Returns how many deletes were attempted.
    """
    keys = [key for key in (s3.key_from_url(url) for url in urls) if key]
    if not keys:
        return 0

    def _delete():
        for key in keys:
            try:
                s3.delete_object(key)
            except Exception:
                logger.warning("listings: failed to delete image object %s", key, exc_info=True)

    transaction.on_commit(_delete)
    return len(keys)
