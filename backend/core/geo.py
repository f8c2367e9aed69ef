"""
Zip code geocoding and distance helpers.

Zip lookups hit a public zip -> coordinates API and are cached through Django's
cache backend, so repeated searches for the same zip stay local.
"""

from __future__ import annotations

import logging
import math
import re
import time
from typing import Optional, Tuple

import requests
from django.conf import settings
from django.core.cache import cache

__all__ = [
    "Coordinates",
    "ReverseGeocodeError",
    "calculate_distance_miles",
    "get_zip_coordinates",
    "reverse_geocode",
]

logger = logging.getLogger(__name__)

Coordinates = Tuple[float, float]

ZIP_RE = re.compile(r"^\d{5}$")
EARTH_RADIUS_MILES = 3958.8
_CACHE_PREFIX = "geo:zip:"
_CACHE_MISS = object()


class ReverseGeocodeError(Exception):
    """Raised when the reverse geocode service fails or returns garbage."""


def get_zip_coordinates(zip_code: Optional[str]) -> Optional[Coordinates]:
    """
    Return (latitude, longitude) for a 5-digit US zip, or None.

    Failed lookups are not cached so a later request can retry.
    """
    zip_code = (zip_code or "").strip()
    if not ZIP_RE.match(zip_code):
        return None

    cache_key = f"{_CACHE_PREFIX}{zip_code}"
    cached = cache.get(cache_key, _CACHE_MISS)
    if cached is not _CACHE_MISS:
        return tuple(cached)

    coords = _fetch_zip_coordinates(zip_code)
    if coords is not None:
        cache.set(cache_key, list(coords), getattr(settings, "GEOCODE_CACHE_TTL", 86400))
    return coords


def _fetch_zip_coordinates(zip_code: str) -> Optional[Coordinates]:
    url = settings.ZIP_LOOKUP_URL.format(zip=zip_code)
    timeout = float(getattr(settings, "GEOCODE_REQUEST_TIMEOUT", 5.0))
    delays = getattr(settings, "GEOCODE_RETRY_DELAYS", [0, 0.25, 0.75])

    for attempt, delay in enumerate(delays, start=1):
        if delay:
            time.sleep(delay)
        try:
            response = requests.get(url, headers={"Accept": "application/json"}, timeout=timeout)
        except requests.RequestException:
            logger.info("geo: zip lookup attempt %s for %s failed", attempt, zip_code, exc_info=True)
            continue

        if response.status_code == 404:
            # Unknown zip; retrying will not help.
            return None
        if not response.ok:
            logger.info(
                "geo: zip lookup attempt %s for %s returned %s",
                attempt,
                zip_code,
                response.status_code,
            )
            continue

        coords = _parse_zip_payload(response)
        if coords is not None:
            return coords

    logger.warning("geo: giving up on zip %s after %s attempts", zip_code, len(delays))
    return None


def _parse_zip_payload(response) -> Optional[Coordinates]:
    try:
        payload = response.json()
        place = payload["places"][0]
        lat, lon = float(place["latitude"]), float(place["longitude"])
    except (ValueError, KeyError, IndexError, TypeError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    return lat, lon


def calculate_distance_miles(origin: Coordinates, destination: Coordinates) -> float:
    """Great-circle (haversine) distance in miles, rounded to one decimal."""
    lat1, lon1 = (math.radians(float(v)) for v in origin)
    lat2, lon2 = (math.radians(float(v)) for v in destination)
    d_lat = lat2 - lat1
    d_lon = lon2 - lon1
    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_MILES * c, 1)


def reverse_geocode(latitude: float, longitude: float) -> dict:
    """
    Resolve coordinates to {"city": "City, State", "postalCode": ...}.

    Raises ReverseGeocodeError on transport or payload problems.
    """
    params = {
        "lat": latitude,
        "lon": longitude,
        "format": "jsonv2",
        "zoom": 12,
        "addressdetails": 1,
    }
    headers = {
        "Accept": "application/json",
        "User-Agent": settings.NOMINATIM_USER_AGENT,
    }
    timeout = float(getattr(settings, "GEOCODE_REQUEST_TIMEOUT", 5.0))
    try:
        response = requests.get(
            settings.NOMINATIM_REVERSE_URL,
            params=params,
            headers=headers,
            timeout=timeout,
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise ReverseGeocodeError(str(exc)) from exc

    address = payload.get("address") if isinstance(payload, dict) else None
    if not isinstance(address, dict):
        raise ReverseGeocodeError("Missing address in reverse geocode response")

    city = _first_text(
        address, "city", "town", "village", "hamlet", "municipality", "locality", "neighbourhood"
    )
    state = _first_text(address, "state", "region")
    label = ", ".join(part for part in (city, state) if part) or None
    return {"city": label, "postalCode": _first_text(address, "postcode")}


def _first_text(payload: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
