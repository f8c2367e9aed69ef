from unittest import mock

import pytest
import requests
import responses
from django.core.cache import cache

from core import geo


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


def _response(status_code=200, payload=None):
    response = mock.Mock(status_code=status_code, ok=200 <= status_code < 300)
    response.json.return_value = payload
    return response


ZIP_PAYLOAD = {"places": [{"latitude": "34.0901", "longitude": "-118.4065"}]}


def test_zip_lookup_parses_and_caches():
    with mock.patch("core.geo.requests.get", return_value=_response(payload=ZIP_PAYLOAD)) as get:
        assert geo.get_zip_coordinates("90210") == (34.0901, -118.4065)
        assert geo.get_zip_coordinates(" 90210 ") == (34.0901, -118.4065)

    assert get.call_count == 1
    assert get.call_args.args[0].endswith("90210")


@pytest.mark.parametrize("zip_code", [None, "", "9021", "90210-1234", "abcde"])
def test_invalid_zip_skips_lookup(zip_code):
    with mock.patch("core.geo.requests.get") as get:
        assert geo.get_zip_coordinates(zip_code) is None
    get.assert_not_called()


def test_unknown_zip_stops_after_404():
    with mock.patch("core.geo.requests.get", return_value=_response(404)) as get:
        assert geo.get_zip_coordinates("00000") is None
    assert get.call_count == 1


def test_transient_failures_are_retried():
    replies = [
        requests.ConnectionError("reset"),
        _response(503),
        _response(payload=ZIP_PAYLOAD),
    ]
    with mock.patch("core.geo.requests.get", side_effect=replies) as get:
        assert geo.get_zip_coordinates("90210") == (34.0901, -118.4065)
    assert get.call_count == 3


def test_failed_lookups_are_not_cached():
    with mock.patch("core.geo.requests.get", return_value=_response(500)):
        assert geo.get_zip_coordinates("10001") is None
    with mock.patch("core.geo.requests.get", return_value=_response(payload=ZIP_PAYLOAD)):
        assert geo.get_zip_coordinates("10001") == (34.0901, -118.4065)


def test_malformed_payload_returns_none():
    with mock.patch("core.geo.requests.get", return_value=_response(payload={"places": []})):
        assert geo.get_zip_coordinates("10001") is None


def test_distance_miles():
    new_york = (40.7128, -74.0060)
    los_angeles = (34.0522, -118.2437)

    assert geo.calculate_distance_miles(new_york, los_angeles) == pytest.approx(2445.6, abs=1)
    assert geo.calculate_distance_miles(new_york, new_york) == 0.0


def test_reverse_geocode_builds_city_label():
    payload = {"address": {"town": "Beverly Hills", "state": "California", "postcode": "90210"}}
    with mock.patch("core.geo.requests.get", return_value=_response(payload=payload)) as get:
        result = geo.reverse_geocode(34.09, -118.41)

    assert result == {"city": "Beverly Hills, California", "postalCode": "90210"}
    assert get.call_args.kwargs["params"]["format"] == "jsonv2"
    assert "User-Agent" in get.call_args.kwargs["headers"]


def test_reverse_geocode_requires_address():
    with mock.patch("core.geo.requests.get", return_value=_response(payload={"error": "x"})):
        with pytest.raises(geo.ReverseGeocodeError):
            geo.reverse_geocode(0, 0)


def test_reverse_geocode_wraps_transport_errors():
    with mock.patch("core.geo.requests.get", side_effect=requests.Timeout("slow")):
        with pytest.raises(geo.ReverseGeocodeError):
            geo.reverse_geocode(0, 0)


ZIP_URL = "https://api.zippopotam.us/us/{zip}"


def test_zip_lookup_over_http(mocked_http, settings):
    settings.ZIP_LOOKUP_URL = ZIP_URL
    mocked_http.add(responses.GET, ZIP_URL.format(zip="90210"), json=ZIP_PAYLOAD, status=200)

    assert geo.get_zip_coordinates("90210") == (34.0901, -118.4065)
    assert geo.get_zip_coordinates("90210") == (34.0901, -118.4065)
    assert len(mocked_http.calls) == 1
    assert mocked_http.calls[0].request.headers["Accept"] == "application/json"


def test_zip_lookup_retries_server_errors_over_http(mocked_http, settings):
    settings.ZIP_LOOKUP_URL = ZIP_URL
    url = ZIP_URL.format(zip="10001")
    mocked_http.add(responses.GET, url, status=503)
    mocked_http.add(responses.GET, url, json=ZIP_PAYLOAD, status=200)

    assert geo.get_zip_coordinates("10001") == (34.0901, -118.4065)
    assert len(mocked_http.calls) == 2


def test_zip_lookup_gives_up_when_offline(mocked_http):
    assert geo.get_zip_coordinates("60601") is None
    assert len(mocked_http.calls) == 3


def test_zip_lookup_rejects_non_finite_coordinates(mocked_http, settings):
    settings.ZIP_LOOKUP_URL = ZIP_URL
    url = ZIP_URL.format(zip="30301")
    mocked_http.add(
        responses.GET,
        url,
        json={"places": [{"latitude": "NaN", "longitude": "inf"}]},
        status=200,
    )

    assert geo.get_zip_coordinates("30301") is None
    assert len(mocked_http.calls) == 3
