from unittest import mock

import pytest

from core.geo import ReverseGeocodeError
from core.redis import push_event, push_to_users


def test_reverse_geocode_view(api_client):
    with mock.patch(
        "core.views.reverse_geocode",
        return_value={"city": "Austin, Texas", "postalCode": "78701"},
    ) as reverse:
        resp = api_client.post(
            "/api/geocode/reverse/", {"latitude": 30.27, "longitude": -97.74}, format="json"
        )

    assert resp.status_code == 200
    assert resp.data == {"ok": True, "city": "Austin, Texas", "postalCode": "78701"}
    reverse.assert_called_once_with(30.27, -97.74)


def test_reverse_geocode_view_validates_ranges(api_client):
    resp = api_client.post(
        "/api/geocode/reverse/", {"latitude": 91, "longitude": 0}, format="json"
    )
    assert resp.status_code == 400
    assert "latitude" in resp.data


def test_reverse_geocode_view_upstream_failure(api_client):
    with mock.patch("core.views.reverse_geocode", side_effect=ReverseGeocodeError("down")):
        resp = api_client.post(
            "/api/geocode/reverse/", {"latitude": 1, "longitude": 1}, format="json"
        )

    assert resp.status_code == 502
    assert resp.data["ok"] is False


@pytest.mark.django_db
def test_healthz(client):
    resp = client.get("/api/healthz")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "db": True}


def test_push_event_writes_to_user_stream(_fake_redis):
    entry = push_event(7, "chat:new_message", {"thread_id": 1})

    assert entry == "1-0"
    key, data = _fake_redis.xadd.call_args.args
    assert key == "events:user:7"
    assert data == {"type": "chat:new_message", "payload": '{"thread_id":1}'}


def test_push_event_swallows_redis_errors(_fake_redis):
    _fake_redis.xadd.side_effect = ConnectionError("redis down")

    assert push_event(7, "chat:new_message", {}) is None


def test_push_to_users_skips_duplicates_and_missing_ids(_fake_redis):
    written = push_to_users([3, None, 3, 4], "reservation:created", {"reservation_id": 9})

    assert written == ["1-0", "1-0"]
    keys = [call.args[0] for call in _fake_redis.xadd.call_args_list]
    assert keys == ["events:user:3", "events:user:4"]
    assert _fake_redis.xadd.call_args.kwargs["maxlen"] == 1000
