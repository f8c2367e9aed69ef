import pytest

from feedback.models import Feedback
from reservations.tests.fixtures import auth_client

pytestmark = pytest.mark.django_db


def test_submit_feedback(renter_user):
    resp = auth_client(renter_user).post(
        "/api/feedback/",
        {"selected_categories": ["search", "payments"], "feedback_details": "  More filters  "},
        format="json",
    )

    assert resp.status_code == 201, resp.data
    assert resp.data["feedback"]["status"] == "submitted"
    feedback = Feedback.objects.get()
    assert feedback.user_id == renter_user.id
    assert feedback.feedback_details == "More filters"
    assert feedback.selected_categories == ["search", "payments"]


def test_feedback_requires_category(renter_user):
    resp = auth_client(renter_user).post(
        "/api/feedback/",
        {"selected_categories": [], "feedback_details": "Nice app"},
        format="json",
    )

    assert resp.status_code == 400
    assert resp.data["selected_categories"] == ["Select at least one category."]


def test_feedback_requires_details(renter_user):
    resp = auth_client(renter_user).post(
        "/api/feedback/",
        {"selected_categories": ["other"], "feedback_details": " "},
        format="json",
    )
    assert resp.status_code == 400


def test_feedback_requires_auth(api_client):
    resp = api_client.post(
        "/api/feedback/",
        {"selected_categories": ["other"], "feedback_details": "hi"},
        format="json",
    )
    assert resp.status_code == 401
