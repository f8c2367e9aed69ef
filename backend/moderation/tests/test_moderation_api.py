import pytest

from claims.models import Claim
from feedback.models import Feedback
from listings.models import Listing
from moderation.audit import audit
from moderation.models import AuditEvent
from reports.models import Report
from reservations.models import Order
from reservations.tests.fixtures import _create_user, auth_client
from reviews.models import ListingReview, update_listing_review_stats
from users.models import UserReview

pytestmark = pytest.mark.django_db


@pytest.fixture
def claim(order, renter_user):
    return Claim.objects.create(
        order=order,
        created_by=renter_user,
        claim_type="damage",
        claim_details="Chuck is cracked.",
        priority=2,
    )


@pytest.fixture
def report(listing, renter_user):
    return Report.objects.create(
        reporter=renter_user,
        report_for=Report.ReportFor.LISTING,
        reported_id=listing.id,
        report_reasons=["spam"],
        report_details="Stock photos",
    )


@pytest.fixture
def feedback(renter_user):
    return Feedback.objects.create(
        user=renter_user,
        selected_categories=["search"],
        feedback_details="Let me filter by brand.",
    )


def test_regular_user_is_forbidden(renter_user):
    resp = auth_client(renter_user).get("/api/admin/users/")

    assert resp.status_code == 403
    assert resp.data["detail"] == "Admin or Moderator access required"


def test_anonymous_is_unauthorized(api_client):
    assert api_client.get("/api/admin/users/").status_code == 401


def test_user_list_hides_support_and_inactive(moderator_user, support_user, renter_user, host_user):
    host_user.is_active = False
    host_user.save(update_fields=["is_active"])
    client = auth_client(moderator_user)

    resp = client.get("/api/admin/users/")

    assert resp.status_code == 200
    assert resp.data["ok"] is True
    ids = {row["id"] for row in resp.data["users"]}
    assert support_user.id not in ids
    assert host_user.id not in ids
    assert renter_user.id in ids
    assert resp.data["total"] == len(ids)
    assert resp.data["limit"] == 50
    assert resp.data["offset"] == 0

    with_inactive = client.get("/api/admin/users/", {"show_inactive": "true"})
    assert host_user.id in {row["id"] for row in with_inactive.data["users"]}


def test_user_list_search_and_paging(moderator_user, renter_user, host_user):
    client = auth_client(moderator_user)

    found = client.get("/api/admin/users/", {"search": "renter@"})
    paged = client.get("/api/admin/users/", {"limit": 1, "offset": 1})

    assert [row["id"] for row in found.data["users"]] == [renter_user.id]
    assert len(paged.data["users"]) == 1
    assert paged.data["limit"] == 1
    assert paged.data["offset"] == 1
    assert paged.data["total"] == 3


def test_moderator_can_deactivate_user(moderator_user, renter_user):
    resp = auth_client(moderator_user).patch(
        f"/api/admin/users/{renter_user.id}/status/",
        {"active": False, "reason": "spam account"},
        format="json",
        HTTP_USER_AGENT="pytest-agent",
    )

    assert resp.status_code == 200, resp.data
    assert resp.data["user"]["active"] is False
    renter_user.refresh_from_db()
    assert renter_user.is_active is False
    event = AuditEvent.objects.get(action="moderation.user.update_status")
    assert event.actor == moderator_user
    assert event.entity_type == "user"
    assert event.entity_id == str(renter_user.id)
    assert event.reason == "spam account"
    assert event.before_json["active"] is True
    assert event.after_json["active"] is False
    assert event.user_agent == "pytest-agent"


def test_only_admin_changes_roles(moderator_user, admin_user, renter_user):
    url = f"/api/admin/users/{renter_user.id}/status/"

    denied = auth_client(moderator_user).patch(url, {"moderator": True}, format="json")
    allowed = auth_client(admin_user).patch(url, {"moderator": True}, format="json")

    assert denied.status_code == 403
    assert denied.data["detail"] == "Only admins can change admin or moderator status"
    assert allowed.status_code == 200
    renter_user.refresh_from_db()
    assert renter_user.moderator is True


def test_user_status_requires_fields(admin_user, renter_user):
    resp = auth_client(admin_user).patch(
        f"/api/admin/users/{renter_user.id}/status/", {}, format="json"
    )

    assert resp.status_code == 400
    assert resp.data["detail"] == "No fields to update"
    assert not AuditEvent.objects.exists()


def test_listing_list_filters(moderator_user, listing):
    client = auth_client(moderator_user)

    hit = client.get("/api/admin/listings/", {"search": "drill"})
    miss = client.get("/api/admin/listings/", {"enabled": "false"})

    assert [row["id"] for row in hit.data["listings"]] == [listing.id]
    assert hit.data["listings"][0]["host_username"] == "host"
    assert miss.data["listings"] == []


def test_listing_enabled_toggle(moderator_user, listing):
    client = auth_client(moderator_user)
    url = f"/api/admin/listings/{listing.id}/"

    bad = client.patch(url, {"enabled": "nope"}, format="json")
    resp = client.patch(url, {"enabled": False}, format="json")

    assert bad.status_code == 400
    assert resp.status_code == 200
    assert resp.data == {"ok": True, "id": listing.id, "enabled": False}
    listing.refresh_from_db()
    assert listing.enabled is False
    event = AuditEvent.objects.get(action="moderation.listing.update_enabled")
    assert event.reason == "listing enabled flag updated"
    assert event.after_json == {"enabled": False}


def test_listing_delete_is_admin_only(moderator_user, admin_user, listing):
    url = f"/api/admin/listings/{listing.id}/"

    denied = auth_client(moderator_user).delete(url)
    deleted = auth_client(admin_user).delete(url)

    assert denied.status_code == 403
    assert deleted.status_code == 200
    assert not Listing.objects.filter(pk=listing.id).exists()
    event = AuditEvent.objects.get(action="moderation.listing.delete")
    assert event.before_json["name"] == "Cordless Drill"


def test_order_status_update(moderator_user, order):
    client = auth_client(moderator_user)
    url = f"/api/admin/orders/{order.id}/status/"

    bad = client.patch(url, {"status": "teleported"}, format="json")
    resp = client.patch(url, {"status": "Cancelled"}, format="json")

    assert bad.status_code == 400
    assert resp.status_code == 200
    assert resp.data["order"]["status"] == "cancelled"
    order.refresh_from_db()
    assert order.status == Order.Status.CANCELLED


def test_order_list_search(moderator_user, order):
    resp = auth_client(moderator_user).get("/api/admin/orders/", {"search": order.order_number})

    assert [row["id"] for row in resp.data["orders"]] == [order.id]


def test_review_list_by_type(moderator_user, listing, renter_user, host_user):
    ListingReview.objects.create(listing=listing, reviewer=renter_user, rating=4, comment="Solid")
    UserReview.objects.create(
        reviewer=host_user, reviewed_user=renter_user, rating=5, comment="Returned on time"
    )
    client = auth_client(moderator_user)

    listing_reviews = client.get("/api/admin/reviews/")
    user_reviews = client.get("/api/admin/reviews/", {"review_type": "user"})
    bad = client.get("/api/admin/reviews/", {"review_type": "order"})

    assert [row["review_type"] for row in listing_reviews.data["reviews"]] == ["listing"]
    assert listing_reviews.data["reviews"][0]["target_id"] == listing.id
    assert user_reviews.data["reviews"][0]["target_id"] == renter_user.id
    assert bad.status_code == 400


def test_review_delete_refreshes_stats(moderator_user, listing, renter_user, other_user):
    keep = ListingReview.objects.create(listing=listing, reviewer=renter_user, rating=5, comment="Great")
    drop = ListingReview.objects.create(listing=listing, reviewer=other_user, rating=1, comment="Meh")
    update_listing_review_stats(listing)

    resp = auth_client(moderator_user).delete(f"/api/admin/reviews/listing/{drop.id}/")

    assert resp.status_code == 200
    assert list(ListingReview.objects.values_list("id", flat=True)) == [keep.id]
    listing.refresh_from_db()
    assert listing.review_count == 1
    assert listing.rating == 5
    event = AuditEvent.objects.get(action="moderation.listing_review.delete")
    assert event.entity_type == "listing_review"
    assert event.before_json["rating"] == 1


def test_review_delete_unknown_type(moderator_user):
    resp = auth_client(moderator_user).delete("/api/admin/reviews/order/1/")

    assert resp.status_code == 404


def test_claim_assign_and_status(moderator_user, claim):
    client = auth_client(moderator_user)

    assigned = client.patch(
        f"/api/admin/claims/{claim.id}/assign/",
        {"assigned_to": moderator_user.id},
        format="json",
    )
    updated = client.patch(
        f"/api/admin/claims/{claim.id}/status/",
        {"status": "under review"},
        format="json",
    )

    assert assigned.status_code == 200, assigned.data
    assert assigned.data["ok"] is True
    assert "claim" in assigned.data
    assert updated.status_code == 200
    claim.refresh_from_db()
    assert claim.assigned_to == moderator_user
    assert claim.status == Claim.Status.UNDER_REVIEW
    actions = set(AuditEvent.objects.values_list("action", flat=True))
    assert actions == {"moderation.claim.assign", "moderation.claim.update_status"}


def test_claim_cannot_be_assigned_to_its_author(moderator_user, claim, renter_user):
    resp = auth_client(moderator_user).patch(
        f"/api/admin/claims/{claim.id}/assign/",
        {"assigned_to": renter_user.id},
        format="json",
    )

    assert resp.status_code == 403
    assert resp.data["detail"] == "You cannot assign yourself to a claim you created"


def test_assign_unknown_user(moderator_user, claim):
    resp = auth_client(moderator_user).post(
        f"/api/admin/claims/{claim.id}/assign/",
        {"assignToId": 999999},
        format="json",
    )

    assert resp.status_code == 404
    assert resp.data["detail"] == "User not found"


def test_assign_requires_target(moderator_user, claim):
    resp = auth_client(moderator_user).patch(
        f"/api/admin/claims/{claim.id}/assign/", {}, format="json"
    )

    assert resp.status_code == 400
    assert "assigned_to" in resp.data


def test_unassign_ticket(moderator_user, claim):
    claim.assigned_to = moderator_user
    claim.save(update_fields=["assigned_to"])

    resp = auth_client(moderator_user).patch(
        f"/api/admin/claims/{claim.id}/assign/", {"assigned_to": None}, format="json"
    )

    assert resp.status_code == 200
    claim.refresh_from_db()
    assert claim.assigned_to is None


def test_status_update_requires_assignment(moderator_user, admin_user, claim):
    claim.assigned_to = admin_user
    claim.save(update_fields=["assigned_to"])

    resp = auth_client(moderator_user).patch(
        f"/api/admin/claims/{claim.id}/status/", {"status": "resolved"}, format="json"
    )

    assert resp.status_code == 403
    assert resp.data["detail"] == "You can only update claims assigned to you"


def test_status_update_rejects_unknown_status(moderator_user, claim):
    claim.assigned_to = moderator_user
    claim.save(update_fields=["assigned_to"])

    resp = auth_client(moderator_user).patch(
        f"/api/admin/claims/{claim.id}/status/", {"status": "lost"}, format="json"
    )

    assert resp.status_code == 400
    claim.refresh_from_db()
    assert claim.status == Claim.Status.SUBMITTED


def test_claim_list_assigned_filters(moderator_user, admin_user, claim, order, renter_user):
    other = Claim.objects.create(
        order=order, created_by=renter_user, claim_type="late", claim_details="Two days late"
    )
    claim.assigned_to = moderator_user
    claim.save(update_fields=["assigned_to"])
    client = auth_client(moderator_user)

    mine = client.get("/api/admin/claims/", {"assigned": "me"})
    unassigned = client.get("/api/admin/claims/", {"assigned": "unassigned"})
    by_id = client.get("/api/admin/claims/", {"assigned": str(admin_user.id)})
    search = client.get("/api/admin/claims/", {"search": "late"})

    assert [row["id"] for row in mine.data["claims"]] == [claim.id]
    assert [row["id"] for row in unassigned.data["claims"]] == [other.id]
    assert by_id.data["claims"] == []
    assert [row["id"] for row in search.data["claims"]] == [other.id]


def test_report_assign_rules(moderator_user, report, renter_user):
    client = auth_client(moderator_user)

    own = client.patch(
        f"/api/admin/reports/{report.id}/assign/", {"assigned_to": renter_user.id}, format="json"
    )
    ok = client.patch(
        f"/api/admin/reports/{report.id}/assign/",
        {"assigned_to": moderator_user.id},
        format="json",
    )
    rejected = client.patch(
        f"/api/admin/reports/{report.id}/status/", {"status": "rejected"}, format="json"
    )

    assert own.status_code == 403
    assert own.data["detail"] == "You cannot assign yourself to a report you created"
    assert ok.status_code == 200
    assert ok.data["report"]["id"] == report.id
    assert rejected.status_code == 200
    report.refresh_from_db()
    assert report.status == Report.Status.REJECTED


def test_report_list_filters_by_target_kind(moderator_user, report, renter_user, host_user):
    Report.objects.create(
        reporter=renter_user,
        report_for=Report.ReportFor.USER,
        reported_id=host_user.id,
        report_reasons=["harassment"],
    )

    resp = auth_client(moderator_user).get("/api/admin/reports/", {"report_for": "listing"})

    assert [row["id"] for row in resp.data["reports"]] == [report.id]
    assert resp.data["total"] == 1


def test_feedback_assign_and_status(moderator_user, feedback, renter_user):
    client = auth_client(moderator_user)

    own = client.patch(
        f"/api/admin/feedback/{feedback.id}/assign/",
        {"assigned_to": renter_user.id},
        format="json",
    )
    not_mine = client.patch(
        f"/api/admin/feedback/{feedback.id}/status/", {"status": "triaged"}, format="json"
    )
    client.patch(
        f"/api/admin/feedback/{feedback.id}/assign/",
        {"assigned_to": moderator_user.id},
        format="json",
    )
    triaged = client.patch(
        f"/api/admin/feedback/{feedback.id}/status/", {"status": "triaged"}, format="json"
    )

    assert own.data["detail"] == "You cannot assign yourself to feedback you submitted"
    assert not_mine.status_code == 403
    assert not_mine.data["detail"] == "You can only update feedback assigned to you"
    assert triaged.status_code == 200
    assert triaged.data["feedback"]["status"] == "triaged"


def test_feedback_list_search(moderator_user, feedback):
    client = auth_client(moderator_user)

    hit = client.get("/api/admin/feedback/", {"search": "brand"})
    miss = client.get("/api/admin/feedback/", {"search": "checkout"})

    assert [row["id"] for row in hit.data["feedback"]] == [feedback.id]
    assert miss.data["feedback"] == []


def test_take_action_redacts_listing(moderator_user, report, listing, support_user):
    resp = auth_client(moderator_user).post(
        f"/api/admin/reports/{report.id}/take-action/",
        {
            "fieldsToRemove": ["description"],
            "moderatorMessage": "Removed misleading description.",
            "reportFor": "listing",
        },
        format="json",
    )

    assert resp.status_code == 200, resp.data
    assert resp.data["report"]["status"] == "resolved"
    listing.refresh_from_db()
    assert listing.description is None
    assert listing.enabled is False
    assert AuditEvent.objects.filter(action="report.take_action").count() == 1


def test_take_action_validation(moderator_user, report):
    client = auth_client(moderator_user)
    url = f"/api/admin/reports/{report.id}/take-action/"

    mismatch = client.post(
        url, {"moderatorMessage": "x", "reportFor": "user"}, format="json"
    )
    no_message = client.post(url, {"fieldsToRemove": ["title"]}, format="json")

    assert mismatch.status_code == 400
    assert "reportFor" in mismatch.data
    assert no_message.status_code == 400
    assert "moderatorMessage" in no_message.data
    report.refresh_from_db()
    assert report.status == Report.Status.SUBMITTED


def test_audit_requires_reason(moderator_user):
    with pytest.raises(ValueError):
        audit(
            actor=moderator_user,
            action="moderation.user.update_status",
            entity_type="user",
            entity_id=1,
            reason="",
        )


def test_admin_can_use_moderation_endpoints(admin_user):
    _create_user("extra")

    resp = auth_client(admin_user).get("/api/admin/users/", {"search": "extra"})

    assert resp.status_code == 200
    assert len(resp.data["users"]) == 1
