import pytest
from django.core import mail

from chat.models import Message, MessageThread
from claims.models import Claim
from claims.services import claim_priority, normalize_claim_type
from reservations.tests.fixtures import auth_client

pytestmark = pytest.mark.django_db


def _file(client, order, **overrides):
    payload = {
        "order_id": order.id,
        "claim_type": "Damage",
        "claim_details": "The chuck came back cracked.",
        "incident_date": "2030-06-04",
        **overrides,
    }
    return client.post("/api/claims/", payload, format="json")


@pytest.mark.parametrize(
    "claim_type,priority",
    [
        ("missing", 1),
        ("Theft", 1),
        ("damage", 2),
        ("late_return", 3),
        ("Late-Return", 3),
        ("other", 4),
        ("noise complaint", 5),
    ],
)
def test_claim_priority(claim_type, priority):
    assert claim_priority(claim_type) == priority


def test_normalize_claim_type():
    assert normalize_claim_type("  LATE_return ") == "late return"


def test_renter_files_claim(order, renter_user, support_user):
    resp = _file(auth_client(renter_user), order)

    assert resp.status_code == 201, resp.data
    claim = resp.data["claim"]
    assert claim["claim_number"] == f"CLM-{claim['id']}"
    assert claim["claim_type"] == "damage"
    assert claim["priority"] == 2
    assert claim["status"] == "submitted"
    assert claim["order_number"] == order.order_number
    assert claim["thread_id"] is not None


def test_claim_opens_support_thread_with_system_message(order, host_user, support_user):
    _file(auth_client(host_user), order, claim_type="late return")

    thread = MessageThread.objects.get(claim__isnull=False)
    assert thread.has_participant(host_user.id)
    assert thread.has_participant(support_user.id)
    message = Message.objects.get(thread=thread)
    assert message.message_type == Message.MESSAGE_TYPE_SYSTEM
    assert message.sender_id == support_user.id
    assert message.body == (
        f"A new claim has been submitted for order #{order.order_number}. "
        "Claim type: late return. Priority: 3. "
        "Please review the claim details and provide any additional information if needed."
    )


def test_each_claim_gets_its_own_thread(order, renter_user, support_user):
    client = auth_client(renter_user)
    _file(client, order)
    _file(client, order, claim_type="missing")

    assert MessageThread.objects.filter(claim__isnull=False).count() == 2


def test_claim_submitted_email(order, renter_user, support_user):
    mail.outbox.clear()

    _file(auth_client(renter_user), order)

    assert [m.to for m in mail.outbox] == [[renter_user.email]]
    assert "CLM-" in mail.outbox[0].subject


def test_non_participant_gets_403(order, other_user, support_user):
    resp = _file(auth_client(other_user), order)

    assert resp.status_code == 403
    assert resp.data["detail"] == "You are not authorized to create a claim for this order"
    assert not Claim.objects.exists()


def test_claim_without_support_user_still_succeeds(order, renter_user, settings):
    settings.SUPPORT_USER_ID = 999999

    resp = _file(auth_client(renter_user), order)

    assert resp.status_code == 201
    assert resp.data["claim"]["thread_id"] is None


def test_claim_requires_details(order, renter_user):
    resp = _file(auth_client(renter_user), order, claim_details="  ")
    assert resp.status_code == 400


def test_claim_unknown_order_404(renter_user):
    resp = auth_client(renter_user).post(
        "/api/claims/",
        {"order_id": 4040, "claim_type": "damage", "claim_details": "x"},
        format="json",
    )
    assert resp.status_code == 404


def test_list_own_claims(order, renter_user, host_user, support_user):
    _file(auth_client(renter_user), order)

    mine = auth_client(renter_user).get("/api/claims/")
    theirs = auth_client(host_user).get("/api/claims/")

    assert len(mine.data["claims"]) == 1
    assert theirs.data["claims"] == []
