"""Claim intake."""

from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.db import transaction

from chat.models import create_system_message, open_ticket_thread
from reservations.models import Order

from .models import Claim

logger = logging.getLogger(__name__)

CLAIM_PRIORITIES = {
    "missing": 1,
    "theft": 1,
    "damage": 2,
    "late return": 3,
    "other": 4,
}
UNKNOWN_CLAIM_PRIORITY = 5


def normalize_claim_type(claim_type: str) -> str:
    return " ".join((claim_type or "").replace("_", " ").replace("-", " ").lower().split())


def claim_priority(claim_type: str) -> int:
    """Lower numbers are handled first."""
    return CLAIM_PRIORITIES.get(normalize_claim_type(claim_type), UNKNOWN_CLAIM_PRIORITY)


def support_user():
    User = get_user_model()
    return User.objects.filter(pk=settings.SUPPORT_USER_ID).first()


def create_claim(*, order: Order, user, claim_type: str, claim_details: str, incident_date=None) -> Claim:
    if not order.is_participant(user):
        raise PermissionDenied("You are not authorized to create a claim for this order")

    claim_type = normalize_claim_type(claim_type)
    claim = Claim.objects.create(
        order=order,
        created_by=user,
        claim_type=claim_type,
        claim_details=claim_details,
        incident_date=incident_date,
        priority=claim_priority(claim_type),
        status=Claim.Status.SUBMITTED,
    )
    logger.info("claims: %s filed by user %s on order %s", claim.claim_number, user.id, order.id)
    _open_claim_thread(claim, user)
    return claim


def _open_claim_thread(claim: Claim, user) -> None:
    support = support_user()
    if support is None or support.id == user.id:
        logger.warning("claims: no support user available for %s", claim.claim_number)
        return
    body = (
        f"A new claim has been submitted for order #{claim.order.order_number}. "
        f"Claim type: {claim.claim_type}. Priority: {claim.priority}. "
        "Please review the claim details and provide any additional information if needed."
    )
    try:
        with transaction.atomic():
            thread = open_ticket_thread(user.id, support.id, claim=claim)
            create_system_message(thread, support.id, body)
    except Exception:
        logger.warning(
            "claims: failed to open support thread for %s", claim.claim_number, exc_info=True
        )
