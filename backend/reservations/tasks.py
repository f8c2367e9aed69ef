"""Celery tasks for reservations and orders."""

from __future__ import annotations

import logging

from celery import shared_task

from .domain import advance_orders

logger = logging.getLogger(__name__)


@shared_task(name="reservations.advance_order_statuses")
def advance_order_statuses() -> dict:
    """Nightly sweep that keeps order statuses in step with the calendar."""
    result = advance_orders()
    if result["activated"] or result["completed"]:
        logger.info(
            "reservations: %s orders activated, %s completed",
            result["activated"],
            result["completed"],
        )
    return result
