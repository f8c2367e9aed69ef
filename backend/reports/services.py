"""Report intake, evidence capture and moderator actions."""

from __future__ import annotations

import logging
import posixpath
from typing import Iterable, Optional
from urllib.parse import urlparse

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from chat.models import create_system_message, open_ticket_thread
from listings.models import Listing
from listings.services import delete_image_objects
from moderation.audit import audit
from storage import s3

from .models import Report

logger = logging.getLogger(__name__)

LISTING_ACTION_FIELDS = ("title", "location", "description", "addons", "images")
USER_ACTION_FIELDS = ("name", "username")


def _listing_snapshot(listing: Listing) -> dict:
    return {
        "name": listing.name,
        "description": listing.description,
        "latitude": float(listing.latitude) if listing.latitude is not None else None,
        "longitude": float(listing.longitude) if listing.longitude is not None else None,
        "addons": [
            {
                "name": addon.name,
                "price_cents": addon.price_cents,
                "consumable": addon.consumable,
            }
            for addon in listing.addons.all()
        ],
        "image_urls": listing.image_urls,
        "bucket_urls": [],
    }


def _user_snapshot(user) -> dict:
    return {
        "name": user.name,
        "email": user.email,
        "username": user.username,
        "avatar_url": user.avatar_url or None,
        "bucket_url": None,
    }


def build_snapshot(report_for: str, reported_id: int) -> dict:
    """Capture the reported content as it looks right now."""
    if report_for == Report.ReportFor.LISTING:
        listing = Listing.objects.prefetch_related("addons", "images").filter(pk=reported_id).first()
        if listing is None:
            raise ValidationError({"reported_id": ["Reported listing not found."]})
        return _listing_snapshot(listing)
    if report_for == Report.ReportFor.USER:
        user = get_user_model().objects.filter(pk=reported_id).first()
        if user is None:
            raise ValidationError({"reported_id": ["Reported user not found."]})
        return _user_snapshot(user)
    raise ValidationError({"report_for": ["Invalid report_for value. Must be 'listing' or 'user'"]})


def create_report(
    *,
    reporter,
    report_for: str,
    reported_id: int,
    report_reasons: list,
    report_details: str = "",
) -> Report:
    if not isinstance(report_reasons, list) or not report_reasons:
        raise ValidationError({"report_reasons": ["Select at least one reason."]})
    snapshot = build_snapshot(report_for, reported_id)
    report = Report.objects.create(
        reporter=reporter,
        report_for=report_for,
        reported_id=reported_id,
        report_reasons=[str(reason) for reason in report_reasons],
        report_details=report_details or "",
        content_snapshot=snapshot,
        status=Report.Status.SUBMITTED,
    )
    logger.info("reports: %s filed against %s %s", report.report_number, report_for, reported_id)
    report_id = report.id
    transaction.on_commit(lambda: copy_report_media(report_id))
    return report


def _dest_key(prefix: str, source: str) -> str:
    name = posixpath.basename(urlparse(source).path) or "image"
    return f"{prefix}{name}"


def _copy_urls(urls: Iterable[str], prefix: str) -> list[str]:
    copied = []
    for url in urls:
        source_key = s3.key_from_url(url)
        if not source_key:
            continue
        dest_key = _dest_key(prefix, source_key)
        s3.copy_object(source_key, dest_key)
        copied.append(s3.public_url(dest_key))
    return copied


def _copy_avatar(avatar_url: str, prefix: str) -> Optional[str]:
    source_key = s3.key_from_url(avatar_url)
    dest_key = _dest_key(prefix, source_key or avatar_url)
    if source_key:
        s3.copy_object(source_key, dest_key)
        return s3.public_url(dest_key)
    # External avatars (OAuth providers) are downloaded and re-uploaded.
    response = requests.get(
        avatar_url,
        timeout=float(getattr(settings, "GEOCODE_REQUEST_TIMEOUT", 5.0)),
    )
    response.raise_for_status()
    content_type = response.headers.get("Content-Type") or s3.guess_content_type(dest_key)
    s3.put_object(dest_key, response.content, content_type=content_type)
    return s3.public_url(dest_key)


def copy_report_media(report_id: int) -> None:
    """
    Best-effort copy of the reported images into the report's own S3 folder,
    so evidence survives later edits or deletion of the content.
    """
    report = Report.objects.filter(pk=report_id).first()
    if report is None or not report.content_snapshot:
        return
    snapshot = dict(report.content_snapshot)
    prefix = s3.report_object_prefix(report.id, report.report_for, report.reported_id)
    try:
        if report.report_for == Report.ReportFor.LISTING:
            snapshot["bucket_urls"] = _copy_urls(snapshot.get("image_urls") or [], prefix)
        elif snapshot.get("avatar_url"):
            snapshot["bucket_url"] = _copy_avatar(snapshot["avatar_url"], prefix)
        else:
            return
    except Exception:
        logger.warning(
            "reports: failed to copy media for %s", report.report_number, exc_info=True
        )
        return
    Report.objects.filter(pk=report.pk).update(content_snapshot=snapshot)


def _redact_listing(listing: Listing, fields: set[str]) -> None:
    update_fields = ["enabled", "updated_at"]
    if "title" in fields:
        listing.name = None
        update_fields.append("name")
    if "description" in fields:
        listing.description = None
        update_fields.append("description")
    if "location" in fields:
        listing.zip_code = None
        listing.location_city = None
        listing.latitude = None
        listing.longitude = None
        update_fields += ["zip_code", "location_city", "latitude", "longitude"]
    if "addons" in fields:
        listing.addons.all().delete()
    if "images" in fields:
        urls = list(listing.images.values_list("url", flat=True))
        listing.images.all().delete()
        delete_image_objects(urls)
    listing.enabled = False
    listing.save(update_fields=update_fields)


def _redact_user(user, fields: set[str]) -> None:
    update_fields = []
    if "name" in fields:
        user.first_name = ""
        user.last_name = ""
        update_fields += ["first_name", "last_name"]
    if "username" in fields:
        # Usernames are required and unique, so a placeholder stands in for null.
        user.username = f"removed-user-{user.pk}"
        update_fields.append("username")
    if update_fields:
        user.save(update_fields=update_fields)


def take_action_on_report(
    report: Report,
    *,
    moderator,
    fields_to_remove: Iterable[str],
    moderator_message: str,
    ip: str | None = None,
    user_agent: str | None = None,
) -> Report:
    """Redact the reported content, resolve the report and message the content owner."""
    moderator_message = (moderator_message or "").strip()
    if not moderator_message:
        raise ValidationError({"moderatorMessage": ["A message to the content owner is required."]})

    fields = {str(field).strip().lower() for field in fields_to_remove or []}
    allowed = LISTING_ACTION_FIELDS if report.report_for == Report.ReportFor.LISTING else USER_ACTION_FIELDS
    unknown = fields - set(allowed)
    if unknown:
        raise ValidationError(
            {"fieldsToRemove": [f"Unsupported fields: {', '.join(sorted(unknown))}."]}
        )

    with transaction.atomic():
        if report.report_for == Report.ReportFor.LISTING:
            listing = Listing.objects.select_for_update().filter(pk=report.reported_id).first()
            if listing is None:
                raise ValidationError({"reported_id": ["Reported listing no longer exists."]})
            owner_id = listing.host_id
            _redact_listing(listing, fields)
        else:
            owner = get_user_model().objects.filter(pk=report.reported_id).first()
            if owner is None:
                raise ValidationError({"reported_id": ["Reported user no longer exists."]})
            owner_id = owner.id
            _redact_user(owner, fields)

        before = {"status": report.status}
        report.status = Report.Status.RESOLVED
        report.moderator_message = moderator_message
        report.resolved_at = timezone.now()
        report.save(update_fields=["status", "moderator_message", "resolved_at", "updated_at"])
        audit(
            actor=moderator,
            action="report.take_action",
            entity_type="report",
            entity_id=report.id,
            reason=moderator_message,
            before=before,
            after={"status": report.status, "fields_removed": sorted(fields)},
            meta={"report_for": report.report_for, "reported_id": report.reported_id},
            ip=ip,
            user_agent=user_agent,
        )

    _notify_owner(report, owner_id, moderator_message)
    return report


def _notify_owner(report: Report, owner_id: int, body: str) -> None:
    support_id = settings.SUPPORT_USER_ID
    if owner_id == support_id or not get_user_model().objects.filter(pk=support_id).exists():
        logger.warning("reports: no support user to message owner of %s", report.report_number)
        return
    try:
        with transaction.atomic():
            thread = open_ticket_thread(owner_id, support_id, report=report)
            create_system_message(thread, support_id, body)
    except Exception:
        logger.warning(
            "reports: failed to message owner of %s", report.report_number, exc_info=True
        )
