from moderation.models import AuditEvent


def audit(
    *,
    actor,
    action,
    entity_type,
    entity_id,
    reason,
    before=None,
    after=None,
    meta=None,
    ip=None,
    user_agent=None,
):
    """
    Persist a moderation audit event. Raises ValueError if reason is missing.
    """

    if not reason:
        raise ValueError("reason is required for audit events")

    return AuditEvent.objects.create(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
        before_json=before,
        after_json=after,
        meta_json=meta,
        ip=ip or "",
        user_agent=(user_agent or "")[:1024],
    )


def request_ip_and_ua(request):
    ip = (request.META.get("HTTP_X_FORWARDED_FOR") or "").split(",")[0].strip() or request.META.get(
        "REMOTE_ADDR", ""
    )
    user_agent = request.META.get("HTTP_USER_AGENT", "")
    return ip, user_agent
