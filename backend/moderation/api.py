import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.pagination import LimitOffsetPagination
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from claims.models import Claim
from claims.serializers import ClaimSerializer
from feedback.models import Feedback
from feedback.serializers import FeedbackSerializer
from listings.models import Listing
from listings.services import delete_image_objects
from reports.models import Report
from reports.serializers import ReportSerializer
from reports.services import take_action_on_report
from reservations.models import Order
from reservations.serializers import OrderSerializer
from reviews.models import ListingReview, update_listing_review_stats
from users.models import UserReview, update_user_review_stats

from .audit import audit, request_ip_and_ua
from .filters import (
    AdminListingFilter,
    AdminOrderFilter,
    AdminUserFilter,
    ClaimFilter,
    FeedbackFilter,
    ReportFilter,
)
from .models import AuditEvent
from .permissions import IsAdmin, IsModeratorOrAdmin, is_admin
from .serializers import (
    AdminListingReviewSerializer,
    AdminListingSerializer,
    AdminUserReviewSerializer,
    AdminUserSerializer,
    AdminUserStatusSerializer,
    AssignSerializer,
    TakeActionSerializer,
    TicketStatusSerializer,
)

logger = logging.getLogger(__name__)
User = get_user_model()


def _truthy(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes"}


def _reason(payload, default: str) -> str:
    reason = ""
    if hasattr(payload, "get"):
        reason = (payload.get("reason") or "").strip()
    return reason or default


class AdminPagination(LimitOffsetPagination):
    """Limit/offset pages rendered as ``{ok, <results_key>, total, limit, offset}``."""

    default_limit = 50
    max_limit = 200

    def paginate_queryset(self, queryset, request, view=None):
        self.results_key = getattr(view, "results_key", "results")
        return super().paginate_queryset(queryset, request, view)

    def get_paginated_response(self, data):
        return Response(
            {
                "ok": True,
                self.results_key: data,
                "total": self.count,
                "limit": self.limit,
                "offset": self.offset,
            }
        )


class ModerationThrottleMixin:
    throttle_scope = "moderation"
    throttle_classes = [ScopedRateThrottle]


class ModerationListView(ModerationThrottleMixin, generics.ListAPIView):
    permission_classes = [IsModeratorOrAdmin]
    pagination_class = AdminPagination
    filter_backends = [DjangoFilterBackend]
    http_method_names = ["get"]
    results_key = "results"


class ModerationAPIView(ModerationThrottleMixin, APIView):
    permission_classes = [IsModeratorOrAdmin]
    entity_type = ""

    def _audit(self, request, entity_id, *, action, reason, before=None, after=None, meta=None):
        ip, ua = request_ip_and_ua(request)
        audit(
            actor=request.user,
            action=action,
            entity_type=self.entity_type,
            entity_id=entity_id,
            reason=reason,
            before=before,
            after=after,
            meta=meta,
            ip=ip,
            user_agent=ua,
        )


# --- Users ---


class AdminUserListView(ModerationListView):
    serializer_class = AdminUserSerializer
    filterset_class = AdminUserFilter
    results_key = "users"

    def get_queryset(self):
        qs = User.objects.exclude(pk=settings.SUPPORT_USER_ID).order_by("-date_joined", "-id")
        if not _truthy(self.request.query_params.get("show_inactive")):
            qs = qs.filter(is_active=True)
        return qs


class AdminUserStatusView(ModerationAPIView):
    entity_type = AuditEvent.EntityType.USER
    http_method_names = ["patch"]

    def patch(self, request, pk: int):
        user = get_object_or_404(User, pk=pk)
        serializer = AdminUserStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        changes = serializer.validated_data
        if not changes:
            return Response({"detail": "No fields to update"}, status=status.HTTP_400_BAD_REQUEST)
        if ("admin" in changes or "moderator" in changes) and not is_admin(request.user):
            return Response(
                {"detail": "Only admins can change admin or moderator status"},
                status=status.HTTP_403_FORBIDDEN,
            )

        before = {"admin": user.admin, "moderator": user.moderator, "active": user.is_active}
        update_fields = []
        if "admin" in changes:
            user.admin = changes["admin"]
            update_fields.append("admin")
        if "moderator" in changes:
            user.moderator = changes["moderator"]
            update_fields.append("moderator")
        if "active" in changes:
            user.is_active = changes["active"]
            update_fields.append("is_active")
        user.save(update_fields=update_fields)
        after = {"admin": user.admin, "moderator": user.moderator, "active": user.is_active}

        self._audit(
            request,
            user.id,
            action="moderation.user.update_status",
            reason=_reason(request.data, "user status updated"),
            before=before,
            after=after,
        )
        return Response({"ok": True, "user": AdminUserSerializer(user).data})


# --- Listings ---


class AdminListingListView(ModerationListView):
    serializer_class = AdminListingSerializer
    filterset_class = AdminListingFilter
    results_key = "listings"

    def get_queryset(self):
        return (
            Listing.objects.select_related("host")
            .prefetch_related("images")
            .order_by("-created_at", "-id")
        )


class AdminListingDetailView(ModerationAPIView):
    entity_type = AuditEvent.EntityType.LISTING
    http_method_names = ["patch", "delete"]

    def get_permissions(self):
        if self.request.method == "DELETE":
            return [IsAdmin()]
        return super().get_permissions()

    def patch(self, request, pk: int):
        listing = get_object_or_404(Listing, pk=pk)
        enabled = request.data.get("enabled")
        if not isinstance(enabled, bool):
            return Response(
                {"enabled": ["Must be true or false."]},
                status=status.HTTP_400_BAD_REQUEST,
            )
        before = {"enabled": listing.enabled}
        listing.enabled = enabled
        listing.save(update_fields=["enabled", "updated_at"])
        self._audit(
            request,
            listing.id,
            action="moderation.listing.update_enabled",
            reason=_reason(request.data, "listing enabled flag updated"),
            before=before,
            after={"enabled": listing.enabled},
        )
        return Response({"ok": True, "id": listing.id, "enabled": listing.enabled})

    def delete(self, request, pk: int):
        listing = get_object_or_404(Listing, pk=pk)
        urls = list(listing.images.values_list("url", flat=True))
        before = {"name": listing.name, "host_id": listing.host_id, "enabled": listing.enabled}
        with transaction.atomic():
            listing.delete()
            delete_image_objects(urls)
            self._audit(
                request,
                pk,
                action="moderation.listing.delete",
                reason=_reason(request.query_params, "listing removed by admin"),
                before=before,
            )
        logger.info("moderation: listing %s deleted by %s", pk, request.user.id)
        return Response({"ok": True})


# --- Orders ---


class AdminOrderListView(ModerationListView):
    serializer_class = OrderSerializer
    filterset_class = AdminOrderFilter
    results_key = "orders"

    def get_queryset(self):
        return Order.objects.all().order_by("-created_at", "-id")


class AdminOrderStatusView(ModerationAPIView):
    entity_type = AuditEvent.EntityType.ORDER
    http_method_names = ["patch"]

    def patch(self, request, pk: int):
        order = get_object_or_404(Order, pk=pk)
        serializer = TicketStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"].strip().lower()
        if new_status not in Order.Status.values:
            return Response({"status": ["Invalid status."]}, status=status.HTTP_400_BAD_REQUEST)
        before = {"status": order.status}
        order.status = new_status
        order.save(update_fields=["status", "updated_at"])
        self._audit(
            request,
            order.id,
            action="moderation.order.update_status",
            reason=_reason(request.data, f"order status set to {new_status}"),
            before=before,
            after={"status": order.status},
        )
        return Response({"ok": True, "order": OrderSerializer(order).data})


# --- Reviews ---

REVIEW_TYPES = {
    "listing": (ListingReview, AdminListingReviewSerializer, AuditEvent.EntityType.LISTING_REVIEW),
    "user": (UserReview, AdminUserReviewSerializer, AuditEvent.EntityType.USER_REVIEW),
}


def _review_type(value) -> str | None:
    value = (value or "listing").strip().lower()
    return value if value in REVIEW_TYPES else None


class AdminReviewListView(ModerationListView):
    results_key = "reviews"

    def _type(self):
        return _review_type(self.request.query_params.get("review_type"))

    def get_serializer_class(self):
        return REVIEW_TYPES[self._type() or "listing"][1]

    def get_queryset(self):
        model = REVIEW_TYPES[self._type() or "listing"][0]
        return model.objects.select_related("reviewer").order_by("-created_at", "-id")

    def list(self, request, *args, **kwargs):
        if self._type() is None:
            return Response(
                {"review_type": ["Must be 'listing' or 'user'."]},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return super().list(request, *args, **kwargs)


class AdminReviewDeleteView(ModerationAPIView):
    http_method_names = ["delete"]

    def delete(self, request, review_type: str, pk: int):
        review_type = _review_type(review_type)
        if review_type is None:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        model, _serializer, entity_type = REVIEW_TYPES[review_type]
        review = get_object_or_404(model, pk=pk)
        before = {"rating": review.rating, "comment": review.comment, "reviewer_id": review.reviewer_id}
        self.entity_type = entity_type
        with transaction.atomic():
            review.delete()
            if review_type == "listing":
                update_listing_review_stats(review.listing)
            else:
                update_user_review_stats(review.reviewed_user)
            self._audit(
                request,
                pk,
                action=f"moderation.{review_type}_review.delete",
                reason=_reason(request.query_params, "review removed by moderator"),
                before=before,
            )
        return Response({"ok": True})


# --- Claims, reports and feedback ---


class TicketMixin:
    """
    Shared behaviour for the triaged ticket types.

    ``owner_field`` names the user who opened the ticket; they may not be
    assigned to handle it.
    """

    model = None
    serializer_class = None
    owner_field = ""
    noun = ""
    self_assign_message = ""


class ClaimTicketMixin(TicketMixin):
    model = Claim
    serializer_class = ClaimSerializer
    entity_type = AuditEvent.EntityType.CLAIM
    owner_field = "created_by_id"
    noun = "claims"
    self_assign_message = "You cannot assign yourself to a claim you created"


class ReportTicketMixin(TicketMixin):
    model = Report
    serializer_class = ReportSerializer
    entity_type = AuditEvent.EntityType.REPORT
    owner_field = "reporter_id"
    noun = "reports"
    self_assign_message = "You cannot assign yourself to a report you created"


class FeedbackTicketMixin(TicketMixin):
    model = Feedback
    serializer_class = FeedbackSerializer
    entity_type = AuditEvent.EntityType.FEEDBACK
    owner_field = "user_id"
    noun = "feedback"
    self_assign_message = "You cannot assign yourself to feedback you submitted"


class TicketListView(ModerationListView):
    def get_queryset(self):
        return self.model.objects.select_related("assigned_to").order_by("-created_at", "-id")


class TicketAssignView(ModerationAPIView):
    http_method_names = ["patch", "post"]

    def patch(self, request, pk: int):
        ticket = get_object_or_404(self.model, pk=pk)
        serializer = AssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignee_id = serializer.validated_data["assigned_to"]

        if assignee_id is not None:
            if assignee_id == getattr(ticket, self.owner_field):
                return Response(
                    {"detail": self.self_assign_message},
                    status=status.HTTP_403_FORBIDDEN,
                )
            if not User.objects.filter(pk=assignee_id).exists():
                return Response({"detail": "User not found"}, status=status.HTTP_404_NOT_FOUND)

        before = {"assigned_to": ticket.assigned_to_id}
        ticket.assigned_to_id = assignee_id
        ticket.save(update_fields=["assigned_to", "updated_at"])
        self._audit(
            request,
            ticket.id,
            action=f"moderation.{self.entity_type}.assign",
            reason=_reason(request.data, "ticket assignment changed"),
            before=before,
            after={"assigned_to": assignee_id},
        )
        return Response({"ok": True, self.entity_type: self.serializer_class(ticket).data})

    post = patch


class TicketStatusView(ModerationAPIView):
    http_method_names = ["patch"]

    def patch(self, request, pk: int):
        ticket = get_object_or_404(self.model, pk=pk)
        if ticket.assigned_to_id != request.user.id:
            return Response(
                {"detail": f"You can only update {self.noun} assigned to you"},
                status=status.HTTP_403_FORBIDDEN,
            )
        serializer = TicketStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"].strip().lower()
        if new_status not in self.model.Status.values:
            return Response({"status": ["Invalid status."]}, status=status.HTTP_400_BAD_REQUEST)

        before = {"status": ticket.status}
        ticket.status = new_status
        ticket.save(update_fields=["status", "updated_at"])
        self._audit(
            request,
            ticket.id,
            action=f"moderation.{self.entity_type}.update_status",
            reason=_reason(request.data, f"status set to {new_status}"),
            before=before,
            after={"status": ticket.status},
        )
        return Response({"ok": True, self.entity_type: self.serializer_class(ticket).data})


class AdminClaimListView(ClaimTicketMixin, TicketListView):
    filterset_class = ClaimFilter
    results_key = "claims"

    def get_queryset(self):
        return super().get_queryset().select_related("order", "created_by")


class AdminClaimAssignView(ClaimTicketMixin, TicketAssignView):
    pass


class AdminClaimStatusView(ClaimTicketMixin, TicketStatusView):
    pass


class AdminReportListView(ReportTicketMixin, TicketListView):
    filterset_class = ReportFilter
    results_key = "reports"


class AdminReportAssignView(ReportTicketMixin, TicketAssignView):
    pass


class AdminReportStatusView(ReportTicketMixin, TicketStatusView):
    pass


class AdminFeedbackListView(FeedbackTicketMixin, TicketListView):
    filterset_class = FeedbackFilter
    results_key = "feedback"


class AdminFeedbackAssignView(FeedbackTicketMixin, TicketAssignView):
    pass


class AdminFeedbackStatusView(FeedbackTicketMixin, TicketStatusView):
    pass


class AdminReportTakeActionView(ModerationAPIView):
    http_method_names = ["post"]

    def post(self, request, pk: int):
        report = get_object_or_404(Report, pk=pk)
        serializer = TakeActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        report_for = data.get("reportFor")
        if report_for and report_for != report.report_for:
            return Response(
                {"reportFor": ["Does not match the report."]},
                status=status.HTTP_400_BAD_REQUEST,
            )
        ip, ua = request_ip_and_ua(request)
        try:
            report = take_action_on_report(
                report,
                moderator=request.user,
                fields_to_remove=data.get("fieldsToRemove") or [],
                moderator_message=data.get("moderatorMessage") or "",
                ip=ip,
                user_agent=ua,
            )
        except ValidationError as exc:
            return Response(exc.message_dict, status=status.HTTP_400_BAD_REQUEST)
        return Response({"ok": True, "report": ReportSerializer(report).data})
