from __future__ import annotations

import django_filters as filters
from django.contrib.auth import get_user_model
from django.db.models import Q

from claims.models import Claim
from feedback.models import Feedback
from listings.models import Listing
from reports.models import Report
from reservations.models import Order

User = get_user_model()


class AdminUserFilter(filters.FilterSet):
    search = filters.CharFilter(method="filter_search")

    class Meta:
        model = User
        fields = ["search"]

    def filter_search(self, queryset, name, value):
        search = (value or "").strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(first_name__icontains=search)
            | Q(last_name__icontains=search)
            | Q(username__icontains=search)
            | Q(email__icontains=search)
        )


class AdminListingFilter(filters.FilterSet):
    search = filters.CharFilter(method="filter_search")
    enabled = filters.BooleanFilter(field_name="enabled")
    host_id = filters.NumberFilter(field_name="host_id")

    class Meta:
        model = Listing
        fields = ["search", "enabled", "host_id"]

    def filter_search(self, queryset, name, value):
        search = (value or "").strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(name__icontains=search)
            | Q(description__icontains=search)
            | Q(host__username__icontains=search)
            | Q(host__email__icontains=search)
        )


class AdminOrderFilter(filters.FilterSet):
    search = filters.CharFilter(method="filter_search")
    status = filters.CharFilter(field_name="status", lookup_expr="iexact")

    class Meta:
        model = Order
        fields = ["search", "status"]

    def filter_search(self, queryset, name, value):
        search = (value or "").strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=search)
            | Q(listing_title__icontains=search)
            | Q(renter_name__icontains=search)
            | Q(renter_email__icontains=search)
            | Q(host_name__icontains=search)
            | Q(host_email__icontains=search)
        )


class TicketFilter(filters.FilterSet):
    """
    Shared filters for claims, reports and feedback.

    ``assigned`` accepts ``me``, ``unassigned`` or a user id.
    """

    search_fields: tuple[str, ...] = ()

    search = filters.CharFilter(method="filter_search")
    status = filters.CharFilter(field_name="status", lookup_expr="iexact")
    assigned = filters.CharFilter(method="filter_assigned")

    def filter_search(self, queryset, name, value):
        search = (value or "").strip()
        if not search:
            return queryset
        query = Q()
        for field in self.search_fields:
            query |= Q(**{f"{field}__icontains": search})
        return queryset.filter(query)

    def filter_assigned(self, queryset, name, value):
        value = (value or "").strip().lower()
        if not value:
            return queryset
        if value == "me":
            user = getattr(self.request, "user", None)
            return queryset.filter(assigned_to_id=getattr(user, "id", None))
        if value == "unassigned":
            return queryset.filter(assigned_to__isnull=True)
        if value.isdigit():
            return queryset.filter(assigned_to_id=int(value))
        return queryset.none()


class ClaimFilter(TicketFilter):
    search_fields = ("claim_number", "claim_type", "claim_details", "created_by__email")

    class Meta:
        model = Claim
        fields = ["search", "status", "assigned"]


class ReportFilter(TicketFilter):
    search_fields = ("report_number", "report_details", "reporter__email")
    report_for = filters.CharFilter(field_name="report_for", lookup_expr="iexact")

    class Meta:
        model = Report
        fields = ["search", "status", "assigned", "report_for"]


class FeedbackFilter(TicketFilter):
    search_fields = ("feedback_details", "user__email", "user__username")

    class Meta:
        model = Feedback
        fields = ["search", "status", "assigned"]
