from django.urls import path

from . import api

app_name = "moderation"

urlpatterns = [
    path("users/", api.AdminUserListView.as_view(), name="users"),
    path("users/<int:pk>/status/", api.AdminUserStatusView.as_view(), name="user_status"),
    path("listings/", api.AdminListingListView.as_view(), name="listings"),
    path("listings/<int:pk>/", api.AdminListingDetailView.as_view(), name="listing_detail"),
    path("orders/", api.AdminOrderListView.as_view(), name="orders"),
    path("orders/<int:pk>/status/", api.AdminOrderStatusView.as_view(), name="order_status"),
    path("reviews/", api.AdminReviewListView.as_view(), name="reviews"),
    path(
        "reviews/<str:review_type>/<int:pk>/",
        api.AdminReviewDeleteView.as_view(),
        name="review_delete",
    ),
    path("claims/", api.AdminClaimListView.as_view(), name="claims"),
    path("claims/<int:pk>/assign/", api.AdminClaimAssignView.as_view(), name="claim_assign"),
    path("claims/<int:pk>/status/", api.AdminClaimStatusView.as_view(), name="claim_status"),
    path("reports/", api.AdminReportListView.as_view(), name="reports"),
    path("reports/<int:pk>/assign/", api.AdminReportAssignView.as_view(), name="report_assign"),
    path("reports/<int:pk>/status/", api.AdminReportStatusView.as_view(), name="report_status"),
    path(
        "reports/<int:pk>/take-action/",
        api.AdminReportTakeActionView.as_view(),
        name="report_take_action",
    ),
    path("feedback/", api.AdminFeedbackListView.as_view(), name="feedback"),
    path(
        "feedback/<int:pk>/assign/",
        api.AdminFeedbackAssignView.as_view(),
        name="feedback_assign",
    ),
    path(
        "feedback/<int:pk>/status/",
        api.AdminFeedbackStatusView.as_view(),
        name="feedback_status",
    ),
]
