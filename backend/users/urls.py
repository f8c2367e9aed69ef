from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from . import api
from .api import (
    ChangeEmailView,
    ChangeUsernameView,
    FlexibleTokenObtainPairView,
    GoogleLoginView,
    LoginHistoryView,
    MeView,
    PasswordChangeView,
    PasswordResetCompleteView,
    PasswordResetRequestView,
    PasswordResetVerifyView,
    SignupView,
    UserBlockView,
    UserReviewListCreateView,
    UserReviewUpdateView,
)

app_name = "users"

urlpatterns = [
    path("", api.user_by_email, name="user_by_email"),
    path("signup/", SignupView.as_view(), name="signup"),
    path("token/", FlexibleTokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("login/", FlexibleTokenObtainPairView.as_view(), name="login"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("google/", GoogleLoginView.as_view(), name="google_login"),
    path("logout/", api.logout, name="logout"),
    path("me/", MeView.as_view(), name="me"),
    path("me/open-dms/", api.update_open_dms, name="open_dms"),
    path("me/login-history/", LoginHistoryView.as_view(), name="login_history"),
    path("change-password/", PasswordChangeView.as_view(), name="change_password"),
    path("change-email/", ChangeEmailView.as_view(), name="change_email"),
    path("change-username/", ChangeUsernameView.as_view(), name="change_username"),
    path("deactivate/", api.deactivate_account, name="deactivate"),
    path("avatar/presigned-url/", api.avatar_presigned_url, name="avatar_presigned_url"),
    path(
        "password-reset/request/", PasswordResetRequestView.as_view(), name="password_reset_request"
    ),
    path("password-reset/verify/", PasswordResetVerifyView.as_view(), name="password_reset_verify"),
    path(
        "password-reset/complete/",
        PasswordResetCompleteView.as_view(),
        name="password_reset_complete",
    ),
    path("blocks/", UserBlockView.as_view(), name="blocks"),
    path("blocks/<int:blocked_id>/", api.remove_block, name="remove_block"),
    path("reviews/<int:pk>/", UserReviewUpdateView.as_view(), name="user_review_update"),
    path("username/<str:username>/", api.user_by_username, name="user_by_username"),
    path("<int:pk>/", api.user_detail, name="user_detail"),
    path("<int:pk>/reviews/", UserReviewListCreateView.as_view(), name="user_reviews"),
]
