from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from notifications import tasks as notification_tasks
from storage import s3

from .models import LoginEvent, PasswordResetChallenge, UserBlock, UserReview, update_user_review_stats
from .serializers import (
    ChangeEmailSerializer,
    ChangeUsernameSerializer,
    FlexibleTokenObtainPairSerializer,
    GoogleLoginSerializer,
    LoginEventSerializer,
    PasswordChangeSerializer,
    PasswordResetCompleteSerializer,
    PasswordResetRequestSerializer,
    PasswordResetVerifySerializer,
    ProfileSerializer,
    PublicProfileSerializer,
    SignupSerializer,
    UserReviewSerializer,
)
from .user_agents import detect_device, parse_browser

User = get_user_model()
logger = logging.getLogger(__name__)


def client_ip(request) -> str:
    """
    Return the best-effort client IP using X-Forwarded-For, falling back to REMOTE_ADDR.
    """
    forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded_for:
        # XFF may be a comma-separated list; take the first non-empty entry.
        for part in forwarded_for.split(","):
            candidate = part.strip()
            if candidate:
                return candidate
    return request.META.get("REMOTE_ADDR") or "0.0.0.0"


def user_agent(request) -> str:
    """Return the raw user-agent string (may be empty)."""
    return request.META.get("HTTP_USER_AGENT", "")


def record_login(
    request,
    user,
    *,
    success: bool = True,
    method: str = LoginEvent.Method.PASSWORD,
    oauth_provider: str = "",
) -> LoginEvent:
    """
    Persist a login history row and, on success, refresh the user's login metadata.
    """
    ip = client_ip(request)
    ua = user_agent(request)
    is_new_device = bool(
        user
        and success
        and (user.last_login_ip != ip or (user.last_login_ua or "") != ua)
        and user.last_login_ip
    )

    event = LoginEvent.objects.create(
        user=user,
        ip=ip,
        user_agent=ua,
        browser=parse_browser(ua) or "",
        device=detect_device(ua) or "",
        success=success,
        method=method,
        oauth_provider=oauth_provider,
    )

    if user and success:
        user.last_login = timezone.now()
        user.last_login_ip = ip
        user.last_login_ua = ua
        user.save(update_fields=["last_login", "last_login_ip", "last_login_ua"])
        if is_new_device and user.email:
            _safe_notify(notification_tasks.send_login_alert_email, user.id, ip, ua)

    return event


def _token_pair(user) -> dict:
    refresh = RefreshToken.for_user(user)
    return {"refresh": str(refresh), "access": str(refresh.access_token)}


class SignupView(generics.CreateAPIView):
    """Public email signup; answers with the profile and a token pair."""

    queryset = User.objects.all()
    serializer_class = SignupSerializer
    permission_classes = [permissions.AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        body = {"ok": True, "user": serializer.data, **_token_pair(user)}
        _safe_notify(notification_tasks.send_welcome_email, user.id)
        return Response(body, status=status.HTTP_201_CREATED)


class MeView(generics.RetrieveUpdateAPIView):
    """Authenticated profile view for the current user."""

    serializer_class = ProfileSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        user = self.request.user
        self.check_object_permissions(self.request, user)
        return user


class FlexibleTokenObtainPairView(TokenObtainPairView):
    """Login endpoint that accepts email or username as the identifier."""

    permission_classes = [permissions.AllowAny]
    serializer_class = FlexibleTokenObtainPairSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except (ValidationError, AuthenticationFailed):
            identifier = request.data.get("identifier") or request.data.get("email") or ""
            attempted = serializer._resolve_user(str(identifier)) if identifier else None
            if attempted:
                record_login(request, attempted, success=False)
            raise

        user = getattr(serializer, "user", None)
        if user:
            record_login(request, user)
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class GoogleLoginView(generics.GenericAPIView):
    """Exchange a Google ID token for a JWT pair."""

    permission_classes = [permissions.AllowAny]
    serializer_class = GoogleLoginSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]
        if not user.is_active:
            return Response(
                {"detail": "This account has been deactivated."},
                status=status.HTTP_403_FORBIDDEN,
            )
        record_login(
            request,
            user,
            method=LoginEvent.Method.OAUTH,
            oauth_provider="google",
        )
        return Response(
            {**_token_pair(user), "user": ProfileSerializer(user).data},
            status=status.HTTP_200_OK,
        )


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def logout(request):
    """Tokens are stateless; the client discards them."""
    return Response({"ok": True})


@api_view(["PATCH"])
@permission_classes([permissions.IsAuthenticated])
def update_open_dms(request):
    value = request.data.get("open_dms", request.data.get("openDms"))
    if not isinstance(value, bool):
        return Response(
            {"open_dms": ["Must be true or false."]},
            status=status.HTTP_400_BAD_REQUEST,
        )
    request.user.open_dms = value
    request.user.save(update_fields=["open_dms"])
    return Response({"ok": True, "open_dms": value})


class LoginHistoryView(generics.ListAPIView):
    serializer_class = LoginEventSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return LoginEvent.objects.filter(user=self.request.user).order_by("-created_at")


class PasswordResetRequestView(generics.GenericAPIView):
    """Initiate a password reset via email or SMS without leaking user existence."""

    permission_classes = [permissions.AllowAny]
    serializer_class = PasswordResetRequestSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        contact = serializer.validated_data["contact"]
        channel = serializer.validated_data["channel"]

        user = (
            User.objects.filter(email__iexact=contact).first()
            if channel == PasswordResetChallenge.Channel.EMAIL
            else User.objects.filter(phone=contact).first()
        )

        body = {"ok": True}
        if user and user.is_active:
            challenge = self._issue_challenge(user, channel, contact)
            body["challenge_id"] = challenge.id
        return Response(body, status=status.HTTP_200_OK)

    def _issue_challenge(self, user, channel: str, contact: str) -> PasswordResetChallenge:
        # Reuse the latest active challenge to avoid spamming rows.
        challenge = (
            PasswordResetChallenge.objects.filter(
                user=user,
                channel=channel,
                contact=contact,
                consumed=False,
            )
            .order_by("-created_at")
            .first()
        )
        if not challenge or challenge.is_expired():
            challenge = PasswordResetChallenge(user=user, channel=channel, contact=contact)

        raw_code = PasswordResetChallenge.generate_code()
        ttl = getattr(settings, "PASSWORD_RESET_CODE_TTL_MINUTES", 15)
        challenge.expires_at = timezone.now() + timedelta(minutes=ttl)
        challenge.max_attempts = getattr(settings, "PASSWORD_RESET_MAX_ATTEMPTS", 5)
        challenge.set_code(raw_code)
        challenge.save()

        if channel == PasswordResetChallenge.Channel.EMAIL:
            _safe_notify(
                notification_tasks.send_password_reset_code_email, user.id, contact, raw_code
            )
        else:
            _safe_notify(
                notification_tasks.send_password_reset_code_sms, user.id, contact, raw_code
            )
        return challenge


class PasswordResetVerifyView(generics.GenericAPIView):
    """Verify that a reset code is valid (challenge_id or contact-based lookup)."""

    permission_classes = [permissions.AllowAny]
    serializer_class = PasswordResetVerifySerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        challenge = serializer.validated_data["challenge"]
        return Response(
            {"verified": True, "challenge_id": challenge.id},
            status=status.HTTP_200_OK,
        )


class PasswordResetCompleteView(generics.GenericAPIView):
    """Finalize the reset by setting a new password and consuming the challenge."""

    permission_classes = [permissions.AllowAny]
    serializer_class = PasswordResetCompleteSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.validated_data["user"]
        challenge = serializer.validated_data["challenge"]

        user.set_password(serializer.validated_data["new_password"])
        user.save(update_fields=["password"])

        challenge.consumed = True
        challenge.save(update_fields=["consumed"])

        if user.email:
            _safe_notify(notification_tasks.send_password_changed_email, user.id)
        return Response({"ok": True}, status=status.HTTP_200_OK)


class PasswordChangeView(generics.GenericAPIView):
    """Authenticated password change endpoint for users who know their current password."""

    permission_classes = [permissions.IsAuthenticated]
    serializer_class = PasswordChangeSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = serializer.save()
        if user.email:
            _safe_notify(notification_tasks.send_password_changed_email, user.id)
        return Response({"ok": True}, status=status.HTTP_200_OK)


class ChangeEmailView(generics.GenericAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ChangeEmailSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response({"ok": True, "email": user.email}, status=status.HTTP_200_OK)


class ChangeUsernameView(generics.GenericAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ChangeUsernameSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response({"ok": True, "username": user.username}, status=status.HTTP_200_OK)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def deactivate_account(request):
    """Soft-deactivate the caller; accounts are never hard-deleted."""
    user = request.user
    user.is_active = False
    user.save(update_fields=["is_active"])
    logger.info("users: account %s deactivated by owner", user.id)
    return Response({"ok": True})


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def user_detail(request, pk: int):
    user = get_object_or_404(User, pk=pk, is_active=True)
    return Response(PublicProfileSerializer(user).data)


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
def user_by_username(request, username: str):
    user = get_object_or_404(User, username__iexact=username, is_active=True)
    return Response(PublicProfileSerializer(user).data)


@api_view(["GET"])
@permission_classes([permissions.IsAuthenticated])
def user_by_email(request):
    email = (request.query_params.get("email") or "").strip()
    if not email:
        return Response({"email": ["This query parameter is required."]}, status=400)
    user = get_object_or_404(User, email__iexact=email, is_active=True)
    return Response(PublicProfileSerializer(user).data)


@api_view(["POST"])
@permission_classes([permissions.IsAuthenticated])
def avatar_presigned_url(request):
    filename = (request.data.get("filename") or "").strip()
    if not filename:
        return Response({"filename": ["This field is required."]}, status=400)
    content_type = request.data.get("content_type") or s3.guess_content_type(filename)
    if not content_type.startswith("image/"):
        return Response({"content_type": ["Only images can be uploaded."]}, status=400)
    key = s3.avatar_object_key(request.user.id, filename)
    try:
        presigned = s3.presign_put(
            key,
            content_type=content_type,
            size_hint=request.data.get("size"),
        )
    except ValueError as exc:
        return Response({"size": [str(exc)]}, status=400)
    return Response(presigned)


class UserReviewListCreateView(generics.ListCreateAPIView):
    """Reviews left on a user's profile by people they rented with."""

    serializer_class = UserReviewSerializer

    def get_permissions(self):
        if self.request.method == "GET":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        return (
            UserReview.objects.filter(reviewed_user_id=self.kwargs["pk"])
            .select_related("reviewer")
            .order_by("-created_at")
        )

    def create(self, request, *args, **kwargs):
        reviewed = get_object_or_404(User, pk=self.kwargs["pk"])
        if reviewed.pk == request.user.pk:
            return Response(
                {"detail": "You cannot review yourself."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            with transaction.atomic():
                review = serializer.save(reviewer=request.user, reviewed_user=reviewed)
        except IntegrityError:
            return Response(
                {"detail": "You have already reviewed this user."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        update_user_review_stats(reviewed)
        return Response(self.get_serializer(review).data, status=status.HTTP_201_CREATED)


class UserReviewUpdateView(generics.UpdateAPIView):
    serializer_class = UserReviewSerializer
    permission_classes = [permissions.IsAuthenticated]
    queryset = UserReview.objects.select_related("reviewer", "reviewed_user")
    http_method_names = ["patch"]

    def update(self, request, *args, **kwargs):
        review = self.get_object()
        if review.reviewer_id != request.user.id:
            return Response(
                {"detail": "You can only edit your own reviews."},
                status=status.HTTP_403_FORBIDDEN,
            )
        serializer = self.get_serializer(review, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        update_user_review_stats(review.reviewed_user)
        return Response(serializer.data)


class UserBlockView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        blocked = UserBlock.objects.filter(blocker=request.user).select_related("blocked")
        return Response([PublicProfileSerializer(block.blocked).data for block in blocked])

    def post(self, request):
        return _create_block(request)


def _create_block(request):
    blocked_id = request.data.get("blocked_user_id") or request.data.get("blockedUserId")
    try:
        blocked_id = int(blocked_id)
    except (TypeError, ValueError):
        return Response({"blocked_user_id": ["A valid user id is required."]}, status=400)
    if blocked_id == request.user.id:
        return Response({"detail": "You cannot block yourself."}, status=400)
    blocked = get_object_or_404(User, pk=blocked_id)
    if UserBlock.objects.filter(blocker=request.user, blocked=blocked).exists():
        return Response({"detail": "User is already blocked."}, status=400)
    block = UserBlock.objects.create(blocker=request.user, blocked=blocked)
    return Response(
        {"ok": True, "id": block.id, "blocked_user_id": blocked.id},
        status=status.HTTP_201_CREATED,
    )


@api_view(["DELETE"])
@permission_classes([permissions.IsAuthenticated])
def remove_block(request, blocked_id: int):
    deleted, _ = UserBlock.objects.filter(blocker=request.user, blocked_id=blocked_id).delete()
    if not deleted:
        return Response({"detail": "Block not found."}, status=status.HTTP_404_NOT_FOUND)
    return Response({"ok": True})


def _safe_notify(task, *args):
    """Queue Celery tasks without failing the request if the broker is unavailable."""
    try:
        task.delay(*args)
    except Exception:
        logger.info("notifications task %s could not be queued", task.__name__, exc_info=True)
