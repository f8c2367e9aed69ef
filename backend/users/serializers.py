from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from rest_framework import serializers, status
from rest_framework.exceptions import APIException, AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import LoginEvent, PasswordResetChallenge, SocialIdentity, UserReview

User = get_user_model()
PHONE_CLEAN_RE = re.compile(r"\D+")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{3,30}$")

logger = logging.getLogger(__name__)


class GoogleLoginRejected(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Google sign-in failed."
    default_code = "google_login_rejected"


def normalize_phone(raw_phone: Optional[str]) -> Optional[str]:
    """
    Return a best-effort E.164 number.

    Numbers containing exactly 10 digits default to +1; everything else must include
    an explicit country code (e.g., +44...).
    """
    if not raw_phone:
        return None

    stripped = raw_phone.strip()
    digits = PHONE_CLEAN_RE.sub("", stripped)
    if not digits:
        raise serializers.ValidationError("Enter a phone number.")

    if stripped.startswith("+"):
        normalized = f"+{digits}"
    elif len(digits) == 10:
        normalized = f"+1{digits}"
    else:
        raise serializers.ValidationError("Include country code (e.g. +1...).")

    if len(normalized) < 11 or len(normalized) > 17:
        raise serializers.ValidationError("Enter a valid phone number.")
    return normalized


def _normalize_contact(contact: str) -> Tuple[str, str]:
    """Infer whether the contact is email or phone and normalize accordingly."""
    value = (contact or "").strip()
    if not value:
        raise serializers.ValidationError("Enter an email address or phone number.")

    if "@" in value:
        return value.lower(), PasswordResetChallenge.Channel.EMAIL

    return normalize_phone(value), PasswordResetChallenge.Channel.SMS


def generate_username(seed: str) -> str:
    """Derive a unique username from an email local part or display name."""
    base = re.sub(r"[^a-z0-9]+", "", (seed or "").lower())[:24] or "user"
    candidate = base
    suffix = 1
    while User.objects.filter(username__iexact=candidate).exists():
        candidate = f"{base}{suffix}"
        suffix += 1
    return candidate


class ProfileSerializer(serializers.ModelSerializer):
    """The signed-in user's own profile."""

    name = serializers.CharField(required=False, allow_blank=True, max_length=300)
    active = serializers.BooleanField(source="is_active", read_only=True)
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "name",
            "phone",
            "city",
            "postal_code",
            "latitude",
            "longitude",
            "avatar_url",
            "admin",
            "moderator",
            "active",
            "founding_supporter",
            "top_referrer",
            "ambassador",
            "open_dms",
            "email_verified",
            "rating",
            "review_count",
            "date_joined",
        ]
        read_only_fields = (
            "id",
            "username",
            "email",
            "admin",
            "moderator",
            "founding_supporter",
            "top_referrer",
            "ambassador",
            "email_verified",
            "rating",
            "review_count",
            "date_joined",
        )

    def validate_phone(self, value: Optional[str]) -> Optional[str]:
        if value in (None, ""):
            return None
        normalized = normalize_phone(value)
        qs = User.objects.all()
        if self.instance:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.filter(phone=normalized).exists():
            raise serializers.ValidationError("A user with this phone already exists.")
        return normalized

    def update(self, instance: User, validated_data: dict):
        name = validated_data.pop("name", None)
        if name is not None:
            instance.set_name(name)
        return super().update(instance, validated_data)


class PublicProfileSerializer(serializers.ModelSerializer):
    """Limited profile details that are safe to expose publicly."""

    name = serializers.CharField(read_only=True)
    avatar_url = serializers.CharField(source="display_avatar_url", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "name",
            "city",
            "avatar_url",
            "founding_supporter",
            "top_referrer",
            "ambassador",
            "open_dms",
            "date_joined",
            "rating",
            "review_count",
        ]
        read_only_fields = tuple(fields)


class LoginEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = LoginEvent
        fields = (
            "id",
            "ip",
            "browser",
            "device",
            "success",
            "method",
            "oauth_provider",
            "created_at",
        )


class SignupSerializer(serializers.ModelSerializer):
    """Email + password signup."""

    password = serializers.CharField(write_only=True)
    email = serializers.EmailField()
    name = serializers.CharField(max_length=300)
    username = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = User
        fields = ["id", "username", "email", "name", "password"]

    def validate_password(self, value: str) -> str:
        validate_password(value)
        return value

    def validate_email(self, value: str) -> str:
        email = value.strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("email already registered")
        return email

    def validate_username(self, value: str) -> str:
        value = (value or "").strip()
        if not value:
            return value
        if not USERNAME_RE.match(value):
            raise serializers.ValidationError(
                "Usernames are 3-30 letters, digits, dots, dashes or underscores."
            )
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("username already taken")
        return value

    def create(self, validated_data: dict) -> User:
        password = validated_data.pop("password")
        name = validated_data.pop("name")
        if not validated_data.get("username"):
            validated_data["username"] = generate_username(validated_data["email"].split("@")[0])
        user = User(**validated_data)
        user.set_name(name)
        user.set_password(password)
        user.save()
        return user

    def to_representation(self, instance):
        return ProfileSerializer(instance, context=self.context).data


class FlexibleTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Accepts email or username for authentication and returns a JWT pair.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["identifier"] = serializers.CharField(required=False, allow_blank=True)
        self.fields["email"] = serializers.CharField(required=False, allow_blank=True)
        if self.username_field in self.fields:
            self.fields[self.username_field].required = False

    def validate(self, attrs: dict) -> dict:
        identifier = (
            attrs.get("identifier") or attrs.get("email") or attrs.get(self.username_field) or ""
        )
        password = attrs.get("password")
        if not identifier or not password:
            raise serializers.ValidationError(
                {"non_field_errors": ["Provide credentials to log in."]}
            )

        user = self._resolve_user(identifier)
        if not user:
            raise AuthenticationFailed(self.error_messages["no_active_account"])

        # TokenObtainPairSerializer expects the username field in attrs.
        attrs[self.username_field] = user.get_username()
        self.user = user
        return super().validate(attrs)

    def _resolve_user(self, identifier: str) -> Optional[User]:
        value = identifier.strip()
        if not value:
            return None
        if "@" in value:
            user = User.objects.filter(email__iexact=value).first()
            if user:
                return user
        return User.objects.filter(username__iexact=value).first()


class GoogleLoginSerializer(serializers.Serializer):
    """Verify a Google ID token and resolve (or create) the matching user."""

    id_token = serializers.CharField()

    def validate(self, attrs: dict) -> dict:
        audience = getattr(settings, "GOOGLE_OAUTH_CLIENT_ID", None)
        if not audience:
            raise GoogleLoginRejected("Google sign-in is not configured.")
        try:
            payload = google_id_token.verify_oauth2_token(
                attrs["id_token"], google_requests.Request(), audience=audience
            )
        except ValueError as exc:
            logger.info("users: google id token rejected: %s", exc)
            raise GoogleLoginRejected("Invalid Google token.") from exc

        subject = payload.get("sub")
        email = (payload.get("email") or "").strip().lower()
        if not subject or not email:
            raise GoogleLoginRejected("Google account is missing an email address.")
        if not payload.get("email_verified"):
            raise GoogleLoginRejected("Google email is not verified.")

        attrs["user"] = self._resolve_user(subject, email, payload)
        return attrs

    def _resolve_user(self, subject: str, email: str, payload: dict) -> User:
        identity = (
            SocialIdentity.objects.select_related("user")
            .filter(provider=SocialIdentity.Provider.GOOGLE, provider_user_id=subject)
            .first()
        )
        if identity:
            return identity.user

        user = User.objects.filter(email__iexact=email).first()
        if user:
            if not user.email_verified:
                raise GoogleLoginRejected("Email exists but is not verified.")
        else:
            user = User(
                username=generate_username(email.split("@")[0]),
                email=email,
                email_verified=True,
                avatar_url=payload.get("picture") or "",
            )
            user.set_name(payload.get("name") or "")
            user.set_unusable_password()
            user.save()

        SocialIdentity.objects.create(
            user=user,
            provider=SocialIdentity.Provider.GOOGLE,
            provider_user_id=subject,
            email=email,
        )
        return user


class PasswordResetRequestSerializer(serializers.Serializer):
    """Request a reset code via email or SMS."""

    contact = serializers.CharField()

    def validate(self, attrs: dict) -> dict:
        contact, channel = _normalize_contact(attrs.get("contact", ""))
        attrs["contact"] = contact
        attrs["channel"] = channel
        return attrs


class _PasswordResetBaseSerializer(serializers.Serializer):
    """Common lookup + code validation logic."""

    challenge_id = serializers.IntegerField(required=False)
    contact = serializers.CharField(required=False, allow_blank=True)
    code = serializers.CharField()

    default_error_messages = {
        "missing_lookup": "Provide challenge_id or contact.",
        "invalid_code": "Invalid or expired reset code.",
    }

    def validate(self, attrs: dict) -> dict:
        challenge = self._resolve_challenge(attrs)
        if not challenge or not challenge.can_attempt():
            raise serializers.ValidationError({"code": self.error_messages["invalid_code"]})

        match = challenge.check_code(attrs["code"])
        challenge.save(update_fields=["attempts", "verified_at"])
        if not match:
            raise serializers.ValidationError({"code": self.error_messages["invalid_code"]})

        attrs["challenge"] = challenge
        attrs["user"] = challenge.user
        return attrs

    def _resolve_challenge(self, attrs: dict) -> Optional[PasswordResetChallenge]:
        challenge_id = attrs.get("challenge_id")
        contact = attrs.get("contact")
        qs = PasswordResetChallenge.objects.select_related("user").filter(consumed=False)

        if challenge_id:
            return qs.filter(id=challenge_id).first()

        if contact:
            try:
                normalized_contact, channel = _normalize_contact(contact)
            except serializers.ValidationError as exc:
                raise serializers.ValidationError({"contact": exc.detail}) from exc
            return (
                qs.filter(channel=channel, contact=normalized_contact)
                .order_by("-created_at")
                .first()
            )

        raise serializers.ValidationError(
            {"non_field_errors": [self.error_messages["missing_lookup"]]}
        )


class PasswordResetVerifySerializer(_PasswordResetBaseSerializer):
    """Verifies that a code is correct without consuming it."""


class PasswordResetCompleteSerializer(_PasswordResetBaseSerializer):
    """Validate the reset code and new password."""

    new_password = serializers.CharField(write_only=True)

    def validate_new_password(self, value: str) -> str:
        validate_password(value)
        return value


class PasswordChangeSerializer(serializers.Serializer):
    """Allow authenticated users to update their password."""

    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    default_error_messages = {
        "incorrect_current": "Current password is incorrect.",
        "password_unmodified": "New password must be different from the current password.",
    }

    def validate_current_password(self, value: str) -> str:
        user = self.context["request"].user
        if not user.check_password(value):
            raise serializers.ValidationError(self.error_messages["incorrect_current"])
        return value

    def validate_new_password(self, value: str) -> str:
        validate_password(value, self.context["request"].user)
        return value

    def validate(self, attrs: dict) -> dict:
        if attrs["current_password"] == attrs["new_password"]:
            raise serializers.ValidationError(
                {"new_password": self.error_messages["password_unmodified"]}
            )
        return attrs

    def save(self, **kwargs):
        user = self.context["request"].user
        user.set_password(self.validated_data["new_password"])
        user.save(update_fields=["password"])
        return user


class ChangeEmailSerializer(serializers.Serializer):
    new_email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate_password(self, value: str) -> str:
        if not self.context["request"].user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate_new_email(self, value: str) -> str:
        email = value.strip().lower()
        user = self.context["request"].user
        if User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
            raise serializers.ValidationError("email already registered")
        return email

    def save(self, **kwargs):
        user = self.context["request"].user
        if user.email.lower() != self.validated_data["new_email"]:
            user.email = self.validated_data["new_email"]
            user.email_verified = False
            user.save(update_fields=["email", "email_verified"])
        return user


class ChangeUsernameSerializer(serializers.Serializer):
    username = serializers.CharField()

    def validate_username(self, value: str) -> str:
        value = value.strip()
        if not USERNAME_RE.match(value):
            raise serializers.ValidationError(
                "Usernames are 3-30 letters, digits, dots, dashes or underscores."
            )
        user = self.context["request"].user
        if User.objects.filter(username__iexact=value).exclude(pk=user.pk).exists():
            raise serializers.ValidationError("username already taken")
        return value

    def save(self, **kwargs):
        user = self.context["request"].user
        user.username = self.validated_data["username"]
        user.save(update_fields=["username"])
        return user


class UserReviewSerializer(serializers.ModelSerializer):
    reviewer = PublicProfileSerializer(read_only=True)

    class Meta:
        model = UserReview
        fields = ["id", "reviewer", "reviewed_user", "rating", "comment", "created_at", "updated_at"]
        read_only_fields = ("id", "reviewer", "reviewed_user", "created_at", "updated_at")

    def validate_rating(self, value: int) -> int:
        if value < 1 or value > 5:
            raise serializers.ValidationError("Rating must be between 1 and 5.")
        return value

    def validate_comment(self, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Comment is required.")
        return value
