import pytest
from django.contrib.auth import get_user_model

from users import serializers as user_serializers
from users.models import LoginEvent, SocialIdentity

pytestmark = pytest.mark.django_db

User = get_user_model()


@pytest.fixture
def google_client_id(settings):
    settings.GOOGLE_OAUTH_CLIENT_ID = "google-client-id"
    return settings.GOOGLE_OAUTH_CLIENT_ID


def _mock_google_verify(monkeypatch, payload=None, error=None):
    def _fake_verify(token, request, audience=None):
        if error:
            raise error
        return payload

    monkeypatch.setattr(user_serializers.google_id_token, "verify_oauth2_token", _fake_verify)


def _login(client):
    return client.post("/api/users/google/", {"id_token": "token"}, format="json")


def test_google_login_existing_identity(api_client, google_client_id, monkeypatch, renter_user):
    SocialIdentity.objects.create(
        user=renter_user,
        provider=SocialIdentity.Provider.GOOGLE,
        provider_user_id="sub-123",
        email=renter_user.email,
    )
    _mock_google_verify(
        monkeypatch, {"sub": "sub-123", "email": renter_user.email, "email_verified": True}
    )

    resp = _login(api_client)

    assert resp.status_code == 200
    assert resp.data["user"]["id"] == renter_user.id
    event = LoginEvent.objects.get(user=renter_user)
    assert (event.method, event.oauth_provider) == ("oauth", "google")


def test_google_login_creates_user(api_client, google_client_id, monkeypatch):
    _mock_google_verify(
        monkeypatch,
        {
            "sub": "sub-new",
            "email": "Fresh.Face@example.com",
            "email_verified": True,
            "name": "Fresh Face",
            "picture": "https://lh3.googleusercontent.com/a/photo.jpg",
        },
    )

    resp = _login(api_client)

    assert resp.status_code == 200
    user = User.objects.get(email="fresh.face@example.com")
    assert user.username == "freshface"
    assert user.email_verified is True
    assert user.name == "Fresh Face"
    assert not user.has_usable_password()
    assert SocialIdentity.objects.filter(user=user, provider_user_id="sub-new").exists()


def test_google_login_refuses_unverified_local_account(
    api_client, google_client_id, monkeypatch, renter_user
):
    _mock_google_verify(
        monkeypatch, {"sub": "sub-x", "email": renter_user.email, "email_verified": True}
    )

    resp = _login(api_client)

    assert resp.status_code == 400
    assert "not verified" in resp.data["detail"]


def test_google_login_rejects_bad_token(api_client, google_client_id, monkeypatch):
    _mock_google_verify(monkeypatch, error=ValueError("bad signature"))

    resp = _login(api_client)

    assert resp.status_code == 400
    assert resp.data["detail"] == "Invalid Google token."


def test_google_login_requires_configuration(api_client, settings):
    settings.GOOGLE_OAUTH_CLIENT_ID = None

    resp = _login(api_client)

    assert resp.status_code == 400


def test_google_login_blocks_deactivated_account(
    api_client, google_client_id, monkeypatch, renter_user
):
    renter_user.is_active = False
    renter_user.save()
    SocialIdentity.objects.create(
        user=renter_user, provider=SocialIdentity.Provider.GOOGLE, provider_user_id="sub-9"
    )
    _mock_google_verify(
        monkeypatch, {"sub": "sub-9", "email": renter_user.email, "email_verified": True}
    )

    assert _login(api_client).status_code == 403
