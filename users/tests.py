import pytest

from users.models import User

pytestmark = pytest.mark.django_db

REGISTER_URL = "/api/auth/register/"
LOGIN_URL = "/api/auth/login/"
PROFILE_URL = "/api/auth/profile/"


def _register_payload(**overrides):
    payload = {
        "email": "new.student@example.com",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "password": "long-enough-pw",
    }
    payload.update(overrides)
    return payload


def test_register_creates_student_inside_envelope(api_client):
    resp = api_client.post(REGISTER_URL, _register_payload(), format="json")

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "new.student@example.com"
    assert body["data"]["user"]["role"] == "student"
    assert "password" not in body["data"]["user"]
    assert User.objects.get(email="new.student@example.com").check_password("long-enough-pw")


def test_anonymous_cannot_register_instructor(api_client):
    resp = api_client.post(REGISTER_URL, _register_payload(role="instructor"), format="json")

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"].startswith("role:")
    assert not User.objects.filter(email="new.student@example.com").exists()


def test_admin_can_register_instructor(auth_client, admin):
    resp = auth_client(admin).post(REGISTER_URL, _register_payload(role="instructor"), format="json")

    assert resp.status_code == 201
    assert resp.json()["data"]["user"]["role"] == "instructor"


def test_register_without_names_succeeds(api_client):
    payload = _register_payload()
    del payload["first_name"], payload["last_name"]
    resp = api_client.post(REGISTER_URL, payload, format="json")

    assert resp.status_code == 201
    user = User.objects.get(email="new.student@example.com")
    assert user.first_name == ""
    assert user.last_name == ""


def test_short_password_rejected(api_client):
    resp = api_client.post(REGISTER_URL, _register_payload(password="short"), format="json")

    assert resp.status_code == 400
    assert "errors" in resp.json()
    assert "password" in resp.json()["errors"]


def test_login_returns_tokens_and_user(api_client, student):
    resp = api_client.post(LOGIN_URL, {"email": student.email, "password": "s3cret-pass"}, format="json")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["access"]
    assert data["refresh"]
    assert data["user"]["email"] == student.email


def test_login_with_wrong_password_is_unauthorized(api_client, student):
    resp = api_client.post(LOGIN_URL, {"email": student.email, "password": "wrong"}, format="json")

    assert resp.status_code == 401
    assert resp.json()["success"] is False
    assert resp.json()["error"]


def test_profile_requires_authentication(api_client):
    resp = api_client.get(PROFILE_URL)

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Authentication credentials were not provided."}


def test_profile_returns_current_user(student_client, student):
    resp = student_client.get(PROFILE_URL)

    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == student.email


def test_email_backend_accepts_email_or_username(student):
    from django.contrib.auth import authenticate

    assert authenticate(email=student.email, password="s3cret-pass") == student
    assert authenticate(username=student.username, password="s3cret-pass") == student
    assert authenticate(email=student.email, password="nope") is None
