import json

import bcrypt
import pytest
from django.contrib.auth import get_user_model
from django.test import Client

pytestmark = pytest.mark.django_db

LOGIN = "/api/auth/login/"


def _login(client, email, password):
    return client.post(LOGIN, json.dumps({"email": email, "password": password}), content_type="application/json")


def test_login_and_access_admin_api(staff_user):
    c = Client()
    resp = _login(c, "ADMIN@example.com", "admin-pass-123")
    assert resp.status_code == 200
    assert resp.json()["user"]["is_staff"] is True

    assert c.get("/api/admin/services/").status_code == 200
    assert c.get("/api/auth/me/").json()["user"]["email"] == "admin@example.com"

    assert c.post("/api/auth/logout/").status_code == 200
    assert c.get("/api/admin/services/").status_code == 401


def test_login_form_encoded(staff_user):
    resp = Client().post(LOGIN, {"email": "admin@example.com", "password": "admin-pass-123"})
    assert resp.status_code == 200


def test_login_failures(staff_user):
    c = Client()
    assert _login(c, "admin@example.com", "wrong").status_code == 401
    assert _login(c, "nobody@example.com", "whatever").status_code == 401
    assert _login(c, "", "").status_code == 400
    assert c.get(LOGIN).status_code == 405


def test_inactive_user_cannot_login(staff_user):
    staff_user.is_active = False
    staff_user.save()
    assert _login(Client(), "admin@example.com", "admin-pass-123").status_code == 401


def test_legacy_bcrypt_hash_is_migrated(db):
    User = get_user_model()
    user = User.objects.create(username="legacy", email="legacy@example.com", is_staff=True)
    legacy = bcrypt.hashpw(b"old-secret", bcrypt.gensalt(rounds=4)).decode()
    User.objects.filter(pk=user.pk).update(password=legacy)

    c = Client()
    assert _login(c, "legacy@example.com", "wrong").status_code == 401
    user.refresh_from_db()
    assert user.password == legacy

    assert _login(c, "legacy@example.com", "old-secret").status_code == 200
    user.refresh_from_db()
    assert not user.password.startswith("$2")
    assert user.check_password("old-secret")

    assert _login(Client(), "legacy@example.com", "old-secret").status_code == 200


def test_non_staff_login_is_forbidden_on_admin_api(plain_user):
    c = Client()
    assert _login(c, "member@example.com", "member-pass-123").status_code == 200
    assert c.get("/api/admin/services/").status_code == 403
