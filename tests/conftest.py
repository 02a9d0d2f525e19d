import json

import pytest
from django.contrib.auth import get_user_model
from django.test import Client

from control.catalog import services_tree as tree


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="admin", email="admin@example.com", password="admin-pass-123", is_staff=True,
    )


@pytest.fixture
def plain_user(db):
    return get_user_model().objects.create_user(
        username="member", email="member@example.com", password="member-pass-123",
    )


@pytest.fixture
def admin_client(staff_user):
    c = Client()
    c.force_login(staff_user)
    return c


@pytest.fixture
def make_service(db):
    def _make(name, parent=None, **kwargs):
        return tree.create_service(name=name, parent_id=parent.pk if parent else None, **kwargs)
    return _make


class JsonClient:
    """admin_client 위에 JSON 본문 메서드만 얹은 얇은 래퍼"""

    def __init__(self, client):
        self.client = client

    def get(self, url, params=None):
        return self.client.get(url, params or {})

    def post(self, url, data=None):
        return self.client.post(url, json.dumps(data or {}), content_type="application/json")

    def put(self, url, data=None):
        return self.client.put(url, json.dumps(data or {}), content_type="application/json")

    def patch(self, url, data=None):
        return self.client.patch(url, json.dumps(data or {}), content_type="application/json")

    def delete(self, url):
        return self.client.delete(url)


@pytest.fixture
def api(admin_client):
    return JsonClient(admin_client)
