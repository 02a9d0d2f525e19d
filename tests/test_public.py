import pytest
from django.test import Client

pytestmark = pytest.mark.django_db


def test_public_service_page(make_service):
    design = make_service("Design", components=[
        {"type": "HEADING", "content": {"text": "Design"}, "order": 1},
        {"type": "TEXT_BLOCK", "order": 0},
    ])
    make_service("Logo", parent=design)
    make_service("Hidden", parent=design, is_active=False)

    resp = Client().get("/api/services/design/")
    assert resp.status_code == 200
    data = resp.json()["results"]
    assert [c["type"] for c in data["page_components"]] == ["TEXT_BLOCK", "HEADING"]
    assert [c["slug"] for c in data["children"]] == ["logo"]
    assert data["parent"] is None


def test_public_hides_inactive_and_missing(make_service):
    make_service("Secret", is_active=False)
    c = Client()
    assert c.get("/api/services/secret/").status_code == 404
    assert c.get("/api/services/nothing-here/").status_code == 404


def test_public_is_read_only(make_service):
    make_service("Design")
    assert Client().post("/api/services/design/").status_code == 405
