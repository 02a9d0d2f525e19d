import pytest

from control.catalog.models import ServiceNode

pytestmark = pytest.mark.django_db

CATEGORIES = "/api/admin/services/categories/"


def test_list_categories_with_service_count(api, make_service):
    design = make_service("Design")
    make_service("Logo", parent=design)
    make_service("Print", parent=design)
    make_service("Marketing")

    resp = api.get(CATEGORIES)
    assert resp.status_code == 200
    rows = resp.json()["results"]
    assert [(r["name"], r["service_count"]) for r in rows] == [("Design", 2), ("Marketing", 0)]


def test_create_category(api, make_service):
    make_service("Existing")
    resp = api.post(CATEGORIES, {"name": "Consulting", "description": "Advice"})
    assert resp.status_code == 201
    data = resp.json()["results"]
    assert (data["slug"], data["position"], data["service_count"]) == ("consulting", 1, 0)
    assert ServiceNode.objects.get(slug="consulting").parent_id is None

    assert api.post(CATEGORIES, {"name": "x" * 101}).status_code == 400
    assert api.post(CATEGORIES, {"name": "Consulting"}).status_code == 409


def test_category_detail_update_delete(api, make_service):
    design = make_service("Design")
    logo = make_service("Logo", parent=design)
    url = f"{CATEGORIES}{design.pk}/"

    assert api.get(url).json()["results"]["service_count"] == 1
    # 하위 서비스는 카테고리 URL 로 접근할 수 없다
    assert api.get(f"{CATEGORIES}{logo.pk}/").status_code == 404

    resp = api.patch(url, {"name": "Graphic Design", "isActive": False})
    assert resp.status_code == 200
    assert (resp.json()["results"]["slug"], resp.json()["results"]["is_active"]) == ("graphic-design", False)

    assert api.delete(url).status_code == 409
    ServiceNode.objects.filter(pk=logo.pk).delete()
    assert api.delete(url).status_code == 200
    assert not ServiceNode.objects.exists()
