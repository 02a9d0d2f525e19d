import uuid

import pytest

from control.catalog.models import ServiceNode

pytestmark = pytest.mark.django_db

BULK = "/api/admin/services/bulk/"
VALIDATE = "/api/admin/services/validate/"
STATS = "/api/admin/services/stats/"


@pytest.fixture
def family(make_service):
    parent = make_service("Parent")
    kids = [make_service(n, parent=parent) for n in ("One", "Two", "Three")]
    return parent, kids


def _order(parent):
    return list(ServiceNode.objects.filter(parent=parent).order_by("position").values_list("name", flat=True))


def test_bulk_reorder(api, family):
    parent, (one, two, three) = family
    resp = api.post(BULK, {"operation": "reorder", "parentId": str(parent.pk),
                           "newOrder": [str(two.pk), str(three.pk), str(one.pk)]})
    assert resp.status_code == 200
    assert resp.json()["results"]["affected"] == 3
    assert _order(parent) == ["Two", "Three", "One"]


def test_bulk_reorder_bad_ids(api, family):
    parent, (one, two, three) = family
    resp = api.post(BULK, {"operation": "reorder", "parent_id": str(parent.pk), "new_order": ["nope"]})
    assert resp.status_code == 400
    resp = api.post(BULK, {"operation": "reorder", "parent_id": str(parent.pk), "new_order": [str(one.pk)]})
    assert resp.status_code == 400


def test_bulk_move(api, family, make_service):
    parent, (one, two, three) = family
    other = make_service("Other")
    resp = api.post(BULK, {"operation": "move", "serviceId": str(three.pk),
                           "newParentId": str(other.pk), "newPosition": 0})
    assert resp.status_code == 200
    assert resp.json()["results"]["parent_id"] == str(other.pk)
    assert _order(parent) == ["One", "Two"]

    resp = api.post(BULK, {"operation": "move", "service_id": str(parent.pk),
                           "new_parent_id": str(three.pk), "new_position": 0})
    assert resp.status_code == 200

    resp = api.post(BULK, {"operation": "move", "service_id": str(other.pk),
                           "new_parent_id": str(three.pk), "new_position": 0})
    assert resp.status_code == 400


def test_bulk_update_positions(api, family):
    parent, (one, two, three) = family
    resp = api.post(BULK, {"operation": "updatePositions", "updates": [
        {"id": str(one.pk), "position": 10}, {"id": str(three.pk), "position": 0},
    ]})
    assert resp.status_code == 200
    assert _order(parent) == ["Three", "Two", "One"]

    resp = api.post(BULK, {"operation": "updatePositions", "updates": [{"id": str(uuid.uuid4()), "position": 1}]})
    assert resp.status_code == 404
    resp = api.post(BULK, {"operation": "updatePositions", "updates": [{"id": str(one.pk)}]})
    assert resp.status_code == 400


def test_bulk_active_status(api, family):
    parent, kids = family
    resp = api.post(BULK, {"operation": "updateActiveStatus",
                           "serviceIds": [str(k.pk) for k in kids], "isActive": False})
    assert resp.status_code == 200
    assert resp.json()["results"]["affected"] == 3
    assert ServiceNode.objects.filter(is_active=False).count() == 3

    resp = api.post(BULK, {"operation": "updateActiveStatus", "serviceIds": [str(kids[0].pk)]})
    assert resp.status_code == 400


def test_bulk_duplicate(api, family):
    parent, (one, two, three) = family
    resp = api.post(BULK, {"operation": "duplicate", "serviceId": str(two.pk)})
    assert resp.status_code == 201
    body = resp.json()
    assert body["results"]["slug"] == "two-copy"
    assert body["results"]["is_active"] is False
    assert body["new_service_id"] == body["results"]["id"]

    resp = api.post(BULK, {"operation": "duplicate", "serviceId": str(two.pk), "newParentId": None,
                           "namePrefix": "Draft: "})
    data = resp.json()["results"]
    assert (data["name"], data["slug"], data["parent_id"], data["depth"]) == ("Draft: Two", "two-copy-1", None, 0)


def test_bulk_unknown_operation(api):
    assert api.post(BULK, {"operation": "explode"}).status_code == 400


def test_validate_slug_and_name(api, make_service):
    svc = make_service("Web Design")

    resp = api.post(VALIDATE, {"action": "slug", "slug": "web-design"}).json()["results"]
    assert resp["is_valid"] is False
    resp = api.post(VALIDATE, {"action": "slug", "slug": "web-design", "excludeId": str(svc.pk)}).json()["results"]
    assert resp["is_valid"] is True

    resp = api.post(VALIDATE, {"action": "name", "name": "Web Design!"}).json()["results"]
    assert (resp["is_valid"], resp["generated_slug"]) == (False, "web-design")
    resp = api.post(VALIDATE, {"action": "name", "name": "Photography"}).json()["results"]
    assert (resp["is_valid"], resp["generated_slug"]) == (True, "photography")


def test_validate_parent(api, make_service):
    a = make_service("A")
    b = make_service("B", parent=a)

    def check(service, parent):
        return api.post(VALIDATE, {"action": "parent", "serviceId": str(service),
                                   "potentialParentId": str(parent)}).json()["results"]["is_valid"]

    assert check(b.pk, a.pk) is True
    assert check(a.pk, b.pk) is False
    assert check(a.pk, uuid.uuid4()) is False
    assert api.post(VALIDATE, {"action": "guess"}).status_code == 400


def test_stats(api, make_service):
    a = make_service("A")
    make_service("B", parent=a)
    make_service("C", parent=a, is_active=False)

    resp = api.get(STATS)
    assert resp.status_code == 200
    stats = resp.json()["results"]
    assert stats["overview"] == {
        "total_services": 3, "active_services": 2, "inactive_services": 1,
        "root_services": 1, "health_score": 100,
    }
    assert stats["distribution"]["by_depth"] == [{"depth": 0, "count": 1}, {"depth": 1, "count": 2}]
    assert stats["tree_health"]["avg_children_per_parent"] == 2
    assert {s["name"] for s in stats["tree_health"]["deepest_services"]} == {"B", "C"}
    assert len(stats["recent"]["created"]) == 3
