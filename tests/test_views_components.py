import uuid

import pytest

from control.catalog.models import CarouselImage, PageComponent

pytestmark = pytest.mark.django_db


def _url(service, *parts):
    tail = "".join(f"{p}/" for p in parts)
    return f"/api/admin/services/{service.pk}/components/{tail}"


@pytest.fixture
def service(make_service):
    return make_service("Page", components=[
        {"type": "HEADING", "order": 0},
        {"type": "TEXT_BLOCK", "order": 1},
        {"type": "IMAGE", "order": 2},
    ])


def _types(resp):
    return [c["type"] for c in resp.json()["results"]]


def test_component_types_palette(api):
    resp = api.get("/api/admin/component-types/")
    assert resp.status_code == 200
    assert len(resp.json()["results"]) == 11


def test_list_components(api, service):
    resp = api.get(_url(service))
    assert _types(resp) == ["HEADING", "TEXT_BLOCK", "IMAGE"]
    assert [c["order"] for c in resp.json()["results"]] == [0, 1, 2]
    assert api.get(f"/api/admin/services/{uuid.uuid4()}/components/").status_code == 404


def test_add_component(api, service):
    resp = api.post(_url(service), {"type": "CTA_BUTTON", "content": {"url": "/contact"}})
    assert resp.status_code == 201
    data = resp.json()["results"]
    assert data["order"] == 3
    assert data["content"] == {"text": "Click Here", "url": "/contact", "variant": "primary", "size": "default"}

    assert api.post(_url(service), {}).status_code == 400
    assert api.post(_url(service), {"type": "BANNER"}).status_code == 400


def test_remove_component_renumbers(api, service):
    text_id = PageComponent.objects.get(service=service, type="TEXT_BLOCK").pk
    resp = api.delete(_url(service, text_id))
    assert resp.status_code == 200
    assert _types(resp) == ["HEADING", "IMAGE"]
    assert [c["order"] for c in resp.json()["results"]] == [0, 1]
    assert api.delete(_url(service, uuid.uuid4())).status_code == 404


def test_update_component(api, service):
    heading_id = PageComponent.objects.get(service=service, type="HEADING").pk
    resp = api.patch(_url(service, heading_id), {"content": {"level": "h1"}, "styleVariant": "gradient"})
    assert resp.status_code == 200
    data = resp.json()["results"]
    assert data["content"] == {"text": "New Heading", "level": "h1"}
    assert data["style_variant"] == "gradient"

    assert api.patch(_url(service, heading_id), {"content": {"level": "h7"}}).status_code == 400


def test_move_component(api, service):
    image_id = PageComponent.objects.get(service=service, type="IMAGE").pk
    resp = api.post(_url(service, image_id, "move"), {"direction": "up"})
    assert _types(resp) == ["HEADING", "IMAGE", "TEXT_BLOCK"]
    assert api.post(_url(service, image_id, "move"), {"direction": "sideways"}).status_code == 400


def test_replace_whole_list(api, service):
    resp = api.put(_url(service), {"page_components": [{"type": "DIVIDER"}, {"type": "SPACER"}]})
    assert resp.status_code == 200
    assert _types(resp) == ["DIVIDER", "SPACER"]
    assert PageComponent.objects.filter(service=service).count() == 2


def test_carousel_image_endpoints(api, make_service):
    svc = make_service("Gallery", components=[{"type": "IMAGE_CAROUSEL"}, {"type": "IMAGE_CAROUSEL"}])
    first, second = PageComponent.objects.filter(service=svc).order_by("order")

    for name in ("a.jpg", "b.jpg"):
        resp = api.post(_url(svc, first.pk, "images"), {"imageUrl": name, "altText": name})
        assert resp.status_code == 201
    api.post(_url(svc, second.pk, "images"), {"image_url": "z.jpg"})

    a_id = CarouselImage.objects.get(image_url="a.jpg").pk
    b_id = CarouselImage.objects.get(image_url="b.jpg").pk

    resp = api.post(_url(svc, first.pk, "images", b_id, "move"), {"direction": "up"})
    assert [i["image_url"] for i in resp.json()["results"]["carousel_images"]] == ["b.jpg", "a.jpg"]

    resp = api.delete(_url(svc, first.pk, "images", a_id))
    images = resp.json()["results"]["carousel_images"]
    assert [(i["image_url"], i["order"]) for i in images] == [("b.jpg", 0)]

    assert list(CarouselImage.objects.filter(component__order=1).values_list("image_url", "order")) == [("z.jpg", 0)]


def test_carousel_image_on_plain_component_400(api, service):
    heading_id = PageComponent.objects.get(service=service, type="HEADING").pk
    assert api.post(_url(service, heading_id, "images"), {"image_url": "a.jpg"}).status_code == 400


def test_copy_layout_from_another_service(api, service, make_service):
    other = make_service("Other")
    layout = api.get(_url(service)).json()["results"]

    resp = api.put(_url(other), {"page_components": layout})
    assert resp.status_code == 200
    copied = resp.json()["results"]
    assert [c["type"] for c in copied] == ["HEADING", "TEXT_BLOCK", "IMAGE"]
    assert not {c["id"] for c in copied} & {c["id"] for c in layout}

    assert PageComponent.objects.filter(service=service).count() == 3
    assert PageComponent.objects.filter(service=other).count() == 3


def test_replace_keeps_own_component_ids(api, service):
    layout = api.get(_url(service)).json()["results"]
    resp = api.put(_url(service), {"page_components": layout})
    assert [c["id"] for c in resp.json()["results"]] == [c["id"] for c in layout]


def test_shared_image_id_across_carousels(api, make_service):
    svc = make_service("Gallery")
    image_id = str(uuid.uuid4())
    resp = api.put(_url(svc), {"page_components": [
        {"type": "IMAGE_CAROUSEL", "carousel_images": [{"id": image_id, "image_url": "a.jpg"}]},
        {"type": "IMAGE_CAROUSEL", "carousel_images": [{"id": image_id, "image_url": "b.jpg"}]},
    ]})
    assert resp.status_code == 200
    ids = [c["carousel_images"][0]["id"] for c in resp.json()["results"]]
    assert ids[0] == image_id and ids[1] != image_id
    assert CarouselImage.objects.filter(component__service=svc).count() == 2
