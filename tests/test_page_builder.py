import uuid

import pytest

from control.catalog import page_builder as pb
from control.catalog.models import ComponentType
from control.errors import NotFound, ValidationFailed


def _orders(items):
    return [x.order for x in items]


def _types(items):
    return [x.type for x in items]


@pytest.fixture
def page():
    items = pb.add_component([], "HEADING")
    items = pb.add_component(items, "TEXT_BLOCK")
    return pb.add_component(items, "IMAGE")


def test_add_appends_with_default_content():
    items = pb.add_component([], "HEADING")
    assert _orders(items) == [0]
    assert items[0].content == {"text": "New Heading", "level": "h2"}
    assert items[0].style_variant is None

    items = pb.add_component(items, "CTA_BUTTON", content={"text": "Book now"}, style_variant="default")
    assert _orders(items) == [0, 1]
    assert items[1].content == {"text": "Book now", "url": "", "variant": "primary", "size": "default"}


def test_remove_renumbers_remaining(page):
    text_id = page[1].id
    items = pb.remove_component(page, text_id)
    assert _types(items) == ["HEADING", "IMAGE"]
    assert _orders(items) == [0, 1]


def test_remove_unknown_component_raises(page):
    with pytest.raises(NotFound):
        pb.remove_component(page, str(uuid.uuid4()))


def test_move_swaps_with_neighbour(page):
    items = pb.move_component(page, page[2].id, "up")
    assert _types(items) == ["HEADING", "IMAGE", "TEXT_BLOCK"]
    assert _orders(items) == [0, 1, 2]

    items = pb.move_component(items, items[0].id, "down")
    assert _types(items) == ["IMAGE", "HEADING", "TEXT_BLOCK"]


def test_move_past_edge_is_noop(page):
    assert _types(pb.move_component(page, page[0].id, "up")) == _types(page)
    assert _types(pb.move_component(page, page[2].id, "down")) == _types(page)


def test_move_rejects_bad_direction(page):
    with pytest.raises(ValidationFailed):
        pb.move_component(page, page[0].id, "left")


def test_orders_stay_dense_through_mixed_edits():
    items = []
    for t in ("HEADING", "TEXT_BLOCK", "SPACER", "DIVIDER", "QUOTE_BLOCK"):
        items = pb.add_component(items, t)
    items = pb.remove_component(items, items[1].id)
    items = pb.move_component(items, items[3].id, "up")
    items = pb.add_component(items, "IMAGE")
    items = pb.remove_component(items, items[0].id)
    assert sorted(_orders(items)) == list(range(len(items)))


def test_renumber_keeps_submission_order_on_ties():
    a = pb.ComponentDraft(id="a", type="SPACER", content={}, order=5)
    b = pb.ComponentDraft(id="b", type="SPACER", content={}, order=5)
    c = pb.ComponentDraft(id="c", type="SPACER", content={}, order=1)
    assert [x.id for x in pb.renumber([a, b, c])] == ["c", "a", "b"]


def test_carousel_images_are_scoped_to_one_component():
    items = pb.add_component([], "IMAGE_CAROUSEL")
    items = pb.add_component(items, "IMAGE_CAROUSEL")
    first, second = items

    for url in ("a.jpg", "b.jpg", "c.jpg"):
        first = pb.add_carousel_image(first, url)
    second = pb.add_carousel_image(second, "x.jpg")

    first = pb.remove_carousel_image(first, first.carousel_images[0].id)
    assert [i.image_url for i in first.carousel_images] == ["b.jpg", "c.jpg"]
    assert _orders(first.carousel_images) == [0, 1]
    assert [(i.image_url, i.order) for i in second.carousel_images] == [("x.jpg", 0)]

    first = pb.move_carousel_image(first, first.carousel_images[1].id, "up")
    assert [i.image_url for i in first.carousel_images] == ["c.jpg", "b.jpg"]


def test_carousel_operations_need_carousel_type(page):
    with pytest.raises(ValidationFailed):
        pb.add_carousel_image(page[0], "a.jpg")


def test_validate_content_fills_defaults_and_drops_unknown_keys():
    content = pb.validate_content("IMAGE", {"imageUrl": "https://cdn/x.png", "bogus": 1})
    assert content == {"image_url": "https://cdn/x.png", "alt_text": "", "caption": ""}


def test_validate_content_keeps_button_size_and_divider_width():
    cta = pb.validate_content("CTA_BUTTON", {"text": "Go", "size": "lg"})
    assert cta == {"text": "Go", "url": "", "variant": "primary", "size": "lg"}

    divider = pb.validate_content("DIVIDER", {"style": "gradient", "width": "half"})
    assert divider == {"style": "gradient", "width": "half"}

    with pytest.raises(ValidationFailed) as exc:
        pb.validate_content("DIVIDER", {"width": "double"})
    assert "width" in exc.value.details


def test_validate_content_rejects_bad_values():
    with pytest.raises(ValidationFailed) as exc:
        pb.validate_content("HEADING", {"level": "h9"})
    assert "level" in exc.value.details

    with pytest.raises(ValidationFailed):
        pb.validate_content("REVIEW_CARD", {"rating": True})
    with pytest.raises(ValidationFailed):
        pb.validate_content("ARTICLE_GRID", {"columns": 9})


def test_unknown_type_and_style_are_rejected():
    with pytest.raises(ValidationFailed):
        pb.add_component([], "MARQUEE")
    with pytest.raises(ValidationFailed):
        pb.add_component([], "HEADING", style_variant="sparkly")


def test_update_component_merges_content(page):
    items = pb.update_component(page, page[0].id, content={"text": "Hello"}, style_variant="centered")
    assert items[0].content == {"text": "Hello", "level": "h2"}
    assert items[0].style_variant == "centered"
    assert items[1] == page[1]


def test_parse_components_sorts_and_replaces_temp_ids():
    drafts = pb.parse_components([
        {"id": "temp-1", "type": "TEXT_BLOCK", "content": {"html": "<p>b</p>"}, "order": 3},
        {"id": "temp-2", "type": "HEADING", "content": {"text": "a"}, "order": 0},
        {"type": "IMAGE_CAROUSEL", "content": {}, "order": 3,
         "carouselImages": [{"imageUrl": "2.jpg", "order": 1}, {"imageUrl": "1.jpg", "order": 0}]},
    ])
    assert _types(drafts) == ["HEADING", "TEXT_BLOCK", "IMAGE_CAROUSEL"]
    assert _orders(drafts) == [0, 1, 2]
    for d in drafts:
        uuid.UUID(d.id)
    assert [i.image_url for i in drafts[2].carousel_images] == ["1.jpg", "2.jpg"]


def test_parse_components_rejects_images_on_other_types():
    with pytest.raises(ValidationFailed):
        pb.parse_components([{"type": "IMAGE", "content": {}, "carousel_images": [{"image_url": "a.jpg"}]}])


def test_parse_components_rejects_non_list():
    with pytest.raises(ValidationFailed):
        pb.parse_components({"type": "HEADING"})


def test_component_type_catalog_covers_every_type():
    catalog = pb.component_type_catalog()
    assert {c["type"] for c in catalog} == set(ComponentType.values)
    heading = next(c for c in catalog if c["type"] == "HEADING")
    assert "gradient" in heading["style_variants"]
