# control/catalog/page_builder.py
# -*- coding: utf-8 -*-
"""
서비스 페이지 빌더
- 페이지 = 타입이 정해진 블록(PageComponent)의 순서 있는 목록
- order 는 항상 0..N-1 로 빈틈/중복 없이 유지 (추가/삭제/이동마다 전체 재번호)
- IMAGE_CAROUSEL 블록은 자기만의 이미지 목록을 같은 규칙으로 따로 관리
- content 는 타입별 ContentSchema 로 검증/기본값 채움 (타입 → 스키마 1:1)

여기 함수들은 순수 함수(새 리스트/새 draft 반환)이고, DB 반영은 save_components 하나뿐.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from django.conf import settings

from control.errors import NotFound, ValidationFailed
from .forms import snake_keys
from .models import CarouselImage, ComponentType, PageComponent

logger = logging.getLogger(__name__)

UP, DOWN = "up", "down"


# ─────────────────────────────────────────────────────────────────────────────
# 1) 타입별 content 스키마

@dataclass(frozen=True)
class SchemaField:
    name: str
    kind: type
    default: Any
    choices: Tuple[Any, ...] = ()
    min_value: Optional[int] = None
    max_value: Optional[int] = None


@dataclass(frozen=True)
class ContentSchema:
    label: str
    category: str  # content | media | layout | interactive
    fields: Tuple[SchemaField, ...] = ()
    style_variants: Tuple[str, ...] = ("default",)
    has_carousel: bool = False


CONTENT_SCHEMAS: Dict[str, ContentSchema] = {
    ComponentType.HEADING: ContentSchema(
        "Heading", "content",
        fields=(
            SchemaField("text", str, "New Heading"),
            SchemaField("level", str, "h2", choices=("h1", "h2", "h3", "h4")),
        ),
        style_variants=("default", "centered", "left-underlined", "uppercase", "gradient"),
    ),
    ComponentType.TEXT_BLOCK: ContentSchema(
        "Text Block", "content",
        fields=(SchemaField("html", str, "<p>Enter your text content here...</p>"),),
        style_variants=("default", "large-text", "two-columns", "highlighted", "minimal"),
    ),
    ComponentType.IMAGE: ContentSchema(
        "Image", "media",
        fields=(
            SchemaField("image_url", str, ""),
            SchemaField("alt_text", str, ""),
            SchemaField("caption", str, ""),
        ),
        style_variants=("default", "rounded", "shadow", "full-width", "centered"),
    ),
    ComponentType.IMAGE_CAROUSEL: ContentSchema(
        "Image Carousel", "media",
        fields=(SchemaField("autoplay", int, 0, min_value=0, max_value=60),),
        style_variants=("default", "dots", "arrows", "thumbnails", "fade"),
        has_carousel=True,
    ),
    ComponentType.VIDEO_EMBED: ContentSchema(
        "Video", "media",
        fields=(
            SchemaField("url", str, ""),
            SchemaField("provider", str, "youtube", choices=("youtube", "vimeo", "direct")),
        ),
        style_variants=("default", "square", "wide", "vertical"),
    ),
    ComponentType.REVIEW_CARD: ContentSchema(
        "Review Card", "content",
        fields=(
            SchemaField("reviewer", str, ""),
            SchemaField("rating", int, 5, min_value=1, max_value=5),
            SchemaField("text", str, ""),
        ),
        style_variants=("default", "bordered", "minimal"),
    ),
    ComponentType.ARTICLE_GRID: ContentSchema(
        "Article Grid", "content",
        fields=(
            SchemaField("title", str, ""),
            SchemaField("columns", int, 3, min_value=1, max_value=4),
            SchemaField("article_ids", list, []),
        ),
        style_variants=("default", "compact"),
    ),
    ComponentType.QUOTE_BLOCK: ContentSchema(
        "Quote", "content",
        fields=(
            SchemaField("quote", str, "Enter quote text..."),
            SchemaField("author", str, ""),
            SchemaField("title", str, ""),
        ),
        style_variants=("default", "bordered", "highlighted", "minimal", "large-quote"),
    ),
    ComponentType.CTA_BUTTON: ContentSchema(
        "Call-to-Action", "interactive",
        fields=(
            SchemaField("text", str, "Click Here"),
            SchemaField("url", str, ""),
            SchemaField("variant", str, "primary", choices=("primary", "secondary", "outline", "ghost")),
            SchemaField("size", str, "default", choices=("sm", "default", "lg")),
        ),
    ),
    ComponentType.SPACER: ContentSchema(
        "Spacer", "layout",
        fields=(SchemaField("height", str, "2rem"),),
    ),
    ComponentType.DIVIDER: ContentSchema(
        "Divider", "layout",
        fields=(
            SchemaField("style", str, "solid", choices=("solid", "dashed", "dotted", "gradient")),
            SchemaField("width", str, "full", choices=("full", "half", "quarter")),
        ),
    ),
}

_missing = set(ComponentType.values) - set(CONTENT_SCHEMAS)
if _missing:
    raise RuntimeError(f"content schema missing for component types: {sorted(_missing)}")


def _max_components() -> int:
    return getattr(settings, "CATALOG_MAX_COMPONENTS", 200)


def _max_carousel_images() -> int:
    return getattr(settings, "CATALOG_MAX_CAROUSEL_IMAGES", 50)


def get_schema(component_type: str) -> ContentSchema:
    try:
        return CONTENT_SCHEMAS[ComponentType(component_type)]
    except (ValueError, TypeError):
        raise ValidationFailed(f"알 수 없는 컴포넌트 타입: {component_type}")


def component_type_catalog() -> List[Dict[str, Any]]:
    """에디터 팔레트용: 타입별 라벨/분류/기본 content/스타일 목록"""
    return [
        {
            "type": str(t),
            "label": schema.label,
            "category": schema.category,
            "default_content": default_content(t),
            "style_variants": list(schema.style_variants),
        }
        for t, schema in CONTENT_SCHEMAS.items()
    ]


def default_content(component_type: str) -> Dict[str, Any]:
    schema = get_schema(component_type)
    return {f.name: (list(f.default) if isinstance(f.default, list) else f.default) for f in schema.fields}


def _check_field(f: SchemaField, value: Any) -> Optional[str]:
    # bool 은 int 의 하위 타입이라 명시적으로 거른다
    if f.kind is int and (isinstance(value, bool) or not isinstance(value, int)):
        return "정수여야 합니다."
    if f.kind is not int and not isinstance(value, f.kind):
        return f"{f.kind.__name__} 타입이어야 합니다."
    if f.choices and value not in f.choices:
        return f"허용값: {', '.join(map(str, f.choices))}"
    if f.min_value is not None and value < f.min_value:
        return f"{f.min_value} 이상이어야 합니다."
    if f.max_value is not None and value > f.max_value:
        return f"{f.max_value} 이하여야 합니다."
    return None


def validate_content(component_type: str, content: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """빠진 키는 기본값으로 채우고, 타입/허용값을 검사하고, 모르는 키는 버린다."""
    schema = get_schema(component_type)
    if content is None:
        content = {}
    if not isinstance(content, dict):
        raise ValidationFailed("content 는 객체여야 합니다.")
    content = snake_keys(content)

    cleaned: Dict[str, Any] = {}
    errors: Dict[str, str] = {}
    for f in schema.fields:
        value = content.get(f.name)
        if value is None:
            value = list(f.default) if isinstance(f.default, list) else f.default
        problem = _check_field(f, value)
        if problem:
            errors[f.name] = problem
        else:
            cleaned[f.name] = value
    if errors:
        raise ValidationFailed(f"{component_type} content 형식 오류", details=errors)
    return cleaned


def validate_style_variant(component_type: str, style_variant: Optional[str]) -> Optional[str]:
    if style_variant in (None, ""):
        return None
    schema = get_schema(component_type)
    if style_variant not in schema.style_variants:
        raise ValidationFailed(
            f"{component_type} 에서 사용할 수 없는 스타일: {style_variant}",
            details={"allowed": list(schema.style_variants)},
        )
    return style_variant


# ─────────────────────────────────────────────────────────────────────────────
# 2) draft (메모리 상의 편집 단위)

@dataclass(frozen=True)
class CarouselImageDraft:
    id: str
    image_url: str
    alt_text: str = ""
    caption: str = ""
    order: int = 0


@dataclass(frozen=True)
class ComponentDraft:
    id: str
    type: str
    content: Dict[str, Any]
    order: int
    style_variant: Optional[str] = None
    carousel_images: Tuple[CarouselImageDraft, ...] = field(default_factory=tuple)


def _sorted(items: Sequence) -> list:
    # 같은 order 끼리는 기존 순서 유지 (sorted 는 stable)
    return sorted(items, key=lambda x: x.order)


def renumber(items: Sequence) -> list:
    """현재 order 기준으로 정렬 후 0..N-1 재부여"""
    return [replace(x, order=i) for i, x in enumerate(_sorted(items))]


def _index_of(items: Sequence, item_id: str) -> int:
    for i, x in enumerate(items):
        if x.id == str(item_id):
            return i
    return -1


def _swap(items: list, item_id: str, direction: str) -> list:
    if direction not in (UP, DOWN):
        raise ValidationFailed("direction 은 up 또는 down 이어야 합니다.")
    items = renumber(items)
    idx = _index_of(items, item_id)
    if idx == -1:
        raise NotFound("대상을 찾을 수 없습니다.")
    new_idx = idx - 1 if direction == UP else idx + 1
    if new_idx < 0 or new_idx >= len(items):
        return items  # 끝에서 더 못 감
    items[idx], items[new_idx] = items[new_idx], items[idx]
    return [replace(x, order=i) for i, x in enumerate(items)]


# ─────────────────────────────────────────────────────────────────────────────
# 3) 컴포넌트 목록 조작

def add_component(components: Sequence[ComponentDraft], component_type: str,
                  content: Optional[Dict[str, Any]] = None,
                  style_variant: Optional[str] = None,
                  component_id: Optional[str] = None) -> List[ComponentDraft]:
    items = renumber(components)
    if len(items) >= _max_components():
        raise ValidationFailed(f"컴포넌트는 최대 {_max_components()}개까지 추가할 수 있습니다.")
    cleaned = validate_content(component_type, {**default_content(component_type), **snake_keys(content or {})})
    draft = ComponentDraft(
        id=component_id or str(uuid4()),
        type=str(ComponentType(component_type)),
        content=cleaned,
        order=len(items),
        style_variant=validate_style_variant(component_type, style_variant),
    )
    return items + [draft]


_UNSET = object()


def update_component(components: Sequence[ComponentDraft], component_id: str,
                     content: Optional[Dict[str, Any]] = None,
                     style_variant: Any = _UNSET) -> List[ComponentDraft]:
    items = renumber(components)
    idx = _index_of(items, component_id)
    if idx == -1:
        raise NotFound("컴포넌트를 찾을 수 없습니다.")
    target = items[idx]
    if content is not None:
        if not isinstance(content, dict):
            raise ValidationFailed("content 는 객체여야 합니다.")
        target = replace(target, content=validate_content(target.type, {**target.content, **snake_keys(content)}))
    if style_variant is not _UNSET:
        target = replace(target, style_variant=validate_style_variant(target.type, style_variant))
    items[idx] = target
    return items


def remove_component(components: Sequence[ComponentDraft], component_id: str) -> List[ComponentDraft]:
    if _index_of(components, component_id) == -1:
        raise NotFound("컴포넌트를 찾을 수 없습니다.")
    return renumber([c for c in components if c.id != str(component_id)])


def move_component(components: Sequence[ComponentDraft], component_id: str, direction: str) -> List[ComponentDraft]:
    return _swap(list(components), component_id, direction)


def find_component(components: Sequence[ComponentDraft], component_id: str) -> ComponentDraft:
    idx = _index_of(components, component_id)
    if idx == -1:
        raise NotFound("컴포넌트를 찾을 수 없습니다.")
    return components[idx]


def replace_component(components: Sequence[ComponentDraft], draft: ComponentDraft) -> List[ComponentDraft]:
    return [draft if c.id == draft.id else c for c in components]


# ─────────────────────────────────────────────────────────────────────────────
# 4) 캐러셀 이미지 (한 컴포넌트 범위 안에서만)

def _require_carousel(component: ComponentDraft) -> None:
    if not get_schema(component.type).has_carousel:
        raise ValidationFailed(f"{component.type} 에는 캐러셀 이미지를 둘 수 없습니다.")


def add_carousel_image(component: ComponentDraft, image_url: str, alt_text: str = "",
                       caption: str = "", image_id: Optional[str] = None) -> ComponentDraft:
    _require_carousel(component)
    images = renumber(component.carousel_images)
    if len(images) >= _max_carousel_images():
        raise ValidationFailed(f"캐러셀 이미지는 최대 {_max_carousel_images()}개입니다.")
    if not isinstance(image_url, str):
        raise ValidationFailed("image_url 은 문자열이어야 합니다.")
    image = CarouselImageDraft(
        id=image_id or str(uuid4()),
        image_url=image_url,
        alt_text=alt_text or "",
        caption=caption or "",
        order=len(images),
    )
    return replace(component, carousel_images=tuple(images + [image]))


def remove_carousel_image(component: ComponentDraft, image_id: str) -> ComponentDraft:
    _require_carousel(component)
    if _index_of(component.carousel_images, image_id) == -1:
        raise NotFound("이미지를 찾을 수 없습니다.")
    kept = [img for img in component.carousel_images if img.id != str(image_id)]
    return replace(component, carousel_images=tuple(renumber(kept)))


def move_carousel_image(component: ComponentDraft, image_id: str, direction: str) -> ComponentDraft:
    _require_carousel(component)
    return replace(component, carousel_images=tuple(_swap(list(component.carousel_images), image_id, direction)))


# ─────────────────────────────────────────────────────────────────────────────
# 5) 요청 본문 → draft 목록

def _draft_id(value: Any) -> str:
    """클라이언트 임시 id('temp-...')는 버리고 새 UUID 부여"""
    try:
        return str(UUID(str(value)))
    except (TypeError, ValueError):
        return str(uuid4())


def _parse_order(value: Any, fallback: int, where: str) -> int:
    if value is None:
        return fallback
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailed(f"{where}.order 는 정수여야 합니다.")
    return value


def _parse_images(raw: Any, where: str) -> List[CarouselImageDraft]:
    if raw in (None, []):
        return []
    if not isinstance(raw, list):
        raise ValidationFailed(f"{where}.carousel_images 는 배열이어야 합니다.")
    if len(raw) > _max_carousel_images():
        raise ValidationFailed(f"캐러셀 이미지는 최대 {_max_carousel_images()}개입니다.")
    out: List[CarouselImageDraft] = []
    for i, item in enumerate(raw):
        loc = f"{where}.carousel_images[{i}]"
        if not isinstance(item, dict):
            raise ValidationFailed(f"{loc} 는 객체여야 합니다.")
        item = snake_keys(item)
        image_url = item.get("image_url")
        if not isinstance(image_url, str):
            raise ValidationFailed(f"{loc}.image_url 은 문자열이어야 합니다.")
        out.append(CarouselImageDraft(
            id=_draft_id(item.get("id")),
            image_url=image_url,
            alt_text=item.get("alt_text") or "",
            caption=item.get("caption") or "",
            order=_parse_order(item.get("order"), i, loc),
        ))
    return renumber(out)


def parse_components(payload: Any) -> List[ComponentDraft]:
    """
    제출된 컴포넌트 목록 검증
    - order 기준 정렬(동점은 제출 순서) 후 0..N-1 로 재번호
    - 캐러셀 이미지는 IMAGE_CAROUSEL 에만 허용
    """
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValidationFailed("page_components 는 배열이어야 합니다.")
    if len(payload) > _max_components():
        raise ValidationFailed(f"컴포넌트는 최대 {_max_components()}개까지 저장할 수 있습니다.")

    drafts: List[ComponentDraft] = []
    seen_ids = set()
    for i, item in enumerate(payload):
        where = f"page_components[{i}]"
        if not isinstance(item, dict):
            raise ValidationFailed(f"{where} 는 객체여야 합니다.")
        item = snake_keys(item)
        ctype = item.get("type")
        if not ctype:
            raise ValidationFailed(f"{where}.type 이 필요합니다.")
        schema = get_schema(ctype)
        try:
            content = validate_content(ctype, item.get("content"))
        except ValidationFailed as ex:
            raise ValidationFailed(f"{where}: {ex.message}", details=ex.details)
        images = _parse_images(item.get("carousel_images"), where)
        if images and not schema.has_carousel:
            raise ValidationFailed(f"{where}: {ctype} 에는 캐러셀 이미지를 둘 수 없습니다.")

        draft_id = _draft_id(item.get("id"))
        if draft_id in seen_ids:
            draft_id = str(uuid4())
        seen_ids.add(draft_id)

        drafts.append(ComponentDraft(
            id=draft_id,
            type=str(ComponentType(ctype)),
            content=content,
            order=_parse_order(item.get("order"), i, where),
            style_variant=validate_style_variant(ctype, item.get("style_variant")),
            carousel_images=tuple(images),
        ))
    return renumber(drafts)


# ─────────────────────────────────────────────────────────────────────────────
# 6) DB 반영 / 조회 / 직렬화

def _claim_ids(service, drafts: Sequence[ComponentDraft]) -> List[ComponentDraft]:
    """
    제출된 id 는 이 서비스의 행이거나 아직 없는 값일 때만 그대로 쓴다.
    다른 서비스가 쓰는 id, 목록 안에서 두 번째로 나온 id 는 새 UUID 로 바꾼다.
    """
    component_ids = [d.id for d in drafts]
    image_ids = [img.id for d in drafts for img in d.carousel_images]
    foreign_components = {
        str(pk) for pk in PageComponent.objects
        .filter(pk__in=component_ids).exclude(service=service).values_list("pk", flat=True)
    }
    foreign_images = {
        str(pk) for pk in CarouselImage.objects
        .filter(pk__in=image_ids).exclude(component__service=service).values_list("pk", flat=True)
    }

    seen_components, seen_images = set(), set()

    def _claim(value, foreign, seen):
        claimed = str(uuid4()) if value in foreign or value in seen else value
        seen.add(claimed)
        return claimed

    out: List[ComponentDraft] = []
    for d in drafts:
        images = tuple(
            replace(img, id=_claim(img.id, foreign_images, seen_images))
            for img in d.carousel_images
        )
        out.append(replace(d, id=_claim(d.id, foreign_components, seen_components), carousel_images=images))
    return out


def save_components(service, drafts: Sequence[ComponentDraft]) -> List[ComponentDraft]:
    """
    서비스의 컴포넌트 목록을 통째로 교체 (delete + bulk_create).
    호출하는 쪽의 transaction.atomic 안에서 실행할 것.
    """
    drafts = _claim_ids(service, renumber(drafts))
    PageComponent.objects.filter(service=service).delete()

    rows = [
        PageComponent(
            id=UUID(d.id), service=service, order=d.order, type=d.type,
            content=d.content, style_variant=d.style_variant,
        )
        for d in drafts
    ]
    PageComponent.objects.bulk_create(rows)

    images = [
        CarouselImage(
            id=UUID(img.id), component_id=UUID(d.id), image_url=img.image_url,
            alt_text=img.alt_text, caption=img.caption, order=img.order,
        )
        for d in drafts
        for img in renumber(d.carousel_images)
    ]
    if images:
        CarouselImage.objects.bulk_create(images)

    logger.info("PAGE: service=%s components=%s images=%s", service.pk, len(rows), len(images))
    return drafts


def load_components(service) -> List[ComponentDraft]:
    qs = (PageComponent.objects
          .filter(service=service)
          .prefetch_related("carousel_images")
          .order_by("order", "created_at"))
    out: List[ComponentDraft] = []
    for c in qs:
        images = [
            CarouselImageDraft(
                id=str(img.id), image_url=img.image_url, alt_text=img.alt_text or "",
                caption=img.caption or "", order=img.order,
            )
            for img in sorted(c.carousel_images.all(), key=lambda x: x.order)
        ]
        out.append(ComponentDraft(
            id=str(c.id), type=c.type, content=c.content or {}, order=c.order,
            style_variant=c.style_variant, carousel_images=tuple(images),
        ))
    return out


def serialize_component(d: ComponentDraft) -> Dict[str, Any]:
    data = {
        "id": d.id,
        "type": d.type,
        "content": d.content,
        "style_variant": d.style_variant,
        "order": d.order,
    }
    if get_schema(d.type).has_carousel:
        data["carousel_images"] = [
            {"id": img.id, "image_url": img.image_url, "alt_text": img.alt_text,
             "caption": img.caption, "order": img.order}
            for img in d.carousel_images
        ]
    return data
