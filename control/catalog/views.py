# control/catalog/views.py
# -*- coding: utf-8 -*-
"""
서비스 카탈로그 관리자 JSON API (/api/admin/...)
- 응답: {"ok": true, "results": ...} / {"ok": false, "error": ..., "details": ...}
- 인증/권한: require_admin (401 / 403)
- 예외 → 상태코드 변환은 api_view 에서
"""
from typing import Optional

from django.db import transaction
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from control.decorators import require_admin
from control.errors import NotFound, ValidationFailed, _ok, api_view, form_errors, json_body
from . import page_builder as pb
from . import services_bulk as bulk
from . import services_tree as tree
from .forms import (
    BulkActiveForm, BulkMoveForm, BulkPositionsForm, CarouselImageForm, DirectionForm,
    DuplicateForm, MoveForm, ReorderForm, ServiceCreateForm, ServiceUpdateForm,
    ValidateNameForm, ValidateParentForm, ValidateSlugForm, snake_keys,
)
from .models import ServiceNode

import logging
logger = logging.getLogger(__name__)

_TRUE = ('1', 'true', 'yes', 'on')
_FLAT_LIST_PARAMS = ('page', 'limit', 'search', 'status', 'parent_only', 'parentOnly')


# ─────────────────────────────────────────────
# 요청 파싱 헬퍼

def _param(request, *names) -> Optional[str]:
    for name in names:
        val = request.GET.get(name)
        if val not in (None, ''):
            return val
    return None


def _bool_param(request, *names) -> bool:
    val = _param(request, *names)
    return bool(val) and val.lower() in _TRUE


def _int_param(request, *names, default=None) -> Optional[int]:
    val = _param(request, *names)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValidationFailed(f"{names[0]} 는 정수여야 합니다.")


def _valid(form_cls, data):
    form = form_cls(data)
    if not form.is_valid():
        raise ValidationFailed("입력값을 확인하세요.", details=form_errors(form))
    return form


def _components_payload(body: dict):
    body = snake_keys(body)
    if 'page_components' in body:
        return body['page_components']
    return body.get('components')


# ─────────────────────────────────────────────
# 서비스 CRUD

@require_http_methods(["GET", "POST"])
@api_view
@require_admin
def services_collection(request):
    """
    GET : 기본은 트리(include_inactive, max_depth)
          page/limit/search/status/parent_only 중 하나라도 오면 평면 목록 + pagination
    POST: 생성 → 201
    """
    if request.method == "POST":
        body = json_body(request)
        form = _valid(ServiceCreateForm, body)
        node = tree.create_service(components=_components_payload(body), **form.cleaned_data)
        return _ok(tree.get_service_detail(node.pk), status=201)

    if any(k in request.GET for k in _FLAT_LIST_PARAMS):
        data = tree.list_services(
            search=(_param(request, 'search') or '').strip(),
            status=_param(request, 'status') or 'active',
            parent_only=_bool_param(request, 'parent_only', 'parentOnly'),
            page=_int_param(request, 'page', default=1),
            limit=_int_param(request, 'limit'),
        )
        return _ok(data['services'], pagination=data['pagination'])

    return _ok(tree.service_tree(
        include_inactive=_bool_param(request, 'include_inactive', 'includeInactive'),
        max_depth=_int_param(request, 'max_depth', 'maxDepth'),
    ))


@require_http_methods(["GET", "PATCH", "DELETE"])
@api_view
@require_admin
def service_detail(request, service_id):
    if request.method == "GET":
        return _ok(tree.get_service_detail(service_id))

    if request.method == "DELETE":
        if request.GET.get('mode') == 'deactivate':
            count = tree.deactivate_subtree(service_id)
            return _ok({'id': str(service_id), 'deactivated': count})
        return _ok(tree.delete_service(service_id))

    body = json_body(request)
    form = _valid(ServiceUpdateForm, body)
    changes = form.changes()
    components = _components_payload(body)
    if components is not None:
        changes['page_components'] = components
    if not changes:
        raise ValidationFailed("변경할 값이 없습니다.")
    tree.update_service(service_id, changes)
    return _ok(tree.get_service_detail(service_id))


@require_POST
@api_view
@require_admin
def service_move(request, service_id):
    """부모 변경 전용: {parent_id} (null → 루트)"""
    form = _valid(MoveForm, json_body(request))
    if 'parent_id' not in form.data:
        raise ValidationFailed("parent_id 가 필요합니다. (루트로 옮기려면 null)")
    node = tree.move_subtree(service_id, form.cleaned_data['parent_id'])
    return _ok(tree.serialize_node(node))


# ─────────────────────────────────────────────
# 페이지 빌더

def _mutate_components(service_id, fn):
    """컴포넌트 목록을 읽어 fn 으로 바꾼 뒤 통째로 저장"""
    with transaction.atomic():
        node = tree.lock_node(service_id)
        drafts = fn(pb.load_components(node))
        return pb.save_components(node, drafts)


def _serialized(drafts):
    return [pb.serialize_component(d) for d in drafts]


@require_GET
@api_view
@require_admin
def component_types(request):
    return _ok(pb.component_type_catalog())


@require_http_methods(["GET", "PUT", "POST"])
@api_view
@require_admin
def service_components(request, service_id):
    """
    GET : 정렬된 목록
    PUT : 목록 통째 교체 {page_components: [...]}
    POST: 블록 하나 추가 {type, content?, style_variant?} → 201
    """
    if request.method == "GET":
        node = ServiceNode.objects.filter(pk=service_id).first()
        if node is None:
            raise NotFound("서비스를 찾을 수 없습니다.")
        return _ok(_serialized(pb.load_components(node)))

    body = snake_keys(json_body(request))
    if request.method == "PUT":
        drafts = pb.parse_components(_components_payload(body) or [])
        saved = _mutate_components(service_id, lambda _current: drafts)
        return _ok(_serialized(saved))

    if not body.get('type'):
        raise ValidationFailed("type 이 필요합니다.", details={"type": ["필수 항목입니다."]})
    saved = _mutate_components(service_id, lambda current: pb.add_component(
        current, body['type'], content=body.get('content'), style_variant=body.get('style_variant'),
    ))
    return _ok(pb.serialize_component(saved[-1]), status=201)


@require_http_methods(["PATCH", "DELETE"])
@api_view
@require_admin
def component_detail(request, service_id, component_id):
    if request.method == "DELETE":
        saved = _mutate_components(service_id, lambda current: pb.remove_component(current, str(component_id)))
        return _ok(_serialized(saved))

    body = snake_keys(json_body(request))
    kwargs = {}
    if 'content' in body:
        kwargs['content'] = body['content'] if body['content'] is not None else {}
    if 'style_variant' in body:
        kwargs['style_variant'] = body['style_variant']
    if not kwargs:
        raise ValidationFailed("content 또는 style_variant 가 필요합니다.")
    saved = _mutate_components(service_id, lambda current: pb.update_component(current, str(component_id), **kwargs))
    return _ok(pb.serialize_component(pb.find_component(saved, str(component_id))))


@require_POST
@api_view
@require_admin
def component_move(request, service_id, component_id):
    direction = _valid(DirectionForm, json_body(request)).cleaned_data['direction']
    saved = _mutate_components(service_id, lambda current: pb.move_component(current, str(component_id), direction))
    return _ok(_serialized(saved))


def _with_component(component_id, fn):
    """캐러셀 조작: 컴포넌트 하나만 바꿔 끼운 목록을 돌려준다"""
    def _apply(current):
        target = pb.find_component(current, str(component_id))
        return pb.replace_component(current, fn(target))
    return _apply


@require_POST
@api_view
@require_admin
def component_images(request, service_id, component_id):
    data = _valid(CarouselImageForm, json_body(request)).cleaned_data
    saved = _mutate_components(service_id, _with_component(component_id, lambda c: pb.add_carousel_image(
        c, data['image_url'], alt_text=data['alt_text'], caption=data['caption'],
    )))
    return _ok(pb.serialize_component(pb.find_component(saved, str(component_id))), status=201)


@require_http_methods(["DELETE"])
@api_view
@require_admin
def component_image_detail(request, service_id, component_id, image_id):
    saved = _mutate_components(service_id, _with_component(
        component_id, lambda c: pb.remove_carousel_image(c, str(image_id))))
    return _ok(pb.serialize_component(pb.find_component(saved, str(component_id))))


@require_POST
@api_view
@require_admin
def component_image_move(request, service_id, component_id, image_id):
    direction = _valid(DirectionForm, json_body(request)).cleaned_data['direction']
    saved = _mutate_components(service_id, _with_component(
        component_id, lambda c: pb.move_carousel_image(c, str(image_id), direction)))
    return _ok(pb.serialize_component(pb.find_component(saved, str(component_id))))


# ─────────────────────────────────────────────
# 일괄 작업 / 검증 / 통계

def _bulk_reorder(body):
    form = _valid(ReorderForm, body)
    count = bulk.reorder_services(form.cleaned_data['parent_id'], form.cleaned_data['new_order'])
    return _ok({'affected': count})


def _bulk_move(body):
    form = _valid(BulkMoveForm, body)
    if 'new_parent_id' not in form.data:
        raise ValidationFailed("new_parent_id 가 필요합니다. (루트로 옮기려면 null)")
    node = bulk.move_service(form.cleaned_data['service_id'], form.cleaned_data['new_parent_id'],
                             form.cleaned_data['new_position'])
    return _ok(tree.serialize_node(node))


def _bulk_positions(body):
    form = _valid(BulkPositionsForm, body)
    return _ok({'affected': bulk.bulk_update_positions(form.cleaned_data['updates'])})


def _bulk_active(body):
    form = _valid(BulkActiveForm, body)
    count = bulk.bulk_update_active_status(form.cleaned_data['service_ids'], form.cleaned_data['is_active'])
    return _ok({'affected': count, 'is_active': form.cleaned_data['is_active']})


def _bulk_duplicate(body):
    form = _valid(DuplicateForm, body)
    new_parent_id = (form.cleaned_data['new_parent_id']
                     if 'new_parent_id' in form.data else bulk.KEEP_PARENT)
    name_prefix = form.cleaned_data['name_prefix'] if 'name_prefix' in form.data else None
    node = bulk.duplicate_service(form.cleaned_data['service_id'], new_parent_id, name_prefix)
    return _ok(tree.serialize_node(node), status=201, new_service_id=str(node.pk))


_BULK_OPERATIONS = {
    'reorder': _bulk_reorder,
    'move': _bulk_move,
    'updatePositions': _bulk_positions,
    'update_positions': _bulk_positions,
    'updateActiveStatus': _bulk_active,
    'update_active_status': _bulk_active,
    'duplicate': _bulk_duplicate,
}


@require_POST
@api_view
@require_admin
def services_bulk(request):
    body = json_body(request)
    operation = body.get('operation')
    handler = _BULK_OPERATIONS.get(operation)
    if handler is None:
        raise ValidationFailed("지원하지 않는 작업입니다.", details={"operation": operation})
    logger.info("BULK: operation=%s user=%s", operation, request.user.pk)
    return handler(body)


@require_POST
@api_view
@require_admin
def services_validate(request):
    """{action: slug|name|parent} → {is_valid, message[, generated_slug]}"""
    body = json_body(request)
    action = body.get('action')

    if action == 'slug':
        data = _valid(ValidateSlugForm, body).cleaned_data
        ok = tree.is_slug_unique(data['slug'], exclude_id=data['exclude_id'])
        return _ok({'is_valid': ok, 'message': '사용 가능한 slug 입니다.' if ok else '이미 사용 중인 slug 입니다.'})

    if action == 'name':
        data = _valid(ValidateNameForm, body).cleaned_data
        try:
            slug = tree.generate_slug(data['name'])
        except ValidationFailed as ex:
            return _ok({'is_valid': False, 'generated_slug': '', 'message': ex.message})
        ok = tree.is_slug_unique(slug, exclude_id=data['exclude_id'])
        return _ok({
            'is_valid': ok,
            'generated_slug': slug,
            'message': '사용 가능한 이름입니다.' if ok else '같은 이름의 서비스가 이미 있습니다.',
        })

    if action == 'parent':
        data = _valid(ValidateParentForm, body).cleaned_data
        if not ServiceNode.objects.filter(pk=data['potential_parent_id']).exists():
            return _ok({'is_valid': False, 'message': '상위 서비스를 찾을 수 없습니다.'})
        ok = tree.validate_no_circular_reference(data['service_id'], data['potential_parent_id'])
        return _ok({'is_valid': ok, 'message': '지정 가능한 상위 서비스입니다.' if ok else '순환 참조가 감지되었습니다.'})

    raise ValidationFailed("지원하지 않는 검증 항목입니다.", details={"action": action})


@require_GET
@api_view
@require_admin
def services_stats(request):
    return _ok(tree.service_stats())
