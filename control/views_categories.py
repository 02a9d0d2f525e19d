# control/views_categories.py
"""
서비스 > 카테고리: 최상위 서비스(parent 없음)를 '카테고리'로 다루는 JSON API
- service_count = 직속 하위 서비스 수
- 하위 서비스가 있는 카테고리는 삭제 불가(409)
"""
from django.db.models import Count
from django.views.decorators.http import require_http_methods

from control.catalog import services_tree as tree
from control.catalog.forms import CategoryForm, CategoryUpdateForm
from control.catalog.models import ServiceNode
from control.decorators import require_admin
from control.errors import NotFound, ValidationFailed, _ok, api_view, form_errors, json_body


def _category_qs():
    return ServiceNode.objects.filter(parent__isnull=True).annotate(service_count=Count('children'))


def _serialize(n):
    return {
        "id": str(n.pk),
        "name": n.name,
        "slug": n.slug,
        "description": n.description,
        "position": n.position,
        "is_active": n.is_active,
        "service_count": n.service_count,
        "created_at": n.created_at.isoformat(),
        "updated_at": n.updated_at.isoformat(),
    }


def _get_category(pk):
    n = _category_qs().filter(pk=pk).first()
    if n is None:
        raise NotFound("카테고리를 찾을 수 없습니다.")
    return n


@require_http_methods(["GET", "POST"])
@api_view
@require_admin
def categories(request):
    if request.method == "GET":
        rows = _category_qs().order_by("position", "name")
        return _ok([_serialize(n) for n in rows])

    form = CategoryForm(json_body(request))
    if not form.is_valid():
        raise ValidationFailed("입력값을 확인하세요.", details=form_errors(form))
    node = tree.create_service(name=form.cleaned_data["name"], description=form.cleaned_data["description"])
    return _ok(_serialize(_get_category(node.pk)), status=201)


@require_http_methods(["GET", "PATCH", "DELETE"])
@api_view
@require_admin
def category_detail(request, category_id):
    category = _get_category(category_id)

    if request.method == "GET":
        return _ok(_serialize(category))

    if request.method == "DELETE":
        return _ok(tree.delete_service(category_id))

    form = CategoryUpdateForm(json_body(request))
    if not form.is_valid():
        raise ValidationFailed("입력값을 확인하세요.", details=form_errors(form))
    changes = form.changes()
    if not changes:
        raise ValidationFailed("변경할 값이 없습니다.")
    tree.update_service(category_id, changes)
    return _ok(_serialize(_get_category(category_id)))
