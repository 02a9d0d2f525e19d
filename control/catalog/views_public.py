# control/catalog/views_public.py
from django.views.decorators.http import require_GET

from control.errors import NotFound, _ok, api_view
from . import page_builder as pb
from .models import ServiceNode


@require_GET
@api_view
def service_page(request, slug):
    """공개 서비스 페이지: 활성 서비스 + 정렬된 컴포넌트 + 활성 하위 서비스 (인증 없음)"""
    node = ServiceNode.objects.select_related('parent').filter(slug=slug, is_active=True).first()
    if node is None:
        raise NotFound("서비스를 찾을 수 없습니다.")

    children = node.children.filter(is_active=True).order_by('position', 'name')
    return _ok({
        'id': str(node.pk),
        'name': node.name,
        'slug': node.slug,
        'description': node.description,
        'image': node.image,
        'parent': ({'name': node.parent.name, 'slug': node.parent.slug}
                   if node.parent and node.parent.is_active else None),
        'children': [
            {'name': c.name, 'slug': c.slug, 'description': c.description, 'image': c.image}
            for c in children
        ],
        'page_components': [pb.serialize_component(d) for d in pb.load_components(node)],
    })
