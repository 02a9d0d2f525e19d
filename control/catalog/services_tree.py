# control/catalog/services_tree.py
# -*- coding: utf-8 -*-
"""
서비스 트리 관리 (materialized path)
- position: 같은 parent 아래 max+1 (삭제 시 당기지 않음, 빈 번호 허용)
- depth   : 루트 0, 그 외 parent.depth + 1
- path    : 루트 → 직계 부모 id 목록 (자기 자신 제외), len(path) == depth
- 부모 변경은 move_subtree 하나로만: 하위 노드 전체의 depth/path 를 같은 트랜잭션에서 다시 쓴다
- slug / (parent, position) 유니크는 DB 제약이 최종 방어선, 여기 사전 검사는 친절한 409 메시지용
"""
from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.core.paginator import EmptyPage, Paginator
from django.db import IntegrityError, transaction
from django.db.models import Count, Max, Q
from django.utils import timezone
from django.utils.text import slugify

from control.errors import CircularReference, Conflict, NotFound, ValidationFailed
from . import page_builder
from .models import ServiceNode

logger = logging.getLogger(__name__)

_DASHES_RE = re.compile(r'-{2,}')


# ─────────────────────────────────────────────────────────────────────────────
# 1) slug / position / depth / path 계산

def generate_slug(name: str) -> str:
    """'Web Design & SEO' → 'web-design-seo' (한글은 그대로 둔다)"""
    slug = slugify(name or '', allow_unicode=True).replace('_', '-')
    slug = _DASHES_RE.sub('-', slug).strip('-')
    if not slug:
        raise ValidationFailed("이름으로 slug 를 만들 수 없습니다.", details={"name": name})
    return slug


def is_slug_unique(slug: str, exclude_id=None) -> bool:
    qs = ServiceNode.objects.filter(slug=slug)
    if exclude_id:
        qs = qs.exclude(pk=exclude_id)
    return not qs.exists()


def get_next_position(parent_id) -> int:
    """형제들 중 최대 position + 1 (형제가 없으면 0)"""
    current = ServiceNode.objects.filter(parent_id=parent_id).aggregate(m=Max('position'))['m']
    return 0 if current is None else current + 1


def get_service_depth(parent_id) -> int:
    """
    parent 의 depth (호출하는 쪽에서 +1).
    저장된 depth 를 믿지 않고 조상 체인을 직접 올라가며 센다.
    """
    if parent_id is None:
        return -1
    depth = 0
    seen = {str(parent_id)}
    current = ServiceNode.objects.filter(pk=parent_id).values_list('parent_id', flat=True).first()
    while current:
        if str(current) in seen:
            raise CircularReference(details={"node_id": str(current)})
        seen.add(str(current))
        depth += 1
        current = ServiceNode.objects.filter(pk=current).values_list('parent_id', flat=True).first()
    return depth


def generate_path(parent_id) -> List[str]:
    """[*parent.path, parent_id] (부모 행 한 번만 읽는다)"""
    if parent_id is None:
        return []
    parent_path = ServiceNode.objects.filter(pk=parent_id).values_list('path', flat=True).first()
    if parent_path is None:
        raise NotFound("상위 서비스를 찾을 수 없습니다.")
    return [*parent_path, str(parent_id)]


def child_path(parent: Optional[ServiceNode]) -> List[str]:
    return [] if parent is None else [*(parent.path or []), str(parent.pk)]


# ─────────────────────────────────────────────────────────────────────────────
# 2) 순환 참조 / 하위 노드

def validate_no_circular_reference(node_id, potential_parent_id) -> bool:
    """potential_parent 의 조상 체인에 node 가 있으면 False"""
    node_id = str(node_id)
    current = str(potential_parent_id) if potential_parent_id else None
    seen = set()
    while current:
        if current == node_id:
            return False
        if current in seen:
            # 이미 깨진 체인: 안전하게 거부
            return False
        seen.add(current)
        parent = ServiceNode.objects.filter(pk=current).values_list('parent_id', flat=True).first()
        current = str(parent) if parent else None
    return True


def get_descendant_ids(node_id) -> List[str]:
    """BFS, 단계마다 쿼리 한 번"""
    out: List[str] = []
    seen = {str(node_id)}
    frontier = [node_id]
    while frontier:
        child_ids = list(ServiceNode.objects.filter(parent_id__in=frontier).values_list('id', flat=True))
        frontier = []
        for cid in child_ids:
            if str(cid) in seen:
                continue
            seen.add(str(cid))
            out.append(str(cid))
            frontier.append(cid)
    return out


# ─────────────────────────────────────────────────────────────────────────────
# 3) 직렬화 / 트리 조립

def serialize_node(n: ServiceNode) -> Dict[str, Any]:
    return {
        'id': str(n.pk),
        'name': n.name,
        'slug': n.slug,
        'description': n.description,
        'image': n.image,
        'parent_id': str(n.parent_id) if n.parent_id else None,
        'position': n.position,
        'depth': n.depth,
        'path': list(n.path or []),
        'is_active': n.is_active,
        'created_at': n.created_at.isoformat() if n.created_at else None,
        'updated_at': n.updated_at.isoformat() if n.updated_at else None,
    }


def _summary(n: ServiceNode) -> Dict[str, Any]:
    return {'id': str(n.pk), 'name': n.name, 'slug': n.slug, 'position': n.position, 'is_active': n.is_active}


def build_service_tree(nodes: Iterable[ServiceNode]) -> List[Dict[str, Any]]:
    """
    평면 목록 → 중첩 트리
    - 부모가 목록에 없는 노드(필터로 빠진 경우 등)는 루트로 올린다
    - 형제 정렬: position, name
    """
    by_id: Dict[str, Dict[str, Any]] = {}
    for n in nodes:
        item = serialize_node(n)
        item['children'] = []
        by_id[item['id']] = item

    roots: List[Dict[str, Any]] = []
    for item in by_id.values():
        parent = by_id.get(item['parent_id']) if item['parent_id'] else None
        if parent is not None and parent is not item:
            parent['children'].append(item)
        else:
            roots.append(item)

    def _sort(items):
        items.sort(key=lambda x: (x['position'], x['name']))
        for x in items:
            _sort(x['children'])

    _sort(roots)
    return roots


def prune_tree(tree: List[Dict[str, Any]], max_depth: Optional[int]) -> List[Dict[str, Any]]:
    """max_depth 단계 아래의 children 은 비운다 (None 이나 0 이하면 제한 없음)"""
    if max_depth is None or max_depth <= 0:
        return tree

    def _walk(items, level):
        for x in items:
            if level >= max_depth:
                x['children'] = []
            else:
                _walk(x['children'], level + 1)

    _walk(tree, 0)
    return tree


# ─────────────────────────────────────────────────────────────────────────────
# 4) 생성 / 이동 / 수정 / 삭제

def lock_node(node_id) -> ServiceNode:
    node = ServiceNode.objects.select_for_update().filter(pk=node_id).first()
    if node is None:
        raise NotFound("서비스를 찾을 수 없습니다.")
    return node


def lock_parent(parent_id) -> Optional[ServiceNode]:
    if parent_id is None:
        return None
    parent = ServiceNode.objects.select_for_update().filter(pk=parent_id).first()
    if parent is None:
        raise NotFound("상위 서비스를 찾을 수 없습니다.", details={"parent_id": str(parent_id)})
    return parent


def save_node(node: ServiceNode, **kwargs) -> None:
    # 유니크 제약 위반은 바깥 트랜잭션을 깨지 않도록 savepoint 안에서
    try:
        with transaction.atomic():
            node.save(**kwargs)
    except IntegrityError as ex:
        logger.info("SERVICE: constraint violation id=%s slug=%s: %s", node.pk, node.slug, ex)
        raise Conflict("slug 또는 위치가 다른 서비스와 충돌합니다.", details={"slug": node.slug})


def create_service(*, name: str, description: Optional[str] = None, parent_id=None,
                   image: Optional[str] = None, is_active: bool = True,
                   components: Any = None) -> ServiceNode:
    slug = generate_slug(name)
    drafts = page_builder.parse_components(components) if components else []

    with transaction.atomic():
        parent = lock_parent(parent_id)
        if not is_slug_unique(slug):
            raise Conflict("같은 slug 의 서비스가 이미 있습니다.", details={"slug": slug})

        node = ServiceNode(
            name=name,
            slug=slug,
            description=description,
            image=image,
            parent=parent,
            position=get_next_position(parent_id),
            depth=get_service_depth(parent_id) + 1,
            path=generate_path(parent_id),
            is_active=is_active,
        )
        save_node(node, force_insert=True)
        if drafts:
            page_builder.save_components(node, drafts)

    logger.info("SERVICE: created id=%s slug=%s parent=%s pos=%s depth=%s components=%s",
                node.pk, node.slug, parent_id, node.position, node.depth, len(drafts))
    return node


def move_subtree(node_id, new_parent_id) -> ServiceNode:
    """
    노드를 new_parent 아래(None 이면 루트)로 옮기고 하위 노드 전체의 depth/path 를 다시 쓴다.
    - 순환이면 CircularReference, 어떤 행도 바꾸지 않는다
    - position 은 새 부모 아래 max+1, 옛 형제들은 그대로 (빈 번호 허용)
    """
    with transaction.atomic():
        node = lock_node(node_id)
        new_parent = lock_parent(new_parent_id)
        if new_parent is not None and not validate_no_circular_reference(node.pk, new_parent.pk):
            raise CircularReference(details={"service_id": str(node.pk), "parent_id": str(new_parent.pk)})

        current = str(node.parent_id) if node.parent_id else None
        target = str(new_parent.pk) if new_parent else None
        if current == target:
            return node

        old_parent_id = node.parent_id
        node.parent = new_parent
        node.path = child_path(new_parent)
        node.depth = len(node.path)
        node.position = get_next_position(new_parent.pk if new_parent else None)
        save_node(node, update_fields=['parent', 'path', 'depth', 'position', 'updated_at'])

        # 하위 노드: 부모의 새 path 에서 한 단계씩 다시 만든다
        now = timezone.now()
        touched: List[ServiceNode] = []
        level = [node]
        while level:
            by_parent = {str(p.pk): p for p in level}
            children = list(ServiceNode.objects.select_for_update().filter(parent_id__in=list(by_parent)))
            for c in children:
                c.path = child_path(by_parent[str(c.parent_id)])
                c.depth = len(c.path)
                c.updated_at = now
            touched.extend(children)
            level = children
        if touched:
            ServiceNode.objects.bulk_update(touched, ['path', 'depth', 'updated_at'])

    logger.info("MOVE: id=%s from=%s to=%s pos=%s depth=%s descendants=%s",
                node.pk, old_parent_id, node.parent_id, node.position, node.depth, len(touched))
    return node


def update_service(node_id, changes: Dict[str, Any]) -> ServiceNode:
    """
    부분 수정 (changes 에 들어온 키만)
    - name → slug 재생성 (자기 자신 제외 중복이면 409)
    - parent_id 가 바뀌면 move_subtree
    - page_components 가 오면 목록 통째 교체
    """
    changes = dict(changes)
    drafts = None
    if 'page_components' in changes:
        drafts = page_builder.parse_components(changes.pop('page_components'))

    with transaction.atomic():
        node = lock_node(node_id)

        if 'parent_id' in changes:
            new_parent_id = changes.pop('parent_id')
            if str(new_parent_id or '') != str(node.parent_id or ''):
                node = move_subtree(node.pk, new_parent_id)

        if 'name' in changes:
            slug = generate_slug(changes['name'])
            if slug != node.slug and not is_slug_unique(slug, exclude_id=node.pk):
                raise Conflict("같은 slug 의 서비스가 이미 있습니다.", details={"slug": slug})
            node.name = changes['name']
            node.slug = slug

        for f in ('description', 'image', 'is_active'):
            if f in changes:
                setattr(node, f, changes[f])

        if changes.get('position') is not None and changes['position'] != node.position:
            taken = (ServiceNode.objects
                     .filter(parent_id=node.parent_id, position=changes['position'])
                     .exclude(pk=node.pk)
                     .exists())
            if taken:
                raise Conflict("같은 위치에 다른 서비스가 있습니다.", details={"position": changes['position']})
            node.position = changes['position']

        save_node(node)
        if drafts is not None:
            page_builder.save_components(node, drafts)

    logger.info("SERVICE: updated id=%s fields=%s", node.pk,
                sorted(set(changes) | ({'page_components'} if drafts is not None else set())))
    return node


def delete_service(node_id) -> Dict[str, Any]:
    """하위 서비스가 있으면 409. 형제 position 은 당기지 않는다."""
    with transaction.atomic():
        node = lock_node(node_id)
        child_count = ServiceNode.objects.filter(parent_id=node.pk).count()
        if child_count:
            raise Conflict("하위 서비스가 있어 삭제할 수 없습니다.", details={"children": child_count})
        summary = _summary(node)
        node.delete()
    logger.info("SERVICE: deleted id=%s slug=%s", summary['id'], summary['slug'])
    return summary


def deactivate_subtree(node_id) -> int:
    """노드와 모든 하위 노드를 is_active=False 로 (한 번의 UPDATE)"""
    with transaction.atomic():
        node = lock_node(node_id)
        ids = [str(node.pk), *get_descendant_ids(node.pk)]
        count = ServiceNode.objects.filter(pk__in=ids).update(is_active=False, updated_at=timezone.now())
    logger.info("SERVICE: deactivated id=%s count=%s", node_id, count)
    return count


# ─────────────────────────────────────────────────────────────────────────────
# 5) 조회

def get_service_detail(node_id) -> Dict[str, Any]:
    node = ServiceNode.objects.select_related('parent').filter(pk=node_id).first()
    if node is None:
        raise NotFound("서비스를 찾을 수 없습니다.")
    data = serialize_node(node)
    data['parent'] = (
        {'id': str(node.parent.pk), 'name': node.parent.name, 'slug': node.parent.slug}
        if node.parent else None
    )
    data['children'] = [_summary(c) for c in node.children.order_by('position', 'name')]
    data['page_components'] = [page_builder.serialize_component(d) for d in page_builder.load_components(node)]
    return data


def _page_size_limits():
    return (getattr(settings, 'CATALOG_DEFAULT_PAGE_SIZE', 10),
            getattr(settings, 'CATALOG_MAX_PAGE_SIZE', 100))


def list_services(*, search: str = '', status: str = 'active', parent_only: bool = False,
                  page: int = 1, limit: Optional[int] = None) -> Dict[str, Any]:
    """평면 목록 + pagination{page, limit, total, pages, has_next, has_prev}"""
    default_size, max_size = _page_size_limits()
    limit = default_size if limit is None else limit
    if page < 1:
        raise ValidationFailed("page 는 1 이상이어야 합니다.")
    if not 1 <= limit <= max_size:
        raise ValidationFailed(f"limit 는 1~{max_size} 사이여야 합니다.")

    qs = ServiceNode.objects.select_related('parent').annotate(children_count=Count('children'))
    if status == 'active':
        qs = qs.filter(is_active=True)
    elif status == 'inactive':
        qs = qs.filter(is_active=False)
    elif status != 'all':
        raise ValidationFailed("status 는 active, inactive, all 중 하나여야 합니다.")
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(description__icontains=search))
    if parent_only:
        qs = qs.filter(parent__isnull=True)
    qs = qs.order_by('depth', 'position', 'name')

    paginator = Paginator(qs, limit)
    try:
        rows = list(paginator.page(page).object_list)
    except EmptyPage:
        rows = []

    results = []
    for n in rows:
        item = serialize_node(n)
        item['parent'] = {'id': str(n.parent.pk), 'name': n.parent.name} if n.parent else None
        item['children_count'] = n.children_count
        results.append(item)

    pages = paginator.num_pages if paginator.count else 0
    return {
        'services': results,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': paginator.count,
            'pages': pages,
            'has_next': page < pages,
            'has_prev': page > 1,
        },
    }


def service_tree(include_inactive: bool = False, max_depth: Optional[int] = None) -> List[Dict[str, Any]]:
    qs = ServiceNode.objects.all()
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return prune_tree(build_service_tree(qs.order_by('depth', 'position', 'name')), max_depth)


def find_inconsistent_nodes() -> List[str]:
    """저장된 depth/path 가 부모 행과 맞지 않는 노드 id"""
    rows = {str(r['id']): r for r in ServiceNode.objects.values('id', 'parent_id', 'depth', 'path')}
    out = []
    for nid, r in rows.items():
        parent = rows.get(str(r['parent_id'])) if r['parent_id'] else None
        expected = [] if parent is None else [*(parent['path'] or []), str(parent['id'])]
        if list(r['path'] or []) != expected or r['depth'] != len(expected):
            out.append(nid)
    return out


def service_stats() -> Dict[str, Any]:
    total = ServiceNode.objects.count()
    active = ServiceNode.objects.filter(is_active=True).count()
    roots = ServiceNode.objects.filter(parent__isnull=True).count()
    max_depth = ServiceNode.objects.aggregate(m=Max('depth'))['m'] or 0

    by_depth = [
        {'depth': r['depth'], 'count': r['count']}
        for r in ServiceNode.objects.values('depth').annotate(count=Count('id')).order_by('depth')
    ]

    def _recent(n: ServiceNode, ts_field: str):
        return {
            'id': str(n.pk), 'name': n.name, 'slug': n.slug, 'is_active': n.is_active,
            ts_field: getattr(n, ts_field).isoformat(),
            'parent_name': n.parent.name if n.parent else None,
        }

    created = [_recent(n, 'created_at')
               for n in ServiceNode.objects.select_related('parent').order_by('-created_at')[:5]]
    # 생성 직후 그대로인 행(updated_at ≈ created_at)은 '수정'으로 치지 않는다
    updated = [
        _recent(n, 'updated_at')
        for n in ServiceNode.objects.select_related('parent').order_by('-updated_at')[:10]
        if n.updated_at - n.created_at > timedelta(seconds=1)
    ][:5]

    child_counts = list(ServiceNode.objects.filter(parent__isnull=False)
                        .values('parent_id').annotate(c=Count('id')).values_list('c', flat=True))
    avg_children = round(sum(child_counts) / len(child_counts), 2) if child_counts else 0

    deepest = []
    if max_depth > 0:
        deepest = [
            {'id': str(n.pk), 'name': n.name, 'slug': n.slug, 'depth': n.depth, 'path': list(n.path or [])}
            for n in ServiceNode.objects.filter(depth=max_depth).order_by('position', 'name')[:10]
        ]

    inconsistent = find_inconsistent_nodes()
    health = 100 if not inconsistent else max(0, round(100 - len(inconsistent) / total * 100, 1))

    return {
        'overview': {
            'total_services': total,
            'active_services': active,
            'inactive_services': total - active,
            'root_services': roots,
            'health_score': health,
        },
        'distribution': {'by_depth': by_depth, 'max_depth': max_depth},
        'recent': {'created': created, 'updated': updated},
        'tree_health': {
            'inconsistent_nodes': len(inconsistent),
            'inconsistent_ids': inconsistent[:20],
            'max_depth': max_depth,
            'avg_children_per_parent': avg_children,
            'deepest_services': deepest,
        },
    }
