# control/catalog/services_bulk.py
# -*- coding: utf-8 -*-
"""
서비스 일괄 작업 (정렬/이동/위치 일괄 수정/활성 일괄 변경/복제)

position 재배치는 두 단계로 쓴다:
  1) 대상 행을 서로 다른 음수 임시값으로
  2) 최종값으로
한 번에 쓰면 (parent, position) 유니크 제약이 중간 상태에서 걸린다.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from control.errors import Conflict, NotFound, ValidationFailed
from . import services_tree as tree
from .models import ServiceNode

logger = logging.getLogger(__name__)

KEEP_PARENT = object()


def _write_positions(pairs: Sequence[Tuple[ServiceNode, int]]) -> None:
    if not pairs:
        return
    nodes = [n for n, _ in pairs]
    try:
        with transaction.atomic():
            for i, n in enumerate(nodes):
                n.position = -(i + 1)
            ServiceNode.objects.bulk_update(nodes, ['position'])

            now = timezone.now()
            for n, pos in pairs:
                n.position = pos
                n.updated_at = now
            ServiceNode.objects.bulk_update(nodes, ['position', 'updated_at'])
    except IntegrityError as ex:
        logger.info("BULK: position conflict: %s", ex)
        raise Conflict("같은 위치에 다른 서비스가 있습니다.")


def _siblings(parent_id, exclude_id=None) -> List[ServiceNode]:
    qs = ServiceNode.objects.select_for_update().filter(parent_id=parent_id)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return list(qs.order_by('position', 'name'))


def renumber_siblings(parent_id) -> int:
    """형제 position 을 현재 순서대로 0..N-1 로"""
    siblings = _siblings(parent_id)
    _write_positions([(n, i) for i, n in enumerate(siblings)])
    return len(siblings)


def reorder_services(parent_id, new_order: Sequence) -> int:
    """new_order 는 그 부모의 하위 서비스 전체(빠짐/중복 없이)여야 한다"""
    wanted = [str(x) for x in new_order]
    with transaction.atomic():
        tree.lock_parent(parent_id)
        children = {str(n.pk): n for n in _siblings(parent_id)}
        if len(wanted) != len(set(wanted)) or set(wanted) != set(children):
            raise ValidationFailed(
                "new_order 는 해당 부모의 하위 서비스 전체여야 합니다.",
                details={"expected": len(children), "received": len(wanted)},
            )
        _write_positions([(children[sid], pos) for pos, sid in enumerate(wanted)])

    logger.info("BULK: reorder parent=%s count=%s", parent_id, len(wanted))
    return len(wanted)


def move_service(service_id, new_parent_id, new_position: int) -> ServiceNode:
    """
    부모 변경(move_subtree) + 새 형제들 사이 new_position 에 끼워 넣기.
    옛 형제 그룹과 새 형제 그룹 모두 0..N-1 로 다시 매긴다.
    """
    with transaction.atomic():
        old_parent_id = tree.lock_node(service_id).parent_id
        node = tree.move_subtree(service_id, new_parent_id)
        if str(old_parent_id or '') != str(node.parent_id or ''):
            renumber_siblings(old_parent_id)

        siblings = _siblings(node.parent_id, exclude_id=node.pk)
        pos = max(0, min(new_position, len(siblings)))
        siblings.insert(pos, node)
        _write_positions([(n, i) for i, n in enumerate(siblings)])

    logger.info("BULK: move id=%s parent=%s->%s pos=%s", node.pk, old_parent_id, node.parent_id, node.position)
    return node


def bulk_update_positions(updates: Sequence[Tuple[object, int]]) -> int:
    ids = [str(sid) for sid, _ in updates]
    if len(ids) != len(set(ids)):
        raise ValidationFailed("같은 서비스가 여러 번 들어 있습니다.")

    with transaction.atomic():
        nodes = {str(n.pk): n for n in ServiceNode.objects.select_for_update().filter(pk__in=ids)}
        missing = [sid for sid in ids if sid not in nodes]
        if missing:
            raise NotFound("서비스를 찾을 수 없습니다.", details={"missing": missing})

        seen = set()
        for sid, pos in updates:
            key = (nodes[str(sid)].parent_id, pos)
            if key in seen:
                raise ValidationFailed("같은 부모 아래 위치가 중복됩니다.", details={"position": pos})
            seen.add(key)

        _write_positions([(nodes[str(sid)], pos) for sid, pos in updates])

    logger.info("BULK: positions count=%s", len(ids))
    return len(ids)


def bulk_update_active_status(service_ids: Sequence, is_active: bool) -> int:
    count = (ServiceNode.objects
             .filter(pk__in=list(service_ids))
             .update(is_active=is_active, updated_at=timezone.now()))
    logger.info("BULK: active=%s requested=%s affected=%s", is_active, len(service_ids), count)
    return count


def _copy_slug(slug: str) -> str:
    base = f"{slug}-copy"
    candidate, n = base, 1
    while not tree.is_slug_unique(candidate):
        candidate = f"{base}-{n}"
        n += 1
    return candidate


def duplicate_service(service_id, new_parent_id=KEEP_PARENT, name_prefix: Optional[str] = None) -> ServiceNode:
    """
    서비스 한 건 복제 (하위 서비스/페이지 컴포넌트는 복사하지 않음)
    - slug: <slug>-copy, <slug>-copy-1, ...
    - 복제본은 비활성으로 시작, 대상 부모 아래 맨 뒤
    """
    if name_prefix is None:
        name_prefix = getattr(settings, 'CATALOG_DUPLICATE_PREFIX', 'Copy of ')

    with transaction.atomic():
        src = ServiceNode.objects.filter(pk=service_id).first()
        if src is None:
            raise NotFound("서비스를 찾을 수 없습니다.")
        target_parent_id = src.parent_id if new_parent_id is KEEP_PARENT else new_parent_id
        parent = tree.lock_parent(target_parent_id)

        copy = ServiceNode(
            name=f"{name_prefix}{src.name}",
            slug=_copy_slug(src.slug),
            description=src.description,
            image=src.image,
            parent=parent,
            position=tree.get_next_position(target_parent_id),
            path=tree.child_path(parent),
            is_active=False,
        )
        copy.depth = len(copy.path)
        tree.save_node(copy, force_insert=True)

    logger.info("BULK: duplicate src=%s new=%s slug=%s parent=%s", src.pk, copy.pk, copy.slug, target_parent_id)
    return copy
