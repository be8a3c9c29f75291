"""정적 기본 카테고리 트리 (라이브 데이터가 없을 때의 최후 fallback)"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache

from kl_taxonomy.schemas.taxonomy_schema import CategoryNode, TaxonomySnapshot
from kl_taxonomy.utils.category_tree import find_node, normalize_category_tree
from kl_taxonomy.utils.resource_loader import load_static_baseline


@lru_cache(maxsize=1)
def _static_tree() -> tuple[CategoryNode, ...]:
    return tuple(normalize_category_tree(load_static_baseline()))


def build_static_tree() -> list[CategoryNode]:
    """slug id 기반 정적 트리 (url은 비어 있음)"""
    return [node.model_copy(deep=True) for node in _static_tree()]


def static_snapshot() -> TaxonomySnapshot:
    """updatedAt=now 로 찍은 정적 스냅샷 (영속화하지 않음)"""
    return TaxonomySnapshot(updated_at=datetime.now(timezone.utc), categories=build_static_tree())


def find_static_children(target_id: str) -> list[CategoryNode]:
    node = find_node(list(_static_tree()), target_id=target_id)
    if node is None:
        return []
    return [child.model_copy(deep=True) for child in node.children]
