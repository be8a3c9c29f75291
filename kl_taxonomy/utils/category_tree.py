"""카테고리 트리 정규화/탐색 유틸리티

- 임의 형태(dict: 페이지 상태, HTML 파싱 결과, 정적 YAML)의 트리를 CategoryNode 트리로 정규화
- 노드/경로 탐색, (id, name) 중복 제거, 완전성 판정
"""

from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Optional

from kl_taxonomy.schemas.taxonomy_schema import CategoryNode
from kl_taxonomy.utils.url_utils import (
    build_category_url,
    extract_category_id,
    normalize_category_url,
    normalize_href,
)


_ID_KEYS = ("id", "identifier", "fieldValue", "value", "categoryId")
_NAME_KEYS = ("name", "label", "categoryName", "title")
_URL_KEYS = ("url", "categoryUrl", "seoUrl")
_CHILD_KEYS = ("children", "subcategories", "categories", "subCategories", "items", "nodes")
_SHAPE_KEYS = ("id", "identifier", "fieldValue", "value", "categoryId", "categoryName", "name", "label")


def slugify(value: Any) -> str:
    """이름 → slug id

    Examples:
        >>> slugify("Auto, Rad & Boot")
        'auto-rad-and-boot'
    """
    text = str(value or "").lower().replace("&", "and")
    return re.sub(r"[^a-z0-9]+", "-", text).strip("-")


def normalize_name(value: Any) -> str:
    return re.sub(r"\s+", " ", html.unescape(str(value or ""))).strip()


def is_category_like(obj: Any) -> bool:
    return isinstance(obj, dict) and any(k in obj for k in _SHAPE_KEYS)


def is_category_array(value: Any) -> bool:
    """비어 있지 않고 모든 원소가 카테고리 형태인 리스트"""
    return isinstance(value, list) and bool(value) and all(is_category_like(item) for item in value)


def _first_value(obj: dict[str, Any], keys: Iterable[str]) -> str:
    for key in keys:
        value = obj.get(key)
        if value is None or isinstance(value, (dict, list, bool)):
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def _children_of(obj: dict[str, Any]) -> list[Any]:
    for key in _CHILD_KEYS:
        value = obj.get(key)
        if isinstance(value, list) and value:
            return value
    for key, value in obj.items():
        if key in _CHILD_KEYS:
            continue
        if is_category_array(value):
            return value
    return []


def _normalize_one(raw: Any, depth: int) -> Optional[CategoryNode]:
    if isinstance(raw, CategoryNode):
        return raw
    if isinstance(raw, str):
        name = normalize_name(raw)
        return CategoryNode(id=slugify(name), name=name) if name and slugify(name) else None
    if not isinstance(raw, dict):
        return None

    name = normalize_name(_first_value(raw, _NAME_KEYS))
    raw_url = _first_value(raw, _URL_KEYS)
    url = normalize_href(raw_url) if raw_url else ""
    node_id = _first_value(raw, _ID_KEYS) or extract_category_id(url) or slugify(name)
    if not name or not node_id:
        return None
    if not url:
        url = build_category_url(node_id)

    children = normalize_category_tree(_children_of(raw), depth=depth + 1) if depth < 12 else []
    return CategoryNode(id=node_id, name=name, url=url, children=children)


def normalize_category_tree(nodes: Any, depth: int = 0) -> list[CategoryNode]:
    """임의 형태의 노드 목록을 CategoryNode 목록으로 정규화

    id 또는 name이 없는 노드는 버립니다.

    Args:
        nodes: dict/문자열/CategoryNode 리스트
        depth: 재귀 깊이 (내부용)

    Returns:
        list[CategoryNode]
    """
    if not isinstance(nodes, list):
        return []
    result: list[CategoryNode] = []
    for raw in nodes:
        node = _normalize_one(raw, depth)
        if node is not None:
            result.append(node)
    return result


def iter_nodes(tree: list[CategoryNode]) -> Iterator[tuple[CategoryNode, tuple[CategoryNode, ...]]]:
    """전위 순회 (노드, 조상 경로)"""
    stack: list[tuple[CategoryNode, tuple[CategoryNode, ...]]] = [(n, ()) for n in reversed(tree)]
    while stack:
        node, ancestors = stack.pop()
        yield node, ancestors
        for child in reversed(node.children):
            stack.append((child, ancestors + (node,)))


def count_nodes(tree: list[CategoryNode]) -> int:
    return sum(1 for _ in iter_nodes(tree))


def _matches(node: CategoryNode, target_id: Optional[str], target_url: Optional[str]) -> bool:
    if target_id and node.id == str(target_id):
        return True
    if target_url and node.url:
        return normalize_category_url(node.url) == normalize_category_url(target_url)
    return False


def find_node(
    tree: list[CategoryNode],
    target_id: Optional[str] = None,
    target_url: Optional[str] = None,
) -> Optional[CategoryNode]:
    """id 또는 url로 노드 탐색

    일치하는 노드가 여러 개면 하위 항목이 더 많은 노드, 그다음 url이 있는 노드를 고릅니다.
    """
    if not target_id and not target_url:
        return None
    best: Optional[CategoryNode] = None
    for node, _ in iter_nodes(tree):
        if not _matches(node, target_id, target_url):
            continue
        if best is None:
            best = node
            continue
        if len(node.children) > len(best.children):
            best = node
        elif len(node.children) == len(best.children) and node.url and not best.url:
            best = node
    return best


def find_path(tree: list[CategoryNode], target_id: str) -> list[CategoryNode]:
    """루트 → 대상 노드 경로 (없으면 빈 리스트)"""
    if not target_id:
        return []
    for node, ancestors in iter_nodes(tree):
        if node.id == str(target_id):
            return [*ancestors, node]
    return []


def dedupe_nodes(nodes: Iterable[CategoryNode]) -> list[CategoryNode]:
    """(id, name) 기준 중복 제거, 첫 등장 순서 유지"""
    seen: set[tuple[str, str]] = set()
    result: list[CategoryNode] = []
    for node in nodes:
        key = (node.id, node.name)
        if key in seen:
            continue
        seen.add(key)
        result.append(node)
    return result


def has_numeric_root(tree: list[CategoryNode]) -> bool:
    return any(node.id.isdigit() for node in tree)


def is_complete(tree: list[CategoryNode], min_roots: int = 8) -> bool:
    """라이브 트리 완전성 판정 (루트 수 + 숫자 id 루트 존재)"""
    return len(tree) >= min_roots and has_numeric_root(tree)


def is_fresh(updated_at: Optional[datetime], freshness_s: float, now: Optional[datetime] = None) -> bool:
    if updated_at is None:
        return False
    current = now or datetime.now(timezone.utc)
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return (current - updated_at).total_seconds() < freshness_s
