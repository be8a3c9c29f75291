"""Tree Search - Cycle-safe generic search over nested state

페이지 상태(`__NEXT_DATA__` 등)처럼 형태를 알 수 없는 중첩 dict/list 구조에서
조건을 만족하는 값을 찾거나, 카테고리 노드/부모 관계 그래프를 만듭니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from kl_taxonomy.utils.category_tree import is_category_array
from kl_taxonomy.utils.url_utils import extract_category_id


Predicate = Callable[[Any, Optional[str]], bool]

CATEGORY_TREE_KEYS = ("categories", "categoryTree", "categoryHierarchy", "rootCategories")

_GRAPH_ID_KEYS = ("id", "identifier", "fieldValue", "categoryId", "categoryID", "catId", "value")
_GRAPH_NAME_KEYS = ("name", "label", "categoryName", "title")
_GRAPH_URL_KEYS = ("url", "categoryUrl", "seoUrl")
_WINDOW_LIKE_KEYS = ("document", "navigator", "location", "localStorage")


def find_first(
    value: Any,
    predicate: Predicate,
    prefer_keys: Iterable[str] = (),
    max_nodes: int = 200_000,
) -> Optional[Any]:
    """전위 순회로 predicate(value, key)를 처음 만족하는 값 반환

    - dict는 prefer_keys를 먼저, 나머지 키는 원래 순서로 방문
    - id() 기반 방문 집합으로 순환 참조를 건너뜀

    Args:
        value: 탐색 루트
        predicate: (값, 부모에서의 키) → 일치 여부
        prefer_keys: 먼저 방문할 키
        max_nodes: 방문 상한

    Returns:
        처음 일치한 값 또는 None
    """
    preferred = tuple(prefer_keys)
    visited: set[int] = set()
    stack: list[tuple[Any, Optional[str]]] = [(value, None)]
    budget = max_nodes

    while stack and budget > 0:
        current, key = stack.pop()
        budget -= 1

        if predicate(current, key):
            return current

        if not isinstance(current, (dict, list, tuple)):
            continue
        marker = id(current)
        if marker in visited:
            continue
        visited.add(marker)

        if isinstance(current, dict):
            ordered = [k for k in preferred if k in current]
            ordered += [k for k in current.keys() if k not in preferred]
            for k in reversed(ordered):
                stack.append((current[k], str(k)))
        else:
            for item in reversed(current):
                stack.append((item, key))

    return None


def find_category_collection(state: Any) -> Optional[list[Any]]:
    """상태 객체에서 카테고리 트리 후보 컬렉션 탐색

    `categories` / `categoryTree` / `categoryHierarchy` / `rootCategories` 키 아래
    카테고리 형태의 배열을 찾습니다. `categoryTree`가 단일 객체이면 [객체]로 감쌉니다.
    """
    def _is_tree(value: Any, key: Optional[str]) -> bool:
        if key not in CATEGORY_TREE_KEYS:
            return False
        if is_category_array(value):
            return True
        return key == "categoryTree" and isinstance(value, dict) and bool(value)

    found = find_first(state, _is_tree, prefer_keys=CATEGORY_TREE_KEYS)
    if found is None:
        return None
    if isinstance(found, dict):
        return [found]
    return found


@dataclass
class GraphNode:
    id: str
    name: str
    url: str = ""


@dataclass
class StateGraph:
    """상태 전체에서 추출한 카테고리 노드/부모 간선 그래프"""
    nodes: dict[str, GraphNode] = field(default_factory=dict)
    edges: dict[str, list[str]] = field(default_factory=dict)

    def add_edge(self, parent_id: str, child_id: str) -> None:
        if parent_id == child_id:
            return
        children = self.edges.setdefault(parent_id, [])
        if child_id not in children:
            children.append(child_id)

    def children_of(self, target_id: str) -> list[GraphNode]:
        """대상 id의 인접 리스트 (id와 name이 있는 노드만)"""
        result: list[GraphNode] = []
        for child_id in self.edges.get(str(target_id), []):
            node = self.nodes.get(child_id)
            if node and node.id and node.name:
                result.append(node)
        return result


def _graph_id(obj: dict[str, Any]) -> Optional[str]:
    for key in _GRAPH_ID_KEYS:
        raw = obj.get(key)
        if raw is None or isinstance(raw, (dict, list, bool)):
            continue
        text = str(raw).strip()
        if text.isdigit():
            return text
        from_url = extract_category_id(text) if "/c" in text else None
        if from_url:
            return from_url
    return None


def _graph_text(obj: dict[str, Any], keys: Iterable[str]) -> str:
    for key in keys:
        raw = obj.get(key)
        if isinstance(raw, str) and raw.strip():
            return raw.strip()
    return ""


def _is_window_like(obj: dict[str, Any]) -> bool:
    return sum(1 for k in _WINDOW_LIKE_KEYS if k in obj) >= 2


def build_state_graph(state: Any, max_nodes: int = 200_000) -> StateGraph:
    """상태를 깊이 순회하며 숫자 id 카테고리 노드와 부모→자식 간선을 수집

    노드는 가장 가까운 카테고리 조상 노드에 연결됩니다.
    """
    graph = StateGraph()
    visited: set[int] = set()
    stack: list[tuple[Any, Optional[str]]] = [(state, None)]
    budget = max_nodes

    while stack and budget > 0:
        current, parent_id = stack.pop()
        budget -= 1
        if not isinstance(current, (dict, list, tuple)):
            continue
        marker = id(current)
        if marker in visited:
            continue
        visited.add(marker)

        if isinstance(current, dict):
            if _is_window_like(current):
                continue
            node_parent = parent_id
            node_id = _graph_id(current)
            name = _graph_text(current, _GRAPH_NAME_KEYS)
            if node_id and name:
                if node_id not in graph.nodes:
                    graph.nodes[node_id] = GraphNode(
                        id=node_id,
                        name=name,
                        url=_graph_text(current, _GRAPH_URL_KEYS),
                    )
                if parent_id:
                    graph.add_edge(parent_id, node_id)
                node_parent = node_id
            for value in reversed(list(current.values())):
                stack.append((value, node_parent))
        else:
            for item in reversed(current):
                stack.append((item, parent_id))

    return graph
