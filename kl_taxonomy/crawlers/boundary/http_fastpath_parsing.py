"""kleinanzeigen HTML 파싱/검증 유틸.

이 모듈은 네트워크(fetch)/브라우저와 분리된 순수 파싱 로직을 담습니다.
결과는 정규화 전 원시 dict({id, name, url, children}) 목록입니다.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional, Union

from selectolax.parser import HTMLParser, Node

from kl_taxonomy.core.logging import logger
from kl_taxonomy.utils.category_tree import normalize_name
from kl_taxonomy.utils.url_utils import (
    extract_category_id,
    extract_category_identifier,
    extract_path_ids,
    has_slug_or_attribute,
    normalize_href,
)


_BLOCK_PHRASES = (
    "access denied",
    "just a moment",
    "verify you are human",
    "zugriff verweigert",
    "ungewöhnliche aktivitäten",
)
# 제목에서는 "captcha" 단독도 차단 신호
_BLOCK_TITLE_KEYWORDS = _BLOCK_PHRASES + ("captcha",)
_CHALLENGE_SELECTORS = (
    "#challenge-form",
    "#challenge-running",
    "#cf-challenge-running",
    "#px-captcha",
    ".g-recaptcha",
    ".h-captcha",
    "form[action*='captcha']",
    "iframe[src*='captcha']",
)

_CATEGORY_HREF_RE = re.compile(r"/c\d+")
_TOP_ID_RE = re.compile(r"/c(\d+)(?:/|$)")
_ALL_CATEGORIES_RE = re.compile(r"alle kategorien", re.IGNORECASE)
_CLOSE_ANCHOR_RE = re.compile(r"icon-close|entfernen", re.IGNORECASE)

Parent = Union[HTMLParser, Node]


def is_blocked_html(html: str) -> bool:
    """봇 차단/챌린지 페이지 여부

    제목 키워드, 챌린지 위젯, 본문(스크립트 제외) 문구로 판정합니다.
    스크립트 URL 이나 번역 문자열에 들어 있는 "captcha" 는 무시합니다.
    """
    if not html or not html.strip():
        return True
    tree = HTMLParser(html)
    title = _text(tree.css_first("title")).lower()
    if any(k in title for k in _BLOCK_TITLE_KEYWORDS):
        return True
    if any(tree.css_first(selector) is not None for selector in _CHALLENGE_SELECTORS):
        return True
    tree.strip_tags(["script", "style", "noscript", "template"])
    body_text = _text(tree.body).lower()
    return any(phrase in body_text for phrase in _BLOCK_PHRASES)


def _text(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return normalize_name(node.text(deep=True, separator=" "))


def _href(node: Node) -> str:
    return (node.attributes.get("href") or "").strip()


def _leaf(node_id: str, name: str, url: str) -> dict[str, Any]:
    return {"id": node_id, "name": name, "url": url, "children": []}


def _top_id(url: str) -> str:
    match = _TOP_ID_RE.search(url)
    return match.group(1) if match else ""


# ============================================================================
# 카테고리 전체 페이지 (s-kategorien.html)
# ============================================================================

def parse_categories_from_html(html: str) -> list[dict[str, Any]]:
    """`li.l-container-row` 블록에서 루트 카테고리와 하위 링크 추출

    Args:
        html: 카테고리 페이지 HTML

    Returns:
        원시 트리 [{id, name, url, children: [...]}]
    """
    if not html:
        return []
    tree = HTMLParser(html)
    results: list[dict[str, Any]] = []
    for row in tree.css("li.l-container-row"):
        top_anchor = None
        for anchor in row.css("h2 a"):
            if _CATEGORY_HREF_RE.search(_href(anchor)):
                top_anchor = anchor
                break
        if top_anchor is None:
            continue
        top_url = normalize_href(_href(top_anchor))
        top_id = _top_id(top_url)
        top_name = _text(top_anchor)
        if not top_id or not top_name:
            continue

        children: list[dict[str, Any]] = []
        child_list = row.css_first("ul")
        if child_list is not None:
            for anchor in child_list.css("a"):
                href = _href(anchor)
                if not _CATEGORY_HREF_RE.search(href):
                    continue
                child_url = normalize_href(href)
                child_id = _top_id(child_url)
                child_name = _text(anchor)
                if not child_id or not child_name:
                    continue
                children.append(_leaf(child_id, child_name, child_url))

        results.append({"id": top_id, "name": top_name, "url": top_url, "children": children})
    return results


# ============================================================================
# 목록 페이지 (s-…/c<id>) 의 "Kategorien" 박스
# ============================================================================

def extract_browsebox_lists(parent: Parent) -> list[Node]:
    """가장 바깥쪽 `ul.browsebox-itemlist` 목록만 반환 (중첩 목록은 건너뜀)"""
    lists: list[Node] = []
    for node in parent.css("ul.browsebox-itemlist"):
        ancestor = node.parent
        nested = False
        while ancestor is not None:
            if ancestor.tag == "ul" and "browsebox-itemlist" in (ancestor.attributes.get("class") or ""):
                nested = True
                break
            ancestor = ancestor.parent
        if not nested:
            lists.append(node)
    return lists


def _is_close_anchor(anchor: Node) -> bool:
    attrs = " ".join(f"{k}={v or ''}" for k, v in anchor.attributes.items() if k != "href")
    return bool(_CLOSE_ANCHOR_RE.search(attrs))


def _link_to_child(anchor: Node, target_id: str) -> Optional[dict[str, Any]]:
    url = normalize_href(_href(anchor))
    numeric = extract_category_id(url)
    child_id = extract_category_identifier(url, numeric_id=numeric, target_id=target_id)
    if not child_id or (target_id and child_id == target_id):
        return None
    name = _text(anchor)
    if not name or _ALL_CATEGORIES_RE.search(name):
        return None
    return _leaf(child_id, name, url)


def parse_category_links_from_block(block: Parent, target_id: str = "") -> list[dict[str, Any]]:
    """블록 안의 `/c<id>` 링크 → 하위 항목 (닫기 아이콘/“Alle Kategorien”/대상 자신 제외, id 중복 제거)"""
    if block is None:
        return []
    results: list[dict[str, Any]] = []
    seen: set[str] = set()
    for anchor in block.css("a[href]"):
        if not _CATEGORY_HREF_RE.search(_href(anchor)):
            continue
        if _is_close_anchor(anchor):
            continue
        child = _link_to_child(anchor, target_id)
        if child is None or child["id"] in seen:
            continue
        seen.add(child["id"])
        results.append(child)
    return results


def find_categories_section(tree: HTMLParser) -> Optional[Node]:
    """`<h3>Kategorien</h3>` 를 가진 section"""
    for section in tree.css("section"):
        for heading in section.css("h3"):
            if _text(heading).lower() == "kategorien":
                return section
    return None


def _target_anchor_fallback(tree: HTMLParser, target_id: str) -> list[dict[str, Any]]:
    results: list[dict[str, Any]] = []
    seen: set[str] = set()
    for anchor in tree.css(f'a[href*="c{target_id}"]'):
        href = _href(anchor)
        if not has_slug_or_attribute(href):
            continue
        child = _link_to_child(anchor, target_id)
        if child is None or child["id"] in seen:
            continue
        seen.add(child["id"])
        results.append(child)
    return results


def extract_children_from_listing_html(html: str, target_id: str = "") -> list[dict[str, Any]]:
    """목록 페이지의 하위 카테고리 추출

    - "Kategorien" section 안의 바깥쪽 browsebox 목록 중 `/c<targetId>` 를 포함한 링크가
      가장 많은 목록을 선택 (동점이면 먼저 나온 목록)
    - 실패 시 section 전체 → 페이지 전체 → 대상 id 앵커 → 마지막 목록 순으로 fallback
    """
    if not html:
        return []
    tree = HTMLParser(html)
    section = find_categories_section(tree)
    scope: Parent = section if section is not None else tree
    lists = extract_browsebox_lists(scope)

    if not lists:
        fallback = parse_category_links_from_block(scope, target_id)
        return fallback if fallback else parse_category_links_from_block(tree, target_id)

    target_token = f"/c{target_id}" if target_id else ""
    best: Optional[list[dict[str, Any]]] = None
    best_score = -1
    for list_node in lists:
        children = parse_category_links_from_block(list_node, target_id)
        if not children:
            continue
        score = sum(1 for c in children if target_token and target_token in c["url"]) if target_token else 0
        if score > best_score:
            best_score = score
            best = children
    if best:
        return best

    section_fallback = parse_category_links_from_block(scope, target_id)
    if section_fallback:
        return section_fallback
    page_fallback = parse_category_links_from_block(tree, target_id)
    if page_fallback:
        return page_fallback
    if target_id:
        anchored = _target_anchor_fallback(tree, target_id)
        if anchored:
            return anchored
    return parse_category_links_from_block(lists[-1], target_id)


def extract_listing_dom_children(html: str, target_id: str) -> list[dict[str, Any]]:
    """렌더링된 목록 페이지 DOM에서 하위 항목 추출 (브라우저 단계용)

    "Kategorien" 을 언급하는 section 안에서
    - `path=` 링크: path 세그먼트에 대상 id가 있어야 함 (id는 마지막 세그먼트)
    - `/c<id>` 링크: `/c<targetId>` 를 포함하고 slug 또는 속성 세그먼트가 있어야 함
    """
    if not html or not target_id:
        return []
    tree = HTMLParser(html)
    scope: Parent = tree
    for section in tree.css("section, aside, div.browsebox"):
        if "kategorien" in _text(section).lower():
            scope = section
            break

    results: list[dict[str, Any]] = []
    seen: set[str] = set()
    for anchor in scope.css("a[href]"):
        href = _href(anchor)
        url = normalize_href(href)
        child_id = ""
        if "path=" in href:
            parts = extract_path_ids(href)
            if target_id not in parts or parts[-1] == target_id:
                continue
            child_id = parts[-1]
        elif _CATEGORY_HREF_RE.search(href):
            if f"/c{target_id}" not in href or not has_slug_or_attribute(href):
                continue
            child_id = extract_category_identifier(url, numeric_id=extract_category_id(url), target_id=target_id) or ""
        else:
            continue
        name = _text(anchor)
        if not child_id or child_id == target_id or child_id in seen:
            continue
        if not name or _ALL_CATEGORIES_RE.search(name) or _is_close_anchor(anchor):
            continue
        seen.add(child_id)
        results.append(_leaf(child_id, name, url))
    return results


# ============================================================================
# 카테고리 선택 페이지 (p-kategorie-aendern.html)
# ============================================================================

def extract_embedded_category_tree(html: str) -> Optional[dict[str, Any]]:
    """`CategorySelectView.init(... categoryTree: {...})` 의 JSON 객체 추출 (문자열을 고려한 괄호 매칭)"""
    if not html:
        return None
    init_index = html.find("CategorySelectView.init")
    marker = html.find("categoryTree", init_index if init_index >= 0 else 0)
    if marker == -1:
        return None
    colon = html.find(":", marker)
    if colon == -1:
        return None
    start = html.find("{", colon)
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    end = -1
    for i in range(start, len(html)):
        ch = html[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                end = i
                break
    if end == -1:
        return None
    try:
        data = json.loads(html[start:end + 1])
    except (json.JSONDecodeError, ValueError) as e:
        logger.debug(f"[Parsing] embedded categoryTree is not valid JSON: {e}")
        return None
    return data if isinstance(data, dict) else None


def extract_children_from_selection_html(html: str, target_id: str) -> list[dict[str, Any]]:
    """선택 페이지의 `path=` 앵커 중 대상 id를 포함하고 세그먼트가 2개 이상인 링크 (마지막 세그먼트가 id)"""
    if not html or not target_id:
        return []
    tree = HTMLParser(html)
    results: list[dict[str, Any]] = []
    seen: set[str] = set()
    for anchor in tree.css('a[href*="path="]'):
        href = _href(anchor)
        parts = extract_path_ids(href)
        if len(parts) < 2 or target_id not in parts:
            continue
        leaf_id = parts[-1]
        if leaf_id == target_id or leaf_id in seen:
            continue
        # 대상의 바로 아래 단계만
        if parts.index(target_id) != len(parts) - 2:
            continue
        name = _text(anchor)
        if not name:
            continue
        seen.add(leaf_id)
        results.append(_leaf(leaf_id, name, normalize_href(href)))
    return results


# ============================================================================
# DOM 트리 (전체 트리 브라우저 단계)
# ============================================================================

def _own_anchor(li: Node) -> Optional[Node]:
    stack = list(reversed(list(li.iter())))
    while stack:
        node = stack.pop()
        if node.tag == "ul":
            continue
        if node.tag == "a" and _CATEGORY_HREF_RE.search(_href(node)):
            return node
        stack.extend(reversed(list(node.iter())))
    return None


def _nested_list(li: Node) -> Optional[Node]:
    stack = list(reversed(list(li.iter())))
    while stack:
        node = stack.pop()
        if node.tag == "ul":
            return node
        stack.extend(reversed(list(node.iter())))
    return None


def _parse_tree_list(ul: Node, depth: int = 0) -> list[dict[str, Any]]:
    nodes: list[dict[str, Any]] = []
    for li in ul.iter():
        if li.tag != "li":
            continue
        anchor = _own_anchor(li)
        if anchor is None:
            continue
        url = normalize_href(_href(anchor))
        node_id = extract_category_id(url) or ""
        name = _text(anchor)
        if not node_id or not name:
            continue
        nested = _nested_list(li)
        children = _parse_tree_list(nested, depth + 1) if nested is not None and depth < 8 else []
        nodes.append({"id": node_id, "name": name, "url": url, "children": children})
    return nodes


def _count_category_links(node: Node) -> int:
    return sum(1 for a in node.css("a[href]") if _CATEGORY_HREF_RE.search(_href(a)))


def parse_dom_category_tree(html: str) -> list[dict[str, Any]]:
    """`main ul.treelist` (없으면 카테고리 링크가 가장 많은 ul) 의 중첩 li 구조 파싱"""
    if not html:
        return []
    tree = HTMLParser(html)
    root = None
    for candidate in tree.css("main ul.treelist"):
        if _count_category_links(candidate) > 0:
            root = candidate
            break
    if root is None:
        best_count = 0
        for candidate in tree.css("ul"):
            count = _count_category_links(candidate)
            if count > best_count:
                best_count = count
                root = candidate
    if root is None:
        return []
    return _parse_tree_list(root)
