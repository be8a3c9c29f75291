"""등록 폼 추가 필드 파싱

브라우저에서 수집한 원시 컨트롤 목록(select/input)을 FieldDescriptor 로 변환합니다.
수집 스크립트는 `crawlers/playwright/scripts.py` 의 COLLECT_FORM_CONTROLS 를 참고하세요.

원시 컨트롤 형식:
    {"tag": "select"|"input", "name": str, "id": str, "type": str, "label": str,
     "visible": bool, "required": bool, "options": [{"value": str, "label": str}]}
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from kl_taxonomy.core.logging import logger
from kl_taxonomy.schemas.taxonomy_schema import FieldDescriptor, FieldKind, FieldOption
from kl_taxonomy.utils.category_tree import normalize_name


IGNORED_LABELS = frozenset(
    label.lower()
    for label in (
        "Preis",
        "Preisart",
        "Preistyp",
        "PLZ",
        "Ort",
        "Versand",
        "Angebotstyp",
        "Gebot",
        "Gesuch",
        "Direkt kaufen",
    )
)

_PRICE_NAME_RE = re.compile(r"preis|price", re.IGNORECASE)
_ATTRIBUTE_MAP_RE = re.compile(r"attributemap", re.IGNORECASE)
_RANGE_SUFFIX_RE = re.compile(r"(?:[_.\-\[]?)(min|max|von|bis)\]?$", re.IGNORECASE)
_TEXT_INPUT_TYPES = frozenset({"text", "number", "tel", ""})


def is_attribute_map_name(name: str) -> bool:
    return bool(_ATTRIBUTE_MAP_RE.search(name or ""))


def _control_key(control: dict[str, Any]) -> str:
    return str(control.get("name") or control.get("id") or "").strip()


def _is_ignored(control: dict[str, Any], label: str) -> bool:
    name = _control_key(control)
    if label.lower() in IGNORED_LABELS:
        return True
    return bool(_PRICE_NAME_RE.search(name)) and not is_attribute_map_name(name)


def _clean_options(raw: Any) -> list[FieldOption]:
    options: list[FieldOption] = []
    if not isinstance(raw, list):
        return options
    for item in raw:
        if not isinstance(item, dict):
            continue
        label = normalize_name(item.get("label"))
        if not label:
            continue
        options.append(FieldOption(value=str(item.get("value") or ""), label=label))
    return options


def _select_field(control: dict[str, Any]) -> Optional[FieldDescriptor]:
    key = _control_key(control)
    if not key:
        return None
    label = normalize_name(control.get("label")) or key
    if _is_ignored(control, label):
        return None
    if not control.get("visible", True) and not is_attribute_map_name(key):
        return None
    options = _clean_options(control.get("options"))
    if len(options) <= 1:
        return None
    return FieldDescriptor(
        key=key,
        label=label,
        kind=FieldKind.SELECT,
        options=options,
        required=bool(control.get("required")),
    )


def _range_base(key: str) -> Optional[str]:
    match = _RANGE_SUFFIX_RE.search(key)
    if not match:
        return None
    base = key[: match.start()].rstrip("_.-[")
    if not base:
        return None
    if "[" in base and not base.endswith("]"):
        base = f"{base}]"
    return base


def _input_fields(controls: list[dict[str, Any]]) -> list[tuple[int, FieldDescriptor]]:
    """attributeMap 텍스트 입력 → text 필드, min/max 쌍 → range 필드

    Returns:
        (문서 내 위치, 필드) 목록. range 필드는 첫 번째 경계 입력의 위치를 씁니다.
    """
    candidates: list[tuple[int, dict[str, Any]]] = []
    for position, control in enumerate(controls):
        if str(control.get("tag") or "").lower() != "input":
            continue
        key = _control_key(control)
        if not key or not is_attribute_map_name(key):
            continue
        if str(control.get("type") or "").lower() not in _TEXT_INPUT_TYPES:
            continue
        if not control.get("visible", True):
            continue
        label = normalize_name(control.get("label")) or key
        if _is_ignored(control, label):
            continue
        candidates.append((position, control))

    by_base: dict[str, list[dict[str, Any]]] = {}
    for _, control in candidates:
        base = _range_base(_control_key(control))
        if base:
            by_base.setdefault(base, []).append(control)

    fields: list[tuple[int, FieldDescriptor]] = []
    consumed: set[str] = set()
    for position, control in candidates:
        key = _control_key(control)
        if key in consumed:
            continue
        base = _range_base(key)
        pair = by_base.get(base or "", [])
        if base and len(pair) >= 2:
            consumed.update(_control_key(c) for c in pair)
            label = normalize_name(pair[0].get("label")) or base
            label = _RANGE_SUFFIX_RE.sub("", label).strip() or label
            fields.append((
                position,
                FieldDescriptor(
                    key=base,
                    label=label,
                    kind=FieldKind.RANGE,
                    required=any(bool(c.get("required")) for c in pair),
                ),
            ))
            continue
        consumed.add(key)
        fields.append((
            position,
            FieldDescriptor(
                key=key,
                label=normalize_name(control.get("label")) or key,
                kind=FieldKind.TEXT,
                required=bool(control.get("required")),
            ),
        ))
    return fields


def parse_field_descriptors(controls: Iterable[dict[str, Any]]) -> list[FieldDescriptor]:
    """원시 컨트롤 목록 → FieldDescriptor 목록 (key 기준 최초 1회만, 문서 순서 유지)

    Args:
        controls: 페이지와 모든 frame에서 수집한 컨트롤 (문서 순서)

    Returns:
        list[FieldDescriptor]
    """
    items = [c for c in controls if isinstance(c, dict)]
    located: list[tuple[int, Optional[FieldDescriptor]]] = [
        (position, _select_field(c))
        for position, c in enumerate(items)
        if str(c.get("tag") or "").lower() == "select"
    ]
    located.extend(_input_fields(items))
    located.sort(key=lambda pair: pair[0])

    fields: list[FieldDescriptor] = []
    seen: set[str] = set()
    for _, candidate in located:
        if candidate is None or candidate.key in seen:
            continue
        seen.add(candidate.key)
        fields.append(candidate)

    logger.debug(f"[Fields] parsed {len(fields)} fields from {len(items)} controls")
    return fields


def has_attribute_control(controls: Iterable[dict[str, Any]]) -> bool:
    """카테고리 전용 컨트롤이 렌더링되었는지 (attributeMap / “Art”·“Zustand” 라벨 / “Bitte wählen”)"""
    for control in controls:
        if not isinstance(control, dict):
            continue
        key = _control_key(control).lower()
        label = normalize_name(control.get("label")).lower()
        if "attributemap" in key:
            return True
        if re.search(r"\bart\b|zustand", label):
            return True
        options = control.get("options") or []
        if options and isinstance(options[0], dict) and "bitte wählen" in str(options[0].get("label", "")).lower():
            return True
    return False
