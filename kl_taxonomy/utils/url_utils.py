"""URL 파싱 유틸리티 (kleinanzeigen 카테고리 URL)"""
import json
import re
from typing import Any, Optional
from urllib.parse import parse_qs, quote, urlparse

from kl_taxonomy.core.config import settings


_ORIGIN_RE = re.compile(r"^https?://(www\.)?kleinanzeigen\.de", re.IGNORECASE)
_CATEGORY_ID_RE = re.compile(r"/c(\d+)(?:[/?+#]|$)")
_LOOSE_CATEGORY_ID_RE = re.compile(r"/c(\d+)")
_TRAILING_DIGITS_RE = re.compile(r"(\d+)(?:/)?$")
_SLUG_IDENTIFIER_RE = re.compile(r"/s-[^/]+/([^/]+)/c\d+(?:[/?+]|$)")
_ATTR_IDENTIFIER_RE = re.compile(r"\+[^/+]+:([^+/?&#]+)")
_MULTI_DIGIT_RE = re.compile(r"(\d{2,})")
_PATH_SEPARATOR_RE = re.compile(r"[>,]")


def normalize_href(href: str, base_url: Optional[str] = None) -> str:
    """상대/프로토콜-상대 href를 절대 URL로 정규화합니다.

    - "//host/path" -> "https://host/path"
    - "/path" -> "{base_url}/path"
    - "http(s)://..." -> 그대로
    """
    if not href:
        return ""

    h = href.strip()
    if not h:
        return ""

    if h.startswith("//"):
        return f"https:{h}"

    if h.startswith("/"):
        return f"{(base_url or settings.site_base_url).rstrip('/')}{h}"

    if not h.startswith(("http://", "https://")):
        return f"{(base_url or settings.site_base_url).rstrip('/')}/{h}"

    return h


def normalize_category_url(url: str) -> str:
    """캐시 키용 URL 정규화 (사이트 origin 및 끝 슬래시 제거)

    Examples:
        >>> normalize_category_url("https://www.kleinanzeigen.de/s-autos/c216/")
        '/s-autos/c216'
    """
    if not url:
        return ""
    value = _ORIGIN_RE.sub("", url.strip())
    return value.rstrip("/")


def extract_category_id(url: str) -> Optional[str]:
    """URL에서 숫자 카테고리 id 추출

    Examples:
        >>> extract_category_id("https://www.kleinanzeigen.de/s-autos/c216")
        '216'
        >>> extract_category_id("/s-kategorie/c161+autos.marke_s:bmw")
        '161'
    """
    if not url:
        return None
    match = _CATEGORY_ID_RE.search(url) or _LOOSE_CATEGORY_ID_RE.search(url)
    if match:
        return match.group(1)
    match = _TRAILING_DIGITS_RE.search(url)
    return match.group(1) if match else None


def extract_category_identifier(url: str, numeric_id: Optional[str] = None, target_id: Optional[str] = None) -> Optional[str]:
    """listing URL에서 하위 항목 식별자 추출

    우선순위: slug 세그먼트 → 속성 토큰(+key:value) → 숫자 id.
    숫자 id나 대상 id와 같은 값은 식별자로 쓰지 않습니다.
    """
    if not url:
        return numeric_id
    excluded = {v for v in (numeric_id, target_id) if v}

    slug = _SLUG_IDENTIFIER_RE.search(url)
    if slug and slug.group(1) not in excluded:
        return slug.group(1)

    attr = _ATTR_IDENTIFIER_RE.search(url)
    if attr and attr.group(1) not in excluded:
        return attr.group(1)

    return numeric_id


def has_slug_or_attribute(url: str) -> bool:
    """`/s-…/<slug>/c<id>` 또는 `+key:value` 형태 여부"""
    if not url:
        return False
    return bool(_SLUG_IDENTIFIER_RE.search(url) or "+" in url)


def build_category_url(category_id: str) -> str:
    """숫자 id로 목록 페이지 URL 생성 (숫자가 아니면 빈 문자열)"""
    if not is_numeric_id(category_id):
        return ""
    return settings.site_url(f"/s-kategorie/c{category_id}")


def extract_path_ids(url: str) -> list[str]:
    """`path=` 파라미터의 id 목록 추출

    Examples:
        >>> extract_path_ids("/p-kategorie-aendern.html?path=161/176")
        ['161', '176']
    """
    if not url or "path=" not in url:
        return []
    try:
        parsed = urlparse(url)
        raw = parse_qs(parsed.query).get("path", [""])[0]
    except ValueError:
        raw = ""
    if not raw:
        match = re.search(r"path=([^&#]+)", url)
        raw = match.group(1) if match else ""
    return [part for part in re.split(r"[/,]|%2F", raw, flags=re.IGNORECASE) if part]


def build_selection_url(path_ids: list[str]) -> str:
    """카테고리 선택 페이지 URL (`p-kategorie-aendern.html?path=a/b`)"""
    joined = "/".join(p for p in path_ids if p)
    return settings.site_url(f"{settings.site_category_select_path}?path={quote(joined, safe='')}")


def is_numeric_id(value: Optional[str]) -> bool:
    return bool(value) and str(value).isdigit()


def extract_numeric_id(item: Any) -> str:
    """경로 항목 하나 → 숫자 id

    숫자 그대로, `path=` URL(마지막 id), `/c<id>` URL, 2자리 이상 숫자 순으로 확인합니다.

    Examples:
        >>> extract_numeric_id("https://www.kleinanzeigen.de/s-autos/c216")
        '216'
        >>> extract_numeric_id("/p-kategorie-aendern.html?path=161%2F176")
        '176'
    """
    raw = str(item if item is not None else "").strip()
    if not raw:
        return ""
    if is_numeric_id(raw):
        return raw
    if "path=" in raw:
        ids = [p for p in extract_path_ids(raw) if is_numeric_id(p)]
        if ids:
            return ids[-1]
    match = _CATEGORY_ID_RE.search(raw) or _LOOSE_CATEGORY_ID_RE.search(raw) or _MULTI_DIGIT_RE.search(raw)
    return match.group(1) if match else ""


def _split_category_path(value: str) -> list[Any]:
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return parsed
    return [part.strip() for part in _PATH_SEPARATOR_RE.split(value) if part.strip()]


def parse_category_path(value: Optional[str]) -> list[str]:
    """categoryPath 파라미터 → 숫자 id 목록

    JSON 배열이거나 `>`/`,` 구분 문자열. 각 항목은 id, `path=` URL, `/c<id>` URL.
    `path=` 항목과 `161/176` 같은 슬래시 id 목록은 모든 id로 펼칩니다.
    """
    if not value or not value.strip():
        return []
    ids: list[str] = []
    for item in _split_category_path(value.strip()):
        raw = str(item if item is not None else "").strip()
        if "path=" in raw:
            ids.extend(p for p in extract_path_ids(raw) if is_numeric_id(p))
            continue
        if "/" in raw and not _LOOSE_CATEGORY_ID_RE.search(raw) and "://" not in raw:
            segments = [p for p in re.split(r"[\s/]+", raw) if is_numeric_id(p)]
            if segments:
                ids.extend(segments)
                continue
        numeric = extract_numeric_id(raw)
        if numeric:
            ids.append(numeric)
    return ids
