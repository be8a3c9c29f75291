"""Lightweight HTTP Fetcher (FastPath)

브라우저 없이 curl_cffi 로 HTML을 가져와 selectolax 로 파싱합니다.
- 카테고리 개요 페이지 (/s-kategorien.html) → 전체 트리
- 카테고리 목록 페이지 → 직계 하위 카테고리
"""

from __future__ import annotations

from typing import Dict, Optional

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger
from kl_taxonomy.core.exceptions import (
    BlockedException,
    ParsingException,
    TransientNetworkException,
)
from kl_taxonomy.crawlers.boundary import (
    extract_children_from_listing_html,
    is_blocked_html,
    parse_categories_from_html,
)
from kl_taxonomy.crawlers.http_client import SharedHttpClient, get_shared_http_client
from kl_taxonomy.engine.context import ProxyConfig
from kl_taxonomy.schemas.taxonomy_schema import CategoryNode
from kl_taxonomy.utils.category_tree import dedupe_nodes, normalize_category_tree


class LightweightFetcher:
    """HTTP 전용 추출기

    Usage:
        fetcher = LightweightFetcher()
        tree = await fetcher.fetch_taxonomy(proxy)
        children = await fetcher.fetch_children(url, target_id="161", proxy=proxy)
    """

    def __init__(self, http_client: Optional[SharedHttpClient] = None):
        self.http_client = http_client or get_shared_http_client()

    async def fetch(
        self,
        url: str,
        proxy: Optional[ProxyConfig] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout_s: Optional[float] = None,
    ) -> str:
        """HTML 가져오기

        Args:
            url: 대상 URL
            proxy: egress 프록시 (없으면 직접 연결)
            headers: 추가 헤더 (쿠키 등)
            timeout_s: 요청 타임아웃

        Returns:
            str: 응답 본문

        Raises:
            TransientNetworkException: 연결 실패, 5xx, 429
            BlockedException: 403 또는 차단/캡차 페이지
            ParsingException: 그 밖의 비정상 상태 코드
        """
        timeout = timeout_s if timeout_s is not None else settings.crawler_http_timeout_s
        result = await self.http_client.get_text(
            url,
            timeout_s=timeout,
            headers=headers,
            proxy_url=proxy.http_url() if proxy else None,
        )
        if result is None:
            raise TransientNetworkException(url, "request failed")

        status, text = result
        if status == 429 or status >= 500:
            raise TransientNetworkException(url, f"status {status}")
        if status == 403:
            raise BlockedException(url)
        if status >= 400:
            raise ParsingException(f"unexpected status {status}", {"url": url})
        if is_blocked_html(text):
            raise BlockedException(url)

        logger.debug(f"[FastPath] GET {url} -> {status} ({len(text)} chars)")
        return text

    async def fetch_taxonomy(
        self,
        proxy: Optional[ProxyConfig] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> list[CategoryNode]:
        """카테고리 개요 페이지에서 전체 트리 추출

        Raises:
            ParsingException: 카테고리 행을 하나도 찾지 못한 경우
        """
        url = settings.site_url(settings.site_categories_path)
        html = await self.fetch(url, proxy=proxy, headers=headers)
        tree = normalize_category_tree(parse_categories_from_html(html))
        if not tree:
            raise ParsingException("no category rows on overview page", {"url": url})
        logger.info(f"[FastPath] taxonomy overview parsed: {len(tree)} roots")
        return tree

    async def fetch_children(
        self,
        url: str,
        target_id: str = "",
        proxy: Optional[ProxyConfig] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout_s: Optional[float] = None,
    ) -> list[CategoryNode]:
        """카테고리 목록 페이지에서 직계 하위 카테고리 추출 (없으면 빈 리스트)"""
        timeout = timeout_s if timeout_s is not None else settings.crawler_listing_timeout_s
        html = await self.fetch(url, proxy=proxy, headers=headers, timeout_s=timeout)
        children = dedupe_nodes(normalize_category_tree(extract_children_from_listing_html(html, target_id)))
        logger.info(f"[FastPath] listing {url}: {len(children)} children")
        return children
