"""Taxonomy Store - 카테고리 트리 스냅샷 관리

- 비어 있지 않은 스냅샷이 있으면 (강제 갱신이 아닌 한) 그대로 반환
- 세션이 없으면 스냅샷 또는 정적 기본 트리
- 재구성: HTTP 개요 페이지 → (불완전하면) 브라우저 전체 트리 → 완전하면 저장
- 재구성이 완전한 트리를 못 만들면 이전 완전 스냅샷, 그것도 없으면 정적 트리
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger
from kl_taxonomy.core.exceptions import CacheException
from kl_taxonomy.engine.context import SessionContext, has_session_context
from kl_taxonomy.schemas.taxonomy_schema import CategoryNode, TaxonomySnapshot
from kl_taxonomy.services.impl.persistence import Persistence, build_persistence
from kl_taxonomy.services.impl.static_baseline import static_snapshot
from kl_taxonomy.utils.category_tree import count_nodes, find_node, find_path, is_complete, is_fresh

if TYPE_CHECKING:
    from kl_taxonomy.crawlers.fastpath_executor import LightweightFetcher
    from kl_taxonomy.crawlers.slowpath_executor import BrowserSessionExtractor


class TaxonomyStore:
    """카테고리 트리 스냅샷 저장소

    Usage:
        store = TaxonomyStore(fetcher=LightweightFetcher(), extractor=BrowserSessionExtractor())
        await store.init()
        snapshot = await store.get_taxonomy(session=session_ctx)
        node = store.find_node("161")
    """

    def __init__(
        self,
        fetcher: Optional["LightweightFetcher"] = None,
        extractor: Optional["BrowserSessionExtractor"] = None,
        persistence: Optional[Persistence] = None,
        min_roots: Optional[int] = None,
    ):
        self.fetcher = fetcher
        self.extractor = extractor
        self.persistence = persistence or build_persistence(settings.taxonomy_snapshot_path)
        self.min_roots = min_roots if min_roots is not None else settings.taxonomy_min_roots
        self._snapshot: Optional[TaxonomySnapshot] = None
        self._loaded = False
        self._rebuild_lock = asyncio.Lock()

    async def init(self) -> None:
        """영속 스냅샷 로드 (없거나 깨졌으면 비어 있는 상태)"""
        self._snapshot = await self._load()
        self._loaded = True

    async def _load(self) -> Optional[TaxonomySnapshot]:
        try:
            payload = await asyncio.to_thread(self.persistence.load)
        except CacheException as e:
            logger.warning(f"[Taxonomy] snapshot load failed: {e}")
            return None
        if not payload:
            return None
        try:
            snapshot = TaxonomySnapshot.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"[Taxonomy] malformed snapshot ignored: {e.error_count()} errors")
            return None
        if not snapshot.categories:
            return None
        logger.info(f"[Taxonomy] snapshot loaded: {len(snapshot.categories)} roots, updatedAt={snapshot.updated_at}")
        return snapshot

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.init()

    def current_snapshot(self) -> Optional[TaxonomySnapshot]:
        """메모리의 영속 스냅샷 (네트워크 없음)"""
        return self._snapshot

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        if self._snapshot is None:
            return False
        return is_fresh(self._snapshot.updated_at, settings.taxonomy_freshness_s, now)

    def find_node(self, target_id: Optional[str] = None, target_url: Optional[str] = None) -> Optional[CategoryNode]:
        if self._snapshot is None:
            return None
        return find_node(self._snapshot.categories, target_id, target_url)

    def find_path(self, category_id: str) -> list[CategoryNode]:
        if self._snapshot is None:
            return []
        return find_path(self._snapshot.categories, category_id)

    async def get_taxonomy(
        self,
        force_refresh: bool = False,
        session: Optional[SessionContext] = None,
    ) -> TaxonomySnapshot:
        """카테고리 트리 조회

        Args:
            force_refresh: 기존 스냅샷을 무시하고 재구성
            session: 세션 컨텍스트 (없으면 라이브 재구성 불가)

        Returns:
            TaxonomySnapshot: 항상 비어 있지 않은 트리 (최후에는 정적 트리)
        """
        await self._ensure_loaded()

        if self._snapshot is not None and not force_refresh:
            if not self.is_fresh():
                logger.debug("[Taxonomy] serving stale snapshot")
            return self._snapshot

        if not has_session_context(session):
            if self._snapshot is not None:
                return self._snapshot
            logger.info("[Taxonomy] no session and no snapshot, serving static baseline")
            return static_snapshot()

        async with self._rebuild_lock:
            if self._snapshot is not None and not force_refresh:
                return self._snapshot
            return await self._rebuild(session)

    async def _fetch_http_tree(self, session: SessionContext) -> list[CategoryNode]:
        if self.fetcher is None:
            return []
        headers = {"Cookie": session.credentials.header_value()} if session.credentials else None
        try:
            return await self.fetcher.fetch_taxonomy(proxy=session.proxy, headers=headers)
        except Exception as e:
            logger.warning(f"[Taxonomy] HTTP overview failed: {type(e).__name__}: {e}")
            return []

    async def _fetch_browser_tree(self, session: SessionContext) -> list[CategoryNode]:
        if self.extractor is None:
            return []
        try:
            return await self.extractor.extract_full_tree(session)
        except Exception as e:
            logger.warning(f"[Taxonomy] browser full tree failed: {type(e).__name__}: {e}")
            return []

    async def _rebuild(self, session: SessionContext) -> TaxonomySnapshot:
        tree = await self._fetch_http_tree(session)
        if not is_complete(tree, self.min_roots):
            logger.info(f"[Taxonomy] HTTP tree incomplete ({len(tree)} roots), escalating to browser")
            browser_tree = await self._fetch_browser_tree(session)
            if is_complete(browser_tree, self.min_roots) or count_nodes(browser_tree) > count_nodes(tree):
                tree = browser_tree

        if is_complete(tree, self.min_roots):
            snapshot = TaxonomySnapshot(updated_at=datetime.now(timezone.utc), categories=tree)
            await self._persist(snapshot)
            self._snapshot = snapshot
            logger.info(f"[Taxonomy] rebuilt: {len(tree)} roots, {count_nodes(tree)} nodes")
            return snapshot

        if self._snapshot is not None:
            logger.warning("[Taxonomy] rebuild incomplete, keeping previous snapshot")
            return self._snapshot
        logger.warning("[Taxonomy] rebuild incomplete and no snapshot, serving static baseline")
        return static_snapshot()

    async def _persist(self, snapshot: TaxonomySnapshot) -> None:
        payload = snapshot.model_dump(mode="json", by_alias=True)
        try:
            await asyncio.to_thread(self.persistence.save, payload)
        except CacheException as e:
            logger.warning(f"[Taxonomy] snapshot persist failed: {e}")

    def health_check(self) -> bool:
        return self.persistence.health_check()
