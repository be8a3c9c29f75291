"""Resolution Orchestrator - Main Engine Entry Point

하위 카테고리:
1. Cache lookup (`id:<id>` / `url:<normalized>`)
2. snapshot (영속 스냅샷 → slug id 정적 트리 → 세션이 있으면 1회 갱신)
3. listing_fetch (HTTP, 세션 필요)
4. browser (Playwright 하위 단계, 세션 필요)

필드:
1. Cache lookup (빈 항목은 allow_cached_empty 일 때만 반환)
2. browser (inject_category → form_resubmit → selection_workflow, 세션 필요)

전체 호출은 외부 데드라인으로 감싸고, 데드라인 초과 결과는 캐시에 기록하지 않습니다.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Optional

from kl_taxonomy.core.logging import logger
from kl_taxonomy.core.exceptions import InvalidTargetException
from kl_taxonomy.schemas.taxonomy_schema import CategoryNode, FieldDescriptor
from kl_taxonomy.services.impl.static_baseline import find_static_children
from kl_taxonomy.utils.category_tree import dedupe_nodes, find_node
from kl_taxonomy.utils.url_utils import (
    build_category_url,
    extract_category_id,
    extract_path_ids,
    normalize_href,
)

from .budget import BudgetConfig, BudgetManager
from .cache_adapter import CacheAdapter, CachedValue
from .context import ResolutionContext
from .escalation import EscalationOutcome, Stage, escalate
from .result import ResolutionResult
from .strategy import ExecutionStrategy

if TYPE_CHECKING:
    from kl_taxonomy.crawlers.fastpath_executor import LightweightFetcher
    from kl_taxonomy.crawlers.slowpath_executor import BrowserSessionExtractor
    from kl_taxonomy.services.impl.taxonomy_store import TaxonomyStore


class ResolutionOrchestrator:
    """해석 엔진 오케스트레이터

    Cache → snapshot → listing_fetch → browser 파이프라인을 관리하고
    예산 내에서 가장 먼저 얻은 비어 있지 않은 결과를 반환합니다.
    """

    def __init__(
        self,
        children_cache: CacheAdapter[CategoryNode],
        fields_cache: CacheAdapter[FieldDescriptor],
        taxonomy_store: "TaxonomyStore",
        fetcher: "LightweightFetcher",
        extractor: "BrowserSessionExtractor",
        children_budget: Optional[BudgetConfig] = None,
        fields_budget: Optional[BudgetConfig] = None,
        strategy: Optional[ExecutionStrategy] = None,
    ):
        """
        Args:
            children_cache: 하위 카테고리 캐시
            fields_cache: 필드 캐시
            taxonomy_store: 카테고리 트리 스냅샷 저장소
            fetcher: HTTP 추출기
            extractor: 브라우저 추출기
            children_budget: 하위 카테고리 예산 (기본 150초)
            fields_budget: 필드 예산 (기본 240초)
            strategy: 오류 분류기
        """
        if children_cache is None or fields_cache is None:
            raise ValueError("cache adapters must not be None")
        if taxonomy_store is None:
            raise ValueError("taxonomy_store must not be None")
        if fetcher is None or extractor is None:
            raise ValueError("fetcher and extractor must not be None")

        self.children_cache = children_cache
        self.fields_cache = fields_cache
        self.taxonomy_store = taxonomy_store
        self.fetcher = fetcher
        self.extractor = extractor
        self.children_budget = children_budget or BudgetConfig.for_children()
        self.fields_budget = fields_budget or BudgetConfig.for_fields()
        self.strategy = strategy or ExecutionStrategy()

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    @staticmethod
    def _elapsed_ms(budget: BudgetManager) -> int:
        return int(budget.elapsed() * 1000)

    async def _try_cache(self, cache: CacheAdapter[Any], key: str, budget: BudgetManager) -> Optional[CachedValue[Any]]:
        """Cache 조회 시도 (오류는 미스로 취급)"""
        try:
            cached = await cache.get(key)
        except Exception as e:
            logger.error(f"[Orchestrator] cache lookup failed key={key}: {type(e).__name__}", exc_info=True)
            return None
        budget.checkpoint("cache_hit" if cached is not None else "cache_miss")
        return cached

    async def _store(self, cache: CacheAdapter[Any], key: str, items: list[Any]) -> None:
        try:
            await cache.set(key, items)
        except Exception as e:
            logger.error(f"[Orchestrator] cache write failed key={key}: {type(e).__name__}", exc_info=True)

    @staticmethod
    def _session_headers(ctx: ResolutionContext) -> Optional[dict[str, str]]:
        if ctx.session is None or not ctx.session.credentials:
            return None
        return {"Cookie": ctx.session.credentials.header_value()}

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------

    def _listing_url(self, ctx: ResolutionContext) -> str:
        if ctx.target_url:
            return normalize_href(ctx.target_url)
        node = self.taxonomy_store.find_node(ctx.effective_id)
        if node is not None and node.url:
            return normalize_href(node.url)
        return build_category_url(ctx.numeric_id or "")

    def _path_ids(self, category_id: Optional[str]) -> list[str]:
        if not category_id:
            return []
        ids = [node.id for node in self.taxonomy_store.find_path(category_id) if node.id.isdigit()]
        return ids or ([category_id] if category_id.isdigit() else [])

    async def _children_from_snapshot(self, ctx: ResolutionContext, trace: dict[str, str]) -> list[CategoryNode]:
        node = self.taxonomy_store.find_node(ctx.effective_id, ctx.target_url)
        if node is None and ctx.target_id and not ctx.numeric_id:
            static_children = find_static_children(ctx.target_id)
            if static_children:
                trace["snapshot"] = "static"
                return static_children
        if node is None and ctx.has_session:
            logger.info("[Children] target not in snapshot, refreshing taxonomy once")
            snapshot = await self.taxonomy_store.get_taxonomy(force_refresh=True, session=ctx.session)
            node = find_node(snapshot.categories, ctx.effective_id, ctx.target_url)
        return list(node.children) if node is not None else []

    async def _children_from_listing(self, ctx: ResolutionContext) -> list[CategoryNode]:
        url = self._listing_url(ctx)
        if not url:
            return []
        return await self.fetcher.fetch_children(
            url,
            target_id=ctx.numeric_id or "",
            proxy=ctx.session.proxy if ctx.session else None,
            headers=self._session_headers(ctx),
        )

    async def _children_from_browser(
        self,
        ctx: ResolutionContext,
        budget: BudgetManager,
        outcome: EscalationOutcome[CategoryNode],
    ) -> list[CategoryNode]:
        result = await self.extractor.extract_children(
            ctx,
            listing_url=self._listing_url(ctx),
            path_ids=ctx.category_path or self._path_ids(ctx.numeric_id),
            budget=budget,
            outcome=outcome,
        )
        return result.items

    async def resolve_children(self, ctx: ResolutionContext) -> ResolutionResult[CategoryNode]:
        """직계 하위 카테고리 해석

        Args:
            ctx: 해석 컨텍스트 (target_id 또는 target_url)

        Returns:
            ResolutionResult: (id, name) 기준 중복 제거된 하위 카테고리
        """
        budget = BudgetManager(self.children_budget)
        budget.start()
        key = ctx.cache_key()
        logger.info(
            f"[Children] start key={key} session={ctx.has_session} refresh={ctx.force_refresh}"
        )

        if not ctx.force_refresh:
            cached = await self._try_cache(self.children_cache, key, budget)
            if cached is not None:
                logger.info(f"[Children] cache hit key={key} items={len(cached.items)}")
                return ResolutionResult.from_cache(dedupe_nodes(cached.items), self._elapsed_ms(budget))

        trace: dict[str, str] = {}
        outcome: EscalationOutcome[CategoryNode] = EscalationOutcome()
        browser_outcome: EscalationOutcome[CategoryNode] = EscalationOutcome()
        stages = [
            Stage("snapshot", lambda c: self._children_from_snapshot(c, trace), cacheable=False, live=False),
            Stage("listing_fetch", self._children_from_listing, requires_session=True),
            Stage(
                "browser",
                lambda c: self._children_from_browser(c, budget, browser_outcome),
                requires_session=True,
            ),
        ]

        try:
            await asyncio.wait_for(
                escalate(stages, ctx, outcome, self.strategy, budget, tag="Children"),
                timeout=budget.remaining(),
            )
        except asyncio.TimeoutError:
            logger.warning(f"[Children] deadline exceeded key={key} attempts={outcome.describe()}")
            return ResolutionResult.deadline_exceeded(
                dedupe_nodes(outcome.items or browser_outcome.items),
                self._elapsed_ms(budget),
                outcome.attempts + browser_outcome.attempts,
                budget.get_report(),
            )

        items = dedupe_nodes(outcome.items)
        stage_name = outcome.stage_name
        if stage_name == "browser":
            source = f"browser:{browser_outcome.stage_name}"
        elif stage_name == "snapshot":
            source = trace.get("snapshot", "snapshot")
        else:
            source = stage_name or "none"

        if outcome.stage is not None and outcome.stage.cacheable:
            await self._store(self.children_cache, key, items)
        elif not items and outcome.live_stage_ran():
            await self._store(self.children_cache, key, [])

        logger.info(
            f"[Children] done key={key} source={source} items={len(items)} "
            f"attempts={outcome.describe()} elapsed={budget.elapsed():.2f}s"
        )
        return ResolutionResult.from_stage(
            items,
            source,
            self._elapsed_ms(budget),
            outcome.attempts + browser_outcome.attempts,
            budget.get_report(),
        )

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    @staticmethod
    def field_category_id(ctx: ResolutionContext) -> str:
        """필드 대상 카테고리 id: 명시 id → 경로 마지막 → URL

        Raises:
            InvalidTargetException: id를 정할 수 없는 경우
        """
        if ctx.target_id:
            return ctx.target_id
        if ctx.category_path:
            return ctx.category_path[-1]
        url = ctx.target_url or ""
        path_ids = [p for p in extract_path_ids(url) if p.isdigit()]
        if path_ids:
            return path_ids[-1]
        category_id = extract_category_id(url)
        if not category_id:
            raise InvalidTargetException("category id could not be derived")
        return category_id

    async def _fields_from_browser(
        self,
        ctx: ResolutionContext,
        category_id: str,
        path_ids: list[str],
        budget: BudgetManager,
        outcome: EscalationOutcome[FieldDescriptor],
    ) -> list[FieldDescriptor]:
        result = await self.extractor.extract_fields(ctx, category_id, path_ids, budget=budget, outcome=outcome)
        return result.items

    async def resolve_fields(
        self,
        ctx: ResolutionContext,
        allow_cached_empty: bool = False,
    ) -> ResolutionResult[FieldDescriptor]:
        """카테고리 등록 폼 추가 필드 해석

        Args:
            ctx: 해석 컨텍스트 (category_path 가 있으면 선택 경로로 사용)
            allow_cached_empty: 캐시된 빈 결과도 반환할지

        Returns:
            ResolutionResult: 필드 목록 (세션이 없으면 NO_SESSION)

        Raises:
            InvalidTargetException: 카테고리 id를 정할 수 없는 경우
        """
        budget = BudgetManager(self.fields_budget)
        budget.start()
        category_id = self.field_category_id(ctx)
        key = f"id:{category_id}"
        logger.info(f"[Fields] start key={key} session={ctx.has_session} refresh={ctx.force_refresh}")

        if not ctx.force_refresh:
            cached = await self._try_cache(self.fields_cache, key, budget)
            if cached is not None and (cached.items or allow_cached_empty):
                logger.info(f"[Fields] cache hit key={key} items={len(cached.items)}")
                return ResolutionResult.from_cache(cached.items, self._elapsed_ms(budget))
            if cached is not None:
                logger.debug(f"[Fields] cached empty entry bypassed key={key}")

        if not ctx.has_session:
            logger.info(f"[Fields] no session for key={key}")
            return ResolutionResult.no_session(self._elapsed_ms(budget))

        path_ids = list(ctx.category_path) or self._path_ids(category_id) or [category_id]
        if path_ids[-1] != category_id:
            path_ids.append(category_id)

        outcome: EscalationOutcome[FieldDescriptor] = EscalationOutcome()
        browser_outcome: EscalationOutcome[FieldDescriptor] = EscalationOutcome()
        stages = [
            Stage(
                "browser",
                lambda c: self._fields_from_browser(c, category_id, path_ids, budget, browser_outcome),
                requires_session=True,
            ),
        ]

        try:
            await asyncio.wait_for(
                escalate(stages, ctx, outcome, self.strategy, budget, tag="Fields"),
                timeout=budget.remaining(),
            )
        except asyncio.TimeoutError:
            logger.warning(f"[Fields] deadline exceeded key={key} attempts={browser_outcome.describe()}")
            return ResolutionResult.deadline_exceeded(
                outcome.items or browser_outcome.items,
                self._elapsed_ms(budget),
                outcome.attempts + browser_outcome.attempts,
                budget.get_report(),
            )

        items = outcome.items
        attempt = outcome.attempt("browser")
        if attempt is not None and attempt.outcome in ("hit", "empty"):
            await self._store(self.fields_cache, key, items)

        source = f"browser:{browser_outcome.stage_name}" if items else "none"
        logger.info(
            f"[Fields] done key={key} source={source} items={len(items)} "
            f"attempts={browser_outcome.describe()} elapsed={budget.elapsed():.2f}s"
        )
        return ResolutionResult.from_stage(
            items,
            source,
            self._elapsed_ms(budget),
            outcome.attempts + browser_outcome.attempts,
            budget.get_report(),
        )
