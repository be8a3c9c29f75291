"""Browser Session Extractor (SlowPath)

세션 하나를 열고 그 안에서 하위 단계를 순서대로 시도합니다.

하위 카테고리:
    state_search → listing_dom → state_graph → selection_workflow → position_clusters
필드:
    inject_category → form_resubmit → selection_workflow

렌더링 실패(BrowserException)는 축소 기능 모드로 세션을 1회 다시 만들고,
그래도 실패하면 예외를 그대로 올려 상위 단계를 중단합니다.
세션은 어떤 경우에도 finally 에서 정리합니다.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger
from kl_taxonomy.core.exceptions import BrowserException
from kl_taxonomy.crawlers.boundary import (
    extract_children_from_selection_html,
    extract_embedded_category_tree,
    extract_listing_dom_children,
    has_attribute_control,
    parse_dom_category_tree,
    parse_field_descriptors,
)
from kl_taxonomy.crawlers.playwright import BrowserSession, PlaywrightSessionProvisioner
from kl_taxonomy.crawlers.playwright import scripts
from kl_taxonomy.engine.budget import BudgetManager
from kl_taxonomy.engine.context import ResolutionContext, SessionContext
from kl_taxonomy.engine.escalation import EscalationOutcome, Stage, escalate
from kl_taxonomy.engine.exceptions import StructuralMismatchError
from kl_taxonomy.engine.strategy import ExecutionStrategy
from kl_taxonomy.schemas.taxonomy_schema import CategoryNode, FieldDescriptor
from kl_taxonomy.utils.category_tree import (
    count_nodes,
    dedupe_nodes,
    find_node,
    is_category_array,
    normalize_category_tree,
    normalize_name,
)
from kl_taxonomy.utils.clustering import ClusteringStrategy, PositionClusteringStrategy, PositionedItem
from kl_taxonomy.utils.tree_search import build_state_graph, find_category_collection
from kl_taxonomy.utils.url_utils import build_selection_url


R = TypeVar("R")

PICKER_SELECTORS = (
    "#pstad-lnk-chngeCtgry",
    "#categorySection a",
    "[data-testid='category-selection']",
)
PICKER_TEXTS = ("Wähle deine Kategorie", "Kategorie wählen", "Kategorie ändern")
CONFIRM_SELECTORS = ("#postad-step1-sbmt", "button[type='submit']")
CONFIRM_TEXTS = ("Weiter",)

_NAVIGATION_WAIT_MS = 12_000
_EXTRA_SELECT_WAIT_S = 8.0
_FIELD_POLL_TIMEOUT_S = 15.0
_PICKER_WAIT_S = 3.0


def _category_click_selectors(category_id: str) -> tuple[str, ...]:
    return (
        f"[data-val='{category_id}']",
        f"[data-id='{category_id}']",
        f"[data-value='{category_id}']",
        f"#cat_{category_id}",
        f"a[href*='/c{category_id}']",
    )


class BrowserSessionExtractor:
    """Playwright 기반 추출기

    Usage:
        extractor = BrowserSessionExtractor()
        tree = await extractor.extract_full_tree(session_ctx)
        outcome = await extractor.extract_children(ctx, listing_url, path_ids)
        outcome = await extractor.extract_fields(ctx, "176", ["161", "176"])
    """

    def __init__(
        self,
        provisioner: Optional[PlaywrightSessionProvisioner] = None,
        strategy: Optional[ExecutionStrategy] = None,
        clustering: Optional[ClusteringStrategy] = None,
    ):
        self.provisioner = provisioner or PlaywrightSessionProvisioner()
        self.strategy = strategy or ExecutionStrategy()
        self.clustering = clustering or PositionClusteringStrategy()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def _run_in_session(
        self,
        session_ctx: SessionContext,
        work: Callable[[BrowserSession], Awaitable[R]],
        label: str,
    ) -> R:
        """세션 생성 → work 실행 → 정리

        Raises:
            BrowserException: 축소 모드 재시도 후에도 렌더링 실패
        """
        reduced = False
        while True:
            browser_session: Optional[BrowserSession] = None
            try:
                browser_session = await self.provisioner.acquire(session_ctx, reduced=reduced)
                return await work(browser_session)
            except BrowserException as e:
                if reduced or not self.strategy.get_retry_count(e):
                    raise
                logger.warning(f"[SlowPath] {label}: render failure ({e.message}), retrying with reduced features")
                reduced = True
            finally:
                if browser_session is not None:
                    await browser_session.release()

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _open_site(bs: BrowserSession, url: str) -> None:
        await bs.navigate(url)
        await bs.accept_consent()

    @staticmethod
    async def _best_tree(bs: BrowserSession) -> list[CategoryNode]:
        """상태 트리와 DOM 트리 중 노드가 더 많은 쪽 (DOM은 엄격히 클 때만)"""
        state = await bs.evaluate_state()
        state_tree = normalize_category_tree(find_category_collection(state) or [])
        dom_tree = normalize_category_tree(parse_dom_category_tree(await bs.content()))
        if count_nodes(dom_tree) > count_nodes(state_tree):
            logger.debug(f"[SlowPath] using DOM tree ({count_nodes(dom_tree)} nodes)")
            return dom_tree
        return state_tree

    async def _open_picker(self, bs: BrowserSession) -> bool:
        for selector in PICKER_SELECTORS:
            if await bs.simulate_click(selector):
                return True
        for text in PICKER_TEXTS:
            if await bs.simulate_click(text, by_text=True):
                return True
        return bool(await bs.evaluate(scripts.OPEN_PICKER_VIA_VIEW))

    async def _click_category(self, bs: BrowserSession, category_id: str) -> bool:
        for selector in _category_click_selectors(category_id):
            if await bs.simulate_click(selector):
                return True
        return False

    async def _confirm_selection(self, bs: BrowserSession) -> bool:
        for selector in CONFIRM_SELECTORS:
            if await bs.simulate_click(selector):
                return True
        for text in CONFIRM_TEXTS:
            if await bs.simulate_click(text, by_text=True):
                return True
        return False

    # ------------------------------------------------------------------
    # Full tree
    # ------------------------------------------------------------------

    async def extract_full_tree(self, session_ctx: SessionContext) -> list[CategoryNode]:
        """카테고리 개요 페이지를 브라우저로 열어 전체 트리 추출"""

        async def work(bs: BrowserSession) -> list[CategoryNode]:
            await self._open_site(bs, settings.site_url(settings.site_categories_path))
            tree = await self._best_tree(bs)
            if not tree:
                await bs.dump_debug("full-tree-empty")
            logger.info(f"[SlowPath] full tree: {len(tree)} roots, {count_nodes(tree)} nodes")
            return tree

        return await self._run_in_session(session_ctx, work, "full_tree")

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------

    async def _children_from_state(self, bs: BrowserSession, ctx: ResolutionContext) -> list[CategoryNode]:
        await self._open_site(bs, settings.site_url("/"))
        await self._open_site(bs, settings.site_url(settings.site_post_ad_step2_path))
        tree = await self._best_tree(bs)
        node = find_node(tree, ctx.effective_id, ctx.target_url)
        return list(node.children) if node else []

    async def _children_from_listing_dom(
        self, bs: BrowserSession, ctx: ResolutionContext, listing_url: str
    ) -> list[CategoryNode]:
        target_id = ctx.numeric_id
        if not listing_url or not target_id:
            return []
        await self._open_site(bs, listing_url)
        html = await bs.content()
        return normalize_category_tree(extract_listing_dom_children(html, target_id))

    async def _children_from_state_graph(self, bs: BrowserSession, ctx: ResolutionContext) -> list[CategoryNode]:
        target_id = ctx.numeric_id
        if not target_id:
            return []
        graph = build_state_graph(await bs.evaluate_state())
        return normalize_category_tree(
            [{"id": n.id, "name": n.name, "url": n.url} for n in graph.children_of(target_id)]
        )

    async def _children_from_selection(
        self, bs: BrowserSession, ctx: ResolutionContext, path_ids: list[str]
    ) -> list[CategoryNode]:
        target_id = ctx.numeric_id
        if not target_id:
            return []
        selection_url = build_selection_url(path_ids or [target_id])

        if settings.site_post_ad_step2_path not in bs.current_url:
            await self._open_site(bs, settings.site_url(settings.site_post_ad_step2_path))
        reached = False
        if await bs.evaluate(scripts.SUBMIT_AD_FORM_TO_SELECTION, selection_url):
            reached = await bs.wait_for_navigation(settings.site_category_select_path, _NAVIGATION_WAIT_MS)
        if not reached:
            await self._open_site(bs, selection_url)

        html = await bs.content()
        embedded = extract_embedded_category_tree(html)
        if embedded:
            tree = normalize_category_tree([embedded])
            if not tree:
                tree = normalize_category_tree(
                    next((v for v in embedded.values() if is_category_array(v)), [])
                )
            node = find_node(tree, target_id)
            if node and node.children:
                return list(node.children)
        return normalize_category_tree(extract_children_from_selection_html(html, target_id))

    async def _children_from_position_clusters(self, bs: BrowserSession, ctx: ResolutionContext) -> list[CategoryNode]:
        target_id = ctx.numeric_id or ctx.effective_id or ""
        if await self._open_picker(bs):
            column = await bs.wait_for(
                lambda: bs.evaluate(scripts.COLLECT_PICKER_COLUMN),
                timeout_s=_PICKER_WAIT_S,
                interval_s=settings.fields_poll_interval_s,
            )
            if isinstance(column, list):
                nodes = normalize_category_tree([item for item in column if item.get("id") != target_id])
                if nodes:
                    return dedupe_nodes(nodes)

        items: list[PositionedItem] = []
        for raw in await bs.collect_click_candidates():
            name = normalize_name(raw.get("name"))
            item_id = str(raw.get("id") or "").strip()
            if not item_id or not name:
                continue
            items.append(
                PositionedItem(
                    id=item_id,
                    name=name,
                    x=float(raw.get("x") or 0.0),
                    y=float(raw.get("y") or 0.0),
                    url=str(raw.get("url") or ""),
                )
            )
        selected = self.clustering.select(items, exclude_id=target_id)
        return normalize_category_tree([{"id": i.id, "name": i.name, "url": i.url} for i in selected])

    async def extract_children(
        self,
        ctx: ResolutionContext,
        listing_url: str = "",
        path_ids: Optional[list[str]] = None,
        budget: Optional[BudgetManager] = None,
        outcome: Optional[EscalationOutcome[CategoryNode]] = None,
    ) -> EscalationOutcome[CategoryNode]:
        """세션 하나에서 하위 카테고리 하위 단계 실행

        Args:
            ctx: 해석 컨텍스트 (세션 필수)
            listing_url: 대상 목록 페이지 URL
            path_ids: 루트 → 대상 숫자 id 경로 (선택 페이지용)
            budget: 남은 예산 (소진 시 하위 단계 중단)
            outcome: 시도 기록을 공유할 객체

        Returns:
            EscalationOutcome: 성공한 하위 단계와 항목

        Raises:
            BrowserException: 세션을 만들 수 없는 경우
        """
        outcome = outcome if outcome is not None else EscalationOutcome()
        ids = list(path_ids or [])

        async def work(bs: BrowserSession) -> EscalationOutcome[CategoryNode]:
            stages = [
                Stage("state_search", lambda c: self._children_from_state(bs, c)),
                Stage("listing_dom", lambda c: self._children_from_listing_dom(bs, c, listing_url)),
                Stage("state_graph", lambda c: self._children_from_state_graph(bs, c)),
                Stage("selection_workflow", lambda c: self._children_from_selection(bs, c, ids)),
                Stage("position_clusters", lambda c: self._children_from_position_clusters(bs, c)),
            ]
            result = await escalate(stages, ctx, outcome, self.strategy, budget, tag="SlowPath")
            if not result.items:
                await bs.dump_debug(f"children-{ctx.effective_id}")
            return result

        if ctx.session is None:
            raise StructuralMismatchError("browser stage requires a session context")
        return await self._run_in_session(ctx.session, work, "children")

    # ------------------------------------------------------------------
    # Fields
    # ------------------------------------------------------------------

    async def _poll_fields(self, bs: BrowserSession, timeout_s: float = _FIELD_POLL_TIMEOUT_S) -> list[FieldDescriptor]:
        async def probe() -> list[FieldDescriptor]:
            controls = await bs.collect_form_controls()
            if not has_attribute_control(controls):
                return []
            return parse_field_descriptors(controls)

        fields = await bs.wait_for(probe, timeout_s=timeout_s, interval_s=settings.fields_poll_interval_s)
        return fields or []

    async def _fields_by_injection(self, bs: BrowserSession, category_id: str) -> list[FieldDescriptor]:
        if not await bs.evaluate(scripts.INJECT_CATEGORY_ID, category_id):
            raise StructuralMismatchError("no category field on step2 page")
        await bs.wait_for(
            lambda: bs.evaluate(scripts.HAS_EXTRA_SELECT),
            timeout_s=_EXTRA_SELECT_WAIT_S,
            interval_s=settings.fields_poll_interval_s,
        )
        return await self._poll_fields(bs)

    async def _submit_step1(self, bs: BrowserSession, path_ids: list[str]) -> bool:
        payload = {
            "parentCategoryId": path_ids[0] if len(path_ids) > 1 else "",
            "categoryId": path_ids[-1],
        }
        submitted = bool(await bs.evaluate(scripts.SUBMIT_STEP1_FORM, payload))
        if submitted:
            await bs.wait_for_navigation(settings.site_post_ad_step2_path, _NAVIGATION_WAIT_MS)
            await bs.accept_consent()
        return submitted

    async def _fields_by_resubmit(self, bs: BrowserSession, path_ids: list[str]) -> list[FieldDescriptor]:
        if not await self._submit_step1(bs, path_ids):
            raise StructuralMismatchError("step1 form not found")
        return await self._poll_fields(bs)

    async def _select_path(self, bs: BrowserSession, path_ids: list[str]) -> None:
        if not await self._open_picker(bs):
            await self._open_site(bs, build_selection_url(path_ids))
        clicked_all = True
        for category_id in path_ids:
            if not await self._click_category(bs, category_id):
                clicked_all = False
                break
        if clicked_all and await self._confirm_selection(bs):
            return
        logger.debug("[SlowPath] picker walk incomplete, submitting step1 form")
        await self._submit_step1(bs, path_ids)

    async def _fields_by_selection(self, bs: BrowserSession, path_ids: list[str]) -> list[FieldDescriptor]:
        try:
            await asyncio.wait_for(self._select_path(bs, path_ids), timeout=settings.fields_selection_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(f"[SlowPath] category selection timed out after {settings.fields_selection_timeout_s}s")
        if settings.site_post_ad_step2_path not in bs.current_url:
            await bs.wait_for_navigation(settings.site_post_ad_step2_path, _NAVIGATION_WAIT_MS)
        return await self._poll_fields(bs)

    async def extract_fields(
        self,
        ctx: ResolutionContext,
        category_id: str,
        path_ids: list[str],
        budget: Optional[BudgetManager] = None,
        outcome: Optional[EscalationOutcome[FieldDescriptor]] = None,
    ) -> EscalationOutcome[FieldDescriptor]:
        """등록 폼 2단계에서 카테고리 추가 필드 추출

        Args:
            ctx: 해석 컨텍스트 (세션 필수)
            category_id: 대상 카테고리 id
            path_ids: 루트 → 대상 id 경로 (마지막이 category_id)
            budget: 남은 예산
            outcome: 시도 기록을 공유할 객체

        Returns:
            EscalationOutcome: 성공한 하위 단계와 필드

        Raises:
            BrowserException: 세션을 만들 수 없는 경우
        """
        outcome = outcome if outcome is not None else EscalationOutcome()
        ids = list(path_ids) or [category_id]

        async def work(bs: BrowserSession) -> EscalationOutcome[FieldDescriptor]:
            await self._open_site(bs, settings.site_url(settings.site_post_ad_step2_path))
            stages = [
                Stage("inject_category", lambda c: self._fields_by_injection(bs, category_id)),
                Stage("form_resubmit", lambda c: self._fields_by_resubmit(bs, ids)),
                Stage("selection_workflow", lambda c: self._fields_by_selection(bs, ids)),
            ]
            result = await escalate(stages, ctx, outcome, self.strategy, budget, tag="SlowPath")
            if not result.items:
                await bs.dump_debug(f"fields-{category_id}")
            return result

        if ctx.session is None:
            raise StructuralMismatchError("browser stage requires a session context")
        return await self._run_in_session(ctx.session, work, "fields")
