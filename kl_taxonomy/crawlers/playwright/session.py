"""Browser Session - 단일 Chromium 세션 위의 순차 조작 래퍼

세션 안의 조작은 항상 순차적으로 실행합니다 (동시 호출 금지).
Playwright 오류는 여기서 구조화된 예외로 변환합니다.
"""

from __future__ import annotations

import asyncio
import os
import re
import time
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
)

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger
from kl_taxonomy.core.exceptions import BrowserException, NetworkTimeoutException
from kl_taxonomy.crawlers.playwright import scripts
from kl_taxonomy.crawlers.playwright.pages import accept_cookie_modal, accept_gdpr_consent


class BrowserSession:
    """Playwright 세션

    Attributes:
        browser: 세션 전용 Chromium
        context: 브라우저 컨텍스트 (쿠키/디바이스 프로필 적용)
        page: 작업 페이지
    """

    def __init__(self, browser: Optional[Browser], context: Optional[BrowserContext], page: Page):
        self.browser = browser
        self.context = context
        self.page = page
        self._released = False

    @property
    def current_url(self) -> str:
        return self.page.url or ""

    async def navigate(self, url: str, wait_until: str = "domcontentloaded", timeout_ms: Optional[int] = None) -> str:
        """페이지 이동 후 최종 URL 반환

        Raises:
            NetworkTimeoutException: 이동 타임아웃
            BrowserException: 그 밖의 Playwright 오류
        """
        timeout = timeout_ms or settings.crawler_navigation_timeout_ms
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightTimeoutError:
            raise NetworkTimeoutException("navigate", timeout, {"url": url})
        except PlaywrightError as e:
            raise BrowserException(f"navigation failed: {e}", {"url": url})
        return self.current_url

    async def wait_for_navigation(self, url_part: str, timeout_ms: int) -> bool:
        pattern = re.compile(re.escape(url_part))
        try:
            await self.page.wait_for_url(pattern, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return url_part in self.current_url
        except PlaywrightError as e:
            logger.debug(f"[Browser] wait_for_url failed: {type(e).__name__}")
            return url_part in self.current_url

    async def content(self) -> str:
        try:
            return await self.page.content()
        except PlaywrightError as e:
            raise BrowserException(f"content() failed: {e}")

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            if arg is None:
                return await self.page.evaluate(script)
            return await self.page.evaluate(script, arg)
        except PlaywrightTimeoutError:
            raise NetworkTimeoutException("evaluate", settings.crawler_timeout)
        except PlaywrightError as e:
            raise BrowserException(f"evaluate failed: {e}")

    async def evaluate_state(self) -> dict[str, Any]:
        """window 상태 루트(`__NEXT_DATA__` 등) 복사본"""
        state = await self.evaluate(scripts.COLLECT_STATE)
        return state if isinstance(state, dict) else {}

    async def query_dom(self, selector: str) -> list[dict[str, Any]]:
        """selector 에 맞는 요소의 텍스트/주요 속성"""
        try:
            items = await self.page.eval_on_selector_all(
                selector,
                """(els) => els.map((el) => ({
                    text: String(el.innerText || el.textContent || "").replace(/\\s+/g, " ").trim(),
                    href: el.getAttribute("href") || "",
                    id: el.id || "",
                    dataVal: el.getAttribute("data-val") || el.getAttribute("data-id") || el.getAttribute("data-value") || "",
                }))""",
            )
        except PlaywrightError as e:
            raise BrowserException(f"query_dom failed: {e}", {"selector": selector})
        return items if isinstance(items, list) else []

    async def simulate_click(self, target: str, by_text: bool = False, timeout_ms: int = 3000) -> bool:
        """selector(또는 텍스트)로 첫 번째 보이는 요소 클릭, 성공 여부 반환"""
        try:
            locator = self.page.get_by_text(target, exact=False).first if by_text else self.page.locator(target).first
            if not await locator.count():
                return False
            if not await locator.is_visible():
                return False
            await locator.click(timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False
        except PlaywrightError as e:
            logger.debug(f"[Browser] click failed target={target}: {type(e).__name__}")
            return False

    async def collect_click_candidates(self) -> list[dict[str, Any]]:
        items = await self.evaluate(scripts.COLLECT_CLICK_CANDIDATES)
        return items if isinstance(items, list) else []

    async def collect_form_controls(self) -> list[dict[str, Any]]:
        """페이지와 모든 frame의 폼 컨트롤 (frame URL 기준 중복 제외)"""
        controls: list[dict[str, Any]] = []
        seen_frames: set[str] = set()
        for frame in self.page.frames:
            marker = f"{frame.name}|{frame.url}"
            if marker in seen_frames:
                continue
            seen_frames.add(marker)
            try:
                items = await frame.evaluate(scripts.COLLECT_FORM_CONTROLS)
            except PlaywrightError as e:
                logger.debug(f"[Browser] frame controls skipped: {type(e).__name__}")
                continue
            if isinstance(items, list):
                controls.extend(item for item in items if isinstance(item, dict))
        return controls

    async def wait_for(
        self,
        probe: Callable[[], Awaitable[Any]],
        timeout_s: float,
        interval_s: float = 0.7,
    ) -> Any:
        """probe()가 truthy 값을 줄 때까지 폴링 (타임아웃 시 마지막 값)"""
        deadline = time.monotonic() + max(0.0, timeout_s)
        value = await probe()
        while not value and time.monotonic() < deadline:
            await asyncio.sleep(interval_s)
            value = await probe()
        return value

    async def accept_consent(self) -> None:
        await accept_cookie_modal(self.page)
        await accept_gdpr_consent(self.page)

    async def dump_debug(self, label: str) -> None:
        """디버그 덤프 (HTML + 스크린샷), 설정이 켜진 경우만"""
        if not settings.crawler_debug_dumps:
            return
        os.makedirs(settings.crawler_debug_dir, exist_ok=True)
        stem = os.path.join(settings.crawler_debug_dir, f"{int(time.time() * 1000)}-{re.sub(r'[^a-z0-9_-]+', '_', label.lower())}")
        try:
            with open(f"{stem}.html", "w", encoding="utf-8") as f:
                f.write(await self.page.content())
            await self.page.screenshot(path=f"{stem}.png", full_page=True)
            logger.debug(f"[Browser] debug dump written: {stem}")
        except (OSError, PlaywrightError) as e:
            logger.debug(f"[Browser] debug dump failed: {type(e).__name__}")

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        if self.context is not None:
            try:
                await self.context.close()
            except PlaywrightError as e:
                logger.debug(f"[Browser] context close failed: {type(e).__name__}")
        if self.browser is not None:
            try:
                await self.browser.close()
            except PlaywrightError as e:
                logger.debug(f"[Browser] browser close failed: {type(e).__name__}")
