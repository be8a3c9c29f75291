"""Playwright 공용 드라이버 / 세션 브라우저 관리.

드라이버(Playwright 프로세스)는 프로세스 단위로 공유하고,
Chromium 인스턴스는 세션(계정 프록시)마다 따로 띄웁니다.
"""

from __future__ import annotations

import asyncio
import platform
from typing import Optional

from playwright.async_api import async_playwright, Browser, Playwright

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger
from kl_taxonomy.core.exceptions import BrowserException
from kl_taxonomy.engine.context import SessionContext
from kl_taxonomy.crawlers.playwright.pages import configure_page
from kl_taxonomy.crawlers.playwright.session import BrowserSession
from kl_taxonomy.services.impl.session_provider import resolve_device_profile


_shared_lock = asyncio.Lock()
_shared_playwright: Optional[Playwright] = None


def build_launch_args(reduced: bool = False) -> list[str]:
    args: list[str] = [
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--disable-background-networking",
        "--disable-background-timer-throttling",
        "--disable-renderer-backgrounding",
        "--disable-default-apps",
        "--disable-extensions",
        "--no-first-run",
        "--no-default-browser-check",
        "--disable-blink-features=AutomationControlled",
    ]

    if reduced:
        args.extend([
            "--disable-features=IsolateOrigins,site-per-process",
            "--renderer-process-limit=1",
            "--disable-dev-shm-usage",
            "--js-flags=--max-old-space-size=256",
        ])

    if platform.system().lower() == "linux":
        args.extend(["--no-sandbox", "--disable-setuid-sandbox"])

    deduped: list[str] = []
    seen: set[str] = set()
    for a in args:
        if a not in seen:
            seen.add(a)
            deduped.append(a)
    return deduped


async def ensure_shared_playwright() -> Playwright:
    global _shared_playwright

    async with _shared_lock:
        if _shared_playwright is not None:
            return _shared_playwright
        try:
            _shared_playwright = await asyncio.wait_for(async_playwright().start(), timeout=20.0)
        except asyncio.TimeoutError as e:
            raise BrowserException("[Playwright] driver start timeout", {"error": type(e).__name__})
        except Exception as e:
            raise BrowserException(f"[Playwright] driver start failed: {e}")
        logger.info("[Playwright] Driver started (shared)")
        return _shared_playwright


async def shutdown_shared_playwright() -> None:
    global _shared_playwright

    async with _shared_lock:
        if _shared_playwright is not None:
            try:
                await _shared_playwright.stop()
            except Exception as e:
                logger.debug(f"[Playwright] stop failed: {type(e).__name__}")
            _shared_playwright = None


async def _close_browser(browser: Optional[Browser]) -> None:
    """실패/취소된 실행의 Chromium 정리 (컨텍스트/페이지 포함)"""
    if browser is None:
        return
    try:
        await browser.close()
    except Exception as e:
        logger.debug(f"[Playwright] close after failed launch: {type(e).__name__}")


class PlaywrightSessionProvisioner:
    """세션 컨텍스트(프록시/쿠키/디바이스 프로필)로 브라우저 세션 생성

    Usage:
        provisioner = PlaywrightSessionProvisioner()
        session = await provisioner.acquire(session_ctx)
        try:
            await session.navigate(url)
        finally:
            await session.release()
    """

    def __init__(self, max_retries: Optional[int] = None):
        self.max_retries = max(1, max_retries if max_retries is not None else settings.crawler_max_retries)

    async def _launch(self, pw: Playwright, session_ctx: SessionContext, reduced: bool) -> Browser:
        launch_kwargs = {
            "headless": settings.crawler_headless,
            "args": build_launch_args(reduced=reduced),
            "timeout": settings.crawler_timeout,
        }
        if session_ctx.proxy is not None:
            launch_kwargs["proxy"] = session_ctx.proxy.playwright_proxy()
        return await asyncio.wait_for(
            pw.chromium.launch(**launch_kwargs),
            timeout=settings.crawler_launch_timeout_s,
        )

    async def acquire(self, session_ctx: SessionContext, reduced: bool = False) -> BrowserSession:
        """브라우저 세션 생성 (실패 시 대기 후 재시도)

        Args:
            session_ctx: 세션 컨텍스트
            reduced: 축소 기능 모드 (렌더링 실패 후 재시도용)

        Returns:
            BrowserSession

        Raises:
            BrowserException: 재시도 후에도 실행 실패
        """
        pw = await ensure_shared_playwright()
        profile = session_ctx.device_profile or resolve_device_profile(None)

        last_err: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            browser: Optional[Browser] = None
            try:
                logger.info(f"[Playwright] Launching browser (attempt {attempt}/{self.max_retries}, reduced={reduced})...")
                browser = await self._launch(pw, session_ctx, reduced)
                context = await browser.new_context(
                    user_agent=profile.user_agent or settings.crawler_user_agent,
                    locale=profile.locale,
                    timezone_id=profile.timezone,
                    viewport={"width": profile.viewport_width, "height": profile.viewport_height},
                )
                if session_ctx.credentials:
                    await context.add_cookies(list(session_ctx.credentials.cookies))
                page = await context.new_page()
                await configure_page(page, profile, reduced=reduced)
                logger.info("[Playwright] Browser session ready")
                return BrowserSession(browser=browser, context=context, page=page)
            except asyncio.CancelledError:
                logger.warning("[Playwright] Launch cancelled, closing browser")
                await _close_browser(browser)
                raise
            except asyncio.TimeoutError as e:
                last_err = e
                logger.error(f"[Playwright] Launch timeout (attempt {attempt}/{self.max_retries})")
            except Exception as e:
                last_err = e
                logger.error(f"[Playwright] Failed to launch browser (attempt {attempt}/{self.max_retries}): {type(e).__name__}: {e}")

            await _close_browser(browser)
            if attempt < self.max_retries:
                wait_time = min(2.0 * attempt, 10.0)
                logger.info(f"[Playwright] Waiting {wait_time:.1f}s before retry...")
                await asyncio.sleep(wait_time)

        raise BrowserException(f"[Playwright] Browser launch failed after retries: {last_err}")
