"""Playwright page 설정/보조 함수.

Page 생성 후 라우팅(리소스 차단), 헤더 설정, 쿠키/GDPR 동의 처리를 분리합니다.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import parse_qs, urlparse

from playwright.async_api import Page

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger
from kl_taxonomy.engine.context import DeviceProfile


CONSENT_TEXTS = (
    "Alle akzeptieren",
    "Akzeptieren",
    "Zustimmen",
    "Einverstanden",
    "Alle annehmen",
    "Alle erlauben",
    "Alles akzeptieren",
    "Auswahl speichern",
    "Accept all",
    "Accept",
    "Agree",
    "I agree",
    "OK",
    "Okay",
)

CONSENT_SELECTORS = (
    "#gdpr-banner-accept",
    "button[data-testid*='accept']",
    "button[id*='accept']",
    "button[class*='accept']",
    "button[id*='agree']",
    "button[class*='consent']",
)

_BLOCKED_TYPES = {"image", "media", "font", "stylesheet"}
_BLOCKED_TYPES_REDUCED = _BLOCKED_TYPES | {"websocket", "eventsource", "manifest", "other"}


async def configure_page(page: Page, profile: Optional[DeviceProfile] = None, reduced: bool = False) -> Page:
    page.set_default_timeout(settings.crawler_timeout)
    page.set_default_navigation_timeout(settings.crawler_navigation_timeout_ms)
    blocked = _BLOCKED_TYPES_REDUCED if reduced else _BLOCKED_TYPES

    async def _route_handler(route, request):
        try:
            if request.resource_type in blocked:
                try:
                    await route.abort()
                except Exception:
                    return
                return
        except Exception:
            return

        try:
            await route.continue_()
        except Exception:
            return

    try:
        await page.route("**/*", _route_handler)
    except Exception as e:
        logger.debug(f"[Browser] resource blocking unavailable: {type(e).__name__}")

    await page.set_extra_http_headers(
        {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": (profile.accept_language if profile else settings.crawler_accept_language),
        }
    )

    return page


async def _click_first_visible(page: Page, selectors: tuple[str, ...]) -> bool:
    for selector in selectors:
        try:
            locator = page.locator(selector).first
            if await locator.count() and await locator.is_visible():
                await locator.click(timeout=2000)
                return True
        except Exception:
            continue
    return False


async def _click_consent_text(page: Page) -> bool:
    for text in CONSENT_TEXTS:
        try:
            locator = page.get_by_role("button", name=text, exact=True).first
            if await locator.count() and await locator.is_visible():
                await locator.click(timeout=2000)
                return True
        except Exception:
            continue
    return False


async def accept_cookie_modal(page: Page) -> bool:
    """쿠키 배너 수락 (main frame → 하위 frame 순)"""
    if await _click_first_visible(page, CONSENT_SELECTORS) or await _click_consent_text(page):
        logger.debug("[Browser] Cookie modal accepted")
        return True
    for frame in page.frames:
        if frame == page.main_frame:
            continue
        for text in CONSENT_TEXTS:
            try:
                locator = frame.get_by_role("button", name=text, exact=True).first
                if await locator.count() and await locator.is_visible():
                    await locator.click(timeout=2000)
                    logger.debug("[Browser] Cookie modal accepted (frame)")
                    return True
            except Exception:
                continue
    return False


async def accept_gdpr_consent(page: Page) -> bool:
    """`/gdpr` 페이지면 동의 후 redirectTo 로 이동"""
    url = page.url or ""
    if "/gdpr" not in url:
        return False
    accepted = await accept_cookie_modal(page)
    redirect = parse_qs(urlparse(url).query).get("redirectTo", [""])[0]
    if redirect:
        target = redirect if redirect.startswith("http") else settings.site_url(redirect if redirect.startswith("/") else f"/{redirect}")
        try:
            await page.goto(target, wait_until="domcontentloaded")
        except Exception as e:
            logger.info(f"[Browser] GDPR redirect failed: {type(e).__name__}")
    logger.debug(f"[Browser] GDPR consent handled (accepted={accepted})")
    return accepted
