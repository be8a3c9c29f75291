"""PlaywrightSessionProvisioner 테스트 (Chromium 없이 브라우저 대역 사용)"""
import asyncio
from dataclasses import replace

import pytest

from kl_taxonomy.core.exceptions import BrowserException
from kl_taxonomy.crawlers.playwright import browser as browser_module
from kl_taxonomy.crawlers.playwright.browser import PlaywrightSessionProvisioner
from kl_taxonomy.engine.context import DeviceProfile

from tests.fixtures.fakes import make_session


class FakeContext:
    def __init__(self, page_started: asyncio.Event, fail_page: bool = False):
        self.page_started = page_started
        self.fail_page = fail_page
        self.cookies = []

    async def add_cookies(self, cookies):
        self.cookies.extend(cookies)

    async def new_page(self):
        self.page_started.set()
        if self.fail_page:
            raise RuntimeError("Target page, context or browser has been closed")
        await asyncio.sleep(30)


class FakeBrowser:
    def __init__(self, fail_page: bool = False):
        self.page_started = asyncio.Event()
        self.context = FakeContext(self.page_started, fail_page=fail_page)
        self.closed = 0

    async def new_context(self, **kwargs):
        return self.context

    async def close(self):
        self.closed += 1


@pytest.fixture
def session_ctx():
    return replace(make_session(), device_profile=DeviceProfile(id="test", user_agent="Mozilla/5.0 Test"))


@pytest.fixture(autouse=True)
def shared_driver(monkeypatch):
    async def fake_driver():
        return object()

    monkeypatch.setattr(browser_module, "ensure_shared_playwright", fake_driver)


def _provisioner(browsers, max_retries=1):
    provisioner = PlaywrightSessionProvisioner(max_retries=max_retries)
    launched = iter(browsers)

    async def launch(pw, session_ctx, reduced):
        return next(launched)

    provisioner._launch = launch
    return provisioner


@pytest.mark.asyncio
async def test_cancel_during_new_page_closes_browser(session_ctx):
    fake = FakeBrowser()
    provisioner = _provisioner([fake])

    task = asyncio.create_task(provisioner.acquire(session_ctx))
    await asyncio.wait_for(fake.page_started.wait(), timeout=1.0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert fake.closed == 1
    assert fake.context.cookies == [{"name": "sid", "value": "abc"}]


@pytest.mark.asyncio
async def test_failed_page_closes_browser_and_raises(session_ctx):
    fake = FakeBrowser(fail_page=True)
    provisioner = _provisioner([fake])

    with pytest.raises(BrowserException):
        await provisioner.acquire(session_ctx)
    assert fake.closed == 1
