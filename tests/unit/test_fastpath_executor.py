"""LightweightFetcher 유닛 테스트 (HTTP 상태 코드 → 예외 매핑)"""
import pytest

from kl_taxonomy.core.exceptions import BlockedException, ParsingException, TransientNetworkException
from kl_taxonomy.crawlers import LightweightFetcher
from kl_taxonomy.engine.context import ProxyConfig

from tests.fixtures.html_samples import BLOCKED_PAGE, CATEGORIES_PAGE, LISTING_PAGE


class FakeHttpClient:
    """get_text 응답을 고정하는 SharedHttpClient 대역"""

    def __init__(self, response):
        self.response = response
        self.calls = []

    async def get_text(self, url, *, timeout_s, headers=None, proxy_url=None, follow_redirects=True):
        self.calls.append({"url": url, "timeout_s": timeout_s, "headers": headers, "proxy_url": proxy_url})
        return self.response


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response,error",
    [
        (None, TransientNetworkException),
        ((503, ""), TransientNetworkException),
        ((429, "slow down"), TransientNetworkException),
        ((403, "forbidden"), BlockedException),
        ((404, "not found"), ParsingException),
        ((200, BLOCKED_PAGE), BlockedException),
    ],
)
async def test_fetch_error_mapping(response, error):
    fetcher = LightweightFetcher(FakeHttpClient(response))
    with pytest.raises(error):
        await fetcher.fetch("https://www.kleinanzeigen.de/s-elektronik/c161")


@pytest.mark.asyncio
async def test_fetch_passes_proxy_and_headers():
    client = FakeHttpClient((200, LISTING_PAGE))
    fetcher = LightweightFetcher(client)

    await fetcher.fetch(
        "https://www.kleinanzeigen.de/s-auto-rad-boot/c210",
        proxy=ProxyConfig(host="10.0.0.1", port=3128),
        headers={"Cookie": "sid=abc"},
        timeout_s=4.0,
    )

    call = client.calls[0]
    assert call["proxy_url"] == "http://10.0.0.1:3128"
    assert call["headers"] == {"Cookie": "sid=abc"}
    assert call["timeout_s"] == 4.0


@pytest.mark.asyncio
async def test_fetch_taxonomy():
    client = FakeHttpClient((200, CATEGORIES_PAGE))
    tree = await LightweightFetcher(client).fetch_taxonomy()

    assert [n.id for n in tree] == ["210", "161"]
    assert [c.id for c in tree[0].children] == ["216", "223"]
    assert client.calls[0]["url"].endswith("/s-kategorien.html")
    assert client.calls[0]["proxy_url"] is None


@pytest.mark.asyncio
async def test_fetch_taxonomy_without_rows():
    fetcher = LightweightFetcher(FakeHttpClient((200, "<html><body><p>Leer</p></body></html>")))
    with pytest.raises(ParsingException):
        await fetcher.fetch_taxonomy()


@pytest.mark.asyncio
async def test_fetch_children():
    fetcher = LightweightFetcher(FakeHttpClient((200, LISTING_PAGE)))
    children = await fetcher.fetch_children("https://www.kleinanzeigen.de/s-auto-rad-boot/c210", target_id="210")

    assert [c.id for c in children] == ["216", "223"]


@pytest.mark.asyncio
async def test_fetch_children_empty_listing():
    fetcher = LightweightFetcher(FakeHttpClient((200, "<html><body><main>Keine Ergebnisse</main></body></html>")))
    assert await fetcher.fetch_children("https://www.kleinanzeigen.de/s-boote/c211", target_id="211") == []
