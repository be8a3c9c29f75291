"""공유 HTTP 클라이언트 (curl_cffi)

- 요청마다 AsyncSession을 만들면 TLS/커넥션 오버헤드가 커져서 프로세스 단위로 세션을 재사용합니다.
- 프록시는 요청 단위로 지정합니다 (계정마다 egress가 다름).
- 앱 종료 시 close()로 정리합니다.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Dict

from curl_cffi.requests import AsyncSession

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger


class SharedHttpClient:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._session: Optional[AsyncSession] = None

    async def _ensure_session(self) -> AsyncSession:
        async with self._lock:
            if self._session is not None:
                return self._session
            self._session = AsyncSession(
                impersonate=settings.crawler_http_impersonate,
                headers=self.default_headers(),
                allow_redirects=True,
                max_clients=int(settings.crawler_http_max_clients),
                trust_env=False,
            )
            return self._session

    def default_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": settings.crawler_user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": settings.crawler_accept_language,
            "Referer": f"{settings.site_base_url.rstrip('/')}/",
        }

    async def get_text(
        self,
        url: str,
        *,
        timeout_s: float,
        headers: Optional[Dict[str, str]] = None,
        proxy_url: Optional[str] = None,
        follow_redirects: bool = True,
    ) -> Optional[tuple[int, str]]:
        """GET 요청 → (status, text), 실패 시 None"""
        sess = await self._ensure_session()
        kwargs = {}
        if proxy_url:
            kwargs["proxies"] = {"http": proxy_url, "https": proxy_url}
        try:
            resp = await sess.get(
                url,
                headers=headers,
                timeout=timeout_s,
                allow_redirects=follow_redirects,
                **kwargs,
            )
            status = getattr(resp, "status_code", 0) or 0
            text = getattr(resp, "text", "") or ""
            return status, text
        except Exception as e:
            logger.info(f"[HTTP_CLIENT] GET failed: {type(e).__name__}: {repr(e)[:200]}")
            return None

    async def close(self) -> None:
        async with self._lock:
            if self._session is None:
                return
            try:
                await self._session.close()
            except Exception as e:
                logger.debug(f"[HTTP_CLIENT] close failed: {type(e).__name__}")
            self._session = None


_shared_http_client = SharedHttpClient()


def get_shared_http_client() -> SharedHttpClient:
    return _shared_http_client


async def shutdown_shared_http_client() -> None:
    await _shared_http_client.close()
