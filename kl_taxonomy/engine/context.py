"""Resolution Context - 요청 단위 해석 컨텍스트

요청마다 만들어지고 호출이 끝나면 버려집니다 (영속화하지 않음).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from kl_taxonomy.core.exceptions import InvalidTargetException
from kl_taxonomy.utils.url_utils import extract_category_id, normalize_category_url


@dataclass(frozen=True)
class ProxyConfig:
    """egress 프록시"""
    host: str
    port: int
    type: str = "http"
    username: Optional[str] = None
    password: Optional[str] = None

    def _auth(self) -> str:
        if not self.username:
            return ""
        return f"{self.username}:{self.password or ''}@"

    def http_url(self) -> str:
        """curl_cffi 용 URL (socks5는 원격 DNS를 위해 socks5h)"""
        scheme = (self.type or "http").lower()
        if scheme == "socks5":
            scheme = "socks5h"
        return f"{scheme}://{self._auth()}{self.host}:{self.port}"

    def playwright_proxy(self) -> dict[str, str]:
        """Chromium launch 옵션 (인증은 별도 필드)"""
        scheme = (self.type or "http").lower()
        if scheme == "socks5h":
            scheme = "socks5"
        proxy = {"server": f"{scheme}://{self.host}:{self.port}"}
        if self.username:
            proxy["username"] = self.username
            proxy["password"] = self.password or ""
        return proxy

    def describe(self) -> str:
        return f"{self.type}://{self.host}:{self.port}"


@dataclass(frozen=True)
class DeviceProfile:
    """브라우저 디바이스 프로필"""
    id: str
    user_agent: str
    viewport_width: int = 1366
    viewport_height: int = 768
    locale: str = "de-DE"
    accept_language: str = "de-DE,de;q=0.9,en;q=0.8"
    timezone: str = "Europe/Berlin"

    @classmethod
    def from_dict(cls, profile_id: str, raw: dict[str, Any]) -> "DeviceProfile":
        viewport = raw.get("viewport") or {}
        return cls(
            id=profile_id,
            user_agent=str(raw.get("user_agent") or ""),
            viewport_width=int(viewport.get("width", 1366)),
            viewport_height=int(viewport.get("height", 768)),
            locale=str(raw.get("locale") or "de-DE"),
            accept_language=str(raw.get("accept_language") or "de-DE,de;q=0.9,en;q=0.8"),
            timezone=str(raw.get("timezone") or "Europe/Berlin"),
        )


@dataclass(frozen=True)
class SessionCredentials:
    """불투명 쿠키 집합 (Playwright add_cookies 형식)"""
    cookies: tuple[dict[str, Any], ...] = ()

    def header_value(self) -> str:
        return "; ".join(f"{c['name']}={c['value']}" for c in self.cookies if c.get("name"))

    def __bool__(self) -> bool:
        return bool(self.cookies)


@dataclass(frozen=True)
class SessionContext:
    """자격 증명 + 프록시 + 디바이스 프로필"""
    credentials: SessionCredentials = field(default_factory=SessionCredentials)
    proxy: Optional[ProxyConfig] = None
    device_profile: Optional[DeviceProfile] = None
    account_ref: Optional[str] = None

    @property
    def is_live(self) -> bool:
        """라이브 단계 실행 가능 여부 (프록시 필수)"""
        return self.proxy is not None


def has_session_context(session: Optional[SessionContext]) -> bool:
    return session is not None and session.is_live


@dataclass
class ResolutionContext:
    """해석 요청 컨텍스트

    Raises:
        InvalidTargetException: target_id와 target_url이 모두 없을 때
    """
    target_id: Optional[str] = None
    target_url: Optional[str] = None
    session: Optional[SessionContext] = None
    force_refresh: bool = False
    category_path: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.target_id = (str(self.target_id).strip() if self.target_id is not None else "") or None
        self.target_url = (self.target_url or "").strip() or None
        if not self.target_id and not self.target_url:
            raise InvalidTargetException()

    @property
    def has_session(self) -> bool:
        return has_session_context(self.session)

    @property
    def numeric_id(self) -> Optional[str]:
        """명시 id가 숫자면 그대로, 아니면 URL에서 추출"""
        if self.target_id and self.target_id.isdigit():
            return self.target_id
        return extract_category_id(self.target_url or "")

    @property
    def effective_id(self) -> Optional[str]:
        return self.target_id or extract_category_id(self.target_url or "")

    def cache_key(self) -> str:
        """`id:<id>` 또는 `url:<정규화 URL>`"""
        if self.target_id:
            return f"id:{self.target_id}"
        return f"url:{normalize_category_url(self.target_url or '')}"
