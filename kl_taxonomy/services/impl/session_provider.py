"""세션/프록시 제공자 - 외부 협력자 인터페이스와 YAML 기반 기본 구현

쿠키 관리/프록시 획득은 이 서비스 범위 밖입니다. 여기서는 인터페이스와
파일 기반 디렉터리 구현만 제공합니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger, sanitize_for_log
from kl_taxonomy.engine.context import (
    DeviceProfile,
    ProxyConfig,
    SessionContext,
    SessionCredentials,
)
from kl_taxonomy.utils.resource_loader import load_device_profiles, load_yaml_file


@dataclass(frozen=True)
class SessionBundle:
    credentials: SessionCredentials
    device_profile: Optional[DeviceProfile] = None


class SessionProvider(Protocol):
    def get_session(self, account_ref: str) -> Optional[SessionBundle]:
        ...


class ProxyProvider(Protocol):
    def get_proxy(self, account_ref: str) -> Optional[ProxyConfig]:
        ...


def parse_cookies(raw: Any, domain: str = ".kleinanzeigen.de") -> SessionCredentials:
    """쿠키 문자열("a=b; c=d") 또는 dict 리스트 → SessionCredentials"""
    cookies: list[dict[str, Any]] = []
    if isinstance(raw, str):
        for part in raw.split(";"):
            if "=" not in part:
                continue
            name, value = part.split("=", 1)
            name = name.strip()
            if name:
                cookies.append({"name": name, "value": value.strip(), "domain": domain, "path": "/"})
    elif isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            cookie = {
                "name": str(item["name"]),
                "value": str(item.get("value", "")),
                "domain": str(item.get("domain") or domain),
                "path": str(item.get("path") or "/"),
            }
            cookies.append(cookie)
    return SessionCredentials(cookies=tuple(cookies))


def resolve_device_profile(profile_id: Optional[str]) -> DeviceProfile:
    """프로필 id → DeviceProfile (없으면 기본 프로필, 그것도 없으면 설정 UA)"""
    profiles = load_device_profiles()
    wanted = profile_id or settings.crawler_default_device_profile
    raw = profiles.get(wanted) or profiles.get(settings.crawler_default_device_profile)
    if not raw:
        return DeviceProfile(id="default", user_agent=settings.crawler_user_agent)
    return DeviceProfile.from_dict(wanted if wanted in profiles else settings.crawler_default_device_profile, raw)


def parse_proxy(raw: Any) -> Optional[ProxyConfig]:
    if not isinstance(raw, dict) or not raw.get("host") or not raw.get("port"):
        return None
    try:
        port = int(raw["port"])
    except (TypeError, ValueError):
        logger.warning(f"[Session] Invalid proxy port: {raw.get('port')}")
        return None
    return ProxyConfig(
        host=str(raw["host"]),
        port=port,
        type=str(raw.get("type") or "http").lower(),
        username=raw.get("username"),
        password=raw.get("password"),
    )


class YamlSessionDirectory:
    """YAML 파일 기반 세션/프록시 디렉터리

    파일 형식:
        accounts:
          <ref>:
            cookies: "a=b; c=d"
            device_profile: de-win-chrome
            proxy: {type, host, port, username, password}
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.session_directory_path
        self._accounts: Optional[dict[str, Any]] = None

    def _load(self) -> dict[str, Any]:
        if self._accounts is None:
            data = load_yaml_file(self.path)
            accounts = data.get("accounts", {})
            self._accounts = accounts if isinstance(accounts, dict) else {}
        return self._accounts

    def get_session(self, account_ref: str) -> Optional[SessionBundle]:
        account = self._load().get(account_ref)
        if not isinstance(account, dict):
            return None
        return SessionBundle(
            credentials=parse_cookies(account.get("cookies")),
            device_profile=resolve_device_profile(account.get("device_profile")),
        )

    def get_proxy(self, account_ref: str) -> Optional[ProxyConfig]:
        account = self._load().get(account_ref)
        if not isinstance(account, dict):
            return None
        return parse_proxy(account.get("proxy"))


def build_session_context(
    account_ref: Optional[str],
    session_provider: SessionProvider,
    proxy_provider: ProxyProvider,
) -> Optional[SessionContext]:
    """계정 참조 → SessionContext

    프록시가 없으면 None (세션 컨텍스트 없음으로 취급).
    """
    if not account_ref:
        return None
    proxy = proxy_provider.get_proxy(account_ref)
    if proxy is None:
        logger.info(f"[Session] No proxy for account '{sanitize_for_log(account_ref, 40)}'")
        return None
    bundle = session_provider.get_session(account_ref)
    return SessionContext(
        credentials=bundle.credentials if bundle else SessionCredentials(),
        proxy=proxy,
        device_profile=(bundle.device_profile if bundle and bundle.device_profile else resolve_device_profile(None)),
        account_ref=account_ref,
    )
