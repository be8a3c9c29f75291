"""설정 관리 - 환경 변수 로드 및 검증"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 대상 사이트
    site_base_url: str = "https://www.kleinanzeigen.de"
    site_categories_path: str = "/s-kategorien.html"
    site_post_ad_step2_path: str = "/p-anzeige-aufgeben-schritt2.html"
    site_category_select_path: str = "/p-kategorie-aendern.html"

    # 로컬 데이터 파일 (스냅샷/캐시)
    data_dir: str = "data"
    taxonomy_snapshot_path: str = "data/categories.json"
    children_cache_path: str = "data/category-children.json"
    fields_cache_path: str = "data/category-fields.json"

    # 캐시 백엔드: file | redis
    cache_backend: str = "file"
    redis_url: str = ""
    redis_key_prefix: str = "kl_taxonomy"
    cache_flush_debounce_s: float = 1.0

    # TTL (초)
    children_ttl_s: int = 7 * 24 * 3600
    children_empty_ttl_s: int = 3600
    fields_ttl_s: int = 7 * 24 * 3600
    fields_empty_ttl_s: int = 300

    # 카테고리 트리 판정
    taxonomy_freshness_s: int = 24 * 3600
    taxonomy_min_roots: int = 8

    # HTTP (curl_cffi)
    crawler_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    )
    crawler_accept_language: str = "de-DE,de;q=0.9,en;q=0.8"
    crawler_http_impersonate: str = "chrome110"
    crawler_http_max_clients: int = 10
    crawler_http_timeout_s: float = 20.0
    crawler_listing_timeout_s: float = 8.0

    # 브라우저 (Playwright)
    crawler_headless: bool = True
    crawler_timeout: int = 30000
    crawler_navigation_timeout_ms: int = 30000
    crawler_launch_timeout_s: float = 25.0
    crawler_max_retries: int = 2
    crawler_default_device_profile: str = "de-win-chrome"

    # 디버그 덤프 (HTML/스크린샷)
    crawler_debug_dumps: bool = False
    crawler_debug_dir: str = "data/debug"

    # 예산 (초)
    children_total_budget_s: float = 150.0
    children_listing_timeout_s: float = 10.0
    children_browser_timeout_s: float = 135.0
    children_browser_stage_timeout_s: float = 40.0
    fields_total_budget_s: float = 240.0
    fields_stage_timeout_s: float = 75.0
    fields_selection_timeout_s: float = 28.0
    fields_poll_interval_s: float = 0.7

    # 세션 디렉터리 (계정 → 쿠키/프록시/디바이스 프로필)
    session_directory_path: str = "data/sessions.yaml"

    # 데이터베이스 (해석 로그)
    database_url: str = "sqlite:///./data/resolution_logs.db"

    # API
    api_title: str = "Kleinanzeigen Taxonomy Service"
    api_version: str = "1.0.0"
    api_description: str = "카테고리 트리와 등록 폼 필드를 단계적으로 해석합니다."

    # 로깅
    log_level: str = "INFO"

    @field_validator(
        "children_ttl_s",
        "children_empty_ttl_s",
        "fields_ttl_s",
        "fields_empty_ttl_s",
        "taxonomy_freshness_s",
    )
    @classmethod
    def validate_ttls(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("TTL values must be positive")
        return v

    @field_validator("crawler_timeout", "crawler_navigation_timeout_ms")
    @classmethod
    def validate_crawler_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("crawler timeouts must be positive")
        return v

    @field_validator(
        "children_total_budget_s",
        "fields_total_budget_s",
        "children_browser_stage_timeout_s",
        "crawler_http_timeout_s",
        "crawler_listing_timeout_s",
    )
    @classmethod
    def validate_budgets(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("budgets must be positive")
        return v

    @field_validator("cache_flush_debounce_s")
    @classmethod
    def validate_debounce(cls, v: float) -> float:
        if v < 0:
            raise ValueError("cache_flush_debounce_s must be >= 0")
        return v

    @field_validator("taxonomy_min_roots")
    @classmethod
    def validate_min_roots(cls, v: int) -> int:
        if v < 1:
            raise ValueError("taxonomy_min_roots must be >= 1")
        return v

    @field_validator("cache_backend")
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        value = (v or "").strip().lower()
        if value not in {"file", "redis"}:
            raise ValueError("cache_backend must be 'file' or 'redis'")
        return value

    def site_url(self, path: str = "") -> str:
        return f"{self.site_base_url.rstrip('/')}{path}"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
