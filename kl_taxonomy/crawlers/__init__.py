"""Kleinanzeigen taxonomy crawlers (HTTP fast path + Playwright slow path).

공개 API는 이 파일에서만 export합니다.
"""

from .fastpath_executor import LightweightFetcher
from .slowpath_executor import BrowserSessionExtractor

__all__ = [
    "LightweightFetcher",
    "BrowserSessionExtractor",
]
