"""TTL 캐시 스토어 - 메모리 KV + 디바운스된 영속화

- get: 만료 항목은 읽을 때 제거 (now >= expiresAt 이면 만료)
- set: 빈 값은 짧은 TTL, 그 외 긴 TTL
- 쓰기는 dirty 표시 후 debounce 시간 동안 모아서 한 번만 flush
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger
from kl_taxonomy.core.exceptions import CacheException
from kl_taxonomy.services.impl.persistence import Persistence


@dataclass
class CacheEntry:
    """캐시 항목 (epoch ms)"""
    value: list[Any]
    saved_at: int
    expires_at: int

    def is_valid(self, now_ms: int) -> bool:
        return now_ms < self.expires_at

    @property
    def is_empty(self) -> bool:
        return not self.value

    def to_payload(self, value_field: str) -> dict[str, Any]:
        return {"savedAt": self.saved_at, "expiresAt": self.expires_at, value_field: self.value}

    @classmethod
    def from_payload(cls, raw: Any, value_field: str) -> Optional["CacheEntry"]:
        if not isinstance(raw, dict):
            return None
        saved_at = raw.get("savedAt")
        expires_at = raw.get("expiresAt")
        value = raw.get(value_field)
        if not isinstance(saved_at, (int, float)) or not isinstance(expires_at, (int, float)):
            return None
        if not isinstance(value, list) or expires_at <= saved_at:
            return None
        return cls(value=value, saved_at=int(saved_at), expires_at=int(expires_at))


class CacheStore:
    """TTL 캐시 스토어

    Usage:
        store = CacheStore("children", JsonFilePersistence(path), "children",
                           ttl_s=7 * 86400, empty_ttl_s=3600)
        await store.init()
        store.set("id:161", [...])
        entry = store.get("id:161")
        await store.shutdown()
    """

    def __init__(
        self,
        name: str,
        persistence: Persistence,
        value_field: str,
        ttl_s: float,
        empty_ttl_s: float,
        debounce_s: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            name: 로그용 이름
            persistence: 영속화 백엔드
            value_field: 문서 안의 값 필드명 ("children" | "fields")
            ttl_s: 값이 있을 때 TTL (초)
            empty_ttl_s: 빈 값 TTL (초)
            debounce_s: flush 디바운스 (초)
            clock: epoch 초를 반환하는 시계 (테스트 주입용)
        """
        if ttl_s <= 0 or empty_ttl_s <= 0:
            raise ValueError("TTL values must be positive")
        self.name = name
        self.persistence = persistence
        self.value_field = value_field
        self.ttl_s = ttl_s
        self.empty_ttl_s = empty_ttl_s
        self.debounce_s = settings.cache_flush_debounce_s if debounce_s is None else debounce_s
        self._clock = clock or time.time
        self._items: dict[str, CacheEntry] = {}
        self._dirty = False
        self._flush_task: Optional[asyncio.Task] = None

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def __len__(self) -> int:
        return len(self._items)

    async def init(self) -> None:
        """영속 문서 로드 (깨졌거나 만료된 항목은 건너뜀)"""
        try:
            payload = await asyncio.to_thread(self.persistence.load)
        except CacheException as e:
            logger.warning(f"[Cache] {self.name}: load failed, starting empty ({e.error_code})")
            payload = None

        self._items.clear()
        if not payload:
            return
        items = payload.get("items")
        if not isinstance(items, dict):
            logger.warning(f"[Cache] {self.name}: malformed payload, starting empty")
            return

        now = self.now_ms()
        skipped = 0
        for key, raw in items.items():
            entry = CacheEntry.from_payload(raw, self.value_field)
            if entry is None or not entry.is_valid(now):
                skipped += 1
                continue
            self._items[str(key)] = entry
        logger.info(f"[Cache] {self.name}: loaded {len(self._items)} entries (skipped {skipped})")

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._items.get(key)
        if entry is None:
            return None
        if not entry.is_valid(self.now_ms()):
            del self._items[key]
            self._mark_dirty()
            logger.debug(f"[Cache] {self.name}: evicted expired key={key}")
            return None
        return entry

    def set(self, key: str, value: list[Any], empty_hint: Optional[bool] = None) -> CacheEntry:
        """값 저장

        Args:
            key: 캐시 키
            value: 저장할 리스트
            empty_hint: True면 짧은 TTL 강제 (None이면 value가 비었는지로 판단)

        Returns:
            저장된 CacheEntry
        """
        is_empty = (not value) if empty_hint is None else empty_hint
        ttl_s = self.empty_ttl_s if is_empty else self.ttl_s
        saved_at = self.now_ms()
        entry = CacheEntry(
            value=list(value),
            saved_at=saved_at,
            expires_at=saved_at + max(1, int(ttl_s * 1000)),
        )
        self._items[key] = entry
        self._mark_dirty()
        logger.debug(f"[Cache] {self.name}: set key={key} items={len(value)} ttl={ttl_s}s")
        return entry

    def delete(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._mark_dirty()

    def _mark_dirty(self) -> None:
        self._dirty = True
        self._schedule_flush()

    def _schedule_flush(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # 이벤트 루프 밖: 다음 flush/shutdown 때 기록
            return
        task = self._flush_task
        if task is None or task.done() or task is asyncio.current_task():
            self._flush_task = loop.create_task(self._debounced_flush())

    async def _debounced_flush(self) -> None:
        await asyncio.sleep(self.debounce_s)
        await self.flush()

    def to_payload(self) -> dict[str, Any]:
        return {
            "updatedAt": datetime.now(timezone.utc).isoformat(),
            "items": {key: entry.to_payload(self.value_field) for key, entry in self._items.items()},
        }

    async def flush(self) -> None:
        """즉시 영속화 (실패는 로그만 남기고 dirty 유지)

        저장 도중 들어온 쓰기는 저장이 끝난 뒤 다음 flush로 예약합니다.
        """
        if not self._dirty:
            return
        payload = self.to_payload()
        self._dirty = False
        try:
            await asyncio.to_thread(self.persistence.save, payload)
        except CacheException as e:
            self._dirty = True
            logger.warning(f"[Cache] {self.name}: flush failed: {e}")
            return
        logger.debug(f"[Cache] {self.name}: flushed {len(payload['items'])} entries")
        if self._dirty:
            self._schedule_flush()

    async def shutdown(self) -> None:
        """대기 중인 flush 취소 후 dirty면 즉시 기록"""
        task = self._flush_task
        self._flush_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.flush()

    def health_check(self) -> bool:
        return self.persistence.health_check()
