"""Cache Adapter - typed view over CacheStore

CacheStore 는 JSON 호환 dict 리스트만 다루고,
오케스트레이터는 CategoryNode / FieldDescriptor 모델을 다룹니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from kl_taxonomy.core.logging import logger
from kl_taxonomy.services.impl.cache_service import CacheStore


M = TypeVar("M", bound=BaseModel)


@dataclass
class CachedValue(Generic[M]):
    items: List[M]
    saved_at: int
    expires_at: int

    @property
    def is_empty(self) -> bool:
        return not self.items


class CacheAdapter(Generic[M]):
    """CacheStore 어댑터 (타입 변환 버전)

    모든 예외는 로깅되고 None 반환 (캐시 오류로 해석이 실패하지 않음).
    """

    def __init__(self, store: CacheStore, model: Type[M]):
        """
        Args:
            store: 대상 CacheStore
            model: 항목 모델 (CategoryNode / FieldDescriptor)
        """
        self.store = store
        self.model = model

    async def get(self, key: str) -> Optional[CachedValue[M]]:
        """캐시 조회

        Args:
            key: 캐시 키 (`id:<id>` 또는 `url:<normalized>`)

        Returns:
            CachedValue or None: 유효한 항목 (빈 리스트 포함)

        Raises:
            None: 변환 실패 항목은 삭제 후 None 반환
        """
        if not key or not isinstance(key, str):
            logger.warning(f"[CacheAdapter] invalid key: {key!r}")
            return None

        entry = self.store.get(key)
        if entry is None:
            return None

        try:
            items = [self.model.model_validate(raw) for raw in entry.value]
        except ValidationError as e:
            logger.warning(f"[CacheAdapter] {self.store.name}: dropping malformed entry key={key}: {e.error_count()} errors")
            self.store.delete(key)
            return None

        return CachedValue(items=items, saved_at=entry.saved_at, expires_at=entry.expires_at)

    async def set(self, key: str, items: List[M]) -> bool:
        """캐시 저장 (빈 리스트는 짧은 TTL)

        Returns:
            bool: 저장 성공 여부
        """
        if not key or not isinstance(key, str):
            logger.warning(f"[CacheAdapter] invalid key for set: {key!r}")
            return False
        payload = [item.model_dump(mode="json", by_alias=True) for item in items]
        self.store.set(key, payload)
        return True

    async def delete(self, key: str) -> None:
        self.store.delete(key)
