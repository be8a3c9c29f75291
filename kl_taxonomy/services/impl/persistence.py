"""캐시/스냅샷 영속화 백엔드 - 파일(JSON) 또는 Redis

한 캐시(또는 스냅샷)당 하나의 JSON 문서를 통째로 읽고 씁니다.
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Optional, Protocol

from redis import Redis

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.logging import logger
from kl_taxonomy.core.exceptions import (
    CacheConnectionException,
    CacheException,
    CacheSerializationException,
)


class Persistence(Protocol):
    """JSON 문서 단위 영속화 인터페이스"""

    name: str

    def load(self) -> Optional[dict[str, Any]]:
        ...

    def save(self, payload: dict[str, Any]) -> None:
        ...

    def health_check(self) -> bool:
        ...


def _decode(raw: str, name: str) -> Optional[dict[str, Any]]:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, ValueError) as e:
        raise CacheSerializationException("load", str(e), {"name": name})
    if not isinstance(data, dict):
        raise CacheSerializationException("load", "payload is not an object", {"name": name})
    return data


def _encode(payload: dict[str, Any], name: str) -> str:
    try:
        return json.dumps(payload, ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as e:
        raise CacheSerializationException("save", str(e), {"name": name})


class JsonFilePersistence:
    """JSON 파일 영속화 (임시 파일 + os.replace 로 원자적 교체)"""

    def __init__(self, path: str):
        self.path = path
        self.name = os.path.basename(path)

    def load(self) -> Optional[dict[str, Any]]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            raise CacheException(f"Failed to read {self.path}: {e}", "CACHE_READ_FAILED")
        if not raw.strip():
            return None
        return _decode(raw, self.name)

    def save(self, payload: dict[str, Any]) -> None:
        text = _encode(payload, self.name)
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{self.name}.", suffix=".tmp", dir=directory)
        except OSError as e:
            raise CacheException(f"Failed to prepare {self.path}: {e}", "CACHE_WRITE_FAILED")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError as cleanup_err:
                logger.debug(f"[Persistence] temp cleanup failed: {type(cleanup_err).__name__}")
            raise CacheException(f"Failed to write {self.path}: {e}", "CACHE_WRITE_FAILED")

    def health_check(self) -> bool:
        directory = os.path.dirname(os.path.abspath(self.path))
        return os.path.isdir(directory) and os.access(directory, os.W_OK)


class RedisPersistence:
    """Redis 영속화 - 문서 전체를 하나의 키에 저장"""

    def __init__(self, key: str, redis_url: Optional[str] = None, client: Optional[Redis] = None):
        self.key = key
        self.name = key
        if client is not None:
            self.redis_client = client
            return
        try:
            self.redis_client = Redis.from_url(
                redis_url or settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self.redis_client.ping()
            logger.info(f"[Cache] Redis connection established (key={key})")
        except Exception as e:
            logger.error(f"[Cache] Failed to connect to Redis: {e}")
            raise CacheConnectionException(str(e), {"key": key})

    def load(self) -> Optional[dict[str, Any]]:
        try:
            raw = self.redis_client.get(self.key)
        except Exception as e:
            raise CacheConnectionException(f"read failed: {e}", {"key": self.key})
        if not raw:
            return None
        return _decode(raw, self.name)

    def save(self, payload: dict[str, Any]) -> None:
        text = _encode(payload, self.name)
        try:
            self.redis_client.set(self.key, text)
        except Exception as e:
            raise CacheConnectionException(f"write failed: {e}", {"key": self.key})

    def health_check(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except Exception:
            return False


def build_persistence(path: str, backend: Optional[str] = None) -> Persistence:
    """설정된 백엔드로 영속화 객체 생성

    Args:
        path: 파일 백엔드 경로 (Redis 키 이름도 여기서 파생)
        backend: "file" | "redis" (None이면 settings.cache_backend)
    """
    selected = (backend or settings.cache_backend).lower()
    if selected == "redis":
        stem = os.path.splitext(os.path.basename(path))[0]
        return RedisPersistence(key=f"{settings.redis_key_prefix}:{stem}")
    return JsonFilePersistence(path)
