"""헬스 체크 엔드포인트"""
from fastapi import APIRouter, Depends
from datetime import datetime

from kl_taxonomy.schemas.taxonomy_schema import HealthResponse
from kl_taxonomy.services.impl.cache_service import CacheStore
from kl_taxonomy.api.routes.taxonomy_routes import get_children_store
from kl_taxonomy.core.config import settings
from kl_taxonomy.core.database import engine
from kl_taxonomy.core.exceptions import CacheException
from kl_taxonomy.core.logging import logger
from kl_taxonomy import __version__

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(cache_store: CacheStore = Depends(get_children_store)):
    """
    헬스 체크 엔드포인트

    - 서버 상태
    - 캐시 백엔드 (file / redis) 상태
    - DB 연결 상태
    """
    cache_ok = False
    db_ok = False

    # 캐시 체크
    try:
        cache_ok = cache_store.health_check()
    except CacheException as e:
        logger.warning(f"Cache backend check failed: {e.error_code}")
        cache_ok = False
    except Exception as e:
        logger.error(f"Unexpected cache error: {e}")
        cache_ok = False

    # DB 체크
    try:
        with engine.connect() as connection:
            connection.exec_driver_sql("SELECT 1")
            db_ok = True
    except Exception as e:
        logger.error(f"Database connection error: {e}")
        db_ok = False

    status = "ok" if cache_ok and db_ok else ("degraded" if cache_ok or db_ok else "error")

    return HealthResponse(
        status=status,
        timestamp=datetime.now(),
        version=__version__,
        cache_backend=settings.cache_backend,
    )


@router.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "service": "Kleinanzeigen taxonomy & field resolution",
        "version": __version__,
        "docs": "/docs"
    }
