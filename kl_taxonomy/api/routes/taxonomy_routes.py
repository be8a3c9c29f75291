"""Taxonomy Routes (Engine Layer)

HTTP Layer는 요청을 ResolutionContext 로 바꿔 ResolutionOrchestrator 에 위임하는
Translator 역할만 수행합니다.
"""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.database import get_db, get_db_context
from kl_taxonomy.core.exceptions import CacheConnectionException, ValidationException
from kl_taxonomy.core.logging import logger, sanitize_for_log
from kl_taxonomy.crawlers import BrowserSessionExtractor, LightweightFetcher
from kl_taxonomy.engine import ResolutionContext, ResolutionResult, SessionContext
from kl_taxonomy.engine.cache_adapter import CacheAdapter
from kl_taxonomy.engine.orchestrator import ResolutionOrchestrator
from kl_taxonomy.repositories.impl.resolution_log_repository import ResolutionLogRepository
from kl_taxonomy.schemas.taxonomy_schema import (
    CategoryNode,
    ChildrenResponse,
    FieldDescriptor,
    FieldsResponse,
    ResolutionLogItem,
    TaxonomySnapshot,
)
from kl_taxonomy.services.impl.cache_service import CacheStore
from kl_taxonomy.services.impl.persistence import JsonFilePersistence, Persistence, build_persistence
from kl_taxonomy.services.impl.session_provider import YamlSessionDirectory, build_session_context
from kl_taxonomy.services.impl.taxonomy_store import TaxonomyStore
from kl_taxonomy.utils.url_utils import parse_category_path

router = APIRouter(prefix="/api/v1", tags=["taxonomy"])

# 싱글톤 서비스
_children_store: Optional[CacheStore] = None
_fields_store: Optional[CacheStore] = None
_taxonomy_store: Optional[TaxonomyStore] = None
_session_directory: Optional[YamlSessionDirectory] = None
_fetcher: Optional[LightweightFetcher] = None
_extractor: Optional[BrowserSessionExtractor] = None
_orchestrator: Optional[ResolutionOrchestrator] = None


def _persistence_for(path: str) -> Persistence:
    """설정된 백엔드 (Redis 연결 실패 시 파일로 대체)"""
    try:
        return build_persistence(path)
    except CacheConnectionException as e:
        logger.error(f"[API] Cache backend unavailable, falling back to file: {e.error_code}")
        return JsonFilePersistence(path)


def get_children_store() -> CacheStore:
    """하위 카테고리 CacheStore 싱글톤"""
    global _children_store
    if _children_store is None:
        _children_store = CacheStore(
            "children",
            _persistence_for(settings.children_cache_path),
            "children",
            ttl_s=settings.children_ttl_s,
            empty_ttl_s=settings.children_empty_ttl_s,
        )
    return _children_store


def get_fields_store() -> CacheStore:
    """필드 CacheStore 싱글톤"""
    global _fields_store
    if _fields_store is None:
        _fields_store = CacheStore(
            "fields",
            _persistence_for(settings.fields_cache_path),
            "fields",
            ttl_s=settings.fields_ttl_s,
            empty_ttl_s=settings.fields_empty_ttl_s,
        )
    return _fields_store


def get_fetcher() -> LightweightFetcher:
    global _fetcher
    if _fetcher is None:
        _fetcher = LightweightFetcher()
    return _fetcher


def get_extractor() -> BrowserSessionExtractor:
    global _extractor
    if _extractor is None:
        _extractor = BrowserSessionExtractor()
    return _extractor


def get_taxonomy_store() -> TaxonomyStore:
    """TaxonomyStore 싱글톤"""
    global _taxonomy_store
    if _taxonomy_store is None:
        _taxonomy_store = TaxonomyStore(
            fetcher=get_fetcher(),
            extractor=get_extractor(),
            persistence=_persistence_for(settings.taxonomy_snapshot_path),
        )
    return _taxonomy_store


def get_session_directory() -> YamlSessionDirectory:
    """계정 → 쿠키/프록시 디렉터리 싱글톤"""
    global _session_directory
    if _session_directory is None:
        _session_directory = YamlSessionDirectory(settings.session_directory_path)
    return _session_directory


def get_orchestrator() -> ResolutionOrchestrator:
    """ResolutionOrchestrator 싱글톤

    Engine Layer의 진입점을 제공합니다.
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ResolutionOrchestrator(
            children_cache=CacheAdapter(get_children_store(), CategoryNode),
            fields_cache=CacheAdapter(get_fields_store(), FieldDescriptor),
            taxonomy_store=get_taxonomy_store(),
            fetcher=get_fetcher(),
            extractor=get_extractor(),
        )
    return _orchestrator


async def startup_services() -> None:
    """캐시/스냅샷 로드 (앱 시작 시)"""
    await get_children_store().init()
    await get_fields_store().init()
    await get_taxonomy_store().init()


async def shutdown_services() -> None:
    """대기 중인 캐시 쓰기 flush (앱 종료 시)"""
    for store in (_children_store, _fields_store):
        if store is not None:
            await store.shutdown()


def _resolve_session(
    session_ref: Optional[str],
    directory: YamlSessionDirectory,
) -> Optional[SessionContext]:
    if not session_ref:
        return None
    return build_session_context(session_ref, directory, directory)


def _log_resolution(kind: str, target: str, result: ResolutionResult) -> None:
    """해석 로그 저장 (백그라운드)"""
    attempts = ",".join(f"{a.name}:{a.outcome}" for a in result.attempts)
    try:
        with get_db_context() as db:
            ResolutionLogRepository(db).create(
                kind=kind,
                target=target,
                status=result.status.value,
                source=result.source,
                item_count=len(result.items),
                elapsed_ms=float(result.elapsed_ms),
                attempts=attempts or None,
            )
        logger.debug(f"[API] Resolution log saved: kind={kind}, status={result.status.value}")
    except Exception as e:
        logger.error(f"[API] Failed to save resolution log: {e}")


@router.get("/taxonomy", response_model=TaxonomySnapshot)
async def get_taxonomy(
    refresh: bool = Query(False),
    session_ref: Optional[str] = Query(None, alias="sessionRef"),
    store: TaxonomyStore = Depends(get_taxonomy_store),
    directory: YamlSessionDirectory = Depends(get_session_directory),
):
    """카테고리 트리 API

    스냅샷이 있으면 그대로, 없으면 (세션이 있을 때) 라이브 재구성,
    그것도 안 되면 정적 기본 트리를 반환합니다.
    """
    session = _resolve_session(session_ref, directory)
    snapshot = await store.get_taxonomy(force_refresh=refresh, session=session)
    logger.info(f"[API] Taxonomy: {len(snapshot.categories)} roots (refresh={refresh})")
    return snapshot


@router.get("/taxonomy/children", response_model=ChildrenResponse)
async def get_children(
    background_tasks: BackgroundTasks,
    category_id: Optional[str] = Query(None, alias="id"),
    category_url: Optional[str] = Query(None, alias="url"),
    session_ref: Optional[str] = Query(None, alias="sessionRef"),
    refresh: bool = Query(False),
    orchestrator: ResolutionOrchestrator = Depends(get_orchestrator),
    directory: YamlSessionDirectory = Depends(get_session_directory),
):
    """직계 하위 카테고리 API

    Flow:
        1. HTTP Request → ResolutionContext
        2. Engine에 위임 (Cache → snapshot → listing_fetch → browser)
        3. 결과를 HTTP Response로 변환
        4. 백그라운드로 로그 저장
    """
    try:
        ctx = ResolutionContext(
            target_id=category_id,
            target_url=category_url,
            session=_resolve_session(session_ref, directory),
            force_refresh=refresh,
        )
    except ValidationException as e:
        logger.warning(f"[API] Invalid children request: {e}")
        raise HTTPException(status_code=400, detail=e.message)

    logger.info(f"[API] Children request: {sanitize_for_log(ctx.cache_key(), 120)}")
    result = await orchestrator.resolve_children(ctx)
    background_tasks.add_task(_log_resolution, "children", ctx.cache_key(), result)

    return ChildrenResponse(
        children=result.items,
        source=result.source,
        cached=result.cached,
        status=result.status.value,
    )


@router.get("/submission/fields", response_model=FieldsResponse)
async def get_fields(
    background_tasks: BackgroundTasks,
    category_id: Optional[str] = Query(None, alias="categoryId"),
    category_url: Optional[str] = Query(None, alias="categoryUrl"),
    category_path: Optional[str] = Query(None, alias="categoryPath"),
    session_ref: Optional[str] = Query(None, alias="sessionRef"),
    refresh: bool = Query(False),
    allow_cached_empty: bool = Query(False, alias="allowCachedEmpty"),
    orchestrator: ResolutionOrchestrator = Depends(get_orchestrator),
    directory: YamlSessionDirectory = Depends(get_session_directory),
):
    """카테고리 추가 필드 API"""
    path_ids = parse_category_path(category_path)
    try:
        ctx = ResolutionContext(
            target_id=category_id or (path_ids[-1] if path_ids else None),
            target_url=category_url,
            session=_resolve_session(session_ref, directory),
            force_refresh=refresh,
            category_path=path_ids,
        )
        result = await orchestrator.resolve_fields(ctx, allow_cached_empty=allow_cached_empty)
        resolved_id = orchestrator.field_category_id(ctx)
    except ValidationException as e:
        logger.warning(f"[API] Invalid fields request: {e}")
        raise HTTPException(status_code=400, detail=e.message)

    background_tasks.add_task(_log_resolution, "fields", f"id:{resolved_id}", result)

    return FieldsResponse(
        category_id=resolved_id,
        fields=result.items,
        source=result.source,
        cached=result.cached,
        status=result.status.value,
    )


@router.get("/resolution-logs", response_model=List[ResolutionLogItem])
async def get_resolution_logs(
    limit: int = Query(20, ge=1, le=200),
    kind: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """최근 해석 로그 API"""
    repo = ResolutionLogRepository(db)
    return [ResolutionLogItem.model_validate(log) for log in repo.get_recent_logs(limit=limit, kind=kind)]
