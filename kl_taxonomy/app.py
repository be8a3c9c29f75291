"""FastAPI 앱 팩토리"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from kl_taxonomy.core.config import settings
from kl_taxonomy.core.database import init_db
from kl_taxonomy.core.logging import logger
from kl_taxonomy.api import health_router, taxonomy_router, shutdown_services, startup_services


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 생명주기"""
    logger.info("Starting application...")
    init_db()
    await startup_services()
    logger.info("Application started")
    yield
    logger.info("Shutting down application...")
    await shutdown_services()
    from kl_taxonomy.crawlers.http_client import shutdown_shared_http_client
    from kl_taxonomy.crawlers.playwright import shutdown_shared_playwright
    for hook in (shutdown_shared_http_client, shutdown_shared_playwright):
        try:
            await hook()
        except Exception as e:
            # 종료 훅에서의 예외는 앱 종료를 막지 않음
            logger.warning(f"Shutdown hook {hook.__name__} failed: {e}")


def create_app() -> FastAPI:
    """
    FastAPI 앱 생성 (Factory Pattern)

    Returns:
        FastAPI 앱 인스턴스
    """
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(taxonomy_router)

    return app

# 앱 인스턴스 생성 (uvicorn이 로드할 수 있도록)
app = create_app()
