"""API 엔드포인트 패키지 - export only."""

from .routes import (
    health_router,
    taxonomy_router,
    get_orchestrator,
    get_session_directory,
    get_taxonomy_store,
    shutdown_services,
    startup_services,
)

__all__ = [
    "health_router",
    "taxonomy_router",
    "get_orchestrator",
    "get_session_directory",
    "get_taxonomy_store",
    "shutdown_services",
    "startup_services",
]
