"""API routes package."""

from .health_routes import router as health_router
from .taxonomy_routes import (
    router as taxonomy_router,
    get_children_store,
    get_fields_store,
    get_orchestrator,
    get_session_directory,
    get_taxonomy_store,
    shutdown_services,
    startup_services,
)

__all__ = [
    "health_router",
    "taxonomy_router",
    "get_children_store",
    "get_fields_store",
    "get_orchestrator",
    "get_session_directory",
    "get_taxonomy_store",
    "shutdown_services",
    "startup_services",
]
