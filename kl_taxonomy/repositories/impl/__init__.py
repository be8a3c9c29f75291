"""Repositories implementation package."""

from .resolution_log_repository import ResolutionLogRepository

__all__ = ["ResolutionLogRepository"]
