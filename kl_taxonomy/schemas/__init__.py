"""Pydantic 스키마 패키지"""

from .taxonomy_schema import (
    CategoryNode,
    ChildrenResponse,
    FieldDescriptor,
    FieldKind,
    FieldOption,
    FieldsResponse,
    HealthResponse,
    ResolutionLogItem,
    TaxonomySnapshot,
)

__all__ = [
    "CategoryNode",
    "ChildrenResponse",
    "FieldDescriptor",
    "FieldKind",
    "FieldOption",
    "FieldsResponse",
    "HealthResponse",
    "ResolutionLogItem",
    "TaxonomySnapshot",
]
