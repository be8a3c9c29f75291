"""Pydantic 스키마 정의 (카테고리 트리 / 폼 필드 / API 응답)"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CategoryNode(BaseModel):
    """카테고리 트리 노드

    id/name이 비어 있는 노드는 정규화 단계에서 제거되므로 여기서는 빈 문자열을 허용하지 않습니다.
    """
    id: str = Field(..., min_length=1, description="숫자 id 또는 slug id")
    name: str = Field(..., min_length=1, description="표시 이름")
    url: str = Field("", description="목록 페이지 URL (없으면 빈 문자열)")
    children: List["CategoryNode"] = Field(default_factory=list)

    @field_validator("id", "name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("id/name must not be blank")
        return v


CategoryNode.model_rebuild()


class FieldKind(str, Enum):
    """폼 필드 종류"""
    SELECT = "select"
    TEXT = "text"
    RANGE = "range"


class FieldOption(BaseModel):
    """select 옵션"""
    value: str
    label: str


class FieldDescriptor(BaseModel):
    """카테고리별 추가 입력 필드"""
    key: str = Field(..., min_length=1, description="폼 컨트롤 name (카테고리 내 유일)")
    label: str
    kind: FieldKind = FieldKind.SELECT
    options: List[FieldOption] = Field(default_factory=list)
    required: bool = False


class TaxonomySnapshot(BaseModel):
    """영속 카테고리 트리 스냅샷 ({updatedAt, categories})"""
    model_config = ConfigDict(populate_by_name=True)

    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    categories: List[CategoryNode] = Field(default_factory=list)


class ChildrenResponse(BaseModel):
    """하위 카테고리 조회 응답"""
    children: List[CategoryNode] = Field(default_factory=list)
    source: str = Field(..., description="cache | snapshot | static | listing_fetch | browser:<stage> | none")
    cached: bool = False
    status: str = "success"


class FieldsResponse(BaseModel):
    """카테고리 폼 필드 조회 응답"""
    model_config = ConfigDict(populate_by_name=True)

    category_id: str = Field(..., alias="categoryId")
    fields: List[FieldDescriptor] = Field(default_factory=list)
    source: str
    cached: bool = False
    status: str = "success"


class ResolutionLogItem(BaseModel):
    """해석 로그 항목"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    target: str
    status: str
    source: Optional[str] = None
    item_count: int = 0
    elapsed_ms: Optional[float] = None
    created_at: Optional[datetime] = None


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str
    timestamp: datetime
    version: str
    cache_backend: Optional[str] = None
