"""Resolution Result - 해석 결과 모델"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar


T = TypeVar("T")


class ResolutionStatus(str, Enum):
    """해석 결과 상태"""

    SUCCESS = "success"  # 항목을 찾음
    EMPTY = "empty"  # 모든 단계가 빈 결과
    NO_SESSION = "no_session"  # 세션이 없어 라이브 단계 생략
    DEADLINE_EXCEEDED = "deadline_exceeded"  # 전체 예산 초과


@dataclass
class ResolutionResult(Generic[T]):
    """해석 결과

    Attributes:
        status: 결과 상태
        items: 하위 카테고리 또는 필드 목록
        source: 결과 출처 ("cache", "snapshot", "listing_fetch", "browser:<stage>", "none")
        cached: 캐시에서 반환했는지 여부
        elapsed_ms: 소요 시간
        attempts: 시도한 stage 기록
        budget_report: 예산 사용 리포트
    """

    status: ResolutionStatus
    items: List[T] = field(default_factory=list)
    source: str = "none"
    cached: bool = False
    elapsed_ms: int = 0
    attempts: List[Any] = field(default_factory=list)
    budget_report: Optional[dict] = None

    @property
    def is_success(self) -> bool:
        return self.status == ResolutionStatus.SUCCESS

    @classmethod
    def from_cache(cls, items: List[T], elapsed_ms: int = 0) -> "ResolutionResult[T]":
        status = ResolutionStatus.SUCCESS if items else ResolutionStatus.EMPTY
        return cls(status=status, items=list(items), source="cache", cached=True, elapsed_ms=elapsed_ms)

    @classmethod
    def from_stage(
        cls,
        items: List[T],
        source: str,
        elapsed_ms: int,
        attempts: Optional[List[Any]] = None,
        budget_report: Optional[dict] = None,
    ) -> "ResolutionResult[T]":
        status = ResolutionStatus.SUCCESS if items else ResolutionStatus.EMPTY
        return cls(
            status=status,
            items=list(items),
            source=source if items else "none",
            elapsed_ms=elapsed_ms,
            attempts=list(attempts or []),
            budget_report=budget_report,
        )

    @classmethod
    def no_session(cls, elapsed_ms: int = 0) -> "ResolutionResult[T]":
        return cls(status=ResolutionStatus.NO_SESSION, source="none", elapsed_ms=elapsed_ms)

    @classmethod
    def deadline_exceeded(
        cls,
        items: List[T],
        elapsed_ms: int,
        attempts: Optional[List[Any]] = None,
        budget_report: Optional[dict] = None,
    ) -> "ResolutionResult[T]":
        return cls(
            status=ResolutionStatus.DEADLINE_EXCEEDED,
            items=list(items),
            source="none",
            elapsed_ms=elapsed_ms,
            attempts=list(attempts or []),
            budget_report=budget_report,
        )
