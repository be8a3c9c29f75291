"""Budget Manager - Time Budget Management

하위 카테고리 해석 (기본 150초):
- snapshot: 45초 (스냅샷 조회 + 필요 시 1회 갱신)
- listing_fetch: 10초
- browser: 135초 (세션 하나에서 단계별 추출)
  - state_search / listing_dom / state_graph / selection_workflow / position_clusters: 단계별 40초

필드 해석 (기본 240초):
- inject_category / form_resubmit / selection_workflow: 단계별 75초
"""

from dataclasses import dataclass, field
from time import monotonic
from typing import Optional, Dict

from kl_taxonomy.core.config import settings


CHILDREN_BROWSER_STAGES = ("state_search", "listing_dom", "state_graph", "selection_workflow", "position_clusters")


@dataclass
class BudgetConfig:
    """예산 설정"""

    total_budget: float = 150.0  # 전체 예산 (초)
    stage_timeouts: Dict[str, float] = field(default_factory=dict)  # stage 이름 → 한도 (초)
    min_remaining: float = 0.5  # 실행 최소 여유 시간 (초)

    def __post_init__(self):
        """설정 검증"""
        if self.total_budget <= 0:
            raise ValueError("total_budget must be positive")
        for name, timeout in self.stage_timeouts.items():
            if timeout <= 0:
                raise ValueError(f"Stage timeout for '{name}' must be positive")
            if timeout > self.total_budget:
                raise ValueError(
                    f"Stage timeout for '{name}' ({timeout}s) exceeds total budget ({self.total_budget}s)"
                )

    @classmethod
    def for_children(cls) -> "BudgetConfig":
        total = settings.children_total_budget_s
        stage = min(settings.children_browser_stage_timeout_s, total)
        return cls(
            total_budget=total,
            stage_timeouts={
                "snapshot": min(45.0, total),
                "listing_fetch": min(settings.children_listing_timeout_s, total),
                "browser": min(settings.children_browser_timeout_s, total),
                **{name: stage for name in CHILDREN_BROWSER_STAGES},
            },
        )

    @classmethod
    def for_fields(cls) -> "BudgetConfig":
        total = settings.fields_total_budget_s
        stage = min(settings.fields_stage_timeout_s, total)
        return cls(
            total_budget=total,
            stage_timeouts={
                "browser": total,
                "inject_category": stage,
                "form_resubmit": stage,
                "selection_workflow": stage,
            },
        )


class BudgetManager:
    """시간 예산 관리자

    실시간으로 경과 시간을 추적하고 남은 예산을 계산합니다.

    Usage:
        manager = BudgetManager(BudgetConfig.for_children())
        manager.start()

        timeout = manager.get_timeout_for("listing_fetch")
        manager.checkpoint("listing_fetch_empty")

        report = manager.get_report()
    """

    def __init__(self, config: Optional[BudgetConfig] = None):
        self.config = config or BudgetConfig()
        self.start_time: Optional[float] = None
        self._checkpoints: dict[str, float] = {}

    def start(self) -> None:
        """예산 측정 시작"""
        self.start_time = monotonic()
        self._checkpoints.clear()

    def checkpoint(self, name: str) -> None:
        """체크포인트 기록

        Args:
            name: 체크포인트 이름 (예: "cache_hit", "snapshot_empty")

        Raises:
            RuntimeError: start()가 호출되지 않은 경우
        """
        if self.start_time is None:
            raise RuntimeError("Budget not started. Call start() first.")
        self._checkpoints[name] = monotonic() - self.start_time

    def elapsed(self) -> float:
        """경과 시간 반환 (초). start() 전에는 0.0"""
        if self.start_time is None:
            return 0.0
        return monotonic() - self.start_time

    def remaining(self) -> float:
        """남은 예산 반환 (초, 음수 없음)"""
        return max(0.0, self.config.total_budget - self.elapsed())

    def is_exhausted(self) -> bool:
        return self.remaining() < self.config.min_remaining

    def get_timeout_for(self, stage: str) -> float:
        """단계별 타임아웃 계산

        남은 예산과 단계별 설정값 중 작은 값을 반환합니다.
        설정되지 않은 단계는 남은 예산 전체를 씁니다.

        Args:
            stage: stage 이름

        Returns:
            float: 해당 단계에 적용할 타임아웃 (초)
        """
        remaining = self.remaining()
        configured = self.config.stage_timeouts.get(stage)
        if configured is None:
            return remaining
        return min(configured, remaining)

    def get_report(self) -> dict:
        """예산 사용 리포트 생성"""
        return {
            "total_budget": self.config.total_budget,
            "elapsed": self.elapsed(),
            "remaining": self.remaining(),
            "checkpoints": self._checkpoints.copy(),
            "is_exhausted": self.is_exhausted(),
        }
