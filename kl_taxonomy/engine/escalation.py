"""Escalation - ordered stage chain with per-stage timeouts

값싼 단계부터 비싼 단계 순으로 실행하고, 처음으로 비어 있지 않은 결과를
반환한 단계에서 멈춥니다. 단계의 예외/타임아웃은 기록 후 다음 단계로 넘어갑니다.
취소(asyncio.CancelledError)는 잡지 않고 그대로 전파됩니다.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from kl_taxonomy.core.logging import logger
from kl_taxonomy.engine.budget import BudgetManager
from kl_taxonomy.engine.context import ResolutionContext
from kl_taxonomy.engine.strategy import ErrorKind, ExecutionStrategy


T = TypeVar("T")


@dataclass
class Stage(Generic[T]):
    """해석 단계

    Attributes:
        name: 단계 이름 (로그/예산 키)
        run: ctx 를 받아 항목 목록을 반환하는 코루틴 함수
        requires_session: 세션 컨텍스트가 없으면 건너뜀
        timeout_s: 단계 자체 한도 (예산이 있으면 더 작은 쪽 적용)
        cacheable: 이 단계의 결과를 캐시에 기록해도 되는지
        live: 네트워크/브라우저를 쓰는 단계인지
    """

    name: str
    run: Callable[[ResolutionContext], Awaitable[List[T]]]
    requires_session: bool = False
    timeout_s: Optional[float] = None
    cacheable: bool = True
    live: bool = True


@dataclass
class StageAttempt:
    name: str
    outcome: str  # hit | empty | error | timeout | skipped
    elapsed_ms: int = 0
    error_kind: Optional[str] = None
    live: bool = True

    @property
    def ran(self) -> bool:
        return self.outcome != "skipped"


@dataclass
class EscalationOutcome(Generic[T]):
    """체인 실행 결과 (외부 데드라인 취소 시에도 지금까지의 기록이 남도록 공유 가능)"""

    items: List[T] = field(default_factory=list)
    stage: Optional[Stage[T]] = None
    attempts: List[StageAttempt] = field(default_factory=list)

    @property
    def stage_name(self) -> Optional[str]:
        return self.stage.name if self.stage else None

    def live_stage_ran(self) -> bool:
        return any(a.live and a.ran for a in self.attempts)

    def attempt(self, name: str) -> Optional[StageAttempt]:
        for item in reversed(self.attempts):
            if item.name == name:
                return item
        return None

    def describe(self) -> str:
        """로그용 요약 (`snapshot:empty,listing_fetch:hit`)"""
        return ",".join(f"{a.name}:{a.outcome}" for a in self.attempts)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _stage_timeout(stage: Stage, budget: Optional[BudgetManager]) -> Optional[float]:
    if budget is None:
        return stage.timeout_s
    budgeted = budget.get_timeout_for(stage.name)
    if stage.timeout_s is None:
        return budgeted
    return min(stage.timeout_s, budgeted)


async def escalate(
    stages: Sequence[Stage[T]],
    ctx: ResolutionContext,
    outcome: Optional[EscalationOutcome[T]] = None,
    strategy: Optional[ExecutionStrategy] = None,
    budget: Optional[BudgetManager] = None,
    tag: str = "Escalation",
) -> EscalationOutcome[T]:
    """단계를 순서대로 실행

    Args:
        stages: 실행할 단계 (값싼 순서)
        ctx: 해석 컨텍스트
        outcome: 결과를 기록할 공유 객체 (없으면 새로 생성)
        strategy: 오류 분류기
        budget: 시간 예산 (단계 타임아웃 계산 + 소진 시 중단)
        tag: 로그 prefix

    Returns:
        EscalationOutcome: 첫 번째 비어 있지 않은 결과 또는 빈 결과
    """
    outcome = outcome if outcome is not None else EscalationOutcome()
    strategy = strategy or ExecutionStrategy()

    for stage in stages:
        if stage.requires_session and not ctx.has_session:
            outcome.attempts.append(StageAttempt(stage.name, "skipped", live=stage.live))
            logger.debug(f"[{tag}] {stage.name} skipped: no session")
            continue
        if budget is not None and budget.is_exhausted():
            outcome.attempts.append(StageAttempt(stage.name, "skipped", live=stage.live))
            logger.info(f"[{tag}] budget exhausted before {stage.name}")
            break

        timeout = _stage_timeout(stage, budget)
        started = time.monotonic()
        try:
            if timeout is None:
                items = await stage.run(ctx)
            else:
                items = await asyncio.wait_for(stage.run(ctx), timeout=timeout)
        except asyncio.TimeoutError:
            outcome.attempts.append(
                StageAttempt(stage.name, "timeout", _elapsed_ms(started), ErrorKind.TRANSIENT_NETWORK.value, stage.live)
            )
            logger.warning(f"[{tag}] {stage.name} timed out after {timeout:.1f}s")
            continue
        except Exception as e:
            kind = strategy.classify(e)
            outcome.attempts.append(StageAttempt(stage.name, "error", _elapsed_ms(started), kind.value, stage.live))
            if kind == ErrorKind.STRUCTURAL_MISMATCH:
                logger.debug(f"[{tag}] {stage.name} structural mismatch: {e}")
            elif kind == ErrorKind.UNKNOWN:
                logger.error(f"[{tag}] {stage.name} failed: {type(e).__name__}: {e}", exc_info=True)
            else:
                logger.warning(f"[{tag}] {stage.name} {kind.value}: {e}")
            continue
        finally:
            if budget is not None and budget.start_time is not None:
                budget.checkpoint(stage.name)

        if items:
            outcome.items = list(items)
            outcome.stage = stage
            outcome.attempts.append(StageAttempt(stage.name, "hit", _elapsed_ms(started), live=stage.live))
            logger.info(f"[{tag}] {stage.name} hit: {len(outcome.items)} items")
            return outcome

        outcome.attempts.append(StageAttempt(stage.name, "empty", _elapsed_ms(started), live=stage.live))
        logger.debug(f"[{tag}] {stage.name} empty")

    return outcome
