"""Execution Strategy - error classification for the escalation chain

Stage 실패를 유형별로 분류하고 재시도 횟수를 결정합니다.
"""

import asyncio
from enum import Enum

from kl_taxonomy.core.exceptions import (
    BlockedException,
    BrowserException,
    NetworkTimeoutException,
    ParsingException,
    TimeoutException,
    TransientNetworkException,
)
from kl_taxonomy.engine.exceptions import (
    SessionUnavailableError,
    StageTimeoutError,
    StructuralMismatchError,
)


class ErrorKind(str, Enum):
    """Stage 실패 유형"""

    TRANSIENT_NETWORK = "transient_network"  # 다음 단계로 escalate
    RENDER_FAILURE = "render_failure"  # 축소 모드로 1회 재시도 후 단계 중단
    STRUCTURAL_MISMATCH = "structural_mismatch"  # escalate (debug 로그)
    UNKNOWN = "unknown"  # escalate (traceback 로그)


class ExecutionStrategy:
    """실행 전략 결정

    Usage:
        strategy = ExecutionStrategy()

        try:
            items = await stage.run(ctx)
        except Exception as e:
            kind = strategy.classify(e)
            if strategy.get_retry_count(e):
                ...
    """

    @staticmethod
    def classify(error: BaseException) -> ErrorKind:
        """오류 유형 분류

        Args:
            error: 발생한 예외

        Returns:
            ErrorKind
        """
        if isinstance(
            error,
            (
                TransientNetworkException,
                NetworkTimeoutException,
                TimeoutException,
                StageTimeoutError,
                BlockedException,
                asyncio.TimeoutError,
                ConnectionError,
            ),
        ):
            return ErrorKind.TRANSIENT_NETWORK
        if isinstance(error, BrowserException):
            return ErrorKind.RENDER_FAILURE
        if isinstance(error, (ParsingException, StructuralMismatchError, SessionUnavailableError)):
            return ErrorKind.STRUCTURAL_MISMATCH
        return ErrorKind.UNKNOWN

    @staticmethod
    def should_escalate(error: BaseException) -> bool:
        """다음 단계로 넘어갈지 여부 (취소는 절대 삼키지 않음)"""
        return not isinstance(error, asyncio.CancelledError)

    @classmethod
    def get_retry_count(cls, error: BaseException) -> int:
        """재시도 횟수 결정

        - RENDER_FAILURE: 1회 (축소 기능 모드로 세션 재생성)
        - 기타: 0회

        Args:
            error: 발생한 예외

        Returns:
            int: 재시도 횟수
        """
        return 1 if cls.classify(error) == ErrorKind.RENDER_FAILURE else 0
