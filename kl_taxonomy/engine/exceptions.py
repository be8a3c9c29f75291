"""Engine Exceptions - escalation control errors

Stage 실행 중 구조적 오류를 구분하기 위한 엔진 전용 예외입니다.
실행자(Fetcher/Extractor)는 주로 core.exceptions 를 사용하고,
엔진은 두 계층을 모두 분류할 수 있어야 합니다.
"""


class EngineError(Exception):
    """엔진 기본 예외"""

    pass


class StageTimeoutError(EngineError):
    """단계 타임아웃

    단일 stage 가 자신의 시간 한도를 넘긴 경우
    """

    pass


class StructuralMismatchError(EngineError):
    """구조 불일치

    페이지/상태 구조가 예상과 달라 추출할 수 없는 경우
    """

    pass


class SessionUnavailableError(EngineError):
    """세션 없음

    세션이 필요한 stage 에 세션 컨텍스트가 없는 경우
    """

    pass
