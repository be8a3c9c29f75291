"""로깅 설정 (Security Enhanced)"""
import logging
import re
import sys
import os
from kl_taxonomy.core.config import settings


# Production 환경에서는 DEBUG 로그 비활성화
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development") == "production"


def setup_logging() -> logging.Logger:
    """로거 초기화 및 설정"""

    logger = logging.getLogger("kl_taxonomy")

    log_level = settings.log_level.upper()
    if IS_PRODUCTION and log_level == "DEBUG":
        log_level = "INFO"

    logger.setLevel(getattr(logging, log_level, logging.INFO))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, log_level, logging.INFO))

    if IS_PRODUCTION:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(console_handler)

    return logger


logger = setup_logging()


# user:pass@host 형태의 프록시 자격 증명
_PROXY_AUTH_RE = re.compile(r"(?P<scheme>[a-z0-9]+://)[^/@\s]+@", re.IGNORECASE)


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """민감 정보 제거 후 로깅용 문자열 반환

    쿠키 문자열이나 프록시 URL이 그대로 로그에 남지 않도록 마스킹합니다.

    Args:
        value: 로깅할 문자열
        max_length: 최대 길이

    Returns:
        제거된 문자열
    """
    if not value:
        return "[empty]"

    patterns_to_mask = [
        ('password', '***'),
        ('token', '***'),
        ('cookie', '***'),
        ('secret', '***'),
        ('session', '***'),
    ]

    result = _PROXY_AUTH_RE.sub(r"\g<scheme>***@", value)
    for pattern, mask in patterns_to_mask:
        if pattern in result.lower():
            result = mask
            break

    if len(result) > max_length:
        result = result[:max_length] + "..."

    return result
