"""리소스 파일(YAML) 로더 유틸리티"""
import os
import yaml
from typing import Any, Dict
from functools import lru_cache

from kl_taxonomy.core.logging import logger


def get_resource_path(relative_path: str) -> str:
    """프로젝트 루트 기준 리소스 절대 경로 반환"""
    # kl_taxonomy/utils/resource_loader.py -> kl_taxonomy/utils -> kl_taxonomy -> root
    base_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    return os.path.join(base_dir, "resources", relative_path)


@lru_cache(maxsize=32)
def load_yaml_resource(relative_path: str) -> Dict[str, Any]:
    """YAML 리소스 로드 및 캐싱"""
    path = get_resource_path(relative_path)
    return load_yaml_file(path)


def load_yaml_file(path: str) -> Dict[str, Any]:
    """임의 경로의 YAML 로드 (없거나 깨진 경우 빈 dict)"""
    if not os.path.exists(path):
        logger.warning(f"Resource not found: {path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load YAML resource {path}: {e}")
        return {}


def load_static_baseline() -> list[dict[str, Any]]:
    """정적 기본 카테고리 트리 로드"""
    data = load_yaml_resource("taxonomy/static_baseline.yaml")
    categories = data.get("categories", [])
    return categories if isinstance(categories, list) else []


def load_device_profiles() -> Dict[str, Dict[str, Any]]:
    """브라우저 디바이스 프로필 로드 (id → 프로필)"""
    data = load_yaml_resource("browser/device_profiles.yaml")
    profiles = data.get("profiles", {})
    return profiles if isinstance(profiles, dict) else {}
