"""전역 테스트 설정

역할:
- 테스트 환경 구성 (임시 data 디렉터리, sqlite DB)
- 공통 Fake 주입 (fetcher / extractor / persistence)

금지:
- 실제 사이트 접속
- Playwright 브라우저 실행
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# 설정 모듈이 import 되기 전에 data 경로를 임시 디렉터리로 돌림
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="kl_taxonomy_test_")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATA_DIR", _TEST_DATA_DIR)
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DATA_DIR}/resolution_logs.db")
os.environ.setdefault("TAXONOMY_SNAPSHOT_PATH", f"{_TEST_DATA_DIR}/categories.json")
os.environ.setdefault("CHILDREN_CACHE_PATH", f"{_TEST_DATA_DIR}/category-children.json")
os.environ.setdefault("FIELDS_CACHE_PATH", f"{_TEST_DATA_DIR}/category-fields.json")
os.environ.setdefault("SESSION_DIRECTORY_PATH", f"{_TEST_DATA_DIR}/sessions.yaml")
os.environ.setdefault("CACHE_BACKEND", "file")

from tests.fixtures.fakes import FakeClock, MemoryPersistence, make_session, make_tree  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


@pytest.fixture
def sample_tree():
    """8개 숫자 루트 + 161 하위 항목"""
    return make_tree()


@pytest.fixture
def session_ctx():
    return make_session()


@pytest.fixture
def memory_persistence() -> MemoryPersistence:
    return MemoryPersistence()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
