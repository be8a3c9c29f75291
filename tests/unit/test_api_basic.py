"""HTTP Layer 테스트 (요청 → ResolutionContext 변환, 응답 형태)

외부 호출 없음: Orchestrator/TaxonomyStore 는 dependency_overrides 로 교체합니다.
"""

from __future__ import annotations

import textwrap
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from kl_taxonomy.api import get_orchestrator, get_session_directory, get_taxonomy_store
from kl_taxonomy.app import create_app
from kl_taxonomy.engine import ResolutionResult
from kl_taxonomy.engine.orchestrator import ResolutionOrchestrator
from kl_taxonomy.schemas.taxonomy_schema import TaxonomySnapshot
from kl_taxonomy.services.impl.session_provider import YamlSessionDirectory
from kl_taxonomy.services.impl.taxonomy_store import TaxonomyStore

from tests.fixtures.fakes import MemoryPersistence, make_field, make_node, make_tree


class StubOrchestrator:
    """요청 컨텍스트만 기록하는 Orchestrator 대역"""

    def __init__(self):
        self.contexts = []
        self.allow_cached_empty = None

    async def resolve_children(self, ctx):
        self.contexts.append(ctx)
        return ResolutionResult.from_stage([make_node("176", "Audio & Hifi")], "listing_fetch", 12)

    async def resolve_fields(self, ctx, allow_cached_empty=False):
        self.contexts.append(ctx)
        self.allow_cached_empty = allow_cached_empty
        return ResolutionResult.from_cache([make_field()])

    @staticmethod
    def field_category_id(ctx):
        return ResolutionOrchestrator.field_category_id(ctx)


@pytest.fixture
def orchestrator():
    return StubOrchestrator()


@pytest.fixture
def client(tmp_path, orchestrator):
    sessions = tmp_path / "sessions.yaml"
    sessions.write_text(
        textwrap.dedent(
            """
            accounts:
              acc-1:
                cookies: "sid=abc"
                proxy: {host: 127.0.0.1, port: 8080}
            """
        ),
        encoding="utf-8",
    )
    snapshot = TaxonomySnapshot(updated_at=datetime.now(timezone.utc), categories=make_tree())
    store = TaxonomyStore(persistence=MemoryPersistence(payload=snapshot.model_dump(mode="json", by_alias=True)))

    app = create_app()
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_taxonomy_store] = lambda: store
    app.dependency_overrides[get_session_directory] = lambda: YamlSessionDirectory(str(sessions))

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


class TestHealthAPI:
    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["cache_backend"] == "file"
        assert "timestamp" in data

    def test_root_endpoint(self, client):
        data = client.get("/").json()
        assert "service" in data and "version" in data


class TestTaxonomyAPI:
    def test_snapshot_tree(self, client):
        response = client.get("/api/v1/taxonomy")

        assert response.status_code == 200
        data = response.json()
        assert "updatedAt" in data
        assert len(data["categories"]) == 8
        elektronik = next(n for n in data["categories"] if n["id"] == "161")
        assert [c["id"] for c in elektronik["children"]] == ["176", "173"]


class TestChildrenAPI:
    def test_requires_id_or_url(self, client):
        response = client.get("/api/v1/taxonomy/children")
        assert response.status_code == 400

    def test_children_by_id_with_session(self, client, orchestrator):
        response = client.get("/api/v1/taxonomy/children", params={"id": "161", "sessionRef": "acc-1", "refresh": "true"})

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "listing_fetch"
        assert data["status"] == "success"
        assert data["children"][0]["id"] == "176"

        ctx = orchestrator.contexts[0]
        assert ctx.cache_key() == "id:161"
        assert ctx.has_session is True
        assert ctx.force_refresh is True

    def test_unknown_session_ref_means_no_session(self, client, orchestrator):
        client.get("/api/v1/taxonomy/children", params={"url": "https://www.kleinanzeigen.de/s-elektronik/c161", "sessionRef": "ghost"})

        ctx = orchestrator.contexts[0]
        assert ctx.session is None
        assert ctx.cache_key() == "url:/s-elektronik/c161"


class TestFieldsAPI:
    def test_category_path(self, client, orchestrator):
        response = client.get(
            "/api/v1/submission/fields",
            params={"categoryPath": "161/173/280", "allowCachedEmpty": "true"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["categoryId"] == "280"
        assert data["cached"] is True
        assert data["fields"][0]["kind"] == "select"
        assert orchestrator.contexts[0].category_path == ["161", "173", "280"]
        assert orchestrator.allow_cached_empty is True

    def test_category_path_json_array_of_urls(self, client, orchestrator):
        response = client.get(
            "/api/v1/submission/fields",
            params={
                "categoryPath": '["https://www.kleinanzeigen.de/s-elektronik/c161", "/s-audio-hifi/c176"]',
            },
        )

        assert response.status_code == 200
        assert response.json()["categoryId"] == "176"
        assert orchestrator.contexts[0].category_path == ["161", "176"]

    def test_requires_target(self, client):
        assert client.get("/api/v1/submission/fields").status_code == 400


class TestResolutionLogsAPI:
    def test_logs_written_in_background(self, client):
        client.get("/api/v1/taxonomy/children", params={"id": "210"})

        response = client.get("/api/v1/resolution-logs", params={"kind": "children", "limit": 50})

        assert response.status_code == 200
        targets = [log["target"] for log in response.json()]
        assert "id:210" in targets

    def test_limit_is_validated(self, client):
        assert client.get("/api/v1/resolution-logs", params={"limit": 0}).status_code == 422
