"""TaxonomyStore 유닛 테스트 (스냅샷 → 라이브 재구성 → 정적 fallback)"""
from datetime import datetime, timedelta, timezone

import pytest

from kl_taxonomy.core.exceptions import ParsingException
from kl_taxonomy.schemas.taxonomy_schema import TaxonomySnapshot
from kl_taxonomy.services.impl.taxonomy_store import TaxonomyStore

from tests.fixtures.fakes import FakeExtractor, FakeFetcher, MemoryPersistence, make_node, make_session, make_tree


def snapshot_payload(tree, updated_at=None):
    snapshot = TaxonomySnapshot(updated_at=updated_at or datetime.now(timezone.utc), categories=tree)
    return snapshot.model_dump(mode="json", by_alias=True)


@pytest.mark.asyncio
async def test_static_baseline_without_session_or_snapshot():
    persistence = MemoryPersistence()
    fetcher = FakeFetcher(taxonomy=make_tree())
    store = TaxonomyStore(fetcher=fetcher, extractor=FakeExtractor(), persistence=persistence)

    snapshot = await store.get_taxonomy()

    assert len(snapshot.categories) >= 10
    assert snapshot.categories[0].id == "auto-rad-and-boot"
    assert fetcher.taxonomy_calls == 0
    assert persistence.saves == []


@pytest.mark.asyncio
async def test_snapshot_served_without_network():
    """영속 스냅샷이 있으면 세션이 있어도 재구성하지 않음"""
    fetcher = FakeFetcher(taxonomy=make_tree())
    store = TaxonomyStore(fetcher=fetcher, persistence=MemoryPersistence(payload=snapshot_payload(make_tree())))

    snapshot = await store.get_taxonomy(session=make_session())

    assert [n.id for n in snapshot.categories][:2] == ["210", "195"]
    assert fetcher.taxonomy_calls == 0


@pytest.mark.asyncio
async def test_stale_snapshot_still_served():
    payload = snapshot_payload(make_tree(), updated_at=datetime.now(timezone.utc) - timedelta(days=30))
    store = TaxonomyStore(persistence=MemoryPersistence(payload=payload))
    await store.init()

    assert store.is_fresh() is False
    assert len((await store.get_taxonomy()).categories) == 8


@pytest.mark.asyncio
async def test_force_refresh_persists_complete_http_tree():
    persistence = MemoryPersistence()
    extractor = FakeExtractor()
    store = TaxonomyStore(fetcher=FakeFetcher(taxonomy=make_tree()), extractor=extractor, persistence=persistence)

    snapshot = await store.get_taxonomy(force_refresh=True, session=make_session())

    assert len(snapshot.categories) == 8
    assert extractor.tree_calls == 0
    assert len(persistence.saves) == 1
    assert "updatedAt" in persistence.saves[0]
    assert store.find_node("280").name == "Zubehör"


@pytest.mark.asyncio
async def test_incomplete_http_tree_escalates_to_browser():
    extractor = FakeExtractor(tree=make_tree())
    store = TaxonomyStore(
        fetcher=FakeFetcher(taxonomy=make_tree(3)),
        extractor=extractor,
        persistence=MemoryPersistence(),
    )

    snapshot = await store.get_taxonomy(force_refresh=True, session=make_session())

    assert extractor.tree_calls == 1
    assert len(snapshot.categories) == 8


@pytest.mark.asyncio
async def test_failed_rebuild_keeps_previous_snapshot():
    persistence = MemoryPersistence(payload=snapshot_payload(make_tree()))
    store = TaxonomyStore(
        fetcher=FakeFetcher(error=ParsingException("no category rows")),
        extractor=FakeExtractor(tree=make_tree(2)),
        persistence=persistence,
    )

    snapshot = await store.get_taxonomy(force_refresh=True, session=make_session())

    assert len(snapshot.categories) == 8
    assert persistence.saves == []


@pytest.mark.asyncio
async def test_failed_rebuild_without_snapshot_serves_static():
    store = TaxonomyStore(
        fetcher=FakeFetcher(taxonomy=make_tree(2)),
        extractor=FakeExtractor(),
        persistence=MemoryPersistence(),
    )

    snapshot = await store.get_taxonomy(force_refresh=True, session=make_session())

    assert snapshot.categories[0].id == "auto-rad-and-boot"
    assert store.current_snapshot() is None


@pytest.mark.asyncio
async def test_malformed_snapshot_is_ignored():
    store = TaxonomyStore(persistence=MemoryPersistence(payload={"updatedAt": "gestern", "categories": "kaputt"}))
    await store.init()
    assert store.current_snapshot() is None


@pytest.mark.asyncio
async def test_min_roots_is_configurable():
    persistence = MemoryPersistence()
    store = TaxonomyStore(fetcher=FakeFetcher(taxonomy=make_tree(3)), persistence=persistence, min_roots=3)

    await store.get_taxonomy(force_refresh=True, session=make_session())

    assert len(persistence.saves) == 1


@pytest.mark.asyncio
async def test_find_path():
    store = TaxonomyStore(persistence=MemoryPersistence(payload=snapshot_payload(make_tree())))
    await store.init()

    assert [n.id for n in store.find_path("280")] == ["161", "173", "280"]
    assert store.health_check() is True


@pytest.mark.asyncio
async def test_stale_fifteen_root_snapshot_returned_unchanged():
    """루트 15개(숫자 id 하나) 스냅샷은 오래돼도 갱신 없이 그대로 반환"""
    tree = [make_node("1", "Auto, Rad & Boot", [make_node("2", "Autos")])]
    tree += [make_node(f"rubrik-{i}", f"Rubrik {i}") for i in range(2, 16)]
    updated_at = datetime.now(timezone.utc) - timedelta(days=90)
    persistence = MemoryPersistence(payload=snapshot_payload(tree, updated_at=updated_at))
    fetcher = FakeFetcher(taxonomy=make_tree())
    extractor = FakeExtractor(tree=make_tree())
    store = TaxonomyStore(fetcher=fetcher, extractor=extractor, persistence=persistence)

    snapshot = await store.get_taxonomy(force_refresh=False, session=make_session())

    assert len(snapshot.categories) == 15
    assert [n.id for n in snapshot.categories] == [n.id for n in tree]
    assert snapshot.updated_at == updated_at
    assert store.is_fresh() is False
    assert fetcher.taxonomy_calls == 0
    assert extractor.tree_calls == 0
    assert persistence.saves == []
